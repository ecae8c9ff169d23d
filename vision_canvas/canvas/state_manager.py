"""
Canvas State Manager
====================

Manages canvas sessions with JSON persistence.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any
import uuid

from pydantic import ValidationError

from ..config import OverflowPolicy
from ..models.canvas_models import ExportDocument, SettingsUpdate
from .glyph_metrics import GlyphMetrics, PillowGlyphMetrics
from .session import CanvasSession, MutationResult

logger = logging.getLogger(__name__)


class StateManager:
    """Manages canvas sessions."""

    def __init__(
        self,
        sessions_dir: Optional[Path] = None,
        metrics: Optional[GlyphMetrics] = None,
        policy: OverflowPolicy = OverflowPolicy.REJECT,
        warning_timeout: float = 5.0
    ):
        self.sessions_dir = sessions_dir or Path("sessions")
        self.sessions_dir.mkdir(parents=True, exist_ok=True)
        self.metrics = metrics or PillowGlyphMetrics()
        self.policy = policy
        self.warning_timeout = warning_timeout
        self._cache: Dict[str, CanvasSession] = {}
        logger.info(f"[STATE-MANAGER] Initialized with sessions_dir={self.sessions_dir}, policy={self.policy.value}")

    def _session_kwargs(self) -> Dict[str, Any]:
        return {
            "metrics": self.metrics,
            "policy": self.policy,
            "warning_timeout": self.warning_timeout,
        }

    def _session_path(self, session_id: str) -> Path:
        return self.sessions_dir / f"{session_id}.json"

    def create_session(self, session_id: Optional[str] = None) -> str:
        """Create a new session with optional ID."""
        if session_id is None:
            session_id = str(uuid.uuid4())

        if self.get_session(session_id) is None:
            self._cache[session_id] = CanvasSession(session_id=session_id, **self._session_kwargs())
            self._save_session(session_id)
            logger.info(f"[STATE-MANAGER] Created session {session_id}")
        return session_id

    def restore_session(self, document: ExportDocument) -> CanvasSession:
        """Create a new session from an exported document."""
        session = CanvasSession.from_export_document(document, **self._session_kwargs())
        self._cache[session.session_id] = session
        self._save_session(session.session_id)
        logger.info(f"[STATE-MANAGER] Restored session {session.session_id} from export")
        return session

    def get_session(self, session_id: str) -> Optional[CanvasSession]:
        """Get session state."""
        if session_id in self._cache:
            return self._cache[session_id]

        session_path = self._session_path(session_id)
        if not session_path.exists():
            return None

        try:
            with open(session_path, encoding="utf-8") as f:
                raw = json.load(f)
            document = ExportDocument.model_validate(raw["document"])
        except (OSError, KeyError, json.JSONDecodeError, ValidationError) as e:
            logger.error(f"[STATE-MANAGER] Cannot load session {session_id}: {e}")
            return None

        session = CanvasSession.from_export_document(document, **self._session_kwargs())
        session.session_id = session_id
        session.created_at = raw.get("created_at", session.created_at)
        session.updated_at = raw.get("updated_at")
        self._cache[session_id] = session
        return session

    def update_settings(self, session_id: str, update: SettingsUpdate) -> Optional[MutationResult]:
        """Apply a partial settings update; None if the session is unknown."""
        session = self.get_session(session_id)
        if not session:
            return None

        result = session.update_settings(update)
        if result.accepted:
            self._save_session(session_id)
        return result

    def set_text(self, session_id: str, text: str) -> Optional[MutationResult]:
        """Replace session text; None if the session is unknown."""
        session = self.get_session(session_id)
        if not session:
            return None

        result = session.set_text(text)
        if result.accepted:
            self._save_session(session_id)
        return result

    def clear_canvas(self, session_id: str) -> bool:
        """Clear the text from the canvas."""
        session = self.get_session(session_id)
        if not session:
            return False

        session.clear()
        self._save_session(session_id)
        return True

    def delete_session(self, session_id: str) -> bool:
        """Forget a session and remove it from disk."""
        existed = self._cache.pop(session_id, None) is not None
        session_path = self._session_path(session_id)
        if session_path.exists():
            session_path.unlink()
            existed = True
        return existed

    def _save_session(self, session_id: str):
        """Save session to disk."""
        session = self._cache.get(session_id)
        if session is None:
            return

        record = {
            "id": session_id,
            "created_at": session.created_at,
            "updated_at": session.updated_at,
            "document": session.to_export_document().to_json_dict(),
        }
        with open(self._session_path(session_id), "w", encoding="utf-8") as f:
            json.dump(record, f, indent=2, ensure_ascii=False)

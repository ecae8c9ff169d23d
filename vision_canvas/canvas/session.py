"""
Canvas Session
==============

One editing session: canvas settings, the current text, and the
overflow warning shown to the user.

All mutation goes through ``update_settings`` and ``set_text``. Both run
the overflow predictor against the prospective state first and then
apply the configured policy:
- REJECT: keep the prior state and raise a warning
- WARN: apply the change and raise a warning

A warning expires ``warning_timeout`` seconds after it was raised.
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional

from pydantic import BaseModel

from ..config import OverflowPolicy
from ..models.canvas_models import (
    CanvasConfig,
    ExportDocument,
    LayoutReport,
    SettingsUpdate,
    TextElement,
)
from .glyph_metrics import GlyphMetrics, MeasurementUnavailable, PillowGlyphMetrics
from .overflow import measure_layout, will_overflow

logger = logging.getLogger(__name__)


class MutationResult(BaseModel):
    """Outcome of a settings or text mutation."""
    accepted: bool
    warning: Optional[str] = None


def iso_timestamp(moment: Optional[datetime] = None) -> str:
    """UTC timestamp with millisecond precision, e.g. 2024-05-01T12:00:00.000Z."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CanvasSession:
    """Explicit editor state passed to layout, prediction and rendering."""

    def __init__(
        self,
        session_id: Optional[str] = None,
        settings: Optional[CanvasConfig] = None,
        current_text: str = "",
        metrics: Optional[GlyphMetrics] = None,
        policy: OverflowPolicy = OverflowPolicy.REJECT,
        warning_timeout: float = 5.0,
        clock: Callable[[], float] = time.monotonic
    ):
        self.session_id = session_id or str(uuid.uuid4())
        self.metrics = metrics or PillowGlyphMetrics()
        self.policy = OverflowPolicy(policy)
        self.warning_timeout = warning_timeout
        self._clock = clock
        self._settings = settings or CanvasConfig()
        self._current_text = current_text
        self._warning: Optional[str] = None
        self._warning_raised_at = 0.0
        self.created_at = iso_timestamp()
        self.updated_at: Optional[str] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def settings(self) -> CanvasConfig:
        return self._settings

    @property
    def current_text(self) -> str:
        return self._current_text

    @property
    def text_elements(self) -> List[TextElement]:
        """The drawn text element, present only when the text is not blank."""
        if not self._current_text.strip():
            return []
        return [TextElement(text=self._current_text, font_size=self._settings.font_size)]

    @property
    def overflow_warning(self) -> Optional[str]:
        if self._warning is None:
            return None
        if self._clock() - self._warning_raised_at >= self.warning_timeout:
            self._warning = None
        return self._warning

    def layout_report(self) -> Optional[LayoutReport]:
        """Layout of the current text, or None if it cannot be measured."""
        try:
            return measure_layout(self._current_text, self._settings, self.metrics)
        except MeasurementUnavailable as e:
            logger.warning(f"[CANVAS-SESSION] Layout unavailable: {e}")
            return None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def update_settings(self, update: Optional[SettingsUpdate] = None, **fields) -> MutationResult:
        """
        Apply a partial settings update.

        Args:
            update: SettingsUpdate, or pass fields as keywords
                    (``width_tokens=4`` or ``widthTokens=4``)

        Returns:
            MutationResult; ``accepted`` is False when the REJECT policy
            dropped the change
        """
        if update is None:
            update = SettingsUpdate(**fields)
        if update.is_empty():
            return MutationResult(accepted=True, warning=self.overflow_warning)

        prospective = self._settings.merged(update)

        if will_overflow(self._current_text, prospective, self.metrics):
            if update.font_size is not None and update.font_size != self._settings.font_size:
                message = (
                    f"Text will overflow with {prospective.font_size}px font. "
                    f"Reduce font size or use larger canvas."
                )
            else:
                message = (
                    f"Text will overflow at {prospective.width_tokens}×{prospective.height_tokens} tokens. "
                    f"Clear text or use larger canvas."
                )
            return self._overflowed(message, lambda: self._apply_settings(prospective))

        self._clear_warning()
        self._apply_settings(prospective)
        return MutationResult(accepted=True)

    def set_text(self, text: str) -> MutationResult:
        """Replace the whole text."""
        if will_overflow(text, self._settings, self.metrics):
            message = (
                f"Text too large for {self._settings.width_tokens}×{self._settings.height_tokens} canvas. "
                f"Increase canvas size or reduce text."
            )
            return self._overflowed(message, lambda: self._apply_text(text))

        self._clear_warning()
        self._apply_text(text)
        return MutationResult(accepted=True)

    def clear(self) -> None:
        """Empty the canvas and drop any warning."""
        self._clear_warning()
        self._apply_text("")

    def _overflowed(self, message: str, apply: Callable[[], None]) -> MutationResult:
        self._raise_warning(message)
        if self.policy == OverflowPolicy.REJECT:
            logger.info(f"[CANVAS-SESSION] {self.session_id}: rejected, {message}")
            return MutationResult(accepted=False, warning=message)

        apply()
        logger.info(f"[CANVAS-SESSION] {self.session_id}: applied with warning, {message}")
        return MutationResult(accepted=True, warning=message)

    def _apply_settings(self, settings: CanvasConfig) -> None:
        self._settings = settings
        self._touch()

    def _apply_text(self, text: str) -> None:
        self._current_text = text
        self._touch()

    def _touch(self) -> None:
        self.updated_at = iso_timestamp()

    def _raise_warning(self, message: str) -> None:
        self._warning = message
        self._warning_raised_at = self._clock()

    def _clear_warning(self) -> None:
        self._warning = None

    # ------------------------------------------------------------------
    # Export document
    # ------------------------------------------------------------------

    def to_export_document(self, exported_at: Optional[str] = None) -> ExportDocument:
        return ExportDocument(
            settings=self._settings,
            text_elements=self.text_elements,
            current_text=self._current_text,
            exported_at=exported_at or iso_timestamp()
        )

    @classmethod
    def from_export_document(cls, document: ExportDocument, **kwargs) -> "CanvasSession":
        """Restore a session; the document's text is trusted and not re-checked."""
        text = document.current_text
        if not text and document.text_elements:
            text = document.text_elements[0].text
        return cls(settings=document.settings, current_text=text, **kwargs)

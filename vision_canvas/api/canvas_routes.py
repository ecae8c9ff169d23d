"""
Canvas Routes
==============

API routes for canvas sessions, editing, and export.
"""

import logging
from typing import Optional, Dict, Any, List

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel

from ..canvas.glyph_metrics import MeasurementUnavailable
from ..canvas.session import CanvasSession, MutationResult
from ..canvas.state_manager import StateManager
from ..models.canvas_models import LayoutReport, SettingsUpdate
from ..png.chunk_codec import MalformedContainer
from ..services.export_service import ExportArtifact, ExportService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/canvas", tags=["canvas"])

# Injected by server
state_manager: Optional[StateManager] = None
export_service: Optional[ExportService] = None


def get_state_manager() -> StateManager:
    """Dependency to get state manager."""
    if state_manager is None:
        raise HTTPException(500, "State manager not initialized")
    return state_manager


def get_export_service() -> ExportService:
    """Dependency to get export service."""
    if export_service is None:
        raise HTTPException(500, "Export service not initialized")
    return export_service


class CanvasStateResponse(BaseModel):
    """Response for canvas state."""
    session_id: str
    settings: Dict[str, Any]
    current_text: str
    text_elements: List[Dict[str, Any]]
    overflow_warning: Optional[str] = None
    layout: Optional[LayoutReport] = None
    display_width: int
    display_height: int
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class MutationResponse(BaseModel):
    """Response for a settings or text change."""
    accepted: bool
    warning: Optional[str] = None
    state: CanvasStateResponse


class TextRequest(BaseModel):
    """Request to replace the canvas text."""
    text: str


def _state_response(session: CanvasSession) -> CanvasStateResponse:
    display_width, display_height = session.settings.display_size_px
    return CanvasStateResponse(
        session_id=session.session_id,
        settings=session.settings.model_dump(by_alias=True),
        current_text=session.current_text,
        text_elements=[e.model_dump(by_alias=True) for e in session.text_elements],
        overflow_warning=session.overflow_warning,
        layout=session.layout_report(),
        display_width=display_width,
        display_height=display_height,
        created_at=session.created_at,
        updated_at=session.updated_at
    )


def _require_session(manager: StateManager, session_id: str) -> CanvasSession:
    session = manager.get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _mutation_response(result: Optional[MutationResult], manager: StateManager, session_id: str) -> MutationResponse:
    if result is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return MutationResponse(
        accepted=result.accepted,
        warning=result.warning,
        state=_state_response(_require_session(manager, session_id))
    )


def _download(artifact: ExportArtifact) -> Response:
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={"Content-Disposition": f'attachment; filename="{artifact.filename}"'}
    )


@router.post("/session")
async def create_session(manager: StateManager = Depends(get_state_manager)):
    """Create a new canvas session."""
    session_id = manager.create_session()
    return {"session_id": session_id, "message": "Session created"}


@router.get("/state/{session_id}")
async def get_state(session_id: str, manager: StateManager = Depends(get_state_manager)) -> CanvasStateResponse:
    """Get canvas state for session."""
    return _state_response(_require_session(manager, session_id))


@router.patch("/settings/{session_id}")
async def update_settings(
    session_id: str,
    update: SettingsUpdate,
    manager: StateManager = Depends(get_state_manager)
) -> MutationResponse:
    """Partially update canvas settings."""
    result = manager.update_settings(session_id, update)
    return _mutation_response(result, manager, session_id)


@router.put("/text/{session_id}")
async def set_text(
    session_id: str,
    request: TextRequest,
    manager: StateManager = Depends(get_state_manager)
) -> MutationResponse:
    """Replace the canvas text."""
    result = manager.set_text(session_id, request.text)
    return _mutation_response(result, manager, session_id)


@router.delete("/state/{session_id}")
async def clear_canvas(session_id: str, manager: StateManager = Depends(get_state_manager)):
    """Clear the text from the canvas."""
    if not manager.clear_canvas(session_id):
        raise HTTPException(status_code=404, detail="Session not found")

    return {"message": "Canvas cleared", "session_id": session_id}


@router.delete("/session/{session_id}")
async def delete_session(session_id: str, manager: StateManager = Depends(get_state_manager)):
    """Delete a session and its saved state."""
    if not manager.delete_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")

    logger.info(f"[CANVAS-ROUTES] Deleted session {session_id}")
    return {"message": "Session deleted", "session_id": session_id}


@router.get("/export/{session_id}/image")
async def export_image(
    session_id: str,
    manager: StateManager = Depends(get_state_manager),
    exporter: ExportService = Depends(get_export_service)
):
    """Download the canvas as PNG with embedded editing state."""
    session = _require_session(manager, session_id)
    try:
        artifact = exporter.export_image(session)
    except (MalformedContainer, MeasurementUnavailable) as e:
        logger.error(f"[EXPORT] {session_id}: image export failed: {e}")
        raise HTTPException(status_code=500, detail=f"Image export failed: {e}")
    return _download(artifact)


@router.get("/export/{session_id}/data")
async def export_data(
    session_id: str,
    manager: StateManager = Depends(get_state_manager),
    exporter: ExportService = Depends(get_export_service)
):
    """Download the editing state as JSON."""
    session = _require_session(manager, session_id)
    return _download(exporter.export_data(session))


@router.post("/import")
async def import_canvas(
    request: Request,
    manager: StateManager = Depends(get_state_manager),
    exporter: ExportService = Depends(get_export_service)
) -> CanvasStateResponse:
    """Start a new session from an exported PNG or JSON data file (raw body)."""
    content = await request.body()
    try:
        document = exporter.import_document(content)
    except MalformedContainer as e:
        logger.warning(f"[EXPORT] Import rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    session = manager.restore_session(document)
    return _state_response(session)

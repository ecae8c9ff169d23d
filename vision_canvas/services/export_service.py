"""
Export Service for Vision Canvas
================================

Produces export files as owned byte buffers:
- PNG image of the canvas, optionally carrying the editing state
- Standalone JSON data export

Persisting the bytes (disk, HTTP download, ...) is up to the caller.
"""

import json
import logging
import time
from typing import Callable, Optional

from pydantic import BaseModel, ValidationError

from ..canvas.glyph_metrics import PillowGlyphMetrics
from ..canvas.rasterizer import encode_png, render_canvas
from ..canvas.session import CanvasSession
from ..models.canvas_models import ExportDocument
from ..png import metadata
from ..png.chunk_codec import PNG_SIGNATURE, MalformedContainer

logger = logging.getLogger(__name__)


class ExportArtifact(BaseModel):
    """A finished export file."""
    filename: str
    media_type: str
    content: bytes


class ExportService:
    """
    Builds image and data exports for canvas sessions.

    Usage:
        service = ExportService(PillowGlyphMetrics())
        artifact = service.export_image(session)
        Path(artifact.filename).write_bytes(artifact.content)
    """

    def __init__(
        self,
        metrics: Optional[PillowGlyphMetrics] = None,
        file_prefix: str = "vision-canvas",
        embed_metadata: bool = True,
        clock: Callable[[], float] = time.time
    ):
        self.metrics = metrics or PillowGlyphMetrics()
        self.file_prefix = file_prefix
        self.embed_metadata = embed_metadata
        self._clock = clock

    def _timestamp_ms(self) -> int:
        return int(self._clock() * 1000)

    def render_png(self, session: CanvasSession) -> bytes:
        """Encode the current canvas as PNG bytes without metadata."""
        image = render_canvas(session.settings, session.text_elements, self.metrics)
        return encode_png(image)

    def export_image(self, session: CanvasSession) -> ExportArtifact:
        """
        Render the canvas and embed the editing state.

        Raises MalformedContainer if the state cannot be embedded; no
        metadata-less image is returned in that case.
        """
        settings = session.settings
        png = self.render_png(session)

        if self.embed_metadata:
            png = metadata.embed(png, session.to_export_document())

        filename = (
            f"{self.file_prefix}-{settings.width_tokens}x{settings.height_tokens}"
            f"-{self._timestamp_ms()}.png"
        )
        logger.info(f"[EXPORT] {session.session_id}: image {filename} ({len(png)} bytes)")
        return ExportArtifact(filename=filename, media_type="image/png", content=png)

    def export_data(self, session: CanvasSession) -> ExportArtifact:
        """Indented JSON of the export document."""
        document = session.to_export_document()
        content = json.dumps(document.to_json_dict(), indent=2, ensure_ascii=False).encode("utf-8")

        filename = f"{self.file_prefix}-data-{self._timestamp_ms()}.json"
        logger.info(f"[EXPORT] {session.session_id}: data {filename} ({len(content)} bytes)")
        return ExportArtifact(filename=filename, media_type="application/json", content=content)

    def import_png(self, png: bytes) -> ExportDocument:
        """Read the editing state back out of an exported PNG."""
        return metadata.extract(png)

    def import_data(self, content: bytes) -> ExportDocument:
        """Parse a standalone JSON data export."""
        try:
            return ExportDocument.model_validate_json(content)
        except ValidationError as e:
            raise MalformedContainer(f"Not a canvas data export: {e}") from e

    def import_document(self, content: bytes) -> ExportDocument:
        """Accept either export format, detected by the PNG signature."""
        if content.startswith(PNG_SIGNATURE):
            return self.import_png(content)
        return self.import_data(content)

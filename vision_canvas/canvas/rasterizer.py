"""
Rasterizer
==========

Draws laid-out lines onto a white canvas with Pillow.

Lines come from the same line breaker the overflow predictor uses, so a
canvas that was accepted as "fits" renders with the predicted line count.
"""

import io
import logging
from typing import Iterable

from PIL import Image, ImageDraw

from ..config import CANVAS_INSET
from ..models.canvas_models import CanvasConfig, TextElement
from .glyph_metrics import FontSpec, PillowGlyphMetrics
from .line_breaker import break_lines, materialize, wrap_mode_for
from .overflow import line_height_for

logger = logging.getLogger(__name__)

BACKGROUND = (255, 255, 255)


def _draw_lines(
    draw: ImageDraw.ImageDraw,
    lines: Iterable[str],
    font_spec: FontSpec,
    color: str,
    metrics: PillowGlyphMetrics
) -> None:
    font = metrics.load_font(font_spec)
    line_height = line_height_for(font_spec.size)

    y = float(CANVAS_INSET)
    for line in lines:
        # "la" anchors at the ascender, the closest match to a top baseline
        draw.text((CANVAS_INSET, y), line, fill=color, font=font, anchor="la")
        y += line_height


def _blank_canvas(width_px: int, height_px: int) -> Image.Image:
    return Image.new("RGB", (width_px, height_px), BACKGROUND)


def render(
    width_px: int,
    height_px: int,
    lines: Iterable[str],
    font_spec: FontSpec,
    color: str,
    metrics: PillowGlyphMetrics
) -> Image.Image:
    """
    Draw ``lines`` left-aligned from (2, 2), one line height apart.

    Args:
        width_px: Canvas width (unclamped)
        height_px: Canvas height (unclamped)
        lines: Lines to draw, top to bottom
        font_spec: Font to draw with
        color: Text fill, e.g. "#000000"
        metrics: Provider of the Pillow font face

    Returns:
        RGB image of the full canvas
    """
    image = _blank_canvas(width_px, height_px)
    _draw_lines(ImageDraw.Draw(image), lines, font_spec, color, metrics)
    return image


def render_canvas(config: CanvasConfig, elements: Iterable[TextElement], metrics: PillowGlyphMetrics) -> Image.Image:
    """Render the canvas described by ``config`` and its text elements."""
    width_px, height_px = config.canvas_width_px, config.canvas_height_px

    image = None
    drawn = 0
    for element in elements:
        font_spec = FontSpec(size=element.font_size, weight=element.font_weight)
        lines = materialize(break_lines(
            element.text,
            config.max_line_width_px,
            font_spec,
            wrap_mode_for(config.char_wrap),
            metrics
        ))
        if image is None:
            image = render(width_px, height_px, lines, font_spec, element.color, metrics)
        else:
            _draw_lines(ImageDraw.Draw(image), lines, font_spec, element.color, metrics)
        drawn += len(lines)

    if image is None:
        image = _blank_canvas(width_px, height_px)

    logger.info(f"[RASTERIZER] Drew {drawn} lines on {width_px}x{height_px}px")
    return image


def encode_png(image: Image.Image) -> bytes:
    """Encode ``image`` as PNG bytes."""
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()

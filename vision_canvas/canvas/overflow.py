"""
Overflow Predictor
==================

Predicts whether text overflows a canvas before anything is drawn.

Uses the same line breaker and the same layout constants as the
rasterizer: line height = font size * 1.1, 2px inset on every side.
"""

import logging

from ..config import CANVAS_INSET, LINE_HEIGHT_FACTOR
from ..models.canvas_models import CanvasConfig, LayoutReport
from .glyph_metrics import FontSpec, GlyphMetrics, MeasurementUnavailable
from .line_breaker import break_lines, wrap_mode_for

logger = logging.getLogger(__name__)


def line_height_for(font_size: float) -> float:
    return font_size * LINE_HEIGHT_FACTOR


def measure_layout(text: str, config: CanvasConfig, metrics: GlyphMetrics) -> LayoutReport:
    """
    Lay out ``text`` on ``config`` and report height usage.

    Empty (whitespace-only) text is reported as zero lines. Raises
    MeasurementUnavailable when no font can be loaded.
    """
    line_height = line_height_for(config.font_size)
    max_width = config.max_line_width_px
    canvas_height = config.canvas_height_px

    if not text.strip():
        return LayoutReport(
            line_count=0,
            line_height=line_height,
            total_height=0.0,
            max_width=max_width,
            canvas_height=canvas_height,
            overflows=False
        )

    lines = break_lines(
        text,
        max_width,
        FontSpec(size=config.font_size),
        wrap_mode_for(config.char_wrap),
        metrics
    )
    line_count = len(lines)
    total_height = line_count * line_height + 2 * CANVAS_INSET

    return LayoutReport(
        line_count=line_count,
        line_height=line_height,
        total_height=total_height,
        max_width=max_width,
        canvas_height=canvas_height,
        overflows=total_height > canvas_height
    )


def will_overflow(text: str, config: CanvasConfig, metrics: GlyphMetrics) -> bool:
    """
    True when ``text`` needs more height than the canvas provides.

    Fails open: if text cannot be measured the answer is False.
    """
    if not text.strip():
        return False

    try:
        report = measure_layout(text, config, metrics)
    except MeasurementUnavailable as e:
        logger.warning(f"[OVERFLOW] Measurement unavailable, skipping check: {e}")
        return False

    if report.overflows:
        logger.info(
            f"[OVERFLOW] {report.line_count} lines need {report.total_height:.1f}px, "
            f"canvas is {report.canvas_height}px"
        )
    return report.overflows

"""
Glyph Metrics
=============

Text measurement backed by Pillow fonts.

The same loaded face is used by the line breaker (through ``measure``)
and by the rasterizer (through ``load_font``), so measured and drawn
widths come from one source.
"""

import logging
from functools import lru_cache
from typing import Optional, Protocol, Sequence

from PIL import ImageFont
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

FONT_FAMILY = "system-ui, -apple-system, sans-serif"

# Tried in order when no font path is configured
FONT_CANDIDATES = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",  # Linux
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
    "/System/Library/Fonts/Helvetica.ttc",  # macOS
    "/Library/Fonts/Arial.ttf",
    "arial.ttf",  # Windows
]


class MeasurementUnavailable(RuntimeError):
    """No font could be loaded to measure or draw text."""


class FontSpec(BaseModel):
    """Font used for a layout pass."""
    model_config = ConfigDict(frozen=True)

    size: int
    weight: str = "normal"
    family: str = FONT_FAMILY

    def describe(self) -> str:
        """CSS-style shorthand, e.g. ``normal 8px system-ui, ...``."""
        return f"{self.weight} {self.size}px {self.family}"


class GlyphMetrics(Protocol):
    """Anything that can report the advance width of a string."""

    def measure(self, text: str, font_spec: FontSpec) -> float:
        ...


@lru_cache(maxsize=128)
def _load_font(font_path: Optional[str], size: int, candidates: tuple):
    paths = [font_path] if font_path else list(candidates)
    for path in paths:
        try:
            return ImageFont.truetype(path, size)
        except OSError:
            continue

    if font_path:
        raise MeasurementUnavailable(f"Cannot load font {font_path!r} at {size}px")

    logger.info(f"[GLYPH-METRICS] No system font found, using Pillow default font at {size}px")
    try:
        return ImageFont.load_default(size=size)
    except (OSError, ImportError) as e:
        raise MeasurementUnavailable(f"No usable font at {size}px: {e}") from e


class PillowGlyphMetrics:
    """
    Glyph metrics provider using Pillow.

    Usage:
        metrics = PillowGlyphMetrics()
        width = metrics.measure("hello", FontSpec(size=8))
    """

    def __init__(self, font_path: Optional[str] = None, candidates: Sequence[str] = FONT_CANDIDATES):
        self.font_path = font_path
        self.candidates = tuple(candidates)

    def load_font(self, font_spec: FontSpec):
        """Return the Pillow font for ``font_spec``; raises MeasurementUnavailable."""
        return _load_font(self.font_path, font_spec.size, self.candidates)

    def measure(self, text: str, font_spec: FontSpec) -> float:
        return float(self.load_font(font_spec).getlength(text))

"""
Canvas Models for Vision Canvas
===============================

Models for canvas settings, the derived text element, and the export
document embedded in PNGs and written to standalone data exports.

JSON field names are camelCase so exported documents stay compatible
with the browser editor that produced the original files.
"""

from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import (
    PIXEL_SIZE,
    CANVAS_INSET,
    DISPLAY_CAP_PX,
    MIN_TOKENS,
    MAX_TOKENS,
    MIN_FONT_SIZE,
    MAX_FONT_SIZE,
    DEFAULT_TOKENS,
    DEFAULT_FONT_SIZE,
)


MAIN_TEXT_ID = "main-text"


def clamp_int(value: Any, low: int, high: int, fallback: int) -> int:
    """
    Coerce user input to an int inside [low, high].

    Numbers are truncated toward zero and clamped to the nearest bound.
    Anything that does not parse as a number becomes ``fallback``.
    """
    if isinstance(value, bool):
        return fallback
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return fallback
    return max(low, min(high, number))


class CanvasConfig(BaseModel):
    """Canvas geometry and text options."""
    model_config = ConfigDict(populate_by_name=True)

    width_tokens: int = Field(default=DEFAULT_TOKENS, alias="widthTokens")
    height_tokens: int = Field(default=DEFAULT_TOKENS, alias="heightTokens")
    pixel_size: int = Field(default=PIXEL_SIZE, alias="pixelSize")
    font_size: int = Field(default=8, alias="fontSize")
    char_wrap: bool = Field(default=False, alias="charWrap")

    @field_validator("width_tokens", "height_tokens", mode="before")
    @classmethod
    def _clamp_tokens(cls, value: Any) -> int:
        return clamp_int(value, MIN_TOKENS, MAX_TOKENS, DEFAULT_TOKENS)

    @field_validator("font_size", mode="before")
    @classmethod
    def _clamp_font_size(cls, value: Any) -> int:
        return clamp_int(value, MIN_FONT_SIZE, MAX_FONT_SIZE, DEFAULT_FONT_SIZE)

    @field_validator("pixel_size", mode="before")
    @classmethod
    def _fixed_pixel_size(cls, value: Any) -> int:
        return PIXEL_SIZE

    @property
    def canvas_width_px(self) -> int:
        return self.width_tokens * self.pixel_size

    @property
    def canvas_height_px(self) -> int:
        return self.height_tokens * self.pixel_size

    @property
    def max_line_width_px(self) -> int:
        """Usable line width after the left and right inset."""
        return self.canvas_width_px - 2 * CANVAS_INSET

    @property
    def display_size_px(self) -> tuple:
        """Preview size; each axis is capped at 600px independently."""
        return (
            min(self.canvas_width_px, DISPLAY_CAP_PX),
            min(self.canvas_height_px, DISPLAY_CAP_PX),
        )

    def merged(self, update: "SettingsUpdate") -> "CanvasConfig":
        """Return a new config with the fields set on ``update`` applied."""
        changes = update.model_dump(exclude_none=True)
        return self.model_copy(update=changes)


class SettingsUpdate(BaseModel):
    """Partial settings update; unset fields keep their prior values."""
    model_config = ConfigDict(populate_by_name=True)

    width_tokens: Optional[int] = Field(default=None, alias="widthTokens")
    height_tokens: Optional[int] = Field(default=None, alias="heightTokens")
    font_size: Optional[int] = Field(default=None, alias="fontSize")
    char_wrap: Optional[bool] = Field(default=None, alias="charWrap")

    @field_validator("width_tokens", "height_tokens", mode="before")
    @classmethod
    def _clamp_tokens(cls, value: Any) -> Optional[int]:
        if value is None:
            return None
        return clamp_int(value, MIN_TOKENS, MAX_TOKENS, DEFAULT_TOKENS)

    @field_validator("font_size", mode="before")
    @classmethod
    def _clamp_font_size(cls, value: Any) -> Optional[int]:
        if value is None:
            return None
        return clamp_int(value, MIN_FONT_SIZE, MAX_FONT_SIZE, DEFAULT_FONT_SIZE)

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class TextElement(BaseModel):
    """The drawn text, projected from the session's current text."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = MAIN_TEXT_ID
    text: str
    x: int = CANVAS_INSET
    y: int = CANVAS_INSET
    font_size: int = Field(alias="fontSize")
    color: str = "#000000"
    font_weight: str = Field(default="normal", alias="fontWeight")


class ExportDocument(BaseModel):
    """Full editing state, embedded in exported PNGs and data files."""
    model_config = ConfigDict(populate_by_name=True)

    settings: CanvasConfig
    text_elements: List[TextElement] = Field(default_factory=list, alias="textElements")
    current_text: str = Field(default="", alias="currentText")
    exported_at: str = Field(alias="exportedAt")

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class LayoutReport(BaseModel):
    """Result of a layout pass against a canvas."""
    line_count: int
    line_height: float
    total_height: float
    max_width: int
    canvas_height: int
    overflows: bool

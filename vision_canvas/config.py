"""
Vision Canvas Configuration
===========================

Runtime configuration read from environment variables.

Layout constants live here too; they are fixed and shared by the overflow
predictor and the rasterizer so both agree on line count.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


# Fixed layout constants
PIXEL_SIZE = 32            # 1 token = 32x32px
CANVAS_INSET = 2           # px on each side
LINE_HEIGHT_FACTOR = 1.1   # line height = font size * 1.1
DISPLAY_CAP_PX = 600       # preview cap, never used for layout math

MIN_TOKENS, MAX_TOKENS = 1, 32
MIN_FONT_SIZE, MAX_FONT_SIZE = 1, 72
DEFAULT_TOKENS = 1
DEFAULT_FONT_SIZE = 16


class OverflowPolicy(str, Enum):
    """What happens to a mutation that would overflow the canvas."""
    REJECT = "reject"  # drop the mutation, keep prior state, warn
    WARN = "warn"      # apply the mutation, warn


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class AppConfig(BaseModel):
    """Configuration for the vision canvas service."""
    sessions_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("VISION_CANVAS_SESSIONS_DIR", "sessions"))
    )
    font_path: Optional[str] = Field(
        default_factory=lambda: os.getenv("VISION_CANVAS_FONT_PATH") or None
    )
    overflow_policy: OverflowPolicy = Field(
        default_factory=lambda: OverflowPolicy(os.getenv("VISION_CANVAS_OVERFLOW_POLICY", "reject").lower())
    )
    warning_timeout: float = Field(
        default_factory=lambda: float(os.getenv("VISION_CANVAS_WARNING_TIMEOUT", "5")),
        gt=0
    )
    file_prefix: str = Field(
        default_factory=lambda: os.getenv("VISION_CANVAS_FILE_PREFIX", "vision-canvas")
    )
    embed_metadata: bool = Field(
        default_factory=lambda: _env_bool("VISION_CANVAS_EMBED_METADATA", True)
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("VISION_CANVAS_LOG_LEVEL", "INFO").upper()
    )

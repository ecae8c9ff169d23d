"""
Line Breaker
============

Greedy line breaking for a pixel-bounded canvas.

Two policies:
- WORD: split on the ASCII space only. Runs of spaces produce empty words
  and are kept, so "a  b" lays out exactly as typed.
- CHAR: one code point at a time.

Tabs, newlines and carriage returns inside a token become spaces, so
every emitted line is drawn as exactly one line.

A token wider than the line is never split; it overflows its own line.
The trailing accumulator is always emitted, so the sequence is never empty.
"""

import logging
from enum import Enum
from typing import Iterator, List

from .glyph_metrics import FontSpec, GlyphMetrics

logger = logging.getLogger(__name__)

# Control whitespace is laid out and drawn as a plain space, never as a hard break
_BLANKS = str.maketrans({c: " " for c in "\t\n\x0b\x0c\r"})


class WrapMode(str, Enum):
    """How text is split into candidate tokens."""
    WORD = "word"
    CHAR = "char"


def wrap_mode_for(char_wrap: bool) -> WrapMode:
    return WrapMode.CHAR if char_wrap else WrapMode.WORD


class LineSequence:
    """
    Lazy, restartable sequence of lines.

    Every iteration re-runs the breaker from the start, so the overflow
    predictor and the rasterizer can consume the same sequence
    independently.
    """

    def __init__(
        self,
        text: str,
        max_width: float,
        font_spec: FontSpec,
        wrap_mode: WrapMode,
        metrics: GlyphMetrics
    ):
        self.text = text
        self.max_width = max_width
        self.font_spec = font_spec
        self.wrap_mode = WrapMode(wrap_mode)
        self.metrics = metrics

    def _tokens(self) -> Iterator[str]:
        if self.wrap_mode == WrapMode.CHAR:
            return iter(self.text.translate(_BLANKS))
        return (word.translate(_BLANKS) for word in self.text.split(" "))

    def _join(self, line: str, token: str) -> str:
        if not line:
            return token
        if self.wrap_mode == WrapMode.CHAR:
            return line + token
        return f"{line} {token}"

    def __iter__(self) -> Iterator[str]:
        line = ""
        for token in self._tokens():
            candidate = self._join(line, token)
            if line and self.metrics.measure(candidate, self.font_spec) > self.max_width:
                yield line
                line = token
            else:
                line = candidate
        yield line

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        return (
            f"LineSequence(chars={len(self.text)}, max_width={self.max_width}, "
            f"font={self.font_spec.describe()!r}, mode={self.wrap_mode.value})"
        )


def break_lines(
    text: str,
    max_width: float,
    font_spec: FontSpec,
    wrap_mode: WrapMode,
    metrics: GlyphMetrics
) -> LineSequence:
    """
    Break ``text`` into lines no wider than ``max_width`` where possible.

    Args:
        text: Text to lay out
        max_width: Usable line width in pixels
        font_spec: Font to measure with
        wrap_mode: WORD or CHAR
        metrics: Glyph metrics provider

    Returns:
        LineSequence; iterate it to get the lines
    """
    return LineSequence(text, max_width, font_spec, wrap_mode, metrics)


def materialize(lines: LineSequence) -> List[str]:
    result = list(lines)
    logger.debug(f"[LINE-BREAKER] {lines!r} -> {len(result)} lines")
    return result

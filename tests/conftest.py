"""
Shared fixtures for Vision Canvas tests.

FakeMetrics gives every code point a width of half the font size, so
line breaking can be asserted exactly. Scenario tests use the real
Pillow-backed provider.
"""

import pytest

from vision_canvas.canvas.glyph_metrics import FontSpec, MeasurementUnavailable, PillowGlyphMetrics


class FakeMetrics:
    """Monospace metrics: each code point is ``size * 0.5`` pixels wide."""

    def __init__(self):
        self.calls = 0

    def measure(self, text: str, font_spec: FontSpec) -> float:
        self.calls += 1
        return len(text) * font_spec.size * 0.5


class BrokenMetrics:
    """Metrics provider with no drawing surface."""

    def measure(self, text: str, font_spec: FontSpec) -> float:
        raise MeasurementUnavailable("no font")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_metrics():
    return FakeMetrics()


@pytest.fixture
def broken_metrics():
    return BrokenMetrics()


@pytest.fixture
def pillow_metrics():
    return PillowGlyphMetrics()


@pytest.fixture
def clock():
    return FakeClock()

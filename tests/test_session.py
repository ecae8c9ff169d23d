"""
Canvas Session Tests
====================

Settings and text mutation, overflow policies, warning expiry,
and the derived text element.
"""

import pytest

from vision_canvas.canvas.session import CanvasSession, iso_timestamp
from vision_canvas.config import OverflowPolicy
from vision_canvas.models.canvas_models import CanvasConfig, SettingsUpdate


# FakeMetrics: 8px font -> 4px per code point, 4x4 canvas -> 124px lines,
# 14 lines of 8.8px fit in 128px.
WORD_30 = "abcdefghijklmnopqrstuvwxyzabcd"


def lines_of(count):
    return " ".join([WORD_30] * count)


@pytest.fixture
def make_session(fake_metrics, clock):
    def _make(policy=OverflowPolicy.REJECT, **settings):
        values = {"width_tokens": 4, "height_tokens": 4, "font_size": 8}
        values.update(settings)
        return CanvasSession(
            settings=CanvasConfig(**values),
            metrics=fake_metrics,
            policy=policy,
            warning_timeout=5.0,
            clock=clock
        )
    return _make


class TestTextElements:

    def test_absent_for_blank_text(self, make_session):
        session = make_session()
        assert session.text_elements == []
        session.set_text("   ")
        assert session.text_elements == []

    def test_projects_current_text(self, make_session):
        session = make_session()
        session.set_text("hi there")
        (element,) = session.text_elements
        assert element.id == "main-text"
        assert element.text == "hi there"
        assert (element.x, element.y) == (2, 2)
        assert element.font_size == 8
        assert element.color == "#000000"
        assert element.font_weight == "normal"

    def test_follows_font_size(self, make_session):
        session = make_session()
        session.set_text("hi")
        session.update_settings(font_size=12)
        assert session.text_elements[0].font_size == 12

    def test_clear_removes_element(self, make_session):
        session = make_session()
        session.set_text("hi")
        session.clear()
        assert session.current_text == ""
        assert session.text_elements == []


class TestRejectPolicy:

    def test_overflowing_text_is_dropped(self, make_session):
        session = make_session()
        session.set_text("short")
        result = session.set_text(lines_of(15))

        assert result.accepted is False
        assert session.current_text == "short"
        assert result.warning == "Text too large for 4×4 canvas. Increase canvas size or reduce text."
        assert session.overflow_warning == result.warning

    def test_fitting_text_is_applied(self, make_session):
        session = make_session()
        result = session.set_text(lines_of(14))
        assert result.accepted is True
        assert result.warning is None
        assert session.current_text == lines_of(14)

    def test_shrinking_canvas_is_dropped(self, make_session):
        session = make_session()
        session.set_text(lines_of(10))
        result = session.update_settings(width_tokens=1, height_tokens=2)

        assert result.accepted is False
        assert (session.settings.width_tokens, session.settings.height_tokens) == (4, 4)
        assert result.warning == "Text will overflow at 1×2 tokens. Clear text or use larger canvas."

    def test_growing_font_is_dropped(self, make_session):
        session = make_session()
        session.set_text(lines_of(2))
        result = session.update_settings(SettingsUpdate(font_size=72))

        assert result.accepted is False
        assert session.settings.font_size == 8
        assert result.warning == "Text will overflow with 72px font. Reduce font size or use larger canvas."

    def test_char_wrap_toggle_is_checked(self, make_session):
        session = make_session(width_tokens=1, height_tokens=1)
        session.set_text("a" * 30)  # one overflowing word, one line
        result = session.update_settings(char_wrap=True)
        assert result.accepted is False
        assert session.settings.char_wrap is False

    def test_any_change_allowed_on_empty_canvas(self, make_session):
        session = make_session()
        result = session.update_settings(width_tokens=1, height_tokens=1, font_size=72)
        assert result.accepted is True
        assert session.settings.font_size == 72


class TestWarnPolicy:

    def test_overflowing_text_is_applied_with_warning(self, make_session):
        session = make_session(policy=OverflowPolicy.WARN)
        result = session.set_text(lines_of(15))
        assert result.accepted is True
        assert session.current_text == lines_of(15)
        assert result.warning.startswith("Text too large")

    def test_overflowing_settings_are_applied_with_warning(self, make_session):
        session = make_session(policy=OverflowPolicy.WARN)
        session.set_text(lines_of(2))
        result = session.update_settings(font_size=72)
        assert result.accepted is True
        assert session.settings.font_size == 72
        assert session.overflow_warning.startswith("Text will overflow with 72px font")


class TestWarningExpiry:

    def test_expires_after_timeout(self, make_session, clock):
        session = make_session()
        session.set_text(lines_of(20))
        clock.advance(4.5)
        assert session.overflow_warning is not None
        clock.advance(0.5)
        assert session.overflow_warning is None

    def test_retrigger_restarts_timer(self, make_session, clock):
        session = make_session()
        session.set_text(lines_of(20))
        clock.advance(4)
        session.set_text(lines_of(21))
        clock.advance(4)
        assert session.overflow_warning is not None
        clock.advance(1)
        assert session.overflow_warning is None

    def test_accepted_mutation_clears_warning(self, make_session):
        session = make_session()
        session.set_text(lines_of(20))
        session.set_text("fits")
        assert session.overflow_warning is None

    def test_clear_drops_warning(self, make_session):
        session = make_session()
        session.set_text(lines_of(20))
        session.clear()
        assert session.overflow_warning is None


class TestSettingsInput:

    def test_partial_update_keeps_other_fields(self, make_session):
        session = make_session(char_wrap=True)
        session.update_settings(height_tokens=8)
        settings = session.settings
        assert (settings.width_tokens, settings.height_tokens, settings.font_size, settings.char_wrap) == (4, 8, 8, True)

    def test_accepts_camel_case_names(self, make_session):
        session = make_session()
        session.update_settings(widthTokens=2, fontSize=10)
        assert (session.settings.width_tokens, session.settings.font_size) == (2, 10)

    @pytest.mark.parametrize("field, value, expected", [
        ("width_tokens", 99, 32),
        ("width_tokens", 0, 1),
        ("height_tokens", -3, 1),
        ("height_tokens", "12", 12),
        ("height_tokens", "7.9", 7),
        ("width_tokens", "lots", 1),
        ("font_size", 500, 72),
        ("font_size", 0, 1),
        ("font_size", "big", 16),
    ])
    def test_out_of_range_values_are_clamped(self, make_session, field, value, expected):
        session = make_session()
        result = session.update_settings(**{field: value})
        assert result.accepted is True
        assert getattr(session.settings, field) == expected

    def test_empty_update_is_a_no_op(self, make_session):
        session = make_session()
        before = session.settings
        assert session.update_settings().accepted is True
        assert session.settings == before

    def test_pixel_size_is_fixed(self):
        assert CanvasConfig(pixel_size=10).pixel_size == 32


class TestExportDocument:

    def test_document_mirrors_session(self, make_session):
        session = make_session()
        session.set_text("hello world")
        document = session.to_export_document(exported_at="2024-05-01T12:00:00.000Z")

        assert document.settings == session.settings
        assert document.current_text == "hello world"
        assert [e.text for e in document.text_elements] == ["hello world"]
        assert document.exported_at == "2024-05-01T12:00:00.000Z"

    def test_restore_from_document(self, make_session, fake_metrics):
        session = make_session(char_wrap=True)
        session.set_text("hello")
        restored = CanvasSession.from_export_document(session.to_export_document(), metrics=fake_metrics)

        assert restored.settings == session.settings
        assert restored.current_text == "hello"
        assert restored.session_id != session.session_id

    def test_restore_falls_back_to_element_text(self, make_session, fake_metrics):
        session = make_session()
        session.set_text("from element")
        document = session.to_export_document().model_copy(update={"current_text": ""})
        restored = CanvasSession.from_export_document(document, metrics=fake_metrics)
        assert restored.current_text == "from element"

    def test_iso_timestamp_format(self):
        stamp = iso_timestamp()
        assert stamp.endswith("Z")
        assert len(stamp) == len("2024-05-01T12:00:00.000Z")

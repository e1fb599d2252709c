"""Tests for highlight color styling."""

import pytest

from unearthed.utils.colors import apply_color, resolve_color, unwrap_color


class TestResolveColor:
    def test_known_name_case_insensitive(self):
        assert resolve_color("Yellow") == "#ffd400"

    def test_override_wins(self):
        assert resolve_color("yellow", {"yellow": "#000000"}) == "#000000"

    def test_unknown_or_empty(self):
        assert resolve_color("chartreuse") is None
        assert resolve_color("") is None
        assert resolve_color(None) is None


class TestApplyColor:
    def test_none_mode_unchanged(self):
        assert apply_color("text", "yellow", "none") == "text"

    def test_background_mode(self):
        assert apply_color("text", "yellow", "background") == '<mark style="background: #ffd400">text</mark>'

    def test_text_mode(self):
        assert apply_color("text", "blue", "text") == '<span style="color: #2ea8e5">text</span>'

    def test_unknown_color_unchanged(self):
        assert apply_color("text", "chartreuse", "background") == "text"

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            apply_color("text", "yellow", "glow")


class TestUnwrapColor:
    def test_roundtrip(self):
        assert unwrap_color(apply_color("text", "pink", "background")) == "text"
        assert unwrap_color(apply_color("text", "pink", "text")) == "text"

    def test_first_line_of_multiline_quote(self):
        """Should strip the opening tag when the closing tag is on a later line."""
        assert unwrap_color('<mark style="background: #ffd400">first line') == "first line"

    def test_plain_text_untouched(self):
        assert unwrap_color("plain</mark>") == "plain</mark>"

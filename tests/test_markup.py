"""Tests for inline markup handling."""
from __future__ import annotations

from quiz_whiz.markup import clean_markup, strip_markup


class TestStripMarkup:
    def test_removes_tags(self):
        assert strip_markup("H<sub>2</sub>O <b>is</b> water") == "H2O is water"

    def test_unterminated_tag(self):
        assert strip_markup("a <b") == "a "

    def test_plain_text_untouched(self):
        assert strip_markup("5 > 3") == "5 > 3"


class TestCleanMarkup:
    def test_keeps_allowed(self):
        assert clean_markup("x<sup>2</sup> and <code>y</code>") == "x<sup>2</sup> and <code>y</code>"

    def test_drops_attributes(self):
        assert clean_markup('<span style="color:red" onclick="evil()">hi</span>') == "<span>hi</span>"

    def test_drops_disallowed_tags(self):
        assert clean_markup('<script>alert(1)</script><a href="x">link</a>') == "alert(1)link"

    def test_escapes_text(self):
        assert clean_markup("a &lt; b & c") == "a &lt; b &amp; c"

    def test_closes_open_tags(self):
        assert clean_markup("<b><i>open") == "<b><i>open</i></b>"

    def test_void_tag(self):
        assert clean_markup("one<br/>two<br>three") == "one<br>two<br>three"

    def test_stray_end_tag(self):
        assert clean_markup("text</b>") == "text"

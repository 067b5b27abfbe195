"""Tests for the text buffer and line index."""

import pytest

from livebind.text_buffer import LineIndex, TextBuffer


class TestLineIndex:
    def test_location(self):
        index = LineIndex("ab\ncd\n\nef")
        assert index.location(0) == (1, 1)
        assert index.location(1) == (1, 2)
        assert index.location(3) == (2, 1)
        assert index.location(7) == (4, 1)

    def test_newline_belongs_to_its_line(self):
        index = LineIndex("ab\ncd")
        assert index.line_of(2) == 1

    def test_line_span(self):
        text = "ab\ncd\nlast"
        index = LineIndex(text)
        assert index.line_span(1) == (0, 2)
        start, end = index.line_span(3)
        assert text[start:end] == "last"


class TestTextBuffer:
    def test_replace(self):
        buffer = TextBuffer("x = 120;")
        buffer.replace(4, 3, "95")
        assert buffer.text == "x = 95;"

    def test_replace_at_end(self):
        buffer = TextBuffer("x = 1")
        buffer.replace(4, 1, "10")
        assert buffer.text == "x = 10"

    @pytest.mark.parametrize("start, length", [(-1, 1), (0, 20), (3, -1)])
    def test_replace_out_of_range(self, start, length):
        buffer = TextBuffer("x = 1;")
        with pytest.raises(ValueError):
            buffer.replace(start, length, "2")
        assert buffer.text == "x = 1;"

    def test_line_lookup_follows_edits(self):
        buffer = TextBuffer("a\nb")
        assert buffer.line_lookup(2) == (2, 1)
        buffer.replace(0, 0, "zz\n")
        assert buffer.line_lookup(2) == (1, 3)
        assert buffer.line_lookup(5) == (3, 1)

    def test_change_observers(self):
        buffer = TextBuffer("a")
        seen = []
        disconnect = buffer.on_changed(seen.append)
        buffer.replace(0, 1, "b")
        buffer.text = "c"
        disconnect()
        buffer.text = "d"
        assert seen == ["b", "c"]

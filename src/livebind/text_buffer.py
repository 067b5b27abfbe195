"""Mutable script text with offset -> (line, column) lookup.

``TextBuffer`` stands in for the host editor's document: the binder only
needs ``text``, ``line_lookup`` and ``replace``.  It is not thread-safe;
mutate it from the thread that owns the dispatcher.
"""

from __future__ import annotations

from bisect import bisect_right
from typing import Callable

from livebind.dispatch import Signal


class LineIndex:
    """Start offsets of every line in a text, for 1-based line lookups."""

    def __init__(self, text: str):
        self.line_starts = [0]
        for i, ch in enumerate(text):
            if ch == "\n":
                self.line_starts.append(i + 1)
        self.length = len(text)

    def line_of(self, offset: int) -> int:
        return bisect_right(self.line_starts, offset)

    def location(self, offset: int) -> tuple[int, int]:
        """Return (line, column) for ``offset``, both 1-based."""
        line = self.line_of(offset)
        return line, offset - self.line_starts[line - 1] + 1

    def line_span(self, line: int) -> tuple[int, int]:
        """Return the (start, end) of ``line`` without its newline."""
        start = self.line_starts[line - 1]
        if line < len(self.line_starts):
            end = self.line_starts[line] - 1
        else:
            end = self.length
        return start, end


class TextBuffer:
    """In-memory document with change observers."""

    def __init__(self, text: str = ""):
        self._text = text
        self._index: LineIndex | None = None
        self.changed = Signal()

    @property
    def text(self) -> str:
        return self._text

    @text.setter
    def text(self, value: str) -> None:
        self._text = value
        self._index = None
        self._notify()

    def line_lookup(self, offset: int) -> tuple[int, int]:
        if self._index is None:
            self._index = LineIndex(self._text)
        return self._index.location(offset)

    def replace(self, start: int, length: int, new_text: str) -> None:
        if start < 0 or length < 0 or start + length > len(self._text):
            raise ValueError(
                f"replace({start}, {length}) outside buffer of length {len(self._text)}"
            )
        self._text = self._text[:start] + new_text + self._text[start + length:]
        self._index = None
        self._notify()

    def on_changed(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Register ``callback(text)``; returns a function that unregisters it."""
        return self.changed.connect(callback)

    def _notify(self) -> None:
        self.changed.emit(self._text)

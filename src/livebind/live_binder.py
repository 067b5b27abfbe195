"""Live parameter bindings between script literals and the running engine.

Each binding ties the text span of one numeric literal to an action that
pushes a new value into the engine.  Editing a binding rewrites the literal
in place (keeping its decimal-place style), shifts every later binding by
the length difference, then runs the action.

Invariants:
  1. After an edit changes a span's length by D, every binding that
     started after it moves by exactly D; the edited binding keeps its
     start and ends at start + len(new text).
  2. The text is rewritten before the engine action runs.
  3. The table lock is never held while the text is replaced or an
     engine action runs.
  4. An engine action that finds nothing to act on does nothing.
"""

from __future__ import annotations

import logging
import re
import threading
import uuid
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable

from livebind.analysis_nodes import SourceLocationInfo
from livebind.dispatch import Dispatcher, Signal
from livebind.engine import ENGINE_SETTERS, EngineParameter, Sequencer, set_note_field
from livebind.grammar.literal_scanner import detect_literals
from livebind.text_buffer import TextBuffer

logger = logging.getLogger(__name__)


_NUM = r"\d+(?:\.\d+)?"
_SUFFIX = r"[fFdD]?"
_SIGNED = r"-?\d+(?:\.\d+)?"

RE_TEMPO = [
    re.compile(rf"\b(?:Bpm|Tempo)\s*=\s*(?P<value>{_NUM}{_SUFFIX})"),
    re.compile(rf"\bSet(?:Bpm|Tempo)\s*\(\s*(?P<value>{_NUM}{_SUFFIX})\s*\)"),
]
RE_VELOCITY = re.compile(rf"\bVelocity\s*=\s*(?P<value>\d+{_SUFFIX})")
RE_DURATION = re.compile(rf"\bDuration\s*=\s*(?P<value>{_NUM}{_SUFFIX})")
RE_BEAT = re.compile(rf"\bBeat\s*=\s*(?P<value>{_NUM}{_SUFFIX})")
RE_NOTE = re.compile(rf"\bNote\s*=\s*(?P<value>\d+{_SUFFIX})")
RE_ANNOTATED = re.compile(
    rf"\w+\s*=\s*(?P<value>{_SIGNED}{_SUFFIX})\s*;?\s*//\s*@slider\s*\(\s*"
    rf"(?P<min>{_SIGNED})\s*,\s*(?P<max>{_SIGNED})"
    rf"(?:\s*,\s*(?P<step>{_SIGNED}))?"
    r"(?:\s*,\s*[\"'](?P<label>[^\"']+)[\"'])?\s*\)"
)

# note event field -> (regex, display name, min, max, step)
NOTE_PARAMETERS: dict[str, tuple[re.Pattern[str], str, float, float, float]] = {
    "velocity": (RE_VELOCITY, "Velocity", 0, 127, 1),
    "duration": (RE_DURATION, "Duration", 0.0625, 4.0, 0.0625),
    "beat": (RE_BEAT, "Beat Position", 0, 16, 0.25),
    "note": (RE_NOTE, "MIDI Note", 0, 127, 1),
}


@dataclass
class LiveParameterBinding:
    """An editable literal and the engine action behind it."""
    name: str
    parameter_type: str      # "bpm", "velocity", "duration", "beat", "note", "custom"
    value: float
    min_value: float
    max_value: float
    step: float
    source_start: int
    source_end: int
    original_text: str
    on_value_changed: Callable[[float], None] | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def span(self) -> tuple[int, int]:
        return (self.source_start, self.source_end)

    def contains(self, offset: int) -> bool:
        return self.source_start <= offset <= self.source_end

    def as_record(self) -> dict[str, Any]:
        """Plain-data view for slider widgets."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.parameter_type,
            "span": self.span,
            "value": self.value,
            "min": self.min_value,
            "max": self.max_value,
            "step": self.step,
        }


@dataclass
class ParameterChange:
    binding_id: str
    name: str
    old_value: float
    new_value: float
    source: SourceLocationInfo


@dataclass
class BindWarning:
    """A diagnostic recorded while binding or applying a value."""
    category: str           # e.g. "stale_span", "replace_failed"
    message: str
    offset: int | None = None

    def __str__(self) -> str:
        loc = f"@{self.offset} " if self.offset is not None else ""
        return f"[{self.category}] {loc}{self.message}"


def format_value(value: float, original_text: str) -> str:
    """Render ``value`` like ``original_text``: same decimal places, or integer.

    Without a decimal point the value is truncated toward zero.  An
    ``f``/``d`` suffix is carried over.
    """
    body = original_text.rstrip("fFdD")
    suffix = original_text[len(body):]
    if "." in body:
        decimals = len(body) - body.index(".") - 1
        return f"{value:.{decimals}f}{suffix}"
    return f"{int(value)}{suffix}"


class LiveParameterBinder:
    """Owns the binding table for one text buffer."""

    def __init__(self, buffer: TextBuffer, sequencer: Sequencer | None = None,
                 dispatcher: Dispatcher | None = None,
                 tempo_range: tuple[float, float] = (20.0, 300.0)):
        self._buffer = buffer
        self._tempo_range = tempo_range
        self._sequencer = sequencer
        self._dispatcher = dispatcher or Dispatcher()
        self._bindings: dict[str, LiveParameterBinding] = {}
        self._lock = threading.Lock()
        self._active = False
        self._last_text: str | None = None

        self.warnings: list[BindWarning] = []
        self.errors: list[str] = []
        self.parameter_changed = Signal()   # handler(ParameterChange)
        self.bindings_updated = Signal()    # handler()

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    @property
    def bindings(self) -> list[LiveParameterBinding]:
        with self._lock:
            return sorted(self._bindings.values(), key=lambda b: b.source_start)

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def sequencer(self) -> Sequencer | None:
        return self._sequencer

    def bind_to_sequencer(self, sequencer: Sequencer) -> None:
        self._sequencer = sequencer

    def unbind_sequencer(self) -> None:
        self._sequencer = None

    def start(self) -> None:
        """Begin tracking; rebinds against the current buffer text."""
        if not self._dispatcher.check_access():
            self._dispatcher.post(self.start)
            return
        self._active = True
        self._last_text = None
        self.analyze_and_bind(self._buffer.text)

    def stop(self) -> None:
        if not self._dispatcher.check_access():
            self._dispatcher.post(self.stop)
            return
        self._active = False
        self._last_text = None
        with self._lock:
            self._bindings.clear()

    def close(self) -> None:
        self.stop()
        self.unbind_sequencer()

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def analyze_and_bind(self, text: str | None = None) -> None:
        """Rebuild the binding table from ``text`` (default: the buffer).

        Does nothing when the text equals the last analyzed text.
        """
        if not self._dispatcher.check_access():
            self._dispatcher.post(self.analyze_and_bind, text)
            return
        if text is None:
            text = self._buffer.text
        if text == self._last_text:
            return
        self._last_text = text

        errors: list[str] = []
        table: dict[str, LiveParameterBinding] = {}
        try:
            literal_spans = {lit.span for lit in detect_literals(text, errors)}
            self._find_tempo(text, literal_spans, table)
            for ptype in NOTE_PARAMETERS:
                self._find_note_parameter(text, ptype, literal_spans, table)
            self._find_annotated(text, literal_spans, table)
        except Exception as e:
            logger.warning("Parameter binding failed: %s", e)
            errors.append(f"Binding error: {e}")

        with self._lock:
            self._bindings = table
        self.errors = errors
        logger.debug("Bound %d live parameters", len(table))
        self.bindings_updated.emit()

    def _find_tempo(self, text: str, literal_spans: set[tuple[int, int]],
                    table: dict[str, LiveParameterBinding]) -> None:
        for regex in RE_TEMPO:
            for m in regex.finditer(text):
                self._add(table, literal_spans, m, "bpm", "BPM", *self._tempo_range, 1,
                          partial(self._set_engine_parameter, EngineParameter.BPM))

    def _find_note_parameter(self, text: str, ptype: str,
                             literal_spans: set[tuple[int, int]],
                             table: dict[str, LiveParameterBinding]) -> None:
        regex, name, lo, hi, step = NOTE_PARAMETERS[ptype]
        for m in regex.finditer(text):
            # Resolved against the statement offset at write time
            action = partial(self._update_note_event, m.start(), ptype)
            self._add(table, literal_spans, m, ptype, name, lo, hi, step, action)

    def _find_annotated(self, text: str, literal_spans: set[tuple[int, int]],
                        table: dict[str, LiveParameterBinding]) -> None:
        for m in RE_ANNOTATED.finditer(text):
            lo = float(m.group("min"))
            hi = float(m.group("max"))
            step = float(m.group("step")) if m.group("step") else 1.0
            if step <= 0:
                step = 1.0
            label = m.group("label") or "Parameter"

            existing = _binding_at_span(table, m.span("value"))
            if existing is not None:
                # Declared range wins over the built-in one
                existing.min_value, existing.max_value, existing.step = lo, hi, step
                continue
            self._add(table, literal_spans, m, "custom", label, lo, hi, step, None)

    def _add(self, table: dict[str, LiveParameterBinding],
             literal_spans: set[tuple[int, int]], m: re.Match[str],
             ptype: str, name: str, lo: float, hi: float, step: float,
             action: Callable[[float], None] | None) -> None:
        span = m.span("value")
        if span not in literal_spans:
            # In a string or comment
            return
        binding = LiveParameterBinding(
            name=name,
            parameter_type=ptype,
            value=float(m.group("value").rstrip("fFdD")),
            min_value=lo,
            max_value=hi,
            step=step,
            source_start=span[0],
            source_end=span[1],
            original_text=m.group("value"),
            on_value_changed=action,
        )
        table[binding.id] = binding

    # ------------------------------------------------------------------
    # Value updates
    # ------------------------------------------------------------------

    def update_parameter(self, binding_id: str, new_value: float) -> bool:
        """Write ``new_value`` into the script and the engine.

        Returns:
            True if the binding exists (or the call was queued for the
            owning thread)
        """
        if not self._dispatcher.check_access():
            self._dispatcher.post(self.update_parameter, binding_id, new_value)
            return True

        with self._lock:
            binding = self._bindings.get(binding_id)
            if binding is None:
                return False
            old_value = binding.value
            old_start, old_end = binding.span
            expected = binding.original_text
            binding.value = max(binding.min_value, min(binding.max_value, new_value))
            value = binding.value

        new_text = format_value(value, expected)
        if self._replace_text(old_start, old_end, expected, new_text):
            delta = len(new_text) - (old_end - old_start)
            with self._lock:
                binding.source_end = old_start + len(new_text)
                binding.original_text = new_text
                for other in self._bindings.values():
                    if other is not binding and other.source_start > old_start:
                        other.source_start += delta
                        other.source_end += delta

        if binding.on_value_changed is not None:
            try:
                binding.on_value_changed(value)
            except Exception as e:
                logger.warning("Engine update for %s failed: %s", binding.name, e)
                self.warnings.append(BindWarning("engine_update_failed", str(e), old_start))

        line, column = self._buffer.line_lookup(old_start)
        self.parameter_changed.emit(ParameterChange(
            binding_id=binding.id,
            name=binding.name,
            old_value=old_value,
            new_value=value,
            source=SourceLocationInfo(old_start, old_end, line, column),
        ))
        return True

    def update_parameter_at_offset(self, offset: int, new_value: float) -> bool:
        """Update the binding whose span touches ``offset``."""
        if not self._dispatcher.check_access():
            self._dispatcher.post(self.update_parameter_at_offset, offset, new_value)
            return True
        binding = self.binding_at_offset(offset)
        if binding is None:
            return False
        return self.update_parameter(binding.id, new_value)

    def binding_at_offset(self, offset: int) -> LiveParameterBinding | None:
        with self._lock:
            for b in self._bindings.values():
                if b.contains(offset):
                    return b
        return None

    def _replace_text(self, start: int, end: int, expected: str, new_text: str) -> bool:
        before = self._buffer.text
        if before[start:end] != expected:
            self.warnings.append(BindWarning(
                "stale_span",
                f"expected {expected!r}, found {before[start:end]!r}; text left unchanged",
                start,
            ))
            return False
        try:
            self._buffer.replace(start, end - start, new_text)
        except Exception as e:
            logger.warning("Text replace at %d failed: %s", start, e)
            self.warnings.append(BindWarning("replace_failed", str(e), start))
            return False
        if self._last_text == before:
            # Our own edit; the table already reflects it
            self._last_text = self._buffer.text
        return True

    # ------------------------------------------------------------------
    # Engine actions
    # ------------------------------------------------------------------

    def _set_engine_parameter(self, parameter: EngineParameter, value: float) -> None:
        if self._sequencer is None:
            return
        ENGINE_SETTERS[parameter](self._sequencer, value)

    def _update_note_event(self, code_offset: int, field_name: str, value: float) -> None:
        if self._sequencer is None:
            return
        for pattern in self._sequencer.patterns:
            for event in pattern.events:
                info = event.source_info
                if info is not None and info.contains(code_offset):
                    set_note_field(event, field_name, value)
                    return
        logger.debug("No live note event at offset %d", code_offset)


def _binding_at_span(table: dict[str, LiveParameterBinding],
                     span: tuple[int, int]) -> LiveParameterBinding | None:
    for b in table.values():
        if b.span == span:
            return b
    return None

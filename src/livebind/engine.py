"""Live engine objects the binder talks to.

The playback engine proper lives elsewhere; these are the shapes the
analyzer and the binder rely on: patterns holding note events, and a
sequencer with a tempo and a list of patterns.  Any engine exposing the
same attributes works.

Engine-level parameters are set through ``ENGINE_SETTERS``, a table keyed
by ``EngineParameter``, so the binder never looks attributes up by name.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from livebind.analysis_nodes import SourceLocationInfo


@dataclass
class NoteEvent:
    note: int
    beat: float = 0.0
    velocity: int = 100
    duration: float = 0.25
    source_info: SourceLocationInfo | None = None


@dataclass
class Pattern:
    name: str = ""
    instrument_name: str = ""
    events: list[NoteEvent] = field(default_factory=list)
    loop_length: float = 4.0
    source_info: SourceLocationInfo | None = None


class Sequencer:
    """Holds the running patterns and the transport tempo."""

    MIN_BPM = 1.0
    MAX_BPM = 999.0

    def __init__(self, bpm: float = 120.0):
        self._bpm = bpm
        self._patterns: list[Pattern] = []
        self._lock = threading.Lock()

    @property
    def bpm(self) -> float:
        return self._bpm

    @bpm.setter
    def bpm(self, value: float) -> None:
        self._bpm = max(self.MIN_BPM, min(self.MAX_BPM, float(value)))

    @property
    def patterns(self) -> list[Pattern]:
        with self._lock:
            return list(self._patterns)

    def add_pattern(self, pattern: Pattern) -> None:
        with self._lock:
            self._patterns.append(pattern)

    def remove_pattern(self, pattern: Pattern) -> None:
        with self._lock:
            if pattern in self._patterns:
                self._patterns.remove(pattern)

    def clear_patterns(self) -> None:
        with self._lock:
            self._patterns.clear()


class EngineParameter(Enum):
    BPM = "bpm"


def _set_bpm(sequencer: Sequencer, value: float) -> None:
    sequencer.bpm = value


ENGINE_SETTERS: dict[EngineParameter, Callable[[Sequencer, float], None]] = {
    EngineParameter.BPM: _set_bpm,
}


# Note event fields the binder may write, with their value types
NOTE_FIELDS: dict[str, type] = {
    "velocity": int,
    "duration": float,
    "beat": float,
    "note": int,
}


def set_note_field(event: NoteEvent, name: str, value: float) -> None:
    """Write one of ``NOTE_FIELDS`` on a live note event.

    Integer fields truncate toward zero.
    """
    setattr(event, name, NOTE_FIELDS[name](value))

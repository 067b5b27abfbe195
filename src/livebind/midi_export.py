"""Render analyzed note patterns to a Standard MIDI File with mido.

MIDI structure: type 1, track 0 = tempo meta, track N = one per pattern
definition, named after its instrument.  Note definitions without a
velocity or duration get ``DEFAULT_VELOCITY`` / ``DEFAULT_DURATION``.
"""

from __future__ import annotations

from pathlib import Path

import mido

from livebind.analysis_nodes import CodeAnalysisResult, PatternDefinition

DEFAULT_TICKS_PER_BEAT = 480
DEFAULT_VELOCITY = 100
DEFAULT_DURATION = 0.25   # beats


def analysis_to_midi(result: CodeAnalysisResult, path: str | Path, bpm: float = 120.0,
                     ticks_per_beat: int = DEFAULT_TICKS_PER_BEAT) -> Path:
    """Write every pattern of ``result`` to ``path``.

    Returns:
        The written path
    """
    if bpm <= 0:
        raise ValueError(f"bpm must be positive, got {bpm}")
    path = Path(path)

    mid = mido.MidiFile(type=1, ticks_per_beat=ticks_per_beat)
    meta = mido.MidiTrack()
    meta.append(mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(bpm), time=0))
    meta.append(mido.MetaMessage("end_of_track", time=0))
    mid.tracks.append(meta)

    for channel, pattern in enumerate(result.patterns):
        mid.tracks.append(_pattern_track(pattern, channel % 16, ticks_per_beat))

    path.parent.mkdir(parents=True, exist_ok=True)
    mid.save(str(path))
    return path


def _pattern_track(pattern: PatternDefinition, channel: int, ticks_per_beat: int) -> mido.MidiTrack:
    track = mido.MidiTrack()
    track.append(mido.MetaMessage("track_name", name=pattern.instrument_name, time=0))

    # (abs_tick, order, message); note_off sorts before note_on at equal ticks
    events: list[tuple[int, int, mido.Message]] = []
    for note in pattern.notes:
        velocity = note.velocity or DEFAULT_VELOCITY
        duration = note.duration if note.duration > 0 else DEFAULT_DURATION
        start = round(note.beat * ticks_per_beat)
        end = start + max(1, round(duration * ticks_per_beat))
        pitch = max(0, min(127, note.note))
        events.append((start, 1, mido.Message(
            "note_on", note=pitch, velocity=max(1, min(127, velocity)), channel=channel)))
        events.append((end, 0, mido.Message(
            "note_off", note=pitch, velocity=0, channel=channel)))

    events.sort(key=lambda e: (e[0], e[1]))
    last = 0
    for tick, _, msg in events:
        track.append(msg.copy(time=tick - last))
        last = tick
    track.append(mido.MetaMessage("end_of_track", time=0))
    return track


def read_midi_notes(path: str | Path) -> list[tuple[str, float, int, int]]:
    """Read back ``(track_name, beat, note, velocity)`` for every note-on."""
    mid = mido.MidiFile(str(path))
    notes = []
    for track in mid.tracks:
        name = ""
        abs_tick = 0
        for msg in track:
            abs_tick += msg.time
            if msg.type == "track_name":
                name = msg.name
            elif msg.type == "note_on" and msg.velocity > 0:
                notes.append((name, abs_tick / mid.ticks_per_beat, msg.note, msg.velocity))
    return notes

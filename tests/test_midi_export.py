"""Tests for MIDI export of analyzed patterns."""

from pathlib import Path

import mido
import pytest

from livebind.grammar.structure import analyze
from livebind.midi_export import analysis_to_midi, read_midi_notes

GOLDEN_DIR = Path(__file__).parent / "golden"


def _export(text, tmp_path, **kwargs):
    return analysis_to_midi(analyze(text), tmp_path / "out.mid", **kwargs)


class TestMidiExport:
    def test_demo_notes(self, tmp_path):
        text = (GOLDEN_DIR / "demo_song.csx").read_text(encoding="utf-8")
        path = _export(text, tmp_path)
        assert read_midi_notes(path) == [
            ("Lead", 0.0, 60, 100),
            ("Lead", 1.0, 64, 90),
            ("Lead", 2.0, 67, 80),
            ("Diva", 0.0, 48, 70),
        ]

    def test_track_layout(self, tmp_path):
        text = (GOLDEN_DIR / "demo_song.csx").read_text(encoding="utf-8")
        mid = mido.MidiFile(str(_export(text, tmp_path, bpm=90)))
        assert mid.type == 1
        assert len(mid.tracks) == 3
        tempos = [msg.tempo for msg in mid.tracks[0] if msg.type == "set_tempo"]
        assert tempos == [mido.bpm2tempo(90)]
        channels = {msg.channel for msg in mid.tracks[2] if msg.type == "note_on"}
        assert channels == {1}

    def test_default_velocity_and_duration(self, tmp_path):
        text = (
            "var s = CreateSynth();\n"
            "var p = CreatePattern(s);\n"
            "p.Events.Add(new NoteEvent { Beat = 1, Note = 60 });\n"
        )
        path = _export(text, tmp_path)
        assert read_midi_notes(path) == [("s", 1.0, 60, 100)]
        track = mido.MidiFile(str(path)).tracks[1]
        note_off = next(msg for msg in track if msg.type == "note_off")
        assert note_off.time == 120

    def test_note_off_before_note_on_at_same_tick(self, tmp_path):
        text = (
            "var s = CreateSynth();\n"
            "var p = CreatePattern(s);\n"
            "p.Events.Add(new NoteEvent { Beat = 0, Note = 60, Duration = 1 });\n"
            "p.Events.Add(new NoteEvent { Beat = 1, Note = 60, Duration = 1 });\n"
        )
        track = mido.MidiFile(str(_export(text, tmp_path))).tracks[1]
        kinds = [msg.type for msg in track if msg.type in ("note_on", "note_off")]
        assert kinds == ["note_on", "note_off", "note_on", "note_off"]

    def test_creates_parent_dirs(self, tmp_path):
        path = analysis_to_midi(analyze(""), tmp_path / "nested" / "empty.mid")
        assert path.exists()
        assert read_midi_notes(path) == []

    def test_bad_bpm(self, tmp_path):
        with pytest.raises(ValueError):
            _export("", tmp_path, bpm=0)

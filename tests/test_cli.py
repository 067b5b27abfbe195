"""Tests for the livebind command line."""

import json
from pathlib import Path

import pytest

from livebind.cli import main
from livebind.midi_export import read_midi_notes

GOLDEN_DIR = Path(__file__).parent / "golden"
DEMO = GOLDEN_DIR / "demo_song.csx"


def _bpm_offset():
    text = DEMO.read_text(encoding="utf-8")
    return text.index("Bpm = 120") + len("Bpm = ")


class TestCli:
    def test_structure_is_default(self, capsys):
        main([str(DEMO)])
        out = capsys.readouterr().out
        assert out.startswith("Instruments: 2")
        assert "Patterns: 2" in out

    def test_literals(self, capsys):
        main([str(DEMO), "--literals"])
        out = capsys.readouterr().out
        assert "BPM" in out
        assert "Cutoff" in out
        assert "Instruments:" not in out

    def test_bindings(self, capsys):
        main([str(DEMO), "--bindings"])
        out = capsys.readouterr().out
        assert "BPM" in out
        assert "MIDI Note" in out
        assert "Cutoff" in out

    def test_validate(self, capsys):
        main([str(DEMO), "--validate"])
        assert "No warnings." in capsys.readouterr().out

    def test_set_prints_edited_script(self, capsys):
        main([str(DEMO), "--set", f"{_bpm_offset()}=128"])
        out = capsys.readouterr().out
        assert "Sequencer.Bpm = 128;" in out
        assert 'Print("Playing at 120 BPM");' in out

    def test_set_to_file(self, tmp_path):
        out_path = tmp_path / "edited.csx"
        main([str(DEMO), "--set", f"{_bpm_offset()}=90", "-o", str(out_path)])
        assert "Sequencer.Bpm = 90;" in out_path.read_text(encoding="utf-8")

    def test_set_uses_settings_tempo_range(self, tmp_path, capsys):
        settings = tmp_path / "live.livebind.json"
        settings.write_text(json.dumps({"TempoMax": 100}), encoding="utf-8")
        main([str(DEMO), "--settings", str(settings), "--set", f"{_bpm_offset()}=128"])
        assert "Sequencer.Bpm = 100;" in capsys.readouterr().out

    def test_set_miss_warns(self, capsys):
        main([str(DEMO), "--set", "0=5"])
        captured = capsys.readouterr()
        assert "no bound parameter at offset 0" in captured.err
        assert captured.out == DEMO.read_text(encoding="utf-8")

    def test_bad_set_value(self):
        with pytest.raises(SystemExit) as exc:
            main([str(DEMO), "--set", "nonsense"])
        assert exc.value.code == 1

    def test_export_midi(self, tmp_path):
        out_path = tmp_path / "demo.mid"
        main([str(DEMO), "--export-midi", str(out_path), "--bpm", "100"])
        assert len(read_midi_notes(out_path)) == 4

    def test_missing_file(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc:
            main([str(tmp_path / "nope.csx")])
        assert exc.value.code == 1
        assert "file not found" in capsys.readouterr().err

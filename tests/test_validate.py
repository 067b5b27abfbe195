"""Tests for structural validation of analysis results."""

from pathlib import Path

from livebind.grammar.structure import analyze
from livebind.grammar.validate import collect_instrument_names, validate_analysis

GOLDEN_DIR = Path(__file__).parent / "golden"


class TestValidate:
    def test_demo_is_clean(self):
        text = (GOLDEN_DIR / "demo_song.csx").read_text(encoding="utf-8")
        result = analyze(text)
        assert validate_analysis(result) == []
        assert collect_instrument_names(result) == {"Lead", "Diva"}

    def test_warnings(self):
        text = (
            "var s = CreateSynth();\n"
            "var s = CreateSynth();\n"
            "var p = CreatePattern(ghost);\n"
            "var q = CreatePattern(s);\n"
            "q.Events.Add(new NoteEvent { Beat = 0, Note = 200, Velocity = 300 });\n"
        )
        assert validate_analysis(analyze(text)) == [
            "Variable 's' is assigned 2 times",
            "Pattern 'p' (line 3) uses unknown instrument 'ghost'",
            "Pattern 'p' (line 3) has no note events",
            "Note at line 5: note 200 outside MIDI range 0-127",
            "Note at line 5: velocity 300 outside MIDI range 0-127",
        ]

    def test_pattern_on_variable_name(self):
        text = "var s = CreateSynth();\nvar p = CreatePattern(s);\np.Events.Add(new NoteEvent { Note = 60 });"
        assert validate_analysis(analyze(text)) == []

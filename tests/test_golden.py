"""Golden tests: compare CLI structure listings against expected files."""

from pathlib import Path

from livebind.cli import main

GOLDEN_DIR = Path(__file__).parent / "golden"


def _run_golden(name: str, capsys):
    """Run a golden test for a given script."""
    script_path = GOLDEN_DIR / f"{name}.csx"
    expected_path = GOLDEN_DIR / f"{name}.expected.txt"

    assert script_path.exists(), f"Missing input: {script_path}"
    assert expected_path.exists(), f"Missing expected: {expected_path}"

    main([str(script_path)])
    actual = capsys.readouterr().out
    expected = expected_path.read_text(encoding="utf-8")

    assert actual == expected, (
        f"Golden test failed for {name}.\n"
        f"Expected length: {len(expected)}, actual: {len(actual)}.\n"
        f"First difference at char {_first_diff(expected, actual)}."
    )


def _first_diff(a: str, b: str) -> int:
    for i, (ca, cb) in enumerate(zip(a, b)):
        if ca != cb:
            return i
    return min(len(a), len(b))


class TestGolden:
    def test_demo_song(self, capsys):
        _run_golden("demo_song", capsys)

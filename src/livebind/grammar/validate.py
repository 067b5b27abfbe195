"""Structural checks over an analysis result.

The analyzer itself never judges what it finds; this module reports the
suspicious shapes an editor may want to surface (dangling instrument
variables, empty patterns, shadowed names, out-of-range MIDI values).
"""

from __future__ import annotations

from collections import Counter

from livebind.analysis_nodes import CodeAnalysisResult, PatternDefinition


def validate_analysis(result: CodeAnalysisResult) -> list[str]:
    """Validate an analysis result for structural consistency.

    Returns a list of warning messages (empty if nothing stands out).
    """
    warnings: list[str] = []

    known_names = collect_instrument_names(result)
    known_vars = {inst.variable_name for inst in result.instruments}

    counts = Counter(inst.variable_name for inst in result.instruments)
    counts.update(p.variable_name for p in result.patterns)
    for var, n in sorted(counts.items()):
        if n > 1:
            warnings.append(f"Variable '{var}' is assigned {n} times")

    for pattern in result.patterns:
        where = f"Pattern '{pattern.variable_name}' (line {pattern.line})"
        if pattern.instrument_name not in known_names and pattern.instrument_name not in known_vars:
            warnings.append(f"{where} uses unknown instrument '{pattern.instrument_name}'")
        if not pattern.notes:
            warnings.append(f"{where} has no note events")
        _validate_notes(pattern, warnings)

    return warnings


def _validate_notes(pattern: PatternDefinition, warnings: list[str]) -> None:
    for note in pattern.notes:
        where = f"Note at line {note.line}"
        if not 0 <= note.note <= 127:
            warnings.append(f"{where}: note {note.note} outside MIDI range 0-127")
        if not 0 <= note.velocity <= 127:
            warnings.append(f"{where}: velocity {note.velocity} outside MIDI range 0-127")


def collect_instrument_names(result: CodeAnalysisResult) -> set[str]:
    """Collect the display names of all discovered instruments."""
    return {inst.name for inst in result.instruments}

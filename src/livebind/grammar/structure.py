"""Structure analyzer: instruments, patterns and note events in a script.

Works on raw text with targeted regexes, in this order:
1. Instrument constructions (``lead = CreateSynth();``) and plugin loads
   (``pad = vst.load("Diva");``)
2. Pattern constructions bound to an instrument variable
3. Note events, either added to a pattern's event list or free-standing
   near a pattern definition
4. Every later reference to each instrument / pattern variable
5. Per-instrument code regions for highlighting

After the script has run, ``attach_source_info`` re-analyzes the text and
hangs a SourceLocationInfo on each live pattern and note event it can
match, by instrument name and (beat, note) pairs.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

from livebind.analysis_nodes import (
    CodeAnalysisResult, InstrumentDefinition, PatternDefinition,
    NoteDefinition, SourceLocationInfo,
)
from livebind.text_buffer import LineIndex

logger = logging.getLogger(__name__)


# ---------- Regex patterns ----------

# Construction call name -> instrument type
INSTRUMENT_CONSTRUCTORS: dict[str, str] = {
    "SimpleSynth": "SimpleSynth",
    "CreateSynth": "SimpleSynth",
    "Sampler": "Sampler",
    "CreateSampler": "Sampler",
}

PLUGIN_INSTRUMENT_TYPE = "VstPlugin"

RE_INSTRUMENT = re.compile(
    r"(?P<var>\w+)\s*=\s*(?:new\s+)?"
    r"(?P<type>" + "|".join(INSTRUMENT_CONSTRUCTORS) + r")\s*\(\s*\)"
)
RE_PLUGIN_LOAD = re.compile(
    r"(?P<var>\w+)\s*=\s*(?:vst\.load|LoadVst)\s*\(\s*[\"'](?P<name>[^\"']+)[\"']\s*\)"
)
RE_PATTERN = re.compile(
    r"(?P<var>\w+)\s*=\s*(?:new\s+Pattern|CreatePattern)\s*\(\s*(?P<inst>\w+)\s*\)"
)
RE_PATTERN_NOTE = re.compile(
    r"(?P<pattern>\w+)\.Events\.Add\s*\(\s*new\s+NoteEvent\s*\{(?P<props>[^}]+)\}\s*\)"
)
RE_NOTE_EVENT = re.compile(r"new\s+NoteEvent\s*\{\s*(?P<props>[^}]+)\}")

# Note properties
RE_PROP_BEAT = re.compile(r"Beat\s*=\s*([\d.]+)")
RE_PROP_NOTE = re.compile(r"Note\s*=\s*(\d+)")
RE_PROP_VELOCITY = re.compile(r"Velocity\s*=\s*(\d+)")
RE_PROP_DURATION = re.compile(r"Duration\s*=\s*([\d.]+)")

# Characters after a pattern definition within which a free-standing
# note event is attributed to it
NOTE_PROXIMITY_WINDOW = 2000

BEAT_TOLERANCE = 1e-3


def analyze(text: str, proximity: int = NOTE_PROXIMITY_WINDOW) -> CodeAnalysisResult:
    """Analyze script text and return its instruments and patterns.

    Never raises: a failure part-way is recorded in ``result.errors`` and
    whatever was found until then is returned.
    """
    result = CodeAnalysisResult()
    try:
        index = LineIndex(text)
        _find_instruments(text, index, result)
        _find_plugins(text, index, result)
        _find_patterns(text, index, result)
        _find_note_events(text, index, result, proximity)
        _find_references(text, result)
        _build_code_regions(result)
    except Exception as e:
        logger.warning("Structure analysis failed: %s", e)
        result.errors.append(f"Analysis error: {e}")
    return result


def _find_instruments(text: str, index: LineIndex, result: CodeAnalysisResult) -> None:
    for m in RE_INSTRUMENT.finditer(text):
        var = m.group("var")
        line, column = index.location(m.start())
        inst = InstrumentDefinition(
            name=var,
            variable_name=var,
            instrument_type=INSTRUMENT_CONSTRUCTORS[m.group("type")],
            definition_start=m.start(),
            definition_end=m.end(),
            line=line,
            column=column,
        )

        # Display name from a later var.Name = "..." or var.SetName("...")
        name_re = re.compile(
            rf"\b{re.escape(var)}\s*\.\s*(?:Name\s*=|SetName\s*\()\s*[\"']([^\"']+)[\"']"
        )
        nm = name_re.search(text, m.start())
        if nm:
            inst.name = nm.group(1)

        result.instruments.append(inst)


def _find_plugins(text: str, index: LineIndex, result: CodeAnalysisResult) -> None:
    for m in RE_PLUGIN_LOAD.finditer(text):
        line, column = index.location(m.start())
        result.instruments.append(InstrumentDefinition(
            name=m.group("name"),
            variable_name=m.group("var"),
            instrument_type=PLUGIN_INSTRUMENT_TYPE,
            definition_start=m.start(),
            definition_end=m.end(),
            line=line,
            column=column,
        ))


def _find_patterns(text: str, index: LineIndex, result: CodeAnalysisResult) -> None:
    for m in RE_PATTERN.finditer(text):
        inst_var = m.group("inst")
        pattern = PatternDefinition(
            variable_name=m.group("var"),
            instrument_name=inst_var,
            definition_start=m.start(),
            definition_end=m.end(),
            line=index.line_of(m.start()),
        )
        inst = result.find_instrument(inst_var)
        if inst is not None:
            pattern.instrument_name = inst.name
        result.patterns.append(pattern)


def _find_note_events(text: str, index: LineIndex, result: CodeAnalysisResult,
                      proximity: int) -> None:
    # Events added to a named pattern
    for m in RE_PATTERN_NOTE.finditer(text):
        pattern = result.find_pattern(m.group("pattern"))
        if pattern is None:
            continue
        note = parse_note_event(m.group("props"), m.start(), m.end(), index)
        if note is not None:
            pattern.notes.append(note)

    # Free-standing events close after a pattern definition
    for m in RE_NOTE_EVENT.finditer(text):
        note = parse_note_event(m.group("props"), m.start(), m.end(), index)
        if note is None or any(_covers(p, note) for p in result.patterns):
            continue
        for pattern in result.patterns:
            if pattern.definition_start < m.start() < pattern.definition_start + proximity:
                pattern.notes.append(note)
                break


def _covers(pattern: PatternDefinition, note: NoteDefinition) -> bool:
    """True if the pattern already holds a note at or around this source span."""
    return any(
        n.source_start <= note.source_start and note.source_end <= n.source_end
        for n in pattern.notes
    )


def parse_note_event(props: str, start: int, end: int, index: LineIndex) -> NoteDefinition | None:
    """Parse the ``{ Beat = ..., Note = ... }`` body of a note event.

    Returns None when the event has no positive note number.
    """
    line, column = index.location(start)
    note = NoteDefinition(
        source_start=start,
        source_end=end,
        line=line,
        column=column,
        raw_text=props.strip(),
    )

    m = RE_PROP_BEAT.search(props)
    if m:
        note.beat = float(m.group(1))
    m = RE_PROP_NOTE.search(props)
    if m:
        note.note = int(m.group(1))
    m = RE_PROP_VELOCITY.search(props)
    if m:
        note.velocity = int(m.group(1))
    m = RE_PROP_DURATION.search(props)
    if m:
        note.duration = float(m.group(1))

    return note if note.note > 0 else None


def _find_references(text: str, result: CodeAnalysisResult) -> None:
    for inst in result.instruments:
        inst.references.extend(_token_spans(text, inst.variable_name))
    for pattern in result.patterns:
        pattern.references.extend(_token_spans(text, pattern.variable_name))


def _token_spans(text: str, name: str) -> list[tuple[int, int]]:
    return [m.span() for m in re.finditer(rf"\b{re.escape(name)}\b", text)]


def _build_code_regions(result: CodeAnalysisResult) -> None:
    regions = result.instrument_code_regions
    for inst in result.instruments:
        spans = regions.setdefault(inst.name, [])
        spans.append(inst.span)
        spans.extend(inst.references)

    for pattern in result.patterns:
        spans = regions.setdefault(pattern.instrument_name, [])
        spans.append(pattern.span)
        spans.extend(n.span for n in pattern.notes)


# ---------- Live object attachment ----------

def attach_source_info(text: str, patterns: Iterable, proximity: int = NOTE_PROXIMITY_WINDOW,
                       tolerance: float = BEAT_TOLERANCE) -> CodeAnalysisResult:
    """Attach SourceLocationInfo to live patterns and their note events.

    ``patterns`` are engine objects exposing ``name``, ``instrument_name``,
    ``events`` and a writable ``source_info``; each event exposes ``beat``,
    ``note`` and a writable ``source_info``.  Objects with no matching
    definition are left untouched.

    Returns the analysis used for the matching.
    """
    analysis = analyze(text, proximity)
    try:
        for live in patterns:
            pattern_def = _match_pattern(analysis, live)
            if pattern_def is None:
                continue

            live.source_info = SourceLocationInfo(
                start_offset=pattern_def.definition_start,
                end_offset=pattern_def.definition_end,
                start_line=pattern_def.line,
                instrument_name=live.instrument_name,
            )

            for event in live.events:
                note_def = _match_note(pattern_def.notes, event.beat, event.note, tolerance)
                if note_def is not None:
                    event.source_info = note_source_info(note_def, live.instrument_name)
    except Exception as e:
        logger.warning("Attaching source info failed: %s", e)
        analysis.errors.append(f"Attach error: {e}")
    return analysis


def _match_pattern(analysis: CodeAnalysisResult, live) -> PatternDefinition | None:
    for p in analysis.patterns:
        if p.instrument_name == live.instrument_name or p.instrument_name == live.name:
            return p
    return None


def _match_note(notes: list[NoteDefinition], beat: float, note: int,
                tolerance: float) -> NoteDefinition | None:
    for n in notes:
        if abs(n.beat - beat) < tolerance and n.note == note:
            return n
    return None


def note_source_info(note: NoteDefinition, instrument_name: str) -> SourceLocationInfo:
    return SourceLocationInfo(
        start_offset=note.source_start,
        end_offset=note.source_end,
        start_line=note.line,
        start_column=note.column,
        source_text=note.raw_text,
        instrument_name=instrument_name,
    )


def get_source_info_for_note(text: str, note: int, beat: float,
                             instrument_name: str | None = None) -> SourceLocationInfo | None:
    """Locate a single note event in the script without live objects."""
    analysis = analyze(text)
    for pattern in analysis.patterns:
        if instrument_name is not None and pattern.instrument_name != instrument_name:
            continue
        match = _match_note(pattern.notes, beat, note, BEAT_TOLERANCE)
        if match is not None:
            return note_source_info(match, pattern.instrument_name)
    return None

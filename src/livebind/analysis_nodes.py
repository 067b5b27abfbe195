"""Record types produced by the literal scanner and the structure analyzer.

Spans are half-open ``(start, end)`` character offsets into the script text.
Lines and columns are 1-based.
"""

from __future__ import annotations

from dataclasses import dataclass, field


Span = tuple[int, int]


# --- Literal scanner ---

@dataclass
class SliderConfig:
    min_value: float
    max_value: float
    step: float = 1.0
    label: str | None = None

    def clamp(self, value: float) -> float:
        return max(self.min_value, min(self.max_value, value))


@dataclass
class DetectedLiteral:
    """A numeric literal found in script text."""
    start_offset: int
    end_offset: int
    original_text: str
    value: float
    is_float: bool = False
    has_float_suffix: bool = False   # 1.5f
    has_double_suffix: bool = False  # 1.5d
    line: int = 1
    column: int = 1
    slider_config: SliderConfig | None = None
    context: str | None = None       # "velocity", "bpm", ... when inferred

    @property
    def length(self) -> int:
        return self.end_offset - self.start_offset

    @property
    def span(self) -> Span:
        return (self.start_offset, self.end_offset)


# --- Structure analyzer ---

@dataclass
class NoteDefinition:
    note: int = 0
    velocity: int = 0
    beat: float = 0.0
    duration: float = 0.0
    source_start: int = 0
    source_end: int = 0
    line: int = 1
    column: int = 1
    raw_text: str = ""

    @property
    def span(self) -> Span:
        return (self.source_start, self.source_end)


@dataclass
class InstrumentDefinition:
    name: str               # display name ("Lead", "Diva", or the variable)
    variable_name: str
    instrument_type: str    # "SimpleSynth", "Sampler", "VstPlugin"
    definition_start: int
    definition_end: int
    line: int = 1
    column: int = 1
    references: list[Span] = field(default_factory=list)

    @property
    def span(self) -> Span:
        return (self.definition_start, self.definition_end)


@dataclass
class PatternDefinition:
    variable_name: str
    instrument_name: str    # resolved display name, else the raw variable
    definition_start: int
    definition_end: int
    line: int = 1
    notes: list[NoteDefinition] = field(default_factory=list)
    references: list[Span] = field(default_factory=list)

    @property
    def span(self) -> Span:
        return (self.definition_start, self.definition_end)


@dataclass
class SourceLocationInfo:
    """Where in the script a live engine object was defined.

    Attached to live patterns and note events after the script ran. The
    engine only reads it.
    """
    start_offset: int
    end_offset: int
    start_line: int = 1
    start_column: int | None = None
    source_text: str | None = None
    instrument_name: str = ""

    def contains(self, offset: int) -> bool:
        return self.start_offset <= offset <= self.end_offset


@dataclass
class CodeAnalysisResult:
    instruments: list[InstrumentDefinition] = field(default_factory=list)
    patterns: list[PatternDefinition] = field(default_factory=list)
    instrument_code_regions: dict[str, list[Span]] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    def find_instrument(self, variable_name: str) -> InstrumentDefinition | None:
        for inst in self.instruments:
            if inst.variable_name == variable_name:
                return inst
        return None

    def find_pattern(self, variable_name: str) -> PatternDefinition | None:
        for pat in self.patterns:
            if pat.variable_name == variable_name:
                return pat
        return None

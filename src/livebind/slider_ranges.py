"""Slider ranges for numeric literals, keyed by the parameter they feed.

Two tables drive the inference:

- ``CONTEXT_RULES``: call / assignment shapes recognised on the literal's
  line, each with the ordered parameter names of its arguments.  Rules are
  tried in list order and the first one whose match starts before the
  literal wins, even when a later rule matches closer to it.
- ``KEYWORD_RANGES``: maps a context label ("velocity", "cutoff", ...) to a
  slider range by substring test, also in list order.

Literals with no recognisable context get a type-based default: floats
0-1, integers an adaptive power-of-ten range around their magnitude.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from livebind.analysis_nodes import SliderConfig


@dataclass(frozen=True)
class ContextRule:
    pattern: re.Pattern[str]
    parameters: tuple[str, ...]   # empty when the name comes from group 1


def _rule(pattern: str, *parameters: str) -> ContextRule:
    return ContextRule(re.compile(pattern, re.IGNORECASE), parameters)


CONTEXT_RULES: list[ContextRule] = [
    _rule(r"\.Bpm\s*=", "bpm"),
    _rule(r"NoteOn\s*\(", "note", "velocity"),
    _rule(r"NoteOff\s*\(", "note"),
    _rule(r"SetParameter\s*\(\s*\"([^\"]+)\"\s*,"),
    _rule(r"Schedule\s*\(", "beat"),
    _rule(r"\.Note\s*\(", "pitch", "beat", "duration", "velocity"),
    _rule(r"Delay\s*\(", "milliseconds"),
    _rule(r"CreatePattern\s*\(", "target"),
    _rule(r"RouteMidiInput\s*\(", "device", "target"),
    _rule(r"\.Volume\s*=", "volume"),
    _rule(r"\.cutoff", "cutoff"),
    _rule(r"\.resonance", "resonance"),
    _rule(r"\.attack", "attack"),
    _rule(r"\.decay", "decay"),
    _rule(r"\.sustain", "sustain"),
    _rule(r"\.release", "release"),
]

# Trailing "name =" right before the literal
_RE_ASSIGNMENT_TAIL = re.compile(r"(\w+)\s*=\s*$")


def infer_context(line_text: str, pos_in_line: int) -> str | None:
    """Return the parameter name a literal at ``pos_in_line`` feeds, if any.

    Only ``line_text`` is inspected, so arguments of a call that spans
    several lines get no context.
    """
    for rule in CONTEXT_RULES:
        m = rule.pattern.search(line_text)
        if m is None or m.start() >= pos_in_line:
            continue
        if m.lastindex:
            return m.group(1)
        between = line_text[m.end():max(m.end(), pos_in_line)]
        index = between.count(",")
        if index < len(rule.parameters):
            return rule.parameters[index]

    m = _RE_ASSIGNMENT_TAIL.search(line_text[:pos_in_line])
    if m:
        return m.group(1)
    return None


# --- Keyword table ---

def _volume(value: float, is_float: bool) -> SliderConfig:
    if is_float or value <= 1.0:
        return SliderConfig(0, 1, 0.01, "Volume")
    return SliderConfig(0, 100, 1, "Volume")


def _filter(context: str) -> SliderConfig:
    label = "Cutoff" if "cutoff" in context else "Resonance"
    return SliderConfig(0, 1, 0.01, label)


# (keywords, excluded substrings, factory(context, value, is_float))
KEYWORD_RANGES = [
    (("bpm", "tempo"), (), lambda c, v, f: SliderConfig(20, 300, 1, "BPM")),
    (("velocity", "vel"), ("level",), lambda c, v, f: SliderConfig(0, 127, 1, "Velocity")),
    (("note",), ("noteon", "noteoff"), lambda c, v, f: SliderConfig(0, 127, 1, "Note")),
    (("freq", "hz"), (), lambda c, v, f: SliderConfig(20, 20000, 1, "Frequency")),
    (("volume", "gain", "level"), (), lambda c, v, f: _volume(v, f)),
    (("cutoff", "resonance", "filter"), (), lambda c, v, f: _filter(c)),
    (("attack", "decay", "release", "sustain"), (),
     lambda c, v, f: SliderConfig(0, 10, 0.01, "Time")),
    (("beat", "duration", "length"), (), lambda c, v, f: SliderConfig(0, 16, 0.25, "Beat")),
    (("pan",), (), lambda c, v, f: SliderConfig(-1, 1, 0.01, "Pan")),
    (("waveform", "wave"), (), lambda c, v, f: SliderConfig(0, 4, 1, "Waveform")),
    (("octave",), (), lambda c, v, f: SliderConfig(-4, 4, 1, "Octave")),
    (("semitone", "transpose"), (), lambda c, v, f: SliderConfig(-24, 24, 1, "Semitones")),
]


def slider_for_context(context: str | None, value: float, is_float: bool) -> SliderConfig:
    """Map a context label to a slider range.

    Args:
        context: Parameter name inferred from the surrounding code, or None
        value: Current literal value
        is_float: Whether the literal is written as a floating-point number

    Returns:
        SliderConfig for the literal
    """
    ctx = (context or "").lower()
    for keywords, excluded, factory in KEYWORD_RANGES:
        if any(k in ctx for k in keywords) and not any(x in ctx for x in excluded):
            return factory(ctx, value, is_float)

    if is_float:
        return SliderConfig(0, 1, 0.01)

    # Integer: next power of ten above the magnitude
    magnitude = max(1.0, abs(value))
    max_val = 10 ** math.ceil(math.log10(magnitude + 1))
    min_val = 0 if value >= 0 else -max_val
    return SliderConfig(min_val, max_val, 1)

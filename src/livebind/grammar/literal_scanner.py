"""Numeric literal scanner for live-coding scripts.

Uses a two-pass approach over the raw text:
1. Annotation pass: collects ``// @slider(min, max[, step][, "label"])``
   trailing comments, keyed by line number
2. Token pass: finds numeric literals, drops the ones inside strings and
   comments, and attaches a slider configuration to each

No tokenizer for the scripting language is involved; exclusion of strings
and comments is heuristic.  Annotated lines always use the annotation;
every other literal gets a range from ``livebind.slider_ranges``.
"""

from __future__ import annotations

import logging
import re

from livebind.analysis_nodes import DetectedLiteral, SliderConfig
from livebind.slider_ranges import infer_context, slider_for_context
from livebind.text_buffer import LineIndex

logger = logging.getLogger(__name__)


# ---------- Regex patterns ----------

# Integers, decimals, leading-dot fractions, exponents, single f/d suffix.
# Identifier characters on either side reject look-alikes such as x1 or 1x.
RE_NUMBER = re.compile(
    r"(?<![A-Za-z_0-9])"
    r"(-?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?[fFdD]?)"
    r"(?![A-Za-z_0-9])"
)

_DECIMAL = r"-?\d+(?:\.\d+)?"
RE_SLIDER_ANNOTATION = re.compile(
    r"//\s*@slider\s*\(\s*"
    rf"({_DECIMAL})\s*,\s*({_DECIMAL})\s*"
    rf"(?:,\s*({_DECIMAL}))?\s*"
    r"(?:,\s*\"([^\"]+)\")?\s*\)"
)


def detect_literals(text: str, errors: list[str] | None = None) -> list[DetectedLiteral]:
    """Find every editable numeric literal in ``text``, in order of appearance.

    Args:
        text: Script source
        errors: Optional list that receives a message if the scan fails
            part-way; the literals found up to that point are returned

    Returns:
        List of DetectedLiteral, each with a slider configuration
    """
    results: list[DetectedLiteral] = []
    try:
        index = LineIndex(text)
        annotations = collect_slider_annotations(text, index)
        in_string = _string_states(text)

        for m in RE_NUMBER.finditer(text):
            literal = _make_literal(text, m, index, annotations, in_string)
            if literal is not None:
                results.append(literal)
    except Exception as e:
        logger.warning("Literal scan failed: %s", e)
        if errors is not None:
            errors.append(f"Literal scan error: {e}")
    return results


def collect_slider_annotations(text: str, index: LineIndex | None = None) -> dict[int, SliderConfig]:
    """Return slider annotations keyed by the 1-based line they sit on."""
    if index is None:
        index = LineIndex(text)
    annotations: dict[int, SliderConfig] = {}
    for m in RE_SLIDER_ANNOTATION.finditer(text):
        lo = float(m.group(1))
        hi = float(m.group(2))
        if m.group(3) is not None:
            step = float(m.group(3))
        else:
            step = (hi - lo) / 100.0
        if step <= 0:
            step = 1.0
        annotations[index.line_of(m.start())] = SliderConfig(lo, hi, step, m.group(4))
    return annotations


def _make_literal(
    text: str,
    m: re.Match[str],
    index: LineIndex,
    annotations: dict[int, SliderConfig],
    in_string: list[bool],
) -> DetectedLiteral | None:
    num_text = m.group(1)
    start = m.start(1)

    if num_text.lstrip("-").lower().startswith("0x"):
        return None
    if in_string[start] or is_inside_comment(text, start):
        return None

    has_float_suffix = num_text[-1] in "fF"
    has_double_suffix = num_text[-1] in "dD"
    number_part = num_text[:-1] if (has_float_suffix or has_double_suffix) else num_text
    try:
        value = float(number_part)
    except ValueError:
        return None

    is_float = ("." in num_text or has_float_suffix or has_double_suffix
                or "e" in number_part or "E" in number_part)
    line, column = index.location(start)

    literal = DetectedLiteral(
        start_offset=start,
        end_offset=m.end(1),
        original_text=num_text,
        value=value,
        is_float=is_float,
        has_float_suffix=has_float_suffix,
        has_double_suffix=has_double_suffix,
        line=line,
        column=column,
    )

    config = annotations.get(line)
    if config is not None:
        literal.slider_config = config
    else:
        line_start, line_end = index.line_span(line)
        literal.context = infer_context(text[line_start:line_end], start - line_start)
        literal.slider_config = slider_for_context(literal.context, value, is_float)
    return literal


def is_inside_comment(text: str, offset: int) -> bool:
    """Check whether ``offset`` falls in a // line comment or a /* block */."""
    line_start = text.rfind("\n", 0, offset) + 1
    if "//" in text[line_start:offset]:
        return True

    last_open = text.rfind("/*", 0, offset)
    if last_open >= 0:
        last_close = text.rfind("*/", 0, offset)
        if last_close < last_open:
            return True
    return False


def is_inside_string(text: str, offset: int) -> bool:
    """Check whether ``offset`` falls inside a string literal."""
    return _string_states(text[:offset])[-1]


def _string_states(text: str) -> list[bool]:
    """One forward pass: ``states[i]`` is True when offset i is inside a string.

    Quotes are ``"`` and ``'``.  A ``"`` right after ``@`` opens a verbatim
    string, where ``""`` is an escaped quote and backslashes are literal;
    elsewhere a backslash skips the next character.  Quotes inside
    comments do not open strings.
    """
    n = len(text)
    states = [False] * (n + 1)
    in_string = False
    verbatim = False
    quote = ""
    i = 0
    while i < n:
        states[i] = in_string
        c = text[i]
        if in_string:
            if c == "\\" and not verbatim and i + 1 < n:
                states[i + 1] = True
                i += 2
                continue
            if c == quote:
                if verbatim and i + 1 < n and text[i + 1] == '"':
                    states[i + 1] = True
                    i += 2
                    continue
                in_string = False
        elif c == "/" and text.startswith("//", i):
            end = text.find("\n", i)
            end = n if end < 0 else end
            # states for the comment body stay False
            i = end
            continue
        elif c == "/" and text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end < 0 else end + 2
            continue
        elif c in "\"'":
            in_string = True
            quote = c
            verbatim = c == '"' and i > 0 and text[i - 1] == "@"
        i += 1
    states[n] = in_string
    return states


# ---------- Lookups ----------

def get_literal_at_offset(text: str, offset: int) -> DetectedLiteral | None:
    """Return the literal whose span touches ``offset`` (end inclusive)."""
    for literal in detect_literals(text):
        if literal.start_offset <= offset <= literal.end_offset:
            return literal
    return None


def get_literals_on_line(text: str, line: int) -> list[DetectedLiteral]:
    return [lit for lit in detect_literals(text) if lit.line == line]


def format_number(value: float, original: DetectedLiteral) -> str:
    """Render ``value`` in the style of ``original``.

    Floats keep the original number of decimal places (one if the original
    had none, e.g. ``1e3``); integers are rounded.  An ``f``/``d`` suffix
    is carried over.
    """
    if original.is_float:
        body = original.original_text.rstrip("fFdD")
        if "." in body:
            mantissa = re.split(r"[eE]", body)[0]
            decimals = len(mantissa.split(".", 1)[1])
        else:
            decimals = 1
        formatted = f"{value:.{decimals}f}"
    else:
        formatted = str(int(round(value)))

    if original.has_float_suffix:
        formatted += "f"
    elif original.has_double_suffix:
        formatted += "d"
    return formatted

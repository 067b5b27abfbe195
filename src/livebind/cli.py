"""CLI entry point for livebind: inspect and edit live-coding scripts."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from livebind.grammar.literal_scanner import detect_literals
from livebind.grammar.structure import analyze
from livebind.grammar.validate import validate_analysis
from livebind.live_binder import LiveParameterBinder
from livebind.settings import LiveBindSettings, parse_settings_file
from livebind.text_buffer import TextBuffer


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="livebind",
        description="Find editable numbers and musical structure in live-coding scripts",
    )
    parser.add_argument(
        "input",
        help="Path to the script file",
    )
    parser.add_argument(
        "--literals",
        action="store_true",
        help="List numeric literals with their slider ranges",
    )
    parser.add_argument(
        "--structure",
        action="store_true",
        help="List instruments, patterns and notes (default)",
    )
    parser.add_argument(
        "--bindings",
        action="store_true",
        help="List live parameter bindings",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Report structural warnings",
    )
    parser.add_argument(
        "--set",
        action="append",
        default=[],
        metavar="OFFSET=VALUE",
        help="Set the bound literal at OFFSET to VALUE (repeatable); prints the edited script",
    )
    parser.add_argument(
        "-o", "--output",
        help="Write the edited script here instead of stdout (with --set)",
    )
    parser.add_argument(
        "--export-midi",
        metavar="PATH",
        help="Write the analyzed patterns to a MIDI file",
    )
    parser.add_argument(
        "--bpm",
        type=float,
        default=120.0,
        help="Tempo for --export-midi (default: 120)",
    )
    parser.add_argument(
        "--settings",
        default=None,
        help="JSON settings file",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: file not found: {input_path}", file=sys.stderr)
        sys.exit(1)

    settings = LiveBindSettings()
    if args.settings:
        try:
            settings = parse_settings_file(args.settings)
        except (OSError, ValueError) as e:
            print(f"Error reading settings {args.settings}: {e}", file=sys.stderr)
            sys.exit(1)

    text = input_path.read_text(encoding="utf-8", errors="replace")

    if args.set:
        _apply_edits(text, args.set, args.output, settings)
        return

    if args.literals:
        _print_literals(text)
    if args.bindings:
        _print_bindings(text, settings)

    analysis = None
    if args.structure or args.validate or args.export_midi or not (args.literals or args.bindings):
        analysis = analyze(text, settings.note_proximity)
        for err in analysis.errors:
            print(f"Warning: {err}", file=sys.stderr)

    if args.structure or not (args.literals or args.bindings or args.validate or args.export_midi):
        _print_structure(analysis)

    if args.validate:
        warnings = validate_analysis(analysis)
        if not warnings:
            print("No warnings.")
        for w in warnings:
            print(f"  {w}")

    if args.export_midi:
        from livebind.midi_export import analysis_to_midi
        out = analysis_to_midi(analysis, args.export_midi, bpm=args.bpm)
        print(f"Written: {out}", file=sys.stderr)


def _apply_edits(text: str, edits: list[str], output: str | None,
                 settings: LiveBindSettings) -> None:
    buffer = TextBuffer(text)
    binder = LiveParameterBinder(buffer, tempo_range=(settings.tempo_min, settings.tempo_max))
    binder.analyze_and_bind()

    for edit in edits:
        try:
            offset_str, value_str = edit.split("=", 1)
            offset, value = int(offset_str), float(value_str)
        except ValueError:
            print(f"Error: bad --set value {edit!r}, expected OFFSET=VALUE", file=sys.stderr)
            sys.exit(1)
        if not binder.update_parameter_at_offset(offset, value):
            print(f"Warning: no bound parameter at offset {offset}", file=sys.stderr)

    for w in binder.warnings:
        print(f"Warning: {w}", file=sys.stderr)

    if output:
        Path(output).write_text(buffer.text, encoding="utf-8")
        print(f"Written: {output}", file=sys.stderr)
    else:
        sys.stdout.write(buffer.text)


def _print_literals(text: str) -> None:
    for lit in detect_literals(text):
        cfg = lit.slider_config
        label = cfg.label or lit.context or "-"
        print(f"  {lit.line}:{lit.column}  {lit.original_text:<10} "
              f"[{cfg.min_value:g} .. {cfg.max_value:g} step {cfg.step:g}]  {label}")


def _print_bindings(text: str, settings: LiveBindSettings) -> None:
    binder = LiveParameterBinder(TextBuffer(text),
                                 tempo_range=(settings.tempo_min, settings.tempo_max))
    binder.analyze_and_bind()
    for b in binder.bindings:
        print(f"  @{b.source_start}-{b.source_end}  {b.name:<14} {b.original_text:<8} "
              f"[{b.min_value:g} .. {b.max_value:g} step {b.step:g}]")


def _print_structure(analysis) -> None:
    """Print instruments and patterns in a readable format."""
    print(f"Instruments: {len(analysis.instruments)}")
    for inst in analysis.instruments:
        print(f"  {inst.variable_name} = {inst.instrument_type} \"{inst.name}\" "
              f"(line {inst.line}, {len(inst.references)} refs)")

    print(f"Patterns: {len(analysis.patterns)}")
    for pattern in analysis.patterns:
        print(f"  {pattern.variable_name} -> {pattern.instrument_name} "
              f"(line {pattern.line}, {len(pattern.notes)} notes)")
        for note in pattern.notes:
            print(f"    beat {note.beat:g}  note {note.note}  vel {note.velocity}  "
                  f"dur {note.duration:g}  (line {note.line})")


if __name__ == "__main__":
    main()

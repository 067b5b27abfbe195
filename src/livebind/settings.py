"""Parser for livebind settings files.

Settings files are JSON documents; each key holds either a bare value or
an object with a ``value`` entry:

    {
        "DebounceMs": 250,
        "NoteProximity": {"value": 2000},
        "BeatTolerance": 0.001,
        "TempoMin": 20,
        "TempoMax": 300
    }

Missing or unparsable keys keep their defaults.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

SETTINGS_SUFFIX = ".livebind.json"


@dataclass
class LiveBindSettings:
    """Tunables for the analyzer, binder and editor session."""
    name: str = "default"

    # Re-analysis after text edits is coalesced over this window
    debounce_ms: int = 250

    # Characters after a pattern definition searched for loose note events
    note_proximity: int = 2000

    # Beat matching tolerance when attaching source info
    beat_tolerance: float = 1e-3

    # Tempo binding range
    tempo_min: float = 20.0
    tempo_max: float = 300.0

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0


# JSON key -> (attribute, type)
_FIELDS: dict[str, tuple[str, type]] = {
    "DebounceMs": ("debounce_ms", int),
    "NoteProximity": ("note_proximity", int),
    "BeatTolerance": ("beat_tolerance", float),
    "TempoMin": ("tempo_min", float),
    "TempoMax": ("tempo_max", float),
}


def _get_value(data: dict, key: str, default: Any = None) -> Any:
    """Extract a value that may be wrapped as {"value": ...}."""
    if key not in data:
        return default
    entry = data[key]
    if isinstance(entry, dict) and "value" in entry:
        return entry["value"]
    return entry


def settings_from_dict(data: dict, name: str = "default") -> LiveBindSettings:
    settings = LiveBindSettings(name=name)
    for key, (attr, cast) in _FIELDS.items():
        val = _get_value(data, key)
        if val is None:
            continue
        try:
            setattr(settings, attr, cast(val))
        except (ValueError, TypeError):
            logger.warning("Ignoring settings key %s: bad value %r", key, val)
    if settings.tempo_min > settings.tempo_max:
        logger.warning("TempoMin > TempoMax in %s; using defaults", name)
        settings.tempo_min, settings.tempo_max = 20.0, 300.0
    return settings


def parse_settings_file(path: str | Path) -> LiveBindSettings:
    """Parse a settings file.

    Args:
        path: Path to the JSON settings file

    Returns:
        LiveBindSettings with extracted values
    """
    path = Path(path)
    name = path.name
    if name.endswith(SETTINGS_SUFFIX):
        name = name[:-len(SETTINGS_SUFFIX)]

    with open(path, "r", encoding="utf-8", errors="replace") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: settings must be a JSON object")

    return settings_from_dict(data, name)


def parse_settings_dir(dir_path: str | Path) -> dict[str, LiveBindSettings]:
    """Parse all ``*.livebind.json`` files in a directory.

    Files that fail to parse are logged and skipped.

    Returns:
        Dict mapping settings names to LiveBindSettings
    """
    dir_path = Path(dir_path)
    results = {}

    for path in sorted(dir_path.glob(f"*{SETTINGS_SUFFIX}")):
        try:
            settings = parse_settings_file(path)
        except (OSError, ValueError) as e:
            logger.warning("Skipping settings file %s: %s", path, e)
            continue
        results[settings.name] = settings

    return results

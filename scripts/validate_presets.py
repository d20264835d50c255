#!/usr/bin/env python3
"""Lightweight validator for preset JSON definitions."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, List

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from budget_tracker.models import CATEGORY_TYPES, TABLES
from budget_tracker.presets import PRESET_SLOTS

DEFAULT_PATH = PROJECT_ROOT / "budget_tracker" / "defaults" / "tracker.json"


def validate_preset(slot: str, data: Any) -> List[str]:
    errors = []
    try:
        if int(slot) not in PRESET_SLOTS:
            errors.append(f"slot {slot} is outside {PRESET_SLOTS[0]}-{PRESET_SLOTS[-1]}")
    except ValueError:
        errors.append(f"slot {slot!r} is not a number")

    if not isinstance(data, dict):
        return errors + ["preset must be an object"]
    if not str(data.get('name') or '').strip():
        errors.append("missing 'name'")

    for table in TABLES:
        rows = data.get(table, [])
        if not isinstance(rows, list):
            errors.append(f"'{table}' must be a list")
            continue
        for index, row in enumerate(rows):
            if not isinstance(row, dict) or not str(row.get('category') or '').strip():
                errors.append(f"{table}[{index}] has no category")
                continue
            if not isinstance(row.get('budget', 0), (int, float)):
                errors.append(f"{table}[{index}].budget must be a number")
            if 'type' in row and row['type'] not in CATEGORY_TYPES:
                errors.append(f"{table}[{index}].type {row['type']!r} is not a known category type")
    return errors


def load_presets(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    # The tracker defaults file nests presets; an exported store record does not
    return data.get('factory_presets', data)


def main(argv: List[str]) -> int:
    path = Path(argv[0]) if argv else DEFAULT_PATH
    if not path.exists():
        print(f"Preset file not found: {path}")
        return 1

    issues = []
    for slot, preset in load_presets(path).items():
        for message in validate_preset(slot, preset):
            issues.append((slot, message))

    if issues:
        print("Preset validation failed:")
        for slot, message in issues:
            print(f"  - slot {slot}: {message}")
        return 1

    print("All presets validated successfully.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))

"""Named budget templates stored in five slots.

Applying a preset is destructive: it replaces the target month's items in
both tables (every item when no month filter is active) with fresh items
built from the template.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .categorization import resolve_category_type
from .clock import Clock, SystemClock
from .defaults import get_tracker_config
from .exceptions import PresetNotFoundError, ValidationError
from .ledger import BudgetLedger
from .models import CATEGORY_TYPES, TABLES, BudgetItem, generate_id
from .normalization import coerce_number, coerce_text
from .partitions import PRESETS_KEY
from .preferences import read_record, write_record
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

PRESET_SLOTS = tuple(int(slot) for slot in get_tracker_config()['constants']['preset_slots'])


@dataclass
class PresetEntry:
    category: str
    budget: float = 0.0
    type: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> 'PresetEntry':
        category_type = raw.get('type')
        return cls(
            category=coerce_text(raw.get('category')).strip(),
            budget=coerce_number(raw.get('budget')),
            type=category_type if category_type in CATEGORY_TYPES else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {'category': self.category, 'budget': self.budget}
        if self.type:
            payload['type'] = self.type
        return payload


@dataclass
class Preset:
    name: str
    first: List[PresetEntry] = field(default_factory=list)
    second: List[PresetEntry] = field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: Any) -> Optional['Preset']:
        if not isinstance(raw, Mapping):
            return None
        tables = {}
        for table in TABLES:
            rows = raw.get(table) if isinstance(raw.get(table), list) else []
            entries = [PresetEntry.from_raw(row) for row in rows if isinstance(row, Mapping)]
            tables[table] = [entry for entry in entries if entry.category]
        return cls(name=coerce_text(raw.get('name')), **tables)

    def entries(self, table: str) -> List[PresetEntry]:
        return self.first if table == 'first' else self.second

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'first': [entry.to_dict() for entry in self.first],
            'second': [entry.to_dict() for entry in self.second],
        }


def factory_presets() -> Dict[int, Preset]:
    """The five built-in presets, freshly built on every call."""
    raw = copy.deepcopy(get_tracker_config()['factory_presets'])
    return {int(slot): Preset.from_raw(value) for slot, value in raw.items()}


def check_slot(slot: Any) -> int:
    try:
        number = int(slot)
    except (TypeError, ValueError):
        number = None
    if number not in PRESET_SLOTS:
        raise ValidationError(
            f"Please choose a preset slot from {PRESET_SLOTS[0]} to {PRESET_SLOTS[-1]}.",
            field='slot',
            value=slot,
        )
    return number


class PresetEngine:
    """Load, edit and apply the stored presets."""

    def __init__(self, store: KeyValueStore, clock: Optional[Clock] = None, origin: Optional[str] = None):
        self.store = store
        self.clock = clock or SystemClock()
        self.origin = origin
        self.presets: Dict[int, Preset] = self._load()

    def _load(self) -> Dict[int, Preset]:
        raw = read_record(self.store, PRESETS_KEY)
        if not isinstance(raw, dict):
            presets = factory_presets()
            self.presets = presets
            self.save()
            return presets

        presets: Dict[int, Preset] = {}
        for slot, value in raw.items():
            try:
                number = int(slot)
            except (TypeError, ValueError):
                logger.warning("Ignoring preset under unknown slot %r", slot)
                continue
            preset = Preset.from_raw(value)
            if preset is not None:
                presets[number] = preset
        return presets

    def reload(self) -> None:
        self.presets = self._load()

    def save(self) -> bool:
        payload = {str(slot): preset.to_dict() for slot, preset in sorted(self.presets.items())}
        return write_record(self.store, PRESETS_KEY, json.dumps(payload), self.origin)

    def labels(self) -> Dict[int, str]:
        """Preset names by slot, for button labels."""
        return {slot: self.presets[slot].name for slot in PRESET_SLOTS if slot in self.presets}

    def get(self, slot: Any) -> Preset:
        try:
            return self.presets[int(slot)]
        except (KeyError, TypeError, ValueError):
            raise PresetNotFoundError(slot) from None

    def apply_preset(self, ledger: BudgetLedger, slot: Any, filter_month: Optional[str] = None) -> List[BudgetItem]:
        """Replace the target month's items with fresh items from a preset.

        The target month is the filter month, or the current month when no
        filter is active (in which case every item in the ledger is replaced).
        """
        preset = self.get(slot)
        target_month = filter_month or self.clock.current_month()
        date = f"{target_month}-01"

        ledger.clear(filter_month)
        created = []
        for table in TABLES:
            for entry in preset.entries(table):
                item = BudgetItem(
                    id=generate_id(),
                    category=entry.category,
                    date=date,
                    budget=entry.budget,
                    type=resolve_category_type(entry.type, entry.category),
                )
                ledger.items(table).append(item)
                created.append(item)
        return created

    def save_current_as_preset(
        self,
        ledger: BudgetLedger,
        slot: Any,
        name: Optional[str] = None,
        filter_month: Optional[str] = None,
    ) -> Preset:
        """Capture the visible items of both tables into a slot."""
        slot = check_slot(slot)
        current = self.presets.get(slot)
        fallback = current.name if current else f"Preset {slot}"
        preset_name = (name or '').strip() or fallback

        def capture(table: str) -> List[PresetEntry]:
            return [
                PresetEntry(
                    category=item.category,
                    budget=coerce_number(item.budget),
                    type=resolve_category_type(item.type, item.category),
                )
                for item in ledger.filtered_view(table, filter_month)
            ]

        preset = Preset(name=preset_name, first=capture('first'), second=capture('second'))
        self.presets[slot] = preset
        self.save()
        return preset

    def update_preset(
        self,
        slot: Any,
        name: str,
        first: Iterable[Mapping[str, Any]],
        second: Iterable[Mapping[str, Any]],
    ) -> Preset:
        """Store an edited preset; rows without a category are dropped."""
        slot = check_slot(slot)
        preset_name = (name or '').strip()
        if not preset_name:
            raise ValidationError("Please enter a preset name.", field='name', value=name)

        preset = Preset.from_raw({'name': preset_name, 'first': list(first), 'second': list(second)})
        self.presets[slot] = preset
        self.save()
        return preset

    def reset_preset_to_default(self, slot: Any) -> Preset:
        slot = check_slot(slot)
        preset = factory_presets()[slot]
        self.presets[slot] = preset
        self.save()
        return preset

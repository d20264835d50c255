"""Flat preference records: settings, dark mode and allocation configuration.

Each record is a single JSON value under its own key. Reads fall back to
defaults when the record is missing or malformed; store failures are
logged and ignored.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .defaults import get_tracker_config
from .exceptions import StorageError
from .normalization import coerce_number
from .partitions import ALLOCATION_KEY, DARK_MODE_KEY, MONTH_PATTERN, SETTINGS_KEY
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Any] = {
    'activeFilterMonth': None,
}


def _default_targets() -> Dict[str, float]:
    return {k: float(v) for k, v in get_tracker_config()['allocation_targets'].items()}


def _default_caps() -> Dict[str, float]:
    return {k: float(v) for k, v in get_tracker_config()['category_caps'].items()}


def read_record(store: KeyValueStore, key: str) -> Any:
    """Decoded JSON under ``key``; ``None`` when missing, malformed or unreadable."""
    try:
        text = store.get_item(key)
    except StorageError as e:
        logger.error("Error reading %s: %s", key, e)
        return None
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError as e:
        logger.warning("Discarding malformed %s record: %s", key, e)
        return None


def write_record(store: KeyValueStore, key: str, text: str, origin: Optional[str]) -> bool:
    try:
        store.set_item(key, text, origin=origin)
    except StorageError as e:
        logger.error("Error saving %s: %s", key, e)
        return False
    return True


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def load_settings(store: KeyValueStore) -> Dict[str, Any]:
    data = read_record(store, SETTINGS_KEY)
    merged = DEFAULT_SETTINGS.copy()
    if not isinstance(data, dict):
        return merged
    month = data.get('activeFilterMonth')
    if isinstance(month, str) and MONTH_PATTERN.match(month):
        merged['activeFilterMonth'] = month
    return merged


def save_settings(store: KeyValueStore, filter_month: Optional[str], origin: Optional[str] = None) -> bool:
    return write_record(store, SETTINGS_KEY, json.dumps({'activeFilterMonth': filter_month}), origin)


# ---------------------------------------------------------------------------
# Dark mode
# ---------------------------------------------------------------------------


def load_dark_mode(store: KeyValueStore) -> bool:
    try:
        return store.get_item(DARK_MODE_KEY) == 'true'
    except StorageError as e:
        logger.error("Error reading %s: %s", DARK_MODE_KEY, e)
        return False


def save_dark_mode(store: KeyValueStore, enabled: bool, origin: Optional[str] = None) -> bool:
    return write_record(store, DARK_MODE_KEY, 'true' if enabled else 'false', origin)


# ---------------------------------------------------------------------------
# Allocation configuration
# ---------------------------------------------------------------------------


def to_percent(value: Any, fallback: float) -> float:
    """Clamp ``value`` to 0-100, or return ``fallback`` when it is not numeric."""
    number = coerce_number(value, default=float('nan'))
    if math.isnan(number):
        return fallback
    return max(0.0, min(100.0, number))


@dataclass
class AllocationConfig:
    """Target share of available money per allocation group, and hard caps."""
    targets: Dict[str, float] = field(default_factory=_default_targets)
    caps: Dict[str, float] = field(default_factory=_default_caps)

    @classmethod
    def from_raw(cls, raw: Any) -> 'AllocationConfig':
        config = cls()
        if not isinstance(raw, Mapping):
            return config
        targets = raw.get('targets') if isinstance(raw.get('targets'), Mapping) else {}
        caps = raw.get('caps') if isinstance(raw.get('caps'), Mapping) else {}
        config.targets = {key: to_percent(targets.get(key), default) for key, default in config.targets.items()}
        config.caps = {key: to_percent(caps.get(key), default) for key, default in config.caps.items()}
        return config

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {'targets': dict(self.targets), 'caps': dict(self.caps)}


def load_allocation_config(store: KeyValueStore) -> AllocationConfig:
    return AllocationConfig.from_raw(read_record(store, ALLOCATION_KEY))


def save_allocation_config(store: KeyValueStore, config: AllocationConfig, origin: Optional[str] = None) -> bool:
    normalized = AllocationConfig.from_raw(config.to_dict())
    return write_record(store, ALLOCATION_KEY, json.dumps(normalized.to_dict(), sort_keys=True), origin)

"""Month-partitioned persistence.

Budget items are stored per calendar month under ``budget_tracker:month:YYYY-MM``.
The month an item belongs to is derived from its own ``date`` on every
save, so editing an item's date moves it to another partition the next
time the ledger is saved. Salary, payroll balance and cash on hand are
stored per month in their own namespaces.

Store failures never propagate out of this module: they are logged and the
operation degrades to "nothing read" / "nothing written".
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from .clock import Clock, SystemClock
from .exceptions import StorageError
from .models import TABLES, BudgetItem, empty_tables
from .normalization import coerce_number, normalize_month_payload, parse_month_payload, serialize_month_payload
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

STORAGE_PREFIX = 'budget_tracker'
MONTH_NAMESPACE = 'month'
SCALAR_SERIES = ('salary', 'payroll_balance', 'cash_money')

SETTINGS_KEY = f'{STORAGE_PREFIX}:settings'
PRESETS_KEY = f'{STORAGE_PREFIX}:presets'
ALLOCATION_KEY = f'{STORAGE_PREFIX}:allocation'
DARK_MODE_KEY = f'{STORAGE_PREFIX}:dark_mode'

MONTH_PATTERN = re.compile(r'^\d{4}-(0[1-9]|1[0-2])$')

Tables = Dict[str, List[BudgetItem]]


def persistence_key(month: str) -> str:
    """Store key of the month payload for ``YYYY-MM``."""
    return f'{STORAGE_PREFIX}:{MONTH_NAMESPACE}:{month}'


def scalar_key(series: str, month: str) -> str:
    """Store key of one scalar series (salary, payroll balance, cash) for a month."""
    if series not in SCALAR_SERIES:
        raise ValueError(f"Unknown scalar series: {series!r}")
    return f'{STORAGE_PREFIX}:{series}:{month}'


def _namespace_pattern(namespace: str) -> re.Pattern:
    return re.compile(rf'^{re.escape(STORAGE_PREFIX)}:{re.escape(namespace)}:(\d{{4}}-\d{{2}})$')


def month_key_of(item: BudgetItem, current_month: str) -> str:
    """Month partition of an item: ``YYYY-MM`` prefix of its date.

    Items without a usable date belong to ``current_month``.
    """
    candidate = (item.date or '')[:7]
    if MONTH_PATTERN.match(candidate):
        return candidate
    return current_month


def previous_month(month: Optional[str]) -> Optional[str]:
    """Return the month before ``month``; ``None`` if it is not ``YYYY-MM``.

    Example:
        >>> previous_month('2025-01')
        '2024-12'
    """
    if not month or not MONTH_PATTERN.match(month):
        return None
    year, number = (int(part) for part in month.split('-'))
    if not year or not 1 <= number <= 12:
        return None
    if number == 1:
        return f'{year - 1:04d}-12'
    return f'{year:04d}-{number - 1:02d}'


def _scalar_values(raw: Any) -> Dict[str, float]:
    if not isinstance(raw, Mapping):
        return {table: 0.0 for table in TABLES}
    return {table: coerce_number(raw.get(table)) for table in TABLES}


class MonthPartitionManager:
    """Translate between ledger tables and month-partitioned store records."""

    def __init__(self, store: KeyValueStore, clock: Optional[Clock] = None, origin: Optional[str] = None):
        self.store = store
        self.clock = clock or SystemClock()
        self.origin = origin

    # -- guarded store access ----------------------------------------------

    def _get(self, key: str) -> Optional[str]:
        try:
            return self.store.get_item(key)
        except StorageError as e:
            logger.error("Error reading %s: %s", key, e)
            return None

    def _set(self, key: str, value: Any) -> bool:
        try:
            self.store.set_item(key, json.dumps(value), origin=self.origin)
        except StorageError as e:
            logger.error("Error saving %s: %s", key, e)
            return False
        return True

    def _keys(self, prefix: str) -> List[str]:
        try:
            return self.store.keys(prefix)
        except StorageError as e:
            logger.error("Error listing keys under %s: %s", prefix, e)
            return []

    def _months_in(self, namespace: str) -> List[str]:
        pattern = _namespace_pattern(namespace)
        months = []
        for key in self._keys(f'{STORAGE_PREFIX}:{namespace}:'):
            match = pattern.match(key)
            if match:
                months.append(match.group(1))
        return sorted(months)

    # -- month payloads ----------------------------------------------------

    def month_key_of(self, item: BudgetItem) -> str:
        return month_key_of(item, self.clock.current_month())

    def list_months(self) -> List[str]:
        """Every month with a persisted payload, oldest first."""
        return self._months_in(MONTH_NAMESPACE)

    def read_month(self, month: str) -> Tables:
        return parse_month_payload(self._get(persistence_key(month)))

    def load(self, filter_month: Optional[str] = None) -> Tables:
        """Load one month, or the union of every persisted month when unfiltered."""
        if filter_month:
            return self.read_month(filter_month)

        tables = empty_tables()
        for month in self.list_months():
            month_tables = self.read_month(month)
            for table in TABLES:
                tables[table].extend(month_tables[table])
        return tables

    def save(self, tables: Mapping[str, Iterable[BudgetItem]], scope: Optional[Iterable[str]] = None) -> List[str]:
        """Regroup every item by month and write one payload per month.

        Args:
            tables: Ledger tables to persist
            scope: Months the ledger fully represents. ``None`` means every
                month (the ledger was loaded unfiltered). In-scope months
                left without items are rewritten empty; months outside the
                scope keep their persisted items that the ledger does not hold.

        Returns:
            Months that were written successfully
        """
        grouped: Dict[str, Tables] = {}
        ledger_ids: Set[str] = set()
        for table in TABLES:
            for item in tables.get(table, []):
                grouped.setdefault(self.month_key_of(item), empty_tables())[table].append(item)
                ledger_ids.add(item.id)

        in_scope = set(self.list_months()) if scope is None else set(scope)
        for month in in_scope:
            grouped.setdefault(month, empty_tables())

        written = []
        for month in sorted(grouped):
            month_tables = grouped[month]
            if month not in in_scope:
                month_tables = self._merge_with_persisted(month, month_tables, ledger_ids)
            if self._set(persistence_key(month), serialize_month_payload(month_tables)):
                written.append(month)
        return written

    def _merge_with_persisted(self, month: str, month_tables: Tables, ledger_ids: Set[str]) -> Tables:
        persisted = self.read_month(month)
        return {
            table: [item for item in persisted[table] if item.id not in ledger_ids] + month_tables[table]
            for table in TABLES
        }

    def has_any_month(self) -> bool:
        return bool(self.list_months())

    # -- scalar series -----------------------------------------------------

    def read_scalars(self, series: str, month: str) -> Dict[str, float]:
        text = self._get(scalar_key(series, month))
        if not text:
            return _scalar_values(None)
        try:
            return _scalar_values(json.loads(text))
        except ValueError as e:
            logger.warning("Discarding malformed %s record for %s: %s", series, month, e)
            return _scalar_values(None)

    def load_scalars(self, series: str, filter_month: Optional[str] = None) -> Dict[str, float]:
        """One month's record, or the all-months total when unfiltered."""
        if filter_month:
            return self.read_scalars(series, filter_month)
        return self.aggregate(series)

    def save_scalars(self, series: str, month: str, values: Mapping[str, Any]) -> bool:
        return self._set(scalar_key(series, month), _scalar_values(values))

    def aggregate(self, series: str) -> Dict[str, float]:
        """Sum a scalar series over every month, per table."""
        if series not in SCALAR_SERIES:
            raise ValueError(f"Unknown scalar series: {series!r}")
        totals = {table: 0.0 for table in TABLES}
        for month in self._months_in(series):
            text = self._get(scalar_key(series, month))
            if not text:
                continue
            try:
                values = _scalar_values(json.loads(text))
            except ValueError:
                continue
            for table in TABLES:
                totals[table] += values[table]
        return totals

    def rollover(self, month: Optional[str]) -> float:
        """Money left over in ``month``: available minus everything spent.

        Returns 0 when the month has no payload or anything fails to parse.
        """
        if not month:
            return 0.0
        text = self._get(persistence_key(month))
        if not text:
            return 0.0

        try:
            tables = normalize_month_payload(json.loads(text))
            available = 0.0
            for series in SCALAR_SERIES:
                raw = self._get(scalar_key(series, month))
                values = _scalar_values(json.loads(raw)) if raw else _scalar_values(None)
                available += sum(values.values())
        except ValueError as e:
            logger.warning("Rollover for %s unavailable: %s", month, e)
            return 0.0

        spent = sum(
            expense.amount
            for table in TABLES
            for item in tables[table]
            for expense in item.expenses
        )
        return available - spent

    # -- reset -------------------------------------------------------------

    def clear_all(self) -> int:
        """Remove month payloads, scalar records, settings and presets.

        The allocation configuration and dark-mode flag are left alone.
        Returns the number of keys removed.
        """
        targets = self._keys(f'{STORAGE_PREFIX}:{MONTH_NAMESPACE}:')
        for series in SCALAR_SERIES:
            targets.extend(self._keys(f'{STORAGE_PREFIX}:{series}:'))
        targets.extend([SETTINGS_KEY, PRESETS_KEY])

        removed = 0
        for key in targets:
            try:
                if self.store.get_item(key) is None:
                    continue
                self.store.remove_item(key, origin=self.origin)
                removed += 1
            except StorageError as e:
                logger.error("Error removing %s: %s", key, e)
        return removed

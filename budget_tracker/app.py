"""Application service: one budget tracker session.

:class:`BudgetTrackerApp` owns everything a session works with (ledger,
scalar inputs, active month filter, presets, allocation configuration and
dark-mode flag) so several sessions can share one store side by side.

Every command runs as a single turn: mutate the ledger, persist, then
recompute the cached :class:`TrackerView`. Writes made by *other* sessions
to the allocation configuration are queued and applied only after the
current turn finishes, never in the middle of one.
"""

from __future__ import annotations

import logging
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterator, List, Mapping, Optional, Union

from . import csv_io, metrics
from .clock import Clock, SystemClock
from .defaults import get_tracker_config
from .exceptions import ValidationError
from .ledger import BudgetLedger
from .models import TABLES, BudgetItem, Expense, empty_tables, generate_id
from .normalization import coerce_number
from .partitions import ALLOCATION_KEY, MONTH_PATTERN, SCALAR_SERIES, MonthPartitionManager, previous_month
from .preferences import (
    AllocationConfig,
    load_allocation_config,
    load_dark_mode,
    load_settings,
    save_allocation_config,
    save_dark_mode,
    save_settings,
)
from .presets import Preset, PresetEngine
from .storage import KeyValueStore, StorageEvent

logger = logging.getLogger(__name__)


@dataclass
class TableView:
    """Everything one cutoff table shows."""
    table: str
    items: List[BudgetItem]
    rows: Dict[str, metrics.ItemMetrics]
    totals: metrics.TableTotals
    scalars: Dict[str, float]


@dataclass
class TrackerView:
    filter_month: Optional[str]
    tables: Dict[str, TableView]
    dashboard: metrics.DashboardSummary
    preset_labels: Dict[int, str] = field(default_factory=dict)
    months: List[str] = field(default_factory=list)
    dark_mode: bool = False

    def table(self, name: str) -> TableView:
        return self.tables[name]


def _sample_tables(month: str) -> Dict[str, List[BudgetItem]]:
    """Demo items for a first run, dated inside ``month``."""
    sample = get_tracker_config()['sample_data']
    tables = empty_tables()
    for table in TABLES:
        for raw in sample.get(table, []):
            tables[table].append(BudgetItem(
                id=generate_id(),
                category=raw['category'],
                date=f"{month}-{int(raw['day']):02d}",
                budget=float(raw['budget']),
                type=raw['type'],
                expenses=[
                    Expense(
                        description=expense['description'],
                        date=f"{month}-{int(expense['day']):02d}",
                        amount=float(expense['amount']),
                    )
                    for expense in raw.get('expenses', [])
                ],
            ))
    return tables


class BudgetTrackerApp:
    """A single session over a shared key-value store.

    Args:
        store: Backing store, shared with other sessions
        clock: Source of "today"; defaults to the system clock
        session_id: Identifies this session's writes in change events
        seed_sample_data: Save demo items when the store holds no months yet
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[Clock] = None,
        session_id: Optional[str] = None,
        seed_sample_data: bool = True,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.session_id = session_id or generate_id()

        self.partitions = MonthPartitionManager(store, self.clock, origin=self.session_id)
        self.presets = PresetEngine(store, self.clock, origin=self.session_id)
        self.ledger = BudgetLedger(clock=self.clock)

        self.filter_month: Optional[str] = load_settings(store)['activeFilterMonth']
        self.allocation: AllocationConfig = load_allocation_config(store)
        self.dark_mode: bool = load_dark_mode(store)
        self.scalars: Dict[str, Dict[str, float]] = {}

        self._pending: Deque[Callable[[], None]] = deque()
        self._depth = 0
        self._view: Optional[TrackerView] = None

        if seed_sample_data and not self.partitions.has_any_month():
            self._seed_sample_data()
        self._reload()
        self._unsubscribe = store.subscribe(self._on_storage_event, session_id=self.session_id)
        self._recompute()

    # ------------------------------------------------------------------
    # Turn handling
    # ------------------------------------------------------------------

    @contextmanager
    def _turn(self) -> Iterator[None]:
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1
        if self._depth == 0:
            self._recompute()
            self.process_pending_events()

    def _on_storage_event(self, event: StorageEvent) -> None:
        if event.key == ALLOCATION_KEY:
            logger.debug("Allocation changed by session %s; reload queued", event.origin)
            self._pending.append(self._reload_allocation)

    def process_pending_events(self) -> int:
        """Run queued reloads caused by other sessions; returns how many ran.

        Does nothing while a command is still in progress.
        """
        if self._depth:
            return 0
        ran = 0
        while self._pending:
            task = self._pending.popleft()
            task()
            ran += 1
        if ran:
            self._recompute()
        return ran

    @property
    def pending_events(self) -> int:
        return len(self._pending)

    def close(self) -> None:
        """Stop listening for other sessions' writes."""
        self._unsubscribe()

    # ------------------------------------------------------------------
    # Loading and persistence
    # ------------------------------------------------------------------

    def _seed_sample_data(self) -> None:
        month = self.clock.current_month()
        logger.info("Empty store; seeding sample data for %s", month)
        self.partitions.save(_sample_tables(month), scope=[month])

    def _reload(self) -> None:
        self.ledger.replace_all(self.partitions.load(self.filter_month))
        self._load_scalars()

    def _load_scalars(self) -> None:
        self.scalars = {
            series: self.partitions.load_scalars(series, self.filter_month)
            for series in SCALAR_SERIES
        }

    def _reload_allocation(self) -> None:
        self.allocation = load_allocation_config(self.store)

    def _persist(self) -> None:
        scope = [self.filter_month] if self.filter_month else None
        self.partitions.save(self.ledger.tables, scope=scope)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def visible_items(self, table: str) -> List[BudgetItem]:
        return self.ledger.filtered_view(table, self.filter_month)

    def available(self, table: str) -> float:
        """Salary + payroll balance + cash on hand for one table."""
        return sum(self.scalars[series][table] for series in SCALAR_SERIES)

    def months(self) -> List[str]:
        """Months offered by the month filter: every saved month plus the current one."""
        return sorted(set(self.partitions.list_months()) | {self.clock.current_month()})

    def preset_labels(self) -> Dict[int, str]:
        return self.presets.labels()

    def export_csv(self) -> str:
        """CSV text of the items currently visible in both tables."""
        return csv_io.export_csv({table: self.visible_items(table) for table in TABLES})

    def view(self) -> TrackerView:
        if self._view is None:
            self._recompute()
        return self._view

    def _recompute(self) -> None:
        tables = {}
        visible: List[BudgetItem] = []
        for table in TABLES:
            items = self.visible_items(table)
            visible.extend(items)
            tables[table] = TableView(
                table=table,
                items=items,
                rows={item.id: metrics.item_row(item) for item in items},
                totals=metrics.table_totals(table, items, self.available(table)),
                scalars={series: self.scalars[series][table] for series in SCALAR_SERIES},
            )

        viewed_month = self.filter_month or self.clock.current_month()
        total_available = sum(self.available(table) for table in TABLES)
        self._view = TrackerView(
            filter_month=self.filter_month,
            tables=tables,
            dashboard=metrics.dashboard(
                visible,
                total_available,
                rollover=self.partitions.rollover(previous_month(viewed_month)),
                config=self.allocation,
            ),
            preset_labels=self.presets.labels(),
            months=self.months(),
            dark_mode=self.dark_mode,
        )

    # ------------------------------------------------------------------
    # Item commands
    # ------------------------------------------------------------------

    def add_item(self, table: str, **fields: Any) -> BudgetItem:
        with self._turn():
            item = self.ledger.add_item(table, self.filter_month, **fields)
            self._persist()
        return item

    def edit_item(
        self,
        item_id: str,
        table: str,
        category: Any,
        date: Any,
        budget: Any,
        type: Any = None,
    ) -> Optional[BudgetItem]:
        with self._turn():
            item = self.ledger.edit_item(item_id, table, category, date, budget, type)
            if item is not None:
                self._persist()
        return item

    def delete_item(self, item_id: str, table: str, confirmed: bool = True) -> bool:
        if not confirmed:
            return False
        with self._turn():
            deleted = self.ledger.delete_item(item_id, table)
            if deleted:
                self._persist()
        return deleted

    def reorder(self, table: str, from_index: int, to_index: int) -> bool:
        with self._turn():
            moved = self.ledger.reorder(table, from_index, to_index)
            if moved:
                self._persist()
        return moved

    def move_up(self, item_id: str, table: str) -> bool:
        with self._turn():
            moved = self.ledger.move_up(item_id, table)
            if moved:
                self._persist()
        return moved

    def move_down(self, item_id: str, table: str) -> bool:
        with self._turn():
            moved = self.ledger.move_down(item_id, table)
            if moved:
                self._persist()
        return moved

    def toggle_paid(self, item_id: str, table: str) -> Optional[BudgetItem]:
        with self._turn():
            item = self.ledger.toggle_paid(item_id, table)
            if item is not None:
                self._persist()
        return item

    # ------------------------------------------------------------------
    # Expense commands
    # ------------------------------------------------------------------

    def add_expense(self, item_id: str, table: str, description: Any, date: Any, amount: Any) -> Optional[BudgetItem]:
        with self._turn():
            item = self.ledger.add_expense(item_id, table, description, date, amount)
            if item is not None:
                self._persist()
        return item

    def edit_expense(
        self,
        item_id: str,
        table: str,
        index: int,
        description: Any,
        date: Any,
        amount: Any,
    ) -> Optional[BudgetItem]:
        with self._turn():
            item = self.ledger.edit_expense(item_id, table, index, description, date, amount)
            if item is not None:
                self._persist()
        return item

    def delete_expense(self, item_id: str, table: str, index: int, confirmed: bool = True) -> Optional[BudgetItem]:
        if not confirmed:
            return None
        with self._turn():
            item = self.ledger.delete_expense(item_id, table, index)
            if item is not None:
                self._persist()
        return item

    # ------------------------------------------------------------------
    # Money inputs and month filter
    # ------------------------------------------------------------------

    def update_scalars(self, table: str, **values: Any) -> Dict[str, float]:
        """Store salary, payroll balance and/or cash on hand for one table.

        With a month filter the figures are that month's. Without one the
        figure shown is the all-months total, so the current month absorbs
        the difference between the entered total and the saved one.

        Example:
            >>> app.update_scalars('first', salary=20000, cash_money=500)
        """
        unknown = set(values) - set(SCALAR_SERIES)
        if unknown:
            raise ValidationError(f"Unknown money field(s): {', '.join(sorted(unknown))}", field='scalars')
        if table not in TABLES:
            raise ValidationError(f"Unknown table: {table!r}", field='table', value=table)

        month = self.filter_month or self.clock.current_month()
        with self._turn():
            for series, value in values.items():
                if value is None:
                    continue
                amount = coerce_number(value)
                record = self.partitions.read_scalars(series, month)
                if self.filter_month:
                    record[table] = amount
                else:
                    total = self.partitions.aggregate(series)[table]
                    record[table] += amount - total
                self.partitions.save_scalars(series, month, record)
            self._load_scalars()
        return {series: self.scalars[series][table] for series in SCALAR_SERIES}

    def set_filter(self, month: Optional[str]) -> None:
        """Show a single ``YYYY-MM`` month, or every month for ``None`` or ``''``."""
        month = month or None
        if month is not None and not MONTH_PATTERN.match(str(month)):
            raise ValidationError("Please choose a month as YYYY-MM.", field='month', value=month)
        with self._turn():
            self.filter_month = month
            save_settings(self.store, self.filter_month, origin=self.session_id)
            self._reload()
        logger.info("Month filter set to %s", self.filter_month or 'all months')

    def show_all_months(self) -> None:
        self.set_filter(None)

    # ------------------------------------------------------------------
    # Presets
    # ------------------------------------------------------------------

    def apply_preset(self, slot: Any, confirmed: bool = True) -> List[BudgetItem]:
        """Replace the viewed month's items with a preset's categories."""
        if not confirmed:
            return []
        with self._turn():
            created = self.presets.apply_preset(self.ledger, slot, self.filter_month)
            self._persist()
        logger.info("Applied preset %s (%d items)", slot, len(created))
        return created

    def save_current_as_preset(self, slot: Any, name: Optional[str] = None) -> Preset:
        with self._turn():
            preset = self.presets.save_current_as_preset(self.ledger, slot, name, self.filter_month)
        return preset

    def update_preset(self, slot: Any, name: str, first: List[Mapping[str, Any]], second: List[Mapping[str, Any]]) -> Preset:
        with self._turn():
            preset = self.presets.update_preset(slot, name, first, second)
        return preset

    def reset_preset_to_default(self, slot: Any, confirmed: bool = True) -> Optional[Preset]:
        if not confirmed:
            return None
        with self._turn():
            preset = self.presets.reset_preset_to_default(slot)
        return preset

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def clear_categories(self, confirmed: bool = True) -> int:
        """Remove every item of the viewed month (all months when unfiltered)."""
        if not confirmed:
            return 0
        with self._turn():
            removed = self.ledger.clear(self.filter_month)
            self._persist()
        return removed

    def clear_all_data(self, confirmed: bool = True) -> int:
        """Wipe items, money inputs, settings and presets from the store."""
        if not confirmed:
            return 0
        with self._turn():
            removed = self.partitions.clear_all()
            self.filter_month = None
            self.presets.reload()
            self._reload()
        logger.info("Cleared all data (%d records)", removed)
        return removed

    def import_csv(self, text: Union[str, bytes]) -> int:
        """Replace the ledger with the items in a CSV export.

        Raises:
            CsvImportError: If the file cannot be read; the ledger is left as is
        """
        tables = csv_io.import_csv(text)
        with self._turn():
            self.ledger.replace_all(tables)
            if self.filter_month:
                # imported months are replaced, not merged with what was saved
                touched = {self.partitions.month_key_of(item) for table in TABLES for item in tables.get(table, [])}
                self.partitions.save(self.ledger.tables, scope=touched | {self.filter_month})
            else:
                self._persist()
        count = csv_io.count_items(tables)
        logger.info("Imported %d item(s) from CSV", count)
        return count

    # ------------------------------------------------------------------
    # Shared preferences
    # ------------------------------------------------------------------

    def update_allocation_config(
        self,
        targets: Optional[Mapping[str, Any]] = None,
        caps: Optional[Mapping[str, Any]] = None,
    ) -> AllocationConfig:
        """Change allocation targets and/or caps; other sessions pick it up."""
        merged = self.allocation.to_dict()
        merged['targets'].update(targets or {})
        merged['caps'].update(caps or {})
        with self._turn():
            save_allocation_config(self.store, AllocationConfig.from_raw(merged), origin=self.session_id)
            self._reload_allocation()
        return self.allocation

    def toggle_dark_mode(self) -> bool:
        with self._turn():
            self.dark_mode = not self.dark_mode
            save_dark_mode(self.store, self.dark_mode, origin=self.session_id)
        return self.dark_mode

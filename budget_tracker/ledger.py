"""In-memory budget ledger: the two cutoff tables and their commands.

The ledger owns item order and the paid/unpaid state machine:

* Unpaid -> Paid: current expenses are parked in ``pre_paid_expenses`` and
  replaced by one synthetic expense for the full budget.
* Paid -> Unpaid: parked expenses are restored.
* Any expense add/edit/delete on a paid item drops the paid snapshot.

Operations on an unknown id are silent no-ops. Invalid user input raises
:class:`~budget_tracker.exceptions.ValidationError` before anything changes.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from .categorization import resolve_category_type
from .clock import Clock, SystemClock
from .exceptions import ValidationError
from .models import (
    DEFAULT_CATEGORY,
    DEFAULT_TYPE,
    TABLES,
    BudgetItem,
    Expense,
    check_table,
    generate_id,
)
from .normalization import coerce_date, coerce_number, normalize_expense
from .partitions import month_key_of


def _clean_expense(description: Any, date: Any, amount: Any) -> Expense:
    text = str(description or '').strip()
    value = coerce_number(amount)
    if not text or value <= 0:
        raise ValidationError("Please enter a valid description and amount.", field='expense')
    return Expense(description=text, date=coerce_date(date), amount=value)


def _unpay(item: BudgetItem) -> None:
    item.paid = False
    item.paid_at = ''
    item.pre_paid_expenses = None


class BudgetLedger:
    """Two ordered tables of budget items."""

    def __init__(
        self,
        first: Optional[Iterable[BudgetItem]] = None,
        second: Optional[Iterable[BudgetItem]] = None,
        clock: Optional[Clock] = None,
    ):
        self.clock = clock or SystemClock()
        self.tables: Dict[str, List[BudgetItem]] = {
            'first': list(first or []),
            'second': list(second or []),
        }

    # -- lookup ------------------------------------------------------------

    def items(self, table: str) -> List[BudgetItem]:
        return self.tables[check_table(table)]

    def all_items(self) -> List[BudgetItem]:
        return [item for table in TABLES for item in self.tables[table]]

    def find(self, item_id: str, table: str) -> Optional[BudgetItem]:
        return next((item for item in self.items(table) if item.id == item_id), None)

    def _index_of(self, item_id: str, table: str) -> int:
        for index, item in enumerate(self.items(table)):
            if item.id == item_id:
                return index
        return -1

    def month_key_of(self, item: BudgetItem) -> str:
        return month_key_of(item, self.clock.current_month())

    def filtered_view(self, table: str, filter_month: Optional[str] = None) -> List[BudgetItem]:
        """Items of ``table``, restricted to ``filter_month`` when one is set."""
        items = self.items(table)
        if not filter_month:
            return list(items)
        return [item for item in items if self.month_key_of(item) == filter_month]

    def replace_all(self, tables: Mapping[str, Iterable[BudgetItem]]) -> None:
        self.tables = {table: list(tables.get(table, [])) for table in TABLES}

    # -- item CRUD ---------------------------------------------------------

    def add_item(
        self,
        table: str,
        filter_month: Optional[str] = None,
        category: str = DEFAULT_CATEGORY,
        budget: float = 0,
        type: str = DEFAULT_TYPE,
    ) -> BudgetItem:
        """Append a new item dated to the filter month's first day, or today."""
        date = f"{filter_month}-01" if filter_month else self.clock.today_iso()
        item = BudgetItem(
            id=generate_id(),
            category=category,
            date=date,
            budget=coerce_number(budget),
            type=resolve_category_type(type, category),
        )
        self.items(table).append(item)
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
        category = str(category or '').strip()
        amount = coerce_number(budget)
        if not category:
            raise ValidationError("Please enter a category name.", field='category', value=category)
        if amount < 0:
            raise ValidationError("Budget cannot be negative.", field='budget', value=amount)

        item = self.find(item_id, table)
        if item is None:
            return None
        item.category = category
        item.date = coerce_date(date)
        item.budget = amount
        item.type = resolve_category_type(type, category)
        return item

    def delete_item(self, item_id: str, table: str) -> bool:
        items = self.items(table)
        remaining = [item for item in items if item.id != item_id]
        if len(remaining) == len(items):
            return False
        self.tables[table] = remaining
        return True

    def clear(self, filter_month: Optional[str] = None) -> int:
        """Remove the filter month's items from both tables (everything when unfiltered)."""
        removed = 0
        for table in TABLES:
            before = len(self.tables[table])
            if filter_month:
                self.tables[table] = [
                    item for item in self.tables[table] if self.month_key_of(item) != filter_month
                ]
            else:
                self.tables[table] = []
            removed += before - len(self.tables[table])
        return removed

    # -- ordering ----------------------------------------------------------

    def reorder(self, table: str, from_index: int, to_index: int) -> bool:
        """Move the item at ``from_index`` so it ends up at ``to_index``."""
        items = self.items(table)
        if not 0 <= from_index < len(items):
            return False
        moved = items.pop(from_index)
        items.insert(max(0, min(to_index, len(items))), moved)
        return True

    def move_up(self, item_id: str, table: str) -> bool:
        index = self._index_of(item_id, table)
        if index <= 0:
            return False
        items = self.items(table)
        items[index - 1], items[index] = items[index], items[index - 1]
        return True

    def move_down(self, item_id: str, table: str) -> bool:
        items = self.items(table)
        index = self._index_of(item_id, table)
        if index < 0 or index >= len(items) - 1:
            return False
        items[index], items[index + 1] = items[index + 1], items[index]
        return True

    # -- paid state --------------------------------------------------------

    def toggle_paid(self, item_id: str, table: str) -> Optional[BudgetItem]:
        item = self.find(item_id, table)
        if item is None:
            return None

        if item.paid:
            item.expenses = [normalize_expense(e) for e in (item.pre_paid_expenses or [])]
            _unpay(item)
        else:
            item.pre_paid_expenses = [normalize_expense(e) for e in item.expenses]
            item.expenses = [
                Expense(
                    description=item.category,
                    date=item.date or self.clock.today_iso(),
                    amount=coerce_number(item.budget),
                )
            ]
            item.paid = True
            item.paid_at = self.clock.timestamp()
        return item

    # -- expenses ----------------------------------------------------------

    def add_expense(self, item_id: str, table: str, description: Any, date: Any, amount: Any) -> Optional[BudgetItem]:
        expense = _clean_expense(description, date, amount)
        item = self.find(item_id, table)
        if item is None:
            return None
        item.expenses.append(expense)
        _unpay(item)
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
        expense = _clean_expense(description, date, amount)
        item = self.find(item_id, table)
        if item is None or not 0 <= index < len(item.expenses):
            return None
        item.expenses[index] = expense
        _unpay(item)
        return item

    def delete_expense(self, item_id: str, table: str, index: int) -> Optional[BudgetItem]:
        item = self.find(item_id, table)
        if item is None or not 0 <= index < len(item.expenses):
            return None
        del item.expenses[index]
        _unpay(item)
        return item

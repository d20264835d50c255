"""Financial metrics derived from ledger state.

Everything here is a pure function of the items and money figures passed
in: per-item spend/variance/percentage, per-table totals with status bands,
and the dashboard KPIs with allocation-health alerts.

Status bands by percentage of budget spent::

    < 80        safe
    80 .. <100  warning
    == 100      exact   (tables use |pct - 100| < 0.01)
    > 100       over
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

import numpy as np
import pandas as pd

from .categorization import allocation_group, resolve_category_type
from .defaults import get_tracker_config
from .models import ALLOCATION_GROUPS, BudgetItem
from .preferences import AllocationConfig

SAFE = 'safe'
WARNING = 'warning'
EXACT = 'exact'
OVER = 'over'

WARNING_THRESHOLD = 80.0
TABLE_EXACT_TOLERANCE = 0.01


@dataclass(frozen=True)
class ItemMetrics:
    item_id: str
    spent: float
    variance: float
    percentage: float
    status: str


@dataclass(frozen=True)
class TableTotals:
    table: str
    total_budget: float
    total_spent: float
    percentage: float
    status: str
    total_available: float
    remaining: float

    @property
    def is_negative(self) -> bool:
        return self.remaining < 0


@dataclass(frozen=True)
class Alert:
    kind: str  # 'warn' or 'good'
    text: str
    suggestion: str


@dataclass(frozen=True)
class AllocationLine:
    group: str
    actual_pct: float
    target_pct: float
    amount: float
    bar_width: float


@dataclass
class DashboardSummary:
    savings_rate: float
    essentials_ratio: float
    debt_ratio: float
    lifestyle_ratio: float
    budget_accuracy: float
    rollover: float
    total_available: float
    total_spent: float
    planned_total: float
    by_group: Dict[str, float] = field(default_factory=dict)
    allocation: List[AllocationLine] = field(default_factory=list)
    alerts: List[Alert] = field(default_factory=list)

    @property
    def total_spare(self) -> float:
        return self.total_available - self.total_spent


# ---------------------------------------------------------------------------
# Per item
# ---------------------------------------------------------------------------


def spent(item: BudgetItem) -> float:
    return sum(expense.amount for expense in item.expenses)


def variance(item: BudgetItem) -> float:
    return item.budget - spent(item)


def percentage(item: BudgetItem) -> float:
    """Share of the budget spent, 0 for a zero (or negative) budget."""
    if item.budget <= 0:
        return 0.0
    return spent(item) / item.budget * 100


def item_status(pct: float) -> str:
    if pct < WARNING_THRESHOLD:
        return SAFE
    if pct < 100:
        return WARNING
    if pct == 100:
        return EXACT
    return OVER


def table_status(pct: float) -> str:
    if pct < WARNING_THRESHOLD:
        return SAFE
    if abs(pct - 100) < TABLE_EXACT_TOLERANCE:
        return EXACT
    if pct < 100:
        return WARNING
    return OVER


def item_row(item: BudgetItem) -> ItemMetrics:
    pct = percentage(item)
    return ItemMetrics(
        item_id=item.id,
        spent=spent(item),
        variance=variance(item),
        percentage=pct,
        status=item_status(pct),
    )


# ---------------------------------------------------------------------------
# Per table
# ---------------------------------------------------------------------------


def table_totals(table: str, items: Iterable[BudgetItem], available: float = 0.0) -> TableTotals:
    """Budget, spend and remaining money for one table.

    ``available`` is that table's salary + payroll balance + cash.
    """
    items = list(items)
    total_budget = sum(item.budget for item in items)
    total_spent = sum(spent(item) for item in items)
    pct = total_spent / total_budget * 100 if total_budget > 0 else 0.0
    return TableTotals(
        table=table,
        total_budget=total_budget,
        total_spent=total_spent,
        percentage=pct,
        status=table_status(pct),
        total_available=available,
        remaining=available - total_spent,
    )


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


def items_frame(items: Iterable[BudgetItem]) -> pd.DataFrame:
    """One row per item with its allocation group, budget and spend."""
    rows = []
    for item in items:
        category_type = resolve_category_type(item.type, item.category)
        rows.append({
            'id': item.id,
            'category': item.category,
            'type': category_type,
            'group': allocation_group(category_type),
            'budget': float(item.budget),
            'spent': float(spent(item)),
        })
    return pd.DataFrame(rows, columns=['id', 'category', 'type', 'group', 'budget', 'spent'])


def group_spending(items: Iterable[BudgetItem]) -> pd.Series:
    """Spend per allocation group, all six groups present."""
    frame = items_frame(items)
    groups = list(ALLOCATION_GROUPS)
    if frame.empty:
        return pd.Series(0.0, index=groups, name='spent')
    return frame.groupby('group')['spent'].sum().reindex(groups, fill_value=0.0).astype(float)


def _share(amount: float, total: float) -> float:
    return amount / total * 100 if total > 0 else 0.0


def budget_accuracy(planned_total: float, spent_total: float) -> float:
    if planned_total <= 0:
        return 0.0
    return max(0.0, 100 - abs(planned_total - spent_total) / planned_total * 100)


def allocation_lines(
    by_group: Mapping[str, float],
    total_available: float,
    targets: Mapping[str, float],
) -> List[AllocationLine]:
    """Actual vs target percent of available money for each group."""
    lines = []
    for group, target in targets.items():
        amount = float(by_group.get(group, 0.0))
        actual = _share(amount, total_available)
        lines.append(AllocationLine(
            group=group,
            actual_pct=actual,
            target_pct=float(target),
            amount=amount,
            bar_width=float(np.clip(actual, 0.0, 100.0)),
        ))
    return lines


def build_alerts(
    savings_rate: float,
    essentials_ratio: float,
    debt_ratio: float,
    lifestyle_ratio: float,
    caps: Mapping[str, float],
) -> List[Alert]:
    """Every applicable allocation warning, or a single 'healthy' note."""
    config = get_tracker_config()
    texts = config['alerts']
    floor = config['constants']['savings_rate_floor']
    default_caps = config['category_caps']

    def cap(group: str) -> float:
        return float(caps.get(group, default_caps[group]))

    def warn(key: str, **values) -> Alert:
        return Alert('warn', texts[key]['text'].format(**values), texts[key]['suggestion'])

    alerts = []
    if savings_rate < floor:
        alerts.append(warn('low_savings', floor=floor))
    if essentials_ratio > cap('essentials'):
        alerts.append(warn('essentials_cap', cap=f"{cap('essentials'):g}"))
    if debt_ratio > cap('debt'):
        alerts.append(warn('debt_cap', cap=f"{cap('debt'):g}"))
    if lifestyle_ratio > cap('lifestyle'):
        alerts.append(warn('lifestyle_cap', cap=f"{cap('lifestyle'):g}"))

    if not alerts:
        alerts.append(Alert('good', texts['healthy']['text'], texts['healthy']['suggestion']))
    return alerts


def dashboard(
    items: Iterable[BudgetItem],
    total_available: float,
    rollover: float = 0.0,
    config: Optional[AllocationConfig] = None,
) -> DashboardSummary:
    """KPIs and health alerts over the visible items of both tables."""
    items = list(items)
    config = config or AllocationConfig()
    by_group = group_spending(items)

    total_spent = float(by_group.sum())
    planned_total = sum(item.budget for item in items)

    savings_rate = _share(by_group['savings'] + by_group['investing'], total_available)
    essentials_ratio = _share(by_group['essentials'], total_available)
    debt_ratio = _share(by_group['debt'], total_available)
    lifestyle_ratio = _share(by_group['lifestyle'], total_available)

    return DashboardSummary(
        savings_rate=savings_rate,
        essentials_ratio=essentials_ratio,
        debt_ratio=debt_ratio,
        lifestyle_ratio=lifestyle_ratio,
        budget_accuracy=budget_accuracy(planned_total, total_spent),
        rollover=rollover,
        total_available=total_available,
        total_spent=total_spent,
        planned_total=planned_total,
        by_group={group: float(value) for group, value in by_group.items()},
        allocation=allocation_lines(by_group, total_available, config.targets),
        alerts=build_alerts(savings_rate, essentials_ratio, debt_ratio, lifestyle_ratio, config.caps),
    )

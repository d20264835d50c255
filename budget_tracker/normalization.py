"""Normalization and schema migration of persisted records.

Everything read back from the store passes through here before it reaches
the ledger. The functions never raise on malformed input: missing fields
get defaults, non-numeric amounts become zero and unknown payload shapes
become empty tables.

Month payloads have gone through three shapes::

    v1  {"first": [...], "second": [...]}
    v2  {"version": n, "data": {"first": [...], "second": [...]}}
    v3  {"schemaVersion": 3, "tables": {"first": [...], "second": [...]}}

:func:`upgrade_payload` walks a payload up one version at a time.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .categorization import resolve_category_type
from .models import (
    SCHEMA_VERSION,
    TABLES,
    BudgetItem,
    Expense,
    empty_tables,
    generate_id,
)

logger = logging.getLogger(__name__)

UNKNOWN_SCHEMA = 0


# ---------------------------------------------------------------------------
# Scalar coercion
# ---------------------------------------------------------------------------


def coerce_number(value: Any, default: float = 0.0) -> float:
    """Convert ``value`` to a finite float, or return ``default``."""
    if value is None:
        return default
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return default
        try:
            number = float(text)
        except ValueError:
            return default
    else:
        return default
    return number if math.isfinite(number) else default


def coerce_text(value: Any) -> str:
    if value is None:
        return ''
    return str(value)


def coerce_date(value: Any) -> str:
    return value if isinstance(value, str) else ''


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def normalize_expense(raw: Union[Mapping[str, Any], Expense, None] = None) -> Expense:
    if isinstance(raw, Expense):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        raw = {}
    return Expense(
        description=coerce_text(raw.get('description')),
        date=coerce_date(raw.get('date')),
        amount=coerce_number(raw.get('amount')),
    )


def normalize_expenses(raw: Any) -> List[Expense]:
    if not isinstance(raw, list):
        return []
    return [normalize_expense(entry) for entry in raw if isinstance(entry, (Mapping, Expense))]


def normalize_budget_item(raw: Union[Mapping[str, Any], BudgetItem, None] = None) -> BudgetItem:
    """Repair a stored budget item into its canonical shape.

    Negative budgets are kept as-is; only non-numeric budgets are replaced
    with zero. ``prePaidExpenses`` survives only when it is a list.
    """
    if isinstance(raw, BudgetItem):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        raw = {}

    category = coerce_text(raw.get('category'))
    pre_paid = raw.get('prePaidExpenses')

    return BudgetItem(
        id=coerce_text(raw.get('id')) or generate_id(),
        category=category,
        date=coerce_date(raw.get('date')),
        budget=coerce_number(raw.get('budget')),
        type=resolve_category_type(raw.get('type'), category),
        expenses=normalize_expenses(raw.get('expenses')),
        paid=bool(raw.get('paid')),
        paid_at=coerce_text(raw.get('paidAt')),
        pre_paid_expenses=normalize_expenses(pre_paid) if isinstance(pre_paid, list) else None,
    )


# ---------------------------------------------------------------------------
# Month payload schema
# ---------------------------------------------------------------------------


def detect_schema_version(raw: Any) -> int:
    """Tag a raw payload with the schema version its shape belongs to."""
    if not isinstance(raw, Mapping):
        return UNKNOWN_SCHEMA
    if isinstance(raw.get('tables'), Mapping):
        return 3
    if isinstance(raw.get('data'), Mapping):
        return 2
    return 1


def _upgrade_v1_to_v2(raw: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        'version': 2,
        'data': {table: raw.get(table) for table in TABLES},
    }


def _upgrade_v2_to_v3(raw: Mapping[str, Any]) -> Dict[str, Any]:
    data = raw.get('data') or {}
    return {
        'schemaVersion': 3,
        'tables': {table: data.get(table) for table in TABLES},
    }


_UPGRADES: Dict[int, Callable[[Mapping[str, Any]], Dict[str, Any]]] = {
    1: _upgrade_v1_to_v2,
    2: _upgrade_v2_to_v3,
}


def upgrade_payload(raw: Any) -> Dict[str, Any]:
    """Bring a raw payload of any known shape up to the current schema."""
    version = detect_schema_version(raw)
    if version == UNKNOWN_SCHEMA:
        return {'schemaVersion': SCHEMA_VERSION, 'tables': {table: [] for table in TABLES}}

    payload: Mapping[str, Any] = raw
    while version < SCHEMA_VERSION:
        payload = _UPGRADES[version](payload)
        version += 1
    return dict(payload)


def normalize_month_payload(raw: Any) -> Dict[str, List[BudgetItem]]:
    """Normalize any stored month payload into ``{'first': [...], 'second': [...]}``."""
    tables = upgrade_payload(raw).get('tables') or {}
    normalized = empty_tables()
    for table in TABLES:
        entries = tables.get(table)
        if not isinstance(entries, list):
            continue
        normalized[table] = [
            normalize_budget_item(entry)
            for entry in entries
            if isinstance(entry, (Mapping, BudgetItem))
        ]
    return normalized


def serialize_month_payload(tables: Mapping[str, List[BudgetItem]]) -> Dict[str, Any]:
    """Build the current-schema payload for one month partition."""
    return {
        'schemaVersion': SCHEMA_VERSION,
        'tables': {
            table: [normalize_budget_item(item).to_dict() for item in tables.get(table, [])]
            for table in TABLES
        },
    }


def parse_month_payload(text: Optional[str]) -> Dict[str, List[BudgetItem]]:
    """Parse stored JSON text; malformed text reads as an empty month."""
    if not text:
        return empty_tables()
    try:
        raw = json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        logger.warning("Discarding malformed month payload: %s", exc)
        return empty_tables()
    return normalize_month_payload(raw)

"""Core data model: expenses, budget items and the two cutoff tables."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .defaults import get_tracker_config
from .exceptions import ValidationError

_CONFIG = get_tracker_config()

TABLES = ('first', 'second')
CATEGORY_TYPES = tuple(_CONFIG['category_types'])
ALLOCATION_GROUPS = tuple(_CONFIG['allocation_targets'].keys())
SCHEMA_VERSION = int(_CONFIG['constants']['schema_version'])
DEFAULT_CATEGORY = _CONFIG['constants']['default_category']
DEFAULT_TYPE = _CONFIG['constants']['default_type']


def generate_id() -> str:
    """Return an opaque identifier unique across tables and months."""
    return uuid.uuid4().hex


def check_table(table: str) -> str:
    if table not in TABLES:
        raise ValidationError(f"Unknown table: {table!r}", field='table', value=table)
    return table


def empty_tables() -> Dict[str, List['BudgetItem']]:
    return {table: [] for table in TABLES}


@dataclass
class Expense:
    """A single logged expense line owned by a budget item."""
    description: str = ''
    date: str = ''
    amount: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'description': self.description,
            'date': self.date,
            'amount': self.amount,
        }


@dataclass
class BudgetItem:
    """A budget category row in one of the cutoff tables.

    ``date`` decides which month partition the item is saved into.
    ``pre_paid_expenses`` is only set while ``paid`` is true.
    """
    id: str
    category: str
    date: str = ''
    budget: float = 0.0
    type: str = DEFAULT_TYPE
    expenses: List[Expense] = field(default_factory=list)
    paid: bool = False
    paid_at: str = ''
    pre_paid_expenses: Optional[List[Expense]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialise using the persisted (camelCase) field names."""
        payload: Dict[str, Any] = {
            'id': self.id,
            'category': self.category,
            'date': self.date,
            'budget': self.budget,
            'type': self.type,
            'expenses': [expense.to_dict() for expense in self.expenses],
            'paid': self.paid,
            'paidAt': self.paid_at,
        }
        if self.pre_paid_expenses is not None:
            payload['prePaidExpenses'] = [expense.to_dict() for expense in self.pre_paid_expenses]
        return payload

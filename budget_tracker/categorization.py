"""Category type inference and allocation grouping.

This module infers the category kind of a budget item from its name and
maps the seven category kinds onto the six allocation groups used by the
budget-health checks.
"""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

from .defaults import get_tracker_config
from .models import CATEGORY_TYPES, DEFAULT_TYPE


def _get_keyword_rules() -> List[Tuple[str, List[str]]]:
    """Get keyword rules from configuration, in priority order."""
    rules = get_tracker_config()['keyword_rules']
    return [(rule['type'], [kw.lower() for kw in rule['keywords']]) for rule in rules]


def _get_group_map() -> Dict[str, str]:
    return get_tracker_config()['allocation_groups']


def infer_category_type(category_name: Any = '') -> str:
    """Infer the category kind of a budget item from its name.

    Rules are tested in a fixed priority order because a name can match
    several keyword sets ("Credit Card Savings" is savings, not debt).

    Args:
        category_name: The category name to inspect (non-strings are
            converted, ``None`` is treated as empty)

    Returns:
        One of the recognised category kinds

    Example:
        >>> infer_category_type('Monthly Rent')
        'fixed'
        >>> infer_category_type('Car Loan')
        'debt'
        >>> infer_category_type('Unlabeled Thing')
        'essential'
    """
    text = str(category_name or '').lower()

    for category_type, keywords in _get_keyword_rules():
        for keyword in keywords:
            if keyword in text:
                return category_type

    return DEFAULT_TYPE


def resolve_category_type(category_type: Any, category_name: Any = '') -> str:
    """Keep a recognised kind verbatim, otherwise infer it from the name."""
    if isinstance(category_type, str) and category_type in CATEGORY_TYPES:
        return category_type
    return infer_category_type(category_name)


def allocation_group(category_type: str) -> str:
    """Map a category kind onto its allocation group.

    Example:
        >>> allocation_group('fixed')
        'essentials'
        >>> allocation_group('investing')
        'investing'
    """
    return _get_group_map().get(category_type, 'lifestyle')

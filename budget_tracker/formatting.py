"""Formatting utilities for currency, percentages and dates."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

from .defaults import get_config_value

CURRENCY_SYMBOL = get_config_value('tracker', 'constants', 'currency_symbol', default='₱')


def format_currency(amount: Union[float, int], include_sign: bool = True) -> str:
    """Format a currency amount with thousands separators.

    Negative amounts keep the minus sign in front of the currency symbol.

    Args:
        amount: The amount to format
        include_sign: Whether to include the currency symbol

    Returns:
        Formatted currency string (e.g., "₱1,234.56" or "1,234.56")

    Example:
        >>> format_currency(1234.56)
        '₱1,234.56'
        >>> format_currency(-50)
        '-₱50.00'
    """
    formatted = f"{abs(amount):,.2f}"
    if include_sign:
        formatted = f"{CURRENCY_SYMBOL}{formatted}"
    return f"-{formatted}" if amount < 0 else formatted


def format_percent(value: float, decimals: int = 1) -> str:
    """Format a percentage, e.g. ``format_percent(82.345) == '82.3%'``."""
    return f"{value:.{decimals}f}%"


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.strptime(value[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def format_day_weekday(value: Optional[str]) -> str:
    """Render an ISO date as day of month and weekday.

    Unparseable input is returned unchanged so the user still sees it.

    Example:
        >>> format_day_weekday('2025-07-24')
        '24-Thursday'
    """
    parsed = parse_iso_date(value)
    if parsed is None:
        return value or ''
    return f"{parsed.day}-{parsed.strftime('%A')}"


def format_month_label(month: Optional[str]) -> str:
    """Human label for a ``YYYY-MM`` filter value; ``None`` means all months.

    Example:
        >>> format_month_label('2025-07')
        'July 2025'
    """
    if not month:
        return "All months"
    try:
        return datetime.strptime(month, "%Y-%m").strftime("%B %Y")
    except ValueError:
        return month

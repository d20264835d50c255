"""Injectable clock.

Ledger, partition and preset code never call ``date.today()`` directly;
they receive a :class:`Clock` so tests can pin "today" and "now".
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone


class Clock(ABC):
    """Abstract clock interface."""

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time (timezone-aware)."""
        ...

    def today(self) -> date:
        return self.now().date()

    def today_iso(self) -> str:
        """Today as ``YYYY-MM-DD``."""
        return self.today().isoformat()

    def current_month(self) -> str:
        """Current month as ``YYYY-MM``."""
        return self.today_iso()[:7]

    def timestamp(self) -> str:
        """Current time as an ISO-8601 string."""
        return self.now().isoformat()


class SystemClock(Clock):
    """Production clock that returns actual system time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Test clock with controlled time.

    Naive datetimes are treated as UTC. ``advance_to`` moves the clock.
    """

    def __init__(self, current: datetime):
        self._current = self._aware(current)

    @staticmethod
    def _aware(value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def now(self) -> datetime:
        return self._current

    def advance_to(self, value: datetime) -> None:
        self._current = self._aware(value)

"""Typed exception hierarchy for the budget tracker.

Every error the core raises derives from :class:`BudgetTrackerError` and
also from the builtin it specialises, so callers can catch either::

    BudgetTrackerError (base)
    |
    +-- ValidationError        (ValueError)  rejected user input, no state change
    +-- StorageError           (OSError)     key-value store unavailable or write rejected
    +-- PresetNotFoundError    (KeyError)    preset slot holds no preset
    +-- CsvImportError         (ValueError)  CSV text could not be read at all

Not-found ids are not errors: ledger operations on a stale id are no-ops.
"""

from __future__ import annotations

from typing import Any, Optional


class BudgetTrackerError(Exception):
    """Base class for all budget tracker errors."""

    code: str = "BUDGET_TRACKER_ERROR"


class ValidationError(BudgetTrackerError, ValueError):
    """User-supplied values failed validation."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message)


class StorageError(BudgetTrackerError, OSError):
    """The key-value store could not complete a read or write."""

    code: str = "STORAGE_ERROR"

    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        super().__init__(message)


class PresetNotFoundError(BudgetTrackerError, KeyError):
    """No preset is stored in the requested slot."""

    code: str = "PRESET_NOT_FOUND"

    def __init__(self, slot: Any):
        self.slot = slot
        super().__init__(f"Preset not found: {slot}")

    def __str__(self) -> str:
        return f"Preset not found: {self.slot}"


class CsvImportError(BudgetTrackerError, ValueError):
    """The uploaded CSV could not be parsed."""

    code: str = "CSV_IMPORT_ERROR"

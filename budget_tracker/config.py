"""Configuration management for the budget tracker.

This module centralizes filesystem locations and environment variable
overrides. Domain defaults (keyword rules, allocation targets, factory
presets) live in :mod:`budget_tracker.defaults`.
"""

from __future__ import annotations

import os
from pathlib import Path

# Base project root - assumes this file is in budget_tracker/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directory
DATA_DIR = Path(os.getenv("BUDGET_TRACKER_DATA_DIR", _PROJECT_ROOT / "data"))

# Key-value store backing every persisted record
STORE_PATH = Path(
    os.getenv("BUDGET_TRACKER_STORE_PATH", DATA_DIR / "budget_tracker.db")
).resolve()

# Logging
LOG_LEVEL = os.getenv("BUDGET_TRACKER_LOG_LEVEL", "INFO")


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, STORE_PATH.parent]:
        directory.mkdir(parents=True, exist_ok=True)


def get_store_path() -> str:
    """Get the store path as a string."""
    return str(STORE_PATH)

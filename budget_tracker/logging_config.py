"""Logging setup for the budget tracker.

Modules log through ``logging.getLogger(__name__)``; this module only
configures the ``budget_tracker`` logger hierarchy once per process.
"""

from __future__ import annotations

import logging
from typing import Optional

from .config import LOG_LEVEL

_LOGGER_PREFIX = "budget_tracker"
_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_configured = False


def configure_logging(level: Optional[str] = None, handler: Optional[logging.Handler] = None) -> logging.Logger:
    """Attach a stream handler to the package logger.

    Safe to call repeatedly; only the first call installs a handler.
    Explicit ``level`` wins over ``BUDGET_TRACKER_LOG_LEVEL``.
    """
    global _configured
    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel((level or LOG_LEVEL).upper())
    if not _configured:
        target = handler or logging.StreamHandler()
        target.setFormatter(logging.Formatter(_LOG_FORMAT))
        root_logger.addHandler(target)
        root_logger.propagate = False
        _configured = True
    return root_logger


def reset_logging() -> None:
    """Remove installed handlers (used by tests)."""
    global _configured
    root_logger = logging.getLogger(_LOGGER_PREFIX)
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.propagate = True
    _configured = False

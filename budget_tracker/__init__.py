"""Top-level package for the Budget Tracker.

A personal budget tracker with two cutoff tables (1st-15th and 16th-end
of month), stored one calendar month at a time. The primary modules are:

* ``app`` - the session service that every UI action goes through
* ``ledger`` - the in-memory tables and their commands
* ``partitions`` - month-partitioned persistence on a key-value store
* ``metrics`` - per-item, per-table and dashboard figures
* ``presets`` - named budget templates
* ``visualization`` - functions that generate Plotly figures
* ``dashboard`` - a Streamlit app that ties everything together

To run the tracker from the command line you can execute:

```bash
python run_budget_tracker.py
```

The Streamlit UI is not imported here so the core can be used (and
tested) without a running Streamlit server.
"""

from .app import BudgetTrackerApp, TrackerView
from .storage import MemoryKeyValueStore, SqliteKeyValueStore

__all__ = ["BudgetTrackerApp", "TrackerView", "MemoryKeyValueStore", "SqliteKeyValueStore"]

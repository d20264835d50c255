#!/usr/bin/env python3
"""Show persisted month partitions: item counts, money available and rollover."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

import pandas as pd

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from budget_tracker.config import get_store_path
from budget_tracker.models import TABLES
from budget_tracker.partitions import SCALAR_SERIES, MonthPartitionManager
from budget_tracker.storage import SqliteKeyValueStore


def month_summary(manager: MonthPartitionManager) -> pd.DataFrame:
    rows = []
    for month in manager.list_months():
        tables = manager.read_month(month)
        available = sum(
            sum(manager.read_scalars(series, month).values()) for series in SCALAR_SERIES
        )
        spent = sum(e.amount for table in TABLES for item in tables[table] for e in item.expenses)
        rows.append({
            'Month': month,
            'First items': len(tables['first']),
            'Second items': len(tables['second']),
            'Available': available,
            'Spent': spent,
            'Rollover': manager.rollover(month),
        })
    return pd.DataFrame(rows, columns=['Month', 'First items', 'Second items', 'Available', 'Spent', 'Rollover'])


def main(db_path: Optional[str] = None) -> int:
    manager = MonthPartitionManager(SqliteKeyValueStore(db_path))
    summary = month_summary(manager)
    if summary.empty:
        print(f"No months saved yet in {db_path or get_store_path()}.")
        return 0

    print(f"Months saved: {len(summary)}")
    print(summary.to_string(index=False, float_format=lambda value: f"{value:,.2f}"))
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='List persisted budget months.')
    parser.add_argument('--db', default=None, help='Path to the store (defaults to BUDGET_TRACKER_STORE_PATH)')
    args = parser.parse_args()
    raise SystemExit(main(db_path=args.db))

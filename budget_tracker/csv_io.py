"""CSV export and import of both budget tables.

Layout (every field quoted on export)::

    Table, Category, Type, Date, Budget, Expense Description, Expense Date, Expense Amount

An item without expenses is written as one row with empty expense fields and
an amount of 0. Import also accepts the older seven-column layout that has
no ``Type`` column; the layout is decided per row by its width.
"""

from __future__ import annotations

import csv
import io
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Union

import pandas as pd

from .categorization import resolve_category_type
from .exceptions import CsvImportError
from .models import TABLES, BudgetItem, Expense, empty_tables, generate_id
from .normalization import coerce_number

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    'Table',
    'Category',
    'Type',
    'Date',
    'Budget',
    'Expense Description',
    'Expense Date',
    'Expense Amount',
]

_FIELDS = ['table', 'category', 'type', 'date', 'budget', 'description', 'expense_date', 'amount']
_LEGACY_FIELDS = ['table', 'category', 'date', 'budget', 'description', 'expense_date', 'amount']


def export_frame(tables: Mapping[str, Iterable[BudgetItem]]) -> pd.DataFrame:
    """Flatten both tables into one row per expense."""
    rows = []
    for table in TABLES:
        for item in tables.get(table, []):
            base = [
                table,
                item.category,
                resolve_category_type(item.type, item.category),
                item.date or '',
                item.budget,
            ]
            if item.expenses:
                for expense in item.expenses:
                    rows.append(base + [expense.description, expense.date or '', expense.amount])
            else:
                rows.append(base + ['', '', 0])
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def export_csv(tables: Mapping[str, Iterable[BudgetItem]]) -> str:
    return export_frame(tables).to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator='\n')


def _read_rows(text: Union[str, bytes]) -> List[List[str]]:
    if isinstance(text, bytes):
        try:
            text = text.decode('utf-8-sig')
        except UnicodeDecodeError as e:
            raise CsvImportError(f"CSV file is not valid UTF-8: {e}") from e
    try:
        return [[field.strip() for field in row] for row in csv.reader(io.StringIO(text))]
    except csv.Error as e:
        raise CsvImportError(f"Could not parse CSV file: {e}") from e


def _records(rows: List[List[str]]) -> pd.DataFrame:
    """Map each data row onto named fields, skipping rows too short to use."""
    records = []
    for row in rows[1:]:
        if len(row) < len(_LEGACY_FIELDS) or not row[0]:
            continue
        if len(row) >= len(_FIELDS):
            record = dict(zip(_FIELDS, row))
        else:
            record = dict(zip(_LEGACY_FIELDS, row), type='')
        records.append(record)
    return pd.DataFrame(records, columns=_FIELDS)


def import_csv(text: Union[str, bytes]) -> Dict[str, List[BudgetItem]]:
    """Parse exported CSV text back into tables of fresh items.

    Rows are grouped into items by (table, category, date) in the order they
    first appear. Rows naming an unknown table are dropped.

    Raises:
        CsvImportError: If the text cannot be decoded or tokenized
    """
    frame = _records(_read_rows(text))
    tables = empty_tables()
    if frame.empty:
        return tables

    dropped = 0
    for (table, category, date), group in frame.groupby(['table', 'category', 'date'], sort=False):
        if table not in TABLES:
            dropped += 1
            continue
        first = group.iloc[0]
        expenses = [
            Expense(description=row.description, date=row.expense_date, amount=coerce_number(row.amount))
            for row in group.itertuples(index=False)
            if row.description.strip()
        ]
        tables[table].append(BudgetItem(
            id=generate_id(),
            category=category,
            date=date,
            budget=coerce_number(first['budget']),
            type=resolve_category_type(first['type'], category),
            expenses=expenses,
        ))

    if dropped:
        logger.info("Skipped %d imported item(s) with an unknown table", dropped)
    return tables


def count_items(tables: Mapping[str, Iterable[BudgetItem]], table: Optional[str] = None) -> int:
    names = [table] if table else TABLES
    return sum(len(list(tables.get(name, []))) for name in names)

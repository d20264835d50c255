import pytest

from conftest import make_item

from budget_tracker.csv_io import CSV_COLUMNS, export_csv, import_csv
from budget_tracker.exceptions import CsvImportError


def _tuples(tables):
    return sorted(
        (
            table,
            item.category,
            item.type,
            item.date,
            item.budget,
            tuple((e.description, e.date, e.amount) for e in item.expenses),
        )
        for table, items in tables.items()
        for item in items
    )


def test_export_quotes_every_field():
    text = export_csv({'first': [make_item('a', 'Rent', budget=1000, type='fixed')], 'second': []})
    lines = text.splitlines()

    assert lines[0] == ','.join(f'"{column}"' for column in CSV_COLUMNS)
    assert lines[1].startswith('"first","Rent","fixed","2025-07-01",')
    assert lines[1].endswith(',"","","0"') or lines[1].endswith(',"","","0.0"')


def test_round_trip_preserves_items():
    tables = {
        'first': [
            make_item('a', 'Rent', budget=12000, type='fixed', expenses=[('July rent', 11500.5)]),
            make_item('b', 'Groceries, market', budget=500, expenses=[('Veg "fresh"', 45), ('Rice', 30)]),
        ],
        'second': [make_item('c', 'Movies', date='', budget=300, type='lifestyle')],
    }

    restored = import_csv(export_csv(tables))

    assert _tuples(restored) == _tuples(tables)
    assert restored['first'][0].id != 'a'


def test_legacy_seven_column_rows():
    text = (
        'Table,Category,Date,Budget,Expense Description,Expense Date,Expense Amount\n'
        'first,Car Loan,2025-07-01,2500,Payment,2025-07-05,2500\n'
        'second,Dining,2025-07-16,800,,,0\n'
    )
    tables = import_csv(text)

    loan = tables['first'][0]
    assert (loan.category, loan.type, loan.budget) == ('Car Loan', 'debt', 2500.0)
    assert [(e.description, e.amount) for e in loan.expenses] == [('Payment', 2500.0)]
    assert tables['second'][0].type == 'lifestyle'
    assert tables['second'][0].expenses == []


def test_rows_are_grouped_and_filtered():
    text = (
        'Table,Category,Type,Date,Budget,Expense Description,Expense Date,Expense Amount\n'
        'first,Food,essential,2025-07-01,500,Milk,2025-07-02,3\n'
        'first,Food,essential,2025-07-01,500,Bread,2025-07-03,abc\n'
        'first,Food,essential,2025-07-01,500,   ,2025-07-03,9\n'
        'third,Mystery,essential,2025-07-01,10,,,0\n'
        ',Blank table,essential,2025-07-01,10,,,0\n'
        'first,Too short\n'
        '\n'
    )
    tables = import_csv(text)

    assert len(tables['first']) == 1
    assert tables['second'] == []
    food = tables['first'][0]
    assert [(e.description, e.amount) for e in food.expenses] == [('Milk', 3.0), ('Bread', 0.0)]


def test_header_only_file_gives_empty_tables():
    assert import_csv(','.join(CSV_COLUMNS) + '\n') == {'first': [], 'second': []}


def test_undecodable_file_raises():
    with pytest.raises(CsvImportError):
        import_csv(b'\xff\xfe\x00broken')

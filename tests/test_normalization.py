import json

from budget_tracker.models import BudgetItem, Expense
from budget_tracker.normalization import (
    coerce_number,
    detect_schema_version,
    normalize_budget_item,
    normalize_month_payload,
    parse_month_payload,
    serialize_month_payload,
)


def _raw_item():
    return {
        'id': 'rent-1',
        'category': 'Monthly Rent',
        'date': '2025-07-01',
        'budget': '12000',
        'expenses': [
            {'description': 'July rent', 'date': '2025-07-02', 'amount': '11500.5'},
            'not an expense',
            {'description': 'Late fee', 'amount': None},
        ],
        'paid': 1,
        'paidAt': '2025-07-02T09:00:00+00:00',
        'prePaidExpenses': 'oops',
    }


def test_normalize_budget_item_repairs_fields():
    item = normalize_budget_item(_raw_item())

    assert item.budget == 12000.0
    assert item.type == 'fixed'
    assert item.paid is True
    assert item.pre_paid_expenses is None
    assert [e.amount for e in item.expenses] == [11500.5, 0.0]
    assert item.expenses[1].date == ''


def test_normalize_budget_item_is_idempotent():
    once = normalize_budget_item(_raw_item())
    twice = normalize_budget_item(once)
    from_dict = normalize_budget_item(once.to_dict())

    assert twice == once
    assert from_dict.to_dict() == once.to_dict()


def test_normalize_budget_item_defaults():
    item = normalize_budget_item({'budget': 'lots', 'date': 20250701})

    assert item.id
    assert item.category == ''
    assert item.date == ''
    assert item.budget == 0.0
    assert item.type == 'essential'
    assert item.expenses == []


def test_negative_budget_is_kept_when_loading():
    assert normalize_budget_item({'id': 'x', 'budget': -50}).budget == -50.0


def test_coerce_number_rejects_non_finite_values():
    assert coerce_number('abc') == 0.0
    assert coerce_number(float('nan')) == 0.0
    assert coerce_number('inf', default=1.5) == 1.5
    assert coerce_number(' 42 ') == 42.0


def test_detect_schema_version():
    assert detect_schema_version({'schemaVersion': 3, 'tables': {}}) == 3
    assert detect_schema_version({'version': 2, 'data': {}}) == 2
    assert detect_schema_version({'first': [], 'second': []}) == 1
    assert detect_schema_version(['first']) == 0


def test_legacy_payloads_upgrade_to_tables():
    item = {'id': 'a', 'category': 'Groceries', 'budget': 100}
    v1 = {'first': [item], 'second': []}
    v2 = {'version': 2, 'data': {'first': [], 'second': [item]}}

    assert [i.id for i in normalize_month_payload(v1)['first']] == ['a']
    assert [i.id for i in normalize_month_payload(v2)['second']] == ['a']


def test_unknown_payload_shapes_become_empty_tables():
    assert normalize_month_payload(None) == {'first': [], 'second': []}
    assert normalize_month_payload({'tables': {'first': 'nope'}}) == {'first': [], 'second': []}


def test_malformed_json_reads_as_empty_month():
    assert parse_month_payload('{not json') == {'first': [], 'second': []}
    assert parse_month_payload(None) == {'first': [], 'second': []}


def test_serialized_payload_uses_current_schema():
    tables = {
        'first': [BudgetItem(id='a', category='Gas', expenses=[Expense('Fill up', '2025-07-03', 40)])],
        'second': [],
    }
    payload = serialize_month_payload(tables)

    assert payload['schemaVersion'] == 3
    assert payload['tables']['first'][0]['expenses'][0]['amount'] == 40
    assert 'prePaidExpenses' not in payload['tables']['first'][0]
    assert parse_month_payload(json.dumps(payload))['first'][0].category == 'Gas'

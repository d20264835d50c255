import pytest

from budget_tracker.categorization import allocation_group, infer_category_type, resolve_category_type


@pytest.mark.parametrize('name, expected', [
    ('Monthly Rent', 'fixed'),
    ('Netflix Subscription', 'lifestyle'),
    ('Car Loan', 'debt'),
    ('Unlabeled Thing', 'essential'),
    ('Credit Card Savings', 'savings'),
    ('Index Fund Investment', 'investing'),
    ('Emergency Fund', 'sinking'),
    ('DINING OUT', 'lifestyle'),
])
def test_infer_category_type(name, expected):
    assert infer_category_type(name) == expected


def test_infer_category_type_handles_missing_names():
    assert infer_category_type(None) == 'essential'
    assert infer_category_type() == 'essential'


def test_resolve_category_type_keeps_known_kinds():
    assert resolve_category_type('debt', 'Groceries') == 'debt'
    assert resolve_category_type('bogus', 'Car Loan') == 'debt'
    assert resolve_category_type(None, 'Rent') == 'fixed'


def test_allocation_group_mapping():
    assert allocation_group('fixed') == 'essentials'
    assert allocation_group('essential') == 'essentials'
    assert allocation_group('investing') == 'investing'
    assert allocation_group('unknown') == 'lifestyle'

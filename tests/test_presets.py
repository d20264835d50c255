import json

import pytest

from conftest import make_item

from budget_tracker.exceptions import PresetNotFoundError, ValidationError
from budget_tracker.ledger import BudgetLedger
from budget_tracker.partitions import PRESETS_KEY
from budget_tracker.presets import PresetEngine, factory_presets


@pytest.fixture
def engine(store, clock):
    return PresetEngine(store, clock)


def test_missing_record_is_seeded_with_factory_presets(engine, store):
    assert engine.labels() == {
        1: 'Essential Budget',
        2: 'Student Budget',
        3: 'Family Budget',
        4: 'Minimalist Budget',
        5: 'Custom Preset',
    }
    assert set(json.loads(store.get_item(PRESETS_KEY))) == {'1', '2', '3', '4', '5'}


def test_malformed_record_falls_back_to_factory(store, clock):
    store.set_item(PRESETS_KEY, '[not, valid')
    assert PresetEngine(store, clock).labels()[1] == 'Essential Budget'


def test_apply_preset_only_touches_filter_month(engine, clock):
    ledger = BudgetLedger(
        first=[make_item('june', 'Old rent', date='2025-06-01'), make_item('july', 'Gone', date='2025-07-03')],
        second=[make_item('july2', 'Also gone', date='2025-07-20')],
        clock=clock,
    )

    created = engine.apply_preset(ledger, 1, '2025-07')

    assert [i.id for i in ledger.filtered_view('first', '2025-06')] == ['june']
    assert [i.category for i in ledger.filtered_view('first', '2025-07')] == ['Groceries', 'Transportation']
    assert [i.category for i in ledger.items('second')] == ['Entertainment']
    assert {i.date for i in created} == {'2025-07-01'}
    assert ledger.items('second')[0].type == 'lifestyle'


def test_apply_preset_without_filter_replaces_everything(engine, clock):
    ledger = BudgetLedger(first=[make_item('june', 'Old rent', date='2025-06-01')], clock=clock)

    engine.apply_preset(ledger, 4)

    assert [i.category for i in ledger.all_items()] == ['Food', 'Rent', 'Savings']
    assert {i.date for i in ledger.all_items()} == {'2025-07-01'}
    assert [i.type for i in ledger.all_items()] == ['essential', 'fixed', 'savings']


def test_apply_unknown_preset(engine, clock):
    ledger = BudgetLedger(first=[make_item('a', 'Keep me')], clock=clock)
    with pytest.raises(PresetNotFoundError):
        engine.apply_preset(ledger, 9)
    assert len(ledger.all_items()) == 1


def test_save_current_as_preset(engine, store, clock):
    ledger = BudgetLedger(
        first=[make_item('a', 'Rent', budget=9000, type='fixed'), make_item('b', 'Old', date='2025-06-01')],
        second=[make_item('c', 'Car Loan', budget=2500, type='bogus')],
        clock=clock,
    )

    preset = engine.save_current_as_preset(ledger, 2, '  ', '2025-07')

    assert preset.name == 'Student Budget'
    assert [e.to_dict() for e in preset.first] == [{'category': 'Rent', 'budget': 9000, 'type': 'fixed'}]
    assert preset.second[0].type == 'debt'
    assert PresetEngine(store, clock).get(2).first[0].category == 'Rent'


def test_save_current_as_preset_rejects_bad_slot(engine, clock):
    with pytest.raises(ValidationError):
        engine.save_current_as_preset(BudgetLedger(clock=clock), 6, 'Nope')


def test_update_preset_drops_blank_rows(engine):
    preset = engine.update_preset(
        3,
        'Household',
        first=[{'category': 'Rent', 'budget': '12000'}, {'category': '   ', 'budget': 5}],
        second=[{'category': 'Fun', 'budget': 'abc', 'type': 'lifestyle'}],
    )

    assert preset.name == 'Household'
    assert [(e.category, e.budget) for e in preset.first] == [('Rent', 12000.0)]
    assert preset.second[0].budget == 0.0
    assert engine.labels()[3] == 'Household'

    with pytest.raises(ValidationError):
        engine.update_preset(3, '', first=[], second=[])


def test_reset_preset_to_default(engine):
    engine.update_preset(5, 'Mine', first=[], second=[])
    preset = engine.reset_preset_to_default(5)

    assert preset == factory_presets()[5]
    assert engine.labels()[5] == 'Custom Preset'

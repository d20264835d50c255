import json
import logging

from conftest import make_item

from budget_tracker.exceptions import StorageError
from budget_tracker.partitions import (
    ALLOCATION_KEY,
    DARK_MODE_KEY,
    MonthPartitionManager,
    month_key_of,
    persistence_key,
    previous_month,
    scalar_key,
)
from budget_tracker.storage import MemoryKeyValueStore


def test_keys_are_scoped_per_month_and_series():
    assert persistence_key('2025-07') == 'budget_tracker:month:2025-07'
    assert scalar_key('salary', '2025-07') == 'budget_tracker:salary:2025-07'
    assert scalar_key('cash_money', '2025-07') != scalar_key('payroll_balance', '2025-07')


def test_month_key_of_falls_back_to_current_month():
    assert month_key_of(make_item('a', 'X', date='2025-06-30'), '2025-07') == '2025-06'
    assert month_key_of(make_item('a', 'X', date=''), '2025-07') == '2025-07'
    assert month_key_of(make_item('a', 'X', date='June 3rd'), '2025-07') == '2025-07'
    assert month_key_of(make_item('a', 'X', date='2025-13-01'), '2025-07') == '2025-07'


def test_previous_month():
    assert previous_month('2025-01') == '2024-12'
    assert previous_month('2025-07') == '2025-06'
    assert previous_month('2025-13') is None
    assert previous_month(None) is None


def test_save_groups_items_by_their_own_date(store, clock):
    manager = MonthPartitionManager(store, clock)
    tables = {
        'first': [make_item('a', 'Rent', date='2025-07-01'), make_item('b', 'Gas', date='2025-08-02')],
        'second': [make_item('c', 'Fun', date='')],
    }

    assert manager.save(tables) == ['2025-07', '2025-08']
    assert manager.list_months() == ['2025-07', '2025-08']
    july = manager.read_month('2025-07')
    assert [i.id for i in july['first']] == ['a']
    assert [i.id for i in july['second']] == ['c']
    assert [i.id for i in manager.read_month('2025-08')['first']] == ['b']


def test_load_unfiltered_is_union_of_months(store, clock):
    manager = MonthPartitionManager(store, clock)
    manager.save({'first': [make_item('a', 'Rent', date='2025-06-01'), make_item('b', 'Gas', date='2025-07-02')], 'second': []})

    assert [i.id for i in manager.load()['first']] == ['a', 'b']
    assert [i.id for i in manager.load('2025-07')['first']] == ['b']


def test_in_scope_month_is_rewritten_even_when_empty(store, clock):
    manager = MonthPartitionManager(store, clock)
    manager.save({'first': [make_item('a', 'Rent', date='2025-07-01')], 'second': []})

    manager.save({'first': [], 'second': []}, scope=['2025-07'])

    assert manager.read_month('2025-07') == {'first': [], 'second': []}


def test_unfiltered_save_empties_months_without_items(store, clock):
    manager = MonthPartitionManager(store, clock)
    manager.save({'first': [make_item('a', 'Rent', date='2025-06-01')], 'second': []})

    manager.save({'first': [make_item('b', 'Gas', date='2025-07-01')], 'second': []})

    assert manager.read_month('2025-06')['first'] == []
    assert [i.id for i in manager.read_month('2025-07')['first']] == ['b']


def test_item_moved_out_of_filtered_month_merges_into_target(store, clock):
    manager = MonthPartitionManager(store, clock)
    manager.save({
        'first': [make_item('july', 'Rent', date='2025-07-01'), make_item('aug', 'Gas', date='2025-08-01')],
        'second': [],
    })

    moved = make_item('july', 'Rent', date='2025-08-15')
    manager.save({'first': [moved], 'second': []}, scope=['2025-07'])

    assert manager.read_month('2025-07')['first'] == []
    assert [i.id for i in manager.read_month('2025-08')['first']] == ['aug', 'july']


def test_rollover_is_available_minus_spent(store, clock):
    manager = MonthPartitionManager(store, clock)
    manager.save({'first': [make_item('a', 'Rent', date='2025-07-01', budget=1000, expenses=[('Rent', 500)])], 'second': []})
    manager.save_scalars('salary', '2025-07', {'first': 20000, 'second': 0})
    manager.save_scalars('payroll_balance', '2025-07', {'first': 0, 'second': 0})
    manager.save_scalars('cash_money', '2025-07', {'first': 0, 'second': 0})

    assert manager.rollover('2025-07') == 19500


def test_rollover_is_zero_without_data_or_on_bad_json(store, clock):
    manager = MonthPartitionManager(store, clock)
    assert manager.rollover('2025-05') == 0
    assert manager.rollover(None) == 0

    manager.save({'first': [make_item('a', 'Rent', date='2025-06-01')], 'second': []})
    store.set_item(scalar_key('salary', '2025-06'), '{broken')
    assert manager.rollover('2025-06') == 0


def test_scalars_per_month_and_aggregate(store, clock):
    manager = MonthPartitionManager(store, clock)
    manager.save_scalars('salary', '2025-06', {'first': 1000, 'second': 200})
    manager.save_scalars('salary', '2025-07', {'first': '3000', 'second': None})

    assert manager.load_scalars('salary', '2025-07') == {'first': 3000.0, 'second': 0.0}
    assert manager.load_scalars('salary') == {'first': 4000.0, 'second': 200.0}
    assert manager.read_scalars('cash_money', '2025-07') == {'first': 0.0, 'second': 0.0}


def test_clear_all_keeps_allocation_and_dark_mode(store, clock):
    manager = MonthPartitionManager(store, clock)
    manager.save({'first': [make_item('a', 'Rent', date='2025-07-01')], 'second': []})
    manager.save_scalars('salary', '2025-07', {'first': 1, 'second': 2})
    store.set_item('budget_tracker:settings', json.dumps({'activeFilterMonth': '2025-07'}))
    store.set_item(ALLOCATION_KEY, '{}')
    store.set_item(DARK_MODE_KEY, 'true')

    assert manager.clear_all() == 3
    assert store.keys() == [ALLOCATION_KEY, DARK_MODE_KEY]


class BrokenStore(MemoryKeyValueStore):
    def _write(self, key, value):
        raise StorageError("disk full", key=key)


def test_store_failures_are_logged_not_raised(clock, caplog):
    manager = MonthPartitionManager(BrokenStore(), clock)

    with caplog.at_level(logging.ERROR, logger='budget_tracker.partitions'):
        written = manager.save({'first': [make_item('a', 'Rent')], 'second': []})

    assert written == []
    assert 'disk full' in caplog.text

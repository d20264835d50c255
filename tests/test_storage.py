import gc

import pytest

from budget_tracker.storage import KeyValueStore, MemoryKeyValueStore, SqliteKeyValueStore


def test_memory_store_basic_operations():
    store = MemoryKeyValueStore({'budget_tracker:month:2025-07': '{}'})
    store.set_item('budget_tracker:settings', '{"activeFilterMonth": null}')
    store.set_item('other', 'x')

    assert store.get_item('missing') is None
    assert store.keys('budget_tracker:') == ['budget_tracker:month:2025-07', 'budget_tracker:settings']

    store.remove_item('other')
    assert store.get_item('other') is None


def test_events_skip_the_writing_session():
    store = MemoryKeyValueStore()
    seen_a, seen_b = [], []
    store.subscribe(seen_a.append, session_id='a')
    unsubscribe_b = store.subscribe(seen_b.append, session_id='b')

    store.set_item('k', '1', origin='a')
    assert seen_a == []
    assert [(e.key, e.old_value, e.new_value, e.origin) for e in seen_b] == [('k', None, '1', 'a')]

    unsubscribe_b()
    store.remove_item('k', origin='a')
    assert len(seen_b) == 1


def test_removing_a_missing_key_publishes_nothing():
    store = MemoryKeyValueStore()
    seen = []
    store.subscribe(seen.append)
    store.remove_item('nothing-here')
    assert seen == []


def test_sqlite_store_round_trip(tmp_path):
    db_path = tmp_path / 'nested' / 'tracker.db'
    store = SqliteKeyValueStore(db_path)

    store.set_item('budget_tracker:salary:2025-07', '{"first": 1, "second": 2}')
    store.set_item('budget_tracker:salary:2025-07', '{"first": 3, "second": 4}')
    store.set_item('budget_tracker:salary:2025-06', '{"first": 5, "second": 6}')

    reopened = SqliteKeyValueStore(db_path)
    assert reopened.get_item('budget_tracker:salary:2025-07') == '{"first": 3, "second": 4}'
    assert reopened.keys('budget_tracker:salary:') == [
        'budget_tracker:salary:2025-06',
        'budget_tracker:salary:2025-07',
    ]

    reopened.remove_item('budget_tracker:salary:2025-06')
    assert store.get_item('budget_tracker:salary:2025-06') is None


def test_sqlite_store_publishes_events(tmp_path):
    store = SqliteKeyValueStore(tmp_path / 'tracker.db')
    seen = []
    store.subscribe(seen.append, session_id='other')

    store.set_item('budget_tracker:dark_mode', 'true', origin='mine')
    assert seen[0].new_value == 'true'


def test_key_value_store_is_abstract():
    with pytest.raises(TypeError):
        KeyValueStore()


class RecordingSession:
    def __init__(self):
        self.keys = []

    def on_event(self, event):
        self.keys.append(event.key)


def test_bound_method_listeners_are_held_weakly():
    store = MemoryKeyValueStore()
    session = RecordingSession()
    store.subscribe(session.on_event, session_id='a')
    store.set_item('k', '1', origin='b')
    assert session.keys == ['k']
    assert store.listener_count == 1

    del session
    gc.collect()

    assert store.listener_count == 0
    assert store._listeners == []
    store.set_item('k', '2', origin='b')

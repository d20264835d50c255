import json

from budget_tracker.partitions import ALLOCATION_KEY, SETTINGS_KEY
from budget_tracker.preferences import (
    AllocationConfig,
    load_allocation_config,
    load_dark_mode,
    load_settings,
    save_allocation_config,
    save_dark_mode,
    save_settings,
)


def test_settings_defaults_and_validation(store):
    assert load_settings(store) == {'activeFilterMonth': None}

    store.set_item(SETTINGS_KEY, json.dumps({'activeFilterMonth': 'July'}))
    assert load_settings(store)['activeFilterMonth'] is None

    save_settings(store, '2025-07')
    assert load_settings(store)['activeFilterMonth'] == '2025-07'


def test_dark_mode_flag(store):
    assert load_dark_mode(store) is False
    save_dark_mode(store, True)
    assert load_dark_mode(store) is True
    save_dark_mode(store, False)
    assert load_dark_mode(store) is False


def test_allocation_config_defaults(store):
    config = load_allocation_config(store)

    assert config.targets == {
        'essentials': 50.0,
        'savings': 15.0,
        'investing': 10.0,
        'debt': 10.0,
        'sinking': 10.0,
        'lifestyle': 5.0,
    }
    assert config.caps == {'lifestyle': 20.0, 'debt': 20.0, 'essentials': 60.0}


def test_allocation_config_clamps_and_falls_back():
    config = AllocationConfig.from_raw({
        'targets': {'savings': 150, 'debt': -5, 'lifestyle': 'lots', 'unknown': 40},
        'caps': {'debt': '35'},
    })

    assert config.targets['savings'] == 100.0
    assert config.targets['debt'] == 0.0
    assert config.targets['lifestyle'] == 5.0
    assert 'unknown' not in config.targets
    assert config.caps['debt'] == 35.0


def test_allocation_config_round_trip(store):
    save_allocation_config(store, AllocationConfig.from_raw({'caps': {'lifestyle': 25}}))
    assert load_allocation_config(store).caps['lifestyle'] == 25.0


def test_malformed_allocation_record_uses_defaults(store):
    store.set_item(ALLOCATION_KEY, '{oops')
    assert load_allocation_config(store).targets['essentials'] == 50.0

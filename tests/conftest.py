from datetime import datetime

import pytest

from budget_tracker.app import BudgetTrackerApp
from budget_tracker.clock import FixedClock
from budget_tracker.models import BudgetItem, Expense
from budget_tracker.storage import MemoryKeyValueStore


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 7, 15, 10, 0))


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
def app(store, clock):
    tracker = BudgetTrackerApp(store, clock=clock, session_id='tab-a', seed_sample_data=False)
    yield tracker
    tracker.close()


def make_item(item_id, category, date='2025-07-01', budget=0.0, type='essential', expenses=()):
    return BudgetItem(
        id=item_id,
        category=category,
        date=date,
        budget=budget,
        type=type,
        expenses=[Expense(description=d, date=date, amount=a) for d, a in expenses],
    )

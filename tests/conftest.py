from datetime import datetime, timezone

import pytest

from ledger import LedgerStore
from models import TransactionDraft
from storage import LedgerPersistence, MemoryKeyValueStore

FIXED_NOW = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def persistence(kv):
    return LedgerPersistence(kv)


@pytest.fixture
def store(persistence):
    s = LedgerStore(persistence, clock=lambda: FIXED_NOW)
    s.load()
    return s


@pytest.fixture
def make_draft():
    def _make(tx_type="expense", amount=10.0, category="food", date="2024-03-01", note=""):
        return TransactionDraft(type=tx_type, amount=amount, category=category, date=date, note=note)
    return _make

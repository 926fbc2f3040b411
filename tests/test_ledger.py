import json
from datetime import date, datetime, timezone

import pytest

from errors import EmptyLedgerError, StorageReadError, StorageWriteError, ValidationError
from ledger import LedgerStore, LoadStatus, WriteStatus, open_ledger
from models import TransactionType
from settings import LedgerSettings
from storage import LedgerPersistence, MemoryKeyValueStore


class FailingStore(MemoryKeyValueStore):
    fail = False

    def set_item(self, key, value):
        if self.fail:
            raise StorageWriteError("disk full")
        super().set_item(key, value)


class UnreadableStore(MemoryKeyValueStore):
    broken = False

    def get_item(self, key):
        if self.broken:
            raise StorageReadError("lock held elsewhere")
        return super().get_item(key)


def persisted_ids(kv):
    return [r["id"] for r in json.loads(kv.get_item("transactions"))]


def test_add_then_list_preserves_fields(store, make_draft):
    result = store.add(make_draft(amount=35.5, category="food", date="2024-03-01", note="  noodles "))
    assert result.persisted
    listed = store.list()
    assert listed == (result.transaction,)
    tx = listed[0]
    assert tx.type is TransactionType.EXPENSE
    assert tx.amount == 35.5
    assert tx.category == "food"
    assert tx.date == date(2024, 3, 1)
    assert tx.note == "noodles"
    assert tx.created_at == datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)


def test_add_truncates_long_note(store, make_draft):
    tx = store.add(make_draft(note="x" * 80)).transaction
    assert tx.note == "x" * 50


def test_note_limit_is_configurable(persistence, make_draft):
    s = LedgerStore(persistence, max_note_length=5)
    assert s.add(make_draft(note="abcdefgh")).transaction.note == "abcde"


def test_add_writes_through(store, kv, make_draft):
    tx = store.add(make_draft()).transaction
    assert persisted_ids(kv) == [tx.id]


@pytest.mark.parametrize("amount", [0, -5, "", "abc", None, float("nan"), float("inf"), True])
def test_add_rejects_bad_amount(store, kv, make_draft, amount):
    with pytest.raises(ValidationError) as info:
        store.add(make_draft(amount=amount))
    assert info.value.field == "amount"
    assert len(store) == 0
    assert kv.get_item("transactions") is None


def test_add_accepts_numeric_strings(store, make_draft):
    assert store.add(make_draft(amount="12.50")).transaction.amount == 12.5


@pytest.mark.parametrize("category", [None, "", "   "])
def test_add_requires_category(store, make_draft, category):
    with pytest.raises(ValidationError) as info:
        store.add(make_draft(category=category))
    assert info.value.field == "category"


@pytest.mark.parametrize("value", [None, "", "not-a-date"])
def test_add_requires_date(store, make_draft, value):
    with pytest.raises(ValidationError) as info:
        store.add(make_draft(date=value))
    assert info.value.field == "date"


def test_amount_is_checked_before_category(store, make_draft):
    with pytest.raises(ValidationError) as info:
        store.add(make_draft(amount=0, category=None, date=None))
    assert info.value.field == "amount"


def test_unknown_category_is_stored(store, make_draft):
    tx = store.add(make_draft(category="yacht")).transaction
    assert store.resolve_category(tx.type, tx.category).name == "Unknown"


def test_remove_existing(store, kv, make_draft):
    a = store.add(make_draft()).transaction
    b = store.add(make_draft()).transaction
    result = store.remove(a.id)
    assert result.removed == 1
    assert result.persisted
    assert [t.id for t in store.list()] == [b.id]
    assert persisted_ids(kv) == [b.id]


def test_remove_unknown_id_is_noop(store, make_draft):
    store.add(make_draft())
    result = store.remove("does-not-exist")
    assert result.removed == 0
    assert result.status is WriteStatus.PERSISTED
    assert len(store) == 1


def test_clear_then_reload_is_empty(store, persistence, make_draft):
    store.add(make_draft())
    store.add(make_draft(tx_type="income", category="salary"))
    result = store.clear()
    assert result.removed == 2
    assert store.list() == ()
    fresh = LedgerStore(persistence)
    assert fresh.load() is LoadStatus.EMPTY
    assert fresh.list() == ()


def test_list_is_a_snapshot(store, make_draft):
    store.add(make_draft())
    snapshot = store.list()
    store.add(make_draft())
    assert len(snapshot) == 1
    assert len(store.list()) == 2


def test_load_restores_previous_session(persistence, make_draft):
    first = LedgerStore(persistence)
    tx = first.add(make_draft(amount=7)).transaction
    second = LedgerStore(persistence)
    assert second.load() is LoadStatus.LOADED
    assert second.list() == (tx,)


def test_load_recovers_from_corrupt_data(kv, persistence, caplog):
    kv.set_item("transactions", "[{broken")
    s = LedgerStore(persistence)
    with caplog.at_level("WARNING"):
        assert s.load() is LoadStatus.RECOVERED
    assert s.list() == ()
    assert "Discarding persisted ledger" in caplog.text


def test_write_failure_keeps_memory(make_draft):
    kv = FailingStore()
    s = LedgerStore(LedgerPersistence(kv))
    kept = s.add(make_draft()).transaction
    kv.fail = True
    result = s.add(make_draft(amount=99))
    assert result.status is WriteStatus.MEMORY_ONLY
    assert not result.persisted
    assert "disk full" in result.error
    assert len(s) == 2
    assert persisted_ids(kv) == [kept.id]

    kv.fail = False
    assert s.persist().persisted
    assert len(persisted_ids(kv)) == 2


def test_quota_exceeded_is_memory_only(make_draft):
    s = LedgerStore(LedgerPersistence(MemoryKeyValueStore(quota=20)))
    result = s.add(make_draft())
    assert result.status is WriteStatus.MEMORY_ONLY
    assert len(s) == 1


def test_balance_example(store, make_draft):
    store.add(make_draft(tx_type="expense", amount=35.50, category="food", date="2024-03-01"))
    store.add(make_draft(tx_type="income", amount=5000, category="salary", date="2024-03-01"))
    balance, income, expense = store.compute_balance()
    assert balance == pytest.approx(4964.50)
    assert income == 5000
    assert expense == 35.50


def test_monthly_breakdown_defaults_to_clock(store, make_draft):
    store.add(make_draft(amount=20, category="food", date="2024-03-02"))
    store.add(make_draft(amount=20, category="food", date="2024-02-28"))
    breakdown = store.monthly_expense_by_category()
    assert (breakdown.year, breakdown.month) == (2024, 3)
    assert breakdown.total == 20
    earlier = store.monthly_expense_by_category(date(2024, 2, 1))
    assert earlier.total == 20


def test_filter_and_sort_through_store(store, make_draft):
    store.add(make_draft(date="2024-03-01"))
    store.add(make_draft(tx_type="income", category="salary", date="2024-03-05"))
    assert [t.type for t in store.filter_and_sort("income")] == [TransactionType.INCOME]
    assert [t.date for t in store.filter_and_sort()] == [date(2024, 3, 5), date(2024, 3, 1)]


def test_export_snapshot(store, make_draft):
    tx = store.add(make_draft(note="面条")).transaction
    artifact = store.export_snapshot()
    assert artifact.filename == "ledger_export_2024-03-15.json"
    assert json.loads(artifact.content) == [tx.to_dict()]


def test_export_empty_ledger_is_rejected(store):
    with pytest.raises(EmptyLedgerError):
        store.export_snapshot()


def test_open_ledger_from_settings(tmp_path, make_draft):
    settings = LedgerSettings(data_file=tmp_path / "data.json", storage_key="book", max_note_length=3)
    s = open_ledger(settings)
    s.add(make_draft(note="abcdef"))
    reopened = open_ledger(settings)
    assert [t.note for t in reopened.list()] == ["abc"]
    raw = json.loads((tmp_path / "data.json").read_text(encoding="utf-8"))
    assert list(raw) == ["book"]



def test_find(store, make_draft):
    tx = store.add(make_draft()).transaction
    assert store.find(tx.id) is tx
    assert store.find("missing") is None


def test_remove_write_failure_keeps_memory(make_draft):
    kv = FailingStore()
    s = LedgerStore(LedgerPersistence(kv))
    first = s.add(make_draft()).transaction
    second = s.add(make_draft(amount=20)).transaction
    kv.fail = True
    result = s.remove(first.id)
    assert result.status is WriteStatus.MEMORY_ONLY
    assert result.removed == 1
    assert "disk full" in result.error
    assert s.list() == (second,)
    assert persisted_ids(kv) == [first.id, second.id]


def test_clear_write_failure_keeps_memory(make_draft):
    kv = FailingStore()
    s = LedgerStore(LedgerPersistence(kv))
    s.add(make_draft())
    s.add(make_draft(amount=20))
    before = kv.get_item("transactions")
    kv.fail = True
    result = s.clear()
    assert result.status is WriteStatus.MEMORY_ONLY
    assert result.removed == 2
    assert len(s) == 0
    assert kv.get_item("transactions") == before

    kv.fail = False
    assert s.persist().persisted
    assert persisted_ids(kv) == []


def test_unreadable_storage_blocks_changes(make_draft):
    kv = UnreadableStore()
    s = LedgerStore(LedgerPersistence(kv), clock=lambda: datetime(2024, 3, 15, tzinfo=timezone.utc))
    s.load()
    kept = s.add(make_draft()).transaction
    before = kv.get_item("transactions")

    kv.broken = True
    assert s.load() is LoadStatus.UNAVAILABLE
    assert not s.available
    assert len(s) == 0
    with pytest.raises(StorageReadError):
        s.add(make_draft(amount=5))
    with pytest.raises(StorageReadError):
        s.remove(kept.id)
    with pytest.raises(StorageReadError):
        s.clear()
    with pytest.raises(StorageReadError):
        s.persist()
    assert kv.get_item("transactions") == before

    kv.broken = False
    assert s.load() is LoadStatus.LOADED
    assert s.available
    assert s.list() == (kept,)
    assert s.add(make_draft(amount=5)).persisted
    assert len(persisted_ids(kv)) == 2


def test_held_file_lock_leaves_file_intact(tmp_path, make_draft):
    from filelock import FileLock

    settings = LedgerSettings(data_file=tmp_path / "ledger.json")
    first = open_ledger(settings)
    first.add(make_draft())
    first.add(make_draft(amount=20))
    first.add(make_draft(amount=30))
    raw = (tmp_path / "ledger.json").read_text(encoding="utf-8")

    with FileLock(str(tmp_path / "ledger.json") + ".lock"):
        second = LedgerStore(first.persistence)
        first.persistence.store.lock.timeout = 0.1
        assert second.load() is LoadStatus.UNAVAILABLE
        with pytest.raises(StorageReadError):
            second.add(make_draft(amount=40))

    assert (tmp_path / "ledger.json").read_text(encoding="utf-8") == raw
    assert second.load() is LoadStatus.LOADED
    assert len(second) == 3

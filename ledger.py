# ledger.py
"""
LedgerStore: the in-memory list of transactions for one session.

Every mutation (add / remove / clear) changes memory first and then writes
the full list through LedgerPersistence. A failed write does not roll the
memory change back; the returned MutationResult says MEMORY_ONLY so the
caller can warn the user or retry with `persist()`.

If storage cannot be read at load time (I/O error, lock held elsewhere) the
store refuses every change until a later `load()` succeeds, so an intact file
is never replaced by an empty list.
"""
import math
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Callable, List, Optional, Tuple

import analysis
import categories
from errors import EmptyLedgerError, LedgerLoadError, StorageReadError, StorageWriteError, ValidationError
from logging_utils import get_logger
from models import (
    Category,
    Transaction,
    TransactionDraft,
    TransactionType,
    new_transaction_id,
    parse_date,
)
from storage import JsonFileKeyValueStore, LedgerPersistence

logger = get_logger(__name__)

MAX_NOTE_LENGTH = 50


class WriteStatus(str, Enum):
    PERSISTED = "persisted"
    MEMORY_ONLY = "memory_only"


class LoadStatus(str, Enum):
    LOADED = "loaded"
    EMPTY = "empty"
    RECOVERED = "recovered"  # bad data was discarded
    UNAVAILABLE = "unavailable"  # storage unreadable; writes refused until a load succeeds


@dataclass(frozen=True)
class MutationResult:
    status: WriteStatus
    transaction: Optional[Transaction] = None
    removed: int = 0
    error: Optional[str] = None

    @property
    def persisted(self) -> bool:
        return self.status is WriteStatus.PERSISTED


@dataclass(frozen=True)
class ExportArtifact:
    filename: str
    content: str


def _local_now() -> datetime:
    return datetime.now().astimezone()


def validate_draft(draft: TransactionDraft, max_note_length: int = MAX_NOTE_LENGTH):
    """
    Returns (type, amount, category, date, note) or raises ValidationError
    for the first failing check: amount, then category, then date.
    """
    tx_type = TransactionType.from_str(draft.type)

    amount = draft.amount
    if isinstance(amount, bool):
        raise ValidationError("amount", "Please enter a valid amount.")
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        raise ValidationError("amount", "Please enter a valid amount.")
    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError("amount", "Please enter a valid amount.")

    category = (draft.category or "").strip() if isinstance(draft.category, str) else draft.category
    if not category:
        raise ValidationError("category", "Please choose a category.")

    if draft.date is None or (isinstance(draft.date, str) and not draft.date.strip()):
        raise ValidationError("date", "Please choose a date.")
    try:
        tx_date = parse_date(draft.date)
    except (TypeError, ValueError):
        raise ValidationError("date", "Please choose a valid date.")

    note = str(draft.note or "").strip()[:max_note_length]
    return tx_type, amount, str(category), tx_date, note


class LedgerStore:
    def __init__(
        self,
        persistence: LedgerPersistence,
        max_note_length: int = MAX_NOTE_LENGTH,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.persistence = persistence
        self.max_note_length = max_note_length
        self.clock = clock or _local_now
        self._transactions: List[Transaction] = []
        self.load_status: Optional[LoadStatus] = None

    def __len__(self) -> int:
        return len(self._transactions)

    # --- lifecycle -------------------------------------------------------

    def load(self) -> LoadStatus:
        try:
            txs = self.persistence.load()
        except StorageReadError as error:
            # the stored data may be intact, so it must not be overwritten
            logger.error("Ledger storage unavailable, changes are blocked: %s", error)
            self._transactions = []
            self.load_status = LoadStatus.UNAVAILABLE
            return self.load_status
        except LedgerLoadError as error:
            logger.warning("Discarding persisted ledger, starting empty: %s", error)
            self._transactions = []
            self.load_status = LoadStatus.RECOVERED
            return self.load_status
        self._transactions = list(txs)
        logger.info("Loaded %d transactions", len(self._transactions))
        self.load_status = LoadStatus.LOADED if self._transactions else LoadStatus.EMPTY
        return self.load_status

    @property
    def available(self) -> bool:
        return self.load_status is not LoadStatus.UNAVAILABLE

    def _require_available(self) -> None:
        if not self.available:
            raise StorageReadError("Ledger storage could not be read; reload before making changes.")

    def persist(self) -> MutationResult:
        """Write the current list; also usable to retry after a MEMORY_ONLY result."""
        self._require_available()
        try:
            self.persistence.save(self._transactions)
        except StorageWriteError as error:
            logger.error("Ledger write failed; memory and storage now differ", exc_info=True)
            return MutationResult(WriteStatus.MEMORY_ONLY, error=str(error))
        return MutationResult(WriteStatus.PERSISTED)

    # --- mutations -------------------------------------------------------

    def add(self, draft: TransactionDraft) -> MutationResult:
        self._require_available()
        tx_type, amount, category, tx_date, note = validate_draft(draft, self.max_note_length)
        now = self.clock()
        tx = Transaction(
            id=new_transaction_id(now),
            type=tx_type,
            amount=amount,
            category=category,
            note=note,
            date=tx_date,
            created_at=now,
        )
        self._transactions.append(tx)
        logger.info("Added %s %.2f (%s) on %s", tx.type.value, tx.amount, tx.category, tx.date)
        result = self.persist()
        return MutationResult(result.status, transaction=tx, error=result.error)

    def remove(self, transaction_id: str) -> MutationResult:
        self._require_available()
        before = len(self._transactions)
        self._transactions = [t for t in self._transactions if t.id != transaction_id]
        removed = before - len(self._transactions)
        if removed:
            logger.info("Removed transaction %s", transaction_id)
        else:
            logger.debug("Remove of unknown id %s ignored", transaction_id)
        result = self.persist()
        return MutationResult(result.status, removed=removed, error=result.error)

    def clear(self) -> MutationResult:
        self._require_available()
        removed = len(self._transactions)
        self._transactions = []
        logger.info("Cleared %d transactions", removed)
        result = self.persist()
        return MutationResult(result.status, removed=removed, error=result.error)

    # --- reads -----------------------------------------------------------

    def list(self) -> Tuple[Transaction, ...]:
        return tuple(self._transactions)

    def find(self, transaction_id: str) -> Optional[Transaction]:
        for t in self._transactions:
            if t.id == transaction_id:
                return t
        return None

    def compute_balance(self) -> analysis.Balance:
        return analysis.compute_balance(self._transactions)

    def filter_and_sort(self, selection="all") -> List[Transaction]:
        return analysis.filter_and_sort(self._transactions, selection)

    def monthly_expense_by_category(self, now=None) -> analysis.MonthlyBreakdown:
        reference = now if now is not None else self.clock()
        return analysis.monthly_expense_by_category(self._transactions, reference)

    @staticmethod
    def resolve_category(tx_type, category_id) -> Category:
        return categories.resolve(tx_type, category_id)

    def export_snapshot(self, today: Optional[date] = None) -> ExportArtifact:
        if not self._transactions:
            raise EmptyLedgerError("There is no data to export.")
        today = today or self.clock().date()
        return ExportArtifact(
            filename=self.persistence.export_filename(today),
            content=self.persistence.export_snapshot(self._transactions),
        )


def open_ledger(settings) -> LedgerStore:
    """Build a file-backed store from LedgerSettings and load it."""
    persistence = LedgerPersistence(JsonFileKeyValueStore(settings.data_file), key=settings.storage_key)
    store = LedgerStore(persistence, max_note_length=settings.max_note_length)
    store.load()
    return store

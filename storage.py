# storage.py
import json
import os
from datetime import date
from typing import Dict, Iterable, List, Optional

from filelock import FileLock, Timeout

from errors import LedgerLoadError, StorageQuotaExceeded, StorageReadError, StorageWriteError
from logging_utils import get_logger
from models import Transaction

logger = get_logger(__name__)

STORAGE_KEY = "transactions"
LOCK_TIMEOUT = 5


class MemoryKeyValueStore:
    """
    Dict-backed stand-in for browser local storage.
    `quota` caps the total number of characters held across all keys.
    """

    def __init__(self, quota: Optional[int] = None):
        self.quota = quota
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.quota is not None:
            used = sum(len(v) for k, v in self._items.items() if k != key)
            if used + len(value) > self.quota:
                raise StorageQuotaExceeded(
                    f"Storing {len(value)} characters under {key!r} exceeds quota of {self.quota}"
                )
        self._items[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileKeyValueStore:
    """
    Key-value strings kept in a single JSON object on disk.
    Every read-modify-write happens under a file lock next to the data file.
    """

    def __init__(self, path):
        self.path = str(path)
        self.lock = FileLock(self.path + ".lock", timeout=LOCK_TIMEOUT)

    def _read_all(self) -> Dict[str, str]:
        if not os.path.exists(self.path) or os.path.getsize(self.path) == 0:
            return {}
        with open(self.path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def get_item(self, key: str) -> Optional[str]:
        try:
            with self.lock:
                value = self._read_all().get(key)
        except (OSError, Timeout) as error:
            raise StorageReadError(f"Could not read {key!r} from {self.path}: {error}") from error
        return None if value is None else str(value)

    def set_item(self, key: str, value: str) -> None:
        try:
            with self.lock:
                try:
                    data = self._read_all()
                except ValueError:
                    # a corrupt file is replaced rather than blocking every write
                    logger.warning("Overwriting corrupt storage file %s", self.path)
                    data = {}
                data[key] = value
                tmp_path = self.path + ".tmp"
                with open(tmp_path, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, ensure_ascii=False)
                os.replace(tmp_path, self.path)
        except (OSError, Timeout) as error:
            raise StorageWriteError(f"Could not write {key!r} to {self.path}: {error}") from error

    def remove_item(self, key: str) -> None:
        try:
            with self.lock:
                data = self._read_all()
                if key not in data:
                    return
                del data[key]
                with open(self.path, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, ensure_ascii=False)
        except (OSError, Timeout, ValueError) as error:
            raise StorageWriteError(f"Could not remove {key!r} from {self.path}: {error}") from error


class LedgerPersistence:
    """Reads and writes the whole transaction list as one JSON array under one key."""

    def __init__(self, store, key: str = STORAGE_KEY):
        self.store = store
        self.key = key

    def load(self) -> List[Transaction]:
        try:
            raw = self.store.get_item(self.key)
        except StorageReadError:
            raise
        except (OSError, Timeout) as error:
            raise StorageReadError(f"Storage could not be read: {error}") from error
        except ValueError as error:
            raise LedgerLoadError(f"Storage content is not valid JSON: {error}") from error
        if raw is None or raw == "":
            logger.debug("No persisted ledger under %r", self.key)
            return []
        try:
            payload = json.loads(raw)
        except ValueError as error:
            raise LedgerLoadError(f"Persisted ledger is not valid JSON: {error}") from error
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise LedgerLoadError(f"Persisted ledger is a {type(payload).__name__}, expected a list")
        txs = []
        for index, record in enumerate(payload):
            try:
                txs.append(Transaction.from_dict(record))
            except (KeyError, TypeError, ValueError) as error:
                raise LedgerLoadError(f"Record {index} is malformed: {error!r}") from error
        return txs

    def save(self, transactions: Iterable[Transaction]) -> None:
        blob = json.dumps([t.to_dict() for t in transactions], ensure_ascii=False)
        try:
            self.store.set_item(self.key, blob)
        except StorageWriteError:
            raise
        except OSError as error:
            raise StorageWriteError(f"Could not write {self.key!r}: {error}") from error

    @staticmethod
    def export_snapshot(transactions: Iterable[Transaction]) -> str:
        return json.dumps([t.to_dict() for t in transactions], indent=2, ensure_ascii=False)

    @staticmethod
    def export_filename(today: date) -> str:
        return f"ledger_export_{today.isoformat()}.json"

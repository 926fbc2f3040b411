# errors.py


class LedgerError(Exception):
    """Base class for everything the ledger raises on purpose."""


class ValidationError(LedgerError):
    """A draft transaction was rejected; nothing was stored."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class LedgerLoadError(LedgerError):
    """The persisted blob exists but cannot be turned into transactions."""


class StorageReadError(LedgerError):
    """The key-value store could not be read (I/O error, lock timeout)."""


class StorageWriteError(LedgerError):
    """Writing to the key-value store failed."""


class StorageQuotaExceeded(StorageWriteError):
    pass


class EmptyLedgerError(LedgerError):
    """Raised when exporting a ledger that has no transactions."""

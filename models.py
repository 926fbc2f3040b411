# models.py

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union
import math
import time
import uuid


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"

    @classmethod
    def from_str(cls, value) -> "TransactionType":
        """Accept an enum member or any casing of 'income' / 'expense'."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as error:
            raise ValueError(f"Unsupported transaction type: {value!r}") from error


def new_transaction_id(now: Optional[datetime] = None) -> str:
    # millisecond timestamp + 9 random characters; collisions are not checked
    millis = int(now.timestamp() * 1000) if now else int(time.time() * 1000)
    return f"{millis}{uuid.uuid4().hex[:9]}"


def parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise TypeError(f"Cannot interpret {value!r} as a date")


def format_timestamp(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    ts = ts.astimezone(timezone.utc)
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        ts = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class Transaction:
    id: str
    type: TransactionType
    amount: float
    category: str
    note: str
    date: date
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "amount": self.amount,
            "category": self.category,
            "note": self.note,
            "date": self.date.isoformat(),
            "createdAt": format_timestamp(self.created_at),
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Transaction":
        if not isinstance(d, dict):
            raise TypeError(f"Transaction record must be an object, got {type(d).__name__}")
        amount = d["amount"]
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise TypeError(f"Amount must be a number, got {amount!r}")
        if not math.isfinite(amount) or amount <= 0:
            raise ValueError(f"Amount must be positive, got {amount!r}")
        return Transaction(
            id=str(d["id"]),
            type=TransactionType.from_str(d["type"]),
            amount=float(amount),
            category=str(d.get("category", "")),
            note=str(d.get("note") or ""),
            date=parse_date(d["date"]),
            created_at=parse_timestamp(d["createdAt"]),
        )


@dataclass
class TransactionDraft:
    """Raw form input; nothing here has been validated yet."""
    type: Union[TransactionType, str]
    amount: Any
    category: Optional[str]
    date: Any
    note: Optional[str] = ""


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    icon: str

# analysis.py
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, List, NamedTuple, Tuple

import pandas as pd

from models import Transaction, TransactionType

DF_COLUMNS = ["id", "type", "amount", "category", "note", "date"]


class Balance(NamedTuple):
    balance: float
    income: float
    expense: float


class LedgerFilter(str, Enum):
    ALL = "all"
    INCOME = "income"
    EXPENSE = "expense"

    @classmethod
    def from_str(cls, value) -> "LedgerFilter":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as error:
            raise ValueError(f"Unsupported filter: {value!r}") from error


@dataclass(frozen=True)
class CategoryShare:
    category: str
    amount: float
    percentage: float  # relative to the largest group, 0-100


@dataclass(frozen=True)
class MonthlyBreakdown:
    year: int
    month: int
    total: float
    groups: Tuple[CategoryShare, ...] = ()

    @property
    def has_data(self) -> bool:
        return bool(self.groups)


def txs_to_df(txs: Iterable[Transaction]) -> pd.DataFrame:
    rows = [
        {
            "id": t.id,
            "type": t.type.value,
            "amount": float(t.amount),
            "category": t.category,
            "note": t.note,
            "date": t.date,
        }
        for t in txs
    ]
    df = pd.DataFrame(rows, columns=DF_COLUMNS)
    df["amount"] = df["amount"].astype(float)
    df["date"] = pd.to_datetime(df["date"])
    return df


def compute_balance(transactions: Iterable[Transaction]) -> Balance:
    income = 0.0
    expense = 0.0
    for t in transactions:
        if t.type is TransactionType.INCOME:
            income += t.amount
        else:
            expense += t.amount
    return Balance(income - expense, income, expense)


def filter_and_sort(transactions: Iterable[Transaction], selection="all") -> List[Transaction]:
    """
    Newest date first. Python's sort is stable (also with reverse=True), so
    records sharing a date keep their insertion order.
    """
    ledger_filter = LedgerFilter.from_str(selection)
    if ledger_filter is LedgerFilter.ALL:
        selected = list(transactions)
    else:
        wanted = TransactionType(ledger_filter.value)
        selected = [t for t in transactions if t.type is wanted]
    return sorted(selected, key=lambda t: t.date, reverse=True)


def monthly_expense_by_category(transactions: Iterable[Transaction], reference_date) -> MonthlyBreakdown:
    if isinstance(reference_date, datetime):
        reference_date = reference_date.date()
    year, month = reference_date.year, reference_date.month

    in_month = [
        t for t in transactions
        if t.type is TransactionType.EXPENSE and t.date.year == year and t.date.month == month
    ]
    if not in_month:
        return MonthlyBreakdown(year=year, month=month, total=0.0)

    df = txs_to_df(in_month)
    by_cat = df.groupby("category", sort=False)["amount"].sum().rename("amount").reset_index()
    by_cat = by_cat.sort_values(["amount", "category"], ascending=[False, True], kind="mergesort")
    largest = float(by_cat["amount"].iloc[0])

    groups = tuple(
        CategoryShare(
            category=str(row.category),
            amount=float(row.amount),
            percentage=float(row.amount) / largest * 100.0,
        )
        for row in by_cat.itertuples(index=False)
    )
    total = float(sum(t.amount for t in in_month))
    return MonthlyBreakdown(year=year, month=month, total=total, groups=groups)


def monthly_totals(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """Income, expense and net per calendar month, oldest month first."""
    df = txs_to_df(transactions)
    if df.empty:
        return pd.DataFrame(columns=["month", "income", "expense", "net"])
    df["month"] = df["date"].dt.to_period("M").dt.to_timestamp()
    pivot = df.pivot_table(index="month", columns="type", values="amount", aggfunc="sum", fill_value=0.0)
    pivot = pivot.reindex(columns=[TransactionType.INCOME.value, TransactionType.EXPENSE.value], fill_value=0.0)
    pivot.columns = ["income", "expense"]
    pivot["net"] = pivot["income"] - pivot["expense"]
    return pivot.reset_index().sort_values("month").reset_index(drop=True)

# formatting.py
import math
from datetime import date, datetime
from numbers import Real

from models import Transaction, TransactionType, parse_date

MONTH_ABBR = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_currency(amount, symbol: str = "¥") -> str:
    if isinstance(amount, bool) or not isinstance(amount, Real) or math.isnan(amount):
        return f"{symbol}0.00"
    return f"{symbol}{amount:,.2f}"


def format_signed_amount(tx: Transaction, symbol: str = "¥") -> str:
    sign = "+" if tx.type is TransactionType.INCOME else "-"
    return sign + format_currency(tx.amount, symbol)


def format_relative_date(value, today: date) -> str:
    """'today', 'yesterday', 'N days ago' inside a week, otherwise e.g. 'Mar 1'."""
    d = parse_date(value)
    if isinstance(today, datetime):
        today = today.date()
    days = (today - d).days
    if days == 0:
        return "today"
    if days == 1:
        return "yesterday"
    if 1 < days < 7:
        return f"{days} days ago"
    return f"{MONTH_ABBR[d.month - 1]} {d.day}"

# categories.py
from typing import Dict, List, Tuple

from models import Category, TransactionType

UNKNOWN_CATEGORY = Category(id="unknown", name="Unknown", icon="❓")

CATEGORIES: Dict[TransactionType, Tuple[Category, ...]] = {
    TransactionType.INCOME: (
        Category("salary", "Salary", "💼"),
        Category("bonus", "Bonus", "🎁"),
        Category("investment", "Investment", "📈"),
        Category("parttime", "Part-time", "💪"),
        Category("gift", "Gift money", "🧧"),
        Category("refund", "Refund", "↩️"),
        Category("other", "Other", "💰"),
    ),
    TransactionType.EXPENSE: (
        Category("food", "Food", "🍔"),
        Category("transport", "Transport", "🚗"),
        Category("shopping", "Shopping", "🛍️"),
        Category("entertainment", "Entertainment", "🎮"),
        Category("medical", "Medical", "💊"),
        Category("education", "Education", "📚"),
        Category("housing", "Housing", "🏠"),
        Category("other", "Other", "💸"),
    ),
}

_INDEX: Dict[TransactionType, Dict[str, Category]] = {
    tx_type: {c.id: c for c in entries} for tx_type, entries in CATEGORIES.items()
}


def _coerce_type(tx_type):
    try:
        return TransactionType.from_str(tx_type)
    except ValueError:
        return None


def categories_for(tx_type) -> List[Category]:
    """Ordered choices for a form; empty for an unrecognised type."""
    coerced = _coerce_type(tx_type)
    if coerced is None:
        return []
    return list(CATEGORIES[coerced])


def resolve(tx_type, category_id) -> Category:
    """Display metadata for (type, id). Never raises."""
    coerced = _coerce_type(tx_type)
    if coerced is None or not isinstance(category_id, str):
        return UNKNOWN_CATEGORY
    return _INDEX[coerced].get(category_id, UNKNOWN_CATEGORY)


def is_known(tx_type, category_id) -> bool:
    return resolve(tx_type, category_id) is not UNKNOWN_CATEGORY

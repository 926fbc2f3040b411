# viz.py
import matplotlib.pyplot as plt
import pandas as pd

import categories
from analysis import MonthlyBreakdown
from models import TransactionType


def plot_category_breakdown(breakdown: MonthlyBreakdown, ax=None, title=None):
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 4))
    title = title or f"Expenses by category, {breakdown.year}-{breakdown.month:02d}"
    ax.set_title(title)
    if not breakdown.has_data:
        ax.text(0.5, 0.5, "No data", ha="center", va="center", transform=ax.transAxes)
        ax.set_axis_off()
        return ax
    # largest group on top
    shares = list(reversed(breakdown.groups))
    labels = [categories.resolve(TransactionType.EXPENSE, s.category).name for s in shares]
    ax.barh(labels, [s.percentage for s in shares])
    for y, s in enumerate(shares):
        ax.text(s.percentage, y, f" {s.amount:,.2f}", va="center")
    ax.set_xlim(0, 115)
    ax.set_xlabel("Share of largest category (%)")
    plt.tight_layout()
    return ax


def plot_monthly_totals(totals: pd.DataFrame, ax=None, title="Income and expense per month"):
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 4))
    ax.set_title(title)
    if totals.empty:
        ax.text(0.5, 0.5, "No data", ha="center", va="center", transform=ax.transAxes)
        ax.set_axis_off()
        return ax
    labels = [m.strftime("%Y-%m") for m in pd.to_datetime(totals["month"])]
    x = range(len(labels))
    ax.bar([i - 0.2 for i in x], totals["income"], width=0.4, label="Income")
    ax.bar([i + 0.2 for i in x], totals["expense"], width=0.4, label="Expense")
    ax.plot(list(x), totals["net"], color="black", marker="o", linewidth=2, label="Net")
    ax.set_xticks(list(x))
    ax.set_xticklabels(labels)
    ax.set_ylabel("Amount")
    ax.legend()
    plt.tight_layout()
    return ax

# cli.py
import argparse
import logging
import os
import sys
from datetime import date, datetime

import categories
from analysis import LedgerFilter, monthly_totals
from errors import EmptyLedgerError, ValidationError
from formatting import format_currency, format_relative_date, format_signed_amount
from ledger import open_ledger
from logging_utils import configure_root_logger
from models import TransactionDraft, TransactionType
from settings import get_settings


def _report_write(result) -> None:
    if not result.persisted:
        print(f"Warning: change kept in memory only, saving failed ({result.error})", file=sys.stderr)


def cmd_add(store, settings, args) -> int:
    draft = TransactionDraft(
        type=args.type,
        amount=args.amount,
        category=args.category,
        date=args.date or date.today().isoformat(),
        note=args.note,
    )
    try:
        result = store.add(draft)
    except ValidationError as error:
        print(f"Rejected ({error.field}): {error.message}", file=sys.stderr)
        return 1
    tx = result.transaction
    cat = categories.resolve(tx.type, tx.category)
    if not categories.is_known(tx.type, tx.category):
        print(f"Note: {tx.category!r} is not a known {tx.type.value} category", file=sys.stderr)
    print(f"Saved {tx.id}: {cat.icon} {cat.name} {format_signed_amount(tx, settings.currency_symbol)} on {tx.date}")
    _report_write(result)
    return 0


def cmd_list(store, settings, args) -> int:
    txs = store.filter_and_sort(args.filter)
    if not txs:
        print("No transactions yet.")
        return 0
    today = date.today()
    for tx in txs:
        cat = store.resolve_category(tx.type, tx.category)
        print(
            f"{tx.id}  {format_relative_date(tx.date, today):>12}  {cat.icon} {cat.name:<14}"
            f"{format_signed_amount(tx, settings.currency_symbol):>14}  {tx.note or '(no note)'}"
        )
    return 0


def cmd_remove(store, settings, args) -> int:
    tx = store.find(args.id)
    result = store.remove(args.id)
    if tx is not None:
        print(f"Deleted {args.id} ({format_signed_amount(tx, settings.currency_symbol)} on {tx.date})")
    else:
        print(f"No transaction with id {args.id}")
    _report_write(result)
    return 0


def cmd_balance(store, settings, args) -> int:
    balance, income, expense = store.compute_balance()
    sym = settings.currency_symbol
    print(f"Balance: {format_currency(balance, sym)}")
    print(f"Income:  {format_currency(income, sym)}")
    print(f"Expense: {format_currency(expense, sym)}")
    return 0


def _month(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM, got {value!r}")


def cmd_stats(store, settings, args) -> int:
    breakdown = store.monthly_expense_by_category(args.month)
    print(f"Expenses {breakdown.year}-{breakdown.month:02d}: {format_currency(breakdown.total, settings.currency_symbol)}")
    if not breakdown.has_data:
        print("No data")
    for share in breakdown.groups:
        cat = categories.resolve(TransactionType.EXPENSE, share.category)
        bar = "#" * int(round(share.percentage / 5))
        print(f"  {cat.icon} {cat.name:<14}{format_currency(share.amount, settings.currency_symbol):>14}  {bar}")
    if args.plot:
        import matplotlib.pyplot as plt
        from viz import plot_category_breakdown, plot_monthly_totals

        plot_category_breakdown(breakdown)
        plot_monthly_totals(monthly_totals(store.list()))
        plt.show()
    return 0


def cmd_export(store, settings, args) -> int:
    try:
        artifact = store.export_snapshot()
    except EmptyLedgerError as error:
        print(str(error), file=sys.stderr)
        return 1
    out_dir = args.output_dir or str(settings.export_directory)
    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, artifact.filename)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(artifact.content)
    print(f"Exported {len(store)} transactions to {path}")
    return 0


def cmd_clear(store, settings, args) -> int:
    if not args.yes:
        print("Refusing to clear without --yes; this cannot be undone.", file=sys.stderr)
        return 1
    result = store.clear()
    print(f"Cleared {result.removed} transactions")
    _report_write(result)
    return 0


def build_parser():
    p = argparse.ArgumentParser("ledger", description="Personal income/expense ledger")
    sub = p.add_subparsers(dest="cmd")

    a = sub.add_parser("add", help="Record income or an expense")
    a.add_argument("type", choices=[t.value for t in TransactionType])
    a.add_argument("amount", help="Amount (positive number)")
    a.add_argument("category", help="Category id, e.g. food or salary")
    a.add_argument("--date", default=None, help="YYYY-MM-DD, defaults to today")
    a.add_argument("--note", default="", help="Optional note")
    a.set_defaults(func=cmd_add)

    ls = sub.add_parser("list", help="Show history, newest first")
    ls.add_argument("--filter", choices=[f.value for f in LedgerFilter], default="all")
    ls.set_defaults(func=cmd_list)

    rm = sub.add_parser("remove", help="Delete a transaction by id")
    rm.add_argument("id")
    rm.set_defaults(func=cmd_remove)

    sub.add_parser("balance", help="Show balance and totals").set_defaults(func=cmd_balance)

    st = sub.add_parser("stats", help="Monthly expense breakdown by category")
    st.add_argument("--month", type=_month, default=None, help="YYYY-MM, defaults to the current month")
    st.add_argument("--plot", action="store_true", help="Show charts")
    st.set_defaults(func=cmd_stats)

    ex = sub.add_parser("export", help="Write a JSON snapshot")
    ex.add_argument("--output-dir", default=None)
    ex.set_defaults(func=cmd_export)

    cl = sub.add_parser("clear", help="Delete every transaction")
    cl.add_argument("--yes", action="store_true")
    cl.set_defaults(func=cmd_clear)
    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    settings = get_settings()
    configure_root_logger(getattr(logging, settings.log_level))
    store = open_ledger(settings)
    if not store.available:
        print(f"Cannot read {settings.data_file}; it may be locked by another process. Nothing was changed.", file=sys.stderr)
        return 1
    return args.func(store, settings, args)


if __name__ == "__main__":
    sys.exit(main())

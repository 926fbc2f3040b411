# streamlit_app.py
"""
Piggy-bank ledger (Streamlit).

One LedgerStore per browser session, kept in st.session_state and backed by
the JSON key-value file from settings (LEDGER_DATA_FILE). Every add / delete /
clear is written through immediately; if the write fails the change stays in
this session and a warning toast is shown.
"""

import logging
from datetime import date

import pandas as pd
import plotly.express as px
import streamlit as st

import categories
from analysis import LedgerFilter
from errors import EmptyLedgerError, ValidationError
from formatting import format_currency, format_relative_date, format_signed_amount
from ledger import open_ledger
from logging_utils import configure_root_logger
from models import TransactionDraft, TransactionType
from settings import get_settings

settings = get_settings()
configure_root_logger(getattr(logging, settings.log_level))
SYM = settings.currency_symbol

st.set_page_config(page_title="Ledger", page_icon="🐷", layout="centered")

# -----------------------
# Session state
# -----------------------
if "ledger" not in st.session_state:
    st.session_state["ledger"] = open_ledger(settings)
if "filter" not in st.session_state:
    st.session_state["filter"] = LedgerFilter.ALL.value
if "notice" not in st.session_state:
    st.session_state["notice"] = None
if "pending_delete" not in st.session_state:
    st.session_state["pending_delete"] = None

store = st.session_state["ledger"]
if not store.available:
    store.load()


def notify(message: str):
    # toasts queued before a rerun are shown on the next run
    st.session_state["notice"] = message


def notify_write(result, ok_message: str):
    if result.persisted:
        notify(ok_message)
    else:
        notify("Saving failed, the change is only kept in this session ❌")


if st.session_state["notice"]:
    st.toast(st.session_state["notice"])
    st.session_state["notice"] = None

if not store.available:
    st.toast("Cannot read the data file, it may be in use elsewhere ❌")
    st.info(f"The ledger in {settings.data_file} could not be read. Nothing has been changed.")
    if st.button("Retry"):
        st.rerun()
    st.stop()

# -----------------------
# Header & balance
# -----------------------
st.title("🐷 Ledger")
st.caption(date.today().strftime("%A, %B %d, %Y"))

balance, income, expense = store.compute_balance()
col1, col2, col3 = st.columns(3)
col1.metric("Balance", format_currency(balance, SYM))
col2.metric("Income", format_currency(income, SYM))
col3.metric("Expense", format_currency(expense, SYM))

home_tab, stats_tab, settings_tab = st.tabs(["Home", "Stats", "Settings"])


FORM_FIELDS = ("amount", "category", "date", "note")


def entry_form(tx_type: TransactionType):
    choices = categories.categories_for(tx_type)
    reset_flag = f"{tx_type.value}_reset"
    if st.session_state.pop(reset_flag, False):
        # widgets are reset only after a successful save; a rejected draft keeps its input
        for name in FORM_FIELDS:
            st.session_state.pop(f"{tx_type.value}_{name}", None)
    with st.form(f"add_{tx_type.value}"):
        amount = st.number_input("Amount", min_value=0.0, value=0.0, step=0.01, format="%.2f", key=f"{tx_type.value}_amount")
        picked = st.radio(
            "Category",
            options=[c.id for c in choices],
            format_func=lambda cid: f"{categories.resolve(tx_type, cid).icon} {categories.resolve(tx_type, cid).name}",
            horizontal=True,
            index=None,
            key=f"{tx_type.value}_category",
        )
        tx_date = st.date_input("Date", value=date.today(), key=f"{tx_type.value}_date")
        note = st.text_input("Note", max_chars=settings.max_note_length, key=f"{tx_type.value}_note")
        submitted = st.form_submit_button("Save")
    if submitted:
        draft = TransactionDraft(type=tx_type, amount=amount, category=picked, date=tx_date, note=note)
        try:
            result = store.add(draft)
        except ValidationError as error:
            st.toast(f"{error.message} ⚠️")
            return
        st.session_state[reset_flag] = True
        notify_write(result, "Saved! 🎉")
        st.rerun()


# -----------------------
# Home: entry + history
# -----------------------
with home_tab:
    with st.expander("Record income 💰"):
        entry_form(TransactionType.INCOME)
    with st.expander("Record expense 💸"):
        entry_form(TransactionType.EXPENSE)

    labels = {LedgerFilter.ALL.value: "All", LedgerFilter.INCOME.value: "Income", LedgerFilter.EXPENSE.value: "Expense"}
    selection = st.segmented_control(
        "Show",
        options=list(labels),
        format_func=labels.get,
        default=st.session_state["filter"],
    )
    st.session_state["filter"] = selection or LedgerFilter.ALL.value

    txs = store.filter_and_sort(st.session_state["filter"])
    if not txs:
        st.info("🐽 Nothing recorded yet. Use the forms above to start.")
    today = date.today()
    for tx in txs:
        cat = store.resolve_category(tx.type, tx.category)
        c_icon, c_info, c_amount, c_del = st.columns([1, 5, 3, 1])
        c_icon.markdown(f"### {cat.icon}")
        c_info.markdown(f"**{cat.name}**  \n{tx.note or 'No note'}")
        c_amount.markdown(f"**{format_signed_amount(tx, SYM)}**  \n{format_relative_date(tx.date, today)}")
        if st.session_state["pending_delete"] == tx.id:
            st.caption("Delete this record?")
            c_yes, c_no = st.columns(2)
            if c_yes.button("Delete", key=f"confirm_del_{tx.id}", type="primary"):
                st.session_state["pending_delete"] = None
                notify_write(store.remove(tx.id), "Deleted 🗑️")
                st.rerun()
            if c_no.button("Cancel", key=f"cancel_del_{tx.id}"):
                st.session_state["pending_delete"] = None
                st.rerun()
        elif c_del.button("🗑️", key=f"del_{tx.id}", help="Delete"):
            st.session_state["pending_delete"] = tx.id
            st.rerun()

# -----------------------
# Stats: this month's expenses by category
# -----------------------
with stats_tab:
    breakdown = store.monthly_expense_by_category()
    st.metric("Spent this month", format_currency(breakdown.total, SYM))
    if not breakdown.has_data:
        st.info("📈 No data yet")
    else:
        df = pd.DataFrame(
            [
                {
                    "category": f"{categories.resolve(TransactionType.EXPENSE, s.category).icon} "
                                f"{categories.resolve(TransactionType.EXPENSE, s.category).name}",
                    "amount": s.amount,
                    "width": s.percentage,
                }
                for s in breakdown.groups
            ]
        )
        fig = px.bar(
            df,
            x="width",
            y="category",
            orientation="h",
            text=df["amount"].map(lambda a: format_currency(a, SYM)),
            range_x=[0, 100],
            labels={"width": "Relative to largest (%)", "category": ""},
        )
        fig.update_yaxes(autorange="reversed")
        st.plotly_chart(fig, use_container_width=True)

# -----------------------
# Settings: export & clear
# -----------------------
with settings_tab:
    st.subheader("Export")
    try:
        artifact = store.export_snapshot()
    except EmptyLedgerError:
        artifact = None
    if artifact is None:
        if st.button("Export data"):
            st.toast("There is no data to export ⚠️")
    else:
        st.download_button(
            "Export data 📥",
            artifact.content.encode("utf-8"),
            file_name=artifact.filename,
            mime="application/json",
        )

    st.subheader("Danger zone")
    confirm = st.checkbox("I understand this deletes every record and cannot be undone")
    if st.button("Clear all data", disabled=not confirm):
        notify_write(store.clear(), "All data cleared 🗑️")
        st.rerun()

st.markdown("---")
st.caption(f"Data file: {settings.data_file}")

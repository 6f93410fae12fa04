import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dataclasses import replace
from datetime import date

import streamlit as st
import pandas as pd
import numpy as np
import plotly.graph_objects as go
import plotly.express as px

from cashflow.config import load_settings
from cashflow.domain import Frequency, color_for
from cashflow.events import event_bus, TRANSACTION_ADDED, BILL_ADVANCED, BILL_DUE_SOON, BALANCE_ALERT
from cashflow.functional import parse_amount, validate_template_input, validate_transaction_input
from cashflow.logging_setup import configure_logging, get_logger
from cashflow.mutations import (
    Mutation,
    OptimisticStore,
    State,
    add_account,
    add_bill_to_workbench,
    add_capture,
    add_template,
    add_transaction,
    advance_bill,
    delete_account,
    delete_capture,
    delete_template,
    delete_transaction,
    edit_template,
    reorder_accounts,
    reorder_transactions,
    toggle_transaction,
    update_account,
    update_capture,
    upsert_note,
)
from cashflow.projection import include_in_workbench, ledger_order, partition_by_tag, signed_balance, toggle_excluded
from cashflow.scheduler import (
    advance_n,
    format_short_date,
    is_due_soon,
    sort_by_due_date,
    sort_templates,
    visible_templates,
)
from cashflow.services import DashboardService, WorkbenchService
from cashflow.transforms import account_order, capture_projection, load_seed, newest_first

settings = load_settings()
configure_logging(settings.log_level)
logger = get_logger("cashflow.app")

st.set_page_config(page_title="Cash Flow Workbench", layout="wide")

accounts, templates, transactions, workbenches = load_seed(settings.seed_path)


def persist(mutation: Mutation) -> None:
    # the hosted backend is out of scope; the session log stands in for it
    st.session_state.mutation_log.append(mutation)
    logger.info("Persisted %s %s/%s", mutation.action, mutation.table, mutation.record_id)


if "mutation_log" not in st.session_state:
    st.session_state.mutation_log = []
if "store" not in st.session_state:
    st.session_state.store = OptimisticStore(
        State(accounts=accounts, templates=sort_by_due_date(templates), transactions=transactions),
        persist,
    )
store = st.session_state.store
dashboard = DashboardService(settings.due_soon_days)
workbench_service = WorkbenchService()


def money(x) -> str:
    return f"${x:,.2f}"


def tx_to_df(tx_list):
    rows = [
        {
            "id": t.id,
            "description": t.description,
            "amount": float(t.amount),
            "status": t.status.value,
            "in_calc": t.is_in_calc,
            "due_date": pd.to_datetime(t.due_date) if t.due_date else pd.NaT,
            "tag": t.tag or "main",
        }
        for t in tx_list
    ]
    return pd.DataFrame(rows, columns=["id", "description", "amount", "status", "in_calc", "due_date", "tag"])


menu = st.sidebar.radio(
    "Menu",
    ["🏠 Accounts", "🧮 Workbenches", "🗓 Bills", "📸 Captures", "📝 Notes"]
)

if menu == "🏠 Accounts":
    st.title("🏠 Accounts")
    summary = dashboard.summary(store.state.accounts, store.state.templates)

    k1, k2, k3, k4 = st.columns(4)
    with k1:
        st.metric("Assets", money(summary["total_assets"]))
    with k2:
        st.metric("Liabilities", money(summary["total_liabilities"]))
    with k3:
        st.metric("Net Worth", money(summary["net_worth"]))
    with k4:
        st.metric("Safe to Spend", money(summary["safe_to_spend"]),
                  help="Non-liability cash minus non-annual bill amounts")

    st.subheader("Include in main workbench")
    for acc in account_order(store.state.accounts):
        included = include_in_workbench(acc, store.state.excluded_ids)
        label = f"{acc.name}: {money(acc.current_balance)}{' (owed)' if acc.is_liability else ''}"
        cols = st.columns([6, 1])
        checked = cols[0].checkbox(label, value=included, key=f"incl_{acc.id}")
        if checked != included:
            # exclusions are a local view preference, never persisted
            store.state = replace(store.state, excluded_ids=toggle_excluded(store.state.excluded_ids, acc.id))
            st.rerun()
        if cols[1].button("✕", key=f"delacc_{acc.id}"):
            store.apply(delete_account(store.state, acc.id))
            st.rerun()

        with st.expander(f"Edit {acc.name}"):
            with st.form(f"editacc_{acc.id}"):
                name = st.text_input("Name", value=acc.name)
                bal = st.text_input("Current balance", value=str(acc.current_balance))
                liability = st.checkbox("Liability", value=acc.is_liability)
                if st.form_submit_button("Save"):
                    parsed = parse_amount(bal)
                    if parsed.is_left():
                        st.error(parsed.get_error()["message"])
                    elif not name.strip():
                        st.error("Name is required")
                    else:
                        store.apply(update_account(store.state, acc.id, name=name.strip(),
                                                   current_balance=parsed.get_or_else(None), is_liability=liability))
                        st.rerun()

    ordered = account_order(store.state.accounts)
    if len(ordered) > 1:
        with st.expander("Reorder accounts"):
            names = [a.name for a in ordered]
            src = st.selectbox("Move", range(len(names)), format_func=lambda i: names[i], key="acc_src")
            dst = st.selectbox("To position", range(len(names)), key="acc_dst")
            if st.button("Move", key="acc_mv"):
                store.apply(reorder_accounts(store.state, src, dst))
                st.rerun()

    with st.form("new_account", clear_on_submit=True):
        st.subheader("New account")
        a1, a2, a3 = st.columns([3, 2, 1])
        name = a1.text_input("Name")
        bal = a2.text_input("Current balance")
        liability = a3.checkbox("Liability")
        if st.form_submit_button("Add account"):
            parsed = parse_amount(bal)
            if parsed.is_left():
                st.error(parsed.get_error()["message"])
            elif not store.apply(add_account(store.state, name, parsed.get_or_else(None), liability)):
                st.error("Account was not saved")
            else:
                st.rerun()

    ordered = account_order(store.state.accounts)
    fig_bal = go.Figure(go.Bar(
        x=[a.name for a in ordered],
        y=[float(signed_balance(a)) for a in ordered],
        marker_color=[color_for(a.color_index if a.color_index is not None else i) for i, a in enumerate(ordered)],
    ))
    fig_bal.update_layout(title="Account Balances", template="plotly_dark", margin=dict(t=40, b=10, l=10, r=10))
    st.plotly_chart(fig_bal, use_container_width=True)

elif menu == "🧮 Workbenches":
    st.title("🧮 Workbenches")
    show_cards = st.sidebar.checkbox("Show credit card workbenches", value=False)
    configs = [w for w in workbenches if show_cards or w.tag is None]

    sort_field = st.sidebar.selectbox("Sort by", ["due_date", "name", "amount"])
    ascending = st.sidebar.toggle("Ascending", value=True)

    for config in configs:
        rpt = workbench_service.workbench_report(config, store.state.accounts, store.state.transactions, store.state.excluded_ids)
        result = rpt["result"]
        for v in rpt["validation"]:
            for msg in v["messages"]:
                st.warning(msg)

        st.header(config.title)
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Starting Balance", money(result["starting_balance"]))
        c2.metric("Income", money(result["income"]))
        c3.metric("Expenses", money(abs(result["expenses"])))
        c4.metric("Projected", money(result["projected_balance"]))

        for alert in event_bus.publish(BALANCE_ALERT, {
            "title": config.title,
            "projected_balance": result["projected_balance"],
            "threshold": settings.balance_alert,
        }):
            if alert.get("alert"):
                st.error(alert["alert"])

        if st.button("📸 Capture projected", key=f"cap_{config.title}"):
            if store.apply(add_capture(store.state, capture_projection(config.title, result["projected_balance"]))):
                st.success("Captured")

        view = dashboard.workbench_view(store.state.transactions, config.tag, sort_field, ascending)
        for t in view:
            cols = st.columns([4, 2, 2, 1, 1])
            cols[0].write(t.description if t.is_in_calc else f"~~{t.description}~~")
            cols[1].write(f"{'+' if t.amount >= 0 else ''}{t.amount:,.2f}")
            cols[2].write(format_short_date(t.due_date))
            if cols[3].toggle("calc", value=t.is_in_calc, key=f"calc_{t.id}", label_visibility="collapsed") != t.is_in_calc:
                store.apply(toggle_transaction(store.state, t.id))
                st.rerun()
            if cols[4].button("✕", key=f"del_{t.id}"):
                store.apply(delete_transaction(store.state, t.id))
                st.rerun()

        tagged = list(ledger_order(partition_by_tag(store.state.transactions, config.tag)))
        if len(tagged) > 1:
            with st.expander("Reorder"):
                names = [t.description for t in tagged]
                src = st.selectbox("Move", range(len(names)), format_func=lambda i: names[i], key=f"mv_src_{config.title}")
                dst = st.selectbox("To position", range(len(names)), key=f"mv_dst_{config.title}")
                if st.button("Move", key=f"mv_{config.title}"):
                    store.apply(reorder_transactions(store.state, config.tag, src, dst))
                    st.rerun()

        with st.form(f"add_{config.title}", clear_on_submit=True):
            f1, f2, f3, f4 = st.columns([3, 2, 2, 1])
            desc = f1.text_input("Description")
            amount = f2.text_input("Amount")
            due = f3.date_input("Due", value=None)
            is_income = f4.checkbox("Income")
            if st.form_submit_button("Add"):
                parsed = validate_transaction_input(desc, amount, is_income, due)
                if parsed.is_left():
                    st.error(parsed.get_error()["message"])
                else:
                    fields = parsed.get_or_else({})
                    if store.apply(add_transaction(store.state, tag=config.tag, **fields)):
                        event_bus.publish(TRANSACTION_ADDED, {"amount": fields["amount"], "is_in_calc": True})
                    st.rerun()

        df = tx_to_df(t for t in view if t.is_in_calc)
        if not df.empty:
            df["balance"] = np.cumsum(df["amount"].to_numpy()) + float(result["starting_balance"])
            fig = px.line(df, x="description", y="balance", markers=True, title="Running projection", template="plotly_dark")
            st.plotly_chart(fig, use_container_width=True)
        st.divider()

elif menu == "🗓 Bills":
    st.title("🗓 Bill Schedule")
    today = date.today()

    for t in dashboard.summary(store.state.accounts, store.state.templates, today)["due_soon"]:
        for out in event_bus.publish(BILL_DUE_SOON, {"name": t.name, "next_due_date": t.next_due_date, "today": today}):
            if out.get("alert"):
                st.warning(out["alert"])

    col_a, col_b, col_c = st.columns(3)
    show_annual = col_a.checkbox("Show annual", value=False)
    field = col_b.selectbox("Sort by", ["due_date", "name", "amount", "frequency"])
    ascending = col_c.toggle("Ascending", value=True, key="bill_asc")

    shown = visible_templates(store.state.templates, show_annual)
    options = {w.title: w.tag for w in workbenches}

    for t in sort_templates(shown, field, ascending):
        marker = "🟡 " if is_due_soon(t.next_due_date, today, settings.due_soon_days) else ""
        cols = st.columns([4, 2, 2, 2, 2])
        paid = f" (Paid: {format_short_date(t.last_advanced_at)})" if t.last_advanced_at else ""
        cols[0].write(f"{marker}**{t.name}** · {t.frequency.value}{paid}")
        cols[1].write(money(t.default_amount))
        cols[2].write(f"Due {format_short_date(t.next_due_date)}")
        if cols[3].button("💸 Advance", key=f"adv_{t.id}", disabled=t.next_due_date is None):
            if store.apply(advance_bill(store.state, t.id)):
                updated = next(x for x in store.state.templates if x.id == t.id)
                for out in event_bus.publish(BILL_ADVANCED, {
                    "name": updated.name,
                    "next_due_date": updated.next_due_date,
                    "last_advanced_at": updated.last_advanced_at,
                }):
                    st.toast(out["message"])
            st.rerun()
        target = cols[4].selectbox("Add to", list(options), key=f"wb_{t.id}", label_visibility="collapsed")
        if cols[4].button("Add", key=f"addwb_{t.id}"):
            store.apply(add_bill_to_workbench(store.state, t.id, options[target]))
            st.rerun()

        with st.expander(f"Edit {t.name}"):
            with st.form(f"edit_{t.id}"):
                name = st.text_input("Name", value=t.name)
                amt = st.text_input("Amount", value=str(t.default_amount))
                freq = st.selectbox("Frequency", [f.value for f in Frequency], index=[f for f in Frequency].index(t.frequency))
                due = st.date_input("Next due", value=t.next_due_date)
                if st.form_submit_button("Save"):
                    parsed = validate_template_input(name, amt, freq, due)
                    if parsed.is_left():
                        st.error(parsed.get_error()["message"])
                    else:
                        store.apply(edit_template(store.state, t.id, **parsed.get_or_else({})))
                        st.rerun()
            if st.button("🗑 Delete template", key=f"deltmpl_{t.id}"):
                store.apply(delete_template(store.state, t.id))
                st.rerun()
            if t.next_due_date:
                upcoming = [format_short_date(advance_n(t.next_due_date, t.frequency, n)) for n in range(1, 4)]
                st.caption("Following due dates: " + ", ".join(upcoming))

    st.metric("Total Monthly Fixed", money(dashboard.summary(store.state.accounts, shown)["monthly_fixed"]))

    with st.form("new_bill", clear_on_submit=True):
        st.subheader("New bill")
        n1, n2, n3, n4 = st.columns(4)
        name = n1.text_input("Name (e.g. Netflix)")
        amt = n2.text_input("Amount")
        freq = n3.selectbox("Frequency", [f.value for f in Frequency], index=1)
        due = n4.date_input("Next due", value=None)
        if st.form_submit_button("Save Template"):
            parsed = validate_template_input(name, amt, freq, due)
            if parsed.is_left():
                st.error(parsed.get_error()["message"])
            else:
                store.apply(add_template(store.state, **parsed.get_or_else({})))
                st.rerun()

elif menu == "📸 Captures":
    st.title("📸 Captures")
    caps = newest_first(store.state.captures)
    if caps:
        dfc = pd.DataFrame([
            {"created": c.created_at.strftime("%Y-%m-%d %H:%M"), "source": c.source or "-",
             "note": c.note, "amount": float(c.amount)}
            for c in caps
        ])
        st.table(dfc.assign(amount=dfc["amount"].map(lambda x: f"${x:,.2f}")))
        csv = dfc.to_csv(index=False)
        st.download_button("⬇ Download CSV", csv, file_name="captures.csv")

        for c in caps:
            with st.expander(f"{c.created_at.strftime('%Y-%m-%d %H:%M')} · {money(c.amount)}"):
                with st.form(f"editcap_{c.id}"):
                    amt = st.text_input("Amount", value=str(c.amount))
                    note = st.text_input("Note", value=c.note)
                    if st.form_submit_button("Save"):
                        parsed = parse_amount(amt)
                        if parsed.is_left():
                            st.error(parsed.get_error()["message"])
                        else:
                            store.apply(update_capture(store.state, c.id, parsed.get_or_else(None), note))
                            st.rerun()
                if st.button("🗑 Delete", key=f"delcap_{c.id}"):
                    store.apply(delete_capture(store.state, c.id))
                    st.rerun()
    else:
        st.info("No captures yet. Use 📸 on a workbench to snapshot its projected balance.")

    st.caption(f"{len(st.session_state.mutation_log)} change(s) written this session")

elif menu == "📝 Notes":
    st.title("📝 Notes")
    note = store.state.note
    content = st.text_area("Shared notes", value=note.content, height=320)
    if st.button("Save"):
        if store.apply(upsert_note(store.state, content)):
            st.success("Saved")
    if note.updated_at:
        st.caption(f"Last saved {note.updated_at.strftime('%Y-%m-%d %H:%M')}")

"""Optimistic updates as commands.

A command computes the next in-memory state plus a ``Mutation`` describing
what the persistence layer must write. ``OptimisticStore`` shows the new state
immediately and puts the last known-good snapshot back when the write fails.
"""

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, NamedTuple, Optional, Tuple

from cashflow.domain import Account, BillTemplate, Capture, Frequency, Note, Transaction
from cashflow.logging_setup import get_logger
from cashflow.projection import ledger_order, partition_by_tag
from cashflow.scheduler import advance, apply_advance, sort_by_due_date
from cashflow.transforms import (
    account_order,
    add_item,
    bill_to_transaction,
    move,
    new_account,
    new_template,
    new_transaction,
    remove_by_id,
    toggle_in_calc,
    update_by_id,
    update_template,
)

logger = get_logger(__name__)

INSERT = "insert"
UPDATE = "update"
DELETE = "delete"
UPSERT = "upsert"

NOTE_ID = "shared"


class Mutation(NamedTuple):
    action: str
    table: str
    record_id: str
    changes: Dict[str, Any]


@dataclass(frozen=True)
class State:
    accounts: Tuple[Account, ...] = ()
    templates: Tuple[BillTemplate, ...] = ()
    transactions: Tuple[Transaction, ...] = ()
    excluded_ids: frozenset = field(default_factory=frozenset)
    captures: Tuple[Capture, ...] = ()
    note: Note = field(default_factory=Note)


Command = Tuple[State, Optional[Mutation]]


def _find(items, item_id):
    return next((i for i in items if i.id == item_id), None)


# bills

def advance_bill(state: State, template_id: str) -> Command:
    template = _find(state.templates, template_id)
    adv = advance(template) if template is not None else None
    if adv is None:
        return state, None
    new_state = replace(state, templates=apply_advance(state.templates, adv))
    return new_state, Mutation(
        UPDATE,
        "bill_templates",
        template_id,
        {"next_due_date": adv.next_due_date, "last_advanced_at": adv.last_advanced_at},
    )


def add_template(
    state: State,
    name: str,
    default_amount: Decimal,
    frequency: Frequency,
    next_due_date=None,
) -> Command:
    tmpl = new_template(name, default_amount, frequency, next_due_date)
    new_state = replace(state, templates=sort_by_due_date(add_item(state.templates, tmpl)))
    return new_state, Mutation(INSERT, "bill_templates", tmpl.id, asdict(tmpl))


def edit_template(state: State, template_id: str, **changes: Any) -> Command:
    if _find(state.templates, template_id) is None:
        return state, None
    edited = sort_by_due_date(update_template(state.templates, template_id, **changes))
    return replace(state, templates=edited), Mutation(
        UPDATE, "bill_templates", template_id, asdict(_find(edited, template_id))
    )


def delete_template(state: State, template_id: str) -> Command:
    if _find(state.templates, template_id) is None:
        return state, None
    new_state = replace(state, templates=remove_by_id(state.templates, template_id))
    return new_state, Mutation(DELETE, "bill_templates", template_id, {})


# workbench entries

def add_bill_to_workbench(state: State, template_id: str, tag: Optional[str] = None) -> Command:
    template = _find(state.templates, template_id)
    if template is None:
        return state, None
    tx = bill_to_transaction(template, partition_by_tag(state.transactions, tag), tag)
    new_state = replace(state, transactions=add_item(state.transactions, tx))
    return new_state, Mutation(INSERT, "transactions", tx.id, asdict(tx))


def add_transaction(
    state: State,
    description: str,
    amount: Decimal,
    due_date=None,
    tag: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Command:
    tx = new_transaction(partition_by_tag(state.transactions, tag), description, amount, due_date, tag, now)
    new_state = replace(state, transactions=add_item(state.transactions, tx))
    return new_state, Mutation(INSERT, "transactions", tx.id, asdict(tx))


def toggle_transaction(state: State, tx_id: str) -> Command:
    current = _find(state.transactions, tx_id)
    if current is None:
        return state, None
    new_state = replace(state, transactions=toggle_in_calc(state.transactions, tx_id))
    return new_state, Mutation(UPDATE, "transactions", tx_id, {"is_in_calc": not current.is_in_calc})


def delete_transaction(state: State, tx_id: str) -> Command:
    if _find(state.transactions, tx_id) is None:
        return state, None
    new_state = replace(state, transactions=remove_by_id(state.transactions, tx_id))
    return new_state, Mutation(DELETE, "transactions", tx_id, {})


def reorder_transactions(state: State, tag: Optional[str], old_index: int, new_index: int) -> Command:
    """Move one entry within a workbench. Every entry in it gets a fresh ``sort_order``."""
    ledger = ledger_order(partition_by_tag(state.transactions, tag))
    if old_index == new_index or not (0 <= old_index < len(ledger) and 0 <= new_index < len(ledger)):
        return state, None
    reordered = {t.id: t for t in move(ledger, old_index, new_index)}
    new_state = replace(state, transactions=tuple(reordered.get(t.id, t) for t in state.transactions))
    return new_state, Mutation(
        UPDATE, "transactions", tag or "main", {"sort_order": {i: t.sort_order for i, t in reordered.items()}}
    )


# accounts

def add_account(state: State, name: str, current_balance: Decimal, is_liability: bool = False) -> Command:
    if not name or not name.strip():
        return state, None
    acc = new_account(state.accounts, name, current_balance, is_liability)
    return replace(state, accounts=add_item(state.accounts, acc)), Mutation(INSERT, "accounts", acc.id, asdict(acc))


def update_account(state: State, account_id: str, **changes: Any) -> Command:
    if _find(state.accounts, account_id) is None:
        return state, None
    updated = update_by_id(state.accounts, account_id, **changes)
    return replace(state, accounts=updated), Mutation(UPDATE, "accounts", account_id, dict(changes))


def delete_account(state: State, account_id: str) -> Command:
    if _find(state.accounts, account_id) is None:
        return state, None
    new_state = replace(
        state,
        accounts=remove_by_id(state.accounts, account_id),
        excluded_ids=frozenset(state.excluded_ids - {account_id}),
    )
    return new_state, Mutation(DELETE, "accounts", account_id, {})


def reorder_accounts(state: State, old_index: int, new_index: int) -> Command:
    ordered = account_order(state.accounts)
    if old_index == new_index or not (0 <= old_index < len(ordered) and 0 <= new_index < len(ordered)):
        return state, None
    moved = move(ordered, old_index, new_index)
    return replace(state, accounts=moved), Mutation(
        UPDATE, "accounts", "all", {"sort_order": {a.id: a.sort_order for a in moved}}
    )


# captures and notes

def add_capture(state: State, capture: Capture) -> Command:
    return replace(state, captures=add_item(state.captures, capture)), Mutation(
        INSERT, "captures", capture.id, asdict(capture)
    )


def update_capture(state: State, capture_id: str, amount: Decimal, note: str) -> Command:
    if _find(state.captures, capture_id) is None:
        return state, None
    updated = update_by_id(state.captures, capture_id, amount=amount, note=note)
    return replace(state, captures=updated), Mutation(
        UPDATE, "captures", capture_id, {"amount": amount, "note": note}
    )


def delete_capture(state: State, capture_id: str) -> Command:
    if _find(state.captures, capture_id) is None:
        return state, None
    new_state = replace(state, captures=remove_by_id(state.captures, capture_id))
    return new_state, Mutation(DELETE, "captures", capture_id, {})


def upsert_note(state: State, content: str, now: Optional[datetime] = None) -> Command:
    if content == state.note.content:
        return state, None
    note = Note(content=content, updated_at=now or datetime.now())
    return replace(state, note=note), Mutation(UPSERT, "notes", NOTE_ID, asdict(note))


class OptimisticStore:
    """Holds the current state; ``persist`` is the backend write."""

    def __init__(self, state: State, persist: Callable[[Mutation], None]):
        self.state = state
        self._persist = persist

    def apply(self, command: Command) -> bool:
        new_state, mutation = command
        if mutation is None:
            return False
        snapshot = self.state
        self.state = new_state
        try:
            self._persist(mutation)
        except Exception:
            logger.exception("Persisting %s %s/%s failed, rolling back", mutation.action, mutation.table, mutation.record_id)
            self.state = snapshot
            return False
        return True

import json
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Tuple, TypeVar
from uuid import uuid4

from cashflow.domain import (
    Account,
    BillTemplate,
    Capture,
    Frequency,
    Status,
    Transaction,
    WorkbenchConfig,
)

T = TypeVar("T")

DEFAULT_WORKBENCHES = (WorkbenchConfig(title="Main Cash Flow"),)


def _date_or_none(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value[:10]) if value else None


def _datetime_or_none(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def account_from_row(row: Dict[str, Any]) -> Account:
    return Account(
        id=row["id"],
        name=row["name"],
        current_balance=Decimal(str(row.get("current_balance", 0))),
        is_liability=bool(row.get("is_liability", False)),
        sort_order=int(row.get("sort_order", 0)),
        color_index=row.get("color_index"),
    )


def template_from_row(row: Dict[str, Any]) -> BillTemplate:
    return BillTemplate(
        id=row["id"],
        name=row["name"],
        default_amount=Decimal(str(row["default_amount"])),
        frequency=Frequency(row["frequency"]),
        next_due_date=_date_or_none(row.get("next_due_date")),
        last_advanced_at=_date_or_none(row.get("last_advanced_at")),
    )


def transaction_from_row(row: Dict[str, Any]) -> Transaction:
    return Transaction(
        id=row["id"],
        description=row["description"],
        amount=Decimal(str(row["amount"])),
        status=Status(row.get("status", Status.PLANNING.value)),
        is_in_calc=bool(row.get("is_in_calc", True)),
        due_date=_date_or_none(row.get("due_date")),
        sort_order=int(row.get("sort_order", 0)),
        tag=row.get("tag") or None,
        created_at=_datetime_or_none(row.get("created_at")),
    )


def load_seed(
    path: str,
) -> Tuple[
    Tuple[Account, ...],
    Tuple[BillTemplate, ...],
    Tuple[Transaction, ...],
    Tuple[WorkbenchConfig, ...],
]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    accounts = tuple(account_from_row(a) for a in data.get("accounts", []))
    templates = tuple(template_from_row(b) for b in data.get("bill_templates", []))
    transactions = tuple(transaction_from_row(t) for t in data.get("transactions", []))
    workbenches = tuple(WorkbenchConfig(**w) for w in data.get("workbenches", [])) or DEFAULT_WORKBENCHES

    return accounts, templates, transactions, workbenches


def add_item(items: Tuple[T, ...], item: T) -> Tuple[T, ...]:
    return items + (item,)


def remove_by_id(items: Tuple[T, ...], item_id: str) -> Tuple[T, ...]:
    return tuple(i for i in items if i.id != item_id)


def next_sort_order(items: Iterable[Any]) -> int:
    return max((i.sort_order or 0 for i in items), default=0) + 1


def move(items: Tuple[T, ...], old_index: int, new_index: int) -> Tuple[T, ...]:
    """Drag-and-drop move; every item gets ``sort_order`` equal to its new index."""
    moved = list(items)
    moved.insert(new_index, moved.pop(old_index))
    return tuple(replace(item, sort_order=index) for index, item in enumerate(moved))


def update_template(templates: Tuple[BillTemplate, ...], template_id: str, **changes: Any) -> Tuple[BillTemplate, ...]:
    """Manual edit. A hand-edited due date invalidates ``last_advanced_at``."""

    def _edit(t: BillTemplate) -> BillTemplate:
        if "next_due_date" in changes and changes["next_due_date"] != t.next_due_date:
            rest = {k: v for k, v in changes.items() if k != "last_advanced_at"}
            return replace(t, last_advanced_at=None, **rest)
        return replace(t, **changes)

    return tuple(_edit(t) if t.id == template_id else t for t in templates)


def toggle_in_calc(trans: Tuple[Transaction, ...], tx_id: str) -> Tuple[Transaction, ...]:
    return tuple(replace(t, is_in_calc=not t.is_in_calc) if t.id == tx_id else t for t in trans)


def new_template(name: str, default_amount: Decimal, frequency: Frequency, next_due_date: Optional[date] = None) -> BillTemplate:
    return BillTemplate(
        id=str(uuid4()),
        name=name,
        default_amount=abs(default_amount),
        frequency=Frequency(frequency),
        next_due_date=next_due_date,
    )


def new_transaction(
    existing: Iterable[Transaction],
    description: str,
    amount: Decimal,
    due_date: Optional[date] = None,
    tag: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Transaction:
    return Transaction(
        id=str(uuid4()),
        description=description,
        amount=amount,
        status=Status.PLANNING,
        is_in_calc=True,
        due_date=due_date,
        sort_order=next_sort_order(existing),
        tag=tag or None,
        created_at=now or datetime.now(),
    )


def bill_to_transaction(template: BillTemplate, existing: Iterable[Transaction] = (), tag: Optional[str] = None) -> Transaction:
    """A planned expense entry for ``template`` in the workbench named by ``tag``."""
    return new_transaction(
        existing,
        description=template.name,
        amount=-abs(template.default_amount),
        due_date=template.next_due_date,
        tag=tag,
    )


def capture_projection(title: str, projected: Decimal, now: Optional[datetime] = None) -> Capture:
    return Capture(
        id=str(uuid4()),
        amount=projected,
        note=title,
        source=title,
        created_at=now or datetime.now(),
    )


def newest_first(captures: Iterable[Capture]) -> Tuple[Capture, ...]:
    return tuple(sorted(captures, key=lambda c: c.created_at, reverse=True))


def new_account(existing: Iterable[Account], name: str, current_balance: Decimal, is_liability: bool = False) -> Account:
    return Account(
        id=str(uuid4()),
        name=name.strip(),
        current_balance=current_balance,
        is_liability=is_liability,
        sort_order=next_sort_order(existing),
    )


def update_by_id(items: Tuple[T, ...], item_id: str, **changes: Any) -> Tuple[T, ...]:
    return tuple(replace(i, **changes) if i.id == item_id else i for i in items)


def account_order(accounts: Iterable[Account]) -> Tuple[Account, ...]:
    return tuple(sorted(accounts, key=lambda a: (a.sort_order, a.name)))

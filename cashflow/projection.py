"""Workbench aggregates: totals, net worth, safe-to-spend, tag partitions."""

from datetime import date, datetime
from decimal import Decimal
from typing import AbstractSet, Callable, Dict, Iterable, Optional, Tuple

from cashflow.domain import Account, BillTemplate, Frequency, Transaction, WorkbenchConfig
from cashflow.functional import safe_account
from cashflow.sorting import sort_by, sort_missing_last

ZERO = Decimal("0")

TRANSACTION_SORT_FIELDS = ("name", "amount", "due_date")


def _total(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def in_calc(t: Transaction) -> bool:
    return t.is_in_calc


def by_tag(tag: Optional[str]) -> Callable[[Transaction], bool]:
    def _filter(t: Transaction) -> bool:
        return t.tag == tag

    return _filter


def compute_totals(starting_balance: Decimal, transactions: Iterable[Transaction]) -> Dict[str, Decimal]:
    active = tuple(filter(in_calc, transactions))
    income = _total(t.amount for t in active if t.amount > 0)
    expenses = _total(t.amount for t in active if t.amount < 0)
    return {
        "income": income,
        "expenses": expenses,
        "projected_balance": starting_balance + income + expenses,
    }


def compute_net_worth(accounts: Iterable[Account]) -> Dict[str, Decimal]:
    accounts = tuple(accounts)
    assets = _total(a.current_balance for a in accounts if not a.is_liability)
    liabilities = _total(a.current_balance for a in accounts if a.is_liability)
    return {
        "total_assets": assets,
        "total_liabilities": liabilities,
        "net_worth": assets - liabilities,
    }


def compute_workbench_net_worth(accounts: Iterable[Account], excluded_ids: AbstractSet[str] = frozenset()) -> Dict[str, Decimal]:
    return compute_net_worth(a for a in accounts if a.id not in excluded_ids)


def include_in_workbench(account: Account, excluded_ids: AbstractSet[str]) -> bool:
    return account.id not in excluded_ids


def toggle_excluded(excluded_ids: AbstractSet[str], account_id: str) -> frozenset:
    if account_id in excluded_ids:
        return frozenset(excluded_ids - {account_id})
    return frozenset(excluded_ids | {account_id})


def compute_safe_to_spend(accounts: Iterable[Account], bills: Iterable[BillTemplate]) -> Decimal:
    total_cash = _total(a.current_balance for a in accounts if not a.is_liability)
    fixed_monthly = _total(b.default_amount for b in bills if b.frequency != Frequency.ANNUALLY)
    return total_cash - fixed_monthly


def partition_by_tag(transactions: Iterable[Transaction], tag: Optional[str] = None) -> Tuple[Transaction, ...]:
    return tuple(filter(by_tag(tag), transactions))


def linked_account_balance(accounts: Iterable[Account], account_id: str) -> Decimal:
    """Balance a card workbench starts from; liabilities count as money owed."""
    return safe_account(accounts, account_id).map(signed_balance).get_or_else(ZERO)


def signed_balance(account: Account) -> Decimal:
    return -abs(account.current_balance) if account.is_liability else account.current_balance


def starting_balance(config: WorkbenchConfig, accounts: Iterable[Account], excluded_ids: AbstractSet[str] = frozenset()) -> Decimal:
    if config.linked_account_id:
        return linked_account_balance(accounts, config.linked_account_id)
    return compute_workbench_net_worth(accounts, excluded_ids)["net_worth"]


def sort_transactions(transactions: Iterable[Transaction], field: str = "due_date", ascending: bool = True) -> Tuple[Transaction, ...]:
    name = lambda t: t.description
    if field == "due_date":
        return sort_missing_last(transactions, lambda t: t.due_date, name, ascending)
    if field == "name":
        return sort_by(transactions, name, name, ascending)
    if field == "amount":
        return sort_by(transactions, lambda t: t.amount, name, ascending)
    raise ValueError(f"Unknown sort field {field!r}; expected one of {TRANSACTION_SORT_FIELDS}")


def ledger_order(transactions: Iterable[Transaction]) -> Tuple[Transaction, ...]:
    """Stored order: sort_order, then due date with undated entries last, then newest first."""
    newest = sorted(transactions, key=lambda t: t.created_at or datetime.min, reverse=True)
    return tuple(sorted(newest, key=lambda t: (t.sort_order, t.due_date is None, t.due_date or date.min)))

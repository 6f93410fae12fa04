from typing import AbstractSet, Any, Callable, Dict, Iterable, Optional, Sequence

from cashflow.domain import Account, BillTemplate, Transaction, WorkbenchConfig
from cashflow.functional import pipe, safe_account
from cashflow.logging_setup import get_logger
from cashflow.projection import (
    compute_net_worth,
    compute_safe_to_spend,
    compute_totals,
    partition_by_tag,
    sort_transactions,
    starting_balance,
)
from cashflow.scheduler import DUE_SOON_DAYS, iter_due_soon, monthly_total

logger = get_logger(__name__)


def linked_account_exists(config, accounts, transactions, excluded_ids):
    if config.linked_account_id and safe_account(accounts, config.linked_account_id).is_none():
        return [f"Linked account {config.linked_account_id} not found; starting balance is 0"]
    return []


def calc_starting_balance(config, accounts, transactions, excluded_ids, acc=None):
    return {"starting_balance": starting_balance(config, accounts, excluded_ids)}


def calc_entries(config, accounts, transactions, excluded_ids, acc=None):
    return {"transactions": partition_by_tag(transactions, config.tag)}


def calc_totals(config, accounts, transactions, excluded_ids, acc=None):
    acc = acc or {}
    entries = acc.get("transactions", partition_by_tag(transactions, config.tag))
    return compute_totals(acc.get("starting_balance", starting_balance(config, accounts, excluded_ids)), entries)


DEFAULT_VALIDATORS = (linked_account_exists,)
DEFAULT_CALCULATORS = (calc_starting_balance, calc_entries, calc_totals)


class WorkbenchService:
    """Facade for workbench figures using injected validators and calculators.

    validators: functions taking (config, accounts, transactions, excluded_ids) -> Sequence[str]
    calculators: functions taking (config, accounts, transactions, excluded_ids, acc) -> dict (partial results)
    """

    def __init__(
        self,
        validators: Sequence[Callable[..., Sequence[str]]] = DEFAULT_VALIDATORS,
        calculators: Sequence[Callable[..., Dict[str, Any]]] = DEFAULT_CALCULATORS,
    ):
        self.validators = validators
        self.calculators = calculators

    def workbench_report(
        self,
        config: WorkbenchConfig,
        accounts: Iterable[Account],
        transactions: Iterable[Transaction],
        excluded_ids: AbstractSet[str] = frozenset(),
    ) -> Dict[str, Any]:
        """Run validators then calculators; return the report with intermediate steps."""
        accounts = tuple(accounts)
        transactions = tuple(transactions)
        report = {
            "workbench": config.title,
            "validation": [],
            "steps": [],
            "result": {},
        }

        for v in self.validators:
            msgs = v(config, accounts, transactions, excluded_ids)
            if msgs:
                logger.warning("%s: %s", config.title, "; ".join(msgs))
            report["validation"].append({"validator": getattr(v, "__name__", str(v)), "messages": list(msgs)})

        acc: Dict[str, Any] = {}
        for calc in self.calculators:
            out = calc(config, accounts, transactions, excluded_ids, acc)
            report["steps"].append({"calculator": getattr(calc, "__name__", str(calc)), "output": out})
            if isinstance(out, dict):
                acc.update(out)

        report["result"] = acc
        return report


class DashboardService:
    """Summary panel figures: net worth, safe to spend, bills due soon."""

    def __init__(self, horizon_days: int = DUE_SOON_DAYS):
        self.horizon_days = horizon_days

    def summary(
        self,
        accounts: Iterable[Account],
        templates: Iterable[BillTemplate],
        today=None,
    ) -> Dict[str, Any]:
        accounts = tuple(accounts)
        templates = tuple(templates)
        return {
            **compute_net_worth(accounts),
            "safe_to_spend": compute_safe_to_spend(accounts, templates),
            "monthly_fixed": monthly_total(templates),
            "due_soon": tuple(iter_due_soon(templates, today, self.horizon_days)),
        }

    def workbench_view(
        self,
        transactions: Iterable[Transaction],
        tag: Optional[str],
        field: str = "due_date",
        ascending: bool = True,
    ):
        return pipe(
            transactions,
            lambda ts: partition_by_tag(ts, tag),
            lambda ts: sort_transactions(ts, field, ascending),
        )

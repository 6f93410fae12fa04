from datetime import date
from decimal import Decimal

from cashflow.domain import Account, BillTemplate, Frequency, Transaction, WorkbenchConfig
from cashflow.services import DashboardService, WorkbenchService


def make_data():
    accounts = (
        Account("chk", "Checking", Decimal("1000")),
        Account("sav", "Savings", Decimal("500")),
        Account("card", "Card", Decimal("300"), is_liability=True),
    )
    transactions = (
        Transaction("t1", "Paycheck", Decimal("2000"), due_date=date(2026, 10, 30)),
        Transaction("t2", "Rent", Decimal("-1500"), due_date=date(2026, 11, 1)),
        Transaction("t3", "Trip", Decimal("-600"), is_in_calc=False),
        Transaction("t4", "Card payment", Decimal("300"), tag="cc_1"),
        Transaction("t5", "Gas", Decimal("-40"), tag="cc_1"),
    )
    return accounts, transactions


def test_main_workbench_report():
    accounts, transactions = make_data()
    rpt = WorkbenchService().workbench_report(WorkbenchConfig("Main"), accounts, transactions, frozenset({"sav"}))
    assert rpt["workbench"] == "Main"
    assert rpt["validation"][0]["messages"] == []
    assert [s["calculator"] for s in rpt["steps"]] == ["calc_starting_balance", "calc_entries", "calc_totals"]
    result = rpt["result"]
    assert result["starting_balance"] == 700
    assert [t.id for t in result["transactions"]] == ["t1", "t2", "t3"]
    assert result["income"] == 2000
    assert result["expenses"] == -1500
    assert result["projected_balance"] == 1200


def test_card_workbench_report_uses_linked_account():
    accounts, transactions = make_data()
    config = WorkbenchConfig("Card", tag="cc_1", linked_account_id="card")
    result = WorkbenchService().workbench_report(config, accounts, transactions)["result"]
    assert result["starting_balance"] == -300
    assert result["projected_balance"] == -40


def test_missing_linked_account_is_reported():
    accounts, transactions = make_data()
    config = WorkbenchConfig("Card", tag="cc_9", linked_account_id="gone")
    rpt = WorkbenchService().workbench_report(config, accounts, transactions)
    assert "gone" in rpt["validation"][0]["messages"][0]
    assert rpt["result"]["projected_balance"] == 0


def test_custom_calculator_sees_accumulated_results():
    def calc_count(config, accounts, transactions, excluded_ids, acc=None):
        return {"count": len(acc["transactions"])}

    svc = WorkbenchService(validators=(), calculators=WorkbenchService().calculators + (calc_count,))
    accounts, transactions = make_data()
    rpt = svc.workbench_report(WorkbenchConfig("Card", tag="cc_1"), accounts, transactions)
    assert rpt["result"]["count"] == 2
    assert rpt["validation"] == []


def test_dashboard_summary():
    accounts, _ = make_data()
    bills = (
        BillTemplate("b1", "Rent", Decimal("1500"), Frequency.MONTHLY, date(2026, 10, 18)),
        BillTemplate("b2", "Insurance", Decimal("900"), Frequency.ANNUALLY, date(2026, 10, 25)),
    )
    summary = DashboardService().summary(accounts, bills, today=date(2026, 10, 17))
    assert summary["net_worth"] == 1200
    assert summary["safe_to_spend"] == 0
    assert summary["monthly_fixed"] == 1500
    assert [b.id for b in summary["due_soon"]] == ["b1"]


def test_workbench_view_filters_then_sorts():
    _, transactions = make_data()
    view = DashboardService().workbench_view(transactions, None, "due_date", ascending=False)
    assert [t.id for t in view] == ["t2", "t1", "t3"]

from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from cashflow.domain import Account, BillTemplate, Frequency, Status, Transaction
from cashflow.transforms import (
    account_order,
    add_item,
    bill_to_transaction,
    capture_projection,
    load_seed,
    move,
    new_account,
    new_transaction,
    newest_first,
    next_sort_order,
    remove_by_id,
    toggle_in_calc,
    update_by_id,
    update_template,
)

SEED = Path(__file__).resolve().parent.parent / "data" / "seed.json"


def make_tx(id, amount, sort_order=0, in_calc=True, tag=None):
    return Transaction(id=id, description=id, amount=Decimal(str(amount)), is_in_calc=in_calc, sort_order=sort_order, tag=tag)


def make_bill(due=date(2026, 10, 1), last=date(2026, 9, 1)):
    return BillTemplate(
        id="b1",
        name="Rent",
        default_amount=Decimal("1850"),
        frequency=Frequency.MONTHLY,
        next_due_date=due,
        last_advanced_at=last,
    )


def test_load_seed():
    accounts, templates, transactions, workbenches = load_seed(str(SEED))

    assert len(accounts) >= 3
    assert any(a.is_liability for a in accounts)
    assert any(t.next_due_date is None for t in templates)
    assert all(isinstance(t.amount, Decimal) for t in transactions)
    assert workbenches[0].tag is None
    assert {w.tag for w in workbenches[1:]} == {"cc_1", "cc_2", "cc_3"}


def test_add_and_remove_are_immutable():
    t1 = make_tx("t1", 100)
    trans = (t1,)
    added = add_item(trans, make_tx("t2", -5))
    assert len(added) == 2 and len(trans) == 1
    assert remove_by_id(added, "t1") == (added[1],)


def test_update_template_clears_last_advanced_when_due_date_edited():
    templates = (make_bill(),)
    edited = update_template(templates, "b1", next_due_date=date(2026, 10, 5))
    assert edited[0].next_due_date == date(2026, 10, 5)
    assert edited[0].last_advanced_at is None
    assert templates[0].last_advanced_at == date(2026, 9, 1)


def test_update_template_with_full_record_still_clears_last_advanced():
    templates = (make_bill(),)
    edited = update_template(templates, "b1", next_due_date=date(2026, 10, 5), last_advanced_at=date(2026, 9, 1))
    assert edited[0].next_due_date == date(2026, 10, 5)
    assert edited[0].last_advanced_at is None


def test_update_template_keeps_last_advanced_for_other_edits():
    templates = (make_bill(),)
    same_date = update_template(templates, "b1", next_due_date=date(2026, 10, 1), name="Rent (apt)")
    assert same_date[0].last_advanced_at == date(2026, 9, 1)
    assert same_date[0].name == "Rent (apt)"
    amount_only = update_template(templates, "b1", default_amount=Decimal("1900"))
    assert amount_only[0].last_advanced_at == date(2026, 9, 1)


def test_toggle_in_calc():
    trans = (make_tx("t1", 1), make_tx("t2", 2))
    toggled = toggle_in_calc(trans, "t2")
    assert [t.is_in_calc for t in toggled] == [True, False]
    assert trans[1].is_in_calc is True


def test_move_reassigns_sort_order():
    trans = (make_tx("a", 1, 0), make_tx("b", 1, 1), make_tx("c", 1, 2))
    moved = move(trans, 0, 2)
    assert [t.id for t in moved] == ["b", "c", "a"]
    assert [t.sort_order for t in moved] == [0, 1, 2]


def test_next_sort_order():
    assert next_sort_order(()) == 1
    assert next_sort_order((make_tx("a", 1, 4), make_tx("b", 1, 2))) == 5


def test_bill_to_transaction():
    existing = (make_tx("x", 1, sort_order=3, tag="cc_1"),)
    tx = bill_to_transaction(make_bill(), existing, tag="cc_1")
    assert tx.description == "Rent"
    assert tx.amount == Decimal("-1850")
    assert tx.status is Status.PLANNING
    assert tx.is_in_calc is True
    assert tx.due_date == date(2026, 10, 1)
    assert tx.tag == "cc_1"
    assert tx.sort_order == 4


def test_new_transaction_for_main_workbench_has_no_tag():
    tx = new_transaction((), "Paycheck", Decimal("3200"), tag="")
    assert tx.tag is None
    assert tx.sort_order == 1


def test_captures_newest_first():
    older = capture_projection("Main", Decimal("10"), now=datetime(2026, 10, 1, 9, 0))
    newer = capture_projection("Main", Decimal("20"), now=datetime(2026, 10, 2, 9, 0))
    assert [c.amount for c in newest_first((older, newer))] == [Decimal("20"), Decimal("10")]
    assert newer.source == "Main"


def test_new_transaction_records_creation_time():
    now = datetime(2026, 10, 17, 8, 30)
    assert new_transaction((), "Gas", Decimal("-40"), now=now).created_at == now
    assert new_transaction((), "Gas", Decimal("-40")).created_at is not None


def test_new_account_goes_last():
    existing = (
        Account("a1", "Checking", Decimal("100"), sort_order=0),
        Account("a2", "Savings", Decimal("50"), sort_order=3),
    )
    acc = new_account(existing, "  Visa ", Decimal("812"), is_liability=True)
    assert acc.name == "Visa"
    assert acc.sort_order == 4
    assert acc.is_liability


def test_update_by_id_and_account_order():
    accounts = (
        Account("a1", "Savings", Decimal("50"), sort_order=1),
        Account("a2", "Checking", Decimal("100"), sort_order=1),
        Account("a3", "Visa", Decimal("812"), is_liability=True, sort_order=0),
    )
    assert [a.id for a in account_order(accounts)] == ["a3", "a2", "a1"]
    updated = update_by_id(accounts, "a2", current_balance=Decimal("75"))
    assert updated[1].current_balance == Decimal("75")
    assert accounts[1].current_balance == Decimal("100")

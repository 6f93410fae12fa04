from datetime import date
from decimal import Decimal

from cashflow.events import (
    BALANCE_ALERT,
    BILL_ADVANCED,
    BILL_DUE_SOON,
    TRANSACTION_ADDED,
    Event,
    EventBus,
    bill_paid_handler,
    due_soon_handler,
    low_balance_handler,
    projection_delta_handler,
    register_default_handlers,
)


def test_event_bus_subscribe_and_publish():
    bus = EventBus()
    seen = []

    def handler(event: Event, payload: dict) -> dict:
        seen.append(event.name)
        return {"ok": True}

    bus.subscribe(TRANSACTION_ADDED, handler)
    assert bus.publish(TRANSACTION_ADDED, {"amount": -5}) == [{"ok": True}]
    assert seen == [TRANSACTION_ADDED]

    bus.unsubscribe(TRANSACTION_ADDED, handler)
    assert bus.publish(TRANSACTION_ADDED, {}) == []
    assert bus.publish("UNKNOWN", {}) == []


def test_register_default_handlers_is_idempotent():
    bus = EventBus()
    register_default_handlers(bus)
    register_default_handlers(bus)
    assert len(bus.publish(BALANCE_ALERT, {"projected_balance": 1, "threshold": 0})) == 1


def test_projection_delta_handler():
    assert projection_delta_handler(None, {"amount": Decimal("-40")}) == {"projection_delta": Decimal("-40")}
    assert projection_delta_handler(None, {"amount": 99, "is_in_calc": False}) == {"projection_delta": 0}


def test_bill_paid_handler():
    out = bill_paid_handler(None, {
        "name": "Rent",
        "last_advanced_at": date(2026, 10, 1),
        "next_due_date": date(2026, 11, 1),
    })
    assert out["message"] == "Rent paid 10/1/26, next due 11/1/26"


def test_due_soon_handler():
    today = date(2026, 10, 17)
    assert due_soon_handler(None, {"name": "Power", "next_due_date": today, "today": today})["alert"] == "Power is due today"
    assert due_soon_handler(None, {"name": "Power", "next_due_date": date(2026, 10, 18), "today": today})["days"] == 1
    assert due_soon_handler(None, {"name": "Gym", "next_due_date": None}) == {}


def test_low_balance_handler():
    alert = low_balance_handler(None, {"title": "Main", "projected_balance": Decimal("-10"), "threshold": 0})
    assert alert["alert"].startswith("Main: projected balance -10.00")
    assert low_balance_handler(None, {"projected_balance": 5, "threshold": 0}) == {}


def test_default_bus_routes_bill_events():
    bus = EventBus()
    register_default_handlers(bus)
    [out] = bus.publish(BILL_DUE_SOON, {"name": "Water", "next_due_date": date(2026, 10, 20), "today": date(2026, 10, 17)})
    assert out["alert"] == "Water is due in 3 days"
    [out] = bus.publish(BILL_ADVANCED, {"name": "Water", "last_advanced_at": None, "next_due_date": None})
    assert out["message"] == "Water paid N/A, next due N/A"

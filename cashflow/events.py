from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, List, NamedTuple

from cashflow.logging_setup import get_logger
from cashflow.scheduler import format_short_date

__all__ = ['event_bus', 'TRANSACTION_ADDED', 'BILL_ADVANCED', 'BILL_DUE_SOON', 'BALANCE_ALERT', 'Event', 'EventBus']

logger = get_logger(__name__)


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Callable[[Event, dict], dict]]] = {}

    def subscribe(self, name: str, handler: Callable[[Event, dict], dict]) -> None:
        if name not in self._subscribers:
            self._subscribers[name] = []
        if handler not in self._subscribers[name]:
            self._subscribers[name].append(handler)

    def publish(self, name: str, payload: dict) -> List[dict]:
        if name not in self._subscribers:
            return []

        event = Event(
            name=name,
            ts=datetime.now().isoformat(),
            payload=payload
        )
        logger.debug("Publishing %s to %d handler(s)", name, len(self._subscribers[name]))

        results = []
        for handler in self._subscribers[name]:
            result = handler(event, payload)
            results.append(result)
        return results

    def unsubscribe(self, name: str, handler: Callable[[Event, dict], dict]) -> None:
        if name in self._subscribers:
            if handler in self._subscribers[name]:
                self._subscribers[name].remove(handler)


TRANSACTION_ADDED = "TRANSACTION_ADDED"
BILL_ADVANCED = "BILL_ADVANCED"
BILL_DUE_SOON = "BILL_DUE_SOON"
BALANCE_ALERT = "BALANCE_ALERT"

event_bus = EventBus()


def projection_delta_handler(event: Event, payload: dict) -> dict:
    if not payload.get("is_in_calc", True):
        return {"projection_delta": Decimal("0")}
    return {"projection_delta": Decimal(str(payload.get("amount", 0)))}


def bill_paid_handler(event: Event, payload: dict) -> dict:
    paid_on = payload.get("last_advanced_at")
    nxt = payload.get("next_due_date")
    return {
        "message": f"{payload.get('name', 'Bill')} paid {format_short_date(paid_on)}, next due {format_short_date(nxt)}",
    }


def due_soon_handler(event: Event, payload: dict) -> dict:
    due = payload.get("next_due_date")
    today = payload.get("today") or date.today()
    if due is None:
        return {}
    days = (due - today).days
    when = "today" if days == 0 else f"in {days} day{'s' if days != 1 else ''}"
    return {"alert": f"{payload.get('name', 'Bill')} is due {when}", "days": days}


def low_balance_handler(event: Event, payload: dict) -> dict:
    projected = Decimal(str(payload.get("projected_balance", 0)))
    threshold = Decimal(str(payload.get("threshold", 0)))

    if projected < threshold:
        return {
            "alert": f"{payload.get('title', 'Workbench')}: projected balance {projected:,.2f} is below {threshold:,.2f}",
            "projected_balance": projected,
            "threshold": threshold,
        }
    return {}


def register_default_handlers(bus: EventBus = event_bus) -> None:
    bus.subscribe(TRANSACTION_ADDED, projection_delta_handler)
    bus.subscribe(BILL_ADVANCED, bill_paid_handler)
    bus.subscribe(BILL_DUE_SOON, due_soon_handler)
    bus.subscribe(BALANCE_ALERT, low_balance_handler)


register_default_handlers()

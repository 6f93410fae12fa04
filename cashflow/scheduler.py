"""Recurring bill scheduling.

Dates are plain ``datetime.date`` values: calendar arithmetic is done on
year/month/day through ``dateutil.relativedelta`` so no timezone offset can
shift a due date by a day.
"""

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Iterator, NamedTuple, Optional, Tuple, Union

from dateutil.relativedelta import relativedelta

from cashflow.domain import BillTemplate, Frequency
from cashflow.logging_setup import get_logger
from cashflow.sorting import sort_by, sort_missing_last

logger = get_logger(__name__)

DUE_SOON_DAYS = 3

CADENCE = {
    Frequency.BI_WEEKLY: relativedelta(days=14),
    Frequency.MONTHLY: relativedelta(months=1),
    Frequency.QUARTERLY: relativedelta(months=3),
    Frequency.ANNUALLY: relativedelta(years=1),
}

FREQUENCY_ORDER = {
    Frequency.BI_WEEKLY: 0,
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 2,
    Frequency.ANNUALLY: 3,
}

SORT_FIELDS = ("name", "amount", "due_date", "frequency")


class Advance(NamedTuple):
    template_id: str
    next_due_date: date
    last_advanced_at: date


def as_calendar_date(value: Union[date, datetime, str]) -> date:
    """Strip any time-of-day (and offset) and keep only the calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def next_due(due: date, frequency: Frequency) -> date:
    """Add one cadence interval, clamping day-of-month on short months."""
    return as_calendar_date(due) + CADENCE[Frequency(frequency)]


def advance(template: BillTemplate) -> Optional[Advance]:
    """Compute the advanced ``{next_due_date, last_advanced_at}`` pair.

    Returns ``None`` when the template has no due date; callers treat that as
    a no-op. The caller persists the pair.
    """
    if template.next_due_date is None:
        logger.debug("Not advancing %s: no due date", template.id)
        return None
    previous = as_calendar_date(template.next_due_date)
    nxt = next_due(previous, template.frequency)
    logger.info("Advancing %s (%s): %s -> %s", template.name, template.frequency.value, previous, nxt)
    return Advance(template.id, nxt, previous)


def apply_advance(templates: Tuple[BillTemplate, ...], adv: Optional[Advance]) -> Tuple[BillTemplate, ...]:
    if adv is None:
        return templates
    updated = tuple(
        replace(t, next_due_date=adv.next_due_date, last_advanced_at=adv.last_advanced_at)
        if t.id == adv.template_id else t
        for t in templates
    )
    return sort_by_due_date(updated)


def is_due_soon(due: Optional[date], today: Optional[date] = None, horizon_days: int = DUE_SOON_DAYS) -> bool:
    if due is None:
        return False
    today = as_calendar_date(today or date.today())
    diff = (as_calendar_date(due) - today).days
    return 0 <= diff <= horizon_days


def iter_due_soon(
    templates: Iterable[BillTemplate], today: Optional[date] = None, horizon_days: int = DUE_SOON_DAYS
) -> Iterator[BillTemplate]:
    for t in templates:
        if is_due_soon(t.next_due_date, today, horizon_days):
            yield t


def sort_by_due_date(templates: Iterable[BillTemplate]) -> Tuple[BillTemplate, ...]:
    return sort_missing_last(templates, lambda t: t.next_due_date, lambda t: t.name)


def sort_templates(templates: Iterable[BillTemplate], field: str = "due_date", ascending: bool = True) -> Tuple[BillTemplate, ...]:
    if field == "due_date":
        return sort_missing_last(templates, lambda t: t.next_due_date, lambda t: t.name, ascending)
    if field == "name":
        return sort_by(templates, lambda t: t.name, lambda t: t.name, ascending)
    if field == "amount":
        return sort_by(templates, lambda t: t.default_amount, lambda t: t.name, ascending)
    if field == "frequency":
        return sort_by(templates, lambda t: FREQUENCY_ORDER[t.frequency], lambda t: t.name, ascending)
    raise ValueError(f"Unknown sort field {field!r}; expected one of {SORT_FIELDS}")


def visible_templates(templates: Iterable[BillTemplate], show_annual: bool = False) -> Tuple[BillTemplate, ...]:
    return tuple(t for t in templates if show_annual or t.frequency != Frequency.ANNUALLY)


def monthly_total(templates: Iterable[BillTemplate]) -> Decimal:
    """Total fixed exposure, annual bills excluded."""
    return sum(
        (t.default_amount for t in templates if t.frequency != Frequency.ANNUALLY),
        Decimal("0"),
    )


def format_short_date(value: Optional[date]) -> str:
    if value is None:
        return "N/A"
    d = as_calendar_date(value)
    return f"{d.month}/{d.day}/{d.year % 100:02d}"


def advance_n(due: date, frequency: Frequency, times: int) -> date:
    for _ in range(times):
        due = next_due(due, frequency)
    return due


from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class Frequency(str, Enum):
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"


class Status(str, Enum):
    PAID = "paid"
    PENDING = "pending"
    PLANNING = "planning"


@dataclass(frozen=True)
class Account:
    id: str
    name: str
    current_balance: Decimal
    is_liability: bool = False
    sort_order: int = 0
    color_index: Optional[int] = None


@dataclass(frozen=True)
class BillTemplate:
    id: str
    name: str
    default_amount: Decimal   # magnitude, always positive
    frequency: Frequency
    next_due_date: Optional[date] = None
    last_advanced_at: Optional[date] = None  # the due date that was advanced past


@dataclass(frozen=True)
class Transaction:
    id: str
    description: str
    amount: Decimal           # + for income, - for expense
    status: Status = Status.PLANNING
    is_in_calc: bool = True
    due_date: Optional[date] = None
    sort_order: int = 0
    tag: Optional[str] = None  # None means the main workbench
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class WorkbenchConfig:
    title: str
    tag: Optional[str] = None
    linked_account_id: Optional[str] = None


@dataclass(frozen=True)
class Capture:
    id: str
    amount: Decimal
    note: str = ""
    source: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class Note:
    content: str = ""
    updated_at: Optional[datetime] = None


# 12 distinct account colours, cycled by position
ACCOUNT_COLORS = (
    "#3b82f6", "#10b981", "#a855f7", "#f59e0b", "#f43f5e", "#06b6d4",
    "#f97316", "#6366f1", "#14b8a6", "#ec4899", "#84cc16", "#d946ef",
)


def color_for(index: int) -> str:
    return ACCOUNT_COLORS[index % len(ACCOUNT_COLORS)]

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional, Union
from datetime import date

Money = Decimal       # keep full-precision cents


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"
    CUSTOM = "custom"


class ItemKind(str, Enum):
    BILL = "bill"
    INCOME = "income"


class Urgency(str, Enum):
    PAID = "paid"
    OVERDUE = "overdue"
    DUE_SOON = "dueSoon"
    UPCOMING = "upcoming"


@dataclass(frozen=True)
class Bill:
    id: Optional[str]            # assigned by the store
    title: str
    amount: Money
    anchor_date: date            # due date of the real occurrence
    is_recurring: bool = False
    frequency: Optional[Frequency] = None
    custom_interval_days: Optional[int] = None
    is_paid: bool = False
    last_paid_date: Optional[date] = None
    category_id: Optional[str] = None
    notes: str = ""
    kind: ItemKind = field(default=ItemKind.BILL, init=False)


@dataclass(frozen=True)
class Income:
    id: Optional[str]
    source: str
    amount: Money
    anchor_date: date            # receive date of the real occurrence
    is_recurring: bool = False
    frequency: Optional[Frequency] = None
    custom_interval_days: Optional[int] = None
    notes: str = ""
    kind: ItemKind = field(default=ItemKind.INCOME, init=False)


RecurringItem = Union[Bill, Income]


@dataclass(frozen=True)
class Occurrence:
    source_id: str
    kind: ItemKind
    due_date: date
    amount: Money
    is_paid: bool = False
    is_virtual: bool = False

    @property
    def key(self) -> str:
        """Unique UI key, e.g. ``"rent_2024-02-29"``."""
        return f"{self.source_id}_{self.due_date.isoformat()}"


@dataclass(frozen=True)
class Category:
    id: Optional[str]
    name: str
    budget: Money
    spent: Money = Money(0)


@dataclass(frozen=True)
class Expense:
    category_id: str
    amount: Money
    description: str
    date: date
    bill_id: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class PaymentUpdate:
    """
    Everything a single atomic store write has to apply.

    ``category.spent`` is the planner's projection only; the store charges
    ``expense.amount`` against the total it currently holds.
    """
    bill: Optional[Bill] = None
    category: Optional[Category] = None
    expense: Optional[Expense] = None


@dataclass(frozen=True)
class SpendNotice:
    destination: str             # E.164 phone number
    category_name: str
    spent_amount: Money
    remaining_amount: Money

"""
Pure planning for paid-state toggles and spending.

Nothing here writes anything. Each function returns a ``PaymentUpdate``
describing the bill, category and expense that the store must apply together
in one write (see ``DocumentStore.apply_payment``).
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from .datatypes import Bill, Category, Expense, ItemKind, Money, Occurrence, PaymentUpdate, RecurringItem
from .errors import NotABill


def plan_toggle_paid(bill: RecurringItem, today: date, category: Optional[Category] = None) -> PaymentUpdate:
    """
    Flip a bill's paid state.

    Marking paid stamps ``last_paid_date`` with ``today`` and, when a category
    is given, charges the bill amount to it and records an expense that
    references the bill. Marking unpaid clears ``last_paid_date`` and leaves
    categories and expenses alone.
    """
    if not isinstance(bill, Bill):
        raise NotABill(f"Only bills have a paid state, got {type(bill).__name__}")

    if bill.is_paid:
        return PaymentUpdate(bill=replace(bill, is_paid=False, last_paid_date=None))

    paid_bill = replace(bill, is_paid=True, last_paid_date=today)
    if category is None:
        return PaymentUpdate(bill=paid_bill)

    charged = replace(category, spent=category.spent + bill.amount)
    expense = Expense(
        category_id=category.id,
        amount=bill.amount,
        description=f"Bill Payment: {bill.title}",
        date=today,
        bill_id=bill.id,
    )
    return PaymentUpdate(bill=paid_bill, category=charged, expense=expense)


def plan_expense(category: Category, amount: Money, description: str, today: date) -> PaymentUpdate:
    """Record a one-off expense against a category."""
    if amount < 0:
        raise ValueError(f"Expense amount must not be negative, got {amount}")
    expense = Expense(category_id=category.id, amount=amount, description=description, date=today)
    return PaymentUpdate(category=replace(category, spent=category.spent + amount), expense=expense)


def remaining_budget(category: Category) -> Money:
    """Budget left in a category; negative when overspent."""
    return category.budget - category.spent


def scheduled_total(occurrences: Iterable[Occurrence], start: date, end: date,
                    kind: Optional[ItemKind] = None) -> Money:
    """Sum of occurrence amounts due in ``[start, end)``, optionally for one kind."""
    total = Decimal('0')
    for o in occurrences:
        if kind is not None and o.kind is not kind:
            continue
        if start <= o.due_date < end:
            total += o.amount
    return total

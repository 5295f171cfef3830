"""
Calendar-day normalization.

A "day" is a plain ``datetime.date``. The one canonical storage form is the
ISO string ``YYYY-MM-DD``: sortable, and free of any timezone or time-of-day
interpretation. No function here ever converts through a timestamp.
"""

from datetime import date, datetime
from typing import Optional, Tuple

from dateutil.relativedelta import relativedelta

from .errors import InvalidAnchorDate

STORAGE_FORMAT = "%Y-%m-%d"


def to_storage_form(day: date) -> str:
    """Return the canonical ``YYYY-MM-DD`` string for a calendar day."""
    if isinstance(day, datetime) or not isinstance(day, date):
        raise InvalidAnchorDate(f"Not a calendar date: {day!r}")
    return day.isoformat()


def from_storage_form(value: str) -> date:
    """
    Parse a canonical ``YYYY-MM-DD`` string back into a calendar day.

    Only the canonical form is accepted ("2024-1-5" is rejected even though
    strptime would read it), so this is the exact inverse of
    ``to_storage_form``.
    """
    if not isinstance(value, str):
        raise InvalidAnchorDate(f"Stored date must be a string, got {value!r}")
    try:
        parsed = datetime.strptime(value, STORAGE_FORMAT).date()
    except ValueError as e:
        raise InvalidAnchorDate(f"Malformed stored date: {value!r}") from e
    if parsed.isoformat() != value:
        raise InvalidAnchorDate(f"Non-canonical stored date: {value!r}")
    return parsed


def days_until(day: date, today: date) -> int:
    """Whole calendar days from ``today`` to ``day`` (negative if past)."""
    return (day - today).days


def add_months(day: date, months: int, anchor_day: Optional[int] = None) -> date:
    """
    Add calendar months, landing on ``anchor_day`` (default: ``day.day``)
    clamped to the length of the resulting month.
    """
    return day + relativedelta(months=months, day=anchor_day or day.day)


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """Half-open ``[first day, first day of next month)`` for a month."""
    first = date(year, month, 1)
    return first, first + relativedelta(months=1)


def parse_month(month_str: str) -> Tuple[date, date]:
    """Bounds for a ``YYYY-MM`` string."""
    try:
        parsed = datetime.strptime(month_str, "%Y-%m").date()
    except ValueError as e:
        raise InvalidAnchorDate(f"Invalid month: {month_str!r}") from e
    return month_bounds(parsed.year, parsed.month)


def months_after(day: date, months: int) -> date:
    """``day`` plus ``months``, or ``date.max`` when that is past year 9999."""
    try:
        return day + relativedelta(months=months)
    except (ValueError, OverflowError):
        return date.max

"""
Recurrence engine.

Projects a stored bill or income into its sequence of occurrences and
classifies those occurrences for display. Every function here is pure:
"today" is always an argument, nothing reads the clock, nothing logs, and
failures are raised as the typed errors in ``errors``.

Scheduling rule: each step advances from the previously computed occurrence,
starting at the anchor date. Payment state (``is_paid`` / ``last_paid_date``)
never moves the calendar.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional

from .datatypes import Bill, Frequency, Income, ItemKind, Occurrence, RecurringItem, Urgency
from .dates import add_months, days_until, months_after
from .errors import DateOutOfRange, InvalidAnchorDate, InvalidFrequencyConfig

DUE_SOON_DAYS = 7

DEFAULT_HORIZONS: Dict[ItemKind, int] = {
    ItemKind.BILL: 12,
    ItemKind.INCOME: 3,
}

_DAY_STEPS = {
    Frequency.DAILY: 1,
    Frequency.WEEKLY: 7,
    Frequency.BIWEEKLY: 14,
}

_MONTH_STEPS = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.SEMIANNUAL: 6,
    Frequency.ANNUAL: 12,
}


def _check_day(day) -> date:
    if isinstance(day, datetime) or not isinstance(day, date):
        raise InvalidAnchorDate(f"Not a calendar date: {day!r}")
    return day


def resolve_frequency(frequency, custom_interval_days: Optional[int] = None) -> Frequency:
    """
    Validate a frequency (enum member or its string value) together with its
    custom interval, returning the enum member.
    """
    if frequency is None:
        raise InvalidFrequencyConfig("Recurring item has no frequency")
    try:
        freq = Frequency(frequency)
    except ValueError as e:
        raise InvalidFrequencyConfig(f"Unrecognized frequency: {frequency!r}") from e

    if freq is Frequency.CUSTOM:
        if (custom_interval_days is None
                or isinstance(custom_interval_days, bool)
                or not isinstance(custom_interval_days, int)
                or custom_interval_days < 1):
            raise InvalidFrequencyConfig(
                f"Custom frequency needs a positive interval in days, got {custom_interval_days!r}"
            )
    return freq


def step_date(day: date, frequency, custom_interval_days: Optional[int] = None,
              anchor_day: Optional[int] = None) -> date:
    """
    Return the next date in the series after ``day``.

    Month-based frequencies land on ``anchor_day`` (default ``day.day``),
    clamped to the month end. Passing the original anchor's day-of-month keeps
    a Jan 31 series at Feb 29 -> Mar 31 instead of drifting to the 29th.
    """
    _check_day(day)
    freq = resolve_frequency(frequency, custom_interval_days)

    if anchor_day is not None and not 1 <= anchor_day <= 31:
        raise InvalidFrequencyConfig(f"Anchor day out of range: {anchor_day!r}")

    try:
        if freq in _DAY_STEPS:
            return day + timedelta(days=_DAY_STEPS[freq])
        if freq is Frequency.CUSTOM:
            return day + timedelta(days=custom_interval_days)
        return add_months(day, _MONTH_STEPS[freq], anchor_day)
    except (ValueError, OverflowError) as e:
        raise DateOutOfRange(f"No {freq.value} date after {day.isoformat()} before year 10000") from e


def _real_occurrence(item: RecurringItem) -> Occurrence:
    match item:
        case Bill():
            is_paid = item.is_paid
        case Income():
            is_paid = False
        case _:
            raise TypeError(f"Expected a Bill or Income, got {type(item).__name__}")

    return Occurrence(
        source_id=item.id,
        kind=item.kind,
        due_date=_check_day(item.anchor_date),
        amount=item.amount,
        is_paid=is_paid,
        is_virtual=False,
    )


def expand_occurrences(item: RecurringItem, horizon_months: int, today: date) -> List[Occurrence]:
    """
    Expand an item into its occurrences up to ``today + horizon_months``.

    The first element is always the stored (non-virtual) occurrence at the
    anchor date. Recurring items then get one virtual, unpaid occurrence per
    step while the stepped date is before the horizon end. The series also
    ends where the calendar does (year 9999).
    """
    first = _real_occurrence(item)
    if not item.is_recurring:
        return [first]

    freq = resolve_frequency(item.frequency, item.custom_interval_days)
    if horizon_months < 0:
        raise ValueError(f"Horizon must not be negative, got {horizon_months}")
    horizon_end = months_after(_check_day(today), horizon_months)

    occurrences = [first]
    anchor_day = first.due_date.day
    current = first.due_date
    while True:
        try:
            current = step_date(current, freq, item.custom_interval_days, anchor_day)
        except DateOutOfRange:
            break
        if current >= horizon_end:
            break
        occurrences.append(Occurrence(
            source_id=item.id,
            kind=item.kind,
            due_date=current,
            amount=item.amount,
            is_paid=False,
            is_virtual=True,
        ))

    return occurrences


def next_due_date(item: RecurringItem) -> Optional[date]:
    """The date following the anchor, or None for one-off items."""
    if not item.is_recurring:
        return None
    anchor = _check_day(item.anchor_date)
    return step_date(anchor, item.frequency, item.custom_interval_days, anchor.day)


def default_horizon(item: RecurringItem, horizons: Optional[Mapping[ItemKind, int]] = None) -> int:
    return (horizons or DEFAULT_HORIZONS)[item.kind]


def classify_urgency(occurrence: Occurrence, today: date, due_soon_days: int = DUE_SOON_DAYS) -> Urgency:
    if occurrence.is_paid:
        return Urgency.PAID
    remaining = days_until(occurrence.due_date, today)
    if remaining < 0:
        return Urgency.OVERDUE
    if remaining < due_soon_days:
        return Urgency.DUE_SOON
    return Urgency.UPCOMING


def needs_attention(occurrence: Occurrence, today: date, window_days: int = DUE_SOON_DAYS) -> bool:
    """Unpaid and due before ``today + window_days`` (overdue included)."""
    return not occurrence.is_paid and days_until(occurrence.due_date, today) < window_days


def filter_occurrences_in_range(occurrences: Iterable[Occurrence], start: date, end: date) -> List[Occurrence]:
    """Occurrences due in the half-open range ``[start, end)``."""
    return [o for o in occurrences if start <= o.due_date < end]


def expand_items(items: Iterable[RecurringItem], today: date,
                 horizons: Optional[Mapping[ItemKind, int]] = None) -> List[Occurrence]:
    """Expand bills and incomes with per-kind horizons, sorted by due date."""
    occurrences = []
    for item in items:
        occurrences.extend(expand_occurrences(item, default_horizon(item, horizons), today))
    return sorted(occurrences, key=lambda o: (o.due_date, o.kind.value, str(o.source_id)))


def occurrences_in_range(items: Iterable[RecurringItem], start: date, end: date, today: date,
                         horizons: Optional[Mapping[ItemKind, int]] = None) -> List[Occurrence]:
    return filter_occurrences_in_range(expand_items(items, today, horizons), start, end)


def group_by_day(occurrences: Iterable[Occurrence]) -> Dict[date, List[Occurrence]]:
    """Bucket occurrences per calendar day, e.g. for a month grid."""
    days = defaultdict(list)
    for o in occurrences:
        days[o.due_date].append(o)
    return dict(days)

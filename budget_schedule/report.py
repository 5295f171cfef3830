import pandas as pd
from pathlib import Path
from datetime import date
from decimal import Decimal
from typing import Iterable
import logging

from .datatypes import ItemKind, Occurrence
from .dates import to_storage_form
from .recurrence import DUE_SOON_DAYS, classify_urgency

logger = logging.getLogger(__name__)

# Column order of the exported schedule
COLUMNS = [
    'Key',
    'Kind',
    'Source',
    'Due Date',
    'Amount',
    'Paid',
    'Virtual',
    'Urgency',
]


def _occurrence_to_dict(occurrence: Occurrence, today: date, due_soon_days: int) -> dict:
    """Convert an Occurrence to dictionary format for CSV writing"""
    return {
        'Key': occurrence.key,
        'Kind': occurrence.kind.value,
        'Source': occurrence.source_id,
        'Due Date': to_storage_form(occurrence.due_date),
        'Amount': _format_money(occurrence.amount),
        'Paid': occurrence.is_paid,
        'Virtual': occurrence.is_virtual,
        'Urgency': classify_urgency(occurrence, today, due_soon_days).value,
    }


def _format_money(amount):
    """Format money amount with $ prefix"""
    return f'${amount:.2f}'


def schedule_frame(occurrences: Iterable[Occurrence], today: date,
                   due_soon_days: int = DUE_SOON_DAYS) -> pd.DataFrame:
    rows = [_occurrence_to_dict(o, today, due_soon_days) for o in occurrences]
    return pd.DataFrame(rows, columns=COLUMNS)


def write_schedule_csv(csv_path: Path, occurrences: Iterable[Occurrence], today: date,
                       due_soon_days: int = DUE_SOON_DAYS) -> None:
    """Write the expanded schedule to CSV, replacing any existing file"""
    df = schedule_frame(occurrences, today, due_soon_days)
    logger.info(f"Writing {len(df)} schedule entries to {csv_path}")
    df.to_csv(csv_path, index=False)


def monthly_totals(occurrences: Iterable[Occurrence]) -> pd.DataFrame:
    """
    Bill and income totals per month.

    Returns a frame indexed by ``YYYY-MM`` with ``bills``, ``income`` and
    ``net`` (income minus bills) columns. Amounts stay Decimal.
    """
    totals = {}
    for o in occurrences:
        month = o.due_date.strftime('%Y-%m')
        bucket = totals.setdefault(month, {'bills': Decimal('0'), 'income': Decimal('0')})
        if o.kind is ItemKind.BILL:
            bucket['bills'] += o.amount
        else:
            bucket['income'] += o.amount

    df = pd.DataFrame.from_dict(totals, orient='index', columns=['bills', 'income'])
    df = df.sort_index()
    df.index.name = 'month'
    df['net'] = df['income'] - df['bills']
    return df

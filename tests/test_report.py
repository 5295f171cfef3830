"""
Tests for schedule export and monthly totals.
"""

import pandas as pd
from datetime import date
from decimal import Decimal

from budget_schedule.datatypes import Bill, Frequency, Income, ItemKind
from budget_schedule.recurrence import expand_items
from budget_schedule.report import COLUMNS, schedule_frame, write_schedule_csv, monthly_totals

TODAY = date(2024, 1, 1)


def sample_occurrences():
    items = [
        Bill(id='rent', title='Rent', amount=Decimal('1200.00'), anchor_date=date(2024, 1, 1),
             is_recurring=True, frequency=Frequency.MONTHLY, is_paid=True),
        Income(id='pay', source='Salary', amount=Decimal('2000.00'), anchor_date=date(2024, 1, 5),
               is_recurring=True, frequency=Frequency.MONTHLY),
    ]
    return expand_items(items, TODAY, {ItemKind.BILL: 2, ItemKind.INCOME: 2})


class TestScheduleFrame:

    def test_columns_and_rows(self):
        df = schedule_frame(sample_occurrences(), TODAY)

        assert list(df.columns) == COLUMNS
        assert len(df) == 4
        first = df.iloc[0]
        assert first['Key'] == 'rent_2024-01-01'
        assert first['Due Date'] == '2024-01-01'
        assert first['Amount'] == '$1200.00'
        assert first['Urgency'] == 'paid'
        assert bool(first['Virtual']) is False

    def test_urgency_column(self):
        df = schedule_frame(sample_occurrences(), TODAY)
        by_key = dict(zip(df['Key'], df['Urgency']))

        assert by_key['pay_2024-01-05'] == 'dueSoon'
        assert by_key['rent_2024-02-01'] == 'upcoming'

    def test_empty(self):
        df = schedule_frame([], TODAY)
        assert list(df.columns) == COLUMNS
        assert df.empty

    def test_write_csv(self, tmp_path):
        csv_path = tmp_path / 'schedule.csv'
        write_schedule_csv(csv_path, sample_occurrences(), TODAY)

        df = pd.read_csv(csv_path)
        assert list(df.columns) == COLUMNS
        assert list(df['Due Date']) == ['2024-01-01', '2024-01-05', '2024-02-01', '2024-02-05']


class TestMonthlyTotals:

    def test_totals_per_month(self):
        df = monthly_totals(sample_occurrences())

        assert list(df.index) == ['2024-01', '2024-02']
        assert df.loc['2024-01', 'bills'] == Decimal('1200.00')
        assert df.loc['2024-01', 'income'] == Decimal('2000.00')
        assert df.loc['2024-02', 'net'] == Decimal('800.00')

    def test_empty(self):
        df = monthly_totals([])
        assert df.empty
        assert 'net' in df.columns

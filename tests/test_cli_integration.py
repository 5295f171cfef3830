"""
End-to-end tests of the command line: add, edit and delete items, list, pay, spend and export.
"""

import pandas as pd
import pytest
from click.testing import CliRunner
from datetime import date
from decimal import Decimal

from budget_schedule.cli import main
from budget_schedule.store import DocumentStore


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / 'budget.yaml'


def run(store_path, *args):
    result = CliRunner().invoke(main, ['--store', str(store_path), *args])
    return result


def added_id(result):
    # "✔ Added bill <id>: ..."
    return result.output.split()[3].rstrip(':')


def test_add_and_list(store_path):
    result = run(store_path, 'add-bill', 'Rent', '1200', '2024-01-31', '--frequency', 'monthly')
    assert result.exit_code == 0, result.output

    result = run(store_path, 'add-income', 'Salary', '2500', '2024-01-05', '--frequency', 'biweekly')
    assert result.exit_code == 0, result.output

    result = run(store_path, 'list', '--today', '2024-01-15', '--start', '2024-02-01', '--end', '2024-03-01')
    assert result.exit_code == 0, result.output
    assert '2024-02-29' in result.output
    assert '2024-02-02' in result.output
    assert '2024-02-16' in result.output
    assert 'Bills: $1200.00' in result.output
    assert 'Income: $5000.00' in result.output


def test_list_marks_due_soon(store_path):
    run(store_path, 'add-bill', 'Phone', '45', '2024-03-12')
    result = run(store_path, 'list', '--today', '2024-03-10')

    assert result.exit_code == 0, result.output
    assert 'dueSoon' in result.output


def test_empty_range(store_path):
    result = run(store_path, 'list', '--today', '2024-03-10')
    assert result.exit_code == 0
    assert 'Nothing scheduled' in result.output


def test_invalid_custom_frequency_rejected(store_path):
    result = run(store_path, 'add-bill', 'Gym', '30', '2024-03-01', '--frequency', 'custom')
    assert result.exit_code != 0
    assert 'positive interval' in result.output
    assert not store_path.exists()


def test_invalid_date_rejected(store_path):
    result = run(store_path, 'add-bill', 'Gym', '30', '2024-02-30')
    assert result.exit_code != 0


def test_pay_toggles_and_charges_category(store_path):
    result = run(store_path, 'add-category', 'Utilities', '300')
    category_id = added_id(result)

    result = run(store_path, 'add-bill', 'Electric', '84.20', '2024-03-15',
                 '--frequency', 'monthly', '--category', category_id)
    bill_id = added_id(result)

    result = run(store_path, 'pay', bill_id, '--today', '2024-03-14')
    assert result.exit_code == 0, result.output
    assert 'marked paid' in result.output
    assert 'You spent $84.20 on Utilities. $215.80 remaining' in result.output

    store = DocumentStore(store_path)
    assert store.load_item(bill_id).is_paid is True
    assert store.load_category(category_id).spent == Decimal('84.20')
    assert len(store.list_expenses(category_id)) == 1

    result = run(store_path, 'pay', bill_id, '--today', '2024-03-16')
    assert result.exit_code == 0, result.output
    assert 'marked unpaid' in result.output
    assert store.load_item(bill_id).last_paid_date is None
    assert store.load_category(category_id).spent == Decimal('84.20')


def test_pay_unknown_bill(store_path):
    result = run(store_path, 'pay', 'nope')
    assert result.exit_code != 0
    assert 'No stored item with id nope' in result.output
    assert "'nope'" not in result.output


def test_pay_income_rejected(store_path):
    income_id = added_id(run(store_path, 'add-income', 'Salary', '2500', '2024-01-05'))
    result = run(store_path, 'pay', income_id)
    assert result.exit_code != 0
    assert 'Only bills' in result.output


def test_export(store_path, tmp_path):
    run(store_path, 'add-bill', 'Rent', '1200', '2024-01-31', '--frequency', 'monthly')
    csv_path = tmp_path / 'schedule.csv'

    result = run(store_path, 'export', str(csv_path), '--today', '2024-01-15')
    assert result.exit_code == 0, result.output

    df = pd.read_csv(csv_path)
    # Jan 31 plus one per month through the 12-month bill horizon
    assert len(df) == 12
    assert df['Due Date'].iloc[1] == '2024-02-29'


def test_list_far_future_anchor(store_path):
    """A valid date near the end of the calendar lists without a traceback."""
    run(store_path, 'add-bill', 'Lease', '500', '9999-12-15', '--frequency', 'monthly')

    result = run(store_path, 'list', '--today', '9999-12-01')
    assert result.exit_code == 0, result.output
    assert '9999-12-15' in result.output
    assert 'Bills: $500.00' in result.output


def test_list_month(store_path):
    run(store_path, 'add-bill', 'Rent', '1200', '2024-01-31', '--frequency', 'monthly')

    result = run(store_path, 'list', '--today', '2024-01-15', '--month', '2024-02')
    assert result.exit_code == 0, result.output
    assert '2024-02-29' in result.output
    assert '2024-01-31' not in result.output
    assert '2024-03-31' not in result.output


def test_list_month_rejects_bad_input(store_path):
    result = run(store_path, 'list', '--month', 'February')
    assert result.exit_code != 0
    assert 'Invalid month' in result.output

    result = run(store_path, 'list', '--month', '2024-02', '--start', '2024-02-01')
    assert result.exit_code != 0
    assert 'cannot be combined' in result.output


def test_spend_reports_remaining_budget(store_path):
    category_id = added_id(run(store_path, 'add-category', 'Food', '400'))

    result = run(store_path, 'spend', category_id, '25.50', 'Groceries', '--today', '2024-03-02')
    assert result.exit_code == 0, result.output
    assert 'You spent $25.50 on Food. $374.50 remaining' in result.output

    result = run(store_path, 'spend', category_id, '4.50', 'Coffee', '--today', '2024-03-03')
    assert 'You spent $30.00 on Food. $370.00 remaining' in result.output

    store = DocumentStore(store_path)
    expenses = store.list_expenses(category_id)
    assert [e.description for e in expenses] == ['Groceries', 'Coffee']
    assert store.load_category(category_id).spent == sum(e.amount for e in expenses)


def test_spend_then_pay_share_category_total(store_path):
    category_id = added_id(run(store_path, 'add-category', 'Utilities', '300'))
    bill_id = added_id(run(store_path, 'add-bill', 'Electric', '84.20', '2024-03-15', '--category', category_id))

    run(store_path, 'spend', category_id, '10', 'Bulbs', '--today', '2024-03-01')
    result = run(store_path, 'pay', bill_id, '--today', '2024-03-14')
    assert 'You spent $94.20 on Utilities. $205.80 remaining' in result.output


def test_spend_unknown_category(store_path):
    result = run(store_path, 'spend', 'nope', '5', 'Lunch')
    assert result.exit_code != 0
    assert 'No stored item with id nope' in result.output


def test_edit_changes_schedule(store_path):
    bill_id = added_id(run(store_path, 'add-bill', 'Gym', '30', '2024-03-01'))

    result = run(store_path, 'edit', bill_id, '--amount', '35', '--frequency', 'custom', '--every', '10',
                 '--notes', 'new plan')
    assert result.exit_code == 0, result.output
    assert '(custom)' in result.output

    bill = DocumentStore(store_path).load_item(bill_id)
    assert bill.amount == Decimal('35')
    assert bill.is_recurring is True
    assert bill.custom_interval_days == 10
    assert bill.notes == 'new plan'
    assert bill.title == 'Gym'

    result = run(store_path, 'list', '--today', '2024-03-01', '--end', '2024-03-25')
    assert '2024-03-11' in result.output
    assert '2024-03-21' in result.output

    result = run(store_path, 'edit', bill_id, '--once')
    assert result.exit_code == 0, result.output
    bill = DocumentStore(store_path).load_item(bill_id)
    assert bill.is_recurring is False
    assert bill.frequency is None


def test_edit_income_name_and_date(store_path):
    income_id = added_id(run(store_path, 'add-income', 'Salary', '2500', '2024-01-05', '--frequency', 'biweekly'))

    result = run(store_path, 'edit', income_id, '--name', 'Payroll', '--date', '2024-01-12')
    assert result.exit_code == 0, result.output

    income = DocumentStore(store_path).load_item(income_id)
    assert income.source == 'Payroll'
    assert income.anchor_date == date(2024, 1, 12)


def test_edit_rejects_invalid_changes(store_path):
    income_id = added_id(run(store_path, 'add-income', 'Salary', '2500', '2024-01-05'))
    bill_id = added_id(run(store_path, 'add-bill', 'Gym', '30', '2024-03-01', '--frequency', 'monthly'))
    before = store_path.read_text()

    result = run(store_path, 'edit', income_id, '--category', 'food')
    assert result.exit_code != 0
    assert 'Only bills' in result.output

    result = run(store_path, 'edit', bill_id, '--frequency', 'custom')
    assert result.exit_code != 0
    assert 'positive interval' in result.output

    result = run(store_path, 'edit', bill_id)
    assert result.exit_code != 0
    assert 'Nothing to change' in result.output

    result = run(store_path, 'edit', 'nope', '--amount', '1')
    assert 'No stored item with id nope' in result.output

    assert store_path.read_text() == before


def test_delete(store_path):
    bill_id = added_id(run(store_path, 'add-bill', 'Gym', '30', '2024-03-01'))

    result = run(store_path, 'delete', bill_id)
    assert result.exit_code == 0, result.output
    assert DocumentStore(store_path).list_items() == []

    result = run(store_path, 'delete', bill_id)
    assert result.exit_code != 0
    assert f'No stored item with id {bill_id}' in result.output

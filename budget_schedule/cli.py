'''
To Run:
python -m budget_schedule.cli --store budget.yaml list
'''
import click
import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path

from budget_schedule import config as budget_config
from budget_schedule import payments, recurrence, report
from budget_schedule.datatypes import Bill, Category, Frequency, Income, ItemKind
from budget_schedule.dates import from_storage_form, months_after, parse_month, to_storage_form
from budget_schedule.errors import ScheduleError
from budget_schedule.notifications import build_spend_notice, format_spend_message
from budget_schedule.store import DocumentStore

# Set up logging
logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)

URGENCY_ICONS = {
    'paid': '✔',
    'overdue': '❗',
    'dueSoon': '⚠',
    'upcoming': '·',
}


class CalendarDate(click.ParamType):
    """Click parameter for canonical YYYY-MM-DD dates."""
    name = 'date'

    def convert(self, value, param, ctx):
        if isinstance(value, date):
            return value
        try:
            return from_storage_form(value)
        except ScheduleError as e:
            self.fail(str(e), param, ctx)


class Amount(click.ParamType):
    name = 'amount'

    def convert(self, value, param, ctx):
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            self.fail(f"{value!r} is not a valid amount", param, ctx)
        if amount < 0:
            self.fail("amount must not be negative", param, ctx)
        return amount


DATE = CalendarDate()
AMOUNT = Amount()
FREQUENCIES = click.Choice([f.value for f in Frequency])


def _item_name(item) -> str:
    match item:
        case Bill():
            return item.title
        case Income():
            return item.source
    return str(item.id)


def _recurrence_fields(frequency, every):
    """Validate --frequency/--every the same way the engine will."""
    if frequency is None:
        return dict(is_recurring=False)
    freq = recurrence.resolve_frequency(frequency, every)
    return dict(is_recurring=True, frequency=freq,
                custom_interval_days=every if freq is Frequency.CUSTOM else None)


@click.group()
@click.option('--store', 'store_path', type=click.Path(path_type=Path), default=None, help='Path to the YAML document store')
@click.option('--config', 'config_path', type=click.Path(exists=True, path_type=Path), default=None, help='Path to a budget config YAML')
@click.pass_context
def main(ctx, store_path, config_path):
    """Track recurring bills and income and project them onto a calendar."""
    try:
        cfg = budget_config.load_config(config_path)
    except ScheduleError as e:
        raise click.ClickException(str(e))
    ctx.obj = {
        'config': cfg,
        'store': DocumentStore(store_path or Path(cfg['storage']['path'])),
    }


@main.command('add-bill')
@click.argument('title')
@click.argument('amount', type=AMOUNT)
@click.argument('due_date', type=DATE)
@click.option('--frequency', type=FREQUENCIES, default=None, help='Repeat schedule (omit for a one-off bill)')
@click.option('--every', type=int, default=None, help='Interval in days for --frequency custom')
@click.option('--category', 'category_id', default=None, help='Category charged when the bill is paid')
@click.pass_obj
def add_bill(obj, title, amount, due_date, frequency, every, category_id):
    try:
        fields = _recurrence_fields(frequency, every)
        if category_id is not None:
            obj['store'].load_category(category_id)
        bill = obj['store'].save_item(Bill(id=None, title=title, amount=amount, anchor_date=due_date,
                                           category_id=category_id, **fields))
    except ScheduleError as e:
        raise click.ClickException(str(e))
    click.echo(f"✔ Added bill {bill.id}: {title} ${amount:.2f} due {to_storage_form(due_date)}")


@main.command('add-income')
@click.argument('source')
@click.argument('amount', type=AMOUNT)
@click.argument('receive_date', type=DATE)
@click.option('--frequency', type=FREQUENCIES, default=None, help='Repeat schedule (omit for one-off income)')
@click.option('--every', type=int, default=None, help='Interval in days for --frequency custom')
@click.pass_obj
def add_income(obj, source, amount, receive_date, frequency, every):
    try:
        fields = _recurrence_fields(frequency, every)
        income = obj['store'].save_item(Income(id=None, source=source, amount=amount,
                                               anchor_date=receive_date, **fields))
    except ScheduleError as e:
        raise click.ClickException(str(e))
    click.echo(f"✔ Added income {income.id}: {source} ${amount:.2f} on {to_storage_form(receive_date)}")


@main.command('add-category')
@click.argument('name')
@click.argument('budget', type=AMOUNT)
@click.pass_obj
def add_category(obj, name, budget):
    category = obj['store'].save_category(Category(id=None, name=name, budget=budget))
    click.echo(f"✔ Added category {category.id}: {name} (budget ${budget:.2f})")


@main.command('list')
@click.option('--start', type=DATE, default=None, help='First day to show (default: today)')
@click.option('--end', type=DATE, default=None, help='Day after the last one to show (default: bill horizon end)')
@click.option('--month', default=None, help='Show one calendar month (YYYY-MM) instead of --start/--end')
@click.option('--today', type=DATE, default=None, help='Override the current date')
@click.pass_obj
def list_occurrences(obj, start, end, month, today):
    """List upcoming occurrences with their urgency."""
    if month is not None:
        if start is not None or end is not None:
            raise click.UsageError("--month cannot be combined with --start or --end")
        try:
            start, end = parse_month(month)
        except ScheduleError as e:
            raise click.BadParameter(str(e), param_hint='--month')

    cfg = obj['config']
    today = today or date.today()
    horizons = budget_config.horizons_from_config(cfg)
    soon = budget_config.due_soon_days(cfg)

    try:
        items = obj['store'].list_items()
        occurrences = recurrence.expand_items(items, today, horizons)
    except ScheduleError as e:
        raise click.ClickException(str(e))

    start = start or today
    end = end or months_after(today, horizons[ItemKind.BILL])
    shown = recurrence.filter_occurrences_in_range(occurrences, start, end)
    logger.info(f"Showing {len(shown)} of {len(occurrences)} occurrences")

    names = {item.id: _item_name(item) for item in items}
    if not shown:
        click.echo("📄 Nothing scheduled in this range")
        return

    for o in shown:
        urgency = recurrence.classify_urgency(o, today, soon)
        marker = '' if o.is_virtual else ' *'
        click.echo(
            f"{URGENCY_ICONS[urgency.value]} {to_storage_form(o.due_date)}  {o.kind.value:<6} "
            f"{names.get(o.source_id, o.source_id):<24} ${o.amount:>10.2f}  {urgency.value}{marker}"
        )

    bills_total = payments.scheduled_total(shown, start, end, ItemKind.BILL)
    income_total = payments.scheduled_total(shown, start, end, ItemKind.INCOME)
    click.echo(f"\nBills: ${bills_total:.2f}  Income: ${income_total:.2f}  Net: ${income_total - bills_total:.2f}")


@main.command('pay')
@click.argument('bill_id')
@click.option('--today', type=DATE, default=None, help='Override the current date')
@click.option('--notify', 'destination', default=None, help='Phone number to show the spend notice for')
@click.pass_obj
def pay(obj, bill_id, today, destination):
    """Toggle a bill between paid and unpaid."""
    store = obj['store']
    today = today or date.today()
    try:
        bill = store.load_item(bill_id)
        category = None
        if isinstance(bill, Bill) and not bill.is_paid and bill.category_id:
            category = store.load_category(bill.category_id)
        update = payments.plan_toggle_paid(bill, today, category)
        stored = store.apply_payment(update)
    except ScheduleError as e:
        raise click.ClickException(str(e))

    state = 'paid' if stored.bill.is_paid else 'unpaid'
    click.echo(f"✔ {stored.bill.title} marked {state}")
    if stored.expense is not None:
        notice = build_spend_notice(destination or '', stored.category)
        click.echo(f"💰 {format_spend_message(notice)}")


@main.command('spend')
@click.argument('category_id')
@click.argument('amount', type=AMOUNT)
@click.argument('description')
@click.option('--today', type=DATE, default=None, help='Override the current date')
@click.option('--notify', 'destination', default=None, help='Phone number to show the spend notice for')
@click.pass_obj
def spend(obj, category_id, amount, description, today, destination):
    """Record a one-off expense against a category."""
    store = obj['store']
    today = today or date.today()
    try:
        category = store.load_category(category_id)
        stored = store.apply_payment(payments.plan_expense(category, amount, description, today))
    except ScheduleError as e:
        raise click.ClickException(str(e))

    click.echo(f"✔ Recorded expense {stored.expense.id}: {description} ${amount:.2f}")
    notice = build_spend_notice(destination or '', stored.category)
    click.echo(f"💰 {format_spend_message(notice)}")


@main.command('edit')
@click.argument('item_id')
@click.option('--name', default=None, help='New bill title or income source')
@click.option('--amount', type=AMOUNT, default=None)
@click.option('--date', 'anchor_date', type=DATE, default=None, help='New anchor date')
@click.option('--frequency', type=FREQUENCIES, default=None, help='Make the item repeat on this schedule')
@click.option('--every', type=int, default=None, help='Interval in days for --frequency custom')
@click.option('--once', is_flag=True, help='Stop the item repeating')
@click.option('--category', 'category_id', default=None, help='Category charged when the bill is paid')
@click.option('--notes', default=None)
@click.pass_obj
def edit(obj, item_id, name, amount, anchor_date, frequency, every, once, category_id, notes):
    """Change any field of a stored bill or income."""
    if once and (frequency is not None or every is not None):
        raise click.UsageError("--once cannot be combined with --frequency or --every")

    store = obj['store']
    try:
        item = store.load_item(item_id)
        changes = {}
        if name is not None:
            changes['title' if isinstance(item, Bill) else 'source'] = name
        if amount is not None:
            changes['amount'] = amount
        if anchor_date is not None:
            changes['anchor_date'] = anchor_date
        if notes is not None:
            changes['notes'] = notes
        if once:
            changes.update(is_recurring=False, frequency=None, custom_interval_days=None)
        elif frequency is not None or every is not None:
            changes.update(_recurrence_fields(frequency or item.frequency,
                                              every if every is not None else item.custom_interval_days))
        if category_id is not None:
            if not isinstance(item, Bill):
                raise click.UsageError("Only bills can be charged to a category")
            store.load_category(category_id)
            changes['category_id'] = category_id
        if not changes:
            raise click.UsageError("Nothing to change")
        item = store.save_item(replace(item, **changes))
    except ScheduleError as e:
        raise click.ClickException(str(e))

    schedule = item.frequency.value if item.is_recurring else 'once'
    click.echo(f"✔ Updated {item.kind.value} {item.id}: {_item_name(item)} ${item.amount:.2f} "
               f"from {to_storage_form(item.anchor_date)} ({schedule})")


@main.command('delete')
@click.argument('item_id')
@click.pass_obj
def delete(obj, item_id):
    """Remove a bill or income; its category spending and expenses stay."""
    try:
        obj['store'].delete_item(item_id)
    except ScheduleError as e:
        raise click.ClickException(str(e))
    click.echo(f"✔ Deleted {item_id}")


@main.command('export')
@click.argument('csv_path', type=click.Path(path_type=Path))
@click.option('--today', type=DATE, default=None, help='Override the current date')
@click.pass_obj
def export(obj, csv_path, today):
    """Write every projected occurrence to a CSV file."""
    cfg = obj['config']
    today = today or date.today()
    try:
        occurrences = recurrence.expand_items(obj['store'].list_items(), today,
                                              budget_config.horizons_from_config(cfg))
    except ScheduleError as e:
        raise click.ClickException(str(e))
    report.write_schedule_csv(csv_path, occurrences, today, budget_config.due_soon_days(cfg))
    click.echo(f"✔ {len(occurrences)} occurrences written to {csv_path}")


if __name__ == '__main__':
    main()

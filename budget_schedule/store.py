"""
File-backed document store for bills, incomes, categories and expenses.

All four collections live in one YAML document so that a paid-toggle (bill +
category total + expense record) is a single file write. Writes go to a
temporary file in the same directory and are swapped in with ``os.replace``,
so readers see either the old document or the new one, never a mix.
"""

import logging
import os
import tempfile
import uuid
import yaml
from dataclasses import replace
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from .datatypes import Bill, Category, Expense, Frequency, Income, ItemKind, PaymentUpdate, RecurringItem
from .dates import from_storage_form, to_storage_form
from .errors import InvalidFrequencyConfig, ItemNotFound

logger = logging.getLogger(__name__)

COLLECTIONS = ('bills', 'incomes', 'categories', 'expenses')

_ITEM_COLLECTION = {
    ItemKind.BILL: 'bills',
    ItemKind.INCOME: 'incomes',
}


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def _optional_date(value):
    return from_storage_form(value) if value is not None else None


def _frequency(value) -> Optional[Frequency]:
    if value is None:
        return None
    try:
        return Frequency(value)
    except ValueError as e:
        raise InvalidFrequencyConfig(f"Unrecognized stored frequency: {value!r}") from e


def _bill_to_doc(bill: Bill) -> Dict[str, Any]:
    return {
        'title': bill.title,
        'amount': str(bill.amount),
        'anchor_date': to_storage_form(bill.anchor_date),
        'is_recurring': bill.is_recurring,
        'frequency': bill.frequency.value if bill.frequency else None,
        'custom_interval_days': bill.custom_interval_days,
        'is_paid': bill.is_paid,
        'last_paid_date': to_storage_form(bill.last_paid_date) if bill.last_paid_date else None,
        'category_id': bill.category_id,
        'notes': bill.notes,
    }


def _bill_from_doc(item_id: str, doc: Dict[str, Any]) -> Bill:
    return Bill(
        id=item_id,
        title=doc.get('title', ''),
        amount=Decimal(str(doc.get('amount', '0'))),
        anchor_date=from_storage_form(doc.get('anchor_date')),
        is_recurring=bool(doc.get('is_recurring', False)),
        frequency=_frequency(doc.get('frequency')),
        custom_interval_days=doc.get('custom_interval_days'),
        is_paid=bool(doc.get('is_paid', False)),
        last_paid_date=_optional_date(doc.get('last_paid_date')),
        category_id=doc.get('category_id'),
        notes=doc.get('notes') or '',
    )


def _income_to_doc(income: Income) -> Dict[str, Any]:
    return {
        'source': income.source,
        'amount': str(income.amount),
        'anchor_date': to_storage_form(income.anchor_date),
        'is_recurring': income.is_recurring,
        'frequency': income.frequency.value if income.frequency else None,
        'custom_interval_days': income.custom_interval_days,
        'notes': income.notes,
    }


def _income_from_doc(item_id: str, doc: Dict[str, Any]) -> Income:
    return Income(
        id=item_id,
        source=doc.get('source', ''),
        amount=Decimal(str(doc.get('amount', '0'))),
        anchor_date=from_storage_form(doc.get('anchor_date')),
        is_recurring=bool(doc.get('is_recurring', False)),
        frequency=_frequency(doc.get('frequency')),
        custom_interval_days=doc.get('custom_interval_days'),
        notes=doc.get('notes') or '',
    )


def _category_to_doc(category: Category) -> Dict[str, Any]:
    return {
        'name': category.name,
        'budget': str(category.budget),
        'spent': str(category.spent),
    }


def _category_from_doc(category_id: str, doc: Dict[str, Any]) -> Category:
    return Category(
        id=category_id,
        name=doc.get('name', ''),
        budget=Decimal(str(doc.get('budget', '0'))),
        spent=Decimal(str(doc.get('spent', '0'))),
    )


def _expense_to_doc(expense: Expense) -> Dict[str, Any]:
    return {
        'category_id': expense.category_id,
        'amount': str(expense.amount),
        'description': expense.description,
        'date': to_storage_form(expense.date),
        'bill_id': expense.bill_id,
    }


def _expense_from_doc(expense_id: str, doc: Dict[str, Any]) -> Expense:
    return Expense(
        id=expense_id,
        category_id=doc.get('category_id'),
        amount=Decimal(str(doc.get('amount', '0'))),
        description=doc.get('description', ''),
        date=from_storage_form(doc.get('date')),
        bill_id=doc.get('bill_id'),
    )


class DocumentStore:
    """YAML document store; one file holds every collection."""

    def __init__(self, path: Path):
        self.path = Path(path)

    # -- raw document -----------------------------------------------------

    def _read(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            logger.debug(f"Store {self.path} does not exist, starting empty")
            return {name: {} for name in COLLECTIONS}

        document = yaml.safe_load(self.path.read_text()) or {}
        for name in COLLECTIONS:
            document[name] = document.get(name) or {}
        return document

    def _write(self, document: Dict[str, Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, 'w') as f:
                yaml.safe_dump(document, f, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug(f"Wrote store {self.path}")

    # -- bills and incomes ------------------------------------------------

    def load_item(self, item_id: str) -> RecurringItem:
        document = self._read()
        if item_id in document['bills']:
            return _bill_from_doc(item_id, document['bills'][item_id])
        if item_id in document['incomes']:
            return _income_from_doc(item_id, document['incomes'][item_id])
        raise ItemNotFound(item_id)

    def list_items(self, kind: Optional[ItemKind] = None) -> List[RecurringItem]:
        document = self._read()
        items: List[RecurringItem] = []
        if kind in (None, ItemKind.BILL):
            items.extend(_bill_from_doc(k, v) for k, v in document['bills'].items())
        if kind in (None, ItemKind.INCOME):
            items.extend(_income_from_doc(k, v) for k, v in document['incomes'].items())
        logger.debug(f"Loaded {len(items)} items from {self.path}")
        return items

    def save_item(self, item: RecurringItem) -> RecurringItem:
        """Insert or replace an item, assigning an id when it has none."""
        if item.id is None:
            item = replace(item, id=_new_id())

        document = self._read()
        for collection in _ITEM_COLLECTION.values():
            document[collection].pop(item.id, None)
        document[_ITEM_COLLECTION[item.kind]][item.id] = _item_to_doc(item)
        self._write(document)
        logger.info(f"Saved {item.kind.value} {item.id}")
        return item

    def delete_item(self, item_id: str) -> None:
        document = self._read()
        for collection in _ITEM_COLLECTION.values():
            if item_id in document[collection]:
                del document[collection][item_id]
                self._write(document)
                logger.info(f"Deleted item {item_id}")
                return
        raise ItemNotFound(item_id)

    # -- categories and expenses ------------------------------------------

    def load_category(self, category_id: str) -> Category:
        document = self._read()
        if category_id not in document['categories']:
            raise ItemNotFound(category_id)
        return _category_from_doc(category_id, document['categories'][category_id])

    def list_categories(self) -> List[Category]:
        document = self._read()
        return [_category_from_doc(k, v) for k, v in document['categories'].items()]

    def save_category(self, category: Category) -> Category:
        if category.id is None:
            category = replace(category, id=_new_id())
        document = self._read()
        document['categories'][category.id] = _category_to_doc(category)
        self._write(document)
        logger.info(f"Saved category {category.id} ({category.name})")
        return category

    def list_expenses(self, category_id: Optional[str] = None) -> List[Expense]:
        document = self._read()
        expenses = [_expense_from_doc(k, v) for k, v in document['expenses'].items()]
        if category_id is not None:
            expenses = [e for e in expenses if e.category_id == category_id]
        return sorted(expenses, key=lambda e: e.date)

    def apply_payment(self, update: PaymentUpdate) -> PaymentUpdate:
        """
        Apply a planned bill/category/expense change as one write.

        The category total is recomputed from the stored ``spent`` plus the
        expense amount, inside the same read-modify-write; the ``spent`` on
        ``update.category`` is the caller's view and is never written back.
        Returns the update as stored (fresh category total, expense id).
        Nothing is written if any referenced document is missing.
        """
        document = self._read()

        stored_bill = None
        if update.bill is not None:
            if update.bill.id not in document['bills']:
                raise ItemNotFound(update.bill.id)
            document['bills'][update.bill.id] = _bill_to_doc(update.bill)
            stored_bill = update.bill

        stored_category = None
        charged_id = update.expense.category_id if update.expense is not None else None
        if update.category is not None and charged_id is None:
            charged_id = update.category.id
        if charged_id is not None:
            if charged_id not in document['categories']:
                raise ItemNotFound(charged_id)
            stored_category = _category_from_doc(charged_id, document['categories'][charged_id])
            if update.expense is not None:
                stored_category = replace(stored_category, spent=stored_category.spent + update.expense.amount)
                document['categories'][charged_id] = _category_to_doc(stored_category)

        stored_expense = None
        if update.expense is not None:
            expense_id = update.expense.id or _new_id()
            document['expenses'][expense_id] = _expense_to_doc(update.expense)
            stored_expense = replace(update.expense, id=expense_id)

        self._write(document)
        logger.info(
            f"Applied payment update (bill={stored_bill.id if stored_bill else None}, "
            f"category={stored_category.id if stored_category else None}, "
            f"expense={stored_expense.id if stored_expense else None})"
        )
        return PaymentUpdate(bill=stored_bill, category=stored_category, expense=stored_expense)


def _item_to_doc(item: RecurringItem) -> Dict[str, Any]:
    match item:
        case Bill():
            return _bill_to_doc(item)
        case Income():
            return _income_to_doc(item)
    raise TypeError(f"Expected a Bill or Income, got {type(item).__name__}")

"""
CSV export and import functionality for TripLedger
"""
from __future__ import annotations
import csv
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from config import minor_units
from currency import normalize_expense
from models import Entity, EntityRef, Expense, Split, Summary
from utils import decimal_str, round_money

logger = logging.getLogger(__name__)

EXPENSE_COLUMNS = [
    'id', 'date', 'description', 'category', 'amount', 'currency',
    'exchange_rate', 'base_amount', 'paid_by', 'paid_by_name', 'splits', 'notes',
]


def _fmt(amount: Decimal, places: int, decimal_separator: str) -> str:
    return decimal_str(round_money(amount, places)).replace('.', decimal_separator)


def _ref_str(ref: EntityRef) -> str:
    return f"{ref.entity_type.value}:{ref.entity_id}"


def _parse_ref(s: str) -> EntityRef:
    kind, _, entity_id = s.strip().partition(':')
    return EntityRef(entity_id, kind)


def _names(entities: Optional[Iterable[Entity]]) -> Dict[EntityRef, str]:
    return {e.ref: e.display_name for e in entities or ()}


def export_expenses_to_csv(
    expenses: List[Expense],
    filepath: str,
    base_currency: str,
    entities: Optional[Iterable[Entity]] = None,
    decimal_separator: str = '.',
) -> None:
    """
    Export expenses list to CSV file (UTF-8 with BOM so spreadsheets detect the encoding).
    Amounts are rounded here, at the export boundary. With ',' as decimal separator the
    field delimiter becomes ';'.
    """
    names = _names(entities)
    delimiter = ';' if decimal_separator == ',' else ','
    base_places = minor_units(base_currency)

    with open(filepath, 'w', newline='', encoding='utf-8-sig') as f:
        writer = csv.writer(f, delimiter=delimiter)
        writer.writerow(EXPENSE_COLUMNS)

        for e in expenses:
            places = minor_units(e.currency)
            # splits keep full precision and '.' so the file can be imported back
            split_str = ';'.join(f"{_ref_str(s.entity)}={decimal_str(s.amount)}" for s in e.splits)
            writer.writerow([
                e.id,
                e.date,
                e.description,
                e.category,
                _fmt(e.amount, places, decimal_separator),
                e.currency,
                decimal_str(e.exchange_rate_to_base),
                _fmt(normalize_expense(e, base_currency).amount, base_places, decimal_separator),
                _ref_str(e.paid_by),
                names.get(e.paid_by, e.paid_by.entity_id),
                split_str,
                e.notes,
            ])
    logger.info("Exported %d expenses to %s", len(expenses), filepath)


def export_summary_to_csv(summary: Summary, filepath: str, decimal_separator: str = '.') -> None:
    """
    Export balances followed by suggested transfers.
    CSV sections: entity rows (paid, owed, net) then a blank line and transfer rows.
    """
    delimiter = ';' if decimal_separator == ',' else ','
    places = minor_units(summary.base_currency)
    names = {b.ref: b.display_name for b in summary.participants}

    with open(filepath, 'w', newline='', encoding='utf-8-sig') as f:
        writer = csv.writer(f, delimiter=delimiter)
        writer.writerow(['entity', 'type', 'paid', 'owed', 'net'])
        for b in summary.participants:
            writer.writerow([
                b.display_name,
                b.entity_type.value,
                _fmt(b.total_paid, places, decimal_separator),
                _fmt(b.total_owed, places, decimal_separator),
                _fmt(b.net_balance, places, decimal_separator),
            ])
        writer.writerow([])
        writer.writerow(['from', 'to', 'amount'])
        for t in summary.suggested_settlements:
            writer.writerow([
                names.get(t.from_entity, t.from_entity.entity_id),
                names.get(t.to_entity, t.to_entity.entity_id),
                _fmt(t.amount, places, decimal_separator),
            ])


def import_expenses_from_csv(filepath: str) -> List[Expense]:
    """
    Import expenses list from CSV file written by export_expenses_to_csv
    Returns list of Expense objects
    """
    expenses = []

    with open(filepath, 'r', encoding='utf-8-sig', newline='') as f:
        sample = f.readline()
        f.seek(0)
        delimiter = ';' if sample.count(';') > sample.count(',') else ','
        reader = csv.DictReader(f, delimiter=delimiter)

        for row in reader:
            # Parse splits from "type:id=amount;..."
            splits = []
            if row['splits']:
                for pair in row['splits'].split(';'):
                    if '=' in pair:
                        k, v = pair.split('=', 1)
                        splits.append(Split(_parse_ref(k), v.strip()))

            expense = Expense(
                id=row['id'],
                date=row['date'],
                description=row['description'],
                category=row['category'],
                amount=row['amount'],
                currency=row['currency'],
                exchange_rate_to_base=row['exchange_rate'],
                paid_by=_parse_ref(row['paid_by']),
                splits=splits,
                notes=row.get('notes', '') or '',
            )
            expenses.append(expense)

    logger.debug("Imported %d expenses from %s", len(expenses), filepath)
    return expenses

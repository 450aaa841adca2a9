"""
Conversion of expense amounts into the trip's base currency
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple

from errors import DataIntegrityFault
from models import Expense, RecordedSettlement, Split

logger = logging.getLogger(__name__)

ONE = Decimal("1")


@dataclass(frozen=True)
class NormalizedExpense:
    """Expense with its total and splits expressed in base currency (unrounded)"""
    expense: Expense
    amount: Decimal
    splits: Tuple[Split, ...]


def check_exchange_rate(
    currency: str,
    rate: Optional[Decimal],
    base_currency: str,
    record_id: str,
) -> Decimal:
    """
    Validate a stored exchange rate and return it.
    A non-positive rate, or a base-currency record whose rate is not 1, is corrupt data.
    """
    if rate is None:
        if currency.upper() == base_currency.upper():
            return ONE
        logger.error("Record %s in %s has no exchange rate to %s", record_id, currency, base_currency)
        raise DataIntegrityFault(
            "missing exchange rate for foreign-currency record",
            {"record": record_id, "currency": currency, "base_currency": base_currency},
        )
    if rate <= 0:
        logger.error("Record %s has non-positive exchange rate %s", record_id, rate)
        raise DataIntegrityFault(
            "exchange rate must be positive",
            {"record": record_id, "rate": rate},
        )
    if currency.upper() == base_currency.upper() and rate != ONE:
        logger.error("Record %s is in base currency %s but has rate %s", record_id, base_currency, rate)
        raise DataIntegrityFault(
            "base-currency record must have exchange rate 1",
            {"record": record_id, "rate": rate},
        )
    return rate


def normalize_amount(amount: Decimal, rate: Decimal) -> Decimal:
    """Amount in base currency; no rounding"""
    return amount * rate


def normalize_expense(expense: Expense, base_currency: str) -> NormalizedExpense:
    """Convert an expense and each of its splits into base currency"""
    rate = check_exchange_rate(expense.currency, expense.exchange_rate_to_base, base_currency, expense.id)
    return NormalizedExpense(
        expense=expense,
        amount=normalize_amount(expense.amount, rate),
        splits=tuple(Split(s.entity, normalize_amount(s.amount, rate)) for s in expense.splits),
    )


def normalize_settlement_amount(settlement: RecordedSettlement, base_currency: str) -> Decimal:
    """Recorded settlement amount in base currency"""
    rate = check_exchange_rate(
        settlement.currency, settlement.exchange_rate_to_base, base_currency, settlement.id
    )
    return normalize_amount(settlement.amount, rate)

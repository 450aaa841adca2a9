"""
Utility functions for TripLedger
"""
from __future__ import annotations
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

Number = Union[Decimal, int, float, str]


def to_decimal(x: Number) -> Decimal:
    """
    Convert a monetary value to Decimal.
    Floats go through str() so 5.78 stays 5.78 instead of its binary expansion.
    Strings may use a comma as decimal separator ("33,33").
    """
    if isinstance(x, Decimal):
        return x
    if isinstance(x, bool):
        raise TypeError("boolean is not a monetary value")
    if isinstance(x, int):
        return Decimal(x)
    if isinstance(x, float):
        return Decimal(str(x))
    s = str(x).strip().replace(" ", "")
    if "," in s and "." not in s:
        s = s.replace(",", ".")
    try:
        return Decimal(s)
    except InvalidOperation:
        raise ValueError(f"not a decimal amount: {x!r}")


def safe_decimal(x: Number, default: Decimal = Decimal("0")) -> Decimal:
    """Convert user input to Decimal, returning default on error"""
    try:
        return to_decimal(x)
    except (TypeError, ValueError):
        return default


def quantum(places: int) -> Decimal:
    """Smallest step for a number of decimal places (2 -> 0.01, 0 -> 1)"""
    return Decimal(1).scaleb(-places)


def round_money(amount: Decimal, places: int = 2) -> Decimal:
    """Round half-up to a fixed number of places; only used at display/export boundaries"""
    return to_decimal(amount).quantize(quantum(places), rounding=ROUND_HALF_UP)


def decimal_str(amount: Decimal) -> str:
    """Plain (non-scientific) string for a Decimal, used in serialized output"""
    return format(to_decimal(amount), "f")

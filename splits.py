"""
Split resolution helpers used upstream of the engine (equal, by amount, by percentage)
"""
from __future__ import annotations
from decimal import Decimal, ROUND_DOWN
from typing import Dict, Mapping, Sequence, Tuple

from config import TOLERANCE, minor_units
from models import EntityRef, Split
from utils import Number, quantum, safe_decimal, to_decimal

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def equal_splits(amount: Number, refs: Sequence[EntityRef], currency: str) -> Tuple[Split, ...]:
    """
    Divide amount equally in minor units.
    Leftover minor units all go to the first participant (100/3 -> 33.34, 33.33, 33.33).
    """
    if not refs:
        return ()
    amount = to_decimal(amount)
    q = quantum(minor_units(currency))
    share = (amount / len(refs)).quantize(q, rounding=ROUND_DOWN)
    remainder = amount - share * len(refs)
    return tuple(
        Split(ref, share + remainder if i == 0 else share) for i, ref in enumerate(refs)
    )


def amount_splits(refs: Sequence[EntityRef], custom_amounts: Mapping[EntityRef, Number]) -> Tuple[Split, ...]:
    """Explicit per-entity amounts; entities without an entry owe 0"""
    return tuple(Split(ref, safe_decimal(custom_amounts.get(ref, ZERO))) for ref in refs)


def percentage_splits(
    amount: Number,
    refs: Sequence[EntityRef],
    percentages: Mapping[EntityRef, Number],
    currency: str,
) -> Tuple[Split, ...]:
    """
    Per-entity percentages of the total, resolved with the largest remainder method:
    every share is floored to the minor unit, then leftover units go to the largest
    fractional remainders (ties by participant order).
    """
    if not refs:
        return ()
    amount = to_decimal(amount)
    q = quantum(minor_units(currency))
    raw = [amount * safe_decimal(percentages.get(ref, ZERO)) / HUNDRED for ref in refs]
    floored = [r.quantize(q, rounding=ROUND_DOWN) for r in raw]

    target = (amount * sum((safe_decimal(percentages.get(ref, ZERO)) for ref in refs), ZERO) / HUNDRED)
    target = target.quantize(q)
    leftover_units = int((target - sum(floored, ZERO)) / q)

    order = sorted(range(len(refs)), key=lambda i: (-(raw[i] - floored[i]), i))
    for i in order[:max(0, leftover_units)]:
        floored[i] += q
    return tuple(Split(ref, a) for ref, a in zip(refs, floored))


def validate_splits_total(splits: Sequence[Split], amount: Number) -> bool:
    """True if splits sum to amount within tolerance"""
    total = sum((s.amount for s in splits), ZERO)
    return abs(total - to_decimal(amount)) <= TOLERANCE


def validate_percentages_total(percentages: Mapping[EntityRef, Number]) -> bool:
    """True if percentages sum to 100 within tolerance"""
    total = sum((safe_decimal(p) for p in percentages.values()), ZERO)
    return abs(total - HUNDRED) <= TOLERANCE


def split_percentages(splits: Sequence[Split], amount: Number) -> Dict[EntityRef, Decimal]:
    """Share of each split in percent, for display; zero amount gives 0% everywhere"""
    amount = to_decimal(amount)
    out: Dict[EntityRef, Decimal] = {}
    for s in splits:
        out[s.entity] = s.amount / amount * HUNDRED if amount > 0 else ZERO
    return out

"""
Balance aggregation: folds expenses and recorded settlements into per-entity net balances
"""
from __future__ import annotations
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from config import TOLERANCE
from currency import normalize_expense, normalize_settlement_amount
from errors import DataIntegrityFault, DegenerateInputFault
from models import Entity, EntityBalance, EntityRef, Expense, RecordedSettlement

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def build_roster(entities: Iterable[Entity]) -> Dict[EntityRef, Entity]:
    """Map each roster entity by ref; a ref listed twice is ambiguous"""
    roster: Dict[EntityRef, Entity] = {}
    for e in entities:
        if e.ref in roster:
            logger.error("Entity %s appears more than once in roster", e.ref)
            raise DataIntegrityFault("entity reference is ambiguous", {"entity": str(e.ref)})
        roster[e.ref] = e
    return roster


def validate_expense(expense: Expense) -> None:
    """Reject expenses with impossible amounts or splits that don't add up"""
    if expense.amount <= 0:
        logger.error("Expense %s has non-positive amount %s", expense.id, expense.amount)
        raise DegenerateInputFault("expense amount must be positive", {"expense": expense.id, "amount": expense.amount})
    for s in expense.splits:
        if s.amount < 0:
            logger.error("Expense %s has negative split for %s", expense.id, s.entity)
            raise DegenerateInputFault(
                "split amount must not be negative",
                {"expense": expense.id, "entity": str(s.entity), "amount": s.amount},
            )
    split_total = sum((s.amount for s in expense.splits), ZERO)
    if abs(split_total - expense.amount) > TOLERANCE:
        logger.error("Expense %s splits sum to %s, expected %s", expense.id, split_total, expense.amount)
        raise DataIntegrityFault(
            "split amounts do not sum to expense amount",
            {"expense": expense.id, "amount": expense.amount, "splits_total": split_total},
        )


def validate_settlement(settlement: RecordedSettlement) -> None:
    """Reject recorded settlements with impossible amounts or parties"""
    if settlement.amount <= 0:
        logger.error("Settlement %s has non-positive amount %s", settlement.id, settlement.amount)
        raise DegenerateInputFault(
            "settlement amount must be positive",
            {"settlement": settlement.id, "amount": settlement.amount},
        )
    if settlement.from_entity == settlement.to_entity:
        raise DegenerateInputFault(
            "settlement payer and receiver are the same entity",
            {"settlement": settlement.id, "entity": str(settlement.from_entity)},
        )


def _resolve(ref: EntityRef, roster: Optional[Dict[EntityRef, Entity]], record_id: str) -> None:
    if roster is not None and ref not in roster:
        logger.error("Record %s references unknown entity %s", record_id, ref)
        raise DataIntegrityFault("entity reference does not resolve", {"record": record_id, "entity": str(ref)})


def check_lone_balance(balances: Sequence[EntityBalance]) -> None:
    """Raise if exactly one entity is outside TOLERANCE of zero; nobody could settle with it"""
    open_balances = [b for b in balances if abs(b.net_balance) > TOLERANCE]
    if len(open_balances) == 1:
        lone = open_balances[0]
        logger.error("Only %s carries a non-zero balance (%s)", lone.ref, lone.net_balance)
        raise DegenerateInputFault(
            "exactly one entity has a non-zero balance",
            {"entity": str(lone.ref), "amount": lone.net_balance},
        )


def check_zero_sum(balances: Sequence[EntityBalance]) -> Decimal:
    """Return the sum of net balances, raising if money is not conserved"""
    total = sum((b.net_balance for b in balances), ZERO)
    if abs(total) > TOLERANCE:
        logger.error("Net balances sum to %s instead of zero", total)
        raise DataIntegrityFault("net balances do not sum to zero", {"sum": total})
    return total


def aggregate_balances(
    expenses: Sequence[Expense],
    settlements: Sequence[RecordedSettlement],
    base_currency: str,
    entities: Optional[Iterable[Entity]] = None,
) -> Tuple[EntityBalance, ...]:
    """
    Compute paid/owed/net per entity in base currency.
    Only entities that appear as payer, split participant or settlement party get a balance.
    An accepted gap (within TOLERANCE) between an expense amount and its splits is added
    to the payer's owed total, so net balances always sum to zero.
    A lone open balance raises DegenerateInputFault before the zero-sum check runs.
    Returns balances sorted by net descending, ties by entity id.
    """
    roster = build_roster(entities) if entities is not None else None

    paid: Dict[EntityRef, Decimal] = {}
    owed: Dict[EntityRef, Decimal] = {}

    def touch(ref: EntityRef, record_id: str) -> None:
        _resolve(ref, roster, record_id)
        paid.setdefault(ref, ZERO)
        owed.setdefault(ref, ZERO)

    residual_total = ZERO
    for e in expenses:
        validate_expense(e)
        norm = normalize_expense(e, base_currency)
        touch(e.paid_by, e.id)
        paid[e.paid_by] += norm.amount
        # payer may also be in the split; both updates apply
        for s in norm.splits:
            touch(s.entity, e.id)
            owed[s.entity] += s.amount
        # sub-tolerance gap between amount and splits stays with the payer
        residual = norm.amount - sum((s.amount for s in norm.splits), ZERO)
        if residual:
            owed[e.paid_by] += residual
            residual_total += residual

    for st in settlements:
        validate_settlement(st)
        amount = normalize_settlement_amount(st, base_currency)
        touch(st.from_entity, st.id)
        touch(st.to_entity, st.id)
        owed[st.from_entity] -= amount
        paid[st.to_entity] -= amount

    balances: List[EntityBalance] = []
    for ref in paid:
        name = roster[ref].display_name if roster is not None else ref.entity_id
        balances.append(EntityBalance(
            entity_id=ref.entity_id,
            entity_type=ref.entity_type,
            display_name=name,
            total_paid=paid[ref],
            total_owed=owed[ref],
            net_balance=paid[ref] - owed[ref],
        ))
    balances.sort(key=lambda b: (-b.net_balance, b.entity_id, b.entity_type.value))

    check_lone_balance(balances)
    check_zero_sum(balances)
    logger.debug(
        "Aggregated %d expenses and %d settlements into %d balances (split residual %s booked to payers)",
        len(expenses), len(settlements), len(balances), residual_total,
    )
    return tuple(balances)


def creditors(balances: Iterable[EntityBalance]) -> List[EntityBalance]:
    """Entities owed more than the tolerance"""
    return [b for b in balances if b.net_balance > TOLERANCE]


def debtors(balances: Iterable[EntityBalance]) -> List[EntityBalance]:
    """Entities owing more than the tolerance"""
    return [b for b in balances if b.net_balance < -TOLERANCE]


def settled(balances: Iterable[EntityBalance]) -> List[EntityBalance]:
    """Entities within tolerance of zero"""
    return [b for b in balances if abs(b.net_balance) <= TOLERANCE]

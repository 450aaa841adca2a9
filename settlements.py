"""
Settlement suggestions: greedy debt simplification plus helpers over suggested transfers
"""
from __future__ import annotations
import heapq
import logging
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import Dict, Iterable, List, Sequence, Tuple

from balances import check_lone_balance
from config import TOLERANCE, minor_units
from errors import DataIntegrityFault
from models import Entity, EntityBalance, EntityRef, EntityType, SuggestedSettlement
from utils import quantum

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# heap entry: (-remaining, entity_id, entity_type, ref, remaining)
_HeapEntry = Tuple[Decimal, str, str, EntityRef, Decimal]


def _push(heap: List[_HeapEntry], ref: EntityRef, amount: Decimal) -> None:
    heapq.heappush(heap, (-amount, ref.entity_id, ref.entity_type.value, ref, amount))


def suggest_settlements(balances: Sequence[EntityBalance]) -> Tuple[SuggestedSettlement, ...]:
    """
    Greedy settlement: the largest debtor pays the largest creditor.
    net>0 creditor; net<0 debtor; entities within TOLERANCE of zero are already settled.
    Equal magnitudes are ordered by entity id ascending.

    Not guaranteed to reach the theoretical minimum number of transfers (that problem
    is NP-hard), but it is deterministic and emits at most creditors + debtors - 1 transfers.
    """
    creditor_heap: List[_HeapEntry] = []
    debtor_heap: List[_HeapEntry] = []
    for b in balances:
        if b.net_balance > TOLERANCE:
            _push(creditor_heap, b.ref, b.net_balance)
        elif b.net_balance < -TOLERANCE:
            _push(debtor_heap, b.ref, -b.net_balance)

    open_count = len(creditor_heap) + len(debtor_heap)
    if open_count == 0:
        return ()
    check_lone_balance(balances)
    total = sum((b.net_balance for b in balances), ZERO)
    if abs(total) > TOLERANCE:
        logger.error("Cannot settle balances summing to %s", total)
        raise DataIntegrityFault("net balances do not sum to zero", {"sum": total})

    transfers: List[SuggestedSettlement] = []
    while creditor_heap and debtor_heap:
        _, _, _, cref, camt = heapq.heappop(creditor_heap)
        _, _, _, dref, damt = heapq.heappop(debtor_heap)
        x = min(camt, damt)
        transfers.append(SuggestedSettlement(from_entity=dref, to_entity=cref, amount=x))
        camt -= x
        damt -= x
        if camt > TOLERANCE:
            _push(creditor_heap, cref, camt)
        if damt > TOLERANCE:
            _push(debtor_heap, dref, damt)

    leftover = creditor_heap or debtor_heap
    if leftover:
        # residue from sub-tolerance drift; bounded by the zero-sum check above
        logger.debug("Dropping %d residual balances below settlement threshold", len(leftover))

    logger.debug("Suggested %d transfers for %d open balances", len(transfers), open_count)
    return tuple(transfers)


def apply_settlements(
    balances: Sequence[EntityBalance],
    transfers: Iterable[SuggestedSettlement],
) -> Dict[EntityRef, Decimal]:
    """Net balance per entity after every transfer is paid"""
    out = {b.ref: b.net_balance for b in balances}
    for t in transfers:
        out[t.from_entity] = out.get(t.from_entity, ZERO) + t.amount
        out[t.to_entity] = out.get(t.to_entity, ZERO) - t.amount
    return out


def settlement_participant_count(transfers: Iterable[SuggestedSettlement]) -> int:
    """Number of distinct entities involved in any transfer"""
    refs = set()
    for t in transfers:
        refs.add(t.from_entity)
        refs.add(t.to_entity)
    return len(refs)


def settlements_for_entity(
    transfers: Sequence[SuggestedSettlement],
    ref: EntityRef,
) -> Tuple[List[SuggestedSettlement], List[SuggestedSettlement]]:
    """Split transfers into (outgoing, incoming) for one entity"""
    outgoing = [t for t in transfers if t.from_entity == ref]
    incoming = [t for t in transfers if t.to_entity == ref]
    return outgoing, incoming


def total_outgoing(transfers: Iterable[SuggestedSettlement], ref: EntityRef) -> Decimal:
    return sum((t.amount for t in transfers if t.from_entity == ref), ZERO)


def total_incoming(transfers: Iterable[SuggestedSettlement], ref: EntityRef) -> Decimal:
    return sum((t.amount for t in transfers if t.to_entity == ref), ZERO)


def _members(ref: EntityRef, roster: Dict[EntityRef, Entity]) -> Tuple[EntityRef, ...]:
    if ref.entity_type != EntityType.GROUP:
        return (ref,)
    group = roster.get(ref)
    if group is None or not group.member_ids:
        logger.error("Group %s has no known members", ref)
        raise DataIntegrityFault("group has no members to settle", {"entity": str(ref)})
    return group.member_ids


def expand_group_settlement(
    transfer: SuggestedSettlement,
    entities: Iterable[Entity],
    currency: str,
) -> List[SuggestedSettlement]:
    """
    Break a transfer involving groups into member-to-member transfers for recording.
    The transfer is first rounded half-up to the currency's minor unit, then divided
    equally across every (from member, to member) pair, each part rounded down;
    leftover minor units go to the first pair.
    """
    roster = {e.ref: e for e in entities}
    from_ids = _members(transfer.from_entity, roster)
    to_ids = _members(transfer.to_entity, roster)
    pairs = [(f, t) for f in from_ids for t in to_ids]

    q = quantum(minor_units(currency))
    total = transfer.amount.quantize(q, rounding=ROUND_HALF_UP)
    share = (total / len(pairs)).quantize(q, rounding=ROUND_DOWN)
    remainder = total - share * len(pairs)

    out = []
    for i, (f, t) in enumerate(pairs):
        amount = share + remainder if i == 0 else share
        out.append(SuggestedSettlement(from_entity=f, to_entity=t, amount=amount))
    return out

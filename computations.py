"""
Summary assembly for TripLedger: balances, suggested settlements and trip totals in one report
"""
from __future__ import annotations
import logging
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from balances import aggregate_balances
from currency import normalize_expense
from models import Entity, EntityType, Expense, RecordedSettlement, Summary, TripSnapshot
from settlements import suggest_settlements

logger = logging.getLogger(__name__)


def total_expenses(expenses: Iterable[Expense], base_currency: str) -> Decimal:
    """Sum of all expense amounts in base currency, not net of settlements"""
    return sum((normalize_expense(e, base_currency).amount for e in expenses), Decimal("0"))


def compute_summary(
    trip_id: str,
    base_currency: str,
    expenses: Sequence[Expense],
    settlements: Sequence[RecordedSettlement],
    entities: Optional[Sequence[Entity]] = None,
) -> Summary:
    """
    Compute the balance report for a trip.

    The input must be the complete set of expenses and recorded settlements; any
    DataIntegrityFault or DegenerateInputFault propagates and no partial summary
    is returned. Identical inputs give identical summaries.
    """
    base_currency = base_currency.upper()
    participants = aggregate_balances(expenses, settlements, base_currency, entities)
    transfers = suggest_settlements(participants)
    total = total_expenses(expenses, base_currency)

    summary = Summary(
        trip_id=trip_id,
        base_currency=base_currency,
        participants=participants,
        suggested_settlements=transfers,
        total_expenses=total,
        expense_count=len(expenses),
        recorded_settlements=tuple(settlements),
        has_groups=any(b.entity_type == EntityType.GROUP for b in participants),
    )
    logger.info(
        "Trip %s: %d expenses totalling %s %s, %d balances, %d suggested transfers",
        trip_id, summary.expense_count, total, base_currency, len(participants), len(transfers),
    )
    return summary


def summarize_snapshot(snapshot: TripSnapshot) -> Summary:
    """Compute the summary for a loaded TripSnapshot"""
    return compute_summary(
        snapshot.trip_id,
        snapshot.base_currency,
        snapshot.expenses,
        snapshot.settlements,
        snapshot.entities or None,
    )

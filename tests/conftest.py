"""Shared builders for TripLedger tests."""

from decimal import Decimal

import pytest

from models import Entity, EntityRef, EntityType, Expense, RecordedSettlement, Split

A = EntityRef("alice", EntityType.USER)
B = EntityRef("bob", EntityType.USER)
C = EntityRef("carol", EntityType.GUEST)
FAMILY = EntityRef("family", EntityType.GROUP)


def expense(
    expense_id: str,
    amount,
    paid_by: EntityRef,
    shares: dict,
    currency: str = "BRL",
    rate="1",
    **extra,
) -> Expense:
    """Helper: expense with explicit per-entity split amounts."""
    return Expense(
        id=expense_id,
        amount=amount,
        currency=currency,
        exchange_rate_to_base=rate,
        paid_by=paid_by,
        splits=[Split(ref, amt) for ref, amt in shares.items()],
        **extra,
    )


def settlement(settlement_id: str, frm: EntityRef, to: EntityRef, amount, currency: str = "BRL", rate=None):
    """Helper: recorded 'mark as paid' settlement."""
    return RecordedSettlement(
        id=settlement_id,
        from_entity=frm,
        to_entity=to,
        amount=amount,
        currency=currency,
        recorded_at="2026-01-05T12:00:00Z",
        exchange_rate_to_base=rate,
    )


@pytest.fixture
def roster():
    return [
        Entity(A, "Alice"),
        Entity(B, "Bob"),
        Entity(C, "Carol"),
        Entity(FAMILY, "Silva family", member_ids=[EntityRef("dan"), EntityRef("eve")]),
    ]


@pytest.fixture
def dinner_trip():
    """Three expenses among alice, bob and carol; one in USD."""
    return [
        expense("e1", "300.00", A, {A: "100.00", B: "100.00", C: "100.00"}, description="Dinner",
                date="2026-01-02", category="food"),
        expense("e2", "90.00", B, {B: "45.00", C: "45.00"}, description="Taxi",
                date="2026-01-03", category="transport"),
        expense("e3", "10.00", C, {A: "5.00", C: "5.00"}, currency="USD", rate="5.78",
                description="Museum", date="2026-01-04", category="tickets"),
    ]


def net_of(balances, ref):
    for b in balances:
        if b.ref == ref:
            return b.net_balance
    raise KeyError(ref)


TOL = Decimal("0.01")

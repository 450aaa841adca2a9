"""
Data models for TripLedger
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from utils import decimal_str, to_decimal


class EntityType(str, Enum):
    """Kind of balance holder"""
    USER = "user"
    GUEST = "guest"
    GROUP = "group"


@dataclass(frozen=True, order=True)
class EntityRef:
    """Reference to a user, guest or group; ordering is (entity_id, entity_type)"""
    entity_id: str
    entity_type: EntityType = EntityType.USER

    def __post_init__(self):
        object.__setattr__(self, "entity_id", str(self.entity_id))
        object.__setattr__(self, "entity_type", EntityType(self.entity_type))

    def to_dict(self) -> dict:
        return {"entity_id": self.entity_id, "entity_type": self.entity_type.value}

    def __str__(self):
        return f"{self.entity_type.value}:{self.entity_id}"


def _refs(values) -> Tuple[EntityRef, ...]:
    return tuple(values or ())


@dataclass(frozen=True)
class Entity:
    """Roster entry for a trip; groups list their member refs"""
    ref: EntityRef
    display_name: str = ""
    member_ids: Tuple[EntityRef, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "member_ids", _refs(self.member_ids))
        if not self.display_name:
            object.__setattr__(self, "display_name", self.ref.entity_id)


@dataclass(frozen=True)
class Split:
    """Portion of one expense owed by one entity, in the expense currency"""
    entity: EntityRef
    amount: Decimal

    def __post_init__(self):
        object.__setattr__(self, "amount", to_decimal(self.amount))


@dataclass(frozen=True)
class Expense:
    """Single shared expense"""
    id: str
    amount: Decimal  # in `currency`
    currency: str
    paid_by: EntityRef
    splits: Tuple[Split, ...]
    exchange_rate_to_base: Decimal = Decimal("1")
    description: str = ""
    date: str = ""  # YYYY-MM-DD
    category: str = ""
    notes: str = ""

    def __post_init__(self):
        object.__setattr__(self, "amount", to_decimal(self.amount))
        object.__setattr__(self, "exchange_rate_to_base", to_decimal(self.exchange_rate_to_base))
        object.__setattr__(self, "splits", tuple(self.splits))
        object.__setattr__(self, "currency", self.currency.upper())


@dataclass(frozen=True)
class RecordedSettlement:
    """Manually logged payment from one entity to another"""
    id: str
    from_entity: EntityRef
    to_entity: EntityRef
    amount: Decimal
    currency: str
    recorded_at: str = ""  # ISO timestamp, informational only
    exchange_rate_to_base: Optional[Decimal] = None  # required when currency != base

    def __post_init__(self):
        object.__setattr__(self, "amount", to_decimal(self.amount))
        object.__setattr__(self, "currency", self.currency.upper())
        if self.exchange_rate_to_base is not None:
            object.__setattr__(self, "exchange_rate_to_base", to_decimal(self.exchange_rate_to_base))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "from": self.from_entity.to_dict(),
            "to": self.to_entity.to_dict(),
            "amount": decimal_str(self.amount),
            "currency": self.currency,
            "recorded_at": self.recorded_at,
            "exchange_rate_to_base": (
                decimal_str(self.exchange_rate_to_base) if self.exchange_rate_to_base is not None else None
            ),
        }


@dataclass(frozen=True)
class EntityBalance:
    """Derived per-entity totals in base currency"""
    entity_id: str
    entity_type: EntityType
    display_name: str
    total_paid: Decimal
    total_owed: Decimal
    net_balance: Decimal  # positive -> is owed money; negative -> owes money

    @property
    def ref(self) -> EntityRef:
        return EntityRef(self.entity_id, self.entity_type)

    def to_dict(self) -> dict:
        return {
            "entity_id": self.entity_id,
            "entity_type": self.entity_type.value,
            "display_name": self.display_name,
            "total_paid": decimal_str(self.total_paid),
            "total_owed": decimal_str(self.total_owed),
            "net_balance": decimal_str(self.net_balance),
        }


@dataclass(frozen=True)
class SuggestedSettlement:
    """Proposed transfer from a debtor to a creditor"""
    from_entity: EntityRef
    to_entity: EntityRef
    amount: Decimal

    def to_dict(self) -> dict:
        return {
            "from": self.from_entity.to_dict(),
            "to": self.to_entity.to_dict(),
            "amount": decimal_str(self.amount),
        }


@dataclass(frozen=True)
class Summary:
    """Complete balance report for one trip"""
    trip_id: str
    base_currency: str
    participants: Tuple[EntityBalance, ...]
    suggested_settlements: Tuple[SuggestedSettlement, ...]
    total_expenses: Decimal
    expense_count: int
    recorded_settlements: Tuple[RecordedSettlement, ...] = ()
    has_groups: bool = False

    def balance_for(self, ref: EntityRef) -> Optional[EntityBalance]:
        for b in self.participants:
            if b.ref == ref:
                return b
        return None

    def to_dict(self) -> dict:
        return {
            "trip_id": self.trip_id,
            "base_currency": self.base_currency,
            "participants": [b.to_dict() for b in self.participants],
            "suggested_settlements": [s.to_dict() for s in self.suggested_settlements],
            "total_expenses": decimal_str(self.total_expenses),
            "expense_count": self.expense_count,
            "recorded_settlements": [s.to_dict() for s in self.recorded_settlements],
            "has_groups": self.has_groups,
        }


@dataclass(frozen=True)
class TripSnapshot:
    """Fully materialized input for one trip"""
    trip_id: str
    base_currency: str
    entities: Tuple[Entity, ...] = ()
    expenses: Tuple[Expense, ...] = ()
    settlements: Tuple[RecordedSettlement, ...] = ()
    version: int = 1

    def __post_init__(self):
        object.__setattr__(self, "base_currency", self.base_currency.upper())
        object.__setattr__(self, "entities", tuple(self.entities))
        object.__setattr__(self, "expenses", tuple(self.expenses))
        object.__setattr__(self, "settlements", tuple(self.settlements))

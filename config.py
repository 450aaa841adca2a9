"""
Configuration and snapshot loading/saving for TripLedger
"""
from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional

from errors import ConfigError
from models import Entity, EntityRef, Expense, RecordedSettlement, Split, TripSnapshot
from utils import decimal_str

logger = logging.getLogger(__name__)

# All monetary comparisons in the engine use this tolerance (base currency units).
TOLERANCE = Decimal("0.01")

DEFAULT_BASE_CURRENCY = "BRL"
DEFAULT_MINOR_UNITS = 2
CURRENCY_MINOR_UNITS: Dict[str, int] = {
    "JPY": 0,
    "KRW": 0,
    "CLP": 0,
    "VND": 0,
    "ISK": 0,
    "BHD": 3,
    "KWD": 3,
    "JOD": 3,
    "OMR": 3,
    "TND": 3,
}


@dataclass
class Settings:
    """User-adjustable defaults"""
    base_currency: str = DEFAULT_BASE_CURRENCY
    minor_units: Dict[str, int] = field(default_factory=lambda: dict(CURRENCY_MINOR_UNITS))

    def minor_units_for(self, currency: str) -> int:
        return self.minor_units.get(currency.upper(), DEFAULT_MINOR_UNITS)


def minor_units(currency: str, settings: Optional[Settings] = None) -> int:
    """Number of decimal places of a currency's minor unit (BRL -> 2, JPY -> 0)"""
    if settings is not None:
        return settings.minor_units_for(currency)
    return CURRENCY_MINOR_UNITS.get(currency.upper(), DEFAULT_MINOR_UNITS)


def load_settings(path: str) -> Settings:
    """Load settings from JSON file; a missing file yields defaults"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return Settings()
    except json.JSONDecodeError as e:
        raise ConfigError("settings file is not valid JSON", {"path": path, "error": e.msg})

    units = dict(CURRENCY_MINOR_UNITS)
    for code, places in data.get("minor_units", {}).items():
        if not isinstance(places, int) or places < 0:
            raise ConfigError("minor units must be a non-negative integer", {"currency": code})
        units[code.upper()] = places
    return Settings(
        base_currency=str(data.get("base_currency", DEFAULT_BASE_CURRENCY)).upper(),
        minor_units=units,
    )


def _ref_to_dict(ref: EntityRef) -> dict:
    return ref.to_dict()


def _dict_to_ref(d: dict) -> EntityRef:
    return EntityRef(d["entity_id"], d.get("entity_type", "user"))


def snapshot_to_dict(snapshot: TripSnapshot) -> dict:
    """Convert TripSnapshot to dictionary for JSON serialization"""
    return {
        "version": snapshot.version,
        "trip_id": snapshot.trip_id,
        "base_currency": snapshot.base_currency,
        "entities": [
            {
                **_ref_to_dict(e.ref),
                "display_name": e.display_name,
                "members": [_ref_to_dict(m) for m in e.member_ids],
            } for e in snapshot.entities
        ],
        "expenses": [
            {
                "id": e.id,
                "amount": decimal_str(e.amount),
                "currency": e.currency,
                "exchange_rate_to_base": decimal_str(e.exchange_rate_to_base),
                "paid_by": _ref_to_dict(e.paid_by),
                "splits": [
                    {**_ref_to_dict(s.entity), "amount": decimal_str(s.amount)} for s in e.splits
                ],
                "description": e.description,
                "date": e.date,
                "category": e.category,
                "notes": e.notes,
            } for e in snapshot.expenses
        ],
        "settlements": [
            {
                "id": s.id,
                "from": _ref_to_dict(s.from_entity),
                "to": _ref_to_dict(s.to_entity),
                "amount": decimal_str(s.amount),
                "currency": s.currency,
                "recorded_at": s.recorded_at,
                "exchange_rate_to_base": (
                    decimal_str(s.exchange_rate_to_base) if s.exchange_rate_to_base is not None else None
                ),
            } for s in snapshot.settlements
        ],
    }


def dict_to_snapshot(d: dict) -> TripSnapshot:
    """Convert dictionary from JSON to TripSnapshot object"""
    try:
        entities = [
            Entity(
                ref=_dict_to_ref(e),
                display_name=e.get("display_name", ""),
                member_ids=[_dict_to_ref(m) for m in e.get("members", [])],
            ) for e in d.get("entities", [])
        ]
        expenses = [
            Expense(
                id=str(e["id"]),
                amount=e["amount"],
                currency=e["currency"],
                exchange_rate_to_base=e.get("exchange_rate_to_base", "1"),
                paid_by=_dict_to_ref(e["paid_by"]),
                splits=[Split(_dict_to_ref(s), s["amount"]) for s in e.get("splits", [])],
                description=e.get("description", ""),
                date=e.get("date", ""),
                category=e.get("category", ""),
                notes=e.get("notes", ""),
            ) for e in d.get("expenses", [])
        ]
        settlements = [
            RecordedSettlement(
                id=str(s["id"]),
                from_entity=_dict_to_ref(s["from"]),
                to_entity=_dict_to_ref(s["to"]),
                amount=s["amount"],
                currency=s["currency"],
                recorded_at=s.get("recorded_at", ""),
                exchange_rate_to_base=s.get("exchange_rate_to_base"),
            ) for s in d.get("settlements", [])
        ]
        return TripSnapshot(
            version=d.get("version", 1),
            trip_id=str(d["trip_id"]),
            base_currency=d.get("base_currency", DEFAULT_BASE_CURRENCY),
            entities=entities,
            expenses=expenses,
            settlements=settlements,
        )
    except (KeyError, ValueError) as e:
        raise ConfigError("malformed trip snapshot", {"error": repr(e)})


def load_snapshot(path: str) -> TripSnapshot:
    """Load a trip snapshot from JSON file"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError("snapshot file is not valid JSON", {"path": path, "error": e.msg})
    snapshot = dict_to_snapshot(data)
    logger.debug(
        "Loaded snapshot %s: %d expenses, %d settlements",
        snapshot.trip_id, len(snapshot.expenses), len(snapshot.settlements),
    )
    return snapshot


def save_snapshot(snapshot: TripSnapshot, path: str) -> None:
    """Write a trip snapshot to JSON file"""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(snapshot_to_dict(snapshot), f, ensure_ascii=False, indent=2)

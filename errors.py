"""
Exception hierarchy for TripLedger

All engine faults inherit from LedgerError so callers can catch them in one place.
"""
from __future__ import annotations
from typing import Optional


class LedgerError(Exception):
    """Base exception for all TripLedger errors"""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class DataIntegrityFault(LedgerError):
    """Raised when input records are inconsistent (bad split sums, rates, references, non-zero totals)"""
    pass


class DegenerateInputFault(LedgerError):
    """Raised when input is structurally impossible (negative amounts, a lone non-zero balance)"""
    pass


class ConfigError(LedgerError):
    """Raised when a settings or snapshot file cannot be read"""
    pass

# treasury/services/exceptions.py

from __future__ import annotations


class TreasuryError(Exception):
    """Base exception for forecast and reconciliation failures."""


class ForecastError(TreasuryError):
    """Raised when a forecast horizon or option is invalid."""


class ReconciliationError(TreasuryError):
    """Raised when a bank statement or adjustment cannot be processed."""

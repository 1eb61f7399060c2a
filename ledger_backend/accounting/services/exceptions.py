# accounting/services/exceptions.py

"""
ACCOUNTING SERVICE ERRORS

Centralized domain errors for accounting services.
"""

from __future__ import annotations

from decimal import Decimal


class AccountingServiceError(Exception):
    """Base exception for all accounting service failures."""


class AccountResolutionError(AccountingServiceError):
    """Raised when an expected account cannot be resolved."""


class TransactionValidationError(AccountingServiceError):
    """
    Raised before any write when a transaction request is invalid.

    When the failure is an imbalance, both totals are carried on the error.
    """

    def __init__(
        self,
        message: str,
        *,
        total_debits: Decimal | None = None,
        total_credits: Decimal | None = None,
    ):
        super().__init__(message)
        self.total_debits = total_debits
        self.total_credits = total_credits


class ConsistencyError(AccountingServiceError):
    """Raised when persisted entries fail the post-write balance re-check."""


class ExternalDependencyError(AccountingServiceError):
    """Raised when a collaborator (e.g. tax calculation) fails."""


class ApprovalError(AccountingServiceError):
    """Raised on an illegal approval transition."""

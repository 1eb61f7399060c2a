# accounting/models/__init__.py

"""
ACCOUNTING MODELS PACKAGE EXPORTS

Note:
- Keep this file *imports-only* (no business logic).
- Do NOT import services from models anywhere (models must stay pure).
"""

from accounting.models.account import Account
from accounting.models.currency import Currency, TaxRate
from accounting.models.transaction import ApprovalStatus, Transaction, TransactionEntry

__all__ = [
    "Account",
    "ApprovalStatus",
    "Currency",
    "TaxRate",
    "Transaction",
    "TransactionEntry",
]

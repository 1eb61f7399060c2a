# accounting/api/serializers/__init__.py

from accounting.api.serializers.accounts import AccountSerializer
from accounting.api.serializers.transactions import (
    ClosingEntriesSerializer,
    RecurringEntrySerializer,
    ReverseTransactionSerializer,
    TransactionCreateSerializer,
    TransactionEntrySerializer,
    TransactionSerializer,
)

__all__ = [
    "AccountSerializer",
    "TransactionSerializer",
    "TransactionEntrySerializer",
    "TransactionCreateSerializer",
    "ReverseTransactionSerializer",
    "RecurringEntrySerializer",
    "ClosingEntriesSerializer",
]

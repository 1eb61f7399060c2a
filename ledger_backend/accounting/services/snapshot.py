# accounting/services/snapshot.py

"""
SNAPSHOT READS

Reports, budgets and forecasts run many queries; they must all see the same
committed ledger state, never a transaction with only part of its entries.

snapshot_read() wraps the reads in one transaction. On PostgreSQL, when it
opens the outermost transaction, it is REPEATABLE READ READ ONLY so every
query shares one snapshot. Inside an existing atomic block it just joins it.
"""

from __future__ import annotations

from contextlib import contextmanager

from django.db import DEFAULT_DB_ALIAS, connections, transaction


@contextmanager
def snapshot_read(using: str = DEFAULT_DB_ALIAS):
    connection = connections[using]
    outermost = not connection.in_atomic_block

    with transaction.atomic(using=using):
        if outermost and connection.vendor == "postgresql":
            with connection.cursor() as cursor:
                cursor.execute("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ READ ONLY")
        yield

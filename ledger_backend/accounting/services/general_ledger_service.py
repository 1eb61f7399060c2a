# accounting/services/general_ledger_service.py

"""
GENERAL LEDGER SERVICE

Chronological entries for one account with a running balance.
The running balance starts from the account's balance on the day before
start_date and follows the account's normal-side sign convention.
"""

from __future__ import annotations

from datetime import date

from accounting.models.account import Account
from accounting.models.transaction import TransactionEntry
from accounting.money import day_before, q2, to_major_number
from accounting.services.balance_service import get_account_balance
from accounting.services.snapshot import snapshot_read


def generate_general_ledger(account: Account, *, start_date: date, end_date: date) -> dict:
    with snapshot_read():
        opening = get_account_balance(account, as_of=day_before(start_date))
        entries = list(
            TransactionEntry.objects.filter(
                account=account,
                transaction__transaction_date__gte=start_date,
                transaction__transaction_date__lte=end_date,
            )
            .select_related("transaction")
            .order_by("transaction__transaction_date", "transaction_id", "id")
        )

    running = opening
    rows = []
    for entry in entries:
        if account.is_debit_normal:
            running = q2(running + entry.debit_amount - entry.credit_amount)
        else:
            running = q2(running + entry.credit_amount - entry.debit_amount)

        txn = entry.transaction
        rows.append(
            {
                "date": txn.transaction_date.isoformat(),
                "reference_number": txn.reference_number,
                "description": entry.description or txn.description,
                "transaction_type": txn.transaction_type,
                "debit": to_major_number(entry.debit_amount),
                "credit": to_major_number(entry.credit_amount),
                "currency": entry.currency,
                "exchange_rate": str(entry.exchange_rate),
                "running_balance": to_major_number(running),
            }
        )

    return {
        "account": {
            "id": account.id,
            "code": account.code,
            "name": account.name,
            "name_localized": account.localized_name,
            "account_type": account.account_type,
        },
        "period": {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        "opening_balance": to_major_number(opening),
        "closing_balance": to_major_number(running),
        "entries": rows,
    }

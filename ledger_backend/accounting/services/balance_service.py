# accounting/services/balance_service.py

"""
BALANCE SERVICE (AUTHORITATIVE)

Read-only ledger aggregation helpers used by reports, budgets, forecasts,
closing entries and the ledger's own balance cache.

RULES:
- READ-ONLY: no writes, ever
- TransactionEntry is the single source of truth (never Account.current_balance)
- Accounting timeline uses Transaction.transaction_date
- Sign convention:
    asset / expense                  -> debits - credits
    revenue / liability / equity     -> credits - debits
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable

from django.db.models import Sum
from django.db.models.functions import Coalesce

from accounting.models.account import Account
from accounting.models.transaction import TransactionEntry
from accounting.money import ZERO, q2


class BalanceServiceError(Exception):
    """Base error for balance and reporting services."""


def signed_balance(account: Account, debits: Decimal, credits: Decimal) -> Decimal:
    if account.is_debit_normal:
        return q2(debits - credits)
    return q2(credits - debits)


def _entries(*, start: date | None = None, end: date | None = None):
    qs = TransactionEntry.objects.all()
    if start is not None:
        qs = qs.filter(transaction__transaction_date__gte=start)
    if end is not None:
        qs = qs.filter(transaction__transaction_date__lte=end)
    return qs


def account_totals(
    account_ids: Iterable[int] | None = None,
    *,
    start: date | None = None,
    end: date | None = None,
) -> dict[int, tuple[Decimal, Decimal]]:
    """
    Bulk (debits, credits) per account (no N+1).
    Accounts without activity are absent from the result.
    """
    qs = _entries(start=start, end=end)
    if account_ids is not None:
        qs = qs.filter(account_id__in=list(account_ids))

    rows = qs.values("account_id").annotate(
        debits=Coalesce(Sum("debit_amount"), ZERO),
        credits=Coalesce(Sum("credit_amount"), ZERO),
    )
    return {r["account_id"]: (q2(r["debits"]), q2(r["credits"])) for r in rows}


def get_account_balance(account: Account, *, as_of: date | None = None) -> Decimal:
    """Cumulative signed balance through as_of (inclusive)."""
    if account is None:
        raise BalanceServiceError("Account is required")

    debits, credits = account_totals([account.id], end=as_of).get(account.id, (ZERO, ZERO))
    return signed_balance(account, debits, credits)


def get_period_balance(account: Account, start: date, end: date) -> Decimal:
    """Signed balance of activity between start and end (both inclusive)."""
    if account is None:
        raise BalanceServiceError("Account is required")
    if start > end:
        return ZERO

    debits, credits = account_totals([account.id], start=start, end=end).get(account.id, (ZERO, ZERO))
    return signed_balance(account, debits, credits)


def get_balances(
    accounts: Iterable[Account],
    *,
    start: date | None = None,
    end: date | None = None,
) -> dict[int, Decimal]:
    accounts = list(accounts)
    totals = account_totals([a.id for a in accounts], start=start, end=end)
    return {
        a.id: signed_balance(a, *totals.get(a.id, (ZERO, ZERO)))
        for a in accounts
    }


def sum_balances(accounts: Iterable[Account], *, start: date | None = None, end: date | None = None) -> Decimal:
    return q2(sum(get_balances(accounts, start=start, end=end).values(), ZERO))

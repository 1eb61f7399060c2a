# accounting/tests/factories.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.utils import timezone

from accounting.journal_request import EntryLine, JournalEntryRequest
from accounting.models.account import Account
from accounting.services.account_registry import get_or_create_standard_account
from accounting.services.ledger_service import create_transaction

ACTOR_ID = 1


def standard(code: str) -> Account:
    return get_or_create_standard_account(code)


def make_account(code: str, name: str, account_type: str, subtype: str = "", **extra) -> Account:
    return Account.objects.create(
        code=code,
        name=name,
        account_type=account_type,
        subtype=subtype,
        **extra,
    )


def dr(account: Account, amount, currency: str | None = None, **kwargs) -> EntryLine:
    return EntryLine(account_id=account.id, debit=Decimal(str(amount)), currency=currency, **kwargs)


def cr(account: Account, amount, currency: str | None = None, **kwargs) -> EntryLine:
    return EntryLine(account_id=account.id, credit=Decimal(str(amount)), currency=currency, **kwargs)


def request(*lines: EntryLine, on: date = date(2026, 1, 15), description: str = "Test entry", **kwargs):
    return JournalEntryRequest(
        description=description,
        transaction_date=on,
        lines=tuple(lines),
        **kwargs,
    )


def post(*lines: EntryLine, on: date = date(2026, 1, 15), description: str = "Test entry", **kwargs):
    return create_transaction(
        request(*lines, on=on, description=description, **kwargs),
        actor_id=ACTOR_ID,
        as_of=timezone.now(),
    )


def failing_sink(record: dict) -> None:
    raise RuntimeError("audit store unavailable")

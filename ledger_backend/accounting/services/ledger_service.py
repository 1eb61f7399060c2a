# accounting/services/ledger_service.py

"""
======================================================
PATH: accounting/services/ledger_service.py
======================================================
LEDGER CORE (ACCOUNTING ENGINE)

This module is the ONLY place allowed to:
- Create Transaction
- Create TransactionEntry
- Enforce debit == credit (within LEDGER_BALANCE_TOLERANCE, on base-currency amounts)
- Convert entries into base currency
- Recompute cached account balances
- Guarantee atomicity

Everything else (builders, reconciliation, closing) must pass through here.

Order of work in create_transaction():
1. Validate + convert the whole request (no writes)
2. Atomic unit: header, entries, post-write re-check, balance cache recompute
3. Audit hook fires on commit only
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count, Sum
from django.db.models.functions import Coalesce

from accounting.journal_request import EntryLine, JournalEntryRequest
from accounting.models.account import Account
from accounting.models.transaction import Transaction, TransactionEntry
from accounting.money import ZERO, q2, within_tolerance
from accounting.services.approval import initial_approval
from accounting.services.audit import log_activity
from accounting.services.balance_service import signed_balance
from accounting.services.currency_service import CurrencyConverter
from accounting.services.exceptions import (
    ConsistencyError,
    TransactionValidationError,
)

logger = logging.getLogger(__name__)

MIN_ENTRIES = 2
MAX_REFERENCE_ATTEMPTS = 10_000


@dataclass(frozen=True)
class PreparedEntry:
    line: EntryLine
    account: Account
    currency: str
    exchange_rate: Decimal
    debit: Decimal
    credit: Decimal


@dataclass(frozen=True)
class PreparedTransaction:
    request: JournalEntryRequest
    entries: tuple
    base_currency: str
    total_debits: Decimal
    total_credits: Decimal

    @property
    def total_amount(self) -> Decimal:
        # Each economic value appears once per side; report it single-sided
        return q2(sum((max(e.debit, e.credit) for e in self.entries), ZERO) / 2)


def prepare_transaction(
    request: JournalEntryRequest,
    *,
    converter: CurrencyConverter | None = None,
) -> PreparedTransaction:
    """
    Validate and convert a request without writing anything.

    Raises TransactionValidationError on every failure.
    """
    if not isinstance(request, JournalEntryRequest):
        raise TransactionValidationError("create_transaction expects a JournalEntryRequest")

    lines = request.lines
    if len(lines) < MIN_ENTRIES:
        raise TransactionValidationError(
            f"Transaction must contain at least {MIN_ENTRIES} entries (got {len(lines)})"
        )

    account_ids = {ln.account_id for ln in lines}
    accounts = Account.objects.in_bulk(list(account_ids))

    for line in lines:
        account = accounts.get(line.account_id)
        if account is None:
            raise TransactionValidationError(f"Account id={line.account_id} does not exist")
        if not account.is_active:
            raise TransactionValidationError(f"Account {account.code} is inactive")

    converter = converter or CurrencyConverter()
    base = converter.base_currency
    rates = converter.get_rates(ln.currency for ln in lines)

    prepared = []
    total_debits = ZERO
    total_credits = ZERO
    for line in lines:
        currency = (line.currency or base).upper()
        rate = rates[currency]
        debit = converter.convert(line.debit, rate)
        credit = converter.convert(line.credit, rate)

        if debit == 0 and credit == 0:
            raise TransactionValidationError(
                f"Entry on account {accounts[line.account_id].code} converts to zero in {base}"
            )

        prepared.append(
            PreparedEntry(
                line=line,
                account=accounts[line.account_id],
                currency=currency,
                exchange_rate=rate,
                debit=debit,
                credit=credit,
            )
        )
        total_debits += debit
        total_credits += credit

    total_debits = q2(total_debits)
    total_credits = q2(total_credits)

    if not within_tolerance(total_debits, total_credits):
        raise TransactionValidationError(
            f"Transaction not balanced: debits={total_debits} credits={total_credits}",
            total_debits=total_debits,
            total_credits=total_credits,
        )

    return PreparedTransaction(
        request=request,
        entries=tuple(prepared),
        base_currency=base,
        total_debits=total_debits,
        total_credits=total_credits,
    )


def _validation_message(exc: ValidationError) -> str:
    if hasattr(exc, "error_dict"):
        return "; ".join(f"{field}: {' '.join(msgs)}" for field, msgs in exc.message_dict.items())
    return " ".join(exc.messages)


def _next_reference(txn_date: date) -> str:
    prefix = f"TXN-{txn_date:%Y%m%d}-"
    seq = Transaction.objects.filter(reference_number__startswith=prefix).count() + 1

    for _ in range(MAX_REFERENCE_ATTEMPTS):
        candidate = f"{prefix}{seq:04d}"
        if not Transaction.objects.filter(reference_number=candidate).exists():
            return candidate
        seq += 1

    raise TransactionValidationError(f"Could not allocate a reference number for {txn_date}")


def _verify_persisted_balance(txn: Transaction, *, expected_entries: int) -> None:
    totals = TransactionEntry.objects.filter(transaction=txn).aggregate(
        debits=Coalesce(Sum("debit_amount"), ZERO),
        credits=Coalesce(Sum("credit_amount"), ZERO),
        count=Count("id"),
    )

    debits = q2(totals["debits"])
    credits = q2(totals["credits"])

    if totals["count"] != expected_entries or not within_tolerance(debits, credits):
        logger.critical(
            "Post-write ledger consistency check failed",
            extra={
                "reference_number": txn.reference_number,
                "debits": str(debits),
                "credits": str(credits),
                "entries": totals["count"],
                "expected_entries": expected_entries,
            },
        )
        raise ConsistencyError(
            f"Persisted transaction {txn.reference_number} is inconsistent: "
            f"debits={debits} credits={credits} entries={totals['count']}/{expected_entries}"
        )


def recompute_account_balances(account_ids: Iterable[int]) -> dict[int, Decimal]:
    """
    Rebuild Account.current_balance from entry history.

    Must run inside the atomic unit that changed the entries. Rows are locked
    in id order so concurrent postings touching the same accounts serialize.
    """
    ids = sorted(set(account_ids))
    if not ids:
        return {}

    accounts = list(Account.objects.select_for_update().filter(id__in=ids).order_by("id"))

    rows = (
        TransactionEntry.objects.filter(account_id__in=ids)
        .values("account_id")
        .annotate(
            debits=Coalesce(Sum("debit_amount"), ZERO),
            credits=Coalesce(Sum("credit_amount"), ZERO),
        )
    )
    totals = {r["account_id"]: (r["debits"], r["credits"]) for r in rows}

    balances = {}
    for account in accounts:
        debits, credits = totals.get(account.id, (ZERO, ZERO))
        balance = signed_balance(account, debits, credits)
        balances[account.id] = balance
        if account.current_balance != balance:
            account.current_balance = balance
            account.save(update_fields=["current_balance", "updated_at"])

    return balances


def create_transaction(
    request: JournalEntryRequest,
    *,
    actor_id: int | None,
    as_of: datetime,
    converter: CurrencyConverter | None = None,
) -> Transaction:
    prepared = prepare_transaction(request, converter=converter)
    approval = initial_approval(
        requires_approval=request.requires_approval,
        actor_id=actor_id,
        at=as_of,
    )

    with transaction.atomic():
        reference = request.reference_number or _next_reference(request.transaction_date)

        if Transaction.objects.filter(reference_number=reference).exists():
            raise TransactionValidationError(
                f"Transaction already exists for reference {reference}"
            )

        try:
            with transaction.atomic():
                txn = Transaction.objects.create(
                    reference_number=reference,
                    description=request.description,
                    description_localized=request.description_localized,
                    transaction_date=request.transaction_date,
                    transaction_type=request.transaction_type,
                    source_type=request.source_type,
                    source_id=request.source_id,
                    total_amount=prepared.total_amount,
                    currency=prepared.base_currency,
                    exchange_rate=Decimal("1"),
                    cost_center_id=request.cost_center_id,
                    tags=list(request.tags),
                    notes=request.notes,
                    approval_status=approval.status,
                    created_by=actor_id,
                    approved_by=approval.approved_by,
                    approved_at=approval.approved_at,
                )
        except IntegrityError as exc:
            if Transaction.objects.filter(reference_number=reference).exists():
                raise TransactionValidationError(
                    f"Transaction already exists for reference {reference}"
                ) from exc
            raise TransactionValidationError(f"Failed to create transaction: {exc}") from exc
        except ValidationError as exc:
            raise TransactionValidationError(_validation_message(exc)) from exc

        rows = [
            TransactionEntry(
                transaction=txn,
                account=entry.account,
                debit_amount=entry.debit,
                credit_amount=entry.credit,
                original_debit_amount=entry.line.debit,
                original_credit_amount=entry.line.credit,
                currency=entry.currency,
                exchange_rate=entry.exchange_rate,
                description=entry.line.description,
                description_localized=entry.line.description_localized,
                metadata=dict(entry.line.metadata),
            )
            for entry in prepared.entries
        ]
        # bulk_create skips full_clean
        for index, row in enumerate(rows):
            try:
                row.full_clean()
            except ValidationError as exc:
                raise TransactionValidationError(f"Line {index}: {_validation_message(exc)}") from exc
        TransactionEntry.objects.bulk_create(rows)

        _verify_persisted_balance(txn, expected_entries=len(prepared.entries))
        recompute_account_balances(e.account.id for e in prepared.entries)

        log_activity(
            txn,
            "created",
            new_values={
                "reference_number": txn.reference_number,
                "transaction_type": txn.transaction_type,
                "total_amount": str(txn.total_amount),
                "approval_status": txn.approval_status,
            },
            metadata={"actor_id": actor_id, "entries": len(prepared.entries)},
        )

    logger.info(
        "Transaction posted",
        extra={
            "reference_number": txn.reference_number,
            "transaction_type": txn.transaction_type,
            "total_amount": str(txn.total_amount),
            "approval_status": txn.approval_status,
        },
    )
    return txn

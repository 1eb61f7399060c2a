# accounting/services/journal_entry_service.py

"""
======================================================
PATH: accounting/services/journal_entry_service.py
======================================================
JOURNAL ENTRY BUILDERS

Higher-level entry shapes, all posted through ledger_service.create_transaction:

- advanced:  multi-currency lines + tax lines priced by the tax collaborator
- adjusting: advanced entry that always requires approval
- reversing: swaps every side of an existing transaction at its original rates
- recurring: one transaction per scheduled date (each its own atomic unit)
- closing:   zeroes revenue and expense accounts into the income summary
             account (two independent units)

Tax lines are priced and appended BEFORE the ledger validates, so the balance
check always runs against the complete entry set.

Batch builders return a BatchResult; a failing iteration is recorded and
logged, never raised, unless the caller asks for all_or_nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.db import transaction

from accounting.journal_request import DEBIT, EntryLine, JournalEntryRequest
from accounting.models.account import Account
from accounting.models.transaction import Transaction
from accounting.money import ZERO, balance_tolerance, q2
from accounting.services.account_registry import active_accounts, get_income_summary_account
from accounting.services.balance_service import get_account_balance
from accounting.services.currency_service import CurrencyConverter, FixedRateConverter
from accounting.services.exceptions import (
    AccountingServiceError,
    ExternalDependencyError,
    TransactionValidationError,
)
from accounting.services.ledger_service import create_transaction
from accounting.services.tax_service import TaxService

logger = logging.getLogger(__name__)

DAILY = "daily"
WEEKLY = "weekly"
MONTHLY = "monthly"
QUARTERLY = "quarterly"
YEARLY = "yearly"

FREQUENCY_STEPS = {
    DAILY: relativedelta(days=1),
    WEEKLY: relativedelta(weeks=1),
    MONTHLY: relativedelta(months=1),
    QUARTERLY: relativedelta(months=3),
    YEARLY: relativedelta(years=1),
}

DEFAULT_MAX_RECURRING_OCCURRENCES = 1000


@dataclass(frozen=True)
class BatchFailure:
    label: str
    error: str


@dataclass
class BatchResult:
    created: list = field(default_factory=list)
    failures: list = field(default_factory=list)
    skipped: list = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


# ------------------------------------------------------------
# ADVANCED / ADJUSTING
# ------------------------------------------------------------


def _append_tax_lines(request: JournalEntryRequest, tax_service) -> JournalEntryRequest:
    if not request.tax_lines:
        return request

    tax_service = tax_service or TaxService()
    extra = []

    for tax in request.tax_lines:
        try:
            amount = q2(tax_service.calculate_tax(tax.taxable_amount, tax.tax_code))
            rate = tax_service.get_tax_rate(tax.tax_code)
        except ExternalDependencyError:
            raise
        except Exception as exc:
            raise ExternalDependencyError(
                f"Tax calculation failed for {tax.tax_code}: {exc}"
            ) from exc

        if amount <= 0:
            continue

        is_debit = tax.side == DEBIT
        extra.append(
            EntryLine(
                account_id=tax.tax_account_id,
                debit=amount if is_debit else ZERO,
                credit=ZERO if is_debit else amount,
                currency=tax.currency,
                description=f"Tax calculation for {tax.tax_code}",
                metadata={
                    "tax_code": tax.tax_code,
                    "taxable_amount": str(tax.taxable_amount),
                    "tax_rate": str(rate),
                },
            )
        )

    return replace(request, lines=request.lines + tuple(extra), tax_lines=())


def create_advanced_entry(
    request: JournalEntryRequest,
    *,
    actor_id: int | None,
    as_of: datetime,
    tax_service=None,
    converter: CurrencyConverter | None = None,
) -> Transaction:
    full_request = _append_tax_lines(request, tax_service)
    return create_transaction(full_request, actor_id=actor_id, as_of=as_of, converter=converter)


def create_adjusting_entry(
    request: JournalEntryRequest,
    *,
    actor_id: int | None,
    as_of: datetime,
    tax_service=None,
) -> Transaction:
    adjusting = replace(
        request,
        requires_approval=True,
        transaction_type=Transaction.ADJUSTING_ENTRY,
        source_type=request.source_type or "adjustment",
    )
    return create_advanced_entry(adjusting, actor_id=actor_id, as_of=as_of, tax_service=tax_service)


# ------------------------------------------------------------
# REVERSING
# ------------------------------------------------------------


def _reversed_line(entry) -> EntryLine:
    has_original = entry.original_debit_amount > 0 or entry.original_credit_amount > 0
    debit = entry.original_debit_amount if has_original else entry.debit_amount
    credit = entry.original_credit_amount if has_original else entry.credit_amount

    return EntryLine(
        account_id=entry.account_id,
        debit=credit,
        credit=debit,
        currency=entry.currency,
        description=entry.description,
        description_localized=entry.description_localized,
        metadata=entry.metadata or {},
    )


def create_reversing_entry(
    original: Transaction,
    *,
    reversing_date: date,
    actor_id: int | None,
    as_of: datetime,
    description: str | None = None,
) -> Transaction:
    entries = list(original.entries.order_by("id"))
    if not entries:
        raise TransactionValidationError(f"Transaction {original.reference_number} has no entries to reverse")

    # Replay at the rates the original was posted at so the sides still balance
    pinned = FixedRateConverter({e.currency: e.exchange_rate for e in entries})

    request = JournalEntryRequest(
        description=description or f"Reversal of: {original.description}",
        transaction_date=reversing_date,
        lines=tuple(_reversed_line(e) for e in entries),
        reference_number=f"REV-{original.reference_number}",
        transaction_type=Transaction.REVERSING_ENTRY,
        description_localized=original.description_localized,
        source_type="reversal",
        source_id=str(original.pk),
        cost_center_id=original.cost_center_id,
        tags=tuple(original.tags or ()),
        notes=f"Reverses {original.reference_number}",
    )
    return create_advanced_entry(request, actor_id=actor_id, as_of=as_of, converter=pinned)


# ------------------------------------------------------------
# RECURRING
# ------------------------------------------------------------


def build_schedule(
    start_date: date,
    end_date: date,
    frequency: str,
    *,
    max_occurrences: int | None = None,
) -> list[date]:
    """
    Occurrence n is start_date + n * step (month steps clamp to month end),
    up to and including end_date.
    """
    step = FREQUENCY_STEPS.get((frequency or "").strip().lower())
    if step is None:
        raise TransactionValidationError(
            f"Unsupported frequency {frequency!r}; expected one of {', '.join(FREQUENCY_STEPS)}"
        )
    if end_date < start_date:
        raise TransactionValidationError("end_date must be >= start_date")

    limit = max_occurrences or getattr(
        settings, "LEDGER_MAX_RECURRING_OCCURRENCES", DEFAULT_MAX_RECURRING_OCCURRENCES
    )

    schedule: list[date] = []
    n = 0
    while True:
        occurrence = start_date + step * n
        if occurrence > end_date:
            return schedule
        if len(schedule) >= limit:
            raise TransactionValidationError(
                f"Recurring schedule exceeds the maximum of {limit} occurrences"
            )
        schedule.append(occurrence)
        n += 1


def _occurrence_request(template: JournalEntryRequest, on: date, seq: int, prefix: str) -> JournalEntryRequest:
    return replace(
        template,
        transaction_date=on,
        reference_number=f"{prefix}-{on:%Y-%m-%d}-{seq:03d}",
        transaction_type=Transaction.RECURRING_ENTRY,
        source_type=template.source_type or "recurring",
    )


def create_recurring_entries(
    template: JournalEntryRequest,
    *,
    start_date: date,
    end_date: date,
    frequency: str,
    actor_id: int | None,
    as_of: datetime,
    reference_prefix: str = "REC",
    all_or_nothing: bool = False,
    max_occurrences: int | None = None,
    tax_service=None,
) -> BatchResult:
    schedule = build_schedule(start_date, end_date, frequency, max_occurrences=max_occurrences)
    prefix = (reference_prefix or "REC").strip()
    result = BatchResult()

    if all_or_nothing:
        with transaction.atomic():
            for seq, on in enumerate(schedule, start=1):
                request = _occurrence_request(template, on, seq, prefix)
                result.created.append(
                    create_advanced_entry(request, actor_id=actor_id, as_of=as_of, tax_service=tax_service)
                )
        return result

    for seq, on in enumerate(schedule, start=1):
        request = _occurrence_request(template, on, seq, prefix)
        try:
            txn = create_advanced_entry(request, actor_id=actor_id, as_of=as_of, tax_service=tax_service)
        except AccountingServiceError as exc:
            logger.warning(
                "Recurring occurrence failed",
                extra={"reference_number": request.reference_number, "error": str(exc)},
            )
            result.failures.append(BatchFailure(label=request.reference_number, error=str(exc)))
            continue
        result.created.append(txn)

    logger.info(
        "Recurring entries generated",
        extra={
            "frequency": frequency,
            "scheduled": len(schedule),
            "created_count": len(result.created),
            "failed_count": len(result.failures),
        },
    )
    return result


# ------------------------------------------------------------
# CLOSING
# ------------------------------------------------------------

CLOSING_GROUPS = (
    ("revenue", Account.REVENUE),
    ("expense", Account.EXPENSE),
)


def _build_closing_request(group: str, account_type: str, period_end: date, summary: Account) -> JournalEntryRequest | None:
    tolerance = balance_tolerance()
    lines: list[EntryLine] = []
    net = ZERO

    for account in active_accounts(account_type).exclude(pk=summary.pk):
        balance = get_account_balance(account, as_of=period_end)
        if abs(balance) <= tolerance:
            continue

        # A positive balance sits on the account's normal side; close it from the other side
        normal_is_debit = account.is_debit_normal
        close_with_debit = (balance > 0) != normal_is_debit
        amount = abs(balance)

        lines.append(
            EntryLine(
                account_id=account.id,
                debit=amount if close_with_debit else ZERO,
                credit=ZERO if close_with_debit else amount,
                description=f"Close {account.name}",
            )
        )
        net += balance

    if not lines:
        return None

    net = q2(net)
    if net != 0:
        # Revenue nets to a credit on the summary account, expense to a debit
        summary_debit = (net > 0) == (account_type == Account.EXPENSE)
        lines.append(
            EntryLine(
                account_id=summary.id,
                debit=abs(net) if summary_debit else ZERO,
                credit=ZERO if summary_debit else abs(net),
                description=f"Close {group} accounts to {summary.name}",
            )
        )

    return JournalEntryRequest(
        description=f"Closing entry - {group} accounts",
        transaction_date=period_end,
        lines=tuple(lines),
        reference_number=f"CLOSE-{group.upper()}-{period_end:%Y-%m-%d}",
        transaction_type=Transaction.CLOSING_ENTRY,
        source_type="period_closing",
    )


def create_closing_entries(
    period_end: date,
    *,
    actor_id: int | None,
    as_of: datetime,
) -> BatchResult:
    summary = get_income_summary_account()
    result = BatchResult()

    for group, account_type in CLOSING_GROUPS:
        try:
            request = _build_closing_request(group, account_type, period_end, summary)
            if request is None:
                result.skipped.append(group)
                continue
            result.created.append(create_transaction(request, actor_id=actor_id, as_of=as_of))
        except AccountingServiceError as exc:
            logger.warning(
                "Closing entry failed",
                extra={"group": group, "period_end": period_end.isoformat(), "error": str(exc)},
            )
            result.failures.append(BatchFailure(label=group, error=str(exc)))

    return result

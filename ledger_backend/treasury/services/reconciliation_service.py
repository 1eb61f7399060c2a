# treasury/services/reconciliation_service.py

"""
======================================================
PATH: treasury/services/reconciliation_service.py
======================================================
BANK RECONCILIATION MATCHER

perform_bank_reconciliation(account, statement_date, statement)  read-only
- Only asset (debit-normal) accounts can be reconciled.
- Book side: every transaction touching the account up to statement_date,
  amount = its debits - credits on that account (deposits positive).
- Greedy match in book order: first bank line with |amount diff| < 0.01 and
  |date diff| <= 2 days pairs with the book row; both leave their pools.
- Unmatched book rows: > 0 outstanding deposits, < 0 outstanding checks
  (reported as absolute amounts).
- reconciled_balance = book_balance + deposits - checks
- is_reconciled iff |reconciled_balance - bank ending balance| <= tolerance
- When not reconciled, unmatched rows on both sides are surfaced as candidate
  errors plus one variance_adjustment proposal sized bank - reconciled.

create_reconciliation_adjustments(...)  writes through the ledger
- One bank_adjustment transaction per proposal, offset against the
  miscellaneous expense account (found or created).
- References are BANK-ADJ-<account code>-<YYYYMMDD>-NN, NN the next free
  sequence for that account and day.
- All proposals of one call post together or not at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Tuple

from django.db import transaction
from django.db.models import Sum
from django.db.models.functions import Coalesce

from accounting.journal_request import EntryLine, JournalEntryRequest
from accounting.models.account import Account
from accounting.models.transaction import Transaction, TransactionEntry
from accounting.money import ZERO, MoneyError, as_date, q2, to_major_number, to_money, within_tolerance
from accounting.services.account_registry import get_misc_expense_account
from accounting.services.balance_service import get_account_balance
from accounting.services.ledger_service import create_transaction
from accounting.services.snapshot import snapshot_read
from treasury.services.exceptions import ReconciliationError

logger = logging.getLogger(__name__)

AMOUNT_MATCH_TOLERANCE = Decimal("0.01")
DATE_MATCH_WINDOW_DAYS = 2

VARIANCE_ADJUSTMENT = "variance_adjustment"
MAX_REFERENCE_ATTEMPTS = 1000


@dataclass(frozen=True)
class BankStatementLine:
    date: date
    amount: Decimal
    description: str = ""
    reference: str = ""

    def __post_init__(self):
        try:
            object.__setattr__(self, "date", as_date(self.date))
            object.__setattr__(self, "amount", to_money(self.amount))
        except (MoneyError, ValueError) as exc:
            raise ReconciliationError(f"Invalid bank statement line: {exc}") from exc

    def as_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "amount": to_major_number(self.amount),
            "description": self.description,
            "reference": self.reference,
        }


@dataclass(frozen=True)
class BankStatement:
    ending_balance: Decimal
    transactions: Tuple[BankStatementLine, ...] = ()

    def __post_init__(self):
        try:
            object.__setattr__(self, "ending_balance", to_money(self.ending_balance))
        except MoneyError as exc:
            raise ReconciliationError(f"Invalid ending balance: {exc}") from exc
        object.__setattr__(self, "transactions", tuple(self.transactions or ()))

    @staticmethod
    def from_raw(raw: Mapping) -> "BankStatement":
        if "ending_balance" not in raw:
            raise ReconciliationError("Bank statement ending_balance is required")

        lines = [
            BankStatementLine(
                date=item.get("date"),
                amount=item.get("amount"),
                description=item.get("description") or "",
                reference=item.get("reference") or "",
            )
            for item in (raw.get("transactions") or [])
        ]
        return BankStatement(ending_balance=raw["ending_balance"], transactions=tuple(lines))


@dataclass(frozen=True)
class BookItem:
    transaction_id: int
    date: date
    amount: Decimal
    reference_number: str
    description: str

    def as_dict(self) -> dict:
        return {
            "transaction_id": self.transaction_id,
            "date": self.date.isoformat(),
            "amount": to_major_number(abs(self.amount)),
            "reference_number": self.reference_number,
            "description": self.description,
        }


def _require_asset(account: Account) -> None:
    if account.account_type != Account.ASSET:
        raise ReconciliationError(
            f"Account {account.code} is {account.account_type}; only asset accounts can be reconciled"
        )


def book_items(account: Account, statement_date: date) -> list[BookItem]:
    rows = (
        TransactionEntry.objects.filter(account=account, transaction__transaction_date__lte=statement_date)
        .values(
            "transaction_id",
            "transaction__transaction_date",
            "transaction__reference_number",
            "transaction__description",
        )
        .annotate(
            debits=Coalesce(Sum("debit_amount"), ZERO),
            credits=Coalesce(Sum("credit_amount"), ZERO),
        )
        .order_by("transaction__transaction_date", "transaction_id")
    )
    return [
        BookItem(
            transaction_id=r["transaction_id"],
            date=r["transaction__transaction_date"],
            amount=q2(r["debits"] - r["credits"]),
            reference_number=r["transaction__reference_number"],
            description=r["transaction__description"],
        )
        for r in rows
    ]


def match_transactions(
    book: Iterable[BookItem],
    bank: Iterable[BankStatementLine],
) -> tuple[list[tuple[BookItem, BankStatementLine]], list[BookItem], list[BankStatementLine]]:
    matched = []
    unmatched_book = []
    unmatched_bank = list(bank)

    for item in book:
        for index, line in enumerate(unmatched_bank):
            if (
                abs(item.amount - line.amount) < AMOUNT_MATCH_TOLERANCE
                and abs((item.date - line.date).days) <= DATE_MATCH_WINDOW_DAYS
            ):
                matched.append((item, line))
                del unmatched_bank[index]
                break
        else:
            unmatched_book.append(item)

    return matched, unmatched_book, unmatched_bank


def perform_bank_reconciliation(
    account: Account,
    statement_date: date,
    statement: BankStatement | Mapping,
) -> dict:
    _require_asset(account)
    if not isinstance(statement, BankStatement):
        statement = BankStatement.from_raw(statement)

    with snapshot_read():
        book_balance = get_account_balance(account, as_of=statement_date)
        book = book_items(account, statement_date)

    matched, unmatched_book, unmatched_bank = match_transactions(book, statement.transactions)

    deposits = [item for item in unmatched_book if item.amount > 0]
    checks = [item for item in unmatched_book if item.amount < 0]

    reconciled = q2(
        book_balance
        + sum((d.amount for d in deposits), ZERO)
        - sum((abs(c.amount) for c in checks), ZERO)
    )
    variance = q2(statement.ending_balance - reconciled)
    is_reconciled = within_tolerance(reconciled, statement.ending_balance)

    result = {
        "account_id": account.pk,
        "account_code": account.code,
        "account_name": account.name,
        "statement_date": statement_date.isoformat(),
        "book_balance": to_major_number(book_balance),
        "bank_balance": to_major_number(statement.ending_balance),
        "reconciled_balance": to_major_number(reconciled),
        "matched_count": len(matched),
        "outstanding_deposits": [d.as_dict() for d in deposits],
        "outstanding_checks": [c.as_dict() for c in checks],
        "bank_errors": [],
        "book_errors": [],
        "adjustments_needed": [],
        "is_reconciled": is_reconciled,
        "variance": to_major_number(variance),
    }

    if not is_reconciled:
        result["bank_errors"] = [line.as_dict() for line in unmatched_bank]
        result["book_errors"] = [item.as_dict() for item in unmatched_book]
        result["adjustments_needed"] = [
            {
                "type": VARIANCE_ADJUSTMENT,
                "description": "Bank reconciliation variance adjustment",
                "amount": to_major_number(variance),
                "date": statement_date.isoformat(),
            }
        ]
        logger.warning(
            "Bank reconciliation variance",
            extra={"account_code": account.code, "variance": str(variance), "statement_date": str(statement_date)},
        )

    return result


def _next_adjustment_reference(account: Account, on: date) -> str:
    prefix = f"BANK-ADJ-{account.code}-{on:%Y%m%d}-"
    seq = Transaction.objects.filter(reference_number__startswith=prefix).count() + 1

    for _ in range(MAX_REFERENCE_ATTEMPTS):
        candidate = f"{prefix}{seq:02d}"
        if not Transaction.objects.filter(reference_number=candidate).exists():
            return candidate
        seq += 1

    raise ReconciliationError(f"Could not allocate an adjustment reference for {account.code} on {on}")


def _adjustment_request(bank_account: Account, offset_account_id: int, adjustment: Mapping) -> JournalEntryRequest:
    try:
        amount = to_money(adjustment.get("amount"))
    except MoneyError as exc:
        raise ReconciliationError(str(exc)) from exc
    if amount == 0:
        raise ReconciliationError("Adjustment amount must be non-zero")

    try:
        on = as_date(adjustment.get("date"))
    except ValueError as exc:
        raise ReconciliationError(f"Invalid adjustment date: {exc}") from exc

    bank_account_id = bank_account.pk
    description = (adjustment.get("description") or "Bank reconciliation adjustment").strip()
    size = abs(amount)

    if amount > 0:
        lines = (
            EntryLine(account_id=bank_account_id, debit=size, description=description),
            EntryLine(account_id=offset_account_id, credit=size, description=description),
        )
    else:
        lines = (
            EntryLine(account_id=bank_account_id, credit=size, description=description),
            EntryLine(account_id=offset_account_id, debit=size, description=description),
        )

    return JournalEntryRequest(
        description=description,
        description_localized=adjustment.get("description_localized") or "",
        transaction_date=on,
        lines=lines,
        reference_number=_next_adjustment_reference(bank_account, on),
        transaction_type=Transaction.BANK_ADJUSTMENT,
        source_type="bank_reconciliation",
        source_id=str(bank_account_id),
    )


@transaction.atomic
def create_reconciliation_adjustments(
    reconciliation: Mapping,
    adjustments: Optional[Iterable[Mapping]] = None,
    *,
    actor_id: int | None,
    as_of: datetime,
) -> list[Transaction]:
    """
    adjustments defaults to reconciliation["adjustments_needed"].
    Each item: amount (signed, + increases the bank account), date, description.
    """
    account_id = reconciliation.get("account_id")
    account = Account.objects.filter(pk=account_id).first()
    if account is None:
        raise ReconciliationError(f"Account {account_id} does not exist")
    _require_asset(account)

    if adjustments is None:
        adjustments = reconciliation.get("adjustments_needed") or []
    items = list(adjustments)
    offset = get_misc_expense_account()

    created = []
    for adjustment in items:
        request = _adjustment_request(account, offset.pk, adjustment)
        created.append(create_transaction(request, actor_id=actor_id, as_of=as_of))

    logger.info(
        "Bank reconciliation adjustments posted",
        extra={"account_id": account_id, "count": len(created)},
    )
    return created

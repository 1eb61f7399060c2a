# accounting/journal_request.py

"""
PATH: accounting/journal_request.py

JOURNAL ENTRY REQUEST DOMAIN (FRAMEWORK-AGNOSTIC)

Purpose:
- The single, explicit request shape accepted by the ledger.
- Used by BOTH:
  - DRF serializer validation (API layer, via from_raw)
  - entry builders (application layer, via direct construction)

Rules enforced at construction:
- Every line has an account_id
- Exactly one of debit/credit is > 0; never both, never neither, never negative
- Money normalized to 2dp
- Currency codes normalized to upper-case (None = base currency)

Rules enforced by the ledger (need the database or configuration):
- At least 2 lines, accounts exist and are active, converted totals balance
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Mapping, Optional, Tuple

from accounting.money import ZERO, MoneyError, as_date, to_money
from accounting.services.exceptions import TransactionValidationError

DEBIT = "debit"
CREDIT = "credit"


def _money(value, *, label: str) -> Decimal:
    try:
        return to_money(value)
    except MoneyError as exc:
        raise TransactionValidationError(f"{label}: {exc}") from exc


def _currency(value) -> Optional[str]:
    code = (value or "").strip().upper()
    if not code:
        return None
    if len(code) != 3:
        raise TransactionValidationError(f"Invalid currency code: {value!r}")
    return code


@dataclass(frozen=True)
class EntryLine:
    """
    One debit OR credit line, in the entry currency.

    metadata may carry cost_center_id, project_id, department_id,
    tax_code and custom_fields; it is stored verbatim on the entry.
    """

    account_id: int
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    currency: Optional[str] = None
    description: str = ""
    description_localized: str = ""
    metadata: Mapping = field(default_factory=dict)

    def __post_init__(self):
        if self.account_id is None:
            raise TransactionValidationError("Entry line is missing account_id")

        debit = _money(self.debit, label="debit")
        credit = _money(self.credit, label="credit")

        if debit < 0 or credit < 0:
            raise TransactionValidationError(
                f"Debit or credit cannot be negative (account {self.account_id})"
            )
        if debit > 0 and credit > 0:
            raise TransactionValidationError(
                f"An entry cannot have both debit and credit (account {self.account_id})"
            )
        if debit == 0 and credit == 0:
            raise TransactionValidationError(
                f"An entry must have either debit or credit (account {self.account_id})"
            )

        object.__setattr__(self, "debit", debit)
        object.__setattr__(self, "credit", credit)
        object.__setattr__(self, "currency", _currency(self.currency))
        object.__setattr__(self, "description", (self.description or "").strip())
        object.__setattr__(self, "metadata", dict(self.metadata or {}))

    @property
    def side(self) -> str:
        return DEBIT if self.debit > 0 else CREDIT

    @property
    def amount(self) -> Decimal:
        return self.debit if self.debit > 0 else self.credit

    def swapped(self) -> "EntryLine":
        """Same line with debit and credit exchanged."""
        return EntryLine(
            account_id=self.account_id,
            debit=self.credit,
            credit=self.debit,
            currency=self.currency,
            description=self.description,
            description_localized=self.description_localized,
            metadata=self.metadata,
        )

    @staticmethod
    def from_raw(raw: dict, *, index: int | None = None) -> "EntryLine":
        prefix = f"Line {index}: " if index is not None else ""
        if not isinstance(raw, dict):
            raise TransactionValidationError(f"{prefix}must be an object/dict")

        metadata = {
            key: raw[key]
            for key in ("cost_center_id", "project_id", "department_id", "tax_code", "custom_fields")
            if raw.get(key) not in (None, "")
        }

        try:
            return EntryLine(
                account_id=raw.get("account_id"),
                debit=raw.get("debit_amount", raw.get("debit")),
                credit=raw.get("credit_amount", raw.get("credit")),
                currency=raw.get("currency"),
                description=raw.get("description") or "",
                description_localized=raw.get("description_localized") or "",
                metadata=metadata,
            )
        except TransactionValidationError as exc:
            raise TransactionValidationError(f"{prefix}{exc}") from exc


@dataclass(frozen=True)
class TaxLine:
    """
    A tax to be priced by the tax collaborator and appended as an entry
    on tax_account_id, on the given side.
    """

    tax_code: str
    taxable_amount: Decimal
    tax_account_id: int
    side: str = CREDIT
    currency: Optional[str] = None

    def __post_init__(self):
        code = (self.tax_code or "").strip().upper()
        if not code:
            raise TransactionValidationError("Tax line is missing tax_code")
        if self.tax_account_id is None:
            raise TransactionValidationError(f"Tax line {code} is missing tax_account_id")

        side = (self.side or "").strip().lower()
        if side not in (DEBIT, CREDIT):
            raise TransactionValidationError(f"Tax line side must be 'debit' or 'credit', got {self.side!r}")

        taxable = _money(self.taxable_amount, label="taxable_amount")
        if taxable < 0:
            raise TransactionValidationError(f"Taxable amount cannot be negative ({code})")

        object.__setattr__(self, "tax_code", code)
        object.__setattr__(self, "side", side)
        object.__setattr__(self, "taxable_amount", taxable)
        object.__setattr__(self, "currency", _currency(self.currency))


@dataclass(frozen=True)
class JournalEntryRequest:
    """
    Validated journal entry request (domain object).

    - lines: tuple of EntryLine (the ledger requires at least two)
    - reference_number: optional; generated by the ledger when omitted
    - requires_approval: selects the initial approval state
    - tax_lines: priced and appended by the advanced-entry builder
    """

    description: str
    transaction_date: date
    lines: Tuple[EntryLine, ...]
    reference_number: Optional[str] = None
    transaction_type: str = "journal_entry"
    description_localized: str = ""
    source_type: str = ""
    source_id: str = ""
    cost_center_id: Optional[int] = None
    tags: Tuple[str, ...] = ()
    notes: str = ""
    requires_approval: bool = False
    tax_lines: Tuple[TaxLine, ...] = ()

    def __post_init__(self):
        description = (self.description or "").strip()
        if not description:
            raise TransactionValidationError("Transaction description is required")

        try:
            txn_date = as_date(self.transaction_date)
        except ValueError as exc:
            raise TransactionValidationError(str(exc)) from exc

        reference = (self.reference_number or "").strip() or None

        object.__setattr__(self, "description", description)
        object.__setattr__(self, "transaction_date", txn_date)
        object.__setattr__(self, "reference_number", reference)
        object.__setattr__(self, "lines", tuple(self.lines or ()))
        object.__setattr__(self, "tags", tuple(str(t) for t in (self.tags or ())))
        object.__setattr__(self, "tax_lines", tuple(self.tax_lines or ()))
        object.__setattr__(self, "source_id", str(self.source_id or ""))

    @staticmethod
    def from_raw(raw: dict) -> "JournalEntryRequest":
        if not isinstance(raw, dict):
            raise TransactionValidationError("Request must be an object/dict")

        lines = [EntryLine.from_raw(item, index=i) for i, item in enumerate(raw.get("entries") or [])]
        tax_lines = [
            TaxLine(
                tax_code=item.get("tax_code"),
                taxable_amount=item.get("taxable_amount"),
                tax_account_id=item.get("tax_account_id"),
                side=DEBIT if item.get("is_tax_debit") else CREDIT,
                currency=item.get("currency"),
            )
            for item in (raw.get("tax_entries") or [])
        ]

        return JournalEntryRequest(
            description=raw.get("description"),
            transaction_date=raw.get("transaction_date"),
            lines=tuple(lines),
            reference_number=raw.get("reference_number"),
            description_localized=raw.get("description_localized") or "",
            source_type=raw.get("source_type") or "",
            source_id=raw.get("source_id") or "",
            cost_center_id=raw.get("cost_center_id"),
            tags=tuple(raw.get("tags") or ()),
            notes=raw.get("notes") or "",
            requires_approval=bool(raw.get("requires_approval", False)),
            tax_lines=tuple(tax_lines),
        )

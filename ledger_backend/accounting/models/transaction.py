# accounting/models/transaction.py

"""
======================================================
PATH: accounting/models/transaction.py
======================================================
TRANSACTION + TRANSACTION ENTRY MODELS

Transaction is the journal header; TransactionEntry is one debit OR credit
line against a single account, stored in base currency alongside the
amount as originally entered.

Guarantees:
- Created only through accounting.services.ledger_service
- Immutable once created, except the approval transition fields
- Never deleted
- Exactly one side of an entry is positive (DB check constraint + clean())
- reference_number is unique
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class ApprovalStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"


class Transaction(models.Model):
    JOURNAL_ENTRY = "journal_entry"
    ADJUSTING_ENTRY = "adjusting_entry"
    REVERSING_ENTRY = "reversing_entry"
    RECURRING_ENTRY = "recurring_entry"
    BANK_ADJUSTMENT = "bank_adjustment"
    CLOSING_ENTRY = "closing_entry"

    TRANSACTION_TYPES = [
        (JOURNAL_ENTRY, "Journal Entry"),
        (ADJUSTING_ENTRY, "Adjusting Entry"),
        (REVERSING_ENTRY, "Reversing Entry"),
        (RECURRING_ENTRY, "Recurring Entry"),
        (BANK_ADJUSTMENT, "Bank Adjustment"),
        (CLOSING_ENTRY, "Closing Entry"),
    ]

    # Fields the approval transition may touch after creation
    APPROVAL_FIELDS = frozenset({"approval_status", "approved_by", "approved_at"})

    reference_number = models.CharField(max_length=100, unique=True)

    description = models.TextField(help_text="Narrative description of the transaction")
    description_localized = models.TextField(blank=True, default="")

    transaction_date = models.DateField(help_text="Accounting effective date")

    transaction_type = models.CharField(
        max_length=20,
        choices=TRANSACTION_TYPES,
        default=JOURNAL_ENTRY,
    )

    source_type = models.CharField(max_length=50, blank=True, default="")
    source_id = models.CharField(max_length=64, blank=True, default="")

    total_amount = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Single-sided value in base currency",
    )
    currency = models.CharField(max_length=3)
    exchange_rate = models.DecimalField(
        max_digits=18,
        decimal_places=8,
        default=Decimal("1"),
    )

    cost_center_id = models.PositiveBigIntegerField(null=True, blank=True)
    tags = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True, default="")

    approval_status = models.CharField(
        max_length=10,
        choices=ApprovalStatus.choices,
        default=ApprovalStatus.PENDING,
    )

    created_by = models.PositiveBigIntegerField(null=True, blank=True)
    approved_by = models.PositiveBigIntegerField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-transaction_date", "-id"]
        indexes = [
            models.Index(fields=["transaction_date"]),
            models.Index(fields=["transaction_type"]),
            models.Index(fields=["source_type", "source_id"]),
            models.Index(fields=["approval_status"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(reference_number=""),
                name="chk_transaction_reference_not_blank",
            ),
            models.CheckConstraint(
                condition=Q(total_amount__gte=0),
                name="chk_transaction_total_non_negative",
            ),
        ]
        verbose_name = "Transaction"
        verbose_name_plural = "Transactions"

    def __str__(self):
        return f"{self.reference_number} – {self.transaction_date}"

    @property
    def is_approved(self) -> bool:
        return self.approval_status == ApprovalStatus.APPROVED

    def clean(self):
        self.reference_number = (self.reference_number or "").strip()
        if not self.reference_number:
            raise ValidationError("Transaction reference_number is required")

        self.description = (self.description or "").strip()
        if not self.description:
            raise ValidationError("Transaction description is required")

        if self.approval_status == ApprovalStatus.APPROVED and self.approved_at is None:
            raise ValidationError("Approved transactions must carry approved_at")

        if self.approval_status == ApprovalStatus.PENDING and (
            self.approved_by is not None or self.approved_at is not None
        ):
            raise ValidationError("Pending transactions cannot carry an approver")

    def save(self, *args, **kwargs):
        if self.pk:
            update_fields = kwargs.get("update_fields")
            if not update_fields or not set(update_fields) <= self.APPROVAL_FIELDS:
                raise ValidationError("Transaction records are immutable once created")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Transaction records are immutable and cannot be deleted")


class TransactionEntry(models.Model):
    transaction = models.ForeignKey(
        Transaction,
        on_delete=models.PROTECT,
        related_name="entries",
    )

    account = models.ForeignKey(
        "accounting.Account",
        on_delete=models.PROTECT,
        related_name="entries",
    )

    # Base-currency amounts
    debit_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    credit_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )

    # As entered, in the entry currency
    original_debit_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    original_credit_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    currency = models.CharField(max_length=3)
    exchange_rate = models.DecimalField(
        max_digits=18,
        decimal_places=8,
        default=Decimal("1"),
    )

    description = models.CharField(max_length=255, blank=True, default="")
    description_localized = models.CharField(max_length=255, blank=True, default="")
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Transaction Entry"
        verbose_name_plural = "Transaction Entries"
        ordering = ["id"]
        indexes = [
            models.Index(fields=["account"]),
            models.Index(fields=["transaction"]),
            models.Index(fields=["account", "transaction"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(debit_amount__gt=0, credit_amount=0)
                    | Q(credit_amount__gt=0, debit_amount=0)
                ),
                name="chk_entry_exactly_one_side",
            ),
        ]

    def __str__(self):
        side = "DR" if self.debit_amount > 0 else "CR"
        return f"{side} {self.amount} → {self.account}"

    @property
    def amount(self) -> Decimal:
        return self.debit_amount if self.debit_amount > 0 else self.credit_amount

    @property
    def is_debit(self) -> bool:
        return self.debit_amount > 0

    def clean(self):
        debit = self.debit_amount or Decimal("0.00")
        credit = self.credit_amount or Decimal("0.00")

        if debit < 0 or credit < 0:
            raise ValidationError("Debit or credit cannot be negative")
        if (debit > 0) == (credit > 0):
            raise ValidationError("An entry must have exactly one of debit or credit")

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("TransactionEntry records are immutable and cannot be modified")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("TransactionEntry records are immutable and cannot be deleted")

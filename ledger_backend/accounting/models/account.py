# accounting/models/account.py

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class Account(models.Model):
    """
    Represents a single account within the chart of accounts.

    Guarantees:
    - Account codes are globally unique
    - Code + name are normalized (trimmed)
    - Subtype must belong to the account type's family
    - current_balance is a cached projection; the ledger is the source of truth
    """

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

    ACCOUNT_TYPES = [
        (ASSET, "Asset"),
        (LIABILITY, "Liability"),
        (EQUITY, "Equity"),
        (REVENUE, "Revenue"),
        (EXPENSE, "Expense"),
    ]

    # Debit-normal types: balance = debits - credits
    DEBIT_NORMAL_TYPES = (ASSET, EXPENSE)

    CURRENT_ASSET = "current_asset"
    FIXED_ASSET = "fixed_asset"
    CURRENT_LIABILITY = "current_liability"
    LONG_TERM_LIABILITY = "long_term_liability"
    OWNERS_EQUITY = "equity"
    OPERATING_REVENUE = "operating_revenue"
    OTHER_REVENUE = "other_revenue"
    COST_OF_GOODS_SOLD = "cost_of_goods_sold"
    OPERATING_EXPENSE = "operating_expense"
    OTHER_EXPENSE = "other_expense"

    SUBTYPES = [
        (CURRENT_ASSET, "Current Asset"),
        (FIXED_ASSET, "Fixed Asset"),
        (CURRENT_LIABILITY, "Current Liability"),
        (LONG_TERM_LIABILITY, "Long-term Liability"),
        (OWNERS_EQUITY, "Equity"),
        (OPERATING_REVENUE, "Operating Revenue"),
        (OTHER_REVENUE, "Other Revenue"),
        (COST_OF_GOODS_SOLD, "Cost of Goods Sold"),
        (OPERATING_EXPENSE, "Operating Expense"),
        (OTHER_EXPENSE, "Other Expense"),
    ]

    SUBTYPES_BY_TYPE = {
        ASSET: (CURRENT_ASSET, FIXED_ASSET),
        LIABILITY: (CURRENT_LIABILITY, LONG_TERM_LIABILITY),
        EQUITY: (OWNERS_EQUITY,),
        REVENUE: (OPERATING_REVENUE, OTHER_REVENUE),
        EXPENSE: (COST_OF_GOODS_SOLD, OPERATING_EXPENSE, OTHER_EXPENSE),
    }

    DEFAULT_SUBTYPE = {
        ASSET: CURRENT_ASSET,
        LIABILITY: CURRENT_LIABILITY,
        EQUITY: OWNERS_EQUITY,
        REVENUE: OPERATING_REVENUE,
        EXPENSE: OPERATING_EXPENSE,
    }

    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=150)
    name_localized = models.CharField(max_length=150, blank=True, default="")

    account_type = models.CharField(
        max_length=20,
        choices=ACCOUNT_TYPES,
    )
    subtype = models.CharField(
        max_length=30,
        choices=SUBTYPES,
        blank=True,
        default="",
    )

    currency = models.CharField(max_length=3, default="USD")
    description = models.TextField(blank=True, default="")

    current_balance = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Cached balance, recomputed by the ledger inside each posting",
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        verbose_name = "Account"
        verbose_name_plural = "Accounts"
        indexes = [
            models.Index(fields=["account_type"]),
            models.Index(fields=["account_type", "subtype"]),
            models.Index(fields=["is_active"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(code=""),
                name="chk_account_code_not_blank",
            ),
            models.CheckConstraint(
                condition=~Q(name=""),
                name="chk_account_name_not_blank",
            ),
        ]

    def __str__(self):
        return f"{self.code} – {self.name}"

    @property
    def is_debit_normal(self) -> bool:
        return self.account_type in self.DEBIT_NORMAL_TYPES

    @property
    def localized_name(self) -> str:
        return self.name_localized or self.name

    def clean(self):
        self.code = (self.code or "").strip()
        self.name = (self.name or "").strip()
        self.currency = (self.currency or "").strip().upper()

        if not self.code:
            raise ValidationError("Account code is required")
        if not self.name:
            raise ValidationError("Account name is required")

        if not self.subtype:
            self.subtype = self.DEFAULT_SUBTYPE.get(self.account_type, "")

        allowed = self.SUBTYPES_BY_TYPE.get(self.account_type, ())
        if self.subtype and self.subtype not in allowed:
            raise ValidationError(
                {"subtype": f"Subtype {self.subtype!r} is not valid for {self.account_type} accounts"}
            )

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

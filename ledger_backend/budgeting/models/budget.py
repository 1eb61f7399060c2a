# budgeting/models/budget.py

"""
======================================================
PATH: budgeting/models/budget.py
======================================================
BUDGET + BUDGET LINE

- A Budget covers one year and moves draft -> approved, or is
  superseded when a revision is created from it.
- A BudgetLine holds twelve monthly figures for one account.
  total_budget is always recomputed from the months on save.
- account_code / account_name are snapshots taken when the line is
  created, so renaming an account does not rewrite old budgets.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from accounting.models.account import Account

MONTH_FIELDS = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)


class BudgetStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    APPROVED = "approved", "Approved"
    SUPERSEDED = "superseded", "Superseded"


class Budget(models.Model):
    name = models.CharField(max_length=200)
    name_localized = models.CharField(max_length=200, blank=True, default="")
    description = models.TextField(blank=True, default="")

    budget_year = models.PositiveIntegerField(db_index=True)
    start_date = models.DateField()
    end_date = models.DateField()

    status = models.CharField(
        max_length=20,
        choices=BudgetStatus.choices,
        default=BudgetStatus.DRAFT,
        db_index=True,
    )
    currency = models.CharField(max_length=3, default="USD")

    parent_budget = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="revisions",
    )
    revision_number = models.PositiveIntegerField(default=0)

    created_by = models.PositiveBigIntegerField(null=True, blank=True)
    approved_by = models.PositiveBigIntegerField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-budget_year", "-revision_number", "-id"]
        indexes = [
            models.Index(fields=["budget_year", "status"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_date__gte=models.F("start_date")),
                name="chk_budget_period_order",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.budget_year}, {self.status})"

    def clean(self):
        self.name = (self.name or "").strip()
        self.currency = (self.currency or "").strip().upper()

        if not self.name:
            raise ValidationError("Budget name is required")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError("Budget end_date must be on or after start_date")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


class BudgetLine(models.Model):
    budget = models.ForeignKey(Budget, on_delete=models.CASCADE, related_name="lines")
    account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name="budget_lines")

    account_code = models.CharField(max_length=20)
    account_name = models.CharField(max_length=150)

    category = models.CharField(max_length=50)
    subcategory = models.CharField(max_length=50, blank=True, default="")
    cost_center_id = models.PositiveBigIntegerField(null=True, blank=True)
    department_id = models.PositiveBigIntegerField(null=True, blank=True)

    january = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    february = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    march = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    april = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    may = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    june = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    july = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    august = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    september = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    october = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    november = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    december = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))

    total_budget = models.DecimalField(max_digits=20, decimal_places=2, default=Decimal("0.00"))

    notes = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["budget_id", "account_code"]
        indexes = [
            models.Index(fields=["budget", "category"]),
            models.Index(fields=["account"]),
        ]

    def __str__(self):
        return f"{self.account_code} – {self.total_budget}"

    def monthly_amounts(self) -> dict[str, Decimal]:
        return {name: getattr(self, name) for name in MONTH_FIELDS}

    def amount_for_month(self, month: int) -> Decimal:
        return getattr(self, MONTH_FIELDS[month - 1])

    def ytd_budget(self, through_month: int) -> Decimal:
        return sum((self.amount_for_month(m) for m in range(1, through_month + 1)), Decimal("0.00"))

    def save(self, *args, **kwargs):
        self.total_budget = sum((Decimal(str(v)) for v in self.monthly_amounts().values()), Decimal("0.00"))
        self.full_clean()
        return super().save(*args, **kwargs)

# accounting/models/currency.py

"""
======================================================
PATH: accounting/models/currency.py
======================================================
CURRENCY + TAX RATE REGISTRIES

Reference data consumed by the ledger:
- Currency.exchange_rate = units of base currency per 1 unit of this currency
- TaxRate.rate = percentage (e.g. 9.00 means 9%)

Neither table is ever required: a missing currency converts at 1,
a missing tax code is a hard failure raised by the tax service.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models


class Currency(models.Model):
    code = models.CharField(max_length=3, unique=True)
    name = models.CharField(max_length=64, blank=True, default="")

    exchange_rate = models.DecimalField(
        max_digits=18,
        decimal_places=8,
        default=Decimal("1"),
        validators=[MinValueValidator(Decimal("0.00000001"))],
        help_text="Units of base currency per one unit of this currency",
    )

    is_active = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        verbose_name = "Currency"
        verbose_name_plural = "Currencies"

    def __str__(self):
        return f"{self.code} @ {self.exchange_rate}"

    def clean(self):
        self.code = (self.code or "").strip().upper()
        if len(self.code) != 3:
            raise ValidationError("Currency code must be a 3-letter ISO code")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


class TaxRate(models.Model):
    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=100)

    rate = models.DecimalField(
        max_digits=7,
        decimal_places=4,
        validators=[MinValueValidator(Decimal("0"))],
        help_text="Percentage rate",
    )

    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["code"]
        verbose_name = "Tax Rate"
        verbose_name_plural = "Tax Rates"

    def __str__(self):
        return f"{self.code} ({self.rate}%)"

    def clean(self):
        self.code = (self.code or "").strip().upper()
        self.name = (self.name or "").strip()
        if not self.code:
            raise ValidationError("Tax code is required")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

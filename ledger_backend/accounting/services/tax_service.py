# accounting/services/tax_service.py

"""
TAX SERVICE (COLLABORATOR)

Default implementation backed by the TaxRate table. Anything with the same
two methods can be passed to the advanced-entry builder instead.

Failures (unknown / inactive code) raise ExternalDependencyError, which
aborts the enclosing journal entry.
"""

from __future__ import annotations

from decimal import Decimal

from accounting.models.currency import TaxRate
from accounting.money import q2
from accounting.services.exceptions import ExternalDependencyError


class TaxService:
    def __init__(self, tax_rate_model=TaxRate):
        self.TaxRate = tax_rate_model

    def get_tax_rate(self, tax_code: str) -> Decimal:
        code = (tax_code or "").strip().upper()
        row = self.TaxRate.objects.filter(code=code, is_active=True).only("rate").first()
        if row is None:
            raise ExternalDependencyError(f"No active tax rate for code {code!r}")
        return Decimal(row.rate)

    def calculate_tax(self, taxable_amount, tax_code: str) -> Decimal:
        rate = self.get_tax_rate(tax_code)
        return q2(Decimal(taxable_amount) * rate / Decimal("100"))

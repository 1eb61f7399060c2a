# accounting/services/currency_service.py

"""
CURRENCY CONVERTER

Answers: "what is one unit of X worth in base currency?"

Rules:
- Base currency comes from settings.LEDGER_BASE_CURRENCY (default USD)
- Base currency always converts at exactly 1
- Unknown / inactive currencies convert at 1 with a WARNING log.
  This is a documented fallback, not a claim that the rate is correct.
- Converted money is rounded half-up to 2dp
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from django.conf import settings

from accounting.models.currency import Currency
from accounting.money import TWOPLACES

logger = logging.getLogger(__name__)

FALLBACK_RATE = Decimal("1")


def get_base_currency() -> str:
    return (getattr(settings, "LEDGER_BASE_CURRENCY", "USD") or "USD").strip().upper()


class CurrencyConverter:
    def __init__(self, base_currency: str | None = None, currency_model=Currency):
        self.base_currency = (base_currency or get_base_currency()).upper()
        self.Currency = currency_model

    def get_rate(self, code: str | None) -> Decimal:
        code = (code or self.base_currency).upper()
        if code == self.base_currency:
            return Decimal("1")

        row = (
            self.Currency.objects.filter(code=code, is_active=True)
            .only("exchange_rate")
            .first()
        )
        if row is None:
            logger.warning(
                "No exchange rate registered; converting at fallback rate",
                extra={"currency": code, "base_currency": self.base_currency},
            )
            return FALLBACK_RATE

        return Decimal(row.exchange_rate)

    def get_rates(self, codes: Iterable[str | None]) -> dict[str, Decimal]:
        """Resolve every distinct code once."""
        rates: dict[str, Decimal] = {}
        for code in codes:
            key = (code or self.base_currency).upper()
            if key not in rates:
                rates[key] = self.get_rate(key)
        return rates

    @staticmethod
    def convert(amount: Decimal, rate: Decimal) -> Decimal:
        return (Decimal(amount) * Decimal(rate)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


class FixedRateConverter(CurrencyConverter):
    """
    Converter pinned to known rates (e.g. the rates an original transaction
    was posted at). Codes not pinned fall back to the registry.
    """

    def __init__(self, rates: dict[str, Decimal], base_currency: str | None = None, currency_model=Currency):
        super().__init__(base_currency=base_currency, currency_model=currency_model)
        self.fixed = {code.upper(): Decimal(rate) for code, rate in rates.items()}

    def get_rate(self, code: str | None) -> Decimal:
        code = (code or self.base_currency).upper()
        if code in self.fixed:
            return self.fixed[code]
        return super().get_rate(code)

# accounting/money.py

"""
PATH: accounting/money.py

MONEY + DATE HELPERS (FRAMEWORK-AGNOSTIC)

Shared by services, reports and API views so every module rounds the same way:
- Money is Decimal, 2dp, ROUND_HALF_UP
- JSON output carries both major-unit floats and exact minor-unit ints
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.conf import settings
from django.utils import timezone

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


class MoneyError(ValueError):
    """Raised when a value cannot be interpreted as money."""


def to_money(value) -> Decimal:
    if value is None or value == "":
        return ZERO

    if isinstance(value, Decimal):
        amt = value
    else:
        try:
            amt = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise MoneyError(f"Invalid money value: {value!r}") from exc

    if not amt.is_finite():
        raise MoneyError(f"Invalid money value: {value!r}")

    return amt.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def q2(amount) -> Decimal:
    return Decimal(str(amount or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def to_major_number(amount: Decimal) -> float:
    return float(q2(amount))


def to_minor_int(amount: Decimal) -> int:
    return int((q2(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def balance_tolerance() -> Decimal:
    return Decimal(str(getattr(settings, "LEDGER_BALANCE_TOLERANCE", "0.01")))


def within_tolerance(a: Decimal, b: Decimal) -> bool:
    return abs(q2(a) - q2(b)) <= balance_tolerance()


def as_date(value) -> date:
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid date (expected YYYY-MM-DD): {value!r}") from exc


def day_before(d: date) -> date:
    return d - timedelta(days=1)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of the month."""
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)

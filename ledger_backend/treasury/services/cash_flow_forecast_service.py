# treasury/services/cash_flow_forecast_service.py

"""
======================================================
PATH: treasury/services/cash_flow_forecast_service.py
======================================================
CASH-FLOW FORECASTER (READ-ONLY)

generate_forecast(start, end) walks every calendar month overlapping
[start, end] and projects:

Inflows
- receivables_collection  open invoices due by month end x collection probability
                           (days overdue at month end: <=0 95%, 1-30 85%,
                           31-60 70%, 61-90 50%, >90 25%)
- sales_revenue           same month last year (operating revenue) x (1 + growth_rate)
- other_income            3-month trailing average of other revenue

Outflows
- payables_payment        80% of current payable balances
- operating_expenses      approved budget for the month, else 3-month trailing
                          average of expense accounts
- capital_expenditure     0 (no capital plan source yet)
- loan_payments           0 (no loan schedule source yet)
- tax_payments            current tax-liability balances, quarter-end months only

Opening balance = cash-like accounts the day before start.
Scenarios scale the aggregate totals only; months are not re-walked.

Open invoices come from a collaborator: any callable (as_of: date) ->
iterable of OpenInvoice. The default provider returns nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Iterable, Optional

from dateutil.relativedelta import relativedelta
from django.conf import settings

from accounting.models.account import Account
from accounting.money import ZERO, as_date, day_before, month_bounds, q2, to_major_number, to_money
from accounting.services.account_registry import (
    active_accounts,
    cash_accounts,
    other_revenue_accounts,
    payable_accounts,
    sales_revenue_accounts,
    tax_liability_accounts,
)
from accounting.services.balance_service import sum_balances
from accounting.services.snapshot import snapshot_read
from budgeting.models.budget import MONTH_FIELDS, Budget, BudgetLine, BudgetStatus
from treasury.services.exceptions import ForecastError

logger = logging.getLogger(__name__)

DEFAULT_GROWTH_RATE = Decimal("0.05")
DEFAULT_MAX_FORECAST_MONTHS = 120
DEFAULT_EXCESS_CASH_THRESHOLD = Decimal("100000")

PAYABLES_PAYMENT_RATIO = Decimal("0.80")
TRAILING_MONTHS = 3

# (max days overdue, probability); anything older falls through to OVERDUE_COLLECTION
COLLECTION_BUCKETS = (
    (0, Decimal("0.95")),
    (30, Decimal("0.85")),
    (60, Decimal("0.70")),
    (90, Decimal("0.50")),
)
OVERDUE_COLLECTION = Decimal("0.25")

SCENARIOS = {
    "optimistic": (Decimal("1.2"), Decimal("0.8")),
    "pessimistic": (Decimal("0.8"), Decimal("1.2")),
    "conservative": (Decimal("0.9"), Decimal("1.1")),
}

INFLOW_KEYS = ("receivables_collection", "sales_revenue", "other_income")
OUTFLOW_KEYS = (
    "payables_payment",
    "operating_expenses",
    "capital_expenditure",
    "loan_payments",
    "tax_payments",
)


@dataclass(frozen=True)
class OpenInvoice:
    total_amount: Decimal
    due_date: date
    reference: str = ""

    def __post_init__(self):
        object.__setattr__(self, "total_amount", to_money(self.total_amount))
        object.__setattr__(self, "due_date", as_date(self.due_date))


InvoiceProvider = Callable[[date], Iterable[OpenInvoice]]


def no_open_invoices(as_of: date) -> list[OpenInvoice]:
    return []


@dataclass(frozen=True)
class ForecastOptions:
    growth_rate: Decimal = DEFAULT_GROWTH_RATE
    forecast_type: str = "comprehensive"

    @staticmethod
    def from_raw(raw: Optional[dict]) -> "ForecastOptions":
        raw = raw or {}
        growth = raw.get("growth_rate")
        try:
            growth = DEFAULT_GROWTH_RATE if growth is None else Decimal(str(growth))
        except ArithmeticError as exc:
            raise ForecastError(f"Invalid growth_rate: {growth!r}") from exc
        return ForecastOptions(
            growth_rate=growth,
            forecast_type=raw.get("type") or raw.get("forecast_type") or "comprehensive",
        )


def collection_probability(days_overdue: int) -> Decimal:
    for limit, probability in COLLECTION_BUCKETS:
        if days_overdue <= limit:
            return probability
    return OVERDUE_COLLECTION


def forecast_months(start: date, end: date) -> list[date]:
    """First day of every calendar month overlapping [start, end]."""
    if start > end:
        raise ForecastError("Forecast end date must be on or after start date")

    limit = int(getattr(settings, "LEDGER_MAX_FORECAST_MONTHS", DEFAULT_MAX_FORECAST_MONTHS))
    months = []
    cursor = date(start.year, start.month, 1)
    while cursor <= end:
        if len(months) >= limit:
            raise ForecastError(f"Forecast horizon exceeds {limit} months")
        months.append(cursor)
        cursor += relativedelta(months=1)
    return months


# ======================================================
# COMPONENTS
# ======================================================


def _receivables_collection(month_end: date, provider: InvoiceProvider) -> Decimal:
    expected = ZERO
    for invoice in provider(month_end):
        if invoice.due_date > month_end:
            continue
        days_overdue = (month_end - invoice.due_date).days
        expected += invoice.total_amount * collection_probability(days_overdue)
    return q2(expected)


def _sales_revenue(month_start: date, growth_rate: Decimal) -> Decimal:
    prior_start, prior_end = month_bounds(month_start.year - 1, month_start.month)
    history = sum_balances(sales_revenue_accounts(), start=prior_start, end=prior_end)
    return q2(history * (1 + growth_rate))


def _trailing_average(accounts, month_start: date) -> Decimal:
    window_start = month_start - relativedelta(months=TRAILING_MONTHS)
    total = sum_balances(accounts, start=window_start, end=day_before(month_start))
    return q2(total / TRAILING_MONTHS)


def _approved_budget(year: int) -> Budget | None:
    return (
        Budget.objects.filter(budget_year=year, status=BudgetStatus.APPROVED)
        .order_by("-revision_number", "-id")
        .first()
    )


def _operating_expenses(month_start: date, budgets: dict[int, Budget | None]) -> tuple[Decimal, str]:
    year = month_start.year
    if year not in budgets:
        budgets[year] = _approved_budget(year)

    budget = budgets[year]
    if budget is not None:
        column = MONTH_FIELDS[month_start.month - 1]
        amounts = BudgetLine.objects.filter(
            budget=budget,
            is_active=True,
            account__account_type=Account.EXPENSE,
        ).values_list(column, flat=True)
        return q2(sum(amounts, ZERO)), "budget"

    return _trailing_average(active_accounts(Account.EXPENSE), month_start), "historical_average"


def _month_forecast(
    month_start: date,
    *,
    options: ForecastOptions,
    provider: InvoiceProvider,
    budgets: dict[int, Budget | None],
    payables_balance: Decimal,
    tax_balance: Decimal,
) -> dict:
    _, month_end = month_bounds(month_start.year, month_start.month)
    operating, operating_source = _operating_expenses(month_start, budgets)

    details = {
        "receivables_collection": _receivables_collection(month_end, provider),
        "sales_revenue": _sales_revenue(month_start, options.growth_rate),
        "other_income": _trailing_average(other_revenue_accounts(), month_start),
        "payables_payment": q2(payables_balance * PAYABLES_PAYMENT_RATIO),
        "operating_expenses": operating,
        "capital_expenditure": ZERO,
        "loan_payments": ZERO,
        "tax_payments": tax_balance if month_start.month % 3 == 0 else ZERO,
    }

    inflows = q2(sum((details[k] for k in INFLOW_KEYS), ZERO))
    outflows = q2(sum((details[k] for k in OUTFLOW_KEYS), ZERO))
    return {
        "inflows": inflows,
        "outflows": outflows,
        "net_cash_flow": q2(inflows - outflows),
        "details": details,
        "operating_expenses_source": operating_source,
    }


# ======================================================
# SCENARIOS + RECOMMENDATIONS
# ======================================================


def build_scenarios(opening: Decimal, total_inflows: Decimal, total_outflows: Decimal) -> dict:
    scenarios = {}
    for name, (inflow_multiplier, outflow_multiplier) in SCENARIOS.items():
        inflows = q2(total_inflows * inflow_multiplier)
        outflows = q2(total_outflows * outflow_multiplier)
        net = q2(inflows - outflows)
        scenarios[name] = {
            "inflow_multiplier": float(inflow_multiplier),
            "outflow_multiplier": float(outflow_multiplier),
            "total_inflows": to_major_number(inflows),
            "total_outflows": to_major_number(outflows),
            "net_cash_flow": to_major_number(net),
            "closing_balance_forecast": to_major_number(opening + net),
        }
    return scenarios


def build_recommendations(monthly: list[dict], minimum_balance: Decimal) -> list[dict]:
    recommendations = []

    for month in monthly:
        if month["closing_balance_amount"] < 0:
            recommendations.append(
                {
                    "type": "cash_shortage",
                    "priority": "high",
                    "month": month["month_name"],
                    "message": f"Projected cash shortage in {month['month_name']}",
                    "suggestion": "Consider arranging additional financing or accelerating receivables collection",
                }
            )

    threshold = Decimal(str(getattr(settings, "LEDGER_EXCESS_CASH_THRESHOLD", DEFAULT_EXCESS_CASH_THRESHOLD)))
    if minimum_balance > threshold:
        recommendations.append(
            {
                "type": "excess_cash",
                "priority": "medium",
                "message": "Significant excess cash projected",
                "suggestion": "Consider investment opportunities or debt reduction",
            }
        )

    return recommendations


# ======================================================
# FORECAST
# ======================================================


def generate_forecast(
    start: date,
    end: date,
    *,
    options: ForecastOptions | dict | None = None,
    invoice_provider: InvoiceProvider | None = None,
) -> dict:
    if not isinstance(options, ForecastOptions):
        options = ForecastOptions.from_raw(options)
    provider = invoice_provider or no_open_invoices

    months = forecast_months(start, end)

    with snapshot_read():
        opening = sum_balances(cash_accounts(), end=day_before(start))
        payables_balance = sum_balances(payable_accounts())
        tax_balance = sum_balances(tax_liability_accounts())

        budgets: dict[int, Budget | None] = {}
        projections = [
            (
                month_start,
                _month_forecast(
                    month_start,
                    options=options,
                    provider=provider,
                    budgets=budgets,
                    payables_balance=payables_balance,
                    tax_balance=tax_balance,
                ),
            )
            for month_start in months
        ]

    running = opening
    minimum = maximum = opening
    total_inflows = total_outflows = ZERO
    monthly = []

    for month_start, projection in projections:
        month_opening = running
        running = q2(running + projection["net_cash_flow"])
        minimum = min(minimum, running)
        maximum = max(maximum, running)
        total_inflows += projection["inflows"]
        total_outflows += projection["outflows"]

        monthly.append(
            {
                "month": month_start.strftime("%Y-%m"),
                "month_name": month_start.strftime("%B %Y"),
                "opening_balance": to_major_number(month_opening),
                "inflows": to_major_number(projection["inflows"]),
                "outflows": to_major_number(projection["outflows"]),
                "net_cash_flow": to_major_number(projection["net_cash_flow"]),
                "closing_balance": to_major_number(running),
                "closing_balance_amount": running,
                "operating_expenses_source": projection["operating_expenses_source"],
                "details": {k: to_major_number(v) for k, v in projection["details"].items()},
            }
        )

    recommendations = build_recommendations(monthly, minimum)
    for row in monthly:
        row.pop("closing_balance_amount")

    total_inflows = q2(total_inflows)
    total_outflows = q2(total_outflows)

    logger.info(
        "Cash flow forecast generated",
        extra={"start": start.isoformat(), "end": end.isoformat(), "months": len(months)},
    )

    return {
        "period_start": start.isoformat(),
        "period_end": end.isoformat(),
        "forecast_type": options.forecast_type,
        "growth_rate": float(options.growth_rate),
        "opening_balance": to_major_number(opening),
        "closing_balance_forecast": to_major_number(running),
        "monthly_breakdown": monthly,
        "summary": {
            "total_inflows": to_major_number(total_inflows),
            "total_outflows": to_major_number(total_outflows),
            "net_cash_flow": to_major_number(total_inflows - total_outflows),
            "minimum_balance": to_major_number(minimum),
            "maximum_balance": to_major_number(maximum),
        },
        "scenarios": build_scenarios(opening, total_inflows, total_outflows),
        "recommendations": recommendations,
    }

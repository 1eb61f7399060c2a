# treasury/tests/test_forecast.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import TestCase, override_settings
from django.utils import timezone

from accounting.tests.factories import ACTOR_ID, cr, dr, post, standard
from budgeting.services.budget_service import approve_budget, create_budget
from treasury.services.cash_flow_forecast_service import (
    ForecastOptions,
    OpenInvoice,
    collection_probability,
    forecast_months,
    generate_forecast,
)
from treasury.services.exceptions import ForecastError


class ForecastHelpersTests(TestCase):
    def test_collection_probability_buckets(self):
        self.assertEqual(collection_probability(-5), Decimal("0.95"))
        self.assertEqual(collection_probability(0), Decimal("0.95"))
        self.assertEqual(collection_probability(30), Decimal("0.85"))
        self.assertEqual(collection_probability(45), Decimal("0.70"))
        self.assertEqual(collection_probability(90), Decimal("0.50"))
        self.assertEqual(collection_probability(91), Decimal("0.25"))

    def test_months_cover_partial_months(self):
        months = forecast_months(date(2026, 1, 20), date(2026, 3, 5))
        self.assertEqual(months, [date(2026, 1, 1), date(2026, 2, 1), date(2026, 3, 1)])

    def test_reversed_period_is_rejected(self):
        with self.assertRaises(ForecastError):
            forecast_months(date(2026, 3, 1), date(2026, 1, 1))

    @override_settings(LEDGER_MAX_FORECAST_MONTHS=3)
    def test_horizon_is_bounded(self):
        with self.assertRaises(ForecastError):
            generate_forecast(date(2026, 1, 1), date(2026, 4, 30))

    def test_invalid_growth_rate(self):
        with self.assertRaises(ForecastError):
            ForecastOptions.from_raw({"growth_rate": "fast"})


class GenerateForecastTests(TestCase):
    def setUp(self):
        self.cash = standard("1110")
        self.capital = standard("3100")

    def test_no_activity_keeps_cash_flat(self):
        post(dr(self.cash, "500.00"), cr(self.capital, "500.00"), on=date(2025, 12, 15))

        result = generate_forecast(date(2026, 1, 1), date(2026, 6, 30))

        self.assertEqual(result["opening_balance"], 500.0)
        self.assertEqual(len(result["monthly_breakdown"]), 6)
        for month in result["monthly_breakdown"]:
            self.assertEqual(month["opening_balance"], 500.0)
            self.assertEqual(month["closing_balance"], 500.0)
            self.assertEqual(month["net_cash_flow"], 0.0)
        self.assertEqual(result["summary"]["minimum_balance"], 500.0)
        self.assertEqual(result["summary"]["maximum_balance"], 500.0)
        self.assertEqual(result["closing_balance_forecast"], 500.0)
        self.assertEqual(result["recommendations"], [])

    @override_settings(LEDGER_EXCESS_CASH_THRESHOLD="100")
    def test_excess_cash_recommendation(self):
        post(dr(self.cash, "500.00"), cr(self.capital, "500.00"), on=date(2025, 12, 15))

        result = generate_forecast(date(2026, 1, 1), date(2026, 1, 31))

        self.assertEqual([r["type"] for r in result["recommendations"]], ["excess_cash"])

    def test_components_for_one_month(self):
        sales = standard("4110")
        utilities = standard("6220")
        payables = standard("2110")

        post(dr(self.cash, "1000.00"), cr(sales, "1000.00"), on=date(2025, 3, 10))
        post(dr(utilities, "300.00"), cr(payables, "300.00"), on=date(2026, 1, 5))

        invoices = [
            OpenInvoice(total_amount="200.00", due_date=date(2026, 3, 31)),
            OpenInvoice(total_amount="100.00", due_date=date(2026, 1, 15)),
            OpenInvoice(total_amount="999.00", due_date=date(2026, 4, 15)),
        ]

        result = generate_forecast(
            date(2026, 3, 1),
            date(2026, 3, 31),
            options={"growth_rate": "0.10"},
            invoice_provider=lambda as_of: invoices,
        )

        month = result["monthly_breakdown"][0]
        self.assertEqual(month["month"], "2026-03")
        self.assertEqual(month["details"]["receivables_collection"], 240.0)
        self.assertEqual(month["details"]["sales_revenue"], 1100.0)
        self.assertEqual(month["details"]["other_income"], 0.0)
        self.assertEqual(month["details"]["payables_payment"], 240.0)
        self.assertEqual(month["details"]["operating_expenses"], 100.0)
        self.assertEqual(month["details"]["tax_payments"], 0.0)
        self.assertEqual(month["operating_expenses_source"], "historical_average")
        self.assertEqual(month["inflows"], 1340.0)
        self.assertEqual(month["outflows"], 340.0)
        self.assertEqual(result["opening_balance"], 1000.0)
        self.assertEqual(result["closing_balance_forecast"], 2000.0)
        self.assertEqual(result["scenarios"]["optimistic"]["total_inflows"], 1608.0)
        self.assertEqual(result["scenarios"]["pessimistic"]["total_outflows"], 408.0)

    def test_tax_paid_in_quarter_end_months_only(self):
        vat = standard("2330")
        post(dr(self.cash, "50.00"), cr(vat, "50.00"), on=date(2025, 12, 20))

        result = generate_forecast(date(2026, 2, 1), date(2026, 3, 31))

        feb, mar = result["monthly_breakdown"]
        self.assertEqual(feb["details"]["tax_payments"], 0.0)
        self.assertEqual(mar["details"]["tax_payments"], 50.0)

    def test_approved_budget_drives_operating_expenses(self):
        utilities = standard("6220")
        budget = create_budget(
            name="Operating budget 2026",
            budget_year=2026,
            start_date=date(2026, 1, 1),
            end_date=date(2026, 12, 31),
            actor_id=ACTOR_ID,
            lines=[{"account_id": utilities.id, "february": "250.00"}],
        )
        approve_budget(budget, actor_id=ACTOR_ID, at=timezone.now())

        result = generate_forecast(date(2026, 2, 1), date(2026, 2, 28))

        month = result["monthly_breakdown"][0]
        self.assertEqual(month["details"]["operating_expenses"], 250.0)
        self.assertEqual(month["operating_expenses_source"], "budget")

    def test_shortage_is_flagged(self):
        utilities = standard("6220")
        payables = standard("2110")
        post(dr(self.cash, "100.00"), cr(self.capital, "100.00"), on=date(2025, 12, 1))
        post(dr(utilities, "1000.00"), cr(payables, "1000.00"), on=date(2025, 12, 20))

        result = generate_forecast(date(2026, 1, 1), date(2026, 1, 31))

        month = result["monthly_breakdown"][0]
        self.assertEqual(month["closing_balance"], -1033.33)
        shortage = [r for r in result["recommendations"] if r["type"] == "cash_shortage"]
        self.assertEqual(len(shortage), 1)
        self.assertEqual(shortage[0]["month"], "January 2026")
        self.assertEqual(shortage[0]["priority"], "high")

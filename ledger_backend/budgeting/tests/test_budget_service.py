# budgeting/tests/test_budget_service.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from accounting.tests.factories import ACTOR_ID, cr, dr, post, standard
from budgeting.models.budget import MONTH_FIELDS, Budget, BudgetStatus
from budgeting.services.budget_service import (
    FAVORABLE,
    ON_TRACK,
    UNFAVORABLE,
    approve_budget,
    create_budget,
    create_budget_revision,
    generate_budget_forecast,
    generate_budget_from_history,
    get_variance_status,
    perform_variance_analysis,
)
from budgeting.services.exceptions import BudgetError


def _budget(*lines, year=2026):
    return create_budget(
        name=f"Operating budget {year}",
        budget_year=year,
        start_date=date(year, 1, 1),
        end_date=date(year, 12, 31),
        actor_id=ACTOR_ID,
        lines=lines,
    )


class VarianceStatusTests(TestCase):
    def test_within_threshold_is_on_track(self):
        self.assertEqual(get_variance_status(Decimal("10.00"), "expense"), ON_TRACK)
        self.assertEqual(get_variance_status(Decimal("-9.99"), "revenue"), ON_TRACK)

    def test_direction_depends_on_account_type(self):
        self.assertEqual(get_variance_status(Decimal("20"), "revenue"), FAVORABLE)
        self.assertEqual(get_variance_status(Decimal("-20"), "revenue"), UNFAVORABLE)
        self.assertEqual(get_variance_status(Decimal("-20"), "expense"), FAVORABLE)
        self.assertEqual(get_variance_status(Decimal("20"), "expense"), UNFAVORABLE)
        self.assertEqual(get_variance_status(Decimal("20"), "asset"), UNFAVORABLE)


class BudgetCreationTests(TestCase):
    def test_line_total_is_the_sum_of_months(self):
        rent = standard("6210")
        budget = _budget({"account_id": rent.id, "january": "100.00", "june": "250.50", "total_budget": "1"})

        line = budget.lines.get()
        self.assertEqual(line.total_budget, Decimal("350.50"))
        self.assertEqual(line.account_code, "6210")
        self.assertEqual(line.category, "expense")
        self.assertEqual(budget.status, BudgetStatus.DRAFT)

    def test_unknown_account_rolls_back_the_budget(self):
        with self.assertRaises(BudgetError):
            _budget({"account_id": 999_999, "january": "1.00"})

        self.assertEqual(Budget.objects.count(), 0)

    def test_non_numeric_month_amount_is_a_budget_error(self):
        with self.assertRaises(BudgetError):
            _budget({"account_id": standard("6210").id, "june": "lots"})

        self.assertEqual(Budget.objects.count(), 0)

    def test_approve_only_from_draft(self):
        budget = _budget()

        approved = approve_budget(budget, actor_id=5, at=timezone.now())
        self.assertEqual(approved.status, BudgetStatus.APPROVED)
        self.assertEqual(approved.approved_by, 5)

        with self.assertRaises(BudgetError):
            approve_budget(approved, actor_id=5, at=timezone.now())


class VarianceAnalysisTests(TestCase):
    def setUp(self):
        self.cash = standard("1110")
        self.sales = standard("4110")
        self.utilities = standard("6220")

        # January: sales 1,200 vs 1,000 budget; utilities 800 vs 1,000 budget
        post(dr(self.cash, "1200.00"), cr(self.sales, "1200.00"), on=date(2026, 1, 10))
        post(dr(self.utilities, "800.00"), cr(self.cash, "800.00"), on=date(2026, 1, 20))

        self.budget = _budget(
            {"account_id": self.sales.id, "january": "1000.00", "february": "1000.00"},
            {"account_id": self.utilities.id, "january": "1000.00", "february": "1000.00"},
        )

    def test_expense_under_and_revenue_over_budget_are_favorable(self):
        report = perform_variance_analysis(self.budget, as_of=date(2026, 1, 31))
        rows = {r["account_code"]: r for r in report["accounts"]}

        self.assertEqual(rows["4110"]["ytd_budget"], 1000.0)
        self.assertEqual(rows["4110"]["ytd_actual"], 1200.0)
        self.assertEqual(rows["4110"]["variance_percentage"], 20.0)
        self.assertEqual(rows["4110"]["status"], FAVORABLE)

        self.assertEqual(rows["6220"]["ytd_actual"], 800.0)
        self.assertEqual(rows["6220"]["variance_percentage"], -20.0)
        self.assertEqual(rows["6220"]["status"], FAVORABLE)

    def test_categories_aggregate_with_the_same_rule(self):
        report = perform_variance_analysis(self.budget, as_of=date(2026, 1, 31))
        categories = {c["category"]: c for c in report["categories"]}

        self.assertEqual(categories["revenue"]["status"], FAVORABLE)
        self.assertEqual(categories["expense"]["status"], FAVORABLE)
        self.assertEqual(categories["expense"]["account_count"], 1)
        self.assertEqual(report["summary"]["total_budget_ytd"], 2000.0)
        self.assertEqual(report["summary"]["total_actual_ytd"], 2000.0)

    def test_monthly_breakdown_marks_completed_months(self):
        report = perform_variance_analysis(self.budget, as_of=date(2026, 1, 31))
        sales = next(r for r in report["accounts"] if r["account_code"] == "4110")
        breakdown = sales["monthly_breakdown"]

        self.assertEqual(len(breakdown), 12)
        self.assertTrue(breakdown[0]["is_completed"])
        self.assertEqual(breakdown[0]["actual"], 1200.0)
        self.assertFalse(breakdown[1]["is_completed"])
        self.assertEqual(breakdown[1]["actual"], 0.0)
        self.assertEqual(breakdown[1]["variance"], -1000.0)

    def test_zero_budget_gives_zero_percentage(self):
        budget = _budget({"account_id": self.sales.id})
        report = perform_variance_analysis(budget, as_of=date(2026, 1, 31))

        row = report["accounts"][0]
        self.assertEqual(row["variance_percentage"], 0.0)
        self.assertEqual(row["status"], ON_TRACK)

    def test_analysis_after_year_end_stays_within_the_budget_year(self):
        post(dr(self.cash, "500.00"), cr(self.sales, "500.00"), on=date(2027, 1, 10))

        report = perform_variance_analysis(self.budget, as_of=date(2027, 1, 15))
        rows = {r["account_code"]: r for r in report["accounts"]}

        self.assertEqual(rows["4110"]["ytd_budget"], 2000.0)
        self.assertEqual(rows["4110"]["ytd_actual"], 1200.0)
        self.assertEqual(report["period_covered"], "January - December 2026")
        self.assertEqual(report["analysis_date"], "2027-01-15")


class BudgetHistoryTests(TestCase):
    def test_budget_from_history_applies_growth(self):
        cash = standard("1110")
        sales = standard("4110")
        post(dr(cash, "1000.00"), cr(sales, "1000.00"), on=date(2025, 3, 12))

        budget = generate_budget_from_history(2025, 2026, 10, actor_id=ACTOR_ID)

        self.assertEqual(budget.budget_year, 2026)
        self.assertEqual(budget.start_date, date(2026, 1, 1))
        line = budget.lines.get(account=sales)
        self.assertEqual(line.march, Decimal("1100.00"))
        self.assertEqual(line.january, Decimal("0.00"))
        self.assertEqual(line.total_budget, Decimal("1100.00"))
        self.assertEqual(budget.lines.count(), 2)


class BudgetRevisionTests(TestCase):
    def setUp(self):
        self.sales = standard("4110")
        self.rent = standard("6210")
        self.original = _budget(
            {"account_id": self.sales.id, "january": "1000.00", "february": "1000.00"},
            {"account_id": self.rent.id, "january": "300.00"},
        )

    def test_revision_applies_only_month_overrides(self):
        revised = create_budget_revision(
            self.original,
            {str(self.sales.id): {"january": "1500.00", "total_budget": "1", "category": "bogus"}},
            "Holiday season",
            actor_id=ACTOR_ID,
        )

        self.assertEqual(revised.parent_budget_id, self.original.pk)
        self.assertEqual(revised.revision_number, 1)
        self.assertIn("Revision Reason: Holiday season", revised.description)

        sales_line = revised.lines.get(account=self.sales)
        self.assertEqual(sales_line.january, Decimal("1500.00"))
        self.assertEqual(sales_line.total_budget, Decimal("2500.00"))
        self.assertEqual(sales_line.category, "revenue")

        rent_line = revised.lines.get(account=self.rent)
        self.assertEqual(rent_line.total_budget, Decimal("300.00"))

        self.original.refresh_from_db()
        self.assertEqual(self.original.status, BudgetStatus.SUPERSEDED)

    def test_superseded_budget_cannot_be_revised_again(self):
        create_budget_revision(self.original, {}, "First", actor_id=ACTOR_ID)

        with self.assertRaises(BudgetError):
            create_budget_revision(self.original, {}, "Second", actor_id=ACTOR_ID)

    def test_non_numeric_override_is_a_budget_error(self):
        with self.assertRaises(BudgetError):
            create_budget_revision(self.original, {self.rent.id: {"march": "abc"}}, "Typo", actor_id=ACTOR_ID)

        with self.assertRaises(BudgetError):
            create_budget_revision(self.original, {self.rent.id: ["march"]}, "Typo", actor_id=ACTOR_ID)

        self.original.refresh_from_db()
        self.assertEqual(self.original.status, BudgetStatus.DRAFT)
        self.assertEqual(Budget.objects.count(), 1)


class BudgetForecastTests(TestCase):
    def test_remaining_months_follow_the_ytd_average(self):
        bank = standard("1120")
        utilities = standard("6220")
        for month in (1, 2, 3):
            post(dr(utilities, "100.00"), cr(bank, "100.00"), on=date(2026, month, 5))

        budget = _budget({"account_id": utilities.id, **{m: "90.00" for m in MONTH_FIELDS}})

        forecast = generate_budget_forecast(budget, forecast_date=date(2026, 3, 31))
        row = forecast["accounts"][0]

        self.assertEqual(forecast["remaining_months"], 9)
        self.assertEqual(row["ytd_actual"], 300.0)
        self.assertEqual(row["average_monthly_actual"], 100.0)
        self.assertEqual(row["forecast_remaining"], 900.0)
        self.assertEqual(row["forecast_annual"], 1200.0)
        self.assertEqual(row["annual_budget"], 1080.0)
        self.assertEqual(row["variance_forecast"], 120.0)
        self.assertEqual(forecast["summary"]["total_forecast_annual"], 1200.0)

    def test_forecast_date_before_the_budget_year_is_rejected(self):
        budget = _budget()

        with self.assertRaises(BudgetError):
            generate_budget_forecast(budget, forecast_date=date(2025, 12, 31))

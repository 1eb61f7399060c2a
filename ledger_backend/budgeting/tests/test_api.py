# budgeting/tests/test_api.py

from __future__ import annotations

from datetime import date

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from accounting.tests.factories import cr, dr, post, standard
from budgeting.models.budget import Budget, BudgetStatus

User = get_user_model()


class BudgetApiTests(TestCase):
    def setUp(self):
        self.cash = standard("1110")
        self.sales = standard("4110")

        self.admin = User.objects.create_superuser(
            username="planner",
            email="planner@example.com",
            password="pass",
        )
        self.client = APIClient()
        self.client.force_authenticate(user=self.admin)

    def _create(self):
        return self.client.post(
            "/api/budgeting/budgets/",
            {
                "name": "Showroom 2026",
                "budget_year": 2026,
                "start_date": "2026-01-01",
                "end_date": "2026-12-31",
                "lines": [{"account_id": self.sales.id, "january": "1000.00", "february": "500.00"}],
            },
            format="json",
        )

    def test_create_approve_and_analyse(self):
        created = self._create()
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.data["lines"][0]["total_budget"], "1500.00")
        budget_id = created.data["id"]

        approved = self.client.post(f"/api/budgeting/budgets/{budget_id}/approve/")
        self.assertEqual(approved.status_code, 200)
        self.assertEqual(approved.data["status"], BudgetStatus.APPROVED)

        post(dr(self.cash, "1300.00"), cr(self.sales, "1300.00"), on=date(2026, 1, 5))
        variance = self.client.get(
            f"/api/budgeting/budgets/{budget_id}/variance/",
            {"as_of_date": "2026-01-31"},
        )
        self.assertEqual(variance.status_code, 200)
        self.assertEqual(variance.data["accounts"][0]["status"], "favorable")

        bad_date = self.client.get(f"/api/budgeting/budgets/{budget_id}/variance/", {"as_of_date": "soon"})
        self.assertEqual(bad_date.status_code, 400)

    def test_revise_supersedes_original(self):
        budget_id = self._create().data["id"]

        res = self.client.post(
            f"/api/budgeting/budgets/{budget_id}/revise/",
            {"reason": "Price increase", "revisions": {str(self.sales.id): {"january": "2000.00"}}},
            format="json",
        )

        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["revision_number"], 1)
        self.assertEqual(res.data["lines"][0]["total_budget"], "2500.00")
        self.assertEqual(Budget.objects.get(pk=budget_id).status, BudgetStatus.SUPERSEDED)

    def test_revise_with_non_numeric_amount_is_rejected(self):
        budget_id = self._create().data["id"]

        res = self.client.post(
            f"/api/budgeting/budgets/{budget_id}/revise/",
            {"reason": "Typo", "revisions": {str(self.sales.id): {"march": "abc"}}},
            format="json",
        )

        self.assertEqual(res.status_code, 400)
        self.assertIn("march", res.data["detail"])
        self.assertEqual(Budget.objects.get(pk=budget_id).status, BudgetStatus.DRAFT)
        self.assertEqual(Budget.objects.count(), 1)

    def test_user_without_budget_permission_is_forbidden(self):
        viewer = User.objects.create_user(username="viewer", password="pass")
        client = APIClient()
        client.force_authenticate(user=viewer)

        self.assertEqual(client.get("/api/budgeting/budgets/").status_code, 403)

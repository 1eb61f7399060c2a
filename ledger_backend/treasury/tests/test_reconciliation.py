# treasury/tests/test_reconciliation.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.transaction import Transaction
from accounting.services.balance_service import get_account_balance
from accounting.tests.factories import ACTOR_ID, cr, dr, post, standard
from treasury.services.exceptions import ReconciliationError
from treasury.services.reconciliation_service import (
    BankStatement,
    create_reconciliation_adjustments,
    perform_bank_reconciliation,
)

STATEMENT_DATE = date(2026, 1, 31)


class BankReconciliationTests(TestCase):
    def setUp(self):
        self.bank = standard("1120")
        self.capital = standard("3100")
        self.utilities = standard("6220")

        post(dr(self.bank, "500.00"), cr(self.capital, "500.00"), on=date(2026, 1, 5), description="Deposit")
        post(dr(self.utilities, "200.00"), cr(self.bank, "200.00"), on=date(2026, 1, 10), description="Power bill")

    def test_mirrored_statement_reconciles(self):
        result = perform_bank_reconciliation(
            self.bank,
            STATEMENT_DATE,
            {
                "ending_balance": "300.00",
                "transactions": [
                    {"date": "2026-01-06", "amount": "500.00", "description": "DEP"},
                    {"date": "2026-01-11", "amount": "-200.00", "description": "DD POWER"},
                ],
            },
        )

        self.assertTrue(result["is_reconciled"])
        self.assertEqual(result["matched_count"], 2)
        self.assertEqual(result["book_balance"], 300.0)
        self.assertEqual(result["reconciled_balance"], 300.0)
        self.assertEqual(result["outstanding_deposits"], [])
        self.assertEqual(result["outstanding_checks"], [])
        self.assertEqual(result["adjustments_needed"], [])
        self.assertEqual(result["variance"], 0.0)

    def test_unmatched_book_rows_become_outstanding(self):
        result = perform_bank_reconciliation(
            self.bank,
            STATEMENT_DATE,
            {
                "ending_balance": "500.00",
                "transactions": [{"date": "2026-01-05", "amount": "500.00"}],
            },
        )

        self.assertEqual(result["matched_count"], 1)
        self.assertEqual(result["outstanding_deposits"], [])
        self.assertEqual(len(result["outstanding_checks"]), 1)
        self.assertEqual(result["outstanding_checks"][0]["amount"], 200.0)
        self.assertEqual(result["outstanding_checks"][0]["description"], "Power bill")
        self.assertEqual(result["reconciled_balance"], 100.0)
        self.assertFalse(result["is_reconciled"])
        self.assertEqual(result["variance"], 400.0)
        self.assertEqual(len(result["book_errors"]), 1)
        self.assertEqual(result["bank_errors"], [])
        self.assertEqual(result["adjustments_needed"][0]["type"], "variance_adjustment")
        self.assertEqual(result["adjustments_needed"][0]["amount"], 400.0)

    def test_date_window_is_two_days(self):
        result = perform_bank_reconciliation(
            self.bank,
            STATEMENT_DATE,
            {
                "ending_balance": "300.00",
                "transactions": [
                    {"date": "2026-01-08", "amount": "500.00"},
                    {"date": "2026-01-12", "amount": "-200.00"},
                ],
            },
        )

        self.assertEqual(result["matched_count"], 1)
        self.assertEqual(len(result["outstanding_deposits"]), 1)
        self.assertEqual(result["outstanding_deposits"][0]["amount"], 500.0)
        self.assertEqual(result["bank_errors"][0]["date"], "2026-01-08")

    def test_statement_requires_ending_balance(self):
        with self.assertRaises(ReconciliationError):
            BankStatement.from_raw({"transactions": []})

    def test_variance_adjustment_posts_against_misc_expense(self):
        result = perform_bank_reconciliation(
            self.bank,
            STATEMENT_DATE,
            {"ending_balance": "500.00", "transactions": [{"date": "2026-01-05", "amount": "500.00"}]},
        )

        created = create_reconciliation_adjustments(result, actor_id=ACTOR_ID, as_of=timezone.now())

        self.assertEqual(len(created), 1)
        txn = created[0]
        self.assertEqual(txn.transaction_type, Transaction.BANK_ADJUSTMENT)
        self.assertTrue(txn.reference_number.startswith("BANK-ADJ-"))
        self.assertEqual(txn.transaction_date, STATEMENT_DATE)

        misc = Account.objects.get(code="6999")
        bank_entry = txn.entries.get(account=self.bank)
        misc_entry = txn.entries.get(account=misc)
        self.assertEqual(bank_entry.debit_amount, Decimal("400.00"))
        self.assertEqual(misc_entry.credit_amount, Decimal("400.00"))
        self.assertEqual(get_account_balance(self.bank), Decimal("700.00"))

    def test_negative_adjustment_credits_the_bank(self):
        reconciliation = {"account_id": self.bank.id}

        created = create_reconciliation_adjustments(
            reconciliation,
            [{"amount": "-15.00", "date": "2026-01-31", "description": "Bank fee"}],
            actor_id=ACTOR_ID,
            as_of=timezone.now(),
        )

        self.assertEqual(created[0].entries.get(account=self.bank).credit_amount, Decimal("15.00"))
        self.assertEqual(get_account_balance(self.bank), Decimal("285.00"))

    def test_zero_adjustment_rolls_back_the_batch(self):
        reconciliation = {"account_id": self.bank.id}
        before = Transaction.objects.count()

        with self.assertRaises(ReconciliationError):
            create_reconciliation_adjustments(
                reconciliation,
                [
                    {"amount": "10.00", "date": "2026-01-31"},
                    {"amount": "0", "date": "2026-01-31"},
                ],
                actor_id=ACTOR_ID,
                as_of=timezone.now(),
            )

        self.assertEqual(Transaction.objects.count(), before)

    def test_repeat_calls_in_the_same_second_get_distinct_references(self):
        reconciliation = {"account_id": self.bank.id}
        now = timezone.now()
        fee = [{"amount": "-5.00", "date": "2026-01-31", "description": "Bank fee"}]

        first = create_reconciliation_adjustments(reconciliation, fee, actor_id=ACTOR_ID, as_of=now)
        second = create_reconciliation_adjustments(reconciliation, fee, actor_id=ACTOR_ID, as_of=now)

        self.assertEqual(first[0].reference_number, "BANK-ADJ-1120-20260131-01")
        self.assertEqual(second[0].reference_number, "BANK-ADJ-1120-20260131-02")
        self.assertEqual(get_account_balance(self.bank), Decimal("290.00"))

    def test_non_asset_account_cannot_be_reconciled(self):
        with self.assertRaises(ReconciliationError):
            perform_bank_reconciliation(
                self.capital,
                STATEMENT_DATE,
                {"ending_balance": "500.00", "transactions": [{"date": "2026-01-05", "amount": "500.00"}]},
            )

        with self.assertRaises(ReconciliationError):
            create_reconciliation_adjustments(
                {"account_id": self.capital.id},
                [{"amount": "10.00", "date": "2026-01-31"}],
                actor_id=ACTOR_ID,
                as_of=timezone.now(),
            )
        self.assertEqual(Transaction.objects.filter(transaction_type=Transaction.BANK_ADJUSTMENT).count(), 0)

# accounting/tests/test_ledger.py

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings
from django.utils import timezone

from accounting.journal_request import EntryLine, JournalEntryRequest
from accounting.models.account import Account
from accounting.models.currency import Currency
from accounting.models.transaction import ApprovalStatus, Transaction, TransactionEntry
from accounting.services.accounting_service import AccountingService
from accounting.services.account_registry import get_or_create_standard_account
from accounting.services.approval import approve_transaction
from accounting.services.exceptions import (
    AccountResolutionError,
    ApprovalError,
    ConsistencyError,
    TransactionValidationError,
)
from accounting.services.trial_balance_service import TrialBalanceService
from accounting.tests.factories import ACTOR_ID, cr, dr, post, request, standard


class LedgerPostingTests(TestCase):
    """
    GUARANTEES:
    - A balanced request persists header + entries atomically
    - An unbalanced request persists nothing and names both totals
    - Cached account balances follow the entries
    """

    def setUp(self):
        self.cash = standard("1110")
        self.capital = standard("3100")
        self.revenue = standard("4110")

    def test_balanced_transaction_posts_and_appears_in_trial_balance(self):
        txn = post(dr(self.cash, "100.00"), cr(self.capital, "100.00"))

        self.assertEqual(txn.total_amount, Decimal("100.00"))
        self.assertEqual(txn.entries.count(), 2)
        self.assertEqual(txn.approval_status, ApprovalStatus.APPROVED)
        self.assertEqual(txn.approved_by, ACTOR_ID)

        tb = TrialBalanceService().generate()
        rows = {row["account_code"]: row for row in tb["accounts"]}

        self.assertEqual(rows["1110"]["debit"], 100.0)
        self.assertEqual(rows["1110"]["credit"], 0.0)
        self.assertEqual(rows["3100"]["credit"], 100.0)
        self.assertEqual(rows["3100"]["debit"], 0.0)
        self.assertEqual(tb["totals"]["debit_minor"], 10000)
        self.assertEqual(tb["totals"]["credit_minor"], 10000)
        self.assertTrue(tb["is_balanced"])

    def test_unbalanced_transaction_names_both_totals_and_persists_nothing(self):
        with self.assertRaises(TransactionValidationError) as ctx:
            post(dr(self.cash, "100.00"), cr(self.capital, "90.00"))

        self.assertIn("debits=100.00", str(ctx.exception))
        self.assertIn("credits=90.00", str(ctx.exception))
        self.assertEqual(ctx.exception.total_debits, Decimal("100.00"))
        self.assertEqual(ctx.exception.total_credits, Decimal("90.00"))

        self.assertEqual(Transaction.objects.count(), 0)
        self.assertEqual(TransactionEntry.objects.count(), 0)

        self.cash.refresh_from_db()
        self.assertEqual(self.cash.current_balance, Decimal("0.00"))

    def test_balance_within_tolerance_is_accepted(self):
        txn = post(dr(self.cash, "100.01"), cr(self.capital, "100.00"))
        self.assertEqual(txn.entries.count(), 2)

    def test_requires_at_least_two_entries(self):
        with self.assertRaises(TransactionValidationError):
            post(dr(self.cash, "100.00"))
        self.assertEqual(Transaction.objects.count(), 0)

    def test_inactive_account_is_rejected(self):
        self.capital.is_active = False
        self.capital.save()

        with self.assertRaises(TransactionValidationError) as ctx:
            post(dr(self.cash, "10.00"), cr(self.capital, "10.00"))

        self.assertIn("inactive", str(ctx.exception))
        self.assertEqual(Transaction.objects.count(), 0)

    def test_missing_account_is_rejected(self):
        with self.assertRaises(TransactionValidationError):
            post(
                dr(self.cash, "10.00"),
                EntryLine(account_id=999_999, credit=Decimal("10.00")),
            )

    def test_cached_balances_are_recomputed(self):
        post(dr(self.cash, "250.00"), cr(self.capital, "250.00"))
        post(dr(self.cash, "40.00"), cr(self.revenue, "40.00"))

        self.cash.refresh_from_db()
        self.capital.refresh_from_db()
        self.revenue.refresh_from_db()

        self.assertEqual(self.cash.current_balance, Decimal("290.00"))
        self.assertEqual(self.capital.current_balance, Decimal("250.00"))
        self.assertEqual(self.revenue.current_balance, Decimal("40.00"))

    def test_generated_reference_numbers_are_sequential_per_day(self):
        first = post(dr(self.cash, "1.00"), cr(self.capital, "1.00"), on=date(2026, 1, 15))
        second = post(dr(self.cash, "1.00"), cr(self.capital, "1.00"), on=date(2026, 1, 15))

        self.assertEqual(first.reference_number, "TXN-20260115-0001")
        self.assertEqual(second.reference_number, "TXN-20260115-0002")

    def test_duplicate_reference_is_rejected(self):
        post(dr(self.cash, "5.00"), cr(self.capital, "5.00"), reference_number="JE-1")

        with self.assertRaises(TransactionValidationError):
            post(dr(self.cash, "5.00"), cr(self.capital, "5.00"), reference_number="JE-1")

        self.assertEqual(Transaction.objects.count(), 1)

    def test_overlong_header_field_is_a_validation_error(self):
        with self.assertRaises(TransactionValidationError) as ctx:
            post(dr(self.cash, "100.00"), cr(self.capital, "100.00"), source_type="x" * 60)

        self.assertIn("source_type", str(ctx.exception))
        self.assertEqual(Transaction.objects.count(), 0)

    def test_overlong_line_description_persists_nothing(self):
        with self.assertRaises(TransactionValidationError) as ctx:
            post(dr(self.cash, "100.00", description="x" * 300), cr(self.capital, "100.00"))

        self.assertIn("description", str(ctx.exception))
        self.assertEqual(Transaction.objects.count(), 0)
        self.assertEqual(TransactionEntry.objects.count(), 0)

    def test_post_write_mismatch_aborts_the_unit(self):
        real_bulk_create = TransactionEntry.objects.bulk_create

        def drop_last_entry(rows, *args, **kwargs):
            return real_bulk_create(rows[:-1], *args, **kwargs)

        with mock.patch.object(TransactionEntry.objects, "bulk_create", side_effect=drop_last_entry):
            with self.assertLogs("accounting.services.ledger_service", level="CRITICAL") as logs:
                with self.assertRaises(ConsistencyError):
                    post(dr(self.cash, "100.00"), cr(self.capital, "100.00"))

        self.assertEqual([r.levelname for r in logs.records], ["CRITICAL"])
        self.assertEqual(Transaction.objects.count(), 0)
        self.assertEqual(TransactionEntry.objects.count(), 0)

        self.cash.refresh_from_db()
        self.assertEqual(self.cash.current_balance, Decimal("0.00"))

    def test_transactions_and_entries_are_immutable(self):
        txn = post(dr(self.cash, "5.00"), cr(self.capital, "5.00"))

        txn.description = "Edited"
        with self.assertRaises(ValidationError):
            txn.save()
        with self.assertRaises(ValidationError):
            txn.delete()

        entry = txn.entries.first()
        with self.assertRaises(ValidationError):
            entry.save()
        with self.assertRaises(ValidationError):
            entry.delete()


class EntryLineTests(TestCase):
    def test_exactly_one_side_is_enforced_at_construction(self):
        with self.assertRaises(TransactionValidationError):
            EntryLine(account_id=1, debit=Decimal("1.00"), credit=Decimal("1.00"))
        with self.assertRaises(TransactionValidationError):
            EntryLine(account_id=1)
        with self.assertRaises(TransactionValidationError):
            EntryLine(account_id=1, debit=Decimal("-5.00"))

    def test_amounts_are_normalized_to_two_places(self):
        line = EntryLine(account_id=1, credit="10.005", currency="eur")
        self.assertEqual(line.credit, Decimal("10.01"))
        self.assertEqual(line.currency, "EUR")
        self.assertEqual(line.side, "credit")

    def test_request_from_raw_payload(self):
        req = JournalEntryRequest.from_raw(
            {
                "description": "Gold purchase",
                "transaction_date": "2026-02-01",
                "entries": [
                    {"account_id": 1, "debit_amount": "50.00", "cost_center_id": 7},
                    {"account_id": 2, "credit_amount": "50.00"},
                ],
                "tags": ["gold"],
            }
        )
        self.assertEqual(req.transaction_date, date(2026, 2, 1))
        self.assertEqual(req.lines[0].metadata, {"cost_center_id": 7})
        self.assertEqual(req.tags, ("gold",))

    def test_request_requires_description(self):
        with self.assertRaises(TransactionValidationError):
            JournalEntryRequest(description="  ", transaction_date=date(2026, 1, 1), lines=())


class MultiCurrencyTests(TestCase):
    def setUp(self):
        self.cash = standard("1120")
        self.capital = standard("3100")

    def test_base_currency_entry_has_rate_one_and_unchanged_amount(self):
        txn = post(dr(self.cash, "75.50", currency="USD"), cr(self.capital, "75.50"))

        for entry in txn.entries.all():
            self.assertEqual(entry.currency, "USD")
            self.assertEqual(entry.exchange_rate, Decimal("1"))
            self.assertEqual(entry.amount, Decimal("75.50"))
            self.assertEqual(
                entry.original_debit_amount + entry.original_credit_amount,
                Decimal("75.50"),
            )

    def test_foreign_entry_is_converted_and_keeps_original_amount(self):
        Currency.objects.create(code="EUR", name="Euro", exchange_rate=Decimal("1.10"))

        txn = post(dr(self.cash, "100.00", currency="EUR"), cr(self.capital, "110.00"))

        eur = txn.entries.get(currency="EUR")
        self.assertEqual(eur.debit_amount, Decimal("110.00"))
        self.assertEqual(eur.original_debit_amount, Decimal("100.00"))
        self.assertEqual(eur.exchange_rate, Decimal("1.10"))
        self.assertEqual(txn.currency, "USD")
        self.assertEqual(txn.exchange_rate, Decimal("1"))
        self.assertEqual(txn.total_amount, Decimal("110.00"))

    def test_unknown_currency_falls_back_to_rate_one_with_warning(self):
        with self.assertLogs("accounting.services.currency_service", level="WARNING"):
            txn = post(dr(self.cash, "50.00", currency="GBP"), cr(self.capital, "50.00"))

        gbp = txn.entries.get(currency="GBP")
        self.assertEqual(gbp.exchange_rate, Decimal("1"))
        self.assertEqual(gbp.debit_amount, Decimal("50.00"))

    def test_conversion_is_checked_for_balance_in_base_currency(self):
        Currency.objects.create(code="EUR", name="Euro", exchange_rate=Decimal("1.10"))

        with self.assertRaises(TransactionValidationError) as ctx:
            post(dr(self.cash, "100.00", currency="EUR"), cr(self.capital, "100.00"))

        self.assertEqual(ctx.exception.total_debits, Decimal("110.00"))
        self.assertEqual(Transaction.objects.count(), 0)


class ApprovalTests(TestCase):
    def setUp(self):
        self.cash = standard("1110")
        self.capital = standard("3100")

    def test_pending_transaction_can_be_approved_once(self):
        txn = post(dr(self.cash, "10.00"), cr(self.capital, "10.00"), requires_approval=True)
        self.assertEqual(txn.approval_status, ApprovalStatus.PENDING)
        self.assertIsNone(txn.approved_by)
        self.assertIsNone(txn.approved_at)

        approved = approve_transaction(txn, actor_id=7, at=timezone.now())
        self.assertEqual(approved.approval_status, ApprovalStatus.APPROVED)
        self.assertEqual(approved.approved_by, 7)
        self.assertIsNotNone(approved.approved_at)

        with self.assertRaises(ApprovalError):
            approve_transaction(approved, actor_id=7, at=timezone.now())

    def test_directly_approved_transaction_cannot_be_approved_again(self):
        txn = post(dr(self.cash, "10.00"), cr(self.capital, "10.00"))
        with self.assertRaises(ApprovalError):
            approve_transaction(txn, actor_id=2, at=timezone.now())


class AuditHookTests(TestCase):
    def setUp(self):
        self.cash = standard("1110")
        self.capital = standard("3100")

    def test_audit_record_is_emitted_on_commit(self):
        with self.assertLogs("accounting.audit", level="INFO") as logs:
            with self.captureOnCommitCallbacks(execute=True):
                txn = post(dr(self.cash, "10.00"), cr(self.capital, "10.00"))

        self.assertTrue(any(f"#{txn.pk}" in line for line in logs.output))

    @override_settings(LEDGER_AUDIT_SINK="accounting.tests.factories.failing_sink")
    def test_failing_audit_sink_does_not_undo_the_posting(self):
        with self.assertLogs("accounting.services.audit", level="ERROR"):
            with self.captureOnCommitCallbacks(execute=True):
                txn = post(dr(self.cash, "10.00"), cr(self.capital, "10.00"))

        self.assertTrue(Transaction.objects.filter(pk=txn.pk).exists())


class AccountingServiceFacadeTests(TestCase):
    def test_facade_posts_and_reads_balances(self):
        cash = standard("1110")
        capital = standard("3100")
        service = AccountingService()

        service.create_transaction(
            request(dr(cash, "30.00"), cr(capital, "30.00"), on=date(2026, 3, 1)),
            actor_id=ACTOR_ID,
            as_of=timezone.now(),
        )

        self.assertEqual(service.get_account_balance(cash), Decimal("30.00"))
        self.assertEqual(service.get_account_balance(cash, as_of=date(2026, 2, 28)), Decimal("0.00"))
        self.assertTrue(service.get_trial_balance()["is_balanced"])


class StandardAccountTests(TestCase):
    def test_standard_account_is_created_once(self):
        first = get_or_create_standard_account("6999")
        again = get_or_create_standard_account("6999")

        self.assertEqual(first.pk, again.pk)
        self.assertEqual(first.account_type, Account.EXPENSE)
        self.assertEqual(Account.objects.filter(code="6999").count(), 1)

    def test_code_outside_the_chart_is_rejected(self):
        with self.assertRaises(AccountResolutionError):
            get_or_create_standard_account("9999")

        self.assertFalse(Account.objects.filter(code="9999").exists())

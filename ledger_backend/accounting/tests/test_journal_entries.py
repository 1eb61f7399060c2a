# accounting/tests/test_journal_entries.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from accounting.journal_request import TaxLine
from accounting.models.currency import Currency, TaxRate
from accounting.models.transaction import ApprovalStatus, Transaction, TransactionEntry
from accounting.services.account_registry import INCOME_SUMMARY_CODE
from accounting.services.balance_service import get_account_balance
from accounting.services.exceptions import ExternalDependencyError, TransactionValidationError
from accounting.services.journal_entry_service import (
    MONTHLY,
    build_schedule,
    create_adjusting_entry,
    create_advanced_entry,
    create_closing_entries,
    create_recurring_entries,
    create_reversing_entry,
)
from accounting.tests.factories import ACTOR_ID, cr, dr, post, request, standard


def _orientation(txn: Transaction) -> dict:
    return {e.account_id: e.is_debit for e in txn.entries.all()}


class ReversingEntryTests(TestCase):
    def setUp(self):
        self.cash = standard("1110")
        self.revenue = standard("4110")
        self.capital = standard("3100")

    def test_reversal_swaps_sides_and_prefixes_reference(self):
        original = post(
            dr(self.cash, "100.00"),
            cr(self.revenue, "100.00"),
            reference_number="JE-1",
            cost_center_id=12,
            tags=("showroom",),
        )

        reversal = create_reversing_entry(
            original,
            reversing_date=date(2026, 2, 1),
            actor_id=ACTOR_ID,
            as_of=timezone.now(),
        )

        self.assertEqual(reversal.reference_number, "REV-JE-1")
        self.assertEqual(reversal.transaction_type, Transaction.REVERSING_ENTRY)
        self.assertEqual(reversal.source_type, "reversal")
        self.assertEqual(reversal.source_id, str(original.pk))
        self.assertEqual(reversal.cost_center_id, 12)
        self.assertEqual(reversal.tags, ["showroom"])

        self.assertEqual(
            _orientation(reversal),
            {acc_id: not is_debit for acc_id, is_debit in _orientation(original).items()},
        )
        self.assertEqual(get_account_balance(self.cash), Decimal("0.00"))
        self.assertEqual(get_account_balance(self.revenue), Decimal("0.00"))

    def test_reversing_a_reversal_restores_original_orientation(self):
        original = post(dr(self.cash, "80.00"), cr(self.revenue, "80.00"), reference_number="JE-2")
        now = timezone.now()

        once = create_reversing_entry(original, reversing_date=date(2026, 2, 1), actor_id=ACTOR_ID, as_of=now)
        twice = create_reversing_entry(once, reversing_date=date(2026, 2, 2), actor_id=ACTOR_ID, as_of=now)

        self.assertEqual(twice.reference_number, "REV-REV-JE-2")
        self.assertEqual(_orientation(twice), _orientation(original))

    def test_reversal_replays_original_rates(self):
        eur = Currency.objects.create(code="EUR", name="Euro", exchange_rate=Decimal("1.10"))
        original = post(dr(self.cash, "100.00", currency="EUR"), cr(self.capital, "110.00"))

        eur.exchange_rate = Decimal("1.50")
        eur.save()

        reversal = create_reversing_entry(
            original,
            reversing_date=date(2026, 3, 1),
            actor_id=ACTOR_ID,
            as_of=timezone.now(),
        )

        cash_leg = reversal.entries.get(account=self.cash)
        self.assertEqual(cash_leg.credit_amount, Decimal("110.00"))
        self.assertEqual(cash_leg.original_credit_amount, Decimal("100.00"))
        self.assertEqual(get_account_balance(self.cash), Decimal("0.00"))


class RecurringEntryTests(TestCase):
    def setUp(self):
        self.rent = standard("6220")
        self.bank = standard("1120")

    def _template(self):
        return request(dr(self.rent, "500.00"), cr(self.bank, "500.00"), description="Monthly utilities")

    def test_monthly_schedule_clamps_to_month_end(self):
        schedule = build_schedule(date(2026, 1, 31), date(2026, 4, 30), MONTHLY)
        self.assertEqual(
            schedule,
            [date(2026, 1, 31), date(2026, 2, 28), date(2026, 3, 31), date(2026, 4, 30)],
        )

    def test_unknown_frequency_is_rejected(self):
        with self.assertRaises(TransactionValidationError):
            build_schedule(date(2026, 1, 1), date(2026, 2, 1), "fortnightly")

    def test_one_transaction_per_occurrence(self):
        result = create_recurring_entries(
            self._template(),
            start_date=date(2026, 1, 1),
            end_date=date(2026, 3, 15),
            frequency=MONTHLY,
            actor_id=ACTOR_ID,
            as_of=timezone.now(),
            reference_prefix="UTIL",
        )

        self.assertTrue(result.ok)
        self.assertEqual(
            [t.reference_number for t in result.created],
            ["UTIL-2026-01-01-001", "UTIL-2026-02-01-002", "UTIL-2026-03-01-003"],
        )
        self.assertTrue(all(t.transaction_type == Transaction.RECURRING_ENTRY for t in result.created))
        self.assertEqual(get_account_balance(self.rent), Decimal("1500.00"))

    def test_batch_summary_is_logged_with_counts(self):
        with self.assertLogs("accounting.services.journal_entry_service", level="INFO") as logs:
            result = create_recurring_entries(
                self._template(),
                start_date=date(2026, 1, 1),
                end_date=date(2026, 2, 1),
                frequency=MONTHLY,
                actor_id=ACTOR_ID,
                as_of=timezone.now(),
            )

        self.assertTrue(result.ok)
        summary = [r for r in logs.records if r.getMessage() == "Recurring entries generated"]
        self.assertEqual(len(summary), 1)
        self.assertEqual(summary[0].created_count, 2)
        self.assertEqual(summary[0].failed_count, 0)
        self.assertEqual(summary[0].scheduled, 2)

    def test_failing_occurrence_does_not_block_siblings(self):
        # Occupy the reference of the second occurrence
        post(dr(self.rent, "1.00"), cr(self.bank, "1.00"), reference_number="UTIL-2026-02-01-002")

        result = create_recurring_entries(
            self._template(),
            start_date=date(2026, 1, 1),
            end_date=date(2026, 3, 1),
            frequency=MONTHLY,
            actor_id=ACTOR_ID,
            as_of=timezone.now(),
            reference_prefix="UTIL",
        )

        self.assertFalse(result.ok)
        self.assertEqual(len(result.created), 2)
        self.assertEqual([f.label for f in result.failures], ["UTIL-2026-02-01-002"])
        self.assertEqual(Transaction.objects.count(), 3)

    def test_all_or_nothing_rolls_back_the_batch(self):
        post(dr(self.rent, "1.00"), cr(self.bank, "1.00"), reference_number="UTIL-2026-03-01-003")

        with self.assertRaises(TransactionValidationError):
            create_recurring_entries(
                self._template(),
                start_date=date(2026, 1, 1),
                end_date=date(2026, 3, 1),
                frequency=MONTHLY,
                actor_id=ACTOR_ID,
                as_of=timezone.now(),
                reference_prefix="UTIL",
                all_or_nothing=True,
            )

        self.assertEqual(Transaction.objects.count(), 1)

    def test_oversized_schedule_is_rejected_before_any_write(self):
        with self.assertRaises(TransactionValidationError):
            create_recurring_entries(
                self._template(),
                start_date=date(2026, 1, 1),
                end_date=date(2026, 12, 31),
                frequency="daily",
                actor_id=ACTOR_ID,
                as_of=timezone.now(),
                max_occurrences=30,
            )

        self.assertEqual(Transaction.objects.count(), 0)


class AdjustingEntryTests(TestCase):
    def test_adjusting_entry_always_requires_approval(self):
        insurance = standard("6230")
        prepaid = standard("1410")

        txn = create_adjusting_entry(
            request(dr(insurance, "120.00"), cr(prepaid, "120.00"), requires_approval=False),
            actor_id=ACTOR_ID,
            as_of=timezone.now(),
        )

        self.assertEqual(txn.transaction_type, Transaction.ADJUSTING_ENTRY)
        self.assertEqual(txn.approval_status, ApprovalStatus.PENDING)
        self.assertEqual(txn.source_type, "adjustment")


class TaxEntryTests(TestCase):
    def setUp(self):
        self.cash = standard("1110")
        self.sales = standard("4110")
        self.vat = standard("2330")
        TaxRate.objects.create(code="VAT9", name="VAT 9%", rate=Decimal("9.0000"))

    def test_tax_lines_are_appended_before_validation(self):
        txn = create_advanced_entry(
            request(
                dr(self.cash, "109.00"),
                cr(self.sales, "100.00"),
                tax_lines=(TaxLine(tax_code="VAT9", taxable_amount=Decimal("100.00"), tax_account_id=self.vat.id),),
            ),
            actor_id=ACTOR_ID,
            as_of=timezone.now(),
        )

        self.assertEqual(txn.entries.count(), 3)
        tax_leg = txn.entries.get(account=self.vat)
        self.assertEqual(tax_leg.credit_amount, Decimal("9.00"))
        self.assertEqual(tax_leg.metadata["tax_code"], "VAT9")

    def test_tax_that_unbalances_the_entry_is_rejected(self):
        with self.assertRaises(TransactionValidationError):
            create_advanced_entry(
                request(
                    dr(self.cash, "100.00"),
                    cr(self.sales, "100.00"),
                    tax_lines=(TaxLine(tax_code="VAT9", taxable_amount=Decimal("100.00"), tax_account_id=self.vat.id),),
                ),
                actor_id=ACTOR_ID,
                as_of=timezone.now(),
            )

        self.assertEqual(TransactionEntry.objects.count(), 0)

    def test_tax_failure_aborts_the_entry(self):
        with self.assertRaises(ExternalDependencyError):
            create_advanced_entry(
                request(
                    dr(self.cash, "109.00"),
                    cr(self.sales, "100.00"),
                    tax_lines=(TaxLine(tax_code="UNKNOWN", taxable_amount=Decimal("100.00"), tax_account_id=self.vat.id),),
                ),
                actor_id=ACTOR_ID,
                as_of=timezone.now(),
            )

        self.assertEqual(Transaction.objects.count(), 0)


class ClosingEntryTests(TestCase):
    def setUp(self):
        self.cash = standard("1110")
        self.sales = standard("4110")
        self.utilities = standard("6220")

    def test_revenue_and_expense_are_closed_into_income_summary(self):
        post(dr(self.cash, "500.00"), cr(self.sales, "500.00"), on=date(2026, 1, 10))
        post(dr(self.utilities, "200.00"), cr(self.cash, "200.00"), on=date(2026, 1, 20))

        result = create_closing_entries(date(2026, 1, 31), actor_id=ACTOR_ID, as_of=timezone.now())

        self.assertTrue(result.ok)
        self.assertEqual(
            sorted(t.reference_number for t in result.created),
            ["CLOSE-EXPENSE-2026-01-31", "CLOSE-REVENUE-2026-01-31"],
        )
        self.assertTrue(all(t.transaction_type == Transaction.CLOSING_ENTRY for t in result.created))

        summary = standard(INCOME_SUMMARY_CODE)
        self.assertEqual(get_account_balance(self.sales), Decimal("0.00"))
        self.assertEqual(get_account_balance(self.utilities), Decimal("0.00"))
        self.assertEqual(get_account_balance(summary), Decimal("300.00"))

    def test_empty_group_builds_no_transaction(self):
        post(dr(self.cash, "75.00"), cr(self.sales, "75.00"), on=date(2026, 1, 10))

        result = create_closing_entries(date(2026, 1, 31), actor_id=ACTOR_ID, as_of=timezone.now())

        self.assertEqual(len(result.created), 1)
        self.assertEqual(result.skipped, ["expense"])

    def test_closing_twice_finds_nothing_left_to_close(self):
        post(dr(self.cash, "75.00"), cr(self.sales, "75.00"), on=date(2026, 1, 10))
        create_closing_entries(date(2026, 1, 31), actor_id=ACTOR_ID, as_of=timezone.now())

        again = create_closing_entries(date(2026, 1, 31), actor_id=ACTOR_ID, as_of=timezone.now())

        self.assertEqual(again.created, [])
        self.assertEqual(again.skipped, ["revenue", "expense"])

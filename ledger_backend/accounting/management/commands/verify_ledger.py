# accounting/management/commands/verify_ledger.py

from __future__ import annotations

from django.core.management.base import BaseCommand
from django.db import transaction
from django.db.models import Count, Sum

from accounting.models.account import Account
from accounting.models.transaction import Transaction
from accounting.money import ZERO, balance_tolerance, q2
from accounting.services.balance_service import account_totals, signed_balance
from accounting.services.ledger_service import recompute_account_balances


class Command(BaseCommand):
    help = "Re-verify every transaction balances and recompute cached account balances."

    def add_arguments(self, parser):
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail (non-zero exit) if any problem is found.",
        )
        parser.add_argument(
            "--fix-balances",
            action="store_true",
            help="Write recomputed balances back to Account.current_balance.",
        )

    def handle(self, *args, **options):
        strict = bool(options.get("strict"))
        fix = bool(options.get("fix_balances"))
        tolerance = balance_tolerance()

        self.stdout.write(self.style.MIGRATE_HEADING("Ledger Verification"))
        errors = 0

        # -----------------------------
        # 1) Per-transaction balance
        # -----------------------------
        totals = Transaction.objects.annotate(
            debits=Sum("entries__debit_amount"),
            credits=Sum("entries__credit_amount"),
            n_entries=Count("entries"),
        ).values_list("reference_number", "debits", "credits", "n_entries")

        unbalanced = []
        for reference, debits, credits, n_entries in totals:
            debits = q2(debits or ZERO)
            credits = q2(credits or ZERO)
            if n_entries < 2 or abs(debits - credits) > tolerance:
                unbalanced.append((reference, debits, credits, n_entries))

        if unbalanced:
            errors += len(unbalanced)
            self.stderr.write(self.style.ERROR(f"[FAIL] Unbalanced transactions: {len(unbalanced)}"))
            for reference, debits, credits, n_entries in unbalanced[:10]:
                self.stderr.write(f"  {reference}: debits={debits} credits={credits} entries={n_entries}")
        else:
            self.stdout.write(self.style.SUCCESS("[OK] Every transaction balances"))

        # -----------------------------
        # 2) Cached balances vs entry history
        # -----------------------------
        cached = dict(Account.objects.values_list("id", "current_balance"))

        if fix:
            with transaction.atomic():
                recomputed = recompute_account_balances(cached.keys())
        else:
            sums = account_totals()
            recomputed = {}
            for account in Account.objects.all():
                debits, credits = sums.get(account.id, (ZERO, ZERO))
                recomputed[account.id] = signed_balance(account, debits, credits)

        drift = [(acc_id, cached[acc_id], bal) for acc_id, bal in recomputed.items() if q2(cached[acc_id]) != bal]

        if drift and not fix:
            errors += len(drift)
            self.stderr.write(self.style.ERROR(f"[FAIL] Cached balances out of date: {len(drift)}"))
            for acc_id, old, new in drift[:10]:
                self.stderr.write(f"  account_id={acc_id} cached={old} ledger={new}")
        elif drift:
            self.stdout.write(self.style.WARNING(f"[FIXED] Recomputed {len(drift)} cached balance(s)"))
        else:
            self.stdout.write(self.style.SUCCESS("[OK] Cached balances match entry history"))

        self.stdout.write("")
        if errors == 0:
            self.stdout.write(self.style.SUCCESS("VERIFICATION PASSED"))
        else:
            self.stderr.write(self.style.ERROR(f"VERIFICATION FOUND ISSUES: {errors} problem(s)"))

        return self._exit(strict and errors > 0)

    def _exit(self, fail: bool):
        if fail:
            raise SystemExit(1)
        return None

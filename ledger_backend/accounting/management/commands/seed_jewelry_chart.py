# accounting/management/commands/seed_jewelry_chart.py

from django.core.management.base import BaseCommand
from django.db import transaction

from accounting.models.account import Account
from accounting.services.account_registry import JEWELRY_CHART
from accounting.services.currency_service import get_base_currency


class Command(BaseCommand):
    help = "Seed the standard jewelry-business chart of accounts (with localized names)"

    def add_arguments(self, parser):
        parser.add_argument(
            "--reactivate",
            action="store_true",
            help="Re-activate standard accounts that were deactivated.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        reactivate = bool(options.get("reactivate"))
        self.stdout.write("Seeding jewelry chart of accounts...")

        created_count = 0
        updated_count = 0

        for code, name, name_localized, account_type, subtype in JEWELRY_CHART:
            acc, acc_created = Account.objects.get_or_create(
                code=code,
                defaults={
                    "name": name,
                    "name_localized": name_localized,
                    "account_type": account_type,
                    "subtype": subtype,
                    "currency": get_base_currency(),
                    "is_active": True,
                },
            )

            if acc_created:
                created_count += 1
                continue

            # Code is the stable key; type and subtype follow the standard chart
            changed = []
            if acc.account_type != account_type:
                acc.account_type = account_type
                changed.append("account_type")
            if acc.subtype != subtype:
                acc.subtype = subtype
                changed.append("subtype")
            if not acc.name_localized:
                acc.name_localized = name_localized
                changed.append("name_localized")
            if reactivate and not acc.is_active:
                acc.is_active = True
                changed.append("is_active")

            if changed:
                acc.save(update_fields=changed + ["updated_at"])
                updated_count += 1

        self.stdout.write(
            self.style.SUCCESS(
                f"Jewelry chart seeded ({created_count} new accounts, {updated_count} updated)."
            )
        )

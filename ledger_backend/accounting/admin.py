# accounting/admin.py

from django.contrib import admin

from accounting.models.account import Account
from accounting.models.currency import Currency, TaxRate
from accounting.models.transaction import Transaction, TransactionEntry

# ============================================================
# ACCOUNT
# ============================================================


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "account_type",
        "subtype",
        "current_balance",
        "is_active",
    )
    list_filter = ("account_type", "subtype", "is_active")
    search_fields = ("code", "name", "name_localized")
    ordering = ("code",)
    readonly_fields = ("current_balance", "created_at", "updated_at")

    fieldsets = (
        (
            "Account Identity",
            {
                "fields": ("code", "name", "name_localized", "account_type", "subtype", "currency"),
            },
        ),
        (
            "Status",
            {
                "fields": ("is_active", "description", "current_balance"),
            },
        ),
        (
            "System Fields",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# CURRENCY / TAX RATE REGISTRIES
# ============================================================


@admin.register(Currency)
class CurrencyAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "exchange_rate", "is_active", "updated_at")
    list_filter = ("is_active",)
    search_fields = ("code", "name")
    ordering = ("code",)


@admin.register(TaxRate)
class TaxRateAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "rate", "is_active")
    list_filter = ("is_active",)
    search_fields = ("code", "name")
    ordering = ("code",)


# ============================================================
# TRANSACTION (READ-ONLY)
# ============================================================


class TransactionEntryInline(admin.TabularInline):
    model = TransactionEntry
    extra = 0
    can_delete = False
    fields = (
        "account",
        "debit_amount",
        "credit_amount",
        "original_debit_amount",
        "original_credit_amount",
        "currency",
        "exchange_rate",
        "description",
    )
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = (
        "reference_number",
        "transaction_date",
        "transaction_type",
        "total_amount",
        "currency",
        "approval_status",
        "created_at",
    )
    list_filter = ("transaction_type", "approval_status", "transaction_date")
    search_fields = ("reference_number", "description")
    ordering = ("-transaction_date", "-id")
    inlines = [TransactionEntryInline]

    readonly_fields = (
        "reference_number",
        "description",
        "description_localized",
        "transaction_date",
        "transaction_type",
        "source_type",
        "source_id",
        "total_amount",
        "currency",
        "exchange_rate",
        "cost_center_id",
        "tags",
        "notes",
        "approval_status",
        "created_by",
        "approved_by",
        "approved_at",
        "created_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

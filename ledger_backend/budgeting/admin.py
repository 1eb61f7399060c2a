# budgeting/admin.py

from django.contrib import admin

from budgeting.models.budget import MONTH_FIELDS, Budget, BudgetLine


class BudgetLineInline(admin.TabularInline):
    model = BudgetLine
    extra = 0
    fields = ("account", "category", *MONTH_FIELDS, "total_budget", "is_active")
    readonly_fields = ("total_budget",)
    autocomplete_fields = ("account",)


@admin.register(Budget)
class BudgetAdmin(admin.ModelAdmin):
    list_display = ("name", "budget_year", "status", "revision_number", "currency", "approved_at")
    list_filter = ("status", "budget_year")
    search_fields = ("name", "name_localized")
    readonly_fields = (
        "status",
        "parent_budget",
        "revision_number",
        "created_by",
        "approved_by",
        "approved_at",
        "created_at",
        "updated_at",
    )
    inlines = [BudgetLineInline]

    def has_delete_permission(self, request, obj=None):
        # only unreferenced drafts
        return obj is not None and obj.status == "draft" and not obj.revisions.exists()

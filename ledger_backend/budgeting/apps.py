# budgeting/apps.py

"""
BUDGETING APP CONFIG

Annual budgets on top of the ledger:
- Budget / BudgetLine (twelve monthly figures per account)
- Historical generation, variance analysis, revisions, forecasts
"""

from django.apps import AppConfig


class BudgetingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "budgeting"
    verbose_name = "Budgeting"

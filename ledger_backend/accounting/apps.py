# accounting/apps.py

"""
ACCOUNTING APP CONFIG

Double-entry ledger core:
- Chart of accounts, currency and tax registries
- Transaction posting (advanced, adjusting, reversing, recurring, closing)
- Financial reports (trial balance, balance sheet, income statement,
  cash flow statement, general ledger)
"""

from django.apps import AppConfig


class AccountingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "accounting"
    verbose_name = "Accounting Ledger"

# treasury/apps.py

"""
TREASURY APP CONFIG

Read models over the ledger (nothing here is persisted):
- Monthly cash-flow forecast with scenarios and recommendations
- Bank statement reconciliation and adjustment posting
"""

from django.apps import AppConfig


class TreasuryConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "treasury"
    verbose_name = "Treasury"

# accounting/api/views/__init__.py

"""
accounting.api.views package

Do NOT import accounting.api.urls from here to avoid circular imports.
"""

from accounting.api.views.accounts import AccountViewSet
from accounting.api.views.balance_sheet import BalanceSheetView
from accounting.api.views.cash_flow_statement import CashFlowStatementView
from accounting.api.views.general_ledger import GeneralLedgerView
from accounting.api.views.income_statement import IncomeStatementView
from accounting.api.views.transactions import TransactionViewSet
from accounting.api.views.trial_balance import TrialBalanceView

__all__ = [
    "AccountViewSet",
    "TransactionViewSet",
    "TrialBalanceView",
    "BalanceSheetView",
    "IncomeStatementView",
    "CashFlowStatementView",
    "GeneralLedgerView",
]

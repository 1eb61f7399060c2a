# accounting/services/accounting_service.py

"""
ACCOUNTING SERVICE (FACADE)

The entrypoint other modules (budgeting, treasury, asset depreciation, ...)
use to reach the ledger. Keeps callers off the internal service layout.
"""

from __future__ import annotations

from datetime import date, datetime

from accounting.journal_request import JournalEntryRequest
from accounting.models.account import Account
from accounting.models.transaction import Transaction
from accounting.services import balance_service, ledger_service
from accounting.services.trial_balance_service import TrialBalanceService


class AccountingService:
    def __init__(self, trial_balance_service: TrialBalanceService | None = None, converter=None):
        self.trial_balance_service = trial_balance_service or TrialBalanceService()
        self.converter = converter

    def get_account_balance(self, account: Account, as_of: date | None = None):
        return balance_service.get_account_balance(account, as_of=as_of)

    def get_period_balance(self, account: Account, start: date, end: date):
        return balance_service.get_period_balance(account, start, end)

    def get_trial_balance(self, as_of: date | None = None) -> dict:
        return self.trial_balance_service.generate(as_of=as_of)

    def create_transaction(
        self,
        request: JournalEntryRequest,
        *,
        actor_id: int | None,
        as_of: datetime,
    ) -> Transaction:
        return ledger_service.create_transaction(
            request,
            actor_id=actor_id,
            as_of=as_of,
            converter=self.converter,
        )

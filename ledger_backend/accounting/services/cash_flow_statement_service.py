# accounting/services/cash_flow_statement_service.py

"""
CASH FLOW STATEMENT SERVICE (INDIRECT METHOD)

operating = net income + depreciation add-back + working-capital delta

Known limitations (reported in the payload, not hidden):
- working-capital delta is always 0
- investing and financing sections are always 0
Because of this, ending_cash (beginning + computed net change) can differ
from the ledger's actual cash balance; both are returned.
"""

from __future__ import annotations

from datetime import date

from django.db.models import Q

from accounting.models.account import Account
from accounting.money import ZERO, day_before, q2, to_major_number, to_minor_int
from accounting.services.account_registry import active_accounts, cash_accounts
from accounting.services.balance_service import sum_balances
from accounting.services.income_statement_service import compute_income_totals
from accounting.services.snapshot import snapshot_read

KNOWN_LIMITATIONS = (
    "Working-capital changes are not computed (reported as 0).",
    "Investing activities are not computed (reported as 0).",
    "Financing activities are not computed (reported as 0).",
)


def _depreciation_accounts():
    return active_accounts(Account.EXPENSE).filter(
        Q(name__icontains="depreciation") | Q(description__icontains="depreciation")
    )


def generate_cash_flow_statement(*, start_date: date, end_date: date) -> dict:
    with snapshot_read():
        net_income = compute_income_totals(start_date, end_date)["net_income"]
        depreciation = sum_balances(_depreciation_accounts(), start=start_date, end=end_date)
        cash = list(cash_accounts())
        beginning_cash = sum_balances(cash, end=day_before(start_date))
        ledger_ending_cash = sum_balances(cash, end=end_date)

    working_capital_delta = ZERO
    operating = q2(net_income + depreciation + working_capital_delta)
    investing = ZERO
    financing = ZERO

    net_change = q2(operating + investing + financing)
    ending_cash = q2(beginning_cash + net_change)

    return {
        "period": {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        "operating_activities": {
            "net_income": to_major_number(net_income),
            "depreciation": to_major_number(depreciation),
            "working_capital_changes": to_major_number(working_capital_delta),
            "total": to_major_number(operating),
            "total_minor": to_minor_int(operating),
        },
        "investing_activities": {"total": to_major_number(investing), "total_minor": 0},
        "financing_activities": {"total": to_major_number(financing), "total_minor": 0},
        "net_change_in_cash": to_major_number(net_change),
        "beginning_cash": to_major_number(beginning_cash),
        "ending_cash": to_major_number(ending_cash),
        "ledger_ending_cash": to_major_number(ledger_ending_cash),
        "known_limitations": list(KNOWN_LIMITATIONS),
    }

# accounting/services/balance_sheet_service.py

"""
BALANCE SHEET SERVICE

Pure accounting read service.

Responsibilities:
- Compute balances per active account as at a given date
- Classify balances into Assets, Liabilities, Equity, then by subtype
  (current vs fixed assets, current vs long-term liabilities)
- Check the accounting equation (Assets = Liabilities + Equity)

Important:
- Revenue/Expense activity (if not closed) is represented as
  "Current Period Earnings" in Equity so the identity holds before closing.
- An unbalanced sheet is returned with is_balanced=False and logged at ERROR;
  it is never hidden or "fixed up".

Contract:
- Numeric JSON values: major-unit floats (2dp) plus minor-unit ints (exact)
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from accounting.models.account import Account
from accounting.money import ZERO, q2, to_major_number, to_minor_int, within_tolerance
from accounting.services.balance_service import get_balances
from accounting.services.snapshot import snapshot_read

logger = logging.getLogger(__name__)

CURRENT_EARNINGS_CODE = "E-CURR"

SECTION_LAYOUT = {
    Account.ASSET: ("assets", {
        Account.CURRENT_ASSET: "current_assets",
        Account.FIXED_ASSET: "fixed_assets",
    }),
    Account.LIABILITY: ("liabilities", {
        Account.CURRENT_LIABILITY: "current_liabilities",
        Account.LONG_TERM_LIABILITY: "long_term_liabilities",
    }),
    Account.EQUITY: ("equity", {
        Account.OWNERS_EQUITY: "accounts",
    }),
}


def _row(code: str, name: str, balance: Decimal, *, account_id=None, name_localized: str = "") -> dict:
    return {
        "account_id": account_id,
        "code": code,
        "name": name,
        "name_localized": name_localized or name,
        "balance": to_major_number(balance),
        "balance_minor": to_minor_int(balance),
    }


def _empty_section(groups: dict) -> dict:
    section = {key: [] for key in groups.values()}
    section["total"] = ZERO
    return section


def generate_balance_sheet(*, as_of: date | None = None) -> dict:
    with snapshot_read():
        accounts = list(Account.objects.filter(is_active=True).order_by("account_type", "code"))
        balances = get_balances(accounts, end=as_of)

    sections = {name: _empty_section(groups) for name, groups in SECTION_LAYOUT.values()}
    revenue_total = ZERO
    expense_total = ZERO

    for acc in accounts:
        bal = balances[acc.id]
        if bal == ZERO:
            continue

        if acc.account_type == Account.REVENUE:
            revenue_total += bal
            continue
        if acc.account_type == Account.EXPENSE:
            expense_total += bal
            continue

        section_name, groups = SECTION_LAYOUT[acc.account_type]
        default_group = next(iter(groups.values()))
        group = groups.get(acc.subtype, default_group)

        sections[section_name][group].append(
            _row(acc.code, acc.name, bal, account_id=acc.id, name_localized=acc.name_localized)
        )
        sections[section_name]["total"] += bal

    current_earnings = q2(revenue_total - expense_total)
    if current_earnings != ZERO:
        sections["equity"]["accounts"].append(
            _row(CURRENT_EARNINGS_CODE, "Current Period Earnings", current_earnings)
        )
        sections["equity"]["total"] += current_earnings

    total_assets = q2(sections["assets"]["total"])
    total_liabilities = q2(sections["liabilities"]["total"])
    total_equity = q2(sections["equity"]["total"])
    liabilities_plus_equity = q2(total_liabilities + total_equity)

    balanced = within_tolerance(total_assets, liabilities_plus_equity)
    if not balanced:
        logger.error(
            "Balance sheet is unbalanced",
            extra={
                "as_of": as_of.isoformat() if as_of else None,
                "assets": str(total_assets),
                "liabilities_plus_equity": str(liabilities_plus_equity),
            },
        )

    for section in sections.values():
        section["total"] = to_major_number(section["total"])

    return {
        "as_of": as_of.isoformat() if as_of else None,
        **sections,
        "totals": {
            "assets": to_major_number(total_assets),
            "liabilities": to_major_number(total_liabilities),
            "equity": to_major_number(total_equity),
            "liabilities_plus_equity": to_major_number(liabilities_plus_equity),
            "assets_minor": to_minor_int(total_assets),
            "liabilities_minor": to_minor_int(total_liabilities),
            "equity_minor": to_minor_int(total_equity),
            "liabilities_plus_equity_minor": to_minor_int(liabilities_plus_equity),
        },
        "is_balanced": balanced,
    }

# accounting/services/income_statement_service.py

"""
INCOME STATEMENT SERVICE (PROFIT & LOSS)

Read-only aggregation over immutable transaction entries.

Key rules:
- Period is [start_date, end_date], both inclusive, on transaction_date
- Active revenue and expense accounts only, grouped by subtype
- net_income = total revenue - total expenses
- margin = net_income / total revenue * 100 (0 when revenue is 0)
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from accounting.models.account import Account
from accounting.money import ZERO, q2, to_major_number, to_minor_int
from accounting.services.balance_service import get_balances
from accounting.services.snapshot import snapshot_read

REVENUE_GROUPS = (Account.OPERATING_REVENUE, Account.OTHER_REVENUE)
EXPENSE_GROUPS = (Account.COST_OF_GOODS_SOLD, Account.OPERATING_EXPENSE, Account.OTHER_EXPENSE)


def _group(accounts, balances, subtypes) -> tuple[dict, Decimal]:
    grouped = {subtype: [] for subtype in subtypes}
    total = ZERO

    for acc in accounts:
        bal = balances[acc.id]
        if bal == ZERO:
            continue
        key = acc.subtype if acc.subtype in grouped else subtypes[0]
        grouped[key].append(
            {
                "account_id": acc.id,
                "code": acc.code,
                "name": acc.name,
                "name_localized": acc.localized_name,
                "amount": to_major_number(bal),
                "amount_minor": to_minor_int(bal),
            }
        )
        total += bal

    return grouped, q2(total)


def compute_income_totals(start_date: date, end_date: date) -> dict:
    """Decimal totals for callers that need exact numbers (cash-flow, closing checks)."""
    accounts = list(
        Account.objects.filter(
            is_active=True,
            account_type__in=(Account.REVENUE, Account.EXPENSE),
        ).order_by("code")
    )
    balances = get_balances(accounts, start=start_date, end=end_date)

    revenue_accounts = [a for a in accounts if a.account_type == Account.REVENUE]
    expense_accounts = [a for a in accounts if a.account_type == Account.EXPENSE]

    revenue, total_revenue = _group(revenue_accounts, balances, REVENUE_GROUPS)
    expenses, total_expenses = _group(expense_accounts, balances, EXPENSE_GROUPS)

    cogs = q2(sum((balances[a.id] for a in expense_accounts if a.subtype == Account.COST_OF_GOODS_SOLD), ZERO))

    return {
        "revenue": revenue,
        "expenses": expenses,
        "total_revenue": total_revenue,
        "total_expenses": total_expenses,
        "cost_of_goods_sold": cogs,
        "net_income": q2(total_revenue - total_expenses),
    }


def margin_percentage(net_income: Decimal, total_revenue: Decimal) -> Decimal:
    if total_revenue == ZERO:
        return ZERO
    return q2(net_income / total_revenue * Decimal("100"))


def generate_income_statement(*, start_date: date, end_date: date) -> dict:
    with snapshot_read():
        totals = compute_income_totals(start_date, end_date)

    total_revenue = totals["total_revenue"]
    net_income = totals["net_income"]
    gross_profit = q2(total_revenue - totals["cost_of_goods_sold"])

    return {
        "period": {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        "revenue": {
            **totals["revenue"],
            "total": to_major_number(total_revenue),
            "total_minor": to_minor_int(total_revenue),
        },
        "expenses": {
            **totals["expenses"],
            "total": to_major_number(totals["total_expenses"]),
            "total_minor": to_minor_int(totals["total_expenses"]),
        },
        "gross_profit": to_major_number(gross_profit),
        "gross_margin": to_major_number(margin_percentage(gross_profit, total_revenue)),
        "net_income": to_major_number(net_income),
        "net_income_minor": to_minor_int(net_income),
        "margin": to_major_number(margin_percentage(net_income, total_revenue)),
    }

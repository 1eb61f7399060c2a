# accounting/services/account_registry.py

"""
PATH: accounting/services/account_registry.py

ACCOUNT REGISTRY (AUTHORITATIVE)

This module answers two questions:
- "Which standard account has this code?" (found or created; codes outside
  the chart hard-fail)
- "Which accounts play this role?" (cash-like, payables, tax liabilities, ...)

Standard accounts required by entry builders (income summary, misc expense)
are found-or-created by code, so builders never depend on a seed having run.

Role selection rules:
- cash-like: asset accounts whose code starts with "11" or whose name
  mentions cash/bank
- payables: current liability accounts whose name mentions "payable",
  excluding tax
- tax liabilities: liability accounts whose name mentions "tax" or "VAT"
- sales revenue: revenue accounts with subtype operating_revenue
"""

from __future__ import annotations

import logging

from django.db import IntegrityError, transaction
from django.db.models import Q, QuerySet

from accounting.models.account import Account
from accounting.services.currency_service import get_base_currency
from accounting.services.exceptions import AccountResolutionError

logger = logging.getLogger(__name__)

INCOME_SUMMARY_CODE = "3300"
RETAINED_EARNINGS_CODE = "3200"
MISC_EXPENSE_CODE = "6999"

CASH_CODE_PREFIX = "11"

# (code, name, localized name, type, subtype)
JEWELRY_CHART = [
    # Current assets
    ("1110", "Petty Cash", "تنخواه", Account.ASSET, Account.CURRENT_ASSET),
    ("1120", "Bank Account - Main", "حساب بانکی - اصلی", Account.ASSET, Account.CURRENT_ASSET),
    ("1130", "Bank Account - Savings", "حساب بانکی - پس‌انداز", Account.ASSET, Account.CURRENT_ASSET),
    ("1210", "Trade Receivables", "دریافتنی تجاری", Account.ASSET, Account.CURRENT_ASSET),
    ("1220", "Other Receivables", "سایر دریافتنی‌ها", Account.ASSET, Account.CURRENT_ASSET),
    ("1310", "Raw Materials - Gold", "مواد اولیه - طلا", Account.ASSET, Account.CURRENT_ASSET),
    ("1320", "Raw Materials - Silver", "مواد اولیه - نقره", Account.ASSET, Account.CURRENT_ASSET),
    ("1330", "Raw Materials - Gems", "مواد اولیه - سنگ‌های قیمتی", Account.ASSET, Account.CURRENT_ASSET),
    ("1340", "Work in Progress", "کالای در جریان ساخت", Account.ASSET, Account.CURRENT_ASSET),
    ("1350", "Finished Goods", "کالای ساخته شده", Account.ASSET, Account.CURRENT_ASSET),
    ("1410", "Prepaid Insurance", "بیمه پیش‌پرداخت", Account.ASSET, Account.CURRENT_ASSET),
    ("1420", "Prepaid Rent", "اجاره پیش‌پرداخت", Account.ASSET, Account.CURRENT_ASSET),
    # Fixed assets
    ("1511", "Jewelry Making Equipment", "تجهیزات جواهرسازی", Account.ASSET, Account.FIXED_ASSET),
    ("1512", "Office Equipment", "تجهیزات اداری", Account.ASSET, Account.FIXED_ASSET),
    ("1520", "Accumulated Depreciation - Equipment", "استهلاک انباشته - تجهیزات", Account.ASSET, Account.FIXED_ASSET),
    ("1530", "Furniture and Fixtures", "اثاثه و تجهیزات", Account.ASSET, Account.FIXED_ASSET),
    ("1550", "Building", "ساختمان", Account.ASSET, Account.FIXED_ASSET),
    # Current liabilities
    ("2110", "Trade Payables", "پرداختنی تجاری", Account.LIABILITY, Account.CURRENT_LIABILITY),
    ("2120", "Other Payables", "سایر پرداختنی‌ها", Account.LIABILITY, Account.CURRENT_LIABILITY),
    ("2210", "Accrued Wages", "دستمزد تعهدی", Account.LIABILITY, Account.CURRENT_LIABILITY),
    ("2310", "Sales Tax Payable", "مالیات فروش پرداختنی", Account.LIABILITY, Account.CURRENT_LIABILITY),
    ("2320", "Income Tax Payable", "مالیات درآمد پرداختنی", Account.LIABILITY, Account.CURRENT_LIABILITY),
    ("2330", "VAT Payable", "مالیات بر ارزش افزوده پرداختنی", Account.LIABILITY, Account.CURRENT_LIABILITY),
    # Long-term liabilities
    ("2510", "Long-term Loans", "وام‌های بلندمدت", Account.LIABILITY, Account.LONG_TERM_LIABILITY),
    ("2520", "Mortgage Payable", "رهن پرداختنی", Account.LIABILITY, Account.LONG_TERM_LIABILITY),
    # Equity
    ("3100", "Capital", "سرمایه", Account.EQUITY, Account.OWNERS_EQUITY),
    (RETAINED_EARNINGS_CODE, "Retained Earnings", "سود انباشته", Account.EQUITY, Account.OWNERS_EQUITY),
    (INCOME_SUMMARY_CODE, "Current Year Earnings", "سود سال جاری", Account.EQUITY, Account.OWNERS_EQUITY),
    ("3400", "Owner Drawings", "برداشت مالک", Account.EQUITY, Account.OWNERS_EQUITY),
    # Revenue
    ("4110", "Gold Jewelry Sales", "فروش جواهرات طلا", Account.REVENUE, Account.OPERATING_REVENUE),
    ("4120", "Silver Jewelry Sales", "فروش جواهرات نقره", Account.REVENUE, Account.OPERATING_REVENUE),
    ("4130", "Custom Design Sales", "فروش طراحی سفارشی", Account.REVENUE, Account.OPERATING_REVENUE),
    ("4140", "Repair Services", "خدمات تعمیر", Account.REVENUE, Account.OPERATING_REVENUE),
    ("4210", "Interest Income", "درآمد سود", Account.REVENUE, Account.OTHER_REVENUE),
    ("4220", "Rental Income", "درآمد اجاره", Account.REVENUE, Account.OTHER_REVENUE),
    # Cost of goods sold
    ("5110", "Gold Costs", "هزینه طلا", Account.EXPENSE, Account.COST_OF_GOODS_SOLD),
    ("5120", "Silver Costs", "هزینه نقره", Account.EXPENSE, Account.COST_OF_GOODS_SOLD),
    ("5130", "Gem Costs", "هزینه سنگ‌های قیمتی", Account.EXPENSE, Account.COST_OF_GOODS_SOLD),
    ("5200", "Direct Labor", "دستمزد مستقیم", Account.EXPENSE, Account.COST_OF_GOODS_SOLD),
    ("5300", "Manufacturing Overhead", "سربار تولید", Account.EXPENSE, Account.COST_OF_GOODS_SOLD),
    # Operating expenses
    ("6110", "Advertising", "تبلیغات", Account.EXPENSE, Account.OPERATING_EXPENSE),
    ("6120", "Sales Commissions", "کمیسیون فروش", Account.EXPENSE, Account.OPERATING_EXPENSE),
    ("6210", "Office Supplies", "لوازم اداری", Account.EXPENSE, Account.OPERATING_EXPENSE),
    ("6220", "Utilities", "آب و برق و گاز", Account.EXPENSE, Account.OPERATING_EXPENSE),
    ("6230", "Insurance", "بیمه", Account.EXPENSE, Account.OPERATING_EXPENSE),
    ("6240", "Professional Fees", "حق‌الزحمه حرفه‌ای", Account.EXPENSE, Account.OPERATING_EXPENSE),
    ("6250", "Depreciation Expense", "هزینه استهلاک", Account.EXPENSE, Account.OPERATING_EXPENSE),
    # Financial expenses
    ("6310", "Interest Expense", "هزینه سود", Account.EXPENSE, Account.OTHER_EXPENSE),
    ("6320", "Bank Charges", "کارمزد بانک", Account.EXPENSE, Account.OTHER_EXPENSE),
    (MISC_EXPENSE_CODE, "Miscellaneous Expense", "هزینه متفرقه", Account.EXPENSE, Account.OTHER_EXPENSE),
]

STANDARD_ACCOUNTS = {row[0]: row for row in JEWELRY_CHART}


def find_or_create_account(
    code: str,
    *,
    name: str,
    account_type: str,
    subtype: str = "",
    name_localized: str = "",
) -> Account:
    """
    Return the account with this code, creating it when absent.

    An existing account is returned as-is, even if inactive; the ledger
    decides whether it may be posted to.
    """
    code = (code or "").strip()
    existing = Account.objects.filter(code=code).first()
    if existing is not None:
        return existing

    try:
        with transaction.atomic():
            account = Account.objects.create(
                code=code,
                name=name,
                name_localized=name_localized,
                account_type=account_type,
                subtype=subtype,
                currency=get_base_currency(),
                description=f"Auto-generated account for {name}",
                is_active=True,
            )
    except IntegrityError:
        # Lost a creation race: the other writer's row is the account
        account = Account.objects.get(code=code)
    else:
        logger.info(
            "Standard account created on demand",
            extra={"account_code": code, "account_type": account_type},
        )
    return account


def get_or_create_standard_account(code: str) -> Account:
    row = STANDARD_ACCOUNTS.get(code)
    if row is None:
        raise AccountResolutionError(f"{code} is not a standard account code")

    _, name, name_localized, account_type, subtype = row
    return find_or_create_account(
        code,
        name=name,
        name_localized=name_localized,
        account_type=account_type,
        subtype=subtype,
    )


def get_income_summary_account() -> Account:
    return get_or_create_standard_account(INCOME_SUMMARY_CODE)


def get_misc_expense_account() -> Account:
    return get_or_create_standard_account(MISC_EXPENSE_CODE)


def active_accounts(*types: str) -> QuerySet:
    qs = Account.objects.filter(is_active=True)
    if types:
        qs = qs.filter(account_type__in=types)
    return qs.order_by("code")


def cash_accounts() -> QuerySet:
    return active_accounts(Account.ASSET).filter(
        Q(code__startswith=CASH_CODE_PREFIX)
        | Q(name__icontains="cash")
        | Q(name__icontains="bank")
    )


def tax_liability_accounts() -> QuerySet:
    return active_accounts(Account.LIABILITY).filter(
        Q(name__icontains="tax") | Q(name__icontains="vat")
    )


def payable_accounts() -> QuerySet:
    return (
        active_accounts(Account.LIABILITY)
        .filter(subtype=Account.CURRENT_LIABILITY, name__icontains="payable")
        .exclude(Q(name__icontains="tax") | Q(name__icontains="vat"))
    )


def sales_revenue_accounts() -> QuerySet:
    return active_accounts(Account.REVENUE).filter(subtype=Account.OPERATING_REVENUE)


def other_revenue_accounts() -> QuerySet:
    return active_accounts(Account.REVENUE).exclude(subtype=Account.OPERATING_REVENUE)

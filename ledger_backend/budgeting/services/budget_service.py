# budgeting/services/budget_service.py

"""
======================================================
PATH: budgeting/services/budget_service.py
======================================================
BUDGET ENGINE

Writes (Budget / BudgetLine only, never the ledger):
- create_budget / create_budget_line
- approve_budget             draft -> approved
- generate_budget_from_history
- create_budget_revision     clone + overrides, original -> superseded

Reads (inside snapshot_read, actuals from the ledger):
- perform_variance_analysis
- generate_budget_forecast

Actuals follow the ledger's period-balance convention:
    revenue / liability / equity -> credits - debits
    asset / expense              -> debits - credits

Variance status:
- |variance %| <= 10                  -> on_track
- revenue accounts                    -> favorable iff variance % > 0
- every other account type            -> favorable iff variance % < 0
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Mapping

from django.conf import settings
from django.db import transaction

from accounting.models.account import Account
from accounting.money import ZERO, MoneyError, month_bounds, q2, to_major_number, to_money
from accounting.services.audit import log_activity
from accounting.services.balance_service import account_totals, signed_balance
from accounting.services.snapshot import snapshot_read
from budgeting.models.budget import MONTH_FIELDS, Budget, BudgetLine, BudgetStatus
from budgeting.services.exceptions import BudgetError

logger = logging.getLogger(__name__)

VARIANCE_THRESHOLD = Decimal("10")

ON_TRACK = "on_track"
FAVORABLE = "favorable"
UNFAVORABLE = "unfavorable"


def _pct(part: Decimal, whole: Decimal) -> Decimal:
    if not whole:
        return ZERO
    return q2(part / whole * 100)


def _month_amount(month: str, value) -> Decimal:
    try:
        return to_money(value)
    except MoneyError as exc:
        raise BudgetError(f"Invalid {month} amount: {value!r}") from exc


def _budget_period(budget: Budget, as_of: date) -> tuple[date, int]:
    """as_of capped at the budget end date, and the budget months elapsed by then."""
    effective = min(as_of, budget.end_date)
    if effective.year < budget.budget_year:
        return effective, 0
    if effective.year > budget.budget_year:
        return effective, 12
    return effective, effective.month


def get_variance_status(variance_percentage, account_type: str) -> str:
    pct = Decimal(str(variance_percentage))

    if abs(pct) <= VARIANCE_THRESHOLD:
        return ON_TRACK

    if account_type == Account.REVENUE:
        return FAVORABLE if pct > 0 else UNFAVORABLE
    return FAVORABLE if pct < 0 else UNFAVORABLE


# ======================================================
# CREATE
# ======================================================


@transaction.atomic
def create_budget(
    *,
    name: str,
    budget_year: int,
    start_date: date,
    end_date: date,
    actor_id: int | None,
    description: str = "",
    name_localized: str = "",
    currency: str | None = None,
    lines: Iterable[Mapping] = (),
    parent_budget: Budget | None = None,
    revision_number: int = 0,
) -> Budget:
    budget = Budget.objects.create(
        name=name,
        name_localized=name_localized or "",
        description=description or "",
        budget_year=budget_year,
        start_date=start_date,
        end_date=end_date,
        status=BudgetStatus.DRAFT,
        currency=currency or getattr(settings, "LEDGER_BASE_CURRENCY", "USD"),
        parent_budget=parent_budget,
        revision_number=revision_number,
        created_by=actor_id,
    )

    for line in lines:
        create_budget_line(budget, line)

    log_activity(budget, "budget_created", new_values={"name": budget.name, "year": budget.budget_year})
    return budget


def create_budget_line(budget: Budget, data: Mapping) -> BudgetLine:
    """
    data: account_id plus any of category, subcategory, cost_center_id,
    department_id, notes, is_active and the twelve month names.
    A supplied total_budget is ignored; it is always the sum of the months.
    """
    account_id = data.get("account_id")
    account = Account.objects.filter(pk=account_id).first()
    if account is None:
        raise BudgetError(f"Account {account_id} does not exist")

    return BudgetLine.objects.create(
        budget=budget,
        account=account,
        account_code=account.code,
        account_name=account.name,
        category=data.get("category") or account.account_type,
        subcategory=data.get("subcategory") or "",
        cost_center_id=data.get("cost_center_id"),
        department_id=data.get("department_id"),
        notes=data.get("notes") or "",
        is_active=data.get("is_active", True),
        **{month: _month_amount(month, data.get(month)) for month in MONTH_FIELDS},
    )


@transaction.atomic
def approve_budget(budget: Budget, *, actor_id: int | None, at: datetime) -> Budget:
    locked = Budget.objects.select_for_update().get(pk=budget.pk)

    if locked.status != BudgetStatus.DRAFT:
        raise BudgetError(f"Budget {locked.pk} is {locked.status}; only draft budgets can be approved")

    locked.status = BudgetStatus.APPROVED
    locked.approved_by = actor_id
    locked.approved_at = at
    locked.save()

    log_activity(
        locked,
        "budget_approved",
        old_values={"status": BudgetStatus.DRAFT},
        new_values={"status": BudgetStatus.APPROVED, "approved_by": actor_id},
    )
    return locked


# ======================================================
# HISTORY
# ======================================================


def _monthly_actuals(year: int) -> dict[int, list[Decimal]]:
    """
    Per account with activity in `year`: twelve signed period balances.
    One aggregate query per month.
    """
    per_month = [account_totals(start=s, end=e) for s, e in (month_bounds(year, m) for m in range(1, 13))]

    ids = set()
    for totals in per_month:
        ids.update(totals)

    accounts = Account.objects.in_bulk(ids)
    data = {}
    for account_id, account in accounts.items():
        data[account_id] = [
            signed_balance(account, *totals.get(account_id, (ZERO, ZERO))) for totals in per_month
        ]
    return data


def generate_budget_from_history(
    base_year: int,
    target_year: int,
    growth_rate=0,
    *,
    actor_id: int | None,
) -> Budget:
    growth = Decimal(str(growth_rate or 0))
    factor = 1 + growth / 100

    with snapshot_read():
        history = _monthly_actuals(base_year)

    with transaction.atomic():
        budget = create_budget(
            name=f"Budget {target_year} (Generated from {base_year})",
            description=f"Auto-generated budget based on {base_year} actuals with {growth}% growth",
            budget_year=target_year,
            start_date=date(target_year, 1, 1),
            end_date=date(target_year, 12, 31),
            actor_id=actor_id,
        )

        for account_id, months in sorted(history.items()):
            create_budget_line(
                budget,
                {
                    "account_id": account_id,
                    **{name: q2(amount * factor) for name, amount in zip(MONTH_FIELDS, months)},
                },
            )

    logger.info(
        "Budget generated from history",
        extra={"budget_id": budget.pk, "base_year": base_year, "target_year": target_year, "lines": len(history)},
    )
    return budget


# ======================================================
# VARIANCE
# ======================================================


def _line_status(line: BudgetLine, variance_percentage: Decimal) -> str:
    return get_variance_status(variance_percentage, line.account.account_type)


def _category_type(lines: list[BudgetLine]) -> str:
    if lines and all(line.account.account_type == Account.REVENUE for line in lines):
        return Account.REVENUE
    return Account.EXPENSE


def _monthly_breakdown(
    line: BudgetLine,
    as_of: date,
    monthly_totals: dict[int, dict[int, tuple[Decimal, Decimal]]],
) -> list[dict]:
    rows = []
    for month, name in enumerate(MONTH_FIELDS, start=1):
        start, _ = month_bounds(line.budget.budget_year, month)
        completed = start <= as_of

        actual = ZERO
        if completed:
            actual = signed_balance(line.account, *monthly_totals[month].get(line.account_id, (ZERO, ZERO)))

        budgeted = line.amount_for_month(month)
        rows.append(
            {
                "month": name,
                "month_name": start.strftime("%B"),
                "budget": to_major_number(budgeted),
                "actual": to_major_number(actual),
                "variance": to_major_number(actual - budgeted),
                "is_completed": completed,
            }
        )
    return rows


def perform_variance_analysis(budget: Budget, *, as_of: date) -> dict:
    period_end, current_month = _budget_period(budget, as_of)

    with snapshot_read():
        lines = list(budget.lines.filter(is_active=True).select_related("account", "budget"))
        ids = [line.account_id for line in lines]

        ytd_totals = account_totals(ids, start=budget.start_date, end=period_end)
        monthly_totals = {}
        for month in range(1, 13):
            start, end = month_bounds(budget.budget_year, month)
            if start <= period_end:
                monthly_totals[month] = account_totals(ids, start=start, end=end)

    accounts = []
    categories: dict[str, dict] = {}
    category_lines: dict[str, list[BudgetLine]] = {}
    total_budget = ZERO
    total_actual = ZERO

    for line in lines:
        ytd_budget = q2(line.ytd_budget(current_month))
        ytd_actual = signed_balance(line.account, *ytd_totals.get(line.account_id, (ZERO, ZERO)))
        variance = q2(ytd_actual - ytd_budget)
        pct = _pct(variance, ytd_budget)

        accounts.append(
            {
                "account_id": line.account_id,
                "account_code": line.account_code,
                "account_name": line.account_name,
                "category": line.category,
                "ytd_budget": to_major_number(ytd_budget),
                "ytd_actual": to_major_number(ytd_actual),
                "variance": to_major_number(variance),
                "variance_percentage": float(pct),
                "status": _line_status(line, pct),
                "monthly_breakdown": _monthly_breakdown(line, period_end, monthly_totals),
            }
        )

        bucket = categories.setdefault(
            line.category,
            {"category": line.category, "ytd_budget": ZERO, "ytd_actual": ZERO, "variance": ZERO, "account_count": 0},
        )
        bucket["ytd_budget"] += ytd_budget
        bucket["ytd_actual"] += ytd_actual
        bucket["variance"] += variance
        bucket["account_count"] += 1
        category_lines.setdefault(line.category, []).append(line)

        total_budget += ytd_budget
        total_actual += ytd_actual

    category_rows = []
    for name, bucket in categories.items():
        pct = _pct(bucket["variance"], bucket["ytd_budget"])
        category_rows.append(
            {
                "category": name,
                "ytd_budget": to_major_number(bucket["ytd_budget"]),
                "ytd_actual": to_major_number(bucket["ytd_actual"]),
                "variance": to_major_number(bucket["variance"]),
                "variance_percentage": float(pct),
                "account_count": bucket["account_count"],
                "status": get_variance_status(pct, _category_type(category_lines[name])),
            }
        )

    total_variance = q2(total_actual - total_budget)

    return {
        "budget_id": budget.pk,
        "budget_name": budget.name,
        "analysis_date": as_of.isoformat(),
        "period_covered": f"January - {period_end.strftime('%B %Y')}",
        "summary": {
            "total_budget_ytd": to_major_number(total_budget),
            "total_actual_ytd": to_major_number(total_actual),
            "total_variance_ytd": to_major_number(total_variance),
            "variance_percentage": float(_pct(total_variance, total_budget)),
        },
        "categories": category_rows,
        "accounts": accounts,
    }


# ======================================================
# REVISIONS
# ======================================================


def _normalize_overrides(overrides: Mapping) -> dict[int, dict]:
    normalized = {}
    for key, fields in (overrides or {}).items():
        try:
            account_id = int(key)
        except (TypeError, ValueError) as exc:
            raise BudgetError(f"Invalid account id in revision: {key!r}") from exc
        if not isinstance(fields, Mapping):
            raise BudgetError(f"Revision for account {account_id} must map month names to amounts")
        normalized[account_id] = {
            month: _month_amount(month, value) for month, value in fields.items() if month in MONTH_FIELDS
        }
    return normalized


@transaction.atomic
def create_budget_revision(
    original: Budget,
    overrides: Mapping,
    reason: str,
    *,
    actor_id: int | None,
) -> Budget:
    """
    Clone `original` into a new draft revision.

    overrides: {account_id: {"march": "1500.00", ...}}. Only month names are
    applied; any other key is ignored. Lines for accounts not listed are
    copied unchanged.
    """
    locked = Budget.objects.select_for_update().get(pk=original.pk)
    if locked.status == BudgetStatus.SUPERSEDED:
        raise BudgetError(f"Budget {locked.pk} is already superseded by a revision")

    changes = _normalize_overrides(overrides)
    number = locked.revision_number + 1

    revised = create_budget(
        name=f"{locked.name} (Revision {number})",
        name_localized=f"{locked.name_localized} (Revision {number})" if locked.name_localized else "",
        description=f"{locked.description}\n\nRevision Reason: {reason}".strip(),
        budget_year=locked.budget_year,
        start_date=locked.start_date,
        end_date=locked.end_date,
        currency=locked.currency,
        parent_budget=locked,
        revision_number=number,
        actor_id=actor_id,
    )

    for line in locked.lines.all().order_by("id"):
        data = {
            "account_id": line.account_id,
            "category": line.category,
            "subcategory": line.subcategory,
            "cost_center_id": line.cost_center_id,
            "department_id": line.department_id,
            "notes": line.notes,
            "is_active": line.is_active,
            **line.monthly_amounts(),
        }
        data.update(changes.get(line.account_id, {}))
        create_budget_line(revised, data)

    old_status = locked.status
    locked.status = BudgetStatus.SUPERSEDED
    locked.save()

    log_activity(
        revised,
        "budget_revised",
        old_values={"budget_id": locked.pk, "status": old_status},
        new_values={"budget_id": revised.pk, "revision_number": number},
        metadata={"reason": reason, "revisions_count": len(changes)},
    )
    return revised


# ======================================================
# FORECAST
# ======================================================


def generate_budget_forecast(budget: Budget, *, forecast_date: date) -> dict:
    period_end, elapsed = _budget_period(budget, forecast_date)
    if elapsed == 0:
        raise BudgetError("Forecast date precedes the budget year")
    remaining = 12 - elapsed

    with snapshot_read():
        lines = list(budget.lines.filter(is_active=True).select_related("account"))
        ytd_totals = account_totals(
            [line.account_id for line in lines],
            start=budget.start_date,
            end=period_end,
        )

    rows = []
    summary = {
        "total_annual_budget": ZERO,
        "total_ytd_actual": ZERO,
        "total_forecast_remaining": ZERO,
        "total_forecast_annual": ZERO,
        "total_variance_forecast": ZERO,
    }

    for line in lines:
        ytd_actual = signed_balance(line.account, *ytd_totals.get(line.account_id, (ZERO, ZERO)))
        ytd_budget = q2(line.ytd_budget(elapsed))
        average = q2(ytd_actual / elapsed)
        forecast_remaining = q2(average * remaining)
        forecast_annual = q2(ytd_actual + forecast_remaining)
        variance = q2(forecast_annual - line.total_budget)

        rows.append(
            {
                "account_id": line.account_id,
                "account_name": line.account_name,
                "annual_budget": to_major_number(line.total_budget),
                "ytd_budget": to_major_number(ytd_budget),
                "ytd_actual": to_major_number(ytd_actual),
                "average_monthly_actual": to_major_number(average),
                "forecast_remaining": to_major_number(forecast_remaining),
                "forecast_annual": to_major_number(forecast_annual),
                "variance_forecast": to_major_number(variance),
                "variance_percentage": float(_pct(variance, line.total_budget)),
            }
        )

        summary["total_annual_budget"] += line.total_budget
        summary["total_ytd_actual"] += ytd_actual
        summary["total_forecast_remaining"] += forecast_remaining
        summary["total_forecast_annual"] += forecast_annual
        summary["total_variance_forecast"] += variance

    return {
        "budget_id": budget.pk,
        "forecast_date": forecast_date.isoformat(),
        "remaining_months": remaining,
        "accounts": rows,
        "summary": {key: to_major_number(value) for key, value in summary.items()},
    }

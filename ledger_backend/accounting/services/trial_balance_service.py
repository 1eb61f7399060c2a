# accounting/services/trial_balance_service.py

from __future__ import annotations

from datetime import date

from accounting.models.account import Account
from accounting.money import ZERO, q2, to_major_number, to_minor_int, within_tolerance
from accounting.services.balance_service import account_totals
from accounting.services.snapshot import snapshot_read


class TrialBalanceService:
    """
    Trial Balance computation service.

    Guarantees:
    - Every account with a non-zero balance is listed, active or not,
      so the columns always reflect the whole ledger
    - Raw balance (debits - credits) > 0 goes to the debit column,
      < 0 to the credit column, regardless of account type
    - balanced iff |total debit - total credit| <= tolerance
    - Reads one consistent snapshot; returns JSON-safe numeric values
    """

    def __init__(self, account_model=Account):
        self.Account = account_model

    def generate(self, *, as_of: date | None = None) -> dict:
        with snapshot_read():
            totals = account_totals(end=as_of)
            accounts = list(
                self.Account.objects.filter(id__in=list(totals.keys()))
                .only("id", "code", "name", "name_localized", "account_type", "is_active")
                .order_by("code")
            )

        accounts_output = []
        total_debit = ZERO
        total_credit = ZERO

        for acc in accounts:
            debits, credits = totals[acc.id]
            raw = q2(debits - credits)
            if raw == ZERO:
                continue

            debit = raw if raw > 0 else ZERO
            credit = -raw if raw < 0 else ZERO

            accounts_output.append(
                {
                    "account_id": acc.id,
                    "account_code": acc.code,
                    "account_name": acc.name,
                    "account_name_localized": acc.localized_name,
                    "account_type": acc.account_type,
                    "is_active": acc.is_active,
                    "debit": to_major_number(debit),
                    "credit": to_major_number(credit),
                    "debit_minor": to_minor_int(debit),
                    "credit_minor": to_minor_int(credit),
                }
            )

            total_debit += debit
            total_credit += credit

        total_debit = q2(total_debit)
        total_credit = q2(total_credit)

        return {
            "as_of": as_of.isoformat() if as_of else None,
            "accounts": accounts_output,
            "totals": {
                "debit": to_major_number(total_debit),
                "credit": to_major_number(total_credit),
                "debit_minor": to_minor_int(total_debit),
                "credit_minor": to_minor_int(total_credit),
                "difference": to_major_number(total_debit - total_credit),
            },
            "is_balanced": within_tolerance(total_debit, total_credit),
        }

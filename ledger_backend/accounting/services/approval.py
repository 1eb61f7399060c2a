# accounting/services/approval.py

"""
TRANSACTION APPROVAL STATE MACHINE

States: (draft, never persisted) -> PENDING -> APPROVED
                                 \\-------------> APPROVED

- initial_approval(): chooses the state a new transaction is persisted in
- approve_transaction(): the only transition on a persisted transaction

Actor and timestamp are always passed in; nothing here reads a current user
or the wall clock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.db import transaction
from django.utils import timezone

from accounting.models.transaction import ApprovalStatus, Transaction
from accounting.services.audit import log_activity
from accounting.services.exceptions import ApprovalError


def _as_aware_dt(dt: datetime) -> datetime:
    if timezone.is_naive(dt):
        return timezone.make_aware(dt, timezone.get_current_timezone())
    return dt


@dataclass(frozen=True)
class ApprovalState:
    status: str
    approved_by: Optional[int]
    approved_at: Optional[datetime]


def initial_approval(*, requires_approval: bool, actor_id: int | None, at: datetime) -> ApprovalState:
    if requires_approval:
        return ApprovalState(status=ApprovalStatus.PENDING, approved_by=None, approved_at=None)
    return ApprovalState(
        status=ApprovalStatus.APPROVED,
        approved_by=actor_id,
        approved_at=_as_aware_dt(at),
    )


@transaction.atomic
def approve_transaction(txn: Transaction, *, actor_id: int | None, at: datetime) -> Transaction:
    locked = Transaction.objects.select_for_update().get(pk=txn.pk)

    if locked.approval_status != ApprovalStatus.PENDING:
        raise ApprovalError(
            f"Transaction {locked.reference_number} is {locked.approval_status}; only pending transactions can be approved"
        )

    locked.approval_status = ApprovalStatus.APPROVED
    locked.approved_by = actor_id
    locked.approved_at = _as_aware_dt(at)
    locked.save(update_fields=["approval_status", "approved_by", "approved_at"])

    log_activity(
        locked,
        "approved",
        old_values={"approval_status": ApprovalStatus.PENDING},
        new_values={"approval_status": ApprovalStatus.APPROVED, "approved_by": actor_id},
    )
    return locked

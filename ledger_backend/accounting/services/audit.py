# accounting/services/audit.py

"""
AUDIT LOG HOOK (FIRE-AND-FORGET)

log_activity() is called by ledger/budget services after a successful
mutation. Dispatch is deferred with transaction.on_commit, so:
- nothing is emitted for a rolled-back unit
- a failing sink never rolls back the ledger mutation (errors are logged)

Sink:
- settings.LEDGER_AUDIT_SINK = "dotted.path.to.callable" (receives one dict)
- default: structured log line on the "accounting.audit" logger
"""

from __future__ import annotations

import logging
from functools import lru_cache

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("accounting.audit")


def default_sink(record: dict) -> None:
    audit_logger.info(
        "%s %s #%s",
        record["action"],
        record["entity_type"],
        record["entity_id"],
        extra={"audit": record},
    )


@lru_cache(maxsize=1)
def _resolve_sink(path: str):
    return import_string(path) if path else default_sink


def _dispatch(record: dict) -> None:
    path = (getattr(settings, "LEDGER_AUDIT_SINK", "") or "").strip()
    try:
        sink = _resolve_sink(path)
        sink(record)
    except Exception:
        logger.exception(
            "Audit sink failed; ledger mutation is unaffected",
            extra={"entity_type": record.get("entity_type"), "entity_id": record.get("entity_id")},
        )


def log_activity(
    entity,
    action: str,
    old_values: dict | None = None,
    new_values: dict | None = None,
    metadata: dict | None = None,
) -> None:
    record = {
        "entity_type": entity._meta.label_lower if hasattr(entity, "_meta") else type(entity).__name__,
        "entity_id": getattr(entity, "pk", None),
        "action": action,
        "old_values": old_values or {},
        "new_values": new_values or {},
        "metadata": metadata or {},
        "logged_at": timezone.now().isoformat(),
    }
    transaction.on_commit(lambda: _dispatch(record))

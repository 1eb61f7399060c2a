# accounting/api/params.py

"""
PATH: accounting/api/params.py

Shared query-param parsing and service-error mapping for the ledger API.

Views return {"detail": ...} payloads; service errors never leak as 500s
except ConsistencyError, which signals a ledger bug.
"""

from __future__ import annotations

from django.utils.dateparse import parse_date
from rest_framework import status
from rest_framework.response import Response

from accounting.services.exceptions import AccountingServiceError, ConsistencyError


class ParamError(ValueError):
    pass


def parse_date_param(request, name: str, *, required: bool = False):
    raw = (request.query_params.get(name) or "").strip()
    if not raw:
        if required:
            raise ParamError(f"{name} is required (YYYY-MM-DD)")
        return None

    value = parse_date(raw)
    if value is None:
        raise ParamError(f"Invalid {name} (expected YYYY-MM-DD)")
    return value


def parse_period(request):
    start = parse_date_param(request, "start_date", required=True)
    end = parse_date_param(request, "end_date", required=True)
    if start > end:
        raise ParamError("end_date must be >= start_date")
    return start, end


def bad_request(message) -> Response:
    return Response({"detail": str(message)}, status=status.HTTP_400_BAD_REQUEST)


def service_error_response(exc: AccountingServiceError) -> Response:
    if isinstance(exc, ConsistencyError):
        return Response(
            {"detail": "Ledger consistency check failed. The operation was rolled back."},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    payload = {"detail": str(exc)}
    total_debits = getattr(exc, "total_debits", None)
    total_credits = getattr(exc, "total_credits", None)
    if total_debits is not None and total_credits is not None:
        payload["total_debits"] = str(total_debits)
        payload["total_credits"] = str(total_credits)

    return Response(payload, status=status.HTTP_400_BAD_REQUEST)

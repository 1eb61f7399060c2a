"""
PATH: accounting/api/views/trial_balance.py

TRIAL BALANCE API VIEW (READ-ONLY)

GET /api/accounting/reports/trial-balance/?as_of_date=YYYY-MM-DD
- Permission-gated: requires accounting.view_transaction
- as_of_date omitted -> every posted transaction
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.params import ParamError, bad_request, parse_date_param
from accounting.services.trial_balance_service import TrialBalanceService

REPORT_PERMISSION = "accounting.view_transaction"


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(
            name="as_of_date",
            type=str,
            location=OpenApiParameter.QUERY,
            required=False,
            description="Include transactions dated on or before this day (YYYY-MM-DD).",
        ),
    ],
    responses={200: dict},
)
class TrialBalanceView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        if not request.user.has_perm(REPORT_PERMISSION):
            return Response(
                {"detail": "You do not have permission to view trial balance."},
                status=status.HTTP_403_FORBIDDEN,
            )

        try:
            as_of = parse_date_param(request, "as_of_date")
        except ParamError as exc:
            return bad_request(exc)

        data = TrialBalanceService().generate(as_of=as_of)
        return Response(data, status=status.HTTP_200_OK)

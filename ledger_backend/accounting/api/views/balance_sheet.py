# accounting/api/views/balance_sheet.py

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.params import ParamError, bad_request, parse_date_param
from accounting.api.views.trial_balance import REPORT_PERMISSION
from accounting.services.balance_sheet_service import generate_balance_sheet


class BalanceSheetView(APIView):
    """
    GET /api/accounting/reports/balance-sheet/?as_of_date=YYYY-MM-DD

    An unbalanced sheet is still returned (is_balanced=false) so the
    discrepancy is visible to the caller.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["accounting"],
        parameters=[OpenApiParameter("as_of_date", str, OpenApiParameter.QUERY, required=False)],
        responses={200: dict},
    )
    def get(self, request):
        if not request.user.has_perm(REPORT_PERMISSION):
            return Response(
                {"detail": "You do not have permission to view the balance sheet."},
                status=status.HTTP_403_FORBIDDEN,
            )

        try:
            as_of = parse_date_param(request, "as_of_date")
        except ParamError as exc:
            return bad_request(exc)

        return Response(generate_balance_sheet(as_of=as_of), status=status.HTTP_200_OK)

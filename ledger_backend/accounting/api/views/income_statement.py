# accounting/api/views/income_statement.py

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.params import ParamError, bad_request, parse_period
from accounting.api.views.trial_balance import REPORT_PERMISSION
from accounting.services.income_statement_service import generate_income_statement

PERIOD_PARAMETERS = [
    OpenApiParameter("start_date", str, OpenApiParameter.QUERY, required=True, description="YYYY-MM-DD"),
    OpenApiParameter("end_date", str, OpenApiParameter.QUERY, required=True, description="YYYY-MM-DD"),
]


class IncomeStatementView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["accounting"], parameters=PERIOD_PARAMETERS, responses={200: dict})
    def get(self, request):
        if not request.user.has_perm(REPORT_PERMISSION):
            return Response(
                {"detail": "You do not have permission to view the income statement."},
                status=status.HTTP_403_FORBIDDEN,
            )

        try:
            start, end = parse_period(request)
        except ParamError as exc:
            return bad_request(exc)

        data = generate_income_statement(start_date=start, end_date=end)
        return Response(data, status=status.HTTP_200_OK)

# accounting/api/views/cash_flow_statement.py

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.params import ParamError, bad_request, parse_period
from accounting.api.views.income_statement import PERIOD_PARAMETERS
from accounting.api.views.trial_balance import REPORT_PERMISSION
from accounting.services.cash_flow_statement_service import generate_cash_flow_statement


class CashFlowStatementView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["accounting"], parameters=PERIOD_PARAMETERS, responses={200: dict})
    def get(self, request):
        if not request.user.has_perm(REPORT_PERMISSION):
            return Response(
                {"detail": "You do not have permission to view the cash flow statement."},
                status=status.HTTP_403_FORBIDDEN,
            )

        try:
            start, end = parse_period(request)
        except ParamError as exc:
            return bad_request(exc)

        data = generate_cash_flow_statement(start_date=start, end_date=end)
        return Response(data, status=status.HTTP_200_OK)

# accounting/api/views/general_ledger.py

"""
GET /api/accounting/reports/general-ledger/<account_id>/?start_date=...&end_date=...
"""

from __future__ import annotations

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.params import ParamError, bad_request, parse_period
from accounting.api.views.income_statement import PERIOD_PARAMETERS
from accounting.api.views.trial_balance import REPORT_PERMISSION
from accounting.models.account import Account
from accounting.services.general_ledger_service import generate_general_ledger


class GeneralLedgerView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["accounting"], parameters=PERIOD_PARAMETERS, responses={200: dict})
    def get(self, request, account_id: int):
        if not request.user.has_perm(REPORT_PERMISSION):
            return Response(
                {"detail": "You do not have permission to view the general ledger."},
                status=status.HTTP_403_FORBIDDEN,
            )

        account = get_object_or_404(Account, pk=account_id)

        try:
            start, end = parse_period(request)
        except ParamError as exc:
            return bad_request(exc)

        data = generate_general_ledger(account, start_date=start, end_date=end)
        return Response(data, status=status.HTTP_200_OK)

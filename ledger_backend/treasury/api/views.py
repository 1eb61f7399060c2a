# treasury/api/views.py

"""
======================================================
PATH: treasury/api/views.py
======================================================
TREASURY API

- GET  /api/treasury/forecast/?start_date=&end_date=&growth_rate=
- POST /api/treasury/reconciliation/           match a bank statement (read-only)
- POST /api/treasury/reconciliation/adjust/    match, then post the proposed adjustments
"""

from __future__ import annotations

from django.shortcuts import get_object_or_404
from django.utils import timezone
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.params import ParamError, bad_request, parse_period, service_error_response
from accounting.api.serializers.transactions import TransactionSerializer
from accounting.api.views.income_statement import PERIOD_PARAMETERS
from accounting.api.views.trial_balance import REPORT_PERMISSION
from accounting.models.account import Account
from accounting.services.exceptions import AccountingServiceError
from treasury.api.serializers import BankReconciliationSerializer
from treasury.services.cash_flow_forecast_service import generate_forecast
from treasury.services.exceptions import TreasuryError
from treasury.services.reconciliation_service import (
    create_reconciliation_adjustments,
    perform_bank_reconciliation,
)

POST_PERMISSION = "accounting.add_transaction"


def _forbidden(what: str) -> Response:
    return Response(
        {"detail": f"You do not have permission to {what}."},
        status=status.HTTP_403_FORBIDDEN,
    )


class CashFlowForecastView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["treasury"],
        parameters=[
            *PERIOD_PARAMETERS,
            OpenApiParameter("growth_rate", str, OpenApiParameter.QUERY, description="Decimal, default 0.05"),
        ],
        responses={200: dict},
    )
    def get(self, request):
        if not request.user.has_perm(REPORT_PERMISSION):
            return _forbidden("view cash flow forecasts")

        try:
            start, end = parse_period(request)
        except ParamError as exc:
            return bad_request(exc)

        options = {}
        if request.query_params.get("growth_rate"):
            options["growth_rate"] = request.query_params["growth_rate"]

        try:
            data = generate_forecast(start, end, options=options)
        except TreasuryError as exc:
            return bad_request(exc)

        return Response(data, status=status.HTTP_200_OK)


class BankReconciliationView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["treasury"], request=BankReconciliationSerializer, responses={200: dict})
    def post(self, request):
        if not request.user.has_perm(REPORT_PERMISSION):
            return _forbidden("reconcile bank accounts")

        ser = BankReconciliationSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        account = get_object_or_404(Account, pk=ser.validated_data["account_id"])

        try:
            data = perform_bank_reconciliation(account, ser.validated_data["statement_date"], ser.statement())
        except TreasuryError as exc:
            return bad_request(exc)

        return Response(data, status=status.HTTP_200_OK)


class ReconciliationAdjustmentView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["treasury"], request=BankReconciliationSerializer, responses={201: dict})
    def post(self, request):
        if not request.user.has_perm(POST_PERMISSION):
            return _forbidden("post reconciliation adjustments")

        ser = BankReconciliationSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        account = get_object_or_404(Account, pk=ser.validated_data["account_id"])

        try:
            reconciliation = perform_bank_reconciliation(
                account,
                ser.validated_data["statement_date"],
                ser.statement(),
            )
            created = create_reconciliation_adjustments(
                reconciliation,
                actor_id=request.user.id,
                as_of=timezone.now(),
            )
        except TreasuryError as exc:
            return bad_request(exc)
        except AccountingServiceError as exc:
            return service_error_response(exc)

        return Response(
            {
                "reconciliation": reconciliation,
                "transactions": TransactionSerializer(created, many=True).data,
            },
            status=status.HTTP_201_CREATED,
        )

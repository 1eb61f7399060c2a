# accounting/api/views/transactions.py

"""
======================================================
PATH: accounting/api/views/transactions.py
======================================================
TRANSACTION VIEWSET

Read:
- GET  /api/accounting/transactions/                 (filters: transaction_type, approval_status,
                                                      transaction_date, source_type)
- GET  /api/accounting/transactions/<id>/

Write (every write goes through the ledger services; nothing is saved here):
- POST /api/accounting/transactions/                 advanced entry (multi-currency + tax)
- POST /api/accounting/transactions/adjusting/       adjusting entry (always pending approval)
- POST /api/accounting/transactions/recurring/       recurring batch
- POST /api/accounting/transactions/closing/         period closing batch
- POST /api/accounting/transactions/<id>/reverse/    reversing entry
- POST /api/accounting/transactions/<id>/approve/    pending -> approved

The acting user id and the request time are passed explicitly into the
services; the services never look them up themselves.
"""

from __future__ import annotations

from django.utils import timezone
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.params import service_error_response
from accounting.api.serializers.transactions import (
    ClosingEntriesSerializer,
    RecurringEntrySerializer,
    ReverseTransactionSerializer,
    TransactionCreateSerializer,
    TransactionSerializer,
    batch_result_payload,
)
from accounting.models.transaction import Transaction
from accounting.services.approval import approve_transaction
from accounting.services.exceptions import AccountingServiceError
from accounting.services.journal_entry_service import (
    create_adjusting_entry,
    create_advanced_entry,
    create_closing_entries,
    create_recurring_entries,
    create_reversing_entry,
)

VIEW_PERMISSION = "accounting.view_transaction"
POST_PERMISSION = "accounting.add_transaction"
APPROVE_PERMISSION = "accounting.change_transaction"

ACTION_PERMISSIONS = {
    "list": VIEW_PERMISSION,
    "retrieve": VIEW_PERMISSION,
    "create": POST_PERMISSION,
    "adjusting": POST_PERMISSION,
    "recurring": POST_PERMISSION,
    "closing": POST_PERMISSION,
    "reverse": POST_PERMISSION,
    "approve": APPROVE_PERMISSION,
}


@extend_schema(tags=["accounting"])
class TransactionViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated]
    serializer_class = TransactionSerializer
    filterset_fields = ("transaction_type", "approval_status", "transaction_date", "source_type")

    queryset = (
        Transaction.objects.all()
        .prefetch_related("entries__account")
        .order_by("-transaction_date", "-id")
    )

    def check_permissions(self, request):
        super().check_permissions(request)

        perm = ACTION_PERMISSIONS.get(self.action, VIEW_PERMISSION)
        if not request.user.has_perm(perm):
            raise PermissionDenied("You do not have permission to perform this ledger action.")

    def _context(self, request):
        return {"actor_id": request.user.id, "as_of": timezone.now()}

    # ======================================================
    # ADVANCED ENTRY
    # ======================================================

    @extend_schema(request=TransactionCreateSerializer, responses={201: TransactionSerializer})
    def create(self, request, *args, **kwargs):
        ser = TransactionCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            txn = create_advanced_entry(ser.to_request(), **self._context(request))
        except AccountingServiceError as exc:
            return service_error_response(exc)

        return Response(TransactionSerializer(txn).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=TransactionCreateSerializer, responses={201: TransactionSerializer})
    @action(detail=False, methods=["post"], url_path="adjusting")
    def adjusting(self, request):
        ser = TransactionCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            txn = create_adjusting_entry(ser.to_request(), **self._context(request))
        except AccountingServiceError as exc:
            return service_error_response(exc)

        return Response(TransactionSerializer(txn).data, status=status.HTTP_201_CREATED)

    # ======================================================
    # BATCHES
    # ======================================================

    @extend_schema(request=RecurringEntrySerializer, responses={201: dict, 207: dict})
    @action(detail=False, methods=["post"], url_path="recurring")
    def recurring(self, request):
        ser = RecurringEntrySerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        try:
            result = create_recurring_entries(
                ser.to_request(),
                start_date=data["start_date"],
                end_date=data["end_date"],
                frequency=data["frequency"],
                reference_prefix=data.get("reference_prefix") or "REC",
                all_or_nothing=data.get("all_or_nothing", False),
                **self._context(request),
            )
        except AccountingServiceError as exc:
            return service_error_response(exc)

        code = status.HTTP_201_CREATED if result.ok else status.HTTP_207_MULTI_STATUS
        return Response(batch_result_payload(result), status=code)

    @extend_schema(request=ClosingEntriesSerializer, responses={201: dict, 207: dict})
    @action(detail=False, methods=["post"], url_path="closing")
    def closing(self, request):
        ser = ClosingEntriesSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        result = create_closing_entries(ser.validated_data["period_end"], **self._context(request))

        code = status.HTTP_201_CREATED if result.ok else status.HTTP_207_MULTI_STATUS
        return Response(batch_result_payload(result), status=code)

    # ======================================================
    # REVERSE / APPROVE
    # ======================================================

    @extend_schema(request=ReverseTransactionSerializer, responses={201: TransactionSerializer})
    @action(detail=True, methods=["post"], url_path="reverse")
    def reverse(self, request, pk=None):
        original: Transaction = self.get_object()

        ser = ReverseTransactionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            txn = create_reversing_entry(
                original,
                reversing_date=ser.validated_data["reversing_date"],
                description=ser.validated_data.get("description") or None,
                **self._context(request),
            )
        except AccountingServiceError as exc:
            return service_error_response(exc)

        return Response(TransactionSerializer(txn).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses={200: TransactionSerializer})
    @action(detail=True, methods=["post"], url_path="approve")
    def approve(self, request, pk=None):
        txn: Transaction = self.get_object()

        ctx = self._context(request)
        try:
            txn = approve_transaction(txn, actor_id=ctx["actor_id"], at=ctx["as_of"])
        except AccountingServiceError as exc:
            return service_error_response(exc)

        return Response(TransactionSerializer(txn).data, status=status.HTTP_200_OK)

# budgeting/api/views.py

"""
======================================================
PATH: budgeting/api/views.py
======================================================
BUDGET VIEWSET

- GET  /api/budgeting/budgets/                         (filters: budget_year, status)
- GET  /api/budgeting/budgets/<id>/
- POST /api/budgeting/budgets/                         budget + lines
- POST /api/budgeting/budgets/from-history/            generate from a base year
- POST /api/budgeting/budgets/<id>/approve/            draft -> approved
- POST /api/budgeting/budgets/<id>/revise/             new revision, original superseded
- GET  /api/budgeting/budgets/<id>/variance/?as_of_date=YYYY-MM-DD
- GET  /api/budgeting/budgets/<id>/forecast/?forecast_date=YYYY-MM-DD
"""

from __future__ import annotations

from django.utils import timezone
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.params import ParamError, bad_request, parse_date_param
from budgeting.api.serializers import (
    BudgetCreateSerializer,
    BudgetFromHistorySerializer,
    BudgetRevisionSerializer,
    BudgetSerializer,
)
from budgeting.models.budget import Budget
from budgeting.services.budget_service import (
    approve_budget,
    create_budget,
    create_budget_revision,
    generate_budget_forecast,
    generate_budget_from_history,
    perform_variance_analysis,
)
from budgeting.services.exceptions import BudgetError

VIEW_PERMISSION = "budgeting.view_budget"
ADD_PERMISSION = "budgeting.add_budget"
CHANGE_PERMISSION = "budgeting.change_budget"

ACTION_PERMISSIONS = {
    "create": ADD_PERMISSION,
    "from_history": ADD_PERMISSION,
    "revise": CHANGE_PERMISSION,
    "approve": CHANGE_PERMISSION,
}


@extend_schema(tags=["budgeting"])
class BudgetViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated]
    serializer_class = BudgetSerializer
    filterset_fields = ("budget_year", "status")
    search_fields = ("name", "name_localized")
    queryset = Budget.objects.all().prefetch_related("lines")

    def check_permissions(self, request):
        super().check_permissions(request)

        perm = ACTION_PERMISSIONS.get(self.action, VIEW_PERMISSION)
        if not request.user.has_perm(perm):
            raise PermissionDenied("You do not have permission to perform this budget action.")

    @extend_schema(request=BudgetCreateSerializer, responses={201: BudgetSerializer})
    def create(self, request, *args, **kwargs):
        ser = BudgetCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            budget = create_budget(actor_id=request.user.id, **ser.validated_data)
        except BudgetError as exc:
            return bad_request(exc)

        return Response(BudgetSerializer(budget).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=BudgetFromHistorySerializer, responses={201: BudgetSerializer})
    @action(detail=False, methods=["post"], url_path="from-history")
    def from_history(self, request):
        ser = BudgetFromHistorySerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        budget = generate_budget_from_history(
            data["base_year"],
            data["target_year"],
            data.get("growth_rate") or 0,
            actor_id=request.user.id,
        )
        return Response(BudgetSerializer(budget).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses={200: BudgetSerializer})
    @action(detail=True, methods=["post"], url_path="approve")
    def approve(self, request, pk=None):
        budget = self.get_object()

        try:
            budget = approve_budget(budget, actor_id=request.user.id, at=timezone.now())
        except BudgetError as exc:
            return bad_request(exc)

        return Response(BudgetSerializer(budget).data, status=status.HTTP_200_OK)

    @extend_schema(request=BudgetRevisionSerializer, responses={201: BudgetSerializer})
    @action(detail=True, methods=["post"], url_path="revise")
    def revise(self, request, pk=None):
        budget = self.get_object()

        ser = BudgetRevisionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            revised = create_budget_revision(
                budget,
                ser.validated_data.get("revisions") or {},
                ser.validated_data["reason"],
                actor_id=request.user.id,
            )
        except BudgetError as exc:
            return bad_request(exc)

        return Response(BudgetSerializer(revised).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        parameters=[OpenApiParameter("as_of_date", str, OpenApiParameter.QUERY, description="YYYY-MM-DD")],
        responses={200: dict},
    )
    @action(detail=True, methods=["get"], url_path="variance")
    def variance(self, request, pk=None):
        budget = self.get_object()

        try:
            as_of = parse_date_param(request, "as_of_date") or timezone.localdate()
        except ParamError as exc:
            return bad_request(exc)

        return Response(perform_variance_analysis(budget, as_of=as_of), status=status.HTTP_200_OK)

    @extend_schema(
        parameters=[OpenApiParameter("forecast_date", str, OpenApiParameter.QUERY, description="YYYY-MM-DD")],
        responses={200: dict},
    )
    @action(detail=True, methods=["get"], url_path="forecast")
    def forecast(self, request, pk=None):
        budget = self.get_object()

        try:
            forecast_date = parse_date_param(request, "forecast_date") or timezone.localdate()
        except ParamError as exc:
            return bad_request(exc)

        try:
            data = generate_budget_forecast(budget, forecast_date=forecast_date)
        except BudgetError as exc:
            return bad_request(exc)

        return Response(data, status=status.HTTP_200_OK)

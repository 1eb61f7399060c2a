# accounting/api/views/accounts.py

"""
PATH: accounting/api/views/accounts.py

CHART OF ACCOUNTS API

GET  /api/accounting/accounts/        list (filters: account_type, subtype, is_active)
POST /api/accounting/accounts/        create
GET  /api/accounting/accounts/<id>/   retrieve
PATCH /api/accounting/accounts/<id>/  update name / subtype / active flag

Accounts are never deleted (entries reference them with PROTECT);
deactivate instead.
"""

from drf_spectacular.utils import extend_schema
from rest_framework import mixins, viewsets
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated

from accounting.api.serializers.accounts import AccountSerializer
from accounting.models.account import Account

VIEW_PERMISSION = "accounting.view_account"
CHANGE_PERMISSIONS = {
    "create": "accounting.add_account",
    "update": "accounting.change_account",
    "partial_update": "accounting.change_account",
}


@extend_schema(tags=["accounting"])
class AccountViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated]
    serializer_class = AccountSerializer
    queryset = Account.objects.all().order_by("code")
    filterset_fields = ("account_type", "subtype", "is_active", "currency")
    search_fields = ("code", "name", "name_localized")

    def check_permissions(self, request):
        super().check_permissions(request)

        perm = CHANGE_PERMISSIONS.get(self.action, VIEW_PERMISSION)
        if not request.user.has_perm(perm):
            raise PermissionDenied("You do not have permission to manage accounts.")

# accounting/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from accounting.api.views import (
    AccountViewSet,
    BalanceSheetView,
    CashFlowStatementView,
    GeneralLedgerView,
    IncomeStatementView,
    TransactionViewSet,
    TrialBalanceView,
)

router = DefaultRouter()
router.register("accounts", AccountViewSet, basename="account")
router.register("transactions", TransactionViewSet, basename="transaction")

urlpatterns = [
    # Router endpoints
    path("", include(router.urls)),
    # Reports
    path("reports/trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
    path("reports/balance-sheet/", BalanceSheetView.as_view(), name="balance-sheet"),
    path("reports/income-statement/", IncomeStatementView.as_view(), name="income-statement"),
    path("reports/cash-flow/", CashFlowStatementView.as_view(), name="cash-flow-statement"),
    path(
        "reports/general-ledger/<int:account_id>/",
        GeneralLedgerView.as_view(),
        name="general-ledger",
    ),
]

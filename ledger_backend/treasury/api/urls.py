# treasury/api/urls.py

from django.urls import path

from treasury.api.views import (
    BankReconciliationView,
    CashFlowForecastView,
    ReconciliationAdjustmentView,
)

urlpatterns = [
    path("forecast/", CashFlowForecastView.as_view(), name="cash-flow-forecast"),
    path("reconciliation/", BankReconciliationView.as_view(), name="bank-reconciliation"),
    path(
        "reconciliation/adjust/",
        ReconciliationAdjustmentView.as_view(),
        name="bank-reconciliation-adjust",
    ),
]

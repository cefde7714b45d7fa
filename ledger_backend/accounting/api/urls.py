# accounting/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

# ViewSets live in accounting/api/view.py (singular).
from accounting.api.view import AccountViewSet, LedgerEntryViewSet
from accounting.api.views.balance_sheet import BalanceSheetView
from accounting.api.views.balances import (
    AccountBalanceView,
    BulkPartyBalancesView,
    PartyBalanceView,
    PartyLedgerTraceView,
)
from accounting.api.views.profit_and_loss import ProfitAndLossView
from accounting.api.views.reconciliation import ReconciliationRunView
from accounting.api.views.statements import AccountStatementView, PartyStatementView
from accounting.api.views.trial_balance import TrialBalanceView

router = DefaultRouter()
# The project serves its own api-root at /api/.
router.include_root_view = False
router.register("ledger-entries", LedgerEntryViewSet, basename="ledger-entry")
router.register("accounts", AccountViewSet, basename="account")

urlpatterns = [
    # Balances
    path(
        "accounts/<str:code>/balance/",
        AccountBalanceView.as_view(),
        name="account-balance",
    ),
    path(
        "parties/<str:party_type>/balances/",
        BulkPartyBalancesView.as_view(),
        name="bulk-party-balances",
    ),
    path(
        "parties/<str:party_type>/<int:party_id>/balance/",
        PartyBalanceView.as_view(),
        name="party-balance",
    ),
    path(
        "parties/<str:party_type>/<int:party_id>/trace/",
        PartyLedgerTraceView.as_view(),
        name="party-ledger-trace",
    ),
    # Statements
    path(
        "accounts/<str:code>/statement/",
        AccountStatementView.as_view(),
        name="account-statement",
    ),
    path(
        "parties/<str:party_type>/<int:party_id>/statement/",
        PartyStatementView.as_view(),
        name="party-statement",
    ),
    # Reports
    path("trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
    path("balance-sheet/", BalanceSheetView.as_view(), name="balance-sheet"),
    path("profit-and-loss/", ProfitAndLossView.as_view(), name="profit-and-loss"),
    # Jobs
    path("reconciliation/", ReconciliationRunView.as_view(), name="reconciliation-run"),
    # Router endpoints
    path("", include(router.urls)),
]

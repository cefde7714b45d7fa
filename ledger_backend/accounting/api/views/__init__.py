# accounting/api/views/__init__.py

"""
accounting.api.views package

Important:
- ViewSets are defined in accounting.api.view (singular) in this codebase.
- Do NOT import accounting.api.urls from here to avoid circular imports.
"""

from accounting.api.views.balance_sheet import BalanceSheetView
from accounting.api.views.balances import (
    AccountBalanceView,
    BulkPartyBalancesView,
    PartyBalanceView,
    PartyLedgerTraceView,
)
from accounting.api.views.profit_and_loss import ProfitAndLossView
from accounting.api.views.reconciliation import ReconciliationRunView
from accounting.api.views.trial_balance import TrialBalanceView

__all__ = [
    "AccountBalanceView",
    "PartyBalanceView",
    "BulkPartyBalancesView",
    "PartyLedgerTraceView",
    "TrialBalanceView",
    "BalanceSheetView",
    "ProfitAndLossView",
    "ReconciliationRunView",
]

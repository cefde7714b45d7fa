# accounting/api/serializers/__init__.py

from accounting.api.serializers.accounts import AccountListSerializer
from accounting.api.serializers.ledger_entries import LedgerEntrySerializer
from accounting.api.serializers.reconciliation import ReconciliationRunSerializer

__all__ = [
    "AccountListSerializer",
    "LedgerEntrySerializer",
    "ReconciliationRunSerializer",
]

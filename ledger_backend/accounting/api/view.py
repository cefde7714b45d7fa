# PATH: accounting/api/view.py

"""
PATH: accounting/api/view.py

ACCOUNTING API VIEWSETS (READ-ONLY / AUDIT SAFE)

- Ledger entries and accounts are exposed read-only; posting is never
  reachable over HTTP (originating modules call the services)
- Permission-gated via Django permissions (no role hardcoding)
- Filtering through django-filter (accounting.api.filters)

Security rules:
- LedgerEntry list requires accounting.view_ledgerentry
- Account list requires accounting.view_ledgerentry
"""

from drf_spectacular.utils import extend_schema
from rest_framework.exceptions import PermissionDenied
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import IsAuthenticated
from rest_framework.viewsets import ReadOnlyModelViewSet
from django_filters.rest_framework import DjangoFilterBackend

from accounting.api.filters import AccountFilter, LedgerEntryFilter
from accounting.api.serializers import AccountListSerializer, LedgerEntrySerializer
from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry


class _LedgerReadPermissionMixin:
    permission_denied_message = "You do not have permission to view the ledger."

    def get_queryset(self):
        if not self.request.user.has_perm("accounting.view_ledgerentry"):
            raise PermissionDenied(self.permission_denied_message)
        return super().get_queryset()


@extend_schema(tags=["accounting"])
class LedgerEntryViewSet(_LedgerReadPermissionMixin, ReadOnlyModelViewSet):
    """
    Read-only access to ledger entries (append-only, audit-safe).
    Reversed rows are included unless ?live=true.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = LedgerEntrySerializer
    http_method_names = ["get", "head", "options"]
    permission_denied_message = "You do not have permission to view ledger entries."

    queryset = LedgerEntry.objects.select_related("account")
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = LedgerEntryFilter
    ordering_fields = ["transaction_date", "created_at", "id"]
    ordering = ["-transaction_date", "-id"]


@extend_schema(tags=["accounting"])
class AccountViewSet(_LedgerReadPermissionMixin, ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = AccountListSerializer
    http_method_names = ["get", "head", "options"]
    permission_denied_message = "You do not have permission to view accounts."

    queryset = Account.objects.all()
    lookup_field = "code"
    filter_backends = [DjangoFilterBackend]
    filterset_class = AccountFilter
    pagination_class = None

    def get_queryset(self):
        return super().get_queryset().order_by("code")

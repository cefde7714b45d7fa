# accounting/api/filters.py

"""
LEDGER ENTRY FILTERS (django-filter)

    /api/accounting/ledger-entries/?account=1100
    /api/accounting/ledger-entries/?customer=7&live=true
    /api/accounting/ledger-entries/?reference_type=sale&reference_id=<uuid>
    /api/accounting/ledger-entries/?date_from=2026-01-01&date_to=2026-01-31
"""

import django_filters

from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry


class LedgerEntryFilter(django_filters.FilterSet):
    account = django_filters.CharFilter(field_name="account_id")
    transaction_id = django_filters.CharFilter()
    reference_type = django_filters.CharFilter()
    reference_id = django_filters.CharFilter()
    customer = django_filters.NumberFilter(field_name="customer_id")
    supplier = django_filters.NumberFilter(field_name="supplier_id")
    status = django_filters.ChoiceFilter(choices=LedgerEntry.STATUS_CHOICES)
    date_from = django_filters.DateFilter(field_name="transaction_date", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="transaction_date", lookup_expr="lte")
    live = django_filters.BooleanFilter(method="filter_live")

    class Meta:
        model = LedgerEntry
        fields = [
            "account",
            "transaction_id",
            "reference_type",
            "reference_id",
            "customer",
            "supplier",
            "status",
        ]

    def filter_live(self, queryset, name, value):
        return queryset.filter(reversed_at__isnull=value)


class AccountFilter(django_filters.FilterSet):
    account_type = django_filters.ChoiceFilter(choices=Account.ACCOUNT_TYPES)
    category = django_filters.ChoiceFilter(choices=Account.CATEGORIES)
    is_active = django_filters.BooleanFilter()

    class Meta:
        model = Account
        fields = ["account_type", "category", "is_active"]

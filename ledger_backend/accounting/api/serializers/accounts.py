# accounting/api/serializers/accounts.py

from rest_framework import serializers
from accounting.models.account import Account


class AccountListSerializer(serializers.ModelSerializer):
    """
    Read-only serializer for the chart of accounts.
    current_balance is the cached figure; use the balance endpoint for the
    ledger-derived one.
    """

    class Meta:
        model = Account
        fields = (
            "code",
            "name",
            "account_type",
            "normal_balance",
            "category",
            "allow_direct_posting",
            "is_active",
            "opening_balance",
            "current_balance",
        )
        read_only_fields = fields

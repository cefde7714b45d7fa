# accounting/api/serializers/ledger_entries.py

from rest_framework import serializers

from accounting.models.ledger import LedgerEntry


class LedgerEntrySerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account_id", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)
    is_reversed = serializers.SerializerMethodField()

    class Meta:
        model = LedgerEntry
        fields = (
            "id",
            "transaction_id",
            "account_code",
            "account_name",
            "debit_amount",
            "credit_amount",
            "transaction_date",
            "description",
            "reference_type",
            "reference_id",
            "reference_number",
            "customer",
            "supplier",
            "status",
            "currency",
            "is_reversed",
            "reversed_at",
            "reversal_reason",
            "created_at",
        )
        read_only_fields = fields

    def get_is_reversed(self, obj) -> bool:
        return obj.reversed_at is not None

# accounting/api/serializers/reconciliation.py

from rest_framework import serializers

from accounting.services.reconciliation_service import SCOPE_ALL, SCOPES


class ReconciliationRunSerializer(serializers.Serializer):
    scope = serializers.ChoiceField(choices=sorted(SCOPES), default=SCOPE_ALL)
    auto_correct = serializers.BooleanField(default=False)
    party_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    batch_size = serializers.IntegerField(required=False, allow_null=True, min_value=1)

    def validate(self, attrs):
        if attrs.get("party_id") is not None and attrs.get("scope") == SCOPE_ALL:
            raise serializers.ValidationError(
                {"party_id": "party_id requires scope 'customers' or 'suppliers'."}
            )
        return attrs

"""
PATH: accounting/api/views/reconciliation.py

PARTY BALANCE RECONCILIATION TRIGGER

POST /api/accounting/reconciliation/
    {"scope": "customers", "auto_correct": false, "party_id": 12}

- Permission-gated: requires accounting.change_account (auto-correct
  rewrites cached balances)
- Runs synchronously and returns the full report
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.serializers import ReconciliationRunSerializer
from accounting.services.exceptions import ReconciliationScopeError
from accounting.services.reconciliation_service import reconcile


class ReconciliationRunView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["accounting"],
        request=ReconciliationRunSerializer,
        responses={200: dict},
    )
    def post(self, request):
        if not request.user.has_perm("accounting.change_account"):
            return Response(
                {"detail": "You do not have permission to run reconciliation."},
                status=status.HTTP_403_FORBIDDEN,
            )

        serializer = ReconciliationRunSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            report = reconcile(
                data["scope"],
                auto_correct=data["auto_correct"],
                party_id=data.get("party_id"),
                batch_size=data.get("batch_size"),
            )
        except ReconciliationScopeError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(report.as_dict(), status=status.HTTP_200_OK)

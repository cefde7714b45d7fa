"""
PATH: accounting/api/views/trial_balance.py

TRIAL BALANCE API VIEW (READ-ONLY)

- Permission-gated: requires accounting.view_ledgerentry
- Derived from ledger balances (opening + live completed entries)
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.views.params import InvalidQueryParam, date_param
from accounting.services.balance_service import get_trial_balance


def _serialize(data: dict) -> dict:
    as_of = data["as_of"]
    return {
        "as_of_date": as_of.isoformat() if as_of else None,
        "accounts": [
            {**row, "debit": str(row["debit"]), "credit": str(row["credit"])}
            for row in data["accounts"]
        ],
        "total_debit": str(data["total_debit"]),
        "total_credit": str(data["total_credit"]),
        "is_balanced": data["is_balanced"],
    }


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(
            name="as_of_date",
            type=OpenApiTypes.DATE,
            location=OpenApiParameter.QUERY,
            required=False,
            description="Optional cutoff date (YYYY-MM-DD), inclusive.",
        ),
    ],
    responses={200: dict},
)
class TrialBalanceView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        if not request.user.has_perm("accounting.view_ledgerentry"):
            return Response(
                {"detail": "You do not have permission to view trial balance."},
                status=status.HTTP_403_FORBIDDEN,
            )

        try:
            as_of = date_param(request, "as_of_date")
        except InvalidQueryParam as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(_serialize(get_trial_balance(as_of)), status=status.HTTP_200_OK)

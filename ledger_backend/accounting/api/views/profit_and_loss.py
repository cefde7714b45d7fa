# PATH: accounting/api/views/profit_and_loss.py


"""
PATH: accounting/api/views/profit_and_loss.py

PROFIT & LOSS (P&L) API VIEW

Read-only income statement over [start_date, end_date] (transaction dates,
inclusive). The response carries "source": "ledger" or "source_records".

- Permission-gated: requires accounting.view_ledgerentry
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.views.params import InvalidQueryParam, date_param
from accounting.services.exceptions import AccountingServiceError
from accounting.services.profit_and_loss_service import generate_profit_and_loss


class ProfitAndLossView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["accounting"],
        parameters=[
            OpenApiParameter(
                name="start_date",
                type=OpenApiTypes.DATE,
                location=OpenApiParameter.QUERY,
                required=False,
                description="YYYY-MM-DD, inclusive.",
            ),
            OpenApiParameter(
                name="end_date",
                type=OpenApiTypes.DATE,
                location=OpenApiParameter.QUERY,
                required=False,
                description="YYYY-MM-DD, inclusive.",
            ),
        ],
        responses={200: dict},
    )
    def get(self, request):
        if not request.user.has_perm("accounting.view_ledgerentry"):
            return Response(
                {"detail": "You do not have permission to view financial reports."},
                status=status.HTTP_403_FORBIDDEN,
            )

        try:
            start_date = date_param(request, "start_date")
            end_date = date_param(request, "end_date")
            report = generate_profit_and_loss(start_date, end_date)
        except (InvalidQueryParam, AccountingServiceError) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(report.as_dict(), status=status.HTTP_200_OK)

"""
PATH: accounting/api/views/statements.py

STATEMENT API VIEWS (READ-ONLY)

GET /api/accounting/accounts/<code>/statement/?start_date=...&end_date=...
GET /api/accounting/parties/<party_type>/<id>/statement/?start_date=...&end_date=...

Opening balance is as of the day before start_date; every line carries the
running balance; closing equals the balance as of end_date.

Permission: accounting.view_ledgerentry
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.views.balances import _bad_request, _forbidden
from accounting.api.views.params import InvalidQueryParam, date_param
from accounting.entries import PartyKind, PartyRef
from accounting.services.balance_service import account_statement, party_statement
from accounting.services.exceptions import AccountingServiceError, InvalidAccountError

PERIOD_PARAMS = [
    OpenApiParameter(
        name="start_date",
        type=OpenApiTypes.DATE,
        location=OpenApiParameter.QUERY,
        required=False,
    ),
    OpenApiParameter(
        name="end_date",
        type=OpenApiTypes.DATE,
        location=OpenApiParameter.QUERY,
        required=False,
    ),
]

MONEY_KEYS = ("opening_balance", "total_debit", "total_credit", "closing_balance")
LINE_MONEY_KEYS = ("debit", "credit", "balance")


def _iso(value):
    return value.isoformat() if value else None


def _serialize(data: dict) -> dict:
    out = dict(data)
    for key in MONEY_KEYS:
        out[key] = str(data[key])
    out["start_date"] = _iso(data["start_date"])
    out["end_date"] = _iso(data["end_date"])
    out["entries"] = [
        {
            **line,
            "transaction_date": _iso(line["transaction_date"]),
            **{key: str(line[key]) for key in LINE_MONEY_KEYS},
        }
        for line in data["entries"]
    ]
    return out


class AccountStatementView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["accounting"], parameters=PERIOD_PARAMS, responses={200: dict})
    def get(self, request, code):
        if not request.user.has_perm("accounting.view_ledgerentry"):
            return _forbidden()

        try:
            statement = account_statement(
                code,
                date_param(request, "start_date"),
                date_param(request, "end_date"),
            )
        except InvalidAccountError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except (InvalidQueryParam, AccountingServiceError) as exc:
            return _bad_request(exc)

        return Response(_serialize(statement), status=status.HTTP_200_OK)


class PartyStatementView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["accounting"], parameters=PERIOD_PARAMS, responses={200: dict})
    def get(self, request, party_type, party_id):
        if not request.user.has_perm("accounting.view_ledgerentry"):
            return _forbidden()

        try:
            party = PartyRef(PartyKind.parse(party_type), party_id)
            statement = party_statement(
                party,
                date_param(request, "start_date"),
                date_param(request, "end_date"),
            )
        except (InvalidQueryParam, AccountingServiceError) as exc:
            return _bad_request(exc)

        return Response(_serialize(statement), status=status.HTTP_200_OK)

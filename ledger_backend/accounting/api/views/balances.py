"""
PATH: accounting/api/views/balances.py

BALANCE API VIEWS (READ-ONLY)

GET /api/accounting/accounts/<code>/balance/?as_of_date=YYYY-MM-DD
GET /api/accounting/parties/<party_type>/<id>/balance/?as_of_date=YYYY-MM-DD
GET /api/accounting/parties/<party_type>/balances/?ids=1,2,3&as_of_date=...
GET /api/accounting/parties/<party_type>/<id>/trace/?as_of_date=...

All figures are derived from the ledger; cached balance columns are
never read here (the trace reports the cache next to the ledger figure).

Permission: accounting.view_ledgerentry
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.views.params import InvalidQueryParam, date_param, id_list_param
from accounting.entries import PartyKind, PartyRef
from accounting.services.balance_service import (
    account_balance,
    bulk_party_balances,
    party_balance,
)
from accounting.services.exceptions import AccountingServiceError, InvalidAccountError
from accounting.services.validation_service import trace_party_ledger

MAX_BULK_IDS = 1000

AS_OF_PARAM = OpenApiParameter(
    name="as_of_date",
    type=OpenApiTypes.DATE,
    location=OpenApiParameter.QUERY,
    required=False,
    description="Optional cutoff date (YYYY-MM-DD), inclusive.",
)


def _forbidden():
    return Response(
        {"detail": "You do not have permission to view balances."},
        status=status.HTTP_403_FORBIDDEN,
    )


def _bad_request(exc):
    return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)


class AccountBalanceView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["accounting"], parameters=[AS_OF_PARAM], responses={200: dict})
    def get(self, request, code):
        if not request.user.has_perm("accounting.view_ledgerentry"):
            return _forbidden()

        try:
            as_of = date_param(request, "as_of_date")
            balance = account_balance(code, as_of)
        except InvalidQueryParam as exc:
            return _bad_request(exc)
        except InvalidAccountError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)

        return Response(
            {
                "account_code": code,
                "as_of_date": as_of.isoformat() if as_of else None,
                "balance": str(balance),
            },
            status=status.HTTP_200_OK,
        )


class PartyBalanceView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["accounting"], parameters=[AS_OF_PARAM], responses={200: dict})
    def get(self, request, party_type, party_id):
        if not request.user.has_perm("accounting.view_ledgerentry"):
            return _forbidden()

        try:
            party = PartyRef(PartyKind.parse(party_type), party_id)
            as_of = date_param(request, "as_of_date")
            balance = party_balance(party, as_of)
        except (InvalidQueryParam, AccountingServiceError) as exc:
            return _bad_request(exc)

        return Response(
            {
                "party_type": party.kind.value,
                "party_id": party.id,
                "as_of_date": as_of.isoformat() if as_of else None,
                "balance": str(balance),
            },
            status=status.HTTP_200_OK,
        )


class BulkPartyBalancesView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["accounting"],
        parameters=[
            OpenApiParameter(
                name="ids",
                type=str,
                location=OpenApiParameter.QUERY,
                required=True,
                description="Comma-separated party ids (e.g. 1,2,3).",
            ),
            AS_OF_PARAM,
        ],
        responses={200: dict},
    )
    def get(self, request, party_type):
        if not request.user.has_perm("accounting.view_ledgerentry"):
            return _forbidden()

        try:
            kind = PartyKind.parse(party_type)
            ids = id_list_param(request, "ids")
            as_of = date_param(request, "as_of_date")
        except (InvalidQueryParam, AccountingServiceError) as exc:
            return _bad_request(exc)

        if len(ids) > MAX_BULK_IDS:
            return _bad_request(f"At most {MAX_BULK_IDS} ids per request")

        try:
            balances = bulk_party_balances(kind, ids, as_of)
        except AccountingServiceError as exc:
            return _bad_request(exc)

        return Response(
            {
                "party_type": kind.value,
                "as_of_date": as_of.isoformat() if as_of else None,
                "balances": {str(pid): str(value) for pid, value in balances.items()},
            },
            status=status.HTTP_200_OK,
        )


class PartyLedgerTraceView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["accounting"], parameters=[AS_OF_PARAM], responses={200: dict})
    def get(self, request, party_type, party_id):
        if not request.user.has_perm("accounting.view_ledgerentry"):
            return _forbidden()

        try:
            party = PartyRef(PartyKind.parse(party_type), party_id)
            as_of = date_param(request, "as_of_date")
            trace = trace_party_ledger(party, as_of)
        except (InvalidQueryParam, AccountingServiceError) as exc:
            return _bad_request(exc)

        return Response(trace.as_dict(), status=status.HTTP_200_OK)

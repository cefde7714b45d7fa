# accounting/services/balance_service.py

"""
BALANCE DERIVATION SERVICE (READ-ONLY)

Every balance in the system is derived here from ledger rows:
    balance = opening_balance + Σ signed(debit, credit)
- debit-normal accounts: +debit -credit
- credit-normal accounts: +credit -debit
- only status=completed AND reversed_at IS NULL rows count
- optional as_of bounds transaction_date <= as_of

Party balances use the party type's subsidiary account (AR for customers,
AP for suppliers) filtered by party id, with zero opening: the party's
opening balance is itself a posting.

Cached balance columns (Account.current_balance, party current_balance) are
NEVER read here. refresh_account_caches() is the one writer of the account
cache and runs inside the caller's transaction.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from accounting.entries import (
    BALANCE_TOLERANCE,
    ZERO,
    PartyKind,
    PartyRef,
    to_money,
)
from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry
from accounting.services.account_resolver import code_for
from accounting.services.exceptions import BalanceServiceError, InvalidAccountError


def _countable(as_of: Optional[date] = None):
    qs = LedgerEntry.objects.countable()
    if as_of is not None:
        qs = qs.filter(transaction_date__lte=as_of)
    return qs


def _sum_pair(row) -> tuple[Decimal, Decimal]:
    return to_money(row.get("debit")), to_money(row.get("credit"))


def _account_or_error(code: str) -> Account:
    code = str(code or "").strip()
    try:
        return Account.objects.get(code=code)
    except Account.DoesNotExist as exc:
        raise InvalidAccountError(f"Account {code!r} does not exist") from exc


# ------------------------------------------------------------
# ACCOUNT BALANCES
# ------------------------------------------------------------


def account_balance(code: str, as_of: Optional[date] = None) -> Decimal:
    account = _account_or_error(code)

    totals = _countable(as_of).filter(account_id=account.code).aggregate(
        debit=Sum("debit_amount"),
        credit=Sum("credit_amount"),
    )
    debit, credit = _sum_pair(totals)
    return to_money(to_money(account.opening_balance) + account.signed_amount(debit, credit))


def account_balances(
    as_of: Optional[date] = None,
    codes: Optional[Iterable[str]] = None,
) -> dict[str, Decimal]:
    """Balances for many accounts in one aggregate query (opening included)."""
    accounts = Account.objects.all()
    qs = _countable(as_of)
    if codes is not None:
        codes = list(codes)
        accounts = accounts.filter(code__in=codes)
        qs = qs.filter(account_id__in=codes)

    rows = {
        r["account_id"]: _sum_pair(r)
        for r in qs.values("account_id").annotate(
            debit=Sum("debit_amount"), credit=Sum("credit_amount")
        )
    }

    result: dict[str, Decimal] = {}
    for account in accounts:
        debit, credit = rows.get(account.code, (ZERO, ZERO))
        result[account.code] = to_money(
            to_money(account.opening_balance) + account.signed_amount(debit, credit)
        )
    return result


def account_activity(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    codes: Optional[Iterable[str]] = None,
) -> dict[str, Decimal]:
    """
    Net movement per account over [start_date, end_date], in each account's
    normal-balance sense. Opening balances are NOT included.
    """
    accounts = Account.objects.all()
    qs = LedgerEntry.objects.countable()
    if start_date is not None:
        qs = qs.filter(transaction_date__gte=start_date)
    if end_date is not None:
        qs = qs.filter(transaction_date__lte=end_date)
    if codes is not None:
        codes = list(codes)
        accounts = accounts.filter(code__in=codes)
        qs = qs.filter(account_id__in=codes)

    rows = {
        r["account_id"]: _sum_pair(r)
        for r in qs.values("account_id").annotate(
            debit=Sum("debit_amount"), credit=Sum("credit_amount")
        )
    }

    return {
        account.code: to_money(account.signed_amount(*rows.get(account.code, (ZERO, ZERO))))
        for account in accounts
    }


def has_postings_between(start_date: Optional[date], end_date: Optional[date]) -> bool:
    qs = LedgerEntry.objects.countable()
    if start_date is not None:
        qs = qs.filter(transaction_date__gte=start_date)
    if end_date is not None:
        qs = qs.filter(transaction_date__lte=end_date)
    return qs.exists()


# ------------------------------------------------------------
# PARTY BALANCES
# ------------------------------------------------------------


def _subsidiary_account(kind: PartyKind) -> Account:
    return _account_or_error(code_for(kind.subsidiary_role))


def party_balance(party: PartyRef, as_of: Optional[date] = None) -> Decimal:
    if not isinstance(party, PartyRef):
        raise BalanceServiceError("party_balance expects a PartyRef")

    account = _subsidiary_account(party.kind)
    totals = (
        _countable(as_of)
        .filter(account_id=account.code, **{party.ledger_field: party.id})
        .aggregate(debit=Sum("debit_amount"), credit=Sum("credit_amount"))
    )
    debit, credit = _sum_pair(totals)
    return to_money(account.signed_amount(debit, credit))


def bulk_party_balances(
    kind: PartyKind,
    party_ids: Iterable,
    as_of: Optional[date] = None,
) -> dict:
    """
    Balances for many parties of one kind in a single GROUP BY query.
    Ids are coerced to int keys; ids with no ledger rows map to 0.00.
    """
    kind = PartyKind(kind)
    try:
        ids = list(dict.fromkeys(int(pid) for pid in party_ids))
    except (TypeError, ValueError) as exc:
        raise BalanceServiceError("Party ids must be integers") from exc
    result = {pid: ZERO for pid in ids}
    if not ids:
        return result

    account = _subsidiary_account(kind)
    field = kind.ledger_field

    rows = (
        _countable(as_of)
        .filter(account_id=account.code, **{f"{field}__in": ids})
        .values(field)
        .annotate(debit=Sum("debit_amount"), credit=Sum("credit_amount"))
    )
    for row in rows:
        debit, credit = _sum_pair(row)
        result[row[field]] = to_money(account.signed_amount(debit, credit))

    return result


# ------------------------------------------------------------
# STATEMENTS
# ------------------------------------------------------------


def _statement(account: Account, qs, opening: Decimal, start_date, end_date) -> dict:
    """
    Walk the period's rows in posting order and carry a running balance
    forward from the opening figure, in the account's normal-balance sense.
    """
    if start_date is not None and end_date is not None and start_date > end_date:
        raise BalanceServiceError("start_date must be on or before end_date")

    if start_date is not None:
        qs = qs.filter(transaction_date__gte=start_date)

    running = opening
    total_debit = ZERO
    total_credit = ZERO
    lines = []
    for entry in qs.order_by("transaction_date", "id"):
        debit = to_money(entry.debit_amount)
        credit = to_money(entry.credit_amount)
        total_debit += debit
        total_credit += credit
        running = to_money(running + account.signed_amount(debit, credit))
        lines.append(
            {
                "id": entry.pk,
                "transaction_id": entry.transaction_id,
                "transaction_date": entry.transaction_date,
                "reference_type": entry.reference_type,
                "reference_id": entry.reference_id,
                "reference_number": entry.reference_number,
                "description": entry.description,
                "debit": debit,
                "credit": credit,
                "balance": running,
            }
        )

    return {
        "account_code": account.code,
        "account_name": account.name,
        "normal_balance": account.normal_balance,
        "start_date": start_date,
        "end_date": end_date,
        "opening_balance": opening,
        "total_debit": to_money(total_debit),
        "total_credit": to_money(total_credit),
        "closing_balance": running,
        "entries": lines,
    }


def account_statement(
    code: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> dict:
    """
    Per-account ledger for [start_date, end_date] with a running balance.
    Opening is the balance at the end of the day before start_date (the
    account's opening balance when start_date is None).
    """
    account = _account_or_error(code)
    if start_date is not None:
        opening = account_balance(account.code, start_date - timedelta(days=1))
    else:
        opening = to_money(account.opening_balance)

    qs = _countable(end_date).filter(account_id=account.code)
    return _statement(account, qs, opening, start_date, end_date)


def party_statement(
    party: PartyRef,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> dict:
    """Customer/supplier statement on the party's subsidiary account."""
    if not isinstance(party, PartyRef):
        raise BalanceServiceError("party_statement expects a PartyRef")

    account = _subsidiary_account(party.kind)
    opening = party_balance(party, start_date - timedelta(days=1)) if start_date else ZERO

    qs = _countable(end_date).filter(account_id=account.code, **{party.ledger_field: party.id})
    statement = _statement(account, qs, opening, start_date, end_date)
    statement.update({"party_type": party.kind.value, "party_id": party.id})
    return statement


# ------------------------------------------------------------
# TRIAL BALANCE
# ------------------------------------------------------------


def get_trial_balance(as_of: Optional[date] = None) -> dict:
    """
    Debit/credit columns per account. A normal-side balance lands in the
    account's normal column; a negative balance flips to the other column.
    """
    balances = account_balances(as_of=as_of)

    rows = []
    total_debit = ZERO
    total_credit = ZERO

    for account in Account.objects.order_by("code"):
        balance = balances.get(account.code, ZERO)
        if not account.is_active and abs(balance) < BALANCE_TOLERANCE:
            continue

        on_debit = (balance >= ZERO) == account.is_debit_normal
        debit = abs(balance) if on_debit else ZERO
        credit = ZERO if on_debit else abs(balance)

        total_debit += debit
        total_credit += credit
        rows.append(
            {
                "code": account.code,
                "name": account.name,
                "account_type": account.account_type,
                "normal_balance": account.normal_balance,
                "debit": debit,
                "credit": credit,
            }
        )

    total_debit = to_money(total_debit)
    total_credit = to_money(total_credit)
    return {
        "as_of": as_of,
        "accounts": rows,
        "total_debit": total_debit,
        "total_credit": total_credit,
        "is_balanced": abs(total_debit - total_credit) <= BALANCE_TOLERANCE,
    }


# ------------------------------------------------------------
# CACHE REFRESH (engines only)
# ------------------------------------------------------------


@transaction.atomic
def refresh_account_caches(codes: Iterable[str]) -> dict[str, Decimal]:
    """
    Lock the touched account rows (ordered by code) and rewrite their
    current_balance from a fresh aggregate, in the caller's transaction.
    """
    codes = sorted({str(c) for c in codes})
    if not codes:
        return {}

    list(
        Account.objects.select_for_update()
        .filter(code__in=codes)
        .order_by("code")
        .values_list("code", flat=True)
    )

    balances = account_balances(codes=codes)
    now = timezone.now()
    for code, balance in balances.items():
        Account.objects.filter(code=code).update(current_balance=balance, updated_at=now)
    return balances

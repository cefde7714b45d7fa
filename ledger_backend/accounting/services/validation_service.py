# accounting/services/validation_service.py

"""
LEDGER VALIDATION & DIAGNOSTICS

Operator-facing integrity checks (read-only unless auto_correct is set):
- find_unbalanced_groups          Σdebit != Σcredit per transaction_id
- find_account_cache_drift        Account.current_balance vs derived balance
- validate_balance_sheet_equation assets == liabilities + equity
- trace_party_ledger              one structured diagnostic for a party whose
                                  ledger balance looks wrong or empty
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from django.db.models import Count, Q, Sum
from django.utils import timezone

from accounting.entries import BALANCE_TOLERANCE, PartyKind, PartyRef, to_money
from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry
from accounting.services.account_resolver import code_for
from accounting.services.balance_service import account_balances, party_balance
from accounting.services.balance_sheet_service import generate_balance_sheet
from parties.models import Customer, Supplier

logger = logging.getLogger(__name__)

HIGH_SEVERITY_DRIFT = Decimal("100.00")


@dataclass(frozen=True)
class UnbalancedGroup:
    transaction_id: str
    reference_type: str
    reference_id: str
    total_debit: Decimal
    total_credit: Decimal

    @property
    def difference(self) -> Decimal:
        return to_money(self.total_debit - self.total_credit)


@dataclass
class AccountCacheDrift:
    code: str
    name: str
    cached_balance: Decimal
    ledger_balance: Decimal
    difference: Decimal
    severity: str
    corrected: bool = False


@dataclass(frozen=True)
class PartyLedgerTrace:
    party_type: str
    party_id: int
    subsidiary_code: str
    as_of: Optional[date]
    ledger_balance: Decimal
    cached_balance: Optional[Decimal]
    live_entries: int
    reversed_entries: int
    non_completed_entries: int
    entries_after_as_of: int
    entries_on_other_accounts: int
    other_account_codes: tuple

    @property
    def findings(self) -> list[str]:
        out = []
        if self.live_entries == 0:
            out.append("no live completed entries on the subsidiary account")
        if self.reversed_entries:
            out.append(f"{self.reversed_entries} reversed entries are excluded")
        if self.non_completed_entries:
            out.append(f"{self.non_completed_entries} pending/void entries are excluded")
        if self.entries_after_as_of:
            out.append(f"{self.entries_after_as_of} entries are dated after as_of")
        if self.entries_on_other_accounts:
            out.append(
                "party entries exist on other accounts: "
                + ", ".join(self.other_account_codes)
            )
        if self.cached_balance is not None and abs(
            self.cached_balance - self.ledger_balance
        ) > BALANCE_TOLERANCE:
            out.append("cached balance differs from ledger balance")
        return out

    def as_dict(self) -> dict:
        data = asdict(self)
        for key in ("ledger_balance", "cached_balance"):
            if data[key] is not None:
                data[key] = str(data[key])
        data["as_of"] = self.as_of.isoformat() if self.as_of else None
        data["other_account_codes"] = list(self.other_account_codes)
        data["findings"] = self.findings
        return data


def find_unbalanced_groups(*, include_reversed: bool = False) -> list[UnbalancedGroup]:
    qs = LedgerEntry.objects.all()
    if not include_reversed:
        qs = qs.live()

    rows = (
        qs.values("transaction_id", "reference_type", "reference_id")
        .annotate(debit=Sum("debit_amount"), credit=Sum("credit_amount"))
        .order_by("transaction_id")
    )

    out = []
    for row in rows:
        debit = to_money(row["debit"])
        credit = to_money(row["credit"])
        if abs(debit - credit) > BALANCE_TOLERANCE:
            out.append(
                UnbalancedGroup(
                    transaction_id=row["transaction_id"],
                    reference_type=row["reference_type"],
                    reference_id=row["reference_id"],
                    total_debit=debit,
                    total_credit=credit,
                )
            )

    if out:
        logger.error(
            "Unbalanced ledger groups found",
            extra={"count": len(out), "transaction_ids": [g.transaction_id for g in out[:20]]},
        )
    return out


def find_account_cache_drift(*, auto_correct: bool = False) -> list[AccountCacheDrift]:
    balances = account_balances()
    drifts = []

    for account in Account.objects.order_by("code"):
        ledger = balances.get(account.code, to_money(account.opening_balance))
        cached = to_money(account.current_balance)
        difference = to_money(ledger - cached)
        if abs(difference) <= BALANCE_TOLERANCE:
            continue

        drift = AccountCacheDrift(
            code=account.code,
            name=account.name,
            cached_balance=cached,
            ledger_balance=ledger,
            difference=difference,
            severity="high" if abs(difference) > HIGH_SEVERITY_DRIFT else "medium",
        )
        if auto_correct:
            Account.objects.filter(pk=account.pk).update(
                current_balance=ledger, updated_at=timezone.now()
            )
            drift.corrected = True
        drifts.append(drift)

    if drifts:
        logger.warning(
            "Account balance cache drift detected",
            extra={
                "count": len(drifts),
                "high": sum(1 for d in drifts if d.severity == "high"),
                "corrected": auto_correct,
            },
        )
    return drifts


def validate_balance_sheet_equation(as_of: Optional[date] = None) -> dict:
    sheet = generate_balance_sheet(as_of)
    return {
        "as_of": sheet.as_of,
        "total_assets": sheet.total_assets,
        "total_liabilities_and_equity": sheet.total_liabilities_and_equity,
        "difference": sheet.difference,
        "is_balanced": sheet.is_balanced,
    }


def trace_party_ledger(party: PartyRef, as_of: Optional[date] = None) -> PartyLedgerTrace:
    subsidiary = code_for(party.subsidiary_role)
    party_rows = LedgerEntry.objects.filter(**{party.ledger_field: party.id})
    on_subsidiary = party_rows.filter(account_id=subsidiary)

    aggregates = {
        "live": Count(
            "pk",
            filter=Q(status=LedgerEntry.STATUS_COMPLETED, reversed_at__isnull=True),
        ),
        "reversed": Count("pk", filter=Q(reversed_at__isnull=False)),
        "non_completed": Count(
            "pk",
            filter=Q(reversed_at__isnull=True) & ~Q(status=LedgerEntry.STATUS_COMPLETED),
        ),
    }
    if as_of:
        aggregates["after"] = Count(
            "pk", filter=Q(reversed_at__isnull=True, transaction_date__gt=as_of)
        )
    counts = on_subsidiary.aggregate(**aggregates)

    other_codes = tuple(
        sorted(
            set(
                party_rows.live()
                .exclude(account_id=subsidiary)
                .values_list("account_id", flat=True)
            )
        )
    )
    other_count = party_rows.live().exclude(account_id=subsidiary).count()

    model = Customer if party.kind is PartyKind.CUSTOMER else Supplier
    cached = model.objects.filter(pk=party.id).values_list("current_balance", flat=True).first()

    trace = PartyLedgerTrace(
        party_type=party.kind.value,
        party_id=party.id,
        subsidiary_code=subsidiary,
        as_of=as_of,
        ledger_balance=party_balance(party, as_of),
        cached_balance=to_money(cached) if cached is not None else None,
        live_entries=counts["live"] or 0,
        reversed_entries=counts["reversed"] or 0,
        non_completed_entries=counts["non_completed"] or 0,
        entries_after_as_of=counts.get("after") or 0,
        entries_on_other_accounts=other_count,
        other_account_codes=other_codes,
    )

    logger.info("Party ledger trace", extra={"trace": trace.as_dict()})
    return trace

# accounting/services/reconciliation_service.py

"""
======================================================
PATH: accounting/services/reconciliation_service.py
======================================================
PARTY BALANCE RECONCILIATION JOB

Compares each party's cached current_balance with its ledger-derived
balance and reports every gap above 0.01.

Rules:
- The ledger always wins: auto_correct overwrites the cache with the
  ledger value, never the reverse
- Ledger balances come from ONE grouped query per batch
  (bulk_party_balances); if that query fails the batch falls back to
  per-party derivation
- A party whose balance cannot be derived is logged and reported with
  status "error"; the batch carries on
- Reversed entries are excluded from balances and out of scope here

Scheduling: daily alert-only (auto_correct=False), weekly with
auto_correct=True, or on demand for one party (party_id).
See management command reconcile_balances.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from accounting.entries import BALANCE_TOLERANCE, PartyKind, PartyRef, to_money
from accounting.services.balance_service import bulk_party_balances, party_balance
from accounting.services.exceptions import AccountingServiceError, ReconciliationScopeError
from parties.models import Customer, Supplier

logger = logging.getLogger(__name__)

SCOPE_ALL = "all"
SCOPE_CUSTOMERS = "customers"
SCOPE_SUPPLIERS = "suppliers"

SCOPES = {
    SCOPE_ALL: (PartyKind.CUSTOMER, PartyKind.SUPPLIER),
    SCOPE_CUSTOMERS: (PartyKind.CUSTOMER,),
    SCOPE_SUPPLIERS: (PartyKind.SUPPLIER,),
}

PARTY_MODELS = {
    PartyKind.CUSTOMER: Customer,
    PartyKind.SUPPLIER: Supplier,
}

STATUS_DISCREPANCY = "discrepancy"
STATUS_CORRECTED = "corrected"
STATUS_ERROR = "error"


@dataclass
class BalanceDiscrepancy:
    party_type: str
    party_id: int
    party_name: str
    cached_balance: Decimal
    ledger_balance: Decimal
    delta: Decimal
    corrected: bool = False

    @property
    def status(self) -> str:
        return STATUS_CORRECTED if self.corrected else STATUS_DISCREPANCY

    def as_dict(self) -> dict:
        return {
            "party_type": self.party_type,
            "party_id": self.party_id,
            "party_name": self.party_name,
            "cached_balance": str(self.cached_balance),
            "ledger_balance": str(self.ledger_balance),
            "delta": str(self.delta),
            "status": self.status,
        }


@dataclass
class ReconciliationFailure:
    party_type: str
    party_id: int
    error: str
    status: str = STATUS_ERROR

    def as_dict(self) -> dict:
        return {
            "party_type": self.party_type,
            "party_id": self.party_id,
            "error": self.error,
            "status": self.status,
        }


@dataclass
class ReconciliationReport:
    scope: str
    auto_correct: bool
    started_at: datetime
    finished_at: Optional[datetime] = None
    total: int = 0
    matched: int = 0
    discrepancies: list = field(default_factory=list)
    errors: list = field(default_factory=list)

    @property
    def corrected(self) -> int:
        return sum(1 for d in self.discrepancies if d.corrected)

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def is_clean(self) -> bool:
        return not self.discrepancies and not self.errors

    def as_dict(self) -> dict:
        return {
            "scope": self.scope,
            "auto_correct": self.auto_correct,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": round(self.duration_seconds, 3),
            "total": self.total,
            "matched": self.matched,
            "discrepancy_count": len(self.discrepancies),
            "corrected": self.corrected,
            "error_count": len(self.errors),
            "discrepancies": [d.as_dict() for d in self.discrepancies],
            "errors": [e.as_dict() for e in self.errors],
        }


def _ledger_balances_for_batch(kind: PartyKind, ids: list) -> Optional[dict]:
    try:
        with transaction.atomic():
            return bulk_party_balances(kind, ids)
    except (DatabaseError, AccountingServiceError):
        logger.exception(
            "Bulk party balance query failed; falling back to per-party derivation",
            extra={"party_type": kind.value, "batch_size": len(ids)},
        )
        return None


def _single_ledger_balance(kind: PartyKind, party_id) -> Decimal:
    with transaction.atomic():
        return party_balance(PartyRef(kind, party_id))


def _correct_cache(kind: PartyKind, party_id) -> Decimal:
    """Lock the party row, re-derive its ledger balance and write it to the cache."""
    with transaction.atomic():
        model = PARTY_MODELS[kind]
        list(model.objects.select_for_update().filter(pk=party_id).values_list("pk", flat=True))
        balance = party_balance(PartyRef(kind, party_id))
        model.objects.filter(pk=party_id).update(
            current_balance=balance,
            updated_at=timezone.now(),
        )
    return balance


def _reconcile_batch(
    kind: PartyKind,
    batch: list,
    report: ReconciliationReport,
    *,
    auto_correct: bool,
) -> None:
    ledger = _ledger_balances_for_batch(kind, [p.pk for p in batch])

    for party in batch:
        report.total += 1
        try:
            if ledger is not None:
                balance = ledger[party.pk]
            else:
                balance = _single_ledger_balance(kind, party.pk)
        except (DatabaseError, AccountingServiceError, KeyError) as exc:
            logger.exception(
                "Party balance could not be derived",
                extra={"party_type": kind.value, "party_id": party.pk},
            )
            report.errors.append(
                ReconciliationFailure(party_type=kind.value, party_id=party.pk, error=str(exc))
            )
            continue

        cached = to_money(party.current_balance)
        delta = to_money(balance - cached)
        if abs(delta) <= BALANCE_TOLERANCE:
            report.matched += 1
            continue

        discrepancy = BalanceDiscrepancy(
            party_type=kind.value,
            party_id=party.pk,
            party_name=str(party),
            cached_balance=cached,
            ledger_balance=balance,
            delta=delta,
        )

        if auto_correct:
            try:
                discrepancy.ledger_balance = _correct_cache(kind, party.pk)
                discrepancy.delta = to_money(discrepancy.ledger_balance - cached)
                discrepancy.corrected = True
            except (DatabaseError, AccountingServiceError) as exc:
                logger.exception(
                    "Cached balance correction failed",
                    extra={"party_type": kind.value, "party_id": party.pk},
                )
                report.errors.append(
                    ReconciliationFailure(party_type=kind.value, party_id=party.pk, error=str(exc))
                )

        report.discrepancies.append(discrepancy)


def reconcile(
    scope: str = SCOPE_ALL,
    *,
    auto_correct: bool = False,
    party_id=None,
    batch_size: Optional[int] = None,
) -> ReconciliationReport:
    scope = (scope or SCOPE_ALL).strip().lower()
    if scope not in SCOPES:
        raise ReconciliationScopeError(
            f"scope must be one of {sorted(SCOPES)}, got {scope!r}"
        )
    if party_id is not None and scope == SCOPE_ALL:
        raise ReconciliationScopeError(
            "party_id requires scope 'customers' or 'suppliers'"
        )

    batch_size = int(batch_size or getattr(settings, "LEDGER_RECONCILIATION_BATCH_SIZE", 100))
    if batch_size < 1:
        raise ReconciliationScopeError("batch_size must be >= 1")

    report = ReconciliationReport(
        scope=scope,
        auto_correct=auto_correct,
        started_at=timezone.now(),
    )

    for kind in SCOPES[scope]:
        qs = PARTY_MODELS[kind].objects.order_by("pk").only("pk", "name", "business_name", "current_balance")
        if party_id is not None:
            qs = qs.filter(pk=party_id)

        last_pk = None
        while True:
            page = qs if last_pk is None else qs.filter(pk__gt=last_pk)
            batch = list(page[:batch_size])
            if not batch:
                break
            _reconcile_batch(kind, batch, report, auto_correct=auto_correct)
            last_pk = batch[-1].pk

    report.finished_at = timezone.now()

    log = logger.warning if report.discrepancies or report.errors else logger.info
    log(
        "Party balance reconciliation finished",
        extra={
            "scope": scope,
            "auto_correct": auto_correct,
            "total": report.total,
            "matched": report.matched,
            "discrepancies": len(report.discrepancies),
            "corrected": report.corrected,
            "errors": len(report.errors),
        },
    )
    return report

# accounting/services/posting_engine.py

"""
======================================================
PATH: accounting/services/posting_engine.py
======================================================
LEDGER POSTING ENGINE

This module is the ONLY place allowed to:
- Create PostingGroup
- Create LedgerEntry
- Enforce Σdebit == Σcredit (within 0.01)
- Guarantee atomicity (entries + account cache refresh in one transaction)
- Enforce idempotency per (reference_type, reference_id)

Everything else (sales, purchases, receipts, payments, opening balances,
adjustments) must pass through here.

Failure modes:
- MissingReferenceError    (no reference; contract violation, logged CRITICAL)
- InvalidEntryError        (entry shape)
- UnbalancedGroupError     (logged ERROR)
- InvalidAccountError      (logged ERROR by the resolver)
- DuplicatePostingError    (reference already has a live original group)
- ConcurrencyConflictError (store-level write conflict; retry the whole post)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Sequence

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, OperationalError, transaction
from django.utils import timezone

from accounting.entries import (
    BALANCE_TOLERANCE,
    ZERO,
    EntrySpec,
    PartyKind,
    PostedGroup,
    PostingMetadata,
    to_money,
)
from accounting.models.ledger import LedgerEntry
from accounting.models.posting_group import PostingGroup
from accounting.services.account_resolver import get_postable_accounts
from accounting.services.balance_service import refresh_account_caches
from accounting.services.exceptions import (
    ConcurrencyConflictError,
    DuplicatePostingError,
    InvalidEntryError,
    MissingReferenceError,
    UnbalancedGroupError,
)

logger = logging.getLogger(__name__)

MIN_ENTRIES = 2
POSTABLE_STATUSES = (LedgerEntry.STATUS_COMPLETED, LedgerEntry.STATUS_PENDING)


def resolve_actor(user):
    """User instance or user pk -> user. None and anonymous users -> None."""
    if user is None or getattr(user, "is_anonymous", False):
        return None

    User = get_user_model()
    if isinstance(user, User):
        return user
    if isinstance(user, bool):
        raise InvalidEntryError(f"Cannot attribute a posting to {user!r}")
    try:
        return User.objects.get(pk=int(user))
    except (TypeError, ValueError, User.DoesNotExist) as exc:
        raise InvalidEntryError(f"Cannot attribute a posting to {user!r}") from exc


def normalize_reference(reference_type, reference_id) -> tuple[str, str]:
    rt = str(reference_type or "").strip()
    rid = "" if reference_id is None else str(reference_id).strip()

    if not rt or not rid:
        logger.critical(
            "Ledger posting attempted without a reference",
            extra={"reference_type": reference_type, "reference_id": reference_id},
        )
        raise MissingReferenceError("reference_type and reference_id are required")

    return rt, rid


def build_transaction_id(reference_type: str, reference_id: str) -> str:
    return f"{reference_type.upper()}-{reference_id}-{uuid.uuid4().hex[:12]}"


def _normalize_entries(entries: Sequence[EntrySpec]) -> list[EntrySpec]:
    entries = list(entries or [])
    if len(entries) < MIN_ENTRIES:
        raise InvalidEntryError(
            f"A posting group needs at least {MIN_ENTRIES} entries, got {len(entries)}"
        )

    normalized = []
    for entry in entries:
        if not isinstance(entry, EntrySpec):
            raise InvalidEntryError("Each entry must be an EntrySpec")
        normalized.append(entry.normalized())
    return normalized


def _assert_balanced(entries: list[EntrySpec], *, reference: str) -> tuple:
    total_debit = to_money(sum((e.debit for e in entries), ZERO))
    total_credit = to_money(sum((e.credit for e in entries), ZERO))

    if abs(total_debit - total_credit) > BALANCE_TOLERANCE:
        logger.error(
            "Unbalanced posting group rejected",
            extra={
                "reference": reference,
                "total_debit": str(total_debit),
                "total_credit": str(total_credit),
            },
        )
        raise UnbalancedGroupError(
            f"Posting group not balanced: debits={total_debit} credits={total_credit}"
        )

    return total_debit, total_credit


def _has_live_original(reference_type: str, reference_id: str) -> bool:
    return PostingGroup.objects.filter(
        reference_type=reference_type,
        reference_id=reference_id,
        kind=PostingGroup.KIND_ORIGINAL,
        reversed_at__isnull=True,
    ).exists()


def is_posted(reference_type, reference_id) -> bool:
    """True iff at least one live entry exists for the reference."""
    rt, rid = normalize_reference(reference_type, reference_id)
    return LedgerEntry.objects.live().for_reference(rt, rid).exists()


def _party_columns(entry: EntrySpec, metadata: PostingMetadata) -> dict:
    party = entry.party or metadata.party
    if party is None:
        return {"customer_id": None, "supplier_id": None}
    if party.kind is PartyKind.CUSTOMER:
        return {"customer_id": party.id, "supplier_id": None}
    return {"customer_id": None, "supplier_id": party.id}


def _write_group(
    entries: Sequence[EntrySpec],
    metadata: PostingMetadata,
    *,
    kind: str,
) -> PostedGroup:
    rt, rid = normalize_reference(metadata.reference_type, metadata.reference_id)
    reference = f"{rt}:{rid}"

    normalized = _normalize_entries(entries)
    total_debit, total_credit = _assert_balanced(normalized, reference=reference)

    status = (metadata.status or LedgerEntry.STATUS_COMPLETED).strip().lower()
    if status not in POSTABLE_STATUSES:
        raise InvalidEntryError(f"Cannot post entries with status {status!r}")

    transaction_date = metadata.transaction_date or timezone.localdate()
    currency = (metadata.currency or settings.LEDGER_DEFAULT_CURRENCY).strip().upper()
    description = (metadata.description or "").strip()[:255]
    reference_number = (metadata.reference_number or "").strip()[:64]
    created_by = resolve_actor(metadata.created_by)

    try:
        with transaction.atomic():
            accounts = get_postable_accounts(e.account_code for e in normalized)

            if kind == PostingGroup.KIND_ORIGINAL and _has_live_original(rt, rid):
                raise DuplicatePostingError(
                    f"A live posting already exists for reference {reference}"
                )

            transaction_id = build_transaction_id(rt, rid)

            try:
                with transaction.atomic():
                    PostingGroup.objects.create(
                        transaction_id=transaction_id,
                        reference_type=rt,
                        reference_id=rid,
                        reference_number=reference_number,
                        kind=kind,
                        transaction_date=transaction_date,
                        description=description,
                        created_by=created_by,
                    )
            except IntegrityError as exc:
                if kind == PostingGroup.KIND_ORIGINAL and _has_live_original(rt, rid):
                    raise DuplicatePostingError(
                        f"A live posting already exists for reference {reference}"
                    ) from exc
                raise

            LedgerEntry.objects.bulk_create(
                [
                    LedgerEntry(
                        transaction_id=transaction_id,
                        account=accounts[entry.account_code],
                        debit_amount=entry.debit,
                        credit_amount=entry.credit,
                        transaction_date=transaction_date,
                        description=(entry.description or description)[:255],
                        reference_type=rt,
                        reference_id=rid,
                        reference_number=reference_number,
                        status=status,
                        currency=currency,
                        created_by=created_by,
                        **_party_columns(entry, metadata),
                    )
                    for entry in normalized
                ]
            )

            refresh_account_caches(accounts.keys())

    except OperationalError as exc:
        logger.warning(
            "Ledger write conflict",
            extra={"reference": reference, "error": str(exc)},
        )
        raise ConcurrencyConflictError(
            f"Write conflict while posting {reference}; retry the whole post"
        ) from exc

    logger.info(
        "Ledger group posted",
        extra={
            "transaction_id": transaction_id,
            "reference": reference,
            "kind": kind,
            "entries": len(normalized),
            "total": str(total_debit),
        },
    )

    return PostedGroup(
        transaction_id=transaction_id,
        reference_type=rt,
        reference_id=rid,
        kind=kind,
        transaction_date=transaction_date,
        entry_count=len(normalized),
        total_debit=total_debit,
        total_credit=total_credit,
        account_codes=tuple(sorted(accounts.keys())),
    )


def post(entries: Sequence[EntrySpec], metadata: PostingMetadata) -> PostedGroup:
    """
    Write a fresh balanced group for a business event.

    Rejects a second post while the reference still has a live original
    group (DuplicatePostingError); callers retrying after a timeout can
    also check is_posted() first.
    """
    return _write_group(entries, metadata, kind=PostingGroup.KIND_ORIGINAL)


def post_adjustment(entries: Sequence[EntrySpec], metadata: PostingMetadata) -> PostedGroup:
    """Write an adjustment group under an existing reference (no duplicate check)."""
    return _write_group(entries, metadata, kind=PostingGroup.KIND_ADJUSTMENT)


def with_reference(metadata: PostingMetadata, reference_type, reference_id) -> PostingMetadata:
    return replace(metadata, reference_type=reference_type, reference_id=reference_id)

# accounting/services/reversal_service.py

"""
======================================================
PATH: accounting/services/reversal_service.py
======================================================
REVERSAL / ADJUSTMENT ENGINE

Three ways to correct posted history, none of which delete rows:

A) reverse_by_reference
   - stamps reversed_at on every live entry (and group header) of a reference
   - idempotent: a second call finds nothing live and returns 0
   - used when the principal amount or the party changes (then repost)

B) update_live_entries
   - mutates ONLY non-amount fields on live entries:
     transaction_date, reference_number, description, customer_id, supplier_id
   - party keys only touch entries that already carry that party kind

C) post_delta
   - posts the difference new - old as an adjustment group under the same
     reference; |delta| < 0.01 is a no-op
   - positive delta posts the natural direction of the AccountPair,
     negative delta posts the mirror
   - original groups (incl. COGS/inventory legs) stay live and untouched
   - metadata.party is attached to the AR/AP leg of the pair
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Mapping, Optional

from django.db import transaction
from django.utils import timezone

from accounting.entries import (
    BALANCE_TOLERANCE,
    AccountPair,
    EntrySpec,
    PostedGroup,
    PostingMetadata,
    to_money,
)
from accounting.models.ledger import LedgerEntry
from accounting.models.posting_group import PostingGroup
from accounting.services.account_resolver import code_for
from accounting.services.balance_service import refresh_account_caches
from accounting.services.exceptions import InvalidEntryError
from accounting.services.posting_engine import (
    normalize_reference,
    post_adjustment,
    resolve_actor,
    with_reference,
)

logger = logging.getLogger(__name__)

GENERAL_PATCH_KEYS = ("transaction_date", "reference_number", "description")
PARTY_PATCH_KEYS = ("customer_id", "supplier_id")
ALLOWED_PATCH_KEYS = frozenset(GENERAL_PATCH_KEYS + PARTY_PATCH_KEYS)


@transaction.atomic
def reverse_by_reference(
    reference_type,
    reference_id,
    *,
    reversed_by=None,
    reason: str = "",
) -> int:
    """Reverse every live entry of a reference. Returns the number of entries reversed."""
    rt, rid = normalize_reference(reference_type, reference_id)

    live = list(
        LedgerEntry.objects.select_for_update()
        .live()
        .for_reference(rt, rid)
        .values_list("pk", "account_id")
    )
    if not live:
        return 0

    reversed_by = resolve_actor(reversed_by)

    now = timezone.now()
    count = LedgerEntry.objects.filter(pk__in=[pk for pk, _ in live]).update(
        reversed_at=now,
        reversed_by=reversed_by,
        reversal_reason=(reason or "")[:255],
        updated_at=now,
    )
    PostingGroup.objects.filter(
        reference_type=rt, reference_id=rid, reversed_at__isnull=True
    ).update(reversed_at=now)

    refresh_account_caches({code for _, code in live})

    logger.info(
        "Ledger reference reversed",
        extra={"reference": f"{rt}:{rid}", "entries": count, "reason": reason},
    )
    return count


@transaction.atomic
def update_live_entries(reference_type, reference_id, patch: Mapping) -> int:
    """
    Apply a metadata patch to the live entries of a reference.
    Returns the number of distinct entries touched.
    """
    rt, rid = normalize_reference(reference_type, reference_id)

    patch = dict(patch or {})
    unknown = sorted(set(patch) - ALLOWED_PATCH_KEYS)
    if unknown:
        raise InvalidEntryError(
            f"Only {sorted(ALLOWED_PATCH_KEYS)} can be patched in place, got {unknown}"
        )
    for key in PARTY_PATCH_KEYS:
        if key in patch and patch[key] in (None, ""):
            raise InvalidEntryError(f"{key} cannot be cleared in place; reverse and repost")
    if "transaction_date" in patch and patch["transaction_date"] is None:
        raise InvalidEntryError("transaction_date cannot be cleared")

    base = LedgerEntry.objects.live().for_reference(rt, rid)
    now = timezone.now()
    touched: set[int] = set()

    general = {k: patch[k] for k in GENERAL_PATCH_KEYS if k in patch}
    if "reference_number" in general:
        general["reference_number"] = str(general["reference_number"] or "")[:64]
    if "description" in general:
        general["description"] = str(general["description"] or "")[:255]

    if general:
        touched.update(base.values_list("pk", flat=True))
        base.update(**general, updated_at=now)

        header_patch = {
            k: general[k] for k in ("transaction_date", "reference_number") if k in general
        }
        if header_patch:
            PostingGroup.objects.filter(
                reference_type=rt, reference_id=rid, reversed_at__isnull=True
            ).update(**header_patch)

    for key in PARTY_PATCH_KEYS:
        if key not in patch:
            continue
        carrying = base.filter(**{f"{key}__isnull": False})
        touched.update(carrying.values_list("pk", flat=True))
        carrying.update(**{key: patch[key]}, updated_at=now)

    if touched:
        logger.info(
            "Live ledger entries patched",
            extra={"reference": f"{rt}:{rid}", "fields": sorted(patch), "entries": len(touched)},
        )
    return len(touched)


def post_delta(
    reference_type,
    reference_id,
    old_amount,
    new_amount,
    account_pair: AccountPair,
    metadata: Optional[PostingMetadata] = None,
) -> Optional[PostedGroup]:
    """Post new_amount - old_amount on account_pair; None when the change is below 0.01."""
    rt, rid = normalize_reference(reference_type, reference_id)

    old = to_money(old_amount)
    new = to_money(new_amount)
    delta = new - old
    if abs(delta) < BALANCE_TOLERANCE:
        return None

    if delta > 0:
        debit_code, credit_code = account_pair.debit_code, account_pair.credit_code
    else:
        debit_code, credit_code = account_pair.credit_code, account_pair.debit_code

    amount = abs(delta)
    if metadata is None:
        metadata = PostingMetadata(reference_type=rt, reference_id=rid)
    metadata = with_reference(metadata, rt, rid)
    if not metadata.description:
        metadata = replace(metadata, description=f"Adjustment {old} → {new}")

    # the group party belongs on the subsidiary (AR/AP) leg only
    party = metadata.party
    subsidiary = code_for(party.subsidiary_role) if party is not None else None
    if subsidiary in (debit_code, credit_code):
        metadata = replace(metadata, party=None)

    entries = [
        EntrySpec.debit_to(debit_code, amount, party=party if debit_code == subsidiary else None),
        EntrySpec.credit_to(credit_code, amount, party=party if credit_code == subsidiary else None),
    ]
    return post_adjustment(entries, metadata)

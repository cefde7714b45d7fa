# sales/services/sale_service.py

"""
SALE POSTING & EDIT SERVICE

SINGLE entry point for:
- Saving a sale together with its ledger posting (post_sale)
- Editing a posted sale without losing ledger history (apply_sale_edit)
- Voiding a sale (void_sale)

Ledger reference: ("sale", sale.id)

Edit routing:
- principal change (total, cost, customer, payment method) -> reverse + repost
- amount_received only                                     -> post_delta on
                                                              (cash|bank, AR)
- metadata only (sale_date, invoice_no)                    -> update_live_entries
- sale never posted                                        -> post

GUARANTEES:
- The sale row and its ledger rows commit or roll back together
- Customer cached balances (old and new customer) are refreshed from the ledger
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.db import transaction

from accounting.entries import CostLine, PartyRef, PostedGroup, PostingMetadata, to_money
from accounting.services.posting_engine import is_posted, post
from accounting.services.posting_rules import (
    REFERENCE_SALE,
    SalePosting,
    sale_entries,
    sale_payment_pair,
)
from accounting.services.reversal_service import (
    post_delta,
    reverse_by_reference,
    update_live_entries,
)
from parties.services import refresh_cached_balance
from sales.models import Sale

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "customer",
    "total_amount",
    "cost_amount",
    "amount_received",
    "payment_method",
    "sale_date",
    "invoice_no",
)
PRINCIPAL_FIELDS = ("customer_id", "total_amount", "cost_amount", "payment_method")

ACTION_POSTED = "posted"
ACTION_REPOSTED = "reposted"
ACTION_DELTA = "delta"
ACTION_METADATA = "metadata"
ACTION_NOOP = "noop"


class SaleEditError(Exception):
    pass


@dataclass(frozen=True)
class SaleEditResult:
    action: str
    group: Optional[PostedGroup] = None
    entries_patched: int = 0


def _customer_ref(customer_id) -> Optional[PartyRef]:
    return PartyRef.customer(customer_id) if customer_id else None


def sale_posting_for(sale: Sale) -> SalePosting:
    cost = to_money(sale.cost_amount)
    return SalePosting(
        total_amount=to_money(sale.total_amount),
        amount_received=to_money(sale.amount_received),
        payment_method=sale.payment_method,
        customer=_customer_ref(sale.customer_id),
        cost_lines=(CostLine(quantity=Decimal("1"), unit_cost=cost),) if cost > 0 else (),
    )


def _metadata(sale: Sale, user, *, party: Optional[PartyRef] = None) -> PostingMetadata:
    return PostingMetadata(
        reference_type=REFERENCE_SALE,
        reference_id=sale.pk,
        transaction_date=sale.sale_date,
        reference_number=sale.invoice_no,
        description=f"Sale {sale.invoice_no}",
        party=party,
        created_by=user,
    )


def _refresh_customers(*customer_ids) -> None:
    for customer_id in dict.fromkeys(c for c in customer_ids if c):
        refresh_cached_balance(PartyRef.customer(customer_id))


def _post(sale: Sale, user) -> PostedGroup:
    return post(sale_entries(sale_posting_for(sale)), _metadata(sale, user))


@transaction.atomic
def post_sale(sale: Sale, *, created_by=None) -> PostedGroup:
    """
    Save the sale and post it to the ledger in one transaction.
    A posting failure rolls the sale back too.
    """
    if created_by is not None and sale.user_id is None and getattr(created_by, "is_authenticated", False):
        sale.user = created_by

    # validate before the row is written
    sale_entries(sale_posting_for(sale))
    sale.save()

    group = _post(sale, created_by)
    _refresh_customers(sale.customer_id)

    logger.info(
        "Sale posted",
        extra={"sale_id": str(sale.pk), "invoice_no": sale.invoice_no, "transaction_id": group.transaction_id},
    )
    return group


@transaction.atomic
def apply_sale_edit(sale: Sale, *, edited_by=None, **changes) -> SaleEditResult:
    unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
    if unknown:
        raise SaleEditError(f"Fields not editable: {', '.join(unknown)}")

    # Status is checked on the locked row, not the caller's copy.
    sale = Sale.objects.select_for_update().get(pk=sale.pk)
    if sale.status != Sale.STATUS_COMPLETED:
        raise SaleEditError(f"Only completed sales can be edited (status={sale.status})")

    before = {
        "customer_id": sale.customer_id,
        "total_amount": to_money(sale.total_amount),
        "cost_amount": to_money(sale.cost_amount),
        "amount_received": to_money(sale.amount_received),
        "payment_method": sale.payment_method,
        "sale_date": sale.sale_date,
        "invoice_no": sale.invoice_no,
    }

    for field, value in changes.items():
        if field in ("total_amount", "cost_amount", "amount_received"):
            value = to_money(value)
        if field == "customer":
            sale.customer_id = getattr(value, "pk", value)
        else:
            setattr(sale, field, value)

    sale_entries(sale_posting_for(sale))
    sale.save()

    after = {
        "customer_id": sale.customer_id,
        "total_amount": to_money(sale.total_amount),
        "cost_amount": to_money(sale.cost_amount),
        "amount_received": to_money(sale.amount_received),
        "payment_method": sale.payment_method,
        "sale_date": sale.sale_date,
        "invoice_no": sale.invoice_no,
    }
    changed = {k for k in after if after[k] != before[k]}

    if not is_posted(REFERENCE_SALE, sale.pk):
        result = SaleEditResult(ACTION_POSTED, group=_post(sale, edited_by))
    elif changed & set(PRINCIPAL_FIELDS):
        reverse_by_reference(
            REFERENCE_SALE,
            sale.pk,
            reversed_by=edited_by,
            reason=f"Sale edited: {', '.join(sorted(changed))}",
        )
        result = SaleEditResult(ACTION_REPOSTED, group=_post(sale, edited_by))
    elif changed:
        patched = 0
        patch = {}
        if "sale_date" in changed:
            patch["transaction_date"] = sale.sale_date
        if "invoice_no" in changed:
            patch["reference_number"] = sale.invoice_no
            patch["description"] = f"Sale {sale.invoice_no}"
        if patch:
            patched = update_live_entries(REFERENCE_SALE, sale.pk, patch)

        group = None
        if "amount_received" in changed:
            group = post_delta(
                REFERENCE_SALE,
                sale.pk,
                before["amount_received"],
                after["amount_received"],
                sale_payment_pair(sale.payment_method),
                _metadata(sale, edited_by, party=_customer_ref(sale.customer_id)),
            )
        action = ACTION_DELTA if group is not None else ACTION_METADATA
        result = SaleEditResult(action, group=group, entries_patched=patched)
    else:
        result = SaleEditResult(ACTION_NOOP)

    _refresh_customers(before["customer_id"], after["customer_id"])

    logger.info(
        "Sale edited",
        extra={"sale_id": str(sale.pk), "action": result.action, "fields": sorted(changed)},
    )
    return result


@transaction.atomic
def void_sale(sale: Sale, *, voided_by=None, reason: str = "") -> int:
    """Reverse the sale's ledger postings and mark it void. Returns entries reversed."""
    sale = Sale.objects.select_for_update().get(pk=sale.pk)
    if sale.status == Sale.STATUS_VOID:
        return 0

    count = reverse_by_reference(
        REFERENCE_SALE,
        sale.pk,
        reversed_by=voided_by,
        reason=reason or "Sale voided",
    )
    sale.status = Sale.STATUS_VOID
    sale.save(update_fields=["status", "updated_at"])

    _refresh_customers(sale.customer_id)
    return count

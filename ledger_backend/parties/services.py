# parties/services.py

"""
PATH: parties/services.py

PARTY SERVICES

- party_ref_for:          Customer/Supplier instance -> PartyRef
- refresh_cached_balance: rewrite current_balance from the ledger
- set_opening_balance:    store the figure AND post it to the ledger,
                          in one transaction
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.utils import timezone

from accounting.entries import PartyRef, to_money
from accounting.services.balance_service import party_balance
from accounting.services.opening_balance_service import post_party_opening_balance
from parties.models import Customer, Supplier


def party_ref_for(instance) -> PartyRef:
    if isinstance(instance, Customer):
        return PartyRef.customer(instance.pk)
    if isinstance(instance, Supplier):
        return PartyRef.supplier(instance.pk)
    raise TypeError(f"Not a party: {type(instance).__name__}")


def _model_for(party: PartyRef):
    return Customer if party.kind.value == "customer" else Supplier


def refresh_cached_balance(party: PartyRef) -> Decimal:
    balance = party_balance(party)
    _model_for(party).objects.filter(pk=party.id).update(
        current_balance=balance,
        updated_at=timezone.now(),
    )
    return balance


@transaction.atomic
def set_opening_balance(
    party,
    amount,
    *,
    as_of_date: Optional[date] = None,
    created_by=None,
):
    """
    Set (or replace) a party's opening balance.

    The previous opening posting is reversed; a nonzero amount is posted
    fresh. The party's cached balance is refreshed afterwards.
    """
    ref = party_ref_for(party)
    amount = to_money(amount)

    party.opening_balance = amount
    party.save(update_fields=["opening_balance", "updated_at"])

    group = post_party_opening_balance(
        ref,
        amount,
        as_of_date=as_of_date,
        created_by=created_by,
    )

    party.current_balance = refresh_cached_balance(ref)
    return group

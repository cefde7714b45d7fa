# accounting/services/opening_balance_service.py

"""
PATH: accounting/services/opening_balance_service.py

PARTY OPENING BALANCE POSTING

A party's opening balance is a ledger posting, not just a field, so that
party balance == Σ ledger holds from day one.

Reference:
- reference_type = "<customer|supplier>_opening_balance"
- reference_id   = party id

Editing = reverse the previous opening group, then post the new amount if
it is nonzero (|amount| >= 0.01).

Sign convention (amount as entered for the party):
- customer  +  : Dr AR (customer)   / Cr Opening Balance Equity
- customer  -  : Cr AR (customer)   / Dr Opening Balance Equity  (advance)
- supplier  +  : Cr AP (supplier)   / Dr Opening Balance Equity
- supplier  -  : Dr AP (supplier)   / Cr Opening Balance Equity  (advance)
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from django.db import transaction

from accounting.entries import (
    AccountRole,
    EntrySpec,
    PartyKind,
    PartyRef,
    PostedGroup,
    PostingMetadata,
    is_zero,
    to_money,
)
from accounting.services.account_resolver import code_for
from accounting.services.posting_engine import post
from accounting.services.reversal_service import reverse_by_reference


def opening_balance_entries(party: PartyRef, amount) -> list[EntrySpec]:
    amount = to_money(amount)
    value = abs(amount)

    subsidiary = code_for(party.subsidiary_role)
    equity = code_for(AccountRole.OPENING_BALANCE_EQUITY)

    subsidiary_on_debit = (party.kind is PartyKind.CUSTOMER) == (amount > 0)
    if subsidiary_on_debit:
        return [
            EntrySpec.debit_to(subsidiary, value, party=party),
            EntrySpec.credit_to(equity, value),
        ]
    return [
        EntrySpec.debit_to(equity, value),
        EntrySpec.credit_to(subsidiary, value, party=party),
    ]


@transaction.atomic
def post_party_opening_balance(
    party: PartyRef,
    amount,
    *,
    as_of_date: Optional[date] = None,
    created_by=None,
) -> Optional[PostedGroup]:
    amount = to_money(amount)
    reference_type = party.opening_reference_type
    reference_id = str(party.id)

    reverse_by_reference(
        reference_type,
        reference_id,
        reversed_by=created_by,
        reason="Opening balance replaced",
    )

    if is_zero(amount):
        return None

    return post(
        opening_balance_entries(party, amount),
        PostingMetadata(
            reference_type=reference_type,
            reference_id=reference_id,
            reference_number=f"OB-{party.kind.value[:4].upper()}-{party.id}",
            transaction_date=as_of_date,
            description=f"Opening balance ({party.kind.value} {party.id})",
            created_by=created_by,
        ),
    )

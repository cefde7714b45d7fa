# accounting/tests/helpers.py

from __future__ import annotations

from datetime import date
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.core.management import call_command

from accounting.entries import EntrySpec, PostingMetadata
from accounting.services.account_resolver import clear_account_map_cache
from accounting.services.posting_engine import post
from parties.models import Customer, Supplier

User = get_user_model()


def seed_chart():
    call_command("seed_chart", stdout=StringIO())
    clear_account_map_cache()


def D(value) -> Decimal:
    return Decimal(str(value))


def make_customer(name="Acme Traders", **kwargs) -> Customer:
    return Customer.objects.create(name=name, **kwargs)


def make_supplier(name="Metro Wholesale", **kwargs) -> Supplier:
    return Supplier.objects.create(name=name, **kwargs)


def make_user(username="accountant", perms=()):
    user = User.objects.create_user(username=username, password="pass12345")
    for codename in perms:
        app_label, code = codename.split(".")
        user.user_permissions.add(
            Permission.objects.get(content_type__app_label=app_label, codename=code)
        )
    return User.objects.get(pk=user.pk)


def post_pair(
    debit_code,
    credit_code,
    amount,
    *,
    reference_type="test",
    reference_id="1",
    on=None,
    debit_party=None,
    credit_party=None,
    status="completed",
):
    return post(
        [
            EntrySpec.debit_to(debit_code, amount, party=debit_party),
            EntrySpec.credit_to(credit_code, amount, party=credit_party),
        ],
        PostingMetadata(
            reference_type=reference_type,
            reference_id=reference_id,
            transaction_date=on or date(2026, 3, 15),
            status=status,
        ),
    )

# parties/tests/test_services.py

from __future__ import annotations

from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from accounting.entries import PartyKind, PartyRef
from accounting.services.account_resolver import clear_account_map_cache
from accounting.services.balance_service import party_balance
from parties.models import Customer, Supplier
from parties.services import party_ref_for, refresh_cached_balance, set_opening_balance


class PartyServiceTests(TestCase):
    def setUp(self):
        call_command("seed_chart", stdout=StringIO())
        clear_account_map_cache()
        self.customer = Customer.objects.create(name="Walk-in Wholesale", business_name="WW Ltd")
        self.supplier = Supplier.objects.create(name="Metro")

    def test_party_ref_for(self):
        self.assertEqual(party_ref_for(self.customer), PartyRef(PartyKind.CUSTOMER, self.customer.pk))
        self.assertEqual(party_ref_for(self.supplier), PartyRef(PartyKind.SUPPLIER, self.supplier.pk))
        with self.assertRaises(TypeError):
            party_ref_for(object())

    def test_str_prefers_business_name(self):
        self.assertEqual(str(self.customer), "WW Ltd")
        self.assertEqual(str(self.supplier), "Metro")

    def test_set_opening_balance_stores_posts_and_refreshes_cache(self):
        set_opening_balance(self.customer, "750.00")

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.opening_balance, Decimal("750.00"))
        self.assertEqual(self.customer.current_balance, Decimal("750.00"))
        self.assertEqual(party_balance(party_ref_for(self.customer)), Decimal("750.00"))

    def test_set_opening_balance_replaces_previous(self):
        set_opening_balance(self.supplier, "300.00")
        set_opening_balance(self.supplier, "120.00")

        self.supplier.refresh_from_db()
        self.assertEqual(self.supplier.current_balance, Decimal("120.00"))
        self.assertEqual(party_balance(party_ref_for(self.supplier)), Decimal("120.00"))

    def test_refresh_cached_balance_overwrites_stale_cache(self):
        set_opening_balance(self.customer, "50.00")
        Customer.objects.filter(pk=self.customer.pk).update(current_balance=Decimal("999.00"))

        self.assertEqual(refresh_cached_balance(party_ref_for(self.customer)), Decimal("50.00"))
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.current_balance, Decimal("50.00"))

# accounting/tests/test_reversal.py

from __future__ import annotations

from datetime import date

from django.test import TestCase

from accounting.entries import AccountPair, PartyRef, PostingMetadata
from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry
from accounting.models.posting_group import PostingGroup
from accounting.services.balance_service import account_balance, party_balance
from accounting.services.exceptions import InvalidEntryError
from accounting.services.reversal_service import (
    post_delta,
    reverse_by_reference,
    update_live_entries,
)
from accounting.tests.helpers import D, make_customer, make_supplier, make_user, post_pair, seed_chart


class ReverseByReferenceTests(TestCase):
    def setUp(self):
        seed_chart()
        post_pair("1000", "4000", "300.00", reference_id="R1")

    def test_reversal_excludes_entries_and_keeps_history(self):
        user = make_user()
        count = reverse_by_reference("test", "R1", reversed_by=user, reason="Entered twice")

        self.assertEqual(count, 2)
        self.assertEqual(LedgerEntry.objects.for_reference("test", "R1").count(), 2)
        for row in LedgerEntry.objects.for_reference("test", "R1"):
            self.assertIsNotNone(row.reversed_at)
            self.assertEqual(row.reversed_by_id, user.pk)
            self.assertEqual(row.reversal_reason, "Entered twice")

        self.assertIsNotNone(PostingGroup.objects.get(reference_id="R1").reversed_at)
        self.assertEqual(account_balance("1000"), D("0.00"))
        self.assertEqual(Account.objects.get(code="1000").current_balance, D("0.00"))

    def test_reversal_is_idempotent(self):
        self.assertEqual(reverse_by_reference("test", "R1"), 2)
        first_stamp = LedgerEntry.objects.filter(reference_id="R1").first().reversed_at

        self.assertEqual(reverse_by_reference("test", "R1"), 0)
        self.assertEqual(
            LedgerEntry.objects.filter(reference_id="R1").first().reversed_at,
            first_stamp,
        )

    def test_reversed_by_accepts_a_user_pk(self):
        user = make_user()
        reverse_by_reference("test", "R1", reversed_by=user.pk)
        self.assertTrue(
            all(r.reversed_by_id == user.pk for r in LedgerEntry.objects.for_reference("test", "R1"))
        )

    def test_unknown_reverser_is_rejected_and_nothing_reversed(self):
        with self.assertRaises(InvalidEntryError):
            reverse_by_reference("test", "R1", reversed_by="system")
        self.assertEqual(account_balance("1000"), D("300.00"))

    def test_unknown_reference_reverses_nothing(self):
        self.assertEqual(reverse_by_reference("test", "nope"), 0)
        self.assertEqual(account_balance("1000"), D("300.00"))


class UpdateLiveEntriesTests(TestCase):
    def setUp(self):
        seed_chart()
        self.customer = make_customer()
        post_pair(
            "1100",
            "4000",
            "120.00",
            reference_type="sale",
            reference_id="S9",
            debit_party=PartyRef.customer(self.customer.pk),
        )

    def test_metadata_patch_touches_all_live_entries(self):
        touched = update_live_entries(
            "sale",
            "S9",
            {"transaction_date": date(2026, 4, 1), "reference_number": "INV-9"},
        )
        self.assertEqual(touched, 2)
        rows = LedgerEntry.objects.for_reference("sale", "S9")
        self.assertTrue(all(r.transaction_date == date(2026, 4, 1) for r in rows))
        self.assertTrue(all(r.reference_number == "INV-9" for r in rows))

        header = PostingGroup.objects.get(reference_id="S9")
        self.assertEqual(header.transaction_date, date(2026, 4, 1))
        self.assertEqual(header.reference_number, "INV-9")

    def test_party_patch_only_moves_entries_carrying_that_party(self):
        other = make_customer(name="Beta Stores")
        touched = update_live_entries("sale", "S9", {"customer_id": other.pk})

        self.assertEqual(touched, 1)
        self.assertEqual(LedgerEntry.objects.get(account_id="1100").customer_id, other.pk)
        self.assertIsNone(LedgerEntry.objects.get(account_id="4000").customer_id)
        self.assertEqual(party_balance(PartyRef.customer(other.pk)), D("120.00"))
        self.assertEqual(party_balance(PartyRef.customer(self.customer.pk)), D("0.00"))

    def test_supplier_patch_ignores_customer_entries(self):
        supplier = make_supplier()
        self.assertEqual(update_live_entries("sale", "S9", {"supplier_id": supplier.pk}), 0)

    def test_amount_and_unknown_keys_are_rejected(self):
        with self.assertRaises(InvalidEntryError):
            update_live_entries("sale", "S9", {"debit_amount": "1.00"})
        with self.assertRaises(InvalidEntryError):
            update_live_entries("sale", "S9", {"customer_id": None})

    def test_reversed_entries_are_not_patched(self):
        reverse_by_reference("sale", "S9")
        self.assertEqual(update_live_entries("sale", "S9", {"description": "late"}), 0)


class PostDeltaTests(TestCase):
    def setUp(self):
        seed_chart()
        self.pair = AccountPair(debit_code="1000", credit_code="4000")
        post_pair("1000", "4000", "500.00", reference_id="D1")

    def test_positive_delta_posts_natural_direction(self):
        group = post_delta("test", "D1", "500.00", "650.00", self.pair)

        self.assertEqual(group.kind, PostingGroup.KIND_ADJUSTMENT)
        self.assertEqual(group.total_debit, D("150.00"))
        debit_row = LedgerEntry.objects.get(transaction_id=group.transaction_id, debit_amount__gt=0)
        self.assertEqual(debit_row.account_id, "1000")
        self.assertEqual(debit_row.description, "Adjustment 500.00 → 650.00")

    def test_negative_delta_posts_mirror(self):
        group = post_delta("test", "D1", "500.00", "420.00", self.pair)

        debit_row = LedgerEntry.objects.get(transaction_id=group.transaction_id, debit_amount__gt=0)
        self.assertEqual(debit_row.account_id, "4000")
        self.assertEqual(debit_row.debit_amount, D("80.00"))
        self.assertEqual(account_balance("1000"), D("420.00"))

    def test_sub_cent_delta_is_noop(self):
        self.assertIsNone(post_delta("test", "D1", "500.00", "500.004", self.pair))
        self.assertEqual(PostingGroup.objects.count(), 1)

    def test_delta_is_equivalent_to_fresh_post_and_preserves_history(self):
        post_delta("test", "D1", "500.00", "650.00", self.pair)
        post_pair("1010", "4100", "650.00", reference_id="fresh")

        self.assertEqual(account_balance("1000"), account_balance("1010"))
        self.assertEqual(account_balance("4000"), account_balance("4100"))

        original = LedgerEntry.objects.filter(reference_id="D1", debit_amount=D("500.00"))
        self.assertEqual(original.count(), 1)
        self.assertIsNone(original.get().reversed_at)

    def test_party_on_metadata_lands_on_subsidiary_leg(self):
        customer = make_customer()
        ref = PartyRef.customer(customer.pk)
        post_pair("1100", "4000", "200.00", reference_id="D2", debit_party=ref)

        post_delta(
            "test",
            "D2",
            "0.00",
            "50.00",
            AccountPair(debit_code="1000", credit_code="1100"),
            PostingMetadata(reference_type="ignored", reference_id="ignored", party=ref),
        )

        self.assertEqual(party_balance(ref), D("150.00"))
        self.assertIsNone(LedgerEntry.objects.get(reference_id="D2", account_id="1000").customer_id)

# accounting/tests/test_posting_engine.py

from __future__ import annotations

import random
from datetime import date
from decimal import Decimal
from unittest import mock

from django.db import OperationalError
from django.test import TestCase
from django.utils import timezone

from accounting.entries import EntrySpec, PartyRef, PostingMetadata
from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry
from accounting.models.posting_group import PostingGroup
from accounting.services.exceptions import (
    ConcurrencyConflictError,
    DuplicatePostingError,
    InvalidAccountError,
    InvalidEntryError,
    MissingReferenceError,
    UnbalancedGroupError,
)
from accounting.services.posting_engine import is_posted, post, post_adjustment
from accounting.services.reversal_service import reverse_by_reference
from accounting.tests.helpers import D, make_customer, make_user, post_pair, seed_chart

POSTABLE_CODES = ["1000", "1010", "1100", "1200", "2000", "3000", "4000", "5000", "6000"]


def _random_amount(rng: random.Random) -> Decimal:
    return Decimal(rng.randint(1, 500_000)) / Decimal("100")


def _random_balanced_entries(rng: random.Random) -> list[EntrySpec]:
    debit_count = rng.randint(1, 3)
    credit_count = rng.randint(1, 3)

    debits = [_random_amount(rng) for _ in range(debit_count)]
    total = sum(debits)

    credits = []
    remaining = total
    for _ in range(credit_count - 1):
        if remaining <= Decimal("0.02"):
            break
        part = (remaining * Decimal(rng.randint(10, 60)) / 100).quantize(Decimal("0.01"))
        if part <= 0:
            break
        credits.append(part)
        remaining -= part
    credits.append(remaining)

    return [EntrySpec.debit_to(rng.choice(POSTABLE_CODES), d) for d in debits] + [
        EntrySpec.credit_to(rng.choice(POSTABLE_CODES), c) for c in credits
    ]


class PostingEngineTests(TestCase):
    """
    GUARANTEES:
    - Balanced groups are written atomically with a shared transaction_id
    - Unbalanced / malformed groups write nothing
    - One live original group per reference
    """

    def setUp(self):
        seed_chart()

    def test_post_writes_group_entries_and_refreshes_cache(self):
        group = post_pair("1000", "4000", "250.00", reference_id="A1")

        self.assertEqual(group.entry_count, 2)
        self.assertEqual(group.total_debit, D("250.00"))
        self.assertEqual(group.total_credit, D("250.00"))
        self.assertEqual(group.account_codes, ("1000", "4000"))

        rows = LedgerEntry.objects.filter(transaction_id=group.transaction_id)
        self.assertEqual(rows.count(), 2)
        self.assertTrue(all(r.reference_type == "test" and r.reference_id == "A1" for r in rows))
        self.assertTrue(all(r.currency == "PKR" for r in rows))

        header = PostingGroup.objects.get(transaction_id=group.transaction_id)
        self.assertEqual(header.kind, PostingGroup.KIND_ORIGINAL)

        self.assertEqual(Account.objects.get(code="1000").current_balance, D("250.00"))
        self.assertEqual(Account.objects.get(code="4000").current_balance, D("250.00"))

    def test_transaction_id_carries_reference(self):
        group = post_pair("1000", "4000", "10.00", reference_type="sale", reference_id="77")
        self.assertTrue(group.transaction_id.startswith("SALE-77-"))

    def test_created_by_accepts_user_or_pk(self):
        user = make_user()
        lines = [EntrySpec.debit_to("1000", "5"), EntrySpec.credit_to("4000", "5")]

        by_user = post(lines, PostingMetadata(reference_type="test", reference_id="u1", created_by=user))
        by_pk = post(lines, PostingMetadata(reference_type="test", reference_id="u2", created_by=str(user.pk)))

        for group in (by_user, by_pk):
            rows = LedgerEntry.objects.filter(transaction_id=group.transaction_id)
            self.assertTrue(all(r.created_by_id == user.pk for r in rows))

    def test_unresolvable_created_by_is_rejected(self):
        lines = [EntrySpec.debit_to("1000", "5"), EntrySpec.credit_to("4000", "5")]
        for actor in ("system", 424242):
            with self.subTest(actor=actor), self.assertRaises(InvalidEntryError):
                post(lines, PostingMetadata(reference_type="test", reference_id="u3", created_by=actor))
        self.assertFalse(LedgerEntry.objects.exists())

    def test_transaction_date_defaults_to_today(self):
        group = post(
            [EntrySpec.debit_to("1000", "5"), EntrySpec.credit_to("4000", "5")],
            PostingMetadata(reference_type="test", reference_id="today"),
        )
        self.assertEqual(group.transaction_date, timezone.localdate())

    def test_unbalanced_group_is_rejected_and_nothing_written(self):
        with self.assertRaises(UnbalancedGroupError):
            post(
                [EntrySpec.debit_to("1000", "100.00"), EntrySpec.credit_to("4000", "99.98")],
                PostingMetadata(reference_type="test", reference_id="U1"),
            )
        self.assertFalse(LedgerEntry.objects.exists())
        self.assertFalse(PostingGroup.objects.exists())

    def test_difference_within_tolerance_is_accepted(self):
        group = post(
            [EntrySpec.debit_to("1000", "100.00"), EntrySpec.credit_to("4000", "99.99")],
            PostingMetadata(reference_type="test", reference_id="T1"),
        )
        self.assertEqual(group.entry_count, 2)

    def test_missing_reference_is_rejected(self):
        for reference_type, reference_id in (("", "1"), ("test", ""), ("test", None)):
            with self.assertRaises(MissingReferenceError):
                post_pair("1000", "4000", "1.00", reference_type=reference_type, reference_id=reference_id)
        self.assertFalse(LedgerEntry.objects.exists())

    def test_entry_shape_is_validated(self):
        with self.assertRaises(InvalidEntryError):
            post(
                [EntrySpec.debit_to("1000", "5")],
                PostingMetadata(reference_type="test", reference_id="S1"),
            )
        with self.assertRaises(InvalidEntryError):
            post(
                [
                    EntrySpec("1000", debit=D("5"), credit=D("5")),
                    EntrySpec.credit_to("4000", "0"),
                ],
                PostingMetadata(reference_type="test", reference_id="S2"),
            )
        with self.assertRaises(InvalidEntryError):
            post(
                [EntrySpec.debit_to("1000", "-5"), EntrySpec.credit_to("4000", "-5")],
                PostingMetadata(reference_type="test", reference_id="S3"),
            )

    def test_invalid_accounts_are_rejected(self):
        with self.assertRaises(InvalidAccountError):
            post_pair("9999", "4000", "1.00", reference_id="X1")

        with self.assertRaises(InvalidAccountError):
            post_pair("1090", "4000", "1.00", reference_id="X2")

        Account.objects.filter(code="6300").update(is_active=False)
        with self.assertRaises(InvalidAccountError):
            post_pair("6300", "1000", "1.00", reference_id="X3")

        self.assertFalse(LedgerEntry.objects.exists())

    def test_second_post_for_same_reference_is_duplicate(self):
        post_pair("1000", "4000", "10.00", reference_id="D1")
        with self.assertRaises(DuplicatePostingError):
            post_pair("1000", "4000", "10.00", reference_id="D1")
        self.assertEqual(LedgerEntry.objects.count(), 2)

    def test_repost_allowed_after_reversal(self):
        post_pair("1000", "4000", "10.00", reference_id="R1")
        reverse_by_reference("test", "R1")
        post_pair("1000", "4000", "12.00", reference_id="R1")

        self.assertEqual(LedgerEntry.objects.live().for_reference("test", "R1").count(), 2)

    def test_adjustment_groups_share_the_reference(self):
        post_pair("1000", "4000", "10.00", reference_id="ADJ")
        group = post_adjustment(
            [EntrySpec.debit_to("1000", "1"), EntrySpec.credit_to("4000", "1")],
            PostingMetadata(reference_type="test", reference_id="ADJ"),
        )
        self.assertEqual(group.kind, PostingGroup.KIND_ADJUSTMENT)
        self.assertEqual(PostingGroup.objects.filter(reference_id="ADJ").count(), 2)

    def test_is_posted_tracks_live_entries(self):
        self.assertFalse(is_posted("test", "P1"))
        post_pair("1000", "4000", "1.00", reference_id="P1")
        self.assertTrue(is_posted("test", "P1"))
        reverse_by_reference("test", "P1")
        self.assertFalse(is_posted("test", "P1"))

    def test_party_is_written_only_where_attached(self):
        customer = make_customer()
        ref = PartyRef.customer(customer.pk)
        post_pair("1100", "4000", "80.00", reference_id="C1", debit_party=ref)

        ar = LedgerEntry.objects.get(account_id="1100")
        revenue = LedgerEntry.objects.get(account_id="4000")
        self.assertEqual(ar.customer_id, customer.pk)
        self.assertIsNone(ar.supplier_id)
        self.assertIsNone(revenue.customer_id)

    def test_group_party_applies_to_every_leg(self):
        customer = make_customer()
        post(
            [EntrySpec.debit_to("1100", "20"), EntrySpec.credit_to("4000", "20")],
            PostingMetadata(
                reference_type="test",
                reference_id="G1",
                party=PartyRef.customer(customer.pk),
            ),
        )
        self.assertEqual(LedgerEntry.objects.filter(customer=customer).count(), 2)

    def test_write_conflict_surfaces_as_concurrency_error(self):
        with mock.patch(
            "accounting.services.posting_engine.refresh_account_caches",
            side_effect=OperationalError("database is locked"),
        ):
            with self.assertRaises(ConcurrencyConflictError):
                post_pair("1000", "4000", "5.00", reference_id="L1")

        self.assertFalse(LedgerEntry.objects.exists())
        self.assertFalse(PostingGroup.objects.exists())

    def test_random_balanced_sets_are_accepted(self):
        rng = random.Random(20260115)
        for i in range(30):
            entries = _random_balanced_entries(rng)
            group = post(
                entries,
                PostingMetadata(
                    reference_type="prop",
                    reference_id=str(i),
                    transaction_date=date(2026, 1, 1 + i % 28),
                ),
            )
            self.assertEqual(group.total_debit, group.total_credit)
            self.assertEqual(group.entry_count, len(entries))

        self.assertEqual(PostingGroup.objects.count(), 30)

    def test_random_unbalanced_sets_are_rejected(self):
        rng = random.Random(4242)
        for i in range(30):
            entries = _random_balanced_entries(rng)
            skew = Decimal(rng.randint(2, 5000)) / Decimal("100")
            first = entries[0]
            entries[0] = EntrySpec.debit_to(first.account_code, first.debit + skew)

            with self.assertRaises(UnbalancedGroupError):
                post(entries, PostingMetadata(reference_type="prop-bad", reference_id=str(i)))

        self.assertFalse(LedgerEntry.objects.exists())

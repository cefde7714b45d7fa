# accounting/tests/test_reconciliation.py

from __future__ import annotations

from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase

from accounting.entries import PartyRef
from accounting.services.balance_service import bulk_party_balances, party_balance
from accounting.services.exceptions import ReconciliationScopeError
from accounting.services.reconciliation_service import (
    SCOPE_ALL,
    SCOPE_CUSTOMERS,
    SCOPE_SUPPLIERS,
    STATUS_CORRECTED,
    STATUS_DISCREPANCY,
    STATUS_ERROR,
    reconcile,
)
from accounting.tests.helpers import D, make_customer, make_supplier, post_pair, seed_chart
from parties.models import Customer, Supplier

SERVICE = "accounting.services.reconciliation_service"


class ReconciliationTests(TestCase):
    def setUp(self):
        seed_chart()
        self.alice = make_customer(name="Alice")
        self.bob = make_customer(name="Bob")
        self.vendor = make_supplier(current_balance=D("50.00"))

        # ledger says 400 for alice, her cache still says 0
        post_pair(
            "1100",
            "4000",
            "400.00",
            reference_id="a1",
            debit_party=PartyRef.customer(self.alice.pk),
        )

    def test_detects_discrepancies_without_touching_cache(self):
        report = reconcile(SCOPE_ALL)

        self.assertEqual(report.total, 3)
        self.assertEqual(report.matched, 1)
        self.assertFalse(report.is_clean)
        found = {(d.party_type, d.party_id): d for d in report.discrepancies}

        alice = found[("customer", self.alice.pk)]
        self.assertEqual(alice.ledger_balance, D("400.00"))
        self.assertEqual(alice.cached_balance, D("0.00"))
        self.assertEqual(alice.delta, D("400.00"))
        self.assertEqual(alice.status, STATUS_DISCREPANCY)

        vendor = found[("supplier", self.vendor.pk)]
        self.assertEqual(vendor.delta, D("-50.00"))

        self.assertEqual(Customer.objects.get(pk=self.alice.pk).current_balance, D("0.00"))
        self.assertEqual(report.corrected, 0)

    def test_auto_correct_overwrites_cache_with_ledger(self):
        report = reconcile(SCOPE_ALL, auto_correct=True)

        self.assertEqual(report.corrected, 2)
        self.assertTrue(all(d.status == STATUS_CORRECTED for d in report.discrepancies))
        self.assertEqual(Customer.objects.get(pk=self.alice.pk).current_balance, D("400.00"))
        self.assertEqual(Supplier.objects.get(pk=self.vendor.pk).current_balance, D("0.00"))

        self.assertTrue(reconcile(SCOPE_ALL).is_clean)

    def test_auto_correct_writes_the_balance_at_correction_time(self):
        alice = PartyRef.customer(self.alice.pk)
        real_bulk = bulk_party_balances

        def bulk_then_post(kind, ids, as_of=None):
            balances = real_bulk(kind, ids, as_of)
            # a sale lands after the batch was measured
            post_pair("1100", "4000", "25.00", reference_id="late", debit_party=alice)
            return balances

        with patch(f"{SERVICE}.bulk_party_balances", side_effect=bulk_then_post):
            report = reconcile(SCOPE_CUSTOMERS, auto_correct=True)

        self.assertEqual(Customer.objects.get(pk=self.alice.pk).current_balance, D("425.00"))
        self.assertEqual(report.discrepancies[0].ledger_balance, D("425.00"))
        self.assertTrue(reconcile(SCOPE_CUSTOMERS).is_clean)

    def test_sub_cent_gap_is_not_a_discrepancy(self):
        Customer.objects.filter(pk=self.alice.pk).update(current_balance=D("399.99"))
        report = reconcile(SCOPE_CUSTOMERS)
        self.assertEqual(report.discrepancies, [])

    def test_scope_and_single_party(self):
        self.assertEqual(reconcile(SCOPE_SUPPLIERS).total, 1)

        report = reconcile(SCOPE_CUSTOMERS, party_id=self.bob.pk)
        self.assertEqual(report.total, 1)
        self.assertTrue(report.is_clean)

    def test_party_id_requires_a_party_scope(self):
        with self.assertRaises(ReconciliationScopeError):
            reconcile(SCOPE_ALL, party_id=self.alice.pk)
        with self.assertRaises(ReconciliationScopeError):
            reconcile("everyone")
        with self.assertRaises(ReconciliationScopeError):
            reconcile(SCOPE_CUSTOMERS, batch_size=-1)

    def test_small_batches_visit_every_party(self):
        for n in range(5):
            make_customer(name=f"Extra {n}", current_balance=D("1.00"))

        report = reconcile(SCOPE_CUSTOMERS, batch_size=1)

        self.assertEqual(report.total, 7)
        self.assertEqual(len(report.discrepancies), 6)

    def test_bulk_failure_falls_back_to_per_party(self):
        with patch(f"{SERVICE}.bulk_party_balances", side_effect=DatabaseError("boom")):
            report = reconcile(SCOPE_CUSTOMERS)

        self.assertEqual(report.total, 2)
        self.assertEqual(report.errors, [])
        self.assertEqual(
            [d.party_id for d in report.discrepancies],
            [self.alice.pk],
        )

    def test_one_failing_party_does_not_stop_the_run(self):
        alice_id = self.alice.pk

        def flaky(party, as_of=None):
            if party.id == alice_id:
                raise DatabaseError("row lock timeout")
            return party_balance(party, as_of)

        with patch(f"{SERVICE}.bulk_party_balances", side_effect=DatabaseError("boom")), patch(
            f"{SERVICE}.party_balance", side_effect=flaky
        ):
            report = reconcile(SCOPE_CUSTOMERS)

        self.assertEqual(report.total, 2)
        self.assertEqual(report.matched, 1)
        self.assertEqual(len(report.errors), 1)
        self.assertEqual(report.errors[0].party_id, alice_id)
        self.assertEqual(report.errors[0].status, STATUS_ERROR)
        self.assertIn("row lock timeout", report.as_dict()["errors"][0]["error"])

    def test_report_serialises(self):
        data = reconcile(SCOPE_ALL).as_dict()
        self.assertEqual(data["scope"], "all")
        self.assertEqual(data["discrepancy_count"], 2)
        self.assertEqual(data["discrepancies"][0]["status"], "discrepancy")
        self.assertIsNotNone(data["finished_at"])

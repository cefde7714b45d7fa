# sales/tests/test_sale_service.py

from __future__ import annotations

from datetime import date

from django.test import TestCase

from accounting.entries import PartyRef
from accounting.models.ledger import LedgerEntry
from accounting.models.posting_group import PostingGroup
from accounting.services.balance_service import account_balance, party_balance
from accounting.services.exceptions import PostingRuleError
from accounting.services.posting_engine import is_posted
from accounting.tests.helpers import D, make_customer, make_user, seed_chart
from parties.models import Customer
from sales.models import Sale
from sales.services.sale_reports import sales_totals_for_period
from sales.services.sale_service import (
    ACTION_DELTA,
    ACTION_METADATA,
    ACTION_NOOP,
    ACTION_POSTED,
    ACTION_REPOSTED,
    SaleEditError,
    apply_sale_edit,
    post_sale,
    void_sale,
)


class SaleServiceTestCase(TestCase):
    def setUp(self):
        seed_chart()
        self.cashier = make_user("cashier")
        self.customer = make_customer(name="Acme Traders")
        self.ref = PartyRef.customer(self.customer.pk)

    def _credit_sale(self, **kwargs):
        fields = {
            "customer": self.customer,
            "total_amount": D("500.00"),
            "sale_date": date(2026, 3, 10),
        }
        fields.update(kwargs)
        sale = Sale(**fields)
        post_sale(sale, created_by=self.cashier)
        return sale

    def _rows(self, sale, **filters):
        return LedgerEntry.objects.for_reference("sale", str(sale.pk)).filter(**filters)


class PostSaleTests(SaleServiceTestCase):
    def test_credit_sale_posts_receivable_and_revenue(self):
        sale = self._credit_sale()

        ar = self._rows(sale).get(account_id="1100")
        self.assertEqual(ar.debit_amount, D("500.00"))
        self.assertEqual(ar.customer_id, self.customer.pk)
        self.assertEqual(ar.reference_number, sale.invoice_no)
        self.assertEqual(ar.transaction_date, date(2026, 3, 10))
        self.assertEqual(self._rows(sale).get(account_id="4000").credit_amount, D("500.00"))

        self.assertEqual(party_balance(self.ref), D("500.00"))
        self.assertEqual(Customer.objects.get(pk=self.customer.pk).current_balance, D("500.00"))
        self.assertEqual(Sale.objects.get(pk=sale.pk).user_id, self.cashier.pk)
        self.assertTrue(is_posted("sale", sale.pk))

    def test_cost_is_posted_to_cogs(self):
        self._credit_sale(cost_amount=D("320.00"))
        self.assertEqual(account_balance("5000"), D("320.00"))
        self.assertEqual(account_balance("1200"), D("-320.00"))

    def test_walk_in_partial_payment_rolls_back(self):
        sale = Sale(total_amount=D("90.00"), amount_received=D("40.00"))
        with self.assertRaises(PostingRuleError):
            post_sale(sale)

        self.assertFalse(Sale.objects.exists())
        self.assertFalse(LedgerEntry.objects.exists())

    def test_edit_without_changes_is_noop(self):
        sale = self._credit_sale()
        result = apply_sale_edit(sale)
        self.assertEqual(result.action, ACTION_NOOP)
        self.assertEqual(PostingGroup.objects.count(), 1)


class ApplySaleEditTests(SaleServiceTestCase):
    def test_payment_edit_posts_a_delta(self):
        sale = self._credit_sale()
        original_ids = set(self._rows(sale).values_list("pk", flat=True))

        result = apply_sale_edit(sale, edited_by=self.cashier, amount_received="150.00")

        self.assertEqual(result.action, ACTION_DELTA)
        self.assertEqual(result.group.kind, PostingGroup.KIND_ADJUSTMENT)
        self.assertEqual(party_balance(self.ref), D("350.00"))
        self.assertEqual(account_balance("1000"), D("150.00"))
        self.assertEqual(Customer.objects.get(pk=self.customer.pk).current_balance, D("350.00"))

        # original rows untouched
        self.assertFalse(
            LedgerEntry.objects.filter(pk__in=original_ids, reversed_at__isnull=False).exists()
        )

        credit = LedgerEntry.objects.get(transaction_id=result.group.transaction_id, account_id="1100")
        self.assertEqual(credit.credit_amount, D("150.00"))
        self.assertEqual(credit.customer_id, self.customer.pk)
        self.assertEqual(credit.transaction_date, date(2026, 3, 10))

    def test_refund_of_payment_mirrors_the_delta(self):
        sale = self._credit_sale(amount_received=D("200.00"))
        apply_sale_edit(sale, amount_received="50.00")
        self.assertEqual(party_balance(self.ref), D("450.00"))
        self.assertEqual(account_balance("1000"), D("50.00"))

    def test_customer_reassignment_reposts(self):
        sale = self._credit_sale()
        other = make_customer(name="Beta Stores")

        result = apply_sale_edit(sale, customer=other)

        self.assertEqual(result.action, ACTION_REPOSTED)
        self.assertEqual(party_balance(self.ref), D("0.00"))
        self.assertEqual(party_balance(PartyRef.customer(other.pk)), D("500.00"))
        self.assertEqual(Customer.objects.get(pk=self.customer.pk).current_balance, D("0.00"))
        self.assertEqual(Customer.objects.get(pk=other.pk).current_balance, D("500.00"))

        self.assertEqual(self._rows(sale, reversed_at__isnull=False).count(), 2)
        self.assertEqual(self._rows(sale, reversed_at__isnull=True).count(), 2)

    def test_total_change_reposts(self):
        sale = self._credit_sale()
        result = apply_sale_edit(sale, total_amount="620.00")

        self.assertEqual(result.action, ACTION_REPOSTED)
        self.assertEqual(account_balance("4000"), D("620.00"))

    def test_date_edit_patches_live_entries(self):
        sale = self._credit_sale()
        result = apply_sale_edit(sale, sale_date=date(2026, 3, 12))

        self.assertEqual(result.action, ACTION_METADATA)
        self.assertEqual(result.entries_patched, 2)
        self.assertTrue(
            all(r.transaction_date == date(2026, 3, 12) for r in self._rows(sale))
        )
        self.assertEqual(PostingGroup.objects.count(), 1)

    def test_invalid_edit_rolls_back(self):
        sale = Sale(total_amount=D("90.00"), amount_received=D("90.00"))
        post_sale(sale)

        with self.assertRaises(PostingRuleError):
            apply_sale_edit(sale, amount_received="40.00")

        self.assertEqual(Sale.objects.get(pk=sale.pk).amount_received, D("90.00"))
        self.assertEqual(account_balance("1000"), D("90.00"))

    def test_unposted_sale_is_posted_on_edit(self):
        sale = Sale.objects.create(customer=self.customer, total_amount=D("75.00"))
        result = apply_sale_edit(sale, amount_received="25.00")

        self.assertEqual(result.action, ACTION_POSTED)
        self.assertEqual(party_balance(self.ref), D("50.00"))

    def test_unknown_fields_and_void_sales_are_refused(self):
        sale = self._credit_sale()
        with self.assertRaises(SaleEditError):
            apply_sale_edit(sale, status="void")

        void_sale(sale)
        sale.refresh_from_db()
        with self.assertRaises(SaleEditError):
            apply_sale_edit(sale, amount_received="1.00")


class VoidAndReportTests(SaleServiceTestCase):
    def test_void_reverses_everything(self):
        sale = self._credit_sale(cost_amount=D("100.00"))
        apply_sale_edit(sale, amount_received="100.00")

        reversed_count = void_sale(sale, reason="Customer returned goods")

        self.assertEqual(reversed_count, 6)
        self.assertEqual(Sale.objects.get(pk=sale.pk).status, Sale.STATUS_VOID)
        self.assertEqual(party_balance(self.ref), D("0.00"))
        self.assertEqual(account_balance("4000"), D("0.00"))
        self.assertEqual(void_sale(sale), 0)

    def test_stale_instance_cannot_edit_a_voided_sale(self):
        stale = self._credit_sale()
        void_sale(Sale.objects.get(pk=stale.pk))

        with self.assertRaises(SaleEditError):
            apply_sale_edit(stale, total_amount="600.00")

        self.assertFalse(is_posted("sale", stale.pk))
        self.assertEqual(Sale.objects.get(pk=stale.pk).status, Sale.STATUS_VOID)
        self.assertEqual(account_balance("4000"), D("0.00"))

    def test_sales_totals_for_period(self):
        self._credit_sale(cost_amount=D("200.00"))
        voided = self._credit_sale(total_amount=D("50.00"))
        void_sale(voided)
        self._credit_sale(total_amount=D("70.00"), sale_date=date(2026, 4, 1))

        totals = sales_totals_for_period(date(2026, 3, 1), date(2026, 3, 31))
        self.assertEqual(
            totals,
            {"revenue": D("500.00"), "cost_of_goods_sold": D("200.00"), "sale_count": 1},
        )

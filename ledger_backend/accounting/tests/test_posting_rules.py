# accounting/tests/test_posting_rules.py

from __future__ import annotations

from decimal import Decimal

from django.test import SimpleTestCase

from accounting.entries import AccountRole, CostLine, PartyRef
from accounting.services.account_resolver import DEFAULT_ROLE_CODES, AccountMap
from accounting.services.exceptions import PostingRuleError
from accounting.services.posting_rules import (
    PAYMENT_BANK,
    SalePosting,
    bank_payment_entries,
    cash_receipt_entries,
    expense_entries,
    purchase_invoice_entries,
    sale_entries,
    sale_payment_pair,
)

ACCOUNTS = AccountMap(codes=dict(DEFAULT_ROLE_CODES))


def legs(entries):
    """(code, side, amount, party) tuples, order preserved."""
    return [
        (
            e.account_code,
            "Dr" if e.debit else "Cr",
            e.debit or e.credit,
            e.party,
        )
        for e in entries
    ]


def totals(entries):
    return (
        sum((e.debit for e in entries), Decimal("0")),
        sum((e.credit for e in entries), Decimal("0")),
    )


class SaleRuleTests(SimpleTestCase):
    def setUp(self):
        self.customer = PartyRef.customer(7)

    def test_credit_sale_with_partial_payment(self):
        entries = sale_entries(
            SalePosting(
                total_amount=Decimal("500.00"),
                amount_received=Decimal("150.00"),
                payment_method=PAYMENT_BANK,
                customer=self.customer,
            ),
            ACCOUNTS,
        )
        self.assertEqual(
            legs(entries),
            [
                ("1100", "Dr", Decimal("500.00"), self.customer),
                ("4000", "Cr", Decimal("500.00"), None),
                ("1010", "Dr", Decimal("150.00"), None),
                ("1100", "Cr", Decimal("150.00"), self.customer),
            ],
        )
        debit, credit = totals(entries)
        self.assertEqual(debit, credit)

    def test_unpaid_credit_sale_has_no_settlement_legs(self):
        entries = sale_entries(
            SalePosting(total_amount=Decimal("80.00"), customer=self.customer), ACCOUNTS
        )
        self.assertEqual([code for code, *_ in legs(entries)], ["1100", "4000"])

    def test_walk_in_sale_must_be_fully_paid(self):
        entries = sale_entries(
            SalePosting(total_amount=Decimal("40.00"), amount_received=Decimal("40.00")),
            ACCOUNTS,
        )
        self.assertEqual(
            legs(entries),
            [("1000", "Dr", Decimal("40.00"), None), ("4000", "Cr", Decimal("40.00"), None)],
        )

        with self.assertRaises(PostingRuleError):
            sale_entries(
                SalePosting(total_amount=Decimal("40.00"), amount_received=Decimal("10.00")),
                ACCOUNTS,
            )

    def test_cost_lines_add_cogs_and_inventory(self):
        entries = sale_entries(
            SalePosting(
                total_amount=Decimal("100.00"),
                amount_received=Decimal("100.00"),
                cost_lines=(CostLine(Decimal("3"), Decimal("12.50")), CostLine(Decimal("1"), Decimal("4.00"))),
            ),
            ACCOUNTS,
        )
        self.assertIn(("5000", "Dr", Decimal("41.50"), None), legs(entries))
        self.assertIn(("1200", "Cr", Decimal("41.50"), None), legs(entries))

    def test_invalid_sales_are_rejected(self):
        bad = [
            SalePosting(total_amount=Decimal("0.00")),
            SalePosting(total_amount=Decimal("10.00"), amount_received=Decimal("-1.00"), customer=self.customer),
            SalePosting(total_amount=Decimal("10.00"), amount_received=Decimal("11.00"), customer=self.customer),
            SalePosting(total_amount=Decimal("10.00"), customer=PartyRef.supplier(1)),
            SalePosting(total_amount=Decimal("10.00"), amount_received=Decimal("10.00"), payment_method="card"),
        ]
        for sale in bad:
            with self.subTest(sale=sale):
                with self.assertRaises(PostingRuleError):
                    sale_entries(sale, ACCOUNTS)

    def test_payment_pair_follows_method(self):
        self.assertEqual(sale_payment_pair("cash", ACCOUNTS).debit_code, "1000")
        self.assertEqual(sale_payment_pair("BANK", ACCOUNTS).debit_code, "1010")
        self.assertEqual(sale_payment_pair("cash", ACCOUNTS).credit_code, "1100")


class PurchaseAndCashRuleTests(SimpleTestCase):
    def test_purchase_invoice_on_credit_with_part_payment(self):
        supplier = PartyRef.supplier(3)
        entries = purchase_invoice_entries(
            Decimal("900.00"), supplier, amount_paid=Decimal("400.00"), accounts=ACCOUNTS
        )
        self.assertEqual(
            legs(entries),
            [
                ("1200", "Dr", Decimal("900.00"), None),
                ("2000", "Cr", Decimal("900.00"), supplier),
                ("2000", "Dr", Decimal("400.00"), supplier),
                ("1000", "Cr", Decimal("400.00"), None),
            ],
        )

    def test_purchase_invoice_requires_supplier(self):
        with self.assertRaises(PostingRuleError):
            purchase_invoice_entries(Decimal("10.00"), None, accounts=ACCOUNTS)
        with self.assertRaises(PostingRuleError):
            purchase_invoice_entries(Decimal("10.00"), PartyRef.customer(1), accounts=ACCOUNTS)
        with self.assertRaises(PostingRuleError):
            purchase_invoice_entries(
                Decimal("10.00"), PartyRef.supplier(1), amount_paid=Decimal("11.00"), accounts=ACCOUNTS
            )

    def test_customer_receipt_credits_receivable(self):
        customer = PartyRef.customer(2)
        entries = cash_receipt_entries(Decimal("60.00"), party=customer, accounts=ACCOUNTS)
        self.assertEqual(
            legs(entries),
            [("1000", "Dr", Decimal("60.00"), None), ("1100", "Cr", Decimal("60.00"), customer)],
        )

    def test_receipt_without_party_defaults_to_other_revenue(self):
        entries = cash_receipt_entries(Decimal("5.00"), accounts=ACCOUNTS)
        self.assertEqual(entries[1].account_code, ACCOUNTS.code_for(AccountRole.OTHER_REVENUE))

    def test_supplier_bank_payment_debits_payable(self):
        supplier = PartyRef.supplier(4)
        entries = bank_payment_entries(Decimal("250.00"), party=supplier, accounts=ACCOUNTS)
        self.assertEqual(
            legs(entries),
            [("2000", "Dr", Decimal("250.00"), supplier), ("1010", "Cr", Decimal("250.00"), None)],
        )

    def test_expense_entries(self):
        entries = expense_entries(Decimal("30.00"), "6200", accounts=ACCOUNTS)
        self.assertEqual(
            legs(entries),
            [("6200", "Dr", Decimal("30.00"), None), ("1000", "Cr", Decimal("30.00"), None)],
        )
        with self.assertRaises(PostingRuleError):
            expense_entries(Decimal("30.00"), "  ", accounts=ACCOUNTS)
        with self.assertRaises(PostingRuleError):
            expense_entries(Decimal("0.00"), "6200", accounts=ACCOUNTS)

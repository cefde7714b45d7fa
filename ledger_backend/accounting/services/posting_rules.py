# accounting/services/posting_rules.py

"""
POSTING RULES (AUTHORITATIVE)

Defines HOW each business event maps to ledger entries.

RESPONSIBILITIES:
- Resolve semantic accounts (AccountRole -> code via the account map)
- Construct debit / credit EntrySpecs
- Attach the party to the subsidiary (AR/AP) legs

THIS MODULE DOES NOT:
- Write to the database
- Create PostingGroup / LedgerEntry
- Enforce debit == credit (the posting engine does)

Each builder returns a list of EntrySpec ready for posting_engine.post().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Sequence

from accounting.entries import (
    ZERO,
    AccountPair,
    AccountRole,
    CostLine,
    EntrySpec,
    PartyKind,
    PartyRef,
    to_money,
)
from accounting.services.account_resolver import AccountMap, get_account_map
from accounting.services.exceptions import PostingRuleError

PAYMENT_CASH = "cash"
PAYMENT_BANK = "bank"

REFERENCE_SALE = "sale"
REFERENCE_PURCHASE_INVOICE = "purchase_invoice"
REFERENCE_CASH_RECEIPT = "cash_receipt"
REFERENCE_CASH_PAYMENT = "cash_payment"
REFERENCE_BANK_RECEIPT = "bank_receipt"
REFERENCE_BANK_PAYMENT = "bank_payment"
REFERENCE_EXPENSE = "expense"


def _positive(amount, label: str) -> Decimal:
    value = to_money(amount)
    if value <= ZERO:
        raise PostingRuleError(f"{label} must be > 0, got {value}")
    return value


def _settlement_role(payment_method: str) -> AccountRole:
    method = (payment_method or PAYMENT_CASH).strip().lower()
    if method == PAYMENT_CASH:
        return AccountRole.CASH
    if method == PAYMENT_BANK:
        return AccountRole.BANK
    raise PostingRuleError(f"Unsupported payment method {payment_method!r}")


def _require_kind(party: Optional[PartyRef], kind: PartyKind, label: str) -> None:
    if party is not None and party.kind is not kind:
        raise PostingRuleError(f"{label} requires a {kind.value}, got {party.kind.value}")


# ------------------------------------------------------------
# SALES
# ------------------------------------------------------------


@dataclass(frozen=True)
class SalePosting:
    total_amount: Decimal
    amount_received: Decimal = ZERO
    payment_method: str = PAYMENT_CASH
    customer: Optional[PartyRef] = None
    cost_lines: Sequence[CostLine] = field(default_factory=tuple)

    @property
    def cost_amount(self) -> Decimal:
        return to_money(sum((line.amount for line in self.cost_lines), ZERO))


def sale_payment_pair(payment_method: str, accounts: Optional[AccountMap] = None) -> AccountPair:
    """Cash/Bank <- AR: the natural direction of an increase in amount received."""
    accounts = accounts or get_account_map()
    return AccountPair(
        debit_code=accounts.code_for(_settlement_role(payment_method)),
        credit_code=accounts.code_for(AccountRole.ACCOUNTS_RECEIVABLE),
    )


def sale_entries(sale: SalePosting, accounts: Optional[AccountMap] = None) -> list[EntrySpec]:
    """
    Credit sale to a customer:
        Dr AR (customer)        total
        Cr Sales Revenue        total
        Dr Cash/Bank            received
        Cr AR (customer)        received
    Walk-in sale (no customer) must be fully paid:
        Dr Cash/Bank            total
        Cr Sales Revenue        total
    Cost legs (any sale with cost lines):
        Dr COGS                 Σ cost lines
        Cr Inventory            Σ cost lines
    """
    accounts = accounts or get_account_map()
    _require_kind(sale.customer, PartyKind.CUSTOMER, "A sale")

    total = _positive(sale.total_amount, "Sale total")
    received = to_money(sale.amount_received)
    if received < ZERO:
        raise PostingRuleError("Amount received cannot be negative")
    if received > total:
        raise PostingRuleError(f"Amount received {received} exceeds sale total {total}")

    settlement = accounts.code_for(_settlement_role(sale.payment_method))
    revenue = accounts.code_for(AccountRole.SALES_REVENUE)
    receivable = accounts.code_for(AccountRole.ACCOUNTS_RECEIVABLE)

    if sale.customer is None:
        if received != total:
            raise PostingRuleError("A walk-in sale without a customer must be fully paid")
        entries = [
            EntrySpec.debit_to(settlement, total),
            EntrySpec.credit_to(revenue, total),
        ]
    else:
        entries = [
            EntrySpec.debit_to(receivable, total, party=sale.customer),
            EntrySpec.credit_to(revenue, total),
        ]
        if received > ZERO:
            entries += [
                EntrySpec.debit_to(settlement, received),
                EntrySpec.credit_to(receivable, received, party=sale.customer),
            ]

    cost = sale.cost_amount
    if cost < ZERO:
        raise PostingRuleError("Cost of goods sold cannot be negative")
    if cost > ZERO:
        entries += [
            EntrySpec.debit_to(accounts.code_for(AccountRole.COST_OF_GOODS_SOLD), cost),
            EntrySpec.credit_to(accounts.code_for(AccountRole.INVENTORY), cost),
        ]

    return entries


# ------------------------------------------------------------
# PURCHASES
# ------------------------------------------------------------


def purchase_invoice_entries(
    amount,
    supplier: PartyRef,
    *,
    amount_paid=ZERO,
    payment_method: str = PAYMENT_CASH,
    accounts: Optional[AccountMap] = None,
) -> list[EntrySpec]:
    """
    Stock bought on credit:
        Dr Inventory            amount
        Cr AP (supplier)        amount
        Dr AP (supplier)        paid
        Cr Cash/Bank            paid
    """
    accounts = accounts or get_account_map()
    if supplier is None:
        raise PostingRuleError("A purchase invoice requires a supplier")
    _require_kind(supplier, PartyKind.SUPPLIER, "A purchase invoice")

    total = _positive(amount, "Purchase amount")
    paid = to_money(amount_paid)
    if paid < ZERO or paid > total:
        raise PostingRuleError(f"Amount paid {paid} must be between 0 and {total}")

    payable = accounts.code_for(AccountRole.ACCOUNTS_PAYABLE)
    entries = [
        EntrySpec.debit_to(accounts.code_for(AccountRole.INVENTORY), total),
        EntrySpec.credit_to(payable, total, party=supplier),
    ]
    if paid > ZERO:
        entries += [
            EntrySpec.debit_to(payable, paid, party=supplier),
            EntrySpec.credit_to(accounts.code_for(_settlement_role(payment_method)), paid),
        ]
    return entries


# ------------------------------------------------------------
# RECEIPTS / PAYMENTS
# ------------------------------------------------------------


def receipt_entries(
    amount,
    *,
    payment_method: str = PAYMENT_CASH,
    party: Optional[PartyRef] = None,
    credit_account_code: Optional[str] = None,
    accounts: Optional[AccountMap] = None,
) -> list[EntrySpec]:
    """
    Money in:
        Dr Cash/Bank
        Cr AR (customer receipt) | AP (supplier refund) | credit_account_code | Other Revenue
    """
    accounts = accounts or get_account_map()
    value = _positive(amount, "Receipt amount")
    settlement = accounts.code_for(_settlement_role(payment_method))

    if party is not None:
        counter = accounts.code_for(party.subsidiary_role)
        counter_entry = EntrySpec.credit_to(counter, value, party=party)
    else:
        counter = credit_account_code or accounts.code_for(AccountRole.OTHER_REVENUE)
        counter_entry = EntrySpec.credit_to(counter, value)

    return [EntrySpec.debit_to(settlement, value), counter_entry]


def payment_entries(
    amount,
    *,
    payment_method: str = PAYMENT_CASH,
    party: Optional[PartyRef] = None,
    debit_account_code: Optional[str] = None,
    accounts: Optional[AccountMap] = None,
) -> list[EntrySpec]:
    """
    Money out:
        Dr AP (supplier payment) | AR (customer refund) | debit_account_code | Other Expenses
        Cr Cash/Bank
    """
    accounts = accounts or get_account_map()
    value = _positive(amount, "Payment amount")
    settlement = accounts.code_for(_settlement_role(payment_method))

    if party is not None:
        counter = accounts.code_for(party.subsidiary_role)
        counter_entry = EntrySpec.debit_to(counter, value, party=party)
    else:
        counter = debit_account_code or accounts.code_for(AccountRole.OTHER_EXPENSES)
        counter_entry = EntrySpec.debit_to(counter, value)

    return [counter_entry, EntrySpec.credit_to(settlement, value)]


def cash_receipt_entries(amount, **kwargs) -> list[EntrySpec]:
    return receipt_entries(amount, payment_method=PAYMENT_CASH, **kwargs)


def bank_receipt_entries(amount, **kwargs) -> list[EntrySpec]:
    return receipt_entries(amount, payment_method=PAYMENT_BANK, **kwargs)


def cash_payment_entries(amount, **kwargs) -> list[EntrySpec]:
    return payment_entries(amount, payment_method=PAYMENT_CASH, **kwargs)


def bank_payment_entries(amount, **kwargs) -> list[EntrySpec]:
    return payment_entries(amount, payment_method=PAYMENT_BANK, **kwargs)


# ------------------------------------------------------------
# EXPENSES
# ------------------------------------------------------------


def expense_entries(
    amount,
    expense_account_code: str,
    *,
    payment_method: str = PAYMENT_CASH,
    accounts: Optional[AccountMap] = None,
) -> list[EntrySpec]:
    """
    Dr <expense account>
    Cr Cash/Bank
    """
    if not (expense_account_code or "").strip():
        raise PostingRuleError("An expense requires an expense account code")
    return payment_entries(
        amount,
        payment_method=payment_method,
        debit_account_code=expense_account_code.strip(),
        accounts=accounts,
    )

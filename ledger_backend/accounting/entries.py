# accounting/entries.py

"""
PATH: accounting/entries.py

LEDGER POSTING DOMAIN (FRAMEWORK-AGNOSTIC)

Value objects passed from originating business modules into the posting
engine, plus the money rules every ledger computation shares.

Rules:
- Money is Decimal, quantized to 2dp with ROUND_HALF_UP
- Comparisons against zero use BALANCE_TOLERANCE (0.01)
- An entry carries exactly one of debit/credit > 0
- Parties are a tagged variant (PartyRef), never inferred from which
  id field happens to be present
- Account codes are reached through AccountRole, never hardcoded at call sites
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from accounting.services.exceptions import InvalidEntryError

MONEY_QUANT = Decimal("0.01")
BALANCE_TOLERANCE = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    if value is None or value == "":
        return ZERO

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        amount = Decimal(repr(value))
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise InvalidEntryError(f"Invalid money value: {value!r}") from exc

    if not amount.is_finite():
        raise InvalidEntryError(f"Invalid money value: {value!r}")

    return amount.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def is_zero(amount: Decimal) -> bool:
    return abs(amount) < BALANCE_TOLERANCE


class AccountRole(str, Enum):
    """Semantic account purposes resolved to chart codes by account_resolver."""

    CASH = "CASH"
    BANK = "BANK"
    ACCOUNTS_RECEIVABLE = "AR"
    INVENTORY = "INVENTORY"
    ACCOUNTS_PAYABLE = "ACCOUNTS_PAYABLE"
    OWNER_EQUITY = "OWNER_EQUITY"
    OPENING_BALANCE_EQUITY = "OPENING_BALANCE_EQUITY"
    RETAINED_EARNINGS = "RETAINED_EARNINGS"
    SALES_REVENUE = "SALES_REVENUE"
    OTHER_REVENUE = "OTHER_REVENUE"
    COST_OF_GOODS_SOLD = "COGS"
    OTHER_EXPENSES = "OTHER_EXPENSES"


class PartyKind(str, Enum):
    CUSTOMER = "customer"
    SUPPLIER = "supplier"

    @property
    def subsidiary_role(self) -> AccountRole:
        if self is PartyKind.CUSTOMER:
            return AccountRole.ACCOUNTS_RECEIVABLE
        return AccountRole.ACCOUNTS_PAYABLE

    @property
    def ledger_field(self) -> str:
        return f"{self.value}_id"

    @property
    def opening_reference_type(self) -> str:
        return f"{self.value}_opening_balance"

    @classmethod
    def parse(cls, raw) -> "PartyKind":
        value = str(raw or "").strip().lower()
        aliases = {"customers": "customer", "suppliers": "supplier"}
        try:
            return cls(aliases.get(value, value))
        except ValueError as exc:
            raise InvalidEntryError(
                f"party type must be 'customer' or 'supplier', got {raw!r}"
            ) from exc


@dataclass(frozen=True)
class PartyRef:
    """A customer or a supplier, by id. None (not a PartyRef) means no party."""

    kind: PartyKind
    id: int

    def __post_init__(self):
        if self.id is None or str(self.id).strip() == "":
            raise InvalidEntryError("PartyRef requires an id")

    @classmethod
    def customer(cls, party_id) -> "PartyRef":
        return cls(PartyKind.CUSTOMER, party_id)

    @classmethod
    def supplier(cls, party_id) -> "PartyRef":
        return cls(PartyKind.SUPPLIER, party_id)

    @property
    def subsidiary_role(self) -> AccountRole:
        return self.kind.subsidiary_role

    @property
    def ledger_field(self) -> str:
        return self.kind.ledger_field

    @property
    def opening_reference_type(self) -> str:
        return self.kind.opening_reference_type

    def __str__(self):
        return f"{self.kind.value}:{self.id}"


@dataclass(frozen=True)
class EntrySpec:
    """
    One side of a posting.

    - account_code: chart account code
    - debit / credit: exactly one > 0
    - party: overrides the group-level party for this entry
    """

    account_code: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: Optional[str] = None
    party: Optional[PartyRef] = None

    @classmethod
    def debit_to(cls, account_code: str, amount, **kwargs) -> "EntrySpec":
        return cls(account_code=account_code, debit=to_money(amount), **kwargs)

    @classmethod
    def credit_to(cls, account_code: str, amount, **kwargs) -> "EntrySpec":
        return cls(account_code=account_code, credit=to_money(amount), **kwargs)

    def normalized(self) -> "EntrySpec":
        code = str(self.account_code or "").strip()
        if not code:
            raise InvalidEntryError("Entry missing account_code")

        debit = to_money(self.debit)
        credit = to_money(self.credit)

        if debit < ZERO or credit < ZERO:
            raise InvalidEntryError(f"Negative amount on account {code}")
        if debit > ZERO and credit > ZERO:
            raise InvalidEntryError(f"Entry on account {code} has both debit and credit")
        if debit == ZERO and credit == ZERO:
            raise InvalidEntryError(f"Entry on account {code} has neither debit nor credit")

        return EntrySpec(
            account_code=code,
            debit=debit,
            credit=credit,
            description=self.description,
            party=self.party,
        )


@dataclass(frozen=True)
class PostingMetadata:
    """
    Group-level context for one post() call.

    reference_type + reference_id identify the originating business object
    and act as the idempotency key for fresh posts.
    """

    reference_type: str
    reference_id: Any
    transaction_date: Optional[date] = None
    reference_number: str = ""
    description: str = ""
    party: Optional[PartyRef] = None
    created_by: Any = None
    currency: Optional[str] = None
    status: str = "completed"


@dataclass(frozen=True)
class PostedGroup:
    transaction_id: str
    reference_type: str
    reference_id: str
    kind: str
    transaction_date: date
    entry_count: int
    total_debit: Decimal
    total_credit: Decimal
    account_codes: tuple = field(default_factory=tuple)


@dataclass(frozen=True)
class AccountPair:
    """Natural direction of a delta posting: positive delta debits debit_code."""

    debit_code: str
    credit_code: str


@dataclass(frozen=True)
class CostLine:
    """Explicit cost input for COGS/inventory legs (no guessing from item rows)."""

    quantity: Decimal
    unit_cost: Decimal

    @property
    def amount(self) -> Decimal:
        return to_money(Decimal(str(self.quantity)) * to_money(self.unit_cost))

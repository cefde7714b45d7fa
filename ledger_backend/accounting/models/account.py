# accounting/models/account.py

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class Account(models.Model):
    """
    A single Chart of Accounts entry, keyed by its stable code.

    Guarantees:
    - Codes are unique and never blank (ledger rows reference the code)
    - Accounts are deactivated, never deleted
    - opening_balance is signed in the account's normal-balance sense
    - current_balance is a cache refreshed by the posting/reversal engines
    """

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"

    ACCOUNT_TYPES = [
        (ASSET, "Asset"),
        (LIABILITY, "Liability"),
        (EQUITY, "Equity"),
        (REVENUE, "Revenue"),
        (EXPENSE, "Expense"),
    ]

    DEBIT = "DEBIT"
    CREDIT = "CREDIT"

    NORMAL_BALANCES = [
        (DEBIT, "Debit"),
        (CREDIT, "Credit"),
    ]

    # Side on which each account type naturally increases.
    NATURAL_SIDE = {
        ASSET: DEBIT,
        EXPENSE: DEBIT,
        LIABILITY: CREDIT,
        EQUITY: CREDIT,
        REVENUE: CREDIT,
    }

    CATEGORY_CURRENT_ASSETS = "current_assets"
    CATEGORY_FIXED_ASSETS = "fixed_assets"
    CATEGORY_CURRENT_LIABILITIES = "current_liabilities"
    CATEGORY_LONG_TERM_LIABILITIES = "long_term_liabilities"
    CATEGORY_EQUITY = "equity"
    CATEGORY_REVENUE = "revenue"
    CATEGORY_COGS = "cost_of_goods_sold"
    CATEGORY_OPERATING_EXPENSES = "operating_expenses"
    CATEGORY_OTHER_EXPENSES = "other_expenses"

    CATEGORIES = [
        (CATEGORY_CURRENT_ASSETS, "Current Assets"),
        (CATEGORY_FIXED_ASSETS, "Fixed Assets"),
        (CATEGORY_CURRENT_LIABILITIES, "Current Liabilities"),
        (CATEGORY_LONG_TERM_LIABILITIES, "Long-term Liabilities"),
        (CATEGORY_EQUITY, "Equity"),
        (CATEGORY_REVENUE, "Revenue"),
        (CATEGORY_COGS, "Cost of Goods Sold"),
        (CATEGORY_OPERATING_EXPENSES, "Operating Expenses"),
        (CATEGORY_OTHER_EXPENSES, "Other Expenses"),
    ]

    code = models.CharField(max_length=10, unique=True)
    name = models.CharField(max_length=150)

    account_type = models.CharField(max_length=20, choices=ACCOUNT_TYPES)
    normal_balance = models.CharField(max_length=6, choices=NORMAL_BALANCES)
    category = models.CharField(
        max_length=32,
        choices=CATEGORIES,
        blank=True,
        default="",
        help_text="Statement bucket (balance sheet / P&L grouping).",
    )

    allow_direct_posting = models.BooleanField(
        default=True,
        help_text="Header/summary accounts forbid direct posting.",
    )
    is_active = models.BooleanField(default=True)

    opening_balance = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    current_balance = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Cache of the ledger-derived balance. Never ground truth.",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        verbose_name = "Account"
        verbose_name_plural = "Accounts"
        indexes = [
            models.Index(fields=["account_type"], name="idx_account_type"),
            models.Index(fields=["is_active"], name="idx_account_active"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(code=""),
                name="chk_account_code_not_blank",
            ),
            models.CheckConstraint(
                condition=~Q(name=""),
                name="chk_account_name_not_blank",
            ),
        ]

    def __str__(self):
        return f"{self.code} – {self.name}"

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == self.DEBIT

    @property
    def is_contra(self) -> bool:
        """True when the normal side opposes the type's natural side (e.g. accumulated depreciation)."""
        return self.NATURAL_SIDE.get(self.account_type) != self.normal_balance

    @property
    def is_postable(self) -> bool:
        return bool(self.is_active and self.allow_direct_posting)

    def signed_amount(self, debit: Decimal, credit: Decimal) -> Decimal:
        """Net movement in this account's normal-balance sense."""
        if self.is_debit_normal:
            return debit - credit
        return credit - debit

    def natural_amount(self, balance: Decimal) -> Decimal:
        """Convert a normal-sense balance into the account type's natural sense."""
        return -balance if self.is_contra else balance

    def clean(self):
        self.code = (self.code or "").strip()
        self.name = (self.name or "").strip()

        if not self.code:
            raise ValidationError("Account code is required")
        if not self.name:
            raise ValidationError("Account name is required")

    def save(self, *args, **kwargs):
        if not self.normal_balance:
            self.normal_balance = self.NATURAL_SIDE.get(self.account_type, "")
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Accounts cannot be deleted; deactivate them instead")

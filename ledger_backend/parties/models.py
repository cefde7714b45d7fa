# parties/models.py

"""
PATH: parties/models.py

PARTY MODELS (CUSTOMER / SUPPLIER)

Guarantees:
- opening_balance is the figure last set at onboarding/edit; it is posted to
  the ledger by parties.services.set_opening_balance (never read as a balance)
- current_balance is a denormalized cache of the ledger party balance,
  refreshed by the posting flows and audited by the reconciliation job
- Parties referenced by ledger entries cannot be deleted (PROTECT)
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.db.models import Q


class Party(models.Model):
    name = models.CharField(max_length=150)
    business_name = models.CharField(max_length=150, blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")

    opening_balance = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Signed: positive = party owes / is owed per party type.",
    )
    current_balance = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Cache of the ledger-derived balance. Never ground truth.",
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ["name", "id"]

    def __str__(self):
        return self.business_name or self.name

    def clean(self):
        self.name = (self.name or "").strip()
        self.business_name = (self.business_name or "").strip()


class Customer(Party):
    class Meta(Party.Meta):
        verbose_name = "Customer"
        verbose_name_plural = "Customers"
        indexes = [models.Index(fields=["is_active"], name="idx_customer_active")]
        constraints = [
            models.CheckConstraint(
                condition=~Q(name=""),
                name="chk_customer_name_not_blank",
            ),
        ]


class Supplier(Party):
    class Meta(Party.Meta):
        verbose_name = "Supplier"
        verbose_name_plural = "Suppliers"
        indexes = [models.Index(fields=["is_active"], name="idx_supplier_active")]
        constraints = [
            models.CheckConstraint(
                condition=~Q(name=""),
                name="chk_supplier_name_not_blank",
            ),
        ]

# accounting/models/ledger.py

"""
======================================================
PATH: accounting/models/ledger.py
======================================================
LEDGER ENTRY MODEL

One debit OR one credit against a single account, inside a balanced group
identified by transaction_id.

Guarantees:
- Append-only: rows are never deleted (model + queryset delete raise)
- Amounts, account and reference are immutable once written
- Only reversal stamps (reversed_at/by/reason) and in-place-correctable
  metadata (date, party, reference_number, description) may change
- debit_amount > 0 XOR credit_amount > 0 for non-void rows (DB check)
- reference_id is required (DB check)
- reversed_at IS NULL means live; balances read live + completed rows only
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from accounting.models.account import Account

MUTABLE_FIELDS = frozenset(
    {
        "transaction_date",
        "customer",
        "customer_id",
        "supplier",
        "supplier_id",
        "reference_number",
        "description",
        "reversed_at",
        "reversed_by",
        "reversed_by_id",
        "reversal_reason",
        "updated_at",
    }
)


class LedgerEntryQuerySet(models.QuerySet):
    def live(self):
        return self.filter(reversed_at__isnull=True)

    def countable(self):
        """Rows that contribute to balances: completed and not reversed."""
        return self.filter(status=LedgerEntry.STATUS_COMPLETED, reversed_at__isnull=True)

    def for_reference(self, reference_type: str, reference_id: str):
        return self.filter(reference_type=reference_type, reference_id=reference_id)

    def update(self, **kwargs):
        forbidden = sorted(set(kwargs) - MUTABLE_FIELDS)
        if forbidden:
            raise ValidationError(
                f"LedgerEntry fields are immutable: {', '.join(forbidden)}"
            )
        return super().update(**kwargs)

    def delete(self):
        raise ValidationError("LedgerEntry records are append-only and cannot be deleted")


class LedgerEntry(models.Model):
    STATUS_COMPLETED = "completed"
    STATUS_PENDING = "pending"
    STATUS_VOID = "void"

    STATUS_CHOICES = [
        (STATUS_COMPLETED, "Completed"),
        (STATUS_PENDING, "Pending"),
        (STATUS_VOID, "Void"),
    ]

    transaction_id = models.CharField(max_length=160, db_index=True)

    account = models.ForeignKey(
        Account,
        to_field="code",
        db_column="account_code",
        on_delete=models.PROTECT,
        related_name="ledger_entries",
    )

    debit_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    credit_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    transaction_date = models.DateField()
    description = models.CharField(max_length=255, blank=True, default="")

    reference_type = models.CharField(max_length=64)
    reference_id = models.CharField(max_length=64)
    reference_number = models.CharField(max_length=64, blank=True, default="")

    customer = models.ForeignKey(
        "parties.Customer",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_entries",
    )
    supplier = models.ForeignKey(
        "parties.Supplier",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_entries",
    )

    status = models.CharField(
        max_length=12,
        choices=STATUS_CHOICES,
        default=STATUS_COMPLETED,
    )
    currency = models.CharField(max_length=3, default="PKR")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    reversed_at = models.DateTimeField(null=True, blank=True)
    reversed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    reversal_reason = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LedgerEntryQuerySet.as_manager()

    class Meta:
        verbose_name = "Ledger Entry"
        verbose_name_plural = "Ledger Entries"
        ordering = ["transaction_date", "id"]
        indexes = [
            models.Index(
                fields=["account", "transaction_date"],
                name="idx_ledger_account_date",
            ),
            models.Index(fields=["customer"], name="idx_ledger_customer"),
            models.Index(fields=["supplier"], name="idx_ledger_supplier"),
            models.Index(
                fields=["reference_type", "reference_id"],
                name="idx_ledger_reference",
            ),
            models.Index(fields=["reversed_at"], name="idx_ledger_reversed_at"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(debit_amount__gte=0) & Q(credit_amount__gte=0),
                name="chk_ledger_amounts_non_negative",
            ),
            models.CheckConstraint(
                condition=(
                    Q(status="void")
                    | Q(debit_amount__gt=0, credit_amount=0)
                    | Q(debit_amount=0, credit_amount__gt=0)
                ),
                name="chk_ledger_one_sided",
            ),
            models.CheckConstraint(
                condition=~Q(reference_id=""),
                name="chk_ledger_reference_id_required",
            ),
        ]

    def __str__(self):
        side = f"Dr {self.debit_amount}" if self.debit_amount else f"Cr {self.credit_amount}"
        return f"{self.transaction_id} {side} → {self.account_id}"

    @property
    def is_live(self) -> bool:
        return self.reversed_at is None

    def clean(self):
        debit = self.debit_amount or Decimal("0.00")
        credit = self.credit_amount or Decimal("0.00")

        if debit < 0 or credit < 0:
            raise ValidationError("Ledger amounts cannot be negative")

        if self.status != self.STATUS_VOID and (debit > 0) == (credit > 0):
            raise ValidationError("A ledger entry must carry exactly one of debit or credit")

        if not (self.reference_id or "").strip():
            raise ValidationError("reference_id is required")

    def save(self, *args, **kwargs):
        if self.pk:
            update_fields = kwargs.get("update_fields")
            if not update_fields or not set(update_fields) <= MUTABLE_FIELDS:
                raise ValidationError(
                    "LedgerEntry amounts and references are immutable; "
                    "only reversal and metadata fields may be updated"
                )
            return super().save(*args, **kwargs)

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("LedgerEntry records are append-only and cannot be deleted")

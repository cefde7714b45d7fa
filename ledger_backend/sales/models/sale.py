# sales/models/sale.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class Sale(models.Model):
    """
    A completed sale, posted to the ledger under reference ("sale", id).

    GUARANTEES:
    - Posting happens in the same transaction as the save (post_sale)
    - Financial edits go through apply_sale_edit, which keeps the ledger
      in step (reverse + repost, delta posting, or in-place metadata patch)
    - A walk-in sale (no customer) is fully paid
    """

    STATUS_COMPLETED = "completed"
    STATUS_VOID = "void"

    STATUS_CHOICES = [
        (STATUS_COMPLETED, "Completed"),
        (STATUS_VOID, "Void"),
    ]

    PAYMENT_CASH = "cash"
    PAYMENT_BANK = "bank"

    PAYMENT_CHOICES = [
        (PAYMENT_CASH, "Cash"),
        (PAYMENT_BANK, "Bank"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice_no = models.CharField(
        max_length=64,
        unique=True,
        blank=True,
        help_text="System-generated invoice number unless provided",
    )

    customer = models.ForeignKey(
        "parties.Customer",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="sales",
    )

    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales",
        help_text="Staff member who recorded the sale",
    )

    sale_date = models.DateField(default=timezone.localdate)

    total_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    cost_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Cost of goods sold for this sale.",
    )
    amount_received = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    payment_method = models.CharField(
        max_length=16,
        choices=PAYMENT_CHOICES,
        default=PAYMENT_CASH,
    )

    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default=STATUS_COMPLETED,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-sale_date", "-created_at"]
        indexes = [
            models.Index(fields=["sale_date"], name="idx_sale_date"),
            models.Index(fields=["status"], name="idx_sale_status"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(total_amount__gte=0)
                & Q(cost_amount__gte=0)
                & Q(amount_received__gte=0),
                name="chk_sale_amounts_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(amount_received__lte=F("total_amount")),
                name="chk_sale_received_within_total",
            ),
        ]

    @property
    def balance_due(self) -> Decimal:
        return Decimal(self.total_amount) - Decimal(self.amount_received)

    def save(self, *args, **kwargs):
        if not self.invoice_no:
            prefix = timezone.now().strftime("INV%Y%m%d")
            self.invoice_no = f"{prefix}-{uuid.uuid4().hex[:8].upper()}"
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.invoice_no} | {self.total_amount}"

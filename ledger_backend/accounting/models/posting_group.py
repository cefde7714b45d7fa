# accounting/models/posting_group.py

"""
======================================================
PATH: accounting/models/posting_group.py
======================================================
POSTING GROUP (HEADER) MODEL

One row per balanced group written by the posting engine.

Guarantees:
- transaction_id is unique and shared by every LedgerEntry of the group
- At most ONE live original group per (reference_type, reference_id):
  enforced by a partial unique constraint, so a retried post for the same
  business object cannot create a second uncancelled group
- Adjustment (delta) groups share the reference but are exempt
- Never deleted; reversal only stamps reversed_at
"""

from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class PostingGroup(models.Model):
    KIND_ORIGINAL = "original"
    KIND_ADJUSTMENT = "adjustment"

    KINDS = [
        (KIND_ORIGINAL, "Original"),
        (KIND_ADJUSTMENT, "Adjustment"),
    ]

    transaction_id = models.CharField(max_length=160, unique=True)

    reference_type = models.CharField(max_length=64)
    reference_id = models.CharField(max_length=64)
    reference_number = models.CharField(max_length=64, blank=True, default="")

    kind = models.CharField(max_length=12, choices=KINDS, default=KIND_ORIGINAL)
    transaction_date = models.DateField()
    description = models.CharField(max_length=255, blank=True, default="")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    reversed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name = "Posting Group"
        verbose_name_plural = "Posting Groups"
        indexes = [
            models.Index(
                fields=["reference_type", "reference_id"],
                name="idx_group_reference",
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["reference_type", "reference_id"],
                condition=Q(kind="original", reversed_at__isnull=True),
                name="uniq_live_original_group_per_reference",
            ),
            models.CheckConstraint(
                condition=~Q(reference_id=""),
                name="chk_group_reference_id_required",
            ),
        ]

    def __str__(self):
        return self.transaction_id

    @property
    def is_live(self) -> bool:
        return self.reversed_at is None

    def delete(self, *args, **kwargs):
        raise ValidationError("Posting groups are append-only and cannot be deleted")

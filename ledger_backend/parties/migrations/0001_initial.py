"""
======================================================
PATH: parties/migrations/0001_initial.py
======================================================
MIGRATION: CREATE Customer + Supplier
"""

from __future__ import annotations

from decimal import Decimal

from django.db import migrations, models


def _party_fields():
    return [
        (
            "id",
            models.BigAutoField(
                auto_created=True,
                primary_key=True,
                serialize=False,
                verbose_name="ID",
            ),
        ),
        ("name", models.CharField(max_length=150)),
        ("business_name", models.CharField(blank=True, default="", max_length=150)),
        ("phone", models.CharField(blank=True, default="", max_length=32)),
        (
            "opening_balance",
            models.DecimalField(
                decimal_places=2,
                default=Decimal("0.00"),
                help_text="Signed: positive = party owes / is owed per party type.",
                max_digits=14,
            ),
        ),
        (
            "current_balance",
            models.DecimalField(
                decimal_places=2,
                default=Decimal("0.00"),
                help_text="Cache of the ledger-derived balance. Never ground truth.",
                max_digits=14,
            ),
        ),
        ("is_active", models.BooleanField(default=True)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
    ]


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=_party_fields(),
            options={
                "verbose_name": "Customer",
                "verbose_name_plural": "Customers",
                "ordering": ["name", "id"],
                "abstract": False,
                "indexes": [
                    models.Index(fields=["is_active"], name="idx_customer_active")
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("name", ""), _negated=True),
                        name="chk_customer_name_not_blank",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Supplier",
            fields=_party_fields(),
            options={
                "verbose_name": "Supplier",
                "verbose_name_plural": "Suppliers",
                "ordering": ["name", "id"],
                "abstract": False,
                "indexes": [
                    models.Index(fields=["is_active"], name="idx_supplier_active")
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("name", ""), _negated=True),
                        name="chk_supplier_name_not_blank",
                    )
                ],
            },
        ),
    ]

"""
======================================================
PATH: accounting/migrations/0001_initial.py
======================================================
MIGRATION: CREATE Account, PostingGroup, LedgerEntry

- Account keyed by unique code (ledger rows reference the code)
- PostingGroup partial unique index: one live original group per reference
- LedgerEntry check constraints: non-negative, one-sided, reference required
"""

from __future__ import annotations

from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("parties", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Account",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("code", models.CharField(max_length=10, unique=True)),
                ("name", models.CharField(max_length=150)),
                (
                    "account_type",
                    models.CharField(
                        choices=[
                            ("ASSET", "Asset"),
                            ("LIABILITY", "Liability"),
                            ("EQUITY", "Equity"),
                            ("REVENUE", "Revenue"),
                            ("EXPENSE", "Expense"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "normal_balance",
                    models.CharField(
                        choices=[("DEBIT", "Debit"), ("CREDIT", "Credit")],
                        max_length=6,
                    ),
                ),
                (
                    "category",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("current_assets", "Current Assets"),
                            ("fixed_assets", "Fixed Assets"),
                            ("current_liabilities", "Current Liabilities"),
                            ("long_term_liabilities", "Long-term Liabilities"),
                            ("equity", "Equity"),
                            ("revenue", "Revenue"),
                            ("cost_of_goods_sold", "Cost of Goods Sold"),
                            ("operating_expenses", "Operating Expenses"),
                            ("other_expenses", "Other Expenses"),
                        ],
                        default="",
                        help_text="Statement bucket (balance sheet / P&L grouping).",
                        max_length=32,
                    ),
                ),
                (
                    "allow_direct_posting",
                    models.BooleanField(
                        default=True,
                        help_text="Header/summary accounts forbid direct posting.",
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                (
                    "opening_balance",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=14
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
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Account",
                "verbose_name_plural": "Accounts",
                "ordering": ["code"],
                "indexes": [
                    models.Index(fields=["account_type"], name="idx_account_type"),
                    models.Index(fields=["is_active"], name="idx_account_active"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("code", ""), _negated=True),
                        name="chk_account_code_not_blank",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("name", ""), _negated=True),
                        name="chk_account_name_not_blank",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PostingGroup",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("transaction_id", models.CharField(max_length=160, unique=True)),
                ("reference_type", models.CharField(max_length=64)),
                ("reference_id", models.CharField(max_length=64)),
                (
                    "reference_number",
                    models.CharField(blank=True, default="", max_length=64),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[("original", "Original"), ("adjustment", "Adjustment")],
                        default="original",
                        max_length=12,
                    ),
                ),
                ("transaction_date", models.DateField()),
                (
                    "description",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("reversed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Posting Group",
                "verbose_name_plural": "Posting Groups",
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(
                        fields=["reference_type", "reference_id"],
                        name="idx_group_reference",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(
                            ("kind", "original"), ("reversed_at__isnull", True)
                        ),
                        fields=("reference_type", "reference_id"),
                        name="uniq_live_original_group_per_reference",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("reference_id", ""), _negated=True),
                        name="chk_group_reference_id_required",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("transaction_id", models.CharField(db_index=True, max_length=160)),
                (
                    "debit_amount",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=14
                    ),
                ),
                (
                    "credit_amount",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=14
                    ),
                ),
                ("transaction_date", models.DateField()),
                (
                    "description",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("reference_type", models.CharField(max_length=64)),
                ("reference_id", models.CharField(max_length=64)),
                (
                    "reference_number",
                    models.CharField(blank=True, default="", max_length=64),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("completed", "Completed"),
                            ("pending", "Pending"),
                            ("void", "Void"),
                        ],
                        default="completed",
                        max_length=12,
                    ),
                ),
                ("currency", models.CharField(default="PKR", max_length=3)),
                ("reversed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "reversal_reason",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "account",
                    models.ForeignKey(
                        db_column="account_code",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="accounting.account",
                        to_field="code",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="parties.customer",
                    ),
                ),
                (
                    "reversed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "supplier",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="parties.supplier",
                    ),
                ),
            ],
            options={
                "verbose_name": "Ledger Entry",
                "verbose_name_plural": "Ledger Entries",
                "ordering": ["transaction_date", "id"],
                "indexes": [
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
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("debit_amount__gte", 0), ("credit_amount__gte", 0)
                        ),
                        name="chk_ledger_amounts_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("status", "void"),
                            models.Q(("debit_amount__gt", 0), ("credit_amount", 0)),
                            models.Q(("debit_amount", 0), ("credit_amount__gt", 0)),
                            _connector="OR",
                        ),
                        name="chk_ledger_one_sided",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("reference_id", ""), _negated=True),
                        name="chk_ledger_reference_id_required",
                    ),
                ],
            },
        ),
    ]

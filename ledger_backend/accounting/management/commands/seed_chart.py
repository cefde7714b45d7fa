# accounting/management/commands/seed_chart.py

"""
Seed the standard retail/wholesale Chart of Accounts.

Idempotent: existing accounts (by code) are realigned to the definition
below; nothing is deleted and balances are untouched.
Every code the account resolver maps a role to by default is included.
"""

from django.core.management.base import BaseCommand
from django.db import transaction

from accounting.models.account import Account
from accounting.services.account_resolver import clear_account_map_cache

A = Account

# code, name, type, category, normal_balance (None = natural), postable
CHART = [
    ("1000", "Cash", A.ASSET, A.CATEGORY_CURRENT_ASSETS, None, True),
    ("1010", "Bank", A.ASSET, A.CATEGORY_CURRENT_ASSETS, None, True),
    ("1090", "Current Assets (Header)", A.ASSET, A.CATEGORY_CURRENT_ASSETS, None, False),
    ("1100", "Accounts Receivable", A.ASSET, A.CATEGORY_CURRENT_ASSETS, None, True),
    ("1200", "Inventory", A.ASSET, A.CATEGORY_CURRENT_ASSETS, None, True),
    ("1300", "Prepaid Expenses", A.ASSET, A.CATEGORY_CURRENT_ASSETS, None, True),
    ("1500", "Fixed Assets", A.ASSET, A.CATEGORY_FIXED_ASSETS, None, True),
    ("1600", "Accumulated Depreciation", A.ASSET, A.CATEGORY_FIXED_ASSETS, A.CREDIT, True),
    ("2000", "Accounts Payable", A.LIABILITY, A.CATEGORY_CURRENT_LIABILITIES, None, True),
    ("2100", "Accrued Liabilities", A.LIABILITY, A.CATEGORY_CURRENT_LIABILITIES, None, True),
    ("2200", "Sales Tax Payable", A.LIABILITY, A.CATEGORY_CURRENT_LIABILITIES, None, True),
    ("2500", "Long-term Debt", A.LIABILITY, A.CATEGORY_LONG_TERM_LIABILITIES, None, True),
    ("3000", "Owner's Equity", A.EQUITY, A.CATEGORY_EQUITY, None, True),
    ("3050", "Opening Balance Equity", A.EQUITY, A.CATEGORY_EQUITY, None, True),
    ("3100", "Retained Earnings", A.EQUITY, A.CATEGORY_EQUITY, None, True),
    ("4000", "Sales Revenue", A.REVENUE, A.CATEGORY_REVENUE, None, True),
    ("4100", "Other Revenue", A.REVENUE, A.CATEGORY_REVENUE, None, True),
    ("5000", "Cost of Goods Sold", A.EXPENSE, A.CATEGORY_COGS, None, True),
    ("6000", "Operating Expenses", A.EXPENSE, A.CATEGORY_OPERATING_EXPENSES, None, True),
    ("6100", "Salaries & Wages", A.EXPENSE, A.CATEGORY_OPERATING_EXPENSES, None, True),
    ("6200", "Rent", A.EXPENSE, A.CATEGORY_OPERATING_EXPENSES, None, True),
    ("6300", "Utilities", A.EXPENSE, A.CATEGORY_OPERATING_EXPENSES, None, True),
    ("6900", "Other Expenses", A.EXPENSE, A.CATEGORY_OTHER_EXPENSES, None, True),
]


class Command(BaseCommand):
    help = "Seed the standard Chart of Accounts (idempotent)."

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("Seeding Chart of Accounts...")

        created_count = 0
        updated_count = 0

        for code, name, account_type, category, normal_balance, postable in CHART:
            wanted = {
                "name": name,
                "account_type": account_type,
                "category": category,
                "normal_balance": normal_balance or Account.NATURAL_SIDE[account_type],
                "allow_direct_posting": postable,
                "is_active": True,
            }

            acc, acc_created = Account.objects.get_or_create(code=code, defaults=wanted)
            if acc_created:
                created_count += 1
                continue

            changed = [field for field, value in wanted.items() if getattr(acc, field) != value]
            if changed:
                for field in changed:
                    setattr(acc, field, wanted[field])
                acc.save(update_fields=changed + ["updated_at"])
                updated_count += 1

        clear_account_map_cache()

        self.stdout.write(
            self.style.SUCCESS(
                f"✔ Chart of Accounts seeded ({created_count} new accounts, {updated_count} updated)."
            )
        )

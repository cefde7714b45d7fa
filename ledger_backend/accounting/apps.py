# accounting/apps.py

"""
ACCOUNTING APP CONFIG

General ledger core:
- Chart of accounts
- Posting engine (balanced, atomic, idempotent per reference)
- Reversal / adjustment engine
- Balance derivation, statements, reconciliation
"""

from django.apps import AppConfig


class AccountingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "accounting"
    verbose_name = "Accounting (General Ledger)"

# parties/apps.py

"""
PARTIES APP CONFIG

Customer / Supplier records.
- current_balance is a read cache of the ledger-derived party balance
- the ledger (accounting app) is the only source of truth
"""

from django.apps import AppConfig


class PartiesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "parties"
    verbose_name = "Customers & Suppliers"

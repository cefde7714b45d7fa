# sales/apps.py

"""
SALES APP CONFIG

Minimal sale record used as an originating business module of the ledger:
- a sale is saved and posted in one transaction
- edits are routed through sales.services.sale_service.apply_sale_edit
"""

from django.apps import AppConfig


class SalesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "sales"
    verbose_name = "Sales"

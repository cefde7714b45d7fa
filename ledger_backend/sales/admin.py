# sales/admin.py

from django.contrib import admin

from sales.models.sale import Sale


# ======================================================
# SALE ADMIN
# ======================================================


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    """
    Read-mostly: financial edits must go through apply_sale_edit so the
    ledger stays in step.
    """

    list_display = (
        "invoice_no",
        "sale_date",
        "customer",
        "status",
        "total_amount",
        "amount_received",
        "payment_method",
    )
    readonly_fields = (
        "invoice_no",
        "customer",
        "total_amount",
        "cost_amount",
        "amount_received",
        "payment_method",
        "status",
        "created_at",
        "updated_at",
    )
    search_fields = ("invoice_no", "customer__name")
    list_filter = ("status", "payment_method", "sale_date")

    def has_delete_permission(self, request, obj=None):
        return False

# parties/admin.py

from django.contrib import admin

from parties.models import Customer, Supplier


class PartyAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "business_name",
        "phone",
        "opening_balance",
        "current_balance",
        "is_active",
    )
    list_filter = ("is_active",)
    search_fields = ("name", "business_name", "phone")
    # opening balance is posted via parties.services.set_opening_balance;
    # current balance is a ledger cache
    readonly_fields = ("opening_balance", "current_balance", "created_at", "updated_at")
    ordering = ("name",)


@admin.register(Customer)
class CustomerAdmin(PartyAdmin):
    pass


@admin.register(Supplier)
class SupplierAdmin(PartyAdmin):
    pass

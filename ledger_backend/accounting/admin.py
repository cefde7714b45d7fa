# accounting/admin.py

from django.contrib import admin

from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry
from accounting.models.posting_group import PostingGroup

# ============================================================
# ACCOUNT
# ============================================================


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "account_type",
        "normal_balance",
        "category",
        "allow_direct_posting",
        "is_active",
        "current_balance",
    )
    list_filter = ("account_type", "category", "is_active", "allow_direct_posting")
    search_fields = ("code", "name")
    ordering = ("code",)
    readonly_fields = ("current_balance", "created_at", "updated_at")

    fieldsets = (
        (
            "Account Identity",
            {
                "fields": ("code", "name", "account_type", "normal_balance", "category"),
            },
        ),
        (
            "Posting",
            {
                "fields": ("allow_direct_posting", "is_active", "opening_balance"),
            },
        ),
        (
            "System Fields",
            {
                "fields": ("current_balance", "created_at", "updated_at"),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# POSTING GROUP (READ-ONLY)
# ============================================================


@admin.register(PostingGroup)
class PostingGroupAdmin(admin.ModelAdmin):
    list_display = (
        "transaction_id",
        "reference_type",
        "reference_id",
        "kind",
        "transaction_date",
        "reversed_at",
    )
    list_filter = ("kind", "reference_type", "transaction_date")
    search_fields = ("transaction_id", "reference_id", "reference_number")
    ordering = ("-created_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# LEDGER ENTRY (STRICTLY IMMUTABLE)
# ============================================================


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "transaction_id",
        "account",
        "debit_amount",
        "credit_amount",
        "transaction_date",
        "reference_type",
        "reference_id",
        "status",
        "reversed_at",
    )
    list_filter = ("status", "reference_type", "account")
    search_fields = ("transaction_id", "reference_id", "reference_number", "account__code")
    ordering = ("-transaction_date", "-id")
    list_select_related = ("account",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

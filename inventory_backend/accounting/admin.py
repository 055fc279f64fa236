# accounting/admin.py

from django.contrib import admin

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry

# ============================================================
# ACCOUNT
# ============================================================


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "account_type",
        "company",
        "is_active",
    )
    list_filter = ("account_type", "is_active", "company")
    search_fields = ("code", "name")
    ordering = ("company", "code")
    readonly_fields = ("created_at", "updated_at")


# ============================================================
# JOURNAL (IMMUTABLE)
# ============================================================


class LedgerEntryInline(admin.TabularInline):
    model = LedgerEntry
    extra = 0
    can_delete = False
    fields = ("account", "entry_type", "amount", "created_at")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(JournalEntry)
class JournalEntryAdmin(admin.ModelAdmin):
    list_display = ("id", "company", "reference", "description", "posted_at")
    list_filter = ("company",)
    search_fields = ("reference", "description")
    date_hierarchy = "posted_at"
    inlines = [LedgerEntryInline]
    readonly_fields = (
        "company",
        "reference",
        "description",
        "posted_at",
        "created_by",
        "created_at",
        "is_posted",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

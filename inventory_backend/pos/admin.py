from django.contrib import admin

from .models import PosTransaction, PosTransactionItem, PosTransactionPayment

# =====================================================
# LINE / PAYMENT INLINES (READ-ONLY)
# =====================================================


class PosTransactionItemInline(admin.TabularInline):
    model = PosTransactionItem
    extra = 0
    can_delete = False
    readonly_fields = (
        "line_no",
        "item",
        "item_code",
        "quantity",
        "unit_price",
        "discount",
        "line_total",
    )

    def has_add_permission(self, request, obj=None):
        return False


class PosTransactionPaymentInline(admin.TabularInline):
    model = PosTransactionPayment
    extra = 0
    can_delete = False
    readonly_fields = ("method", "amount", "reference", "created_at")

    def has_add_permission(self, request, obj=None):
        return False


# =====================================================
# SALE ADMIN
# =====================================================


@admin.register(PosTransaction)
class PosTransactionAdmin(admin.ModelAdmin):
    list_display = (
        "transaction_code",
        "transaction_date",
        "warehouse",
        "cashier",
        "total_amount",
        "status",
        "company",
    )
    list_filter = ("status", "company", "warehouse")
    search_fields = ("transaction_code", "customer_name", "cashier_name")
    ordering = ("-transaction_date",)
    inlines = [PosTransactionItemInline, PosTransactionPaymentInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

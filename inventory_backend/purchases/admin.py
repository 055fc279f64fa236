# purchases/admin.py

from django.contrib import admin

from purchases.models import (
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseReceipt,
    PurchaseReceiptItem,
    Supplier,
)


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ("supplier_code", "name", "phone", "email", "is_active", "company")
    list_filter = ("is_active", "company")
    search_fields = ("supplier_code", "name", "email")


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 0
    can_delete = False
    fields = ("line_no", "item", "package", "quantity", "rate", "line_total", "quantity_received")
    readonly_fields = fields


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ("order_code", "supplier", "status", "total_amount", "order_date", "company")
    list_filter = ("status", "company")
    search_fields = ("order_code", "supplier__name")
    inlines = [PurchaseOrderItemInline]
    readonly_fields = ("order_code", "status", "total_amount", "approved_by", "approved_at")


class PurchaseReceiptItemInline(admin.TabularInline):
    model = PurchaseReceiptItem
    extra = 0
    can_delete = False
    fields = ("line_no", "item", "package", "quantity_ordered", "quantity_received", "rate")
    readonly_fields = fields


@admin.register(PurchaseReceipt)
class PurchaseReceiptAdmin(admin.ModelAdmin):
    """Receiving only happens through the API so stock and AP stay in step."""

    list_display = (
        "receipt_code",
        "supplier",
        "warehouse",
        "status",
        "total_amount",
        "receipt_date",
        "company",
    )
    list_filter = ("status", "company")
    search_fields = ("receipt_code", "supplier__name", "supplier_invoice_number")
    inlines = [PurchaseReceiptItemInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

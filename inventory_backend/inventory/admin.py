# inventory/admin.py
"""
Admin rules (audit-safe stock):

- Master data (items, packages, warehouses, locations, UOMs) is editable.
- Balances, stock transactions and ledger rows are READ-ONLY here.
  Stock only moves through inventory.services.engine so every balance
  change has a matching ledger row.
"""

from __future__ import annotations

from django.contrib import admin

from inventory.models import (
    Item,
    ItemPackage,
    ItemWarehouse,
    StockTransaction,
    StockTransactionItem,
    StockTransactionLine,
    UnitOfMeasure,
    Warehouse,
    WarehouseLocation,
)


class ReadOnlyAdminMixin:
    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class ItemPackageInline(admin.TabularInline):
    model = ItemPackage
    extra = 0
    fields = ("pack_name", "qty_per_pack", "is_base")


class WarehouseLocationInline(admin.TabularInline):
    model = WarehouseLocation
    extra = 0
    fields = ("code", "name", "is_pickable", "is_storable", "is_active")


@admin.register(UnitOfMeasure)
class UnitOfMeasureAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "symbol", "company", "is_active")
    list_filter = ("company", "is_active")
    search_fields = ("code", "name")


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ("item_code", "item_name", "item_type", "company", "is_active", "deleted_at")
    list_filter = ("company", "item_type", "is_active")
    search_fields = ("item_code", "item_name")
    inlines = [ItemPackageInline]


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ("warehouse_code", "warehouse_name", "company", "is_active")
    list_filter = ("company", "is_active")
    search_fields = ("warehouse_code", "warehouse_name")
    inlines = [WarehouseLocationInline]


@admin.register(ItemWarehouse)
class ItemWarehouseAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ("item", "warehouse", "current_stock", "reserved_stock", "available_stock", "updated_at")
    list_filter = ("company", "warehouse")
    search_fields = ("item__item_code", "item__item_name")


class StockTransactionLineInline(admin.TabularInline):
    model = StockTransactionLine
    extra = 0
    can_delete = False
    readonly_fields = ("line_no", "item", "package", "input_qty", "unit_cost", "batch_no")
    fields = readonly_fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(StockTransaction)
class StockTransactionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        "transaction_code",
        "transaction_type",
        "status",
        "warehouse",
        "to_warehouse",
        "reference_type",
        "transaction_date",
    )
    list_filter = ("company", "transaction_type", "status", "reference_type")
    search_fields = ("transaction_code", "notes")
    inlines = [StockTransactionLineInline]


@admin.register(StockTransactionItem)
class StockTransactionItemAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        "transaction",
        "item",
        "warehouse",
        "quantity",
        "qty_before",
        "qty_after",
        "valuation_rate",
        "posting_date",
    )
    list_filter = ("company", "warehouse", "posting_date")
    search_fields = ("item__item_code", "transaction__transaction_code")

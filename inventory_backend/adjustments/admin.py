# adjustments/admin.py
"""
Adjustments are read-only in admin; status changes go through the API
so posting always runs through the stock engine.
"""

from django.contrib import admin

from adjustments.models import StockAdjustment, StockAdjustmentItem


class StockAdjustmentItemInline(admin.TabularInline):
    model = StockAdjustmentItem
    extra = 0
    can_delete = False
    fields = ("line_no", "item", "current_qty", "adjusted_qty", "difference", "unit_cost", "total_cost")
    readonly_fields = fields


@admin.register(StockAdjustment)
class StockAdjustmentAdmin(admin.ModelAdmin):
    list_display = (
        "adjustment_code",
        "adjustment_type",
        "warehouse",
        "status",
        "total_value",
        "adjustment_date",
        "company",
    )
    list_filter = ("status", "adjustment_type", "company")
    search_fields = ("adjustment_code", "reason")
    inlines = [StockAdjustmentItemInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

# transformations/admin.py
"""
Templates and orders are read-only in admin; execution goes through the
API so stock always moves through the stock engine.
"""

from django.contrib import admin

from transformations.models import (
    TransformationOrder,
    TransformationOrderInput,
    TransformationOrderOutput,
    TransformationTemplate,
    TransformationTemplateInput,
    TransformationTemplateOutput,
)


class ReadOnlyInline(admin.TabularInline):
    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class TemplateInputInline(ReadOnlyInline):
    model = TransformationTemplateInput
    fields = ("sequence", "item", "quantity", "uom")
    readonly_fields = fields


class TemplateOutputInline(ReadOnlyInline):
    model = TransformationTemplateOutput
    fields = ("sequence", "item", "quantity", "uom", "is_scrap")
    readonly_fields = fields


class OrderInputInline(ReadOnlyInline):
    model = TransformationOrderInput
    fields = ("sequence", "item", "planned_quantity", "consumed_quantity", "unit_cost", "total_cost")
    readonly_fields = fields


class OrderOutputInline(ReadOnlyInline):
    model = TransformationOrderOutput
    fields = (
        "sequence",
        "item",
        "is_scrap",
        "planned_quantity",
        "produced_quantity",
        "wasted_quantity",
        "total_allocated_cost",
    )
    readonly_fields = fields


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(TransformationTemplate)
class TransformationTemplateAdmin(ReadOnlyAdmin):
    list_display = ("template_code", "template_name", "is_active", "usage_count", "company")
    list_filter = ("is_active", "company")
    search_fields = ("template_code", "template_name")
    inlines = [TemplateInputInline, TemplateOutputInline]


@admin.register(TransformationOrder)
class TransformationOrderAdmin(ReadOnlyAdmin):
    list_display = (
        "order_code",
        "template",
        "warehouse",
        "status",
        "planned_quantity",
        "total_input_cost",
        "order_date",
        "company",
    )
    list_filter = ("status", "company")
    search_fields = ("order_code",)
    inlines = [OrderInputInline, OrderOutputInline]

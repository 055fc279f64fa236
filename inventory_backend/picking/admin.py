# picking/admin.py

from django.contrib import admin

from picking.models import PickList, PickListItem


class PickListItemInline(admin.TabularInline):
    model = PickListItem
    extra = 0
    can_delete = False
    fields = ("line_no", "item", "location", "allocated_qty", "picked_qty", "short_qty")
    readonly_fields = fields


@admin.register(PickList)
class PickListAdmin(admin.ModelAdmin):
    list_display = ("pick_list_code", "warehouse", "status", "started_at", "completed_at", "company")
    list_filter = ("status", "company")
    search_fields = ("pick_list_code", "notes")
    filter_horizontal = ("assignees",)
    readonly_fields = ("pick_list_code", "status", "started_at", "completed_at", "cancel_reason")
    inlines = [PickListItemInline]

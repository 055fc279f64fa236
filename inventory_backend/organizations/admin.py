# organizations/admin.py

from django.contrib import admin

from organizations.models import BusinessUnit, Company


class BusinessUnitInline(admin.TabularInline):
    model = BusinessUnit
    extra = 0
    fields = ("code", "name", "is_active")


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("code", "name")
    inlines = [BusinessUnitInline]

# users/admin.py

"""
USERS ADMIN REGISTRATION

Staff and tenant assignment: role, company, business unit and the
van warehouse POS sales draw from.
"""

from __future__ import annotations

from django.contrib import admin
from django.contrib.auth import get_user_model
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

User = get_user_model()

try:
    admin.site.unregister(User)
except admin.sites.NotRegistered:
    pass


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    ordering = ("email",)
    list_display = ("email", "username", "role", "company", "van_warehouse", "is_active")
    list_filter = ("role", "company", "is_staff", "is_active")
    search_fields = ("email", "username", "first_name", "last_name")
    list_select_related = ("company", "van_warehouse")
    autocomplete_fields = ("van_warehouse",)

    fieldsets = (
        (None, {"fields": ("email", "username", "password")}),
        ("Profile", {"fields": ("first_name", "last_name", "role")}),
        ("Scope", {"fields": ("company", "business_unit", "van_warehouse")}),
        (
            "Permissions",
            {
                "fields": (
                    "is_active",
                    "is_staff",
                    "is_superuser",
                    "groups",
                    "user_permissions",
                )
            },
        ),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": (
                    "email",
                    "username",
                    "password1",
                    "password2",
                    "role",
                    "company",
                    "is_staff",
                    "is_active",
                ),
            },
        ),
    )

# inventory/services/lookups.py

"""
Tenant-scoped row lookups shared by every posting service.

A row that exists but belongs to another company is reported exactly
like a missing row.
"""

from __future__ import annotations

from django.core.exceptions import ValidationError as DjangoValidationError

from inventory.models import Item, UnitOfMeasure, Warehouse

from .exceptions import NotFound


def get_owned(model, ctx, pk, *, label: str | None = None, company_field: str = "company_id", **filters):
    label = label or model._meta.verbose_name.capitalize()
    if not pk:
        raise NotFound(f"{label} not found")

    try:
        obj = model.objects.filter(pk=pk, **{company_field: ctx.company_id}, **filters).first()
    except (DjangoValidationError, ValueError):
        obj = None

    if obj is None:
        raise NotFound(f"{label} not found")
    return obj


def get_item(ctx, pk):
    return get_owned(Item, ctx, pk, label="Item", deleted_at__isnull=True)


def get_warehouse(ctx, pk, *, label: str = "Warehouse"):
    return get_owned(Warehouse, ctx, pk, label=label)


def get_package(item, pk):
    if not pk:
        return None
    package = item.packages.filter(pk=pk).first()
    if package is None:
        raise NotFound("Package not found for item")
    return package


def get_uom(ctx, pk):
    if not pk:
        return None
    return get_owned(UnitOfMeasure, ctx, pk, label="Unit of measure")


def get_location(warehouse, pk):
    if not pk:
        return None
    location = warehouse.locations.filter(pk=pk).first()
    if location is None:
        raise NotFound("Location not found in the selected warehouse")
    return location

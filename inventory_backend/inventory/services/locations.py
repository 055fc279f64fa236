# inventory/services/locations.py

"""
LOCATION SIDE EFFECT

Every balance write also moves ItemLocation.qty_on_hand for one
location, resolved in this order:
1) explicit location on the transaction
2) the balance row's default_location
3) the warehouse MAIN location (created on demand)

Outbound moves with no explicit location draw from every bin of the
item in the warehouse, oldest first (FIFO), skipping reserved quantity.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError, transaction

from inventory.models import (
    DEFAULT_LOCATION_CODE,
    ItemLocation,
    ItemWarehouse,
    WarehouseLocation,
)

from .delta import is_outbound
from .exceptions import NotFound, StockValidationError

ZERO = Decimal("0")


def ensure_default_location(warehouse) -> WarehouseLocation:
    existing = WarehouseLocation.objects.filter(
        warehouse=warehouse, code=DEFAULT_LOCATION_CODE
    ).first()
    if existing is not None:
        return existing

    try:
        with transaction.atomic():
            return WarehouseLocation.objects.create(
                warehouse=warehouse,
                code=DEFAULT_LOCATION_CODE,
                name="Main",
                is_pickable=True,
                is_storable=True,
            )
    except IntegrityError:
        return WarehouseLocation.objects.get(warehouse=warehouse, code=DEFAULT_LOCATION_CODE)


def validate_location(location, warehouse) -> WarehouseLocation | None:
    if location is None:
        return None
    if location.warehouse_id != warehouse.pk:
        raise NotFound("Location not found in the selected warehouse")
    return location


def resolve_location(*, balance: ItemWarehouse, location=None) -> WarehouseLocation:
    if location is not None:
        return location

    if balance.default_location_id:
        return balance.default_location

    default = ensure_default_location(balance.warehouse)
    balance.default_location = default
    balance.save(update_fields=["default_location", "updated_at"])
    return default


def _move_at(*, balance: ItemWarehouse, location: WarehouseLocation, delta: Decimal) -> None:
    row = (
        ItemLocation.objects.select_for_update()
        .filter(item_id=balance.item_id, location=location)
        .order_by("pk")
        .first()
    )
    if row is None:
        row = ItemLocation(
            company_id=balance.company_id,
            item_id=balance.item_id,
            warehouse_id=balance.warehouse_id,
            location=location,
        )

    next_on_hand = Decimal(row.qty_on_hand or 0) + delta
    if next_on_hand < 0 and not settings.INVENTORY_ALLOW_NEGATIVE_STOCK:
        raise StockValidationError("Insufficient on-hand quantity at the selected location.")

    row.qty_on_hand = next_on_hand
    row.save()


def consume_item_locations_fifo(*, balance: ItemWarehouse, quantity: Decimal) -> WarehouseLocation:
    """
    Take `quantity` (base units, positive) out of the item's bins in this
    warehouse, oldest bin first. Reserved quantity is never consumed.

    Returns the first bin drawn from; the ledger row records that one.
    """
    rows = (
        ItemLocation.objects.select_for_update()
        .filter(item_id=balance.item_id, warehouse_id=balance.warehouse_id)
        .select_related("location")
        .order_by("created_at", "pk")
    )

    remaining = Decimal(quantity)
    first = None
    for row in rows:
        if remaining <= 0:
            break
        available = max(ZERO, Decimal(row.qty_on_hand) - Decimal(row.qty_reserved))
        if available <= 0:
            continue

        take = min(available, remaining)
        row.qty_on_hand = Decimal(row.qty_on_hand) - take
        row.save(update_fields=["qty_on_hand", "updated_at"])
        remaining -= take
        if first is None:
            first = row.location

    if remaining > 0:
        if not settings.INVENTORY_ALLOW_NEGATIVE_STOCK:
            raise StockValidationError("Insufficient stock across locations for FIFO consumption.")
        # negative stock allowed: the shortfall lands on the default bin
        fallback = resolve_location(balance=balance)
        _move_at(balance=balance, location=fallback, delta=-remaining)
        first = first or fallback

    return first


def adjust_item_location(
    *,
    balance: ItemWarehouse,
    delta: Decimal,
    location=None,
) -> WarehouseLocation:
    """
    Apply `delta` to the item's bins and return the bin to record.

    Outbound moves without an explicit bin consume bins FIFO; everything
    else lands on the resolved bin.
    """
    if location is None and is_outbound(delta):
        return consume_item_locations_fifo(balance=balance, quantity=-delta)

    resolved = resolve_location(balance=balance, location=location)
    _move_at(balance=balance, location=resolved, delta=delta)
    return resolved

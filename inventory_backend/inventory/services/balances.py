# inventory/services/balances.py

"""
BALANCE READER + BALANCE WRITER

ItemWarehouse is the authoritative on-hand quantity for one
(item, warehouse). These helpers are the only code that mutates it.

RULES:
- Reads never create rows; an absent row reads as 0
- Writes run inside the caller's transaction.atomic() block with the
  row locked via select_for_update(), so concurrent movements on the
  same pair serialize
- Outbound writes that would go negative raise InsufficientStock
  (never clamped) unless INVENTORY_ALLOW_NEGATIVE_STOCK is on
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError, transaction

from inventory.models import ItemWarehouse

from .exceptions import ConflictError, InsufficientStock
from .locations import ensure_default_location

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _live_rows(ctx, item, warehouse):
    return ItemWarehouse.objects.filter(
        company_id=ctx.company_id,
        item=item,
        warehouse=warehouse,
        deleted_at__isnull=True,
    ).order_by("pk")


def read_balance(ctx, item, warehouse, *, lock: bool = False) -> Decimal:
    qs = _live_rows(ctx, item, warehouse)
    if lock:
        qs = qs.select_for_update()

    row = qs.only("current_stock").first()
    if row is None:
        return ZERO
    return Decimal(row.current_stock)


def lock_balance_row(ctx, item, warehouse, *, user=None, default_location=None) -> ItemWarehouse:
    """
    Return the live balance row under lock, creating it at zero if absent.

    A new row takes `default_location` as its default bin, or the
    warehouse MAIN location when none is given.

    A concurrent creator wins the partial unique index; we then re-read
    under lock (which waits for the winner to commit).
    """
    qs = _live_rows(ctx, item, warehouse).select_for_update()

    row = qs.first()
    if row is not None:
        return row

    try:
        with transaction.atomic():
            return ItemWarehouse.objects.create(
                company_id=ctx.company_id,
                item=item,
                warehouse=warehouse,
                current_stock=ZERO,
                default_location=default_location or ensure_default_location(warehouse),
                created_by=user,
                updated_by=user,
            )
    except IntegrityError:
        logger.info(
            "Balance row created concurrently; re-reading under lock",
            extra={"item_id": str(item.pk), "warehouse_id": str(warehouse.pk)},
        )

    row = qs.first()
    if row is None:
        raise ConflictError("Could not lock stock balance, retry the request")
    return row


def write_balance(
    ctx,
    item,
    warehouse,
    *,
    new_balance: Decimal,
    requested: Decimal,
    outbound: bool,
    user=None,
    row: ItemWarehouse | None = None,
) -> ItemWarehouse:
    if outbound and new_balance < 0 and not settings.INVENTORY_ALLOW_NEGATIVE_STOCK:
        raise InsufficientStock(
            available=new_balance + requested,
            requested=requested,
            item_code=getattr(item, "item_code", ""),
            warehouse_code=getattr(warehouse, "warehouse_code", ""),
        )

    if row is None:
        row = lock_balance_row(ctx, item, warehouse, user=user)

    row.current_stock = new_balance
    row.updated_by = user
    row.save(update_fields=["current_stock", "updated_by", "updated_at"])
    return row

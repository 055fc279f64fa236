# picking/services/pick_list_service.py

"""
PICK LIST SERVICE

Creation, picked-quantity capture and the status workflow. Every
mutation locks the pick list row first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from inventory.models import Item
from inventory.services.delta import to_decimal
from inventory.services.document_codes import PREFIX_PICK_LIST, next_document_code
from inventory.services.exceptions import (
    DocumentStateError,
    InvalidQuantity,
    NotFound,
    StockValidationError,
)
from inventory.services.ledger import q4
from inventory.services.locations import validate_location
from picking.models import PickList, PickListItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PickLine:
    item: Item
    allocated_qty: Decimal
    uom: object = None
    location: object = None


def get_pick_list(ctx, pk, *, lock: bool = False) -> PickList:
    qs = PickList.objects.filter(pk=pk, company_id=ctx.company_id, deleted_at__isnull=True)
    if lock:
        qs = qs.select_for_update()
    try:
        pick_list = qs.first()
    except (DjangoValidationError, ValueError):
        pick_list = None
    if pick_list is None:
        raise NotFound("Pick list not found")
    return pick_list


def _actor(ctx):
    return ctx.user if getattr(ctx.user, "pk", None) else None


@transaction.atomic
def create_pick_list(
    ctx,
    *,
    warehouse,
    lines: Iterable[PickLine],
    notes: str = "",
    assignees=None,
) -> PickList:
    if warehouse is None or warehouse.company_id != ctx.company_id:
        raise NotFound("Warehouse not found")

    lines = list(lines or [])
    if not lines:
        raise StockValidationError("At least one item is required")

    rows = []
    for line_no, line in enumerate(lines, start=1):
        if line.item.company_id != ctx.company_id or line.item.deleted_at is not None:
            raise NotFound("Item not found")
        allocated = q4(to_decimal(line.allocated_qty, field="allocated_qty"))
        if allocated <= 0:
            raise InvalidQuantity("Allocated quantity must be greater than zero")

        rows.append(
            PickListItem(
                line_no=line_no,
                item=line.item,
                uom=line.uom,
                location=validate_location(line.location, warehouse),
                allocated_qty=allocated,
            )
        )

    pick_list = PickList.objects.create(
        company_id=ctx.company_id,
        business_unit_id=ctx.business_unit_id,
        pick_list_code=next_document_code(ctx.company_id, PREFIX_PICK_LIST),
        warehouse=warehouse,
        notes=notes or "",
        created_by=_actor(ctx),
        updated_by=_actor(ctx),
    )
    for row in rows:
        row.pick_list = pick_list
    PickListItem.objects.bulk_create(rows)

    if assignees:
        for user in assignees:
            if getattr(user, "company_id", None) != ctx.company_id:
                raise NotFound("Assignee not found")
        pick_list.assignees.set(assignees)

    logger.info(
        "Pick list created",
        extra={"pick_list_id": str(pick_list.pk), "pick_list_code": pick_list.pick_list_code},
    )
    return pick_list


@transaction.atomic
def record_picked_qty(ctx, pick_list: PickList, item_id, picked_qty) -> PickListItem:
    # lock row for concurrency safety
    pick_list = get_pick_list(ctx, pick_list.pk, lock=True)
    if pick_list.status != PickList.STATUS_IN_PROGRESS:
        raise DocumentStateError("Picked quantity can only be updated while the pick list is in progress")

    try:
        row = pick_list.items.select_for_update().filter(pk=item_id).first()
    except (DjangoValidationError, ValueError):
        row = None
    if row is None:
        raise NotFound("Pick list item not found")

    picked = q4(to_decimal(picked_qty, field="pickedQty"))
    if picked < 0:
        raise InvalidQuantity("Picked quantity cannot be negative")
    if picked > row.allocated_qty:
        raise InvalidQuantity("Picked quantity cannot exceed allocated quantity")

    row.picked_qty = picked
    row.save(update_fields=["picked_qty", "updated_at"])

    pick_list.updated_by = _actor(ctx)
    pick_list.save(update_fields=["updated_by", "updated_at"])
    return row


@transaction.atomic
def change_status(ctx, pick_list: PickList, target: str, *, reason: Optional[str] = None) -> PickList:
    """
    Apply one workflow step. Requesting the current status is a no-op.
    """
    # lock row for concurrency safety
    pick_list = get_pick_list(ctx, pick_list.pk, lock=True)

    if target not in dict(PickList.STATUSES):
        raise StockValidationError(f"Invalid status: {target}")
    if pick_list.status == target:
        return pick_list
    if not pick_list.can_transition_to(target):
        raise DocumentStateError(f"Invalid transition from {pick_list.status} to {target}")

    now = timezone.now()
    update_fields = ["status", "updated_by", "updated_at"]

    if target == PickList.STATUS_DONE:
        items = list(pick_list.items.select_for_update())
        if not any(row.picked_qty > 0 for row in items):
            raise StockValidationError(
                "At least one pick list item must have picked quantity before completing"
            )
        for row in items:
            row.short_qty = max(Decimal("0"), row.allocated_qty - row.picked_qty)
            row.save(update_fields=["short_qty", "updated_at"])
        pick_list.completed_at = now
        update_fields.append("completed_at")

    if target == PickList.STATUS_IN_PROGRESS:
        pick_list.started_at = now
        update_fields.append("started_at")

    if target == PickList.STATUS_CANCELLED:
        pick_list.cancel_reason = (reason or "").strip()
        update_fields.append("cancel_reason")

    previous = pick_list.status
    pick_list.status = target
    pick_list.updated_by = _actor(ctx)
    pick_list.save(update_fields=update_fields)

    logger.info(
        "Pick list status changed",
        extra={
            "pick_list_id": str(pick_list.pk),
            "from_status": previous,
            "to_status": target,
        },
    )
    return pick_list

# adjustments/services/adjustment_service.py

"""
STOCK ADJUSTMENT SERVICE

Draft lines are snapshots: current_qty is the live balance when the line
was written, difference = adjusted_qty - current_qty (base units).

Posting:
- locks the adjustment header
- positive differences -> one 'in' stock transaction
- negative differences -> one 'out' stock transaction
- both go through inventory.services.engine inside ONE atomic block
- GL (net value) is posted best-effort after the stock work commits
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from accounting.services.posting import PostingOutcome, post_best_effort
from accounting.services.posting_rules import post_stock_adjustment
from adjustments.models import StockAdjustment, StockAdjustmentItem
from inventory.models import Item
from inventory.services.balances import read_balance
from inventory.services.delta import TYPE_IN, TYPE_OUT, to_decimal
from inventory.services.document_codes import PREFIX_ADJUSTMENT, next_document_code
from inventory.services.engine import MovementLine, post_movement
from inventory.services.exceptions import (
    DocumentStateError,
    InvalidQuantity,
    NotFound,
    StockValidationError,
)
from inventory.services.ledger import q4, resolve_valuation_rate
from inventory.services.locations import validate_location
from inventory.services.normalization import normalize_quantity

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
REFERENCE_TYPE = "stock_adjustment"


@dataclass(frozen=True)
class AdjustmentLine:
    """Target quantity for one item, in the caller's package / UOM."""

    item: Item
    adjusted_qty: Decimal
    package: object = None
    uom: object = None
    unit_cost: Optional[Decimal] = None
    reason: str = ""


# ============================================================
# LOOKUP
# ============================================================

def get_adjustment(ctx, pk, *, lock: bool = False) -> StockAdjustment:
    qs = StockAdjustment.objects.filter(
        pk=pk, company_id=ctx.company_id, deleted_at__isnull=True
    )
    if lock:
        qs = qs.select_for_update()
    try:
        adjustment = qs.first()
    except (DjangoValidationError, ValueError):
        adjustment = None
    if adjustment is None:
        raise NotFound("Stock adjustment not found")
    return adjustment


# ============================================================
# LINE SNAPSHOTS
# ============================================================

def _target_base_qty(line: AdjustmentLine):
    """
    (input_qty, conversion_factor, base_qty, uom) for the adjusted quantity.

    Zero is a valid target (count found nothing), so it is handled here
    instead of by normalize_quantity which only accepts positive values.
    """
    qty = to_decimal(line.adjusted_qty, field="adjustedQty")
    if not qty.is_finite() or qty < 0:
        raise InvalidQuantity("Adjusted quantity cannot be negative")

    if qty > 0:
        norm = normalize_quantity(
            item=line.item, quantity=qty, package=line.package, uom=line.uom
        )
        return norm.input_qty, norm.conversion_factor, norm.base_qty, norm.uom

    factor = Decimal("1")
    if line.package is not None:
        if line.package.item_id != line.item.pk:
            raise StockValidationError(
                f"Package {line.package.pack_name} does not belong to item {line.item.item_code}"
            )
        factor = Decimal(line.package.qty_per_pack)
    return q4(qty), factor, q4(qty), line.uom if line.uom is not None else line.item.uom


def _check_item(ctx, item: Item) -> Item:
    if item is None or item.company_id != ctx.company_id or item.deleted_at is not None:
        raise NotFound("Item not found")
    if not item.is_stock_item:
        raise StockValidationError(f"Item {item.item_code} is not a stock item")
    return item


def _build_items(ctx, warehouse, lines: list[AdjustmentLine]) -> tuple[list[StockAdjustmentItem], Decimal]:
    if not lines:
        raise StockValidationError("At least one item is required")

    rows: list[StockAdjustmentItem] = []
    total_value = ZERO

    for line_no, line in enumerate(lines, start=1):
        item = _check_item(ctx, line.item)
        input_qty, factor, adjusted, uom = _target_base_qty(line)

        current = q4(read_balance(ctx, item, warehouse))
        difference = adjusted - current

        if line.unit_cost is None or line.unit_cost == "":
            unit_cost = resolve_valuation_rate(ctx, item, warehouse)
        else:
            unit_cost = q4(to_decimal(line.unit_cost, field="unitCost"))
            if unit_cost < 0:
                raise StockValidationError("unitCost cannot be negative")

        total_cost = q4(difference * unit_cost)
        total_value += total_cost

        rows.append(
            StockAdjustmentItem(
                line_no=line_no,
                item=item,
                uom=uom,
                package=line.package,
                input_qty=input_qty,
                conversion_factor=factor,
                current_qty=current,
                adjusted_qty=adjusted,
                difference=difference,
                unit_cost=unit_cost,
                total_cost=total_cost,
                reason=(line.reason or "").strip(),
            )
        )

    return rows, q4(total_value)


def _replace_items(adjustment: StockAdjustment, rows: list[StockAdjustmentItem]) -> None:
    adjustment.items.all().delete()
    for row in rows:
        row.adjustment = adjustment
    StockAdjustmentItem.objects.bulk_create(rows)


def _require_reason(reason) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise StockValidationError("Reason is required")
    return reason


def _check_type(adjustment_type: str) -> str:
    valid = {value for value, _ in StockAdjustment.ADJUSTMENT_TYPES}
    if adjustment_type not in valid:
        raise StockValidationError(f"Invalid adjustment type: {adjustment_type}")
    return adjustment_type


# ============================================================
# DRAFT LIFECYCLE
# ============================================================

@transaction.atomic
def create_adjustment(
    ctx,
    *,
    adjustment_type: str,
    warehouse,
    reason: str,
    lines: Iterable[AdjustmentLine],
    adjustment_date=None,
    location=None,
    notes: str = "",
) -> StockAdjustment:
    if warehouse is None or warehouse.company_id != ctx.company_id:
        raise NotFound("Warehouse not found")
    _check_type(adjustment_type)
    reason = _require_reason(reason)
    validate_location(location, warehouse)

    rows, total_value = _build_items(ctx, warehouse, list(lines or []))

    adjustment_date = adjustment_date or timezone.localdate()
    user = ctx.user if getattr(ctx.user, "pk", None) else None

    adjustment = StockAdjustment.objects.create(
        company_id=ctx.company_id,
        business_unit_id=ctx.business_unit_id,
        adjustment_code=next_document_code(
            ctx.company_id, PREFIX_ADJUSTMENT, on_date=adjustment_date
        ),
        adjustment_type=adjustment_type,
        adjustment_date=adjustment_date,
        warehouse=warehouse,
        location=location,
        reason=reason,
        notes=notes or "",
        total_value=total_value,
        created_by=user,
    )
    _replace_items(adjustment, rows)

    logger.info(
        "Stock adjustment created",
        extra={
            "adjustment_id": str(adjustment.pk),
            "adjustment_code": adjustment.adjustment_code,
            "lines": len(rows),
        },
    )
    return adjustment


@transaction.atomic
def update_draft(
    ctx,
    adjustment: StockAdjustment,
    *,
    adjustment_type: str | None = None,
    adjustment_date=None,
    reason: str | None = None,
    notes: str | None = None,
    location=None,
    lines: Iterable[AdjustmentLine] | None = None,
) -> StockAdjustment:
    """
    Edit a draft. Omitted fields keep their value; passing lines replaces
    every line and re-reads the live balances.
    """
    # lock row for concurrency safety
    adjustment = get_adjustment(ctx, adjustment.pk, lock=True)
    if adjustment.status != StockAdjustment.STATUS_DRAFT:
        raise DocumentStateError("Only draft adjustments can be updated")

    if adjustment_type is not None:
        adjustment.adjustment_type = _check_type(adjustment_type)
    if adjustment_date is not None:
        adjustment.adjustment_date = adjustment_date
    if reason is not None:
        adjustment.reason = _require_reason(reason)
    if notes is not None:
        adjustment.notes = notes
    if location is not None:
        adjustment.location = validate_location(location, adjustment.warehouse)

    if lines is not None:
        rows, adjustment.total_value = _build_items(ctx, adjustment.warehouse, list(lines))
        _replace_items(adjustment, rows)

    adjustment.save()
    return adjustment


@transaction.atomic
def approve_adjustment(ctx, adjustment: StockAdjustment) -> StockAdjustment:
    # lock row for concurrency safety
    adjustment = get_adjustment(ctx, adjustment.pk, lock=True)
    if adjustment.status != StockAdjustment.STATUS_DRAFT:
        raise DocumentStateError("Only draft adjustments can be approved")

    adjustment.status = StockAdjustment.STATUS_APPROVED
    adjustment.approved_by = ctx.user if getattr(ctx.user, "pk", None) else None
    adjustment.approved_at = timezone.now()
    adjustment.save(update_fields=["status", "approved_by", "approved_at", "updated_at"])
    return adjustment


@transaction.atomic
def cancel_adjustment(ctx, adjustment: StockAdjustment) -> StockAdjustment:
    # lock row for concurrency safety
    adjustment = get_adjustment(ctx, adjustment.pk, lock=True)
    if adjustment.status not in (StockAdjustment.STATUS_DRAFT, StockAdjustment.STATUS_APPROVED):
        raise DocumentStateError("Only draft or approved adjustments can be cancelled")

    adjustment.status = StockAdjustment.STATUS_CANCELLED
    adjustment.cancelled_at = timezone.now()
    adjustment.save(update_fields=["status", "cancelled_at", "updated_at"])
    return adjustment


@transaction.atomic
def delete_adjustment(ctx, adjustment: StockAdjustment) -> StockAdjustment:
    # lock row for concurrency safety
    adjustment = get_adjustment(ctx, adjustment.pk, lock=True)
    if adjustment.status != StockAdjustment.STATUS_DRAFT:
        raise DocumentStateError("Only draft adjustments can be deleted")

    adjustment.deleted_at = timezone.now()
    adjustment.save(update_fields=["deleted_at", "updated_at"])
    return adjustment


# ============================================================
# POSTING
# ============================================================

def _movement_lines(adjustment: StockAdjustment, items, *, gains: bool) -> list[MovementLine]:
    lines = []
    for row in items:
        if (row.difference > 0) != gains:
            continue
        lines.append(
            MovementLine(
                item=row.item,
                quantity=abs(row.difference),
                unit_cost=row.unit_cost if row.unit_cost > 0 else None,
                notes=row.reason or f"Adjustment: {adjustment.adjustment_code}",
            )
        )
    return lines


@transaction.atomic
def _post_stock(ctx, adjustment: StockAdjustment) -> StockAdjustment:
    # lock row for concurrency safety
    adjustment = get_adjustment(ctx, adjustment.pk, lock=True)
    if adjustment.status not in (StockAdjustment.STATUS_DRAFT, StockAdjustment.STATUS_APPROVED):
        raise DocumentStateError("Only draft or approved adjustments can be posted")

    items = [
        row
        for row in adjustment.items.select_related("item").order_by("line_no")
        if row.difference != 0
    ]
    if not items:
        raise StockValidationError("No net adjustment (all differences are zero)")

    common = dict(
        warehouse=adjustment.warehouse,
        transaction_date=adjustment.adjustment_date,
        reference_type=REFERENCE_TYPE,
        reference_id=adjustment.pk,
        notes=f"Stock adjustment: {adjustment.adjustment_code} - {adjustment.reason}",
    )

    gains = _movement_lines(adjustment, items, gains=True)
    if gains:
        adjustment.stock_transaction_in = post_movement(
            ctx,
            transaction_type=TYPE_IN,
            lines=gains,
            to_location=adjustment.location,
            **common,
        )

    losses = _movement_lines(adjustment, items, gains=False)
    if losses:
        adjustment.stock_transaction_out = post_movement(
            ctx,
            transaction_type=TYPE_OUT,
            lines=losses,
            from_location=adjustment.location,
            **common,
        )

    adjustment.status = StockAdjustment.STATUS_POSTED
    adjustment.posted_by = ctx.user if getattr(ctx.user, "pk", None) else None
    adjustment.posted_at = timezone.now()
    adjustment.save(
        update_fields=[
            "status",
            "posted_by",
            "posted_at",
            "stock_transaction_in",
            "stock_transaction_out",
            "updated_at",
        ]
    )
    return adjustment


def net_value(adjustment: StockAdjustment) -> Decimal:
    return q4(sum((row.difference * row.unit_cost for row in adjustment.items.all()), ZERO))


def post_adjustment(ctx, adjustment: StockAdjustment) -> tuple[StockAdjustment, PostingOutcome]:
    """
    Move the balances by every line's difference, then post the GL.

    Returns the posted adjustment and the GL outcome (warnings on failure).
    """
    adjustment = _post_stock(ctx, adjustment)

    logger.info(
        "Stock adjustment posted",
        extra={
            "adjustment_id": str(adjustment.pk),
            "adjustment_code": adjustment.adjustment_code,
            "stock_transaction_in": str(adjustment.stock_transaction_in_id or ""),
            "stock_transaction_out": str(adjustment.stock_transaction_out_id or ""),
        },
    )

    outcome = post_best_effort(
        "Adjustment GL posting",
        post_stock_adjustment,
        company_id=ctx.company_id,
        adjustment_id=adjustment.pk,
        adjustment_code=adjustment.adjustment_code,
        net_value=net_value(adjustment),
        user=adjustment.posted_by,
        posted_at=adjustment.posted_at,
    )
    return adjustment, outcome

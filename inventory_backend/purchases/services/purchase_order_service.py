# purchases/services/purchase_order_service.py

"""
PURCHASE ORDERS

Orders never move stock. They only carry ordered quantities that
receipts roll up into (see receiving_service.roll_up_purchase_order).
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
from inventory.services.document_codes import PREFIX_PURCHASE_ORDER, next_document_code
from inventory.services.exceptions import DocumentStateError, NotFound, StockValidationError
from inventory.services.ledger import q4
from inventory.services.normalization import normalize_quantity
from purchases.models import PurchaseOrder, PurchaseOrderItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseOrderLine:
    item: Item
    quantity: Decimal
    rate: Decimal = Decimal("0")
    package: object = None
    uom: object = None
    notes: str = ""


def get_purchase_order(ctx, pk, *, lock: bool = False) -> PurchaseOrder:
    qs = PurchaseOrder.objects.filter(
        pk=pk, company_id=ctx.company_id, deleted_at__isnull=True
    )
    if lock:
        qs = qs.select_for_update()
    try:
        order = qs.first()
    except (DjangoValidationError, ValueError):
        order = None
    if order is None:
        raise NotFound("Purchase order not found")
    return order


@transaction.atomic
def create_purchase_order(
    ctx,
    *,
    supplier,
    lines: Iterable[PurchaseOrderLine],
    order_date=None,
    expected_delivery_date=None,
    notes: str = "",
) -> PurchaseOrder:
    if supplier is None or supplier.company_id != ctx.company_id:
        raise NotFound("Supplier not found")
    if not supplier.is_active:
        raise StockValidationError(f"Supplier {supplier.supplier_code} is inactive")

    lines = list(lines or [])
    if not lines:
        raise StockValidationError("At least one item is required")

    rows = []
    total = Decimal("0")
    for line_no, line in enumerate(lines, start=1):
        if line.item.company_id != ctx.company_id:
            raise NotFound("Item not found")
        rate = q4(line.rate)
        if rate < 0:
            raise StockValidationError("rate cannot be negative")

        norm = normalize_quantity(
            item=line.item, quantity=line.quantity, package=line.package, uom=line.uom
        )
        line_total = q4(norm.base_qty * rate)
        total += line_total

        rows.append(
            PurchaseOrderItem(
                line_no=line_no,
                item=line.item,
                package=norm.package,
                uom=norm.uom,
                quantity=norm.input_qty,
                rate=rate,
                line_total=line_total,
                notes=line.notes or "",
            )
        )

    order_date = order_date or timezone.localdate()
    try:
        order = PurchaseOrder.objects.create(
            company_id=ctx.company_id,
            business_unit_id=ctx.business_unit_id,
            order_code=next_document_code(
                ctx.company_id, PREFIX_PURCHASE_ORDER, on_date=order_date
            ),
            supplier=supplier,
            order_date=order_date,
            expected_delivery_date=expected_delivery_date,
            total_amount=q4(total),
            notes=notes or "",
            created_by=ctx.user if getattr(ctx.user, "pk", None) else None,
        )
    except DjangoValidationError as exc:
        raise StockValidationError("; ".join(exc.messages)) from exc

    for row in rows:
        row.purchase_order = order
    PurchaseOrderItem.objects.bulk_create(rows)

    logger.info(
        "Purchase order created",
        extra={"purchase_order_id": str(order.pk), "order_code": order.order_code},
    )
    return order


@transaction.atomic
def approve_purchase_order(ctx, order: PurchaseOrder) -> PurchaseOrder:
    # lock row for concurrency safety
    order = get_purchase_order(ctx, order.pk, lock=True)
    if order.status != PurchaseOrder.STATUS_DRAFT:
        raise DocumentStateError("Only draft purchase orders can be approved")

    order.status = PurchaseOrder.STATUS_APPROVED
    order.approved_by = ctx.user if getattr(ctx.user, "pk", None) else None
    order.approved_at = timezone.now()
    order.save(update_fields=["status", "approved_by", "approved_at", "updated_at"])
    return order


@transaction.atomic
def cancel_purchase_order(ctx, order: PurchaseOrder) -> PurchaseOrder:
    # lock row for concurrency safety
    order = get_purchase_order(ctx, order.pk, lock=True)
    if order.status not in (PurchaseOrder.STATUS_DRAFT, PurchaseOrder.STATUS_APPROVED):
        raise DocumentStateError("Only draft or approved purchase orders can be cancelled")

    order.status = PurchaseOrder.STATUS_CANCELLED
    order.save(update_fields=["status", "updated_at"])
    return order


def derive_status(order: PurchaseOrder) -> Optional[str]:
    """received when every line is fully received, partially_received when any is."""
    items = list(order.items.all())
    if not items:
        return None
    if all(row.quantity_received >= row.quantity for row in items):
        return PurchaseOrder.STATUS_RECEIVED
    if any(row.quantity_received > 0 for row in items):
        return PurchaseOrder.STATUS_PARTIALLY_RECEIVED
    return None

# purchases/services/receiving_service.py

"""
======================================================
PATH: purchases/services/receiving_service.py
======================================================
PURCHASE RECEIVING SERVICE

Receive a draft PurchaseReceipt atomically:

1) Lock receipt
2) Validate status + items (and the purchase order, when linked)
3) Post ONE 'in' stock transaction through the stock engine
   (reference_type="purchase_receipt", valued at each line's rate)
4) Roll received quantities up to the purchase order lines and derive
   the order status
5) Mark receipt received

AP (Dr Inventory / Cr Accounts Payable) is posted AFTER the atomic block,
best-effort: a GL failure is returned as a warning and never undoes the
stock intake.
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
from accounting.services.posting_rules import post_purchase_receipt
from inventory.models import Item
from inventory.services.delta import TYPE_IN
from inventory.services.document_codes import PREFIX_PURCHASE_RECEIPT, next_document_code
from inventory.services.engine import MovementLine, post_movement
from inventory.services.exceptions import (
    DocumentStateError,
    NotFound,
    StockEngineError,
    StockValidationError,
)
from inventory.services.ledger import q4
from inventory.services.normalization import normalize_quantity
from purchases.models import PurchaseOrder, PurchaseOrderItem, PurchaseReceipt, PurchaseReceiptItem
from purchases.services.purchase_order_service import derive_status

logger = logging.getLogger(__name__)

REFERENCE_TYPE = "purchase_receipt"


class PurchaseReceivingError(StockEngineError):
    default_message = "Purchase receiving failed"


@dataclass(frozen=True)
class ReceiptLine:
    item: Item
    quantity_received: Decimal
    rate: Decimal = Decimal("0")
    package: object = None
    uom: object = None
    purchase_order_item: Optional[PurchaseOrderItem] = None
    quantity_ordered: Optional[Decimal] = None
    notes: str = ""


def get_receipt(ctx, pk, *, lock: bool = False) -> PurchaseReceipt:
    qs = PurchaseReceipt.objects.filter(
        pk=pk, company_id=ctx.company_id, deleted_at__isnull=True
    )
    if lock:
        qs = qs.select_for_update()
    try:
        receipt = qs.first()
    except (DjangoValidationError, ValueError):
        receipt = None
    if receipt is None:
        raise NotFound("Receipt not found")
    return receipt


# ============================================================
# DRAFTS
# ============================================================

def _check_purchase_order(order: PurchaseOrder | None) -> None:
    if order is not None and order.status not in PurchaseOrder.RECEIVABLE_STATUSES:
        raise PurchaseReceivingError("Purchase order must be approved before receiving")


def _build_items(ctx, lines: list[ReceiptLine], order: PurchaseOrder | None) -> list[PurchaseReceiptItem]:
    if not lines:
        raise StockValidationError("At least one item is required")

    rows = []
    for line_no, line in enumerate(lines, start=1):
        if line.item.company_id != ctx.company_id or line.item.deleted_at is not None:
            raise NotFound("Item not found")

        rate = q4(line.rate)
        if rate < 0:
            raise StockValidationError("rate cannot be negative")

        norm = normalize_quantity(
            item=line.item,
            quantity=line.quantity_received,
            package=line.package,
            uom=line.uom,
        )

        po_item = line.purchase_order_item
        if po_item is not None:
            if order is None or po_item.purchase_order_id != order.pk:
                raise NotFound("Purchase order line not found")
            if po_item.item_id != line.item.pk:
                raise StockValidationError(
                    f"Item {line.item.item_code} does not match the purchase order line"
                )

        ordered = line.quantity_ordered
        if ordered is None:
            # order quantity restated in the receipt line's package
            ordered = (
                po_item.quantity * po_item.conversion_factor / norm.conversion_factor
                if po_item is not None
                else Decimal("0")
            )

        rows.append(
            PurchaseReceiptItem(
                line_no=line_no,
                purchase_order_item=po_item,
                item=line.item,
                package=norm.package,
                uom=norm.uom,
                quantity_ordered=q4(ordered),
                quantity_received=norm.input_qty,
                rate=rate,
                notes=line.notes or "",
            )
        )
    return rows


def _replace_items(receipt: PurchaseReceipt, rows: list[PurchaseReceiptItem]) -> None:
    receipt.items.all().delete()
    for row in rows:
        row.receipt = receipt
    PurchaseReceiptItem.objects.bulk_create(rows)


def _receipt_total(receipt: PurchaseReceipt) -> Decimal:
    return q4(
        sum(
            (row.line_total for row in receipt.items.select_related("package")),
            Decimal("0"),
        )
    )


@transaction.atomic
def create_receipt(
    ctx,
    *,
    supplier,
    warehouse,
    lines: Iterable[ReceiptLine],
    purchase_order: PurchaseOrder | None = None,
    receipt_date=None,
    supplier_invoice_number: str = "",
    supplier_invoice_date=None,
    notes: str = "",
) -> PurchaseReceipt:
    if supplier is None or supplier.company_id != ctx.company_id:
        raise NotFound("Supplier not found")
    if warehouse is None or warehouse.company_id != ctx.company_id:
        raise NotFound("Warehouse not found")
    if purchase_order is not None:
        if purchase_order.company_id != ctx.company_id:
            raise NotFound("Purchase order not found")
        if purchase_order.supplier_id != supplier.pk:
            raise StockValidationError("Supplier does not match the purchase order")
    _check_purchase_order(purchase_order)

    rows = _build_items(ctx, list(lines or []), purchase_order)

    receipt_date = receipt_date or timezone.localdate()
    receipt = PurchaseReceipt.objects.create(
        company_id=ctx.company_id,
        business_unit_id=ctx.business_unit_id,
        receipt_code=next_document_code(
            ctx.company_id, PREFIX_PURCHASE_RECEIPT, on_date=receipt_date
        ),
        purchase_order=purchase_order,
        supplier=supplier,
        warehouse=warehouse,
        receipt_date=receipt_date,
        supplier_invoice_number=supplier_invoice_number or "",
        supplier_invoice_date=supplier_invoice_date,
        notes=notes or "",
        created_by=ctx.user if getattr(ctx.user, "pk", None) else None,
    )
    _replace_items(receipt, rows)

    receipt.total_amount = _receipt_total(receipt)
    receipt.save(update_fields=["total_amount", "updated_at"])

    logger.info(
        "Purchase receipt created",
        extra={"receipt_id": str(receipt.pk), "receipt_code": receipt.receipt_code},
    )
    return receipt


@transaction.atomic
def update_receipt(
    ctx,
    receipt: PurchaseReceipt,
    *,
    warehouse=None,
    receipt_date=None,
    supplier_invoice_number: str | None = None,
    supplier_invoice_date=None,
    notes: str | None = None,
    lines: Iterable[ReceiptLine] | None = None,
) -> PurchaseReceipt:
    # lock row for concurrency safety
    receipt = get_receipt(ctx, receipt.pk, lock=True)
    if receipt.status != PurchaseReceipt.STATUS_DRAFT:
        raise DocumentStateError("Only draft receipts can be edited")

    if warehouse is not None:
        if warehouse.company_id != ctx.company_id:
            raise NotFound("Warehouse not found")
        receipt.warehouse = warehouse
    if receipt_date is not None:
        receipt.receipt_date = receipt_date
    if supplier_invoice_number is not None:
        receipt.supplier_invoice_number = supplier_invoice_number
    if supplier_invoice_date is not None:
        receipt.supplier_invoice_date = supplier_invoice_date
    if notes is not None:
        receipt.notes = notes

    if lines is not None:
        _replace_items(receipt, _build_items(ctx, list(lines), receipt.purchase_order))
        receipt.total_amount = _receipt_total(receipt)

    receipt.save()
    return receipt


@transaction.atomic
def cancel_receipt(ctx, receipt: PurchaseReceipt) -> PurchaseReceipt:
    # lock row for concurrency safety
    receipt = get_receipt(ctx, receipt.pk, lock=True)
    if receipt.status != PurchaseReceipt.STATUS_DRAFT:
        raise DocumentStateError("Only draft receipts can be cancelled")

    receipt.status = PurchaseReceipt.STATUS_CANCELLED
    receipt.save(update_fields=["status", "updated_at"])
    return receipt


@transaction.atomic
def delete_receipt(ctx, receipt: PurchaseReceipt) -> PurchaseReceipt:
    # lock row for concurrency safety
    receipt = get_receipt(ctx, receipt.pk, lock=True)
    if receipt.status != PurchaseReceipt.STATUS_DRAFT:
        raise DocumentStateError("Only draft receipts can be deleted")

    receipt.deleted_at = timezone.now()
    receipt.save(update_fields=["deleted_at", "updated_at"])
    return receipt


# ============================================================
# RECEIVING
# ============================================================

def roll_up_purchase_order(receipt: PurchaseReceipt, items: list[PurchaseReceiptItem]) -> None:
    """
    Add received quantities to the linked order lines and derive the
    order status. Runs inside the receiving transaction.

    Receipt and order lines may use different packages; quantities are
    compared in base units and stored back in the order line's package.
    """
    if receipt.purchase_order_id is None:
        return

    # lock row for concurrency safety
    order = PurchaseOrder.objects.select_for_update().get(pk=receipt.purchase_order_id)
    _check_purchase_order(order)

    for row in items:
        if row.purchase_order_item_id is None:
            continue
        po_item = PurchaseOrderItem.objects.select_for_update().get(
            pk=row.purchase_order_item_id, purchase_order=order
        )
        po_factor = po_item.conversion_factor
        ordered_base = po_item.quantity * po_factor
        received_base = (
            po_item.quantity_received * po_factor
            + row.quantity_received * row.conversion_factor
        )
        if received_base > ordered_base:
            raise PurchaseReceivingError(
                f"Received quantity exceeds ordered quantity for item {row.item.item_code}. "
                f"Ordered: {po_item.quantity.normalize():f}, "
                f"Received: {q4(received_base / po_factor).normalize():f}"
            )

        if received_base == ordered_base:
            po_item.quantity_received = po_item.quantity
        else:
            po_item.quantity_received = q4(received_base / po_factor)
        po_item.save(update_fields=["quantity_received"])

    new_status = derive_status(order)
    if new_status and new_status != order.status:
        order.status = new_status
        order.save(update_fields=["status", "updated_at"])


@transaction.atomic
def _receive_stock(ctx, receipt: PurchaseReceipt) -> PurchaseReceipt:
    # lock row for concurrency safety
    receipt = get_receipt(ctx, receipt.pk, lock=True)
    if receipt.status != PurchaseReceipt.STATUS_DRAFT:
        raise DocumentStateError("Only draft receipts can be received")

    items = list(
        receipt.items.select_related("item", "package", "uom").order_by("line_no")
    )
    if not items:
        raise PurchaseReceivingError("Receipt has no items")

    receipt.stock_transaction = post_movement(
        ctx,
        transaction_type=TYPE_IN,
        warehouse=receipt.warehouse,
        lines=[
            MovementLine(
                item=row.item,
                quantity=row.quantity_received,
                unit_cost=row.rate,
                package=row.package,
                uom=row.uom,
                notes=row.notes or f"Receipt {receipt.receipt_code}",
            )
            for row in items
        ],
        transaction_date=receipt.receipt_date,
        reference_type=REFERENCE_TYPE,
        reference_id=receipt.pk,
        notes=f"Goods received - {receipt.receipt_code}",
    )

    roll_up_purchase_order(receipt, items)

    receipt.total_amount = q4(sum((row.line_total for row in items), Decimal("0")))
    receipt.status = PurchaseReceipt.STATUS_RECEIVED
    receipt.received_at = timezone.now()
    receipt.received_by = ctx.user if getattr(ctx.user, "pk", None) else None
    receipt.save(
        update_fields=[
            "stock_transaction",
            "total_amount",
            "status",
            "received_at",
            "received_by",
            "updated_at",
        ]
    )
    return receipt


def receive_receipt(ctx, receipt: PurchaseReceipt) -> tuple[PurchaseReceipt, PostingOutcome]:
    """
    RECEIVE PURCHASE RECEIPT

    Stock first (atomic, all-or-nothing), then AP best-effort.
    """
    receipt = _receive_stock(ctx, receipt)

    logger.info(
        "Purchase receipt received",
        extra={
            "receipt_id": str(receipt.pk),
            "receipt_code": receipt.receipt_code,
            "stock_transaction_id": str(receipt.stock_transaction_id),
            "total_amount": str(receipt.total_amount),
        },
    )

    outcome = post_best_effort(
        "AP posting",
        post_purchase_receipt,
        company_id=ctx.company_id,
        receipt_id=receipt.pk,
        receipt_code=receipt.receipt_code,
        amount=receipt.total_amount,
        user=receipt.received_by,
        posted_at=receipt.received_at,
    )
    if outcome.journal_entries:
        receipt.journal_entry = outcome.journal_entries[0]
        receipt.save(update_fields=["journal_entry", "updated_at"])

    return receipt, outcome

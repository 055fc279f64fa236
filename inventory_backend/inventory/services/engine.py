# inventory/services/engine.py

"""
STOCK MOVEMENT ENGINE

The single posting path for every document that moves stock: manual
stock transactions, purchase receipts, stock adjustments, POS sales and
POS voids.

Per line:
    Balance Reader  -> lock + read ItemWarehouse.current_stock
    Delta Calculator -> signed base-unit delta for the transaction type
    Balance Writer  -> reject negative outbound, write new balance
    Ledger Recorder -> append immutable StockTransactionItem

Transfers run the same four steps a second time for the destination
warehouse with the inverted sign, valued at the source rate.

ATOMICITY:
- post_movement / post_draft run inside ONE transaction.atomic() block
- every balance row is locked with select_for_update() before it is read
- any failure rolls back header, lines, balances, locations, ledger rows
  and the document sequence together
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from inventory.models import (
    Item,
    StockTransaction,
    StockTransactionItem,
    StockTransactionLine,
    Warehouse,
)

from .balances import lock_balance_row, write_balance
from .delta import (
    LEG_DESTINATION,
    LEG_SOURCE,
    TRANSACTION_TYPES,
    TYPE_IN,
    TYPE_TRANSFER,
    is_outbound,
    signed_delta,
    to_decimal,
)
from .document_codes import PREFIX_STOCK_TRANSACTION, next_document_code
from .exceptions import (
    DocumentStateError,
    InvalidTransactionType,
    NotFound,
    PersistenceError,
    StockEngineError,
    StockValidationError,
)
from .ledger import q4, record_entry, resolve_valuation_rate
from .locations import adjust_item_location, validate_location
from .normalization import normalize_quantity

logger = logging.getLogger("inventory.engine")


@dataclass(frozen=True)
class MovementLine:
    """One requested movement in the caller's package / UOM."""

    item: Item
    quantity: Decimal
    unit_cost: Optional[Decimal] = None
    package: object = None
    uom: object = None
    batch_no: str = ""
    notes: str = ""


@dataclass(frozen=True)
class LegResult:
    entry: StockTransactionItem
    balance_after: Decimal


# ============================================================
# VALIDATION
# ============================================================

def _validation_message(exc: DjangoValidationError) -> str:
    if hasattr(exc, "message_dict"):
        parts = []
        for field, messages in exc.message_dict.items():
            label = "" if field == "__all__" else f"{field}: "
            parts.extend(f"{label}{m}" for m in messages)
        return "; ".join(parts)
    return "; ".join(exc.messages)


def _check_warehouse(ctx, warehouse, *, label: str = "Warehouse") -> Warehouse:
    if warehouse is None:
        raise StockValidationError(f"{label} is required")
    if warehouse.company_id != ctx.company_id:
        raise NotFound(f"{label} not found")
    if not warehouse.is_active:
        raise StockValidationError(f"{label} {warehouse.warehouse_code} is inactive")
    return warehouse


def _check_item(ctx, item) -> Item:
    if item is None:
        raise StockValidationError("Item is required")
    if item.company_id != ctx.company_id or item.deleted_at is not None:
        raise NotFound("Item not found")
    if not item.is_active:
        raise StockValidationError(f"Item {item.item_code} is inactive")
    if not item.is_stock_item:
        raise StockValidationError(f"Item {item.item_code} is not a stock item")
    return item


def _unit_cost(value) -> Decimal | None:
    if value is None or value == "":
        return None
    cost = to_decimal(value, field="unit_cost")
    if not cost.is_finite() or cost < 0:
        raise StockValidationError("unit_cost cannot be negative")
    return q4(cost)


def _check_header(ctx, *, transaction_type, warehouse, to_warehouse, from_location, to_location):
    if transaction_type not in TRANSACTION_TYPES:
        raise InvalidTransactionType(f"Invalid transaction type: {transaction_type}")

    _check_warehouse(ctx, warehouse)

    if transaction_type == TYPE_TRANSFER:
        if to_warehouse is None:
            raise StockValidationError("Destination warehouse is required for transfers")
        _check_warehouse(ctx, to_warehouse, label="Destination warehouse")
        if to_warehouse.pk == warehouse.pk:
            raise StockValidationError("Destination warehouse must differ from source")
        validate_location(from_location, warehouse)
        validate_location(to_location, to_warehouse)
    else:
        if to_warehouse is not None:
            raise StockValidationError("Destination warehouse is only allowed for transfers")
        validate_location(from_location, warehouse)
        validate_location(to_location, warehouse)


# ============================================================
# DRAFTS
# ============================================================

@transaction.atomic
def create_draft(
    ctx,
    *,
    transaction_type: str,
    warehouse: Warehouse,
    lines: Iterable[MovementLine],
    to_warehouse: Warehouse | None = None,
    transaction_date=None,
    reference_type: str = "",
    reference_id=None,
    notes: str = "",
    from_location=None,
    to_location=None,
    code: str | None = None,
) -> StockTransaction:
    """
    Create a draft header + requested lines. No balance effect.
    """
    lines = list(lines or [])
    if not lines:
        raise StockValidationError("At least one item is required")

    _check_header(
        ctx,
        transaction_type=transaction_type,
        warehouse=warehouse,
        to_warehouse=to_warehouse,
        from_location=from_location,
        to_location=to_location,
    )

    # validate every line before anything is written
    normalized = []
    for line in lines:
        _check_item(ctx, line.item)
        _unit_cost(line.unit_cost)
        normalized.append(
            normalize_quantity(
                item=line.item,
                quantity=line.quantity,
                package=line.package,
                uom=line.uom,
            )
        )

    transaction_date = transaction_date or timezone.localdate()
    user = ctx.user if getattr(ctx.user, "pk", None) else None

    header = StockTransaction.objects.create(
        company_id=ctx.company_id,
        business_unit_id=ctx.business_unit_id,
        transaction_code=code
        or next_document_code(ctx.company_id, PREFIX_STOCK_TRANSACTION, on_date=transaction_date),
        transaction_type=transaction_type,
        transaction_date=transaction_date,
        warehouse=warehouse,
        to_warehouse=to_warehouse,
        from_location=from_location,
        to_location=to_location,
        reference_type=reference_type or "",
        reference_id=reference_id,
        notes=notes or "",
        status=StockTransaction.STATUS_DRAFT,
        created_by=user,
    )

    StockTransactionLine.objects.bulk_create(
        [
            StockTransactionLine(
                transaction=header,
                line_no=i,
                item=line.item,
                uom=norm.uom,
                package=norm.package,
                input_qty=norm.input_qty,
                unit_cost=_unit_cost(line.unit_cost),
                batch_no=line.batch_no or "",
                notes=line.notes or "",
            )
            for i, (line, norm) in enumerate(zip(lines, normalized), start=1)
        ]
    )

    return header


def get_transaction(ctx, pk, *, lock: bool = False) -> StockTransaction:
    qs = StockTransaction.objects.filter(
        pk=pk, company_id=ctx.company_id, deleted_at__isnull=True
    )
    if lock:
        qs = qs.select_for_update()
    txn = qs.first()
    if txn is None:
        raise NotFound("Stock transaction not found")
    return txn


@transaction.atomic
def delete_draft(ctx, stock_transaction: StockTransaction) -> StockTransaction:
    # lock row for concurrency safety
    txn = get_transaction(ctx, stock_transaction.pk, lock=True)

    if txn.status != StockTransaction.STATUS_DRAFT:
        raise DocumentStateError("Only draft transactions can be deleted")

    txn.deleted_at = timezone.now()
    txn.save(update_fields=["deleted_at", "updated_at"])

    logger.info(
        "Stock transaction draft deleted",
        extra={"transaction_id": str(txn.pk), "transaction_code": txn.transaction_code},
    )
    return txn


# ============================================================
# POSTING
# ============================================================

def _apply_leg(
    ctx,
    *,
    txn: StockTransaction,
    line: StockTransactionLine,
    normalized,
    warehouse: Warehouse,
    leg: str,
    location=None,
    valuation_rate: Decimal | None = None,
) -> LegResult:
    item = line.item
    user = txn.posted_by

    # reader (row locked for the rest of the transaction)
    balance = lock_balance_row(ctx, item, warehouse, user=user, default_location=location)
    qty_before = Decimal(balance.current_stock)

    delta = signed_delta(txn.transaction_type, normalized.base_qty, leg=leg)
    qty_after = qty_before + delta

    if valuation_rate is None:
        valuation_rate = resolve_valuation_rate(ctx, item, warehouse, unit_cost=line.unit_cost)

    balance = write_balance(
        ctx,
        item,
        warehouse,
        new_balance=qty_after,
        requested=abs(delta),
        outbound=is_outbound(delta),
        user=user,
        row=balance,
    )

    resolved_location = adjust_item_location(balance=balance, delta=delta, location=location)

    entry = record_entry(
        ctx,
        stock_transaction=txn,
        line=line,
        item=item,
        warehouse=warehouse,
        normalized=normalized,
        quantity=delta,
        qty_before=qty_before,
        qty_after=qty_after,
        valuation_rate=valuation_rate,
        location=resolved_location,
        posting_date=txn.transaction_date,
        user=user,
        batch_no=line.batch_no,
        notes=line.notes,
    )
    return LegResult(entry=entry, balance_after=Decimal(balance.current_stock))


def _apply_line(ctx, txn: StockTransaction, line: StockTransactionLine) -> list[StockTransactionItem]:
    _check_item(ctx, line.item)
    normalized = normalize_quantity(
        item=line.item,
        quantity=line.input_qty,
        package=line.package,
        uom=line.uom,
    )

    if txn.transaction_type == TYPE_IN:
        source_location = txn.to_location or txn.from_location
    else:
        source_location = txn.from_location

    source = _apply_leg(
        ctx,
        txn=txn,
        line=line,
        normalized=normalized,
        warehouse=txn.warehouse,
        leg=LEG_SOURCE,
        location=source_location,
    )
    entries = [source.entry]

    if txn.transaction_type == TYPE_TRANSFER:
        destination = _apply_leg(
            ctx,
            txn=txn,
            line=line,
            normalized=normalized,
            warehouse=txn.to_warehouse,
            leg=LEG_DESTINATION,
            location=txn.to_location,
            valuation_rate=source.entry.valuation_rate,
        )
        entries.append(destination.entry)

    return entries


@transaction.atomic
def post_draft(ctx, stock_transaction: StockTransaction) -> StockTransaction:
    """
    Post a draft: apply every line, then mark the header posted.

    Raises DocumentStateError when the transaction is not a draft.
    """
    # lock row for concurrency safety
    txn = get_transaction(ctx, stock_transaction.pk, lock=True)

    if txn.status != StockTransaction.STATUS_DRAFT:
        raise DocumentStateError("Only draft transactions can be posted")

    _check_header(
        ctx,
        transaction_type=txn.transaction_type,
        warehouse=txn.warehouse,
        to_warehouse=txn.to_warehouse,
        from_location=txn.from_location,
        to_location=txn.to_location,
    )

    lines = list(
        txn.lines.select_related("item", "package", "uom").order_by("line_no")
    )
    if not lines:
        raise StockValidationError("At least one item is required")

    txn.posted_by = ctx.user if getattr(ctx.user, "pk", None) else None

    try:
        entry_count = 0
        for line in lines:
            entry_count += len(_apply_line(ctx, txn, line))

        txn.status = StockTransaction.STATUS_POSTED
        txn.posted_at = timezone.now()
        txn.save(update_fields=["status", "posted_at", "posted_by", "updated_at"])
    except StockEngineError:
        raise
    except DjangoValidationError as exc:
        raise StockValidationError(_validation_message(exc)) from exc
    except DatabaseError as exc:
        logger.exception(
            "Stock posting failed at the database",
            extra={"transaction_id": str(txn.pk)},
        )
        raise PersistenceError() from exc

    logger.info(
        "Stock transaction posted",
        extra={
            "transaction_id": str(txn.pk),
            "transaction_code": txn.transaction_code,
            "transaction_type": txn.transaction_type,
            "reference_type": txn.reference_type,
            "entries": entry_count,
        },
    )
    return txn


@transaction.atomic
def post_movement(
    ctx,
    *,
    transaction_type: str,
    warehouse: Warehouse,
    lines: Iterable[MovementLine],
    to_warehouse: Warehouse | None = None,
    transaction_date=None,
    reference_type: str = "",
    reference_id=None,
    notes: str = "",
    from_location=None,
    to_location=None,
    code: str | None = None,
) -> StockTransaction:
    """
    Create and post a stock transaction in one step.

    Used directly by every document that moves stock (receipts,
    adjustments, POS). All-or-nothing.
    """
    draft = create_draft(
        ctx,
        transaction_type=transaction_type,
        warehouse=warehouse,
        lines=lines,
        to_warehouse=to_warehouse,
        transaction_date=transaction_date,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        from_location=from_location,
        to_location=to_location,
        code=code,
    )
    return post_draft(ctx, draft)

# pos/services/sale_service.py

"""
======================================================
PATH: pos/services/sale_service.py
======================================================
POS SALE SERVICE

record_sale():
    1) Validate lines + payments (payments must cover the total)
    2) Write header, lines and payments
    3) Post ONE 'out' stock transaction from the sale warehouse
       (reference_type="pos_sale")
    4) Store cost of goods sold, valued from the ledger rows just written
   Steps 1-4 are one atomic block: a stock shortage leaves no sale behind.
    5) Best-effort GL: sale (Dr Cash / Cr Revenue [/ Cr Tax]) then COGS

void_sale():
    completed -> voided, ONE 'in' stock transaction that returns every
    line at the rate it left with, then best-effort GL reversals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from accounting.services.posting import PostingOutcome, post_best_effort
from accounting.services.posting_rules import post_pos_cogs, post_pos_sale, post_pos_void
from inventory.models import Item, StockTransaction
from inventory.services.delta import TYPE_IN, TYPE_OUT
from inventory.services.document_codes import PREFIX_POS, next_document_code
from inventory.services.engine import MovementLine, post_movement
from inventory.services.exceptions import (
    DocumentStateError,
    NotFound,
    StockEngineError,
    StockValidationError,
)
from inventory.services.ledger import q4
from pos.models import PosTransaction, PosTransactionItem, PosTransactionPayment

logger = logging.getLogger(__name__)

REF_SALE = "pos_sale"
REF_VOID = "pos_void"

HUNDRED = Decimal("100")


class PosSaleError(StockEngineError):
    default_message = "POS sale failed"


@dataclass(frozen=True)
class SaleLine:
    item: Item
    quantity: Decimal
    unit_price: Decimal
    discount: Decimal = Decimal("0")
    package: object = None


@dataclass(frozen=True)
class SalePayment:
    method: str
    amount: Decimal
    reference: str = ""


@dataclass(frozen=True)
class SaleTotals:
    subtotal: Decimal
    total_discount: Decimal
    total_tax: Decimal
    total_amount: Decimal
    line_totals: tuple


def compute_totals(lines: list[SaleLine], tax_rate: Decimal) -> SaleTotals:
    """Line discount is a percentage of quantity * unit_price; tax applies after discounts."""
    subtotal = Decimal("0")
    total_discount = Decimal("0")
    line_totals = []

    for line in lines:
        gross = Decimal(line.quantity) * Decimal(line.unit_price)
        discount = gross * Decimal(line.discount or 0) / HUNDRED
        subtotal += gross
        total_discount += discount
        line_totals.append(q4(gross - discount))

    total_tax = (subtotal - total_discount) * Decimal(tax_rate or 0) / HUNDRED
    return SaleTotals(
        subtotal=q4(subtotal),
        total_discount=q4(total_discount),
        total_tax=q4(total_tax),
        total_amount=q4(subtotal - total_discount + total_tax),
        line_totals=tuple(line_totals),
    )


def get_sale(ctx, pk, *, lock: bool = False) -> PosTransaction:
    qs = PosTransaction.objects.filter(pk=pk, company_id=ctx.company_id)
    if lock:
        qs = qs.select_for_update()
    try:
        sale = qs.first()
    except (DjangoValidationError, ValueError):
        sale = None
    if sale is None:
        raise NotFound("Transaction not found")
    return sale


def resolve_sale_warehouse(ctx, warehouse=None):
    """Explicit warehouse wins, else the cashier's van warehouse."""
    if warehouse is None:
        warehouse = getattr(ctx.user, "van_warehouse", None)
    if warehouse is None:
        raise StockValidationError("No warehouse assigned to this user")
    if warehouse.company_id != ctx.company_id:
        raise NotFound("Warehouse not found")
    return warehouse


def _validate(lines: list[SaleLine], payments: list[SalePayment], tax_rate) -> None:
    if not lines:
        raise StockValidationError("Items are required")
    if not payments:
        raise StockValidationError("Payments are required")

    for line in lines:
        if Decimal(line.quantity) <= 0:
            raise StockValidationError("Quantity must be greater than zero")
        if Decimal(line.unit_price) < 0:
            raise StockValidationError("unit_price cannot be negative")
        if not (0 <= Decimal(line.discount or 0) <= HUNDRED):
            raise StockValidationError("discount must be between 0 and 100")

    for payment in payments:
        if Decimal(payment.amount) <= 0:
            raise StockValidationError("Payment amount must be greater than zero")

    if not (0 <= Decimal(tax_rate or 0) <= HUNDRED):
        raise StockValidationError("tax_rate must be between 0 and 100")


def cost_of_goods(stock_transaction: StockTransaction) -> Decimal:
    return q4(
        sum(
            (abs(row.quantity) * row.valuation_rate for row in stock_transaction.ledger_entries.all()),
            Decimal("0"),
        )
    )


# ============================================================
# SALE
# ============================================================

@transaction.atomic
def _record_sale(ctx, *, warehouse, lines, payments, tax_rate, customer_name, notes) -> PosTransaction:
    totals = compute_totals(lines, tax_rate)
    amount_paid = q4(sum((Decimal(p.amount) for p in payments), Decimal("0")))
    if amount_paid < totals.total_amount:
        raise PosSaleError("Insufficient payment amount")

    for line in lines:
        if line.item.company_id != ctx.company_id or line.item.deleted_at is not None:
            raise NotFound("Item not found")

    now = timezone.now()
    cashier = ctx.user
    sale = PosTransaction.objects.create(
        company_id=ctx.company_id,
        business_unit_id=ctx.business_unit_id,
        transaction_code=next_document_code(
            ctx.company_id, PREFIX_POS, on_date=timezone.localdate(now)
        ),
        transaction_date=now,
        warehouse=warehouse,
        customer_name=customer_name or "",
        subtotal=totals.subtotal,
        total_discount=totals.total_discount,
        tax_rate=Decimal(tax_rate or 0),
        total_tax=totals.total_tax,
        total_amount=totals.total_amount,
        amount_paid=amount_paid,
        change_amount=q4(amount_paid - totals.total_amount),
        cashier=cashier,
        cashier_name=getattr(cashier, "full_name", "") or "",
        notes=notes or "",
    )

    PosTransactionItem.objects.bulk_create(
        [
            PosTransactionItem(
                pos_transaction=sale,
                line_no=line_no,
                item=line.item,
                item_code=line.item.item_code,
                item_name=line.item.item_name,
                package=line.package,
                quantity=q4(line.quantity),
                unit_price=q4(line.unit_price),
                discount=Decimal(line.discount or 0),
                line_total=line_total,
            )
            for line_no, (line, line_total) in enumerate(zip(lines, totals.line_totals), start=1)
        ]
    )
    PosTransactionPayment.objects.bulk_create(
        [
            PosTransactionPayment(
                pos_transaction=sale,
                method=p.method,
                amount=q4(p.amount),
                reference=p.reference or "",
            )
            for p in payments
        ]
    )

    stock_txn = post_movement(
        ctx,
        transaction_type=TYPE_OUT,
        warehouse=warehouse,
        lines=[
            MovementLine(
                item=line.item,
                quantity=line.quantity,
                package=line.package,
                notes=f"POS Sale - {sale.transaction_code}",
            )
            for line in lines
        ],
        transaction_date=timezone.localdate(now),
        reference_type=REF_SALE,
        reference_id=sale.pk,
        notes=f"POS Sale - {sale.transaction_code}",
    )

    sale.stock_transaction = stock_txn
    sale.total_cost = cost_of_goods(stock_txn)
    sale.save(update_fields=["stock_transaction", "total_cost", "updated_at"])
    return sale


def record_sale(
    ctx,
    *,
    lines: Iterable[SaleLine],
    payments: Iterable[SalePayment],
    warehouse=None,
    tax_rate=Decimal("0"),
    customer_name: str = "",
    notes: str = "",
) -> tuple[PosTransaction, PostingOutcome]:
    lines = list(lines or [])
    payments = list(payments or [])
    _validate(lines, payments, tax_rate)
    warehouse = resolve_sale_warehouse(ctx, warehouse)

    sale = _record_sale(
        ctx,
        warehouse=warehouse,
        lines=lines,
        payments=payments,
        tax_rate=tax_rate,
        customer_name=customer_name,
        notes=notes,
    )

    logger.info(
        "POS sale recorded",
        extra={
            "pos_transaction_id": str(sale.pk),
            "transaction_code": sale.transaction_code,
            "warehouse_id": str(sale.warehouse_id),
            "total_amount": str(sale.total_amount),
        },
    )

    user = ctx.user if getattr(ctx.user, "pk", None) else None
    outcome = post_best_effort(
        "Sale GL posting",
        post_pos_sale,
        company_id=ctx.company_id,
        sale_id=sale.pk,
        sale_code=sale.transaction_code,
        total_amount=sale.total_amount,
        tax_amount=sale.total_tax,
        user=user,
        posted_at=sale.transaction_date,
    )
    outcome.extend(
        post_best_effort(
            "COGS posting",
            post_pos_cogs,
            company_id=ctx.company_id,
            sale_id=sale.pk,
            sale_code=sale.transaction_code,
            cost=sale.total_cost,
            user=user,
            posted_at=sale.transaction_date,
        )
    )
    return sale, outcome


# ============================================================
# VOID
# ============================================================

@transaction.atomic
def _void_stock(ctx, sale: PosTransaction) -> PosTransaction:
    # lock row for concurrency safety
    sale = get_sale(ctx, sale.pk, lock=True)
    if sale.status == PosTransaction.STATUS_VOIDED:
        raise DocumentStateError("Transaction is already voided")
    if sale.status != PosTransaction.STATUS_COMPLETED:
        raise DocumentStateError("Only completed transactions can be voided")

    now = timezone.now()
    lines = []
    if sale.stock_transaction_id:
        for row in sale.stock_transaction.ledger_entries.select_related("item").order_by("created_at"):
            lines.append(
                MovementLine(
                    item=row.item,
                    quantity=abs(row.quantity),
                    unit_cost=row.valuation_rate,
                    notes=f"Void POS Sale - {sale.transaction_code}",
                )
            )

    if lines:
        sale.void_stock_transaction = post_movement(
            ctx,
            transaction_type=TYPE_IN,
            warehouse=sale.warehouse,
            lines=lines,
            transaction_date=timezone.localdate(now),
            reference_type=REF_VOID,
            reference_id=sale.pk,
            notes=f"Void POS Sale - {sale.transaction_code}",
        )

    sale.status = PosTransaction.STATUS_VOIDED
    sale.voided_at = now
    sale.voided_by = ctx.user if getattr(ctx.user, "pk", None) else None
    sale.save(
        update_fields=["void_stock_transaction", "status", "voided_at", "voided_by", "updated_at"]
    )
    return sale


def void_sale(ctx, sale: PosTransaction) -> tuple[PosTransaction, PostingOutcome]:
    sale = _void_stock(ctx, sale)

    logger.info(
        "POS sale voided",
        extra={"pos_transaction_id": str(sale.pk), "transaction_code": sale.transaction_code},
    )

    user = sale.voided_by
    outcome = post_best_effort(
        "GL reversal",
        post_pos_void,
        company_id=ctx.company_id,
        sale_id=sale.pk,
        sale_code=sale.transaction_code,
        total_amount=sale.total_amount,
        tax_amount=sale.total_tax,
        user=user,
        posted_at=sale.voided_at,
    )
    outcome.extend(
        post_best_effort(
            "COGS reversal",
            post_pos_cogs,
            company_id=ctx.company_id,
            sale_id=sale.pk,
            sale_code=sale.transaction_code,
            cost=sale.total_cost,
            user=user,
            posted_at=sale.voided_at,
            reverse=True,
        )
    )
    return sale, outcome

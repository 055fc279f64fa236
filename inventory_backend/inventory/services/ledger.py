# inventory/services/ledger.py

"""
LEDGER RECORDER

Appends one immutable StockTransactionItem per balance effect.

Valuation rate resolution (first hit wins):
1) unit cost supplied on the line (> 0)
2) latest ledger valuation_rate for the same (item, warehouse)
3) item.standard_cost
4) 0

stock_value_before/after are always qty_before/after * valuation_rate.
"""

from __future__ import annotations

from decimal import Decimal

from django.utils import timezone

from inventory.models import StockTransactionItem

from .normalization import NormalizedQuantity

Q4 = Decimal("0.0001")
ZERO = Decimal("0")


def q4(value) -> Decimal:
    return Decimal(value or 0).quantize(Q4)


def latest_valuation_rate(ctx, item, warehouse) -> Decimal | None:
    rate = (
        StockTransactionItem.objects.filter(
            company_id=ctx.company_id,
            item=item,
            warehouse=warehouse,
        )
        .order_by("-created_at", "-posting_time")
        .values_list("valuation_rate", flat=True)
        .first()
    )
    return Decimal(rate) if rate is not None else None


def resolve_valuation_rate(ctx, item, warehouse, *, unit_cost=None) -> Decimal:
    if unit_cost is not None and Decimal(unit_cost) > 0:
        return q4(unit_cost)

    latest = latest_valuation_rate(ctx, item, warehouse)
    if latest is not None:
        return q4(latest)

    if item.standard_cost is not None:
        return q4(item.standard_cost)

    return ZERO


def record_entry(
    ctx,
    *,
    stock_transaction,
    line,
    item,
    warehouse,
    normalized: NormalizedQuantity,
    quantity: Decimal,
    qty_before: Decimal,
    qty_after: Decimal,
    valuation_rate: Decimal,
    location=None,
    posting_date=None,
    user=None,
    batch_no: str = "",
    notes: str = "",
) -> StockTransactionItem:
    rate = q4(valuation_rate)
    unit_cost = rate
    if line is not None and line.unit_cost is not None and line.unit_cost > 0:
        unit_cost = q4(line.unit_cost)

    now = timezone.localtime()

    return StockTransactionItem.objects.create(
        company_id=ctx.company_id,
        transaction=stock_transaction,
        line=line,
        item=item,
        warehouse=warehouse,
        location=location,
        uom=normalized.uom,
        package=normalized.package,
        input_qty=q4(normalized.input_qty),
        conversion_factor=q4(normalized.conversion_factor),
        quantity=q4(quantity),
        unit_cost=unit_cost,
        total_cost=q4(abs(quantity) * unit_cost),
        qty_before=q4(qty_before),
        qty_after=q4(qty_after),
        valuation_rate=rate,
        stock_value_before=q4(qty_before * rate),
        stock_value_after=q4(qty_after * rate),
        posting_date=posting_date or now.date(),
        posting_time=now.time(),
        batch_no=batch_no or "",
        notes=notes or "",
        created_by=user,
    )

# transformations/services/transformation_service.py

"""
======================================================
PATH: transformations/services/transformation_service.py
======================================================
TRANSFORMATION SERVICE

Templates (recipes) and the orders that run them.

Executing an order (preparing -> completed) inside ONE atomic block:

1) Lock the order
2) Normalize consumed / produced / wasted quantities to base units
3) Post ONE 'out' stock transaction for the inputs
4) Input cost = sum of |qty| x valuation rate from that transaction's ledger
5) Cost per unit = input cost / (produced + wasted) across all outputs
6) Post ONE 'in' stock transaction for produced quantities, valued at
   the cost per unit
7) Stamp costs, quantities and completion on the order

Waste never reaches stock; it only absorbs cost. Any stock failure
rolls the whole execution back and the order stays in preparing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from inventory.models import Item
from inventory.services.delta import TYPE_IN, TYPE_OUT, to_decimal
from inventory.services.document_codes import PREFIX_TRANSFORMATION, next_document_code
from inventory.services.engine import MovementLine, post_movement
from inventory.services.exceptions import (
    ConflictError,
    DocumentStateError,
    InvalidQuantity,
    NotFound,
    StockValidationError,
)
from inventory.services.ledger import q4, resolve_valuation_rate
from inventory.services.lookups import get_package
from inventory.services.normalization import normalize_quantity
from transformations.models import (
    TransformationOrder,
    TransformationOrderInput,
    TransformationOrderOutput,
    TransformationTemplate,
    TransformationTemplateInput,
    TransformationTemplateOutput,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
REFERENCE_TYPE = "transformation_order"


@dataclass(frozen=True)
class RecipeLine:
    """Quantity of one item per unit of planned quantity (base units)."""

    item: Item
    quantity: Decimal
    uom: object = None
    is_scrap: bool = False
    notes: str = ""


@dataclass(frozen=True)
class ConsumedInput:
    line_id: object
    quantity: Decimal
    package_id: object = None


@dataclass(frozen=True)
class ProducedOutput:
    line_id: object
    produced_quantity: Decimal
    wasted_quantity: Decimal = ZERO
    waste_reason: str = ""
    package_id: object = None


def _actor(ctx):
    return ctx.user if getattr(ctx.user, "pk", None) else None


# ============================================================
# LOOKUP
# ============================================================

def get_template(ctx, pk, *, lock: bool = False) -> TransformationTemplate:
    qs = TransformationTemplate.objects.filter(
        pk=pk, company_id=ctx.company_id, deleted_at__isnull=True
    )
    if lock:
        qs = qs.select_for_update()
    try:
        template = qs.first()
    except (DjangoValidationError, ValueError):
        template = None
    if template is None:
        raise NotFound("Template not found")
    return template


def get_order(ctx, pk, *, lock: bool = False) -> TransformationOrder:
    qs = TransformationOrder.objects.filter(
        pk=pk, company_id=ctx.company_id, deleted_at__isnull=True
    )
    if lock:
        qs = qs.select_for_update()
    try:
        order = qs.first()
    except (DjangoValidationError, ValueError):
        order = None
    if order is None:
        raise NotFound("Transformation order not found")
    return order


# ============================================================
# TEMPLATES
# ============================================================

def _recipe_rows(ctx, lines, model, *, label: str) -> list:
    lines = list(lines or [])
    if not lines:
        raise StockValidationError(f"Template has no {label}s")

    rows = []
    seen = set()
    for sequence, line in enumerate(lines, start=1):
        item = line.item
        if item is None or item.company_id != ctx.company_id or item.deleted_at is not None:
            raise NotFound("Item not found")
        if not item.is_stock_item:
            raise StockValidationError(f"Item {item.item_code} is not a stock item")
        if item.pk in seen:
            raise StockValidationError(f"Duplicate {label} item {item.item_code}")
        seen.add(item.pk)

        quantity = to_decimal(line.quantity, field="quantity")
        if not quantity.is_finite() or quantity <= 0:
            raise InvalidQuantity(f"{label.capitalize()} quantity must be greater than zero")

        fields = dict(
            sequence=sequence,
            item=item,
            uom=line.uom if line.uom is not None else item.uom,
            quantity=q4(quantity),
            notes=(line.notes or "").strip(),
        )
        if model is TransformationTemplateOutput:
            fields["is_scrap"] = bool(line.is_scrap)
        rows.append(model(**fields))
    return rows


def _replace_side(template: TransformationTemplate, model, rows: list) -> None:
    model.objects.filter(template=template).delete()
    for row in rows:
        row.template = template
    model.objects.bulk_create(rows)


def _check_code_free(ctx, code: str) -> str:
    code = (code or "").strip().upper()
    if not code:
        raise StockValidationError("template_code is required")
    qs = TransformationTemplate.objects.filter(
        company_id=ctx.company_id, template_code=code, deleted_at__isnull=True
    )
    if qs.exists():
        raise ConflictError(f"Template code {code} already exists")
    return code


@transaction.atomic
def create_template(
    ctx,
    *,
    template_code: str,
    template_name: str,
    inputs: Iterable[RecipeLine],
    outputs: Iterable[RecipeLine],
    description: str = "",
    is_active: bool = True,
) -> TransformationTemplate:
    code = _check_code_free(ctx, template_code)
    if not (template_name or "").strip():
        raise StockValidationError("template_name is required")

    input_rows = _recipe_rows(ctx, inputs, TransformationTemplateInput, label="input")
    output_rows = _recipe_rows(ctx, outputs, TransformationTemplateOutput, label="output")

    template = TransformationTemplate.objects.create(
        company_id=ctx.company_id,
        template_code=code,
        template_name=template_name,
        description=description or "",
        is_active=is_active,
        created_by=_actor(ctx),
    )
    _replace_side(template, TransformationTemplateInput, input_rows)
    _replace_side(template, TransformationTemplateOutput, output_rows)

    logger.info(
        "Transformation template created",
        extra={"template_id": str(template.pk), "template_code": template.template_code},
    )
    return template


@transaction.atomic
def update_template(
    ctx,
    template: TransformationTemplate,
    *,
    template_name: str | None = None,
    description: str | None = None,
    is_active: bool | None = None,
    inputs: Iterable[RecipeLine] | None = None,
    outputs: Iterable[RecipeLine] | None = None,
) -> TransformationTemplate:
    """
    Omitted fields keep their value. Passing inputs or outputs replaces
    that side of the recipe. A template used by any order only accepts
    is_active.
    """
    # lock row for concurrency safety
    template = get_template(ctx, template.pk, lock=True)

    recipe_change = any(
        value is not None for value in (template_name, description, inputs, outputs)
    )
    if recipe_change and template.is_locked:
        raise DocumentStateError(
            f"Template is locked because it is used by {template.usage_count} order(s). "
            "Only status changes are allowed."
        )

    if template_name is not None:
        if not template_name.strip():
            raise StockValidationError("template_name is required")
        template.template_name = template_name
    if description is not None:
        template.description = description
    if is_active is not None:
        template.is_active = is_active

    if inputs is not None:
        _replace_side(
            template,
            TransformationTemplateInput,
            _recipe_rows(ctx, inputs, TransformationTemplateInput, label="input"),
        )
    if outputs is not None:
        _replace_side(
            template,
            TransformationTemplateOutput,
            _recipe_rows(ctx, outputs, TransformationTemplateOutput, label="output"),
        )

    template.save()
    return template


@transaction.atomic
def delete_template(ctx, template: TransformationTemplate) -> TransformationTemplate:
    # lock row for concurrency safety
    template = get_template(ctx, template.pk, lock=True)
    if template.is_locked:
        raise DocumentStateError(
            f"Cannot delete template {template.template_code} because it is used by "
            f"{template.usage_count} order(s)"
        )

    template.deleted_at = timezone.now()
    template.save(update_fields=["deleted_at", "updated_at"])
    return template


# ============================================================
# ORDERS
# ============================================================

def _planned_quantity(value) -> Decimal:
    quantity = to_decimal(value, field="plannedQuantity")
    if not quantity.is_finite() or quantity <= 0:
        raise InvalidQuantity("Planned quantity must be greater than zero")
    return q4(quantity)


def _scale_lines(ctx, order: TransformationOrder, template: TransformationTemplate) -> None:
    order.inputs.all().delete()
    order.outputs.all().delete()

    inputs = []
    for row in template.inputs.select_related("item").order_by("sequence"):
        planned = q4(row.quantity * order.planned_quantity)
        unit_cost = resolve_valuation_rate(ctx, row.item, order.warehouse)
        inputs.append(
            TransformationOrderInput(
                order=order,
                sequence=row.sequence,
                item=row.item,
                uom=row.uom,
                planned_quantity=planned,
                unit_cost=unit_cost,
                total_cost=q4(planned * unit_cost),
            )
        )

    outputs = [
        TransformationOrderOutput(
            order=order,
            sequence=row.sequence,
            item=row.item,
            uom=row.uom,
            is_scrap=row.is_scrap,
            planned_quantity=q4(row.quantity * order.planned_quantity),
        )
        for row in template.outputs.order_by("sequence")
    ]

    TransformationOrderInput.objects.bulk_create(inputs)
    TransformationOrderOutput.objects.bulk_create(outputs)


@transaction.atomic
def create_order(
    ctx,
    *,
    template: TransformationTemplate,
    warehouse,
    planned_quantity,
    order_date=None,
    planned_date=None,
    notes: str = "",
) -> TransformationOrder:
    if warehouse is None or warehouse.company_id != ctx.company_id:
        raise NotFound("Warehouse not found")
    planned_quantity = _planned_quantity(planned_quantity)

    # lock row for concurrency safety
    template = get_template(ctx, template.pk, lock=True)
    if not template.is_active:
        raise StockValidationError("Template is not active")
    if not template.inputs.exists():
        raise StockValidationError("Template has no inputs")
    if not template.outputs.exists():
        raise StockValidationError("Template has no outputs")

    order_date = order_date or timezone.localdate()
    user = _actor(ctx)
    order = TransformationOrder.objects.create(
        company_id=ctx.company_id,
        business_unit_id=ctx.business_unit_id,
        order_code=next_document_code(ctx.company_id, PREFIX_TRANSFORMATION, on_date=order_date),
        template=template,
        warehouse=warehouse,
        planned_quantity=planned_quantity,
        order_date=order_date,
        planned_date=planned_date,
        notes=notes or "",
        created_by=user,
        updated_by=user,
    )
    _scale_lines(ctx, order, template)

    TransformationTemplate.objects.filter(pk=template.pk).update(
        usage_count=F("usage_count") + 1
    )

    logger.info(
        "Transformation order created",
        extra={
            "order_id": str(order.pk),
            "order_code": order.order_code,
            "template_code": template.template_code,
        },
    )
    return order


def _require_draft(order: TransformationOrder, verb: str) -> None:
    if order.status != TransformationOrder.STATUS_DRAFT:
        raise DocumentStateError(
            f"Cannot {verb} order {order.order_code} in {order.status} status. "
            f"Only draft orders can be {verb}d."
        )


@transaction.atomic
def update_order(
    ctx,
    order: TransformationOrder,
    *,
    planned_quantity=None,
    planned_date=None,
    notes: str | None = None,
) -> TransformationOrder:
    # lock row for concurrency safety
    order = get_order(ctx, order.pk, lock=True)
    _require_draft(order, "update")

    if planned_date is not None:
        order.planned_date = planned_date
    if notes is not None:
        order.notes = notes
    if planned_quantity is not None:
        order.planned_quantity = _planned_quantity(planned_quantity)
        _scale_lines(ctx, order, order.template)

    order.updated_by = _actor(ctx)
    order.save()
    return order


@transaction.atomic
def delete_order(ctx, order: TransformationOrder) -> TransformationOrder:
    """Soft-delete a draft; the template's usage count is released."""
    # lock row for concurrency safety
    order = get_order(ctx, order.pk, lock=True)
    _require_draft(order, "delete")

    order.deleted_at = timezone.now()
    order.updated_by = _actor(ctx)
    order.save(update_fields=["deleted_at", "updated_by", "updated_at"])

    TransformationTemplate.objects.filter(pk=order.template_id, usage_count__gt=0).update(
        usage_count=F("usage_count") - 1
    )
    return order


@transaction.atomic
def change_status(ctx, order: TransformationOrder, target: str) -> TransformationOrder:
    """
    Apply one workflow step. Requesting the current status is a no-op;
    completion only happens through execute_order.
    """
    # lock row for concurrency safety
    order = get_order(ctx, order.pk, lock=True)

    if target not in dict(TransformationOrder.STATUSES):
        raise StockValidationError(f"Invalid status: {target}")
    if order.status == target:
        return order
    if target == TransformationOrder.STATUS_COMPLETED:
        raise DocumentStateError("Orders are completed by executing them")
    if not order.can_transition_to(target):
        raise DocumentStateError(f"Invalid transition from {order.status} to {target}")

    previous = order.status
    order.status = target
    order.updated_by = _actor(ctx)
    order.save(update_fields=["status", "updated_by", "updated_at"])

    logger.info(
        "Transformation order status changed",
        extra={"order_id": str(order.pk), "from_status": previous, "to_status": target},
    )
    return order


# ============================================================
# EXECUTION
# ============================================================

def _base_qty(row, quantity, package_id, *, field: str, allow_zero: bool = False) -> Decimal:
    value = to_decimal(quantity if quantity is not None else 0, field=field)
    if not value.is_finite() or value < 0:
        raise InvalidQuantity(f"{field} cannot be negative")
    if value == 0:
        if not allow_zero:
            raise InvalidQuantity(f"{field} must be greater than zero")
        return ZERO
    package = get_package(row.item, package_id)
    return normalize_quantity(item=row.item, quantity=value, package=package).base_qty


def _select_rows(rows, requested, *, label: str) -> list:
    by_id = {str(row.pk): row for row in rows}
    selected = []
    seen = set()
    for entry in requested:
        key = str(entry.line_id)
        row = by_id.get(key)
        if row is None:
            raise NotFound(f"{label} line not found")
        if key in seen:
            raise StockValidationError(f"Duplicate {label.lower()} line {key}")
        seen.add(key)
        selected.append((row, entry))
    return selected


def _consumption(rows, inputs: Optional[Iterable[ConsumedInput]]) -> list[tuple]:
    if inputs is None:
        return [(row, row.planned_quantity) for row in rows if row.planned_quantity > 0]

    consumption = [
        (row, _base_qty(row, entry.quantity, entry.package_id, field="consumedQuantity"))
        for row, entry in _select_rows(rows, list(inputs), label="Input")
    ]
    if not consumption:
        raise StockValidationError("At least one input must be consumed")
    return consumption


def _production(rows, outputs: Optional[Iterable[ProducedOutput]]) -> list[tuple]:
    if outputs is None:
        production = [(row, row.planned_quantity, ZERO, "") for row in rows]
    else:
        production = []
        for row, entry in _select_rows(rows, list(outputs), label="Output"):
            produced = _base_qty(
                row, entry.produced_quantity, entry.package_id,
                field="producedQuantity", allow_zero=True,
            )
            wasted = _base_qty(
                row, entry.wasted_quantity, entry.package_id,
                field="wastedQuantity", allow_zero=True,
            )
            production.append((row, produced, wasted, (entry.waste_reason or "").strip()))

    if not any(produced > 0 for _, produced, _, _ in production):
        raise StockValidationError("At least one output must be produced")
    return production


@transaction.atomic
def execute_order(
    ctx,
    order: TransformationOrder,
    *,
    inputs: Optional[Iterable[ConsumedInput]] = None,
    outputs: Optional[Iterable[ProducedOutput]] = None,
    execution_date=None,
) -> TransformationOrder:
    """
    Consume inputs and produce outputs. Omitted inputs / outputs run the
    order exactly as planned.
    """
    # lock row for concurrency safety
    order = get_order(ctx, order.pk, lock=True)
    if order.status != TransformationOrder.STATUS_PREPARING:
        raise DocumentStateError(
            f"Cannot execute order {order.order_code} in {order.status} status. "
            "Only preparing orders can be executed."
        )

    execution_date = execution_date or timezone.localdate()
    input_rows = list(order.inputs.select_related("item").order_by("sequence"))
    output_rows = list(order.outputs.select_related("item").order_by("sequence"))

    consumption = _consumption(input_rows, inputs)
    production = _production(output_rows, outputs)

    common = dict(
        warehouse=order.warehouse,
        transaction_date=execution_date,
        reference_type=REFERENCE_TYPE,
        reference_id=order.pk,
    )

    # 1) inputs out
    order.consume_transaction = post_movement(
        ctx,
        transaction_type=TYPE_OUT,
        lines=[
            MovementLine(item=row.item, quantity=base, notes=f"Transformation input: {order.order_code}")
            for row, base in consumption
        ],
        notes=f"Transformation {order.order_code}: consume inputs",
        **common,
    )

    rates = {
        entry.line.line_no: entry.valuation_rate
        for entry in order.consume_transaction.ledger_entries.select_related("line")
    }
    total_input_cost = ZERO
    for line_no, (row, base) in enumerate(consumption, start=1):
        row.consumed_quantity = base
        row.unit_cost = q4(rates[line_no])
        row.total_cost = q4(base * row.unit_cost)
        total_input_cost += row.total_cost
    total_input_cost = q4(total_input_cost)

    # 2) cost allocation
    total_output_qty = sum((produced + wasted for _, produced, wasted, _ in production), ZERO)
    cost_per_unit = q4(total_input_cost / total_output_qty) if total_output_qty > 0 else ZERO

    total_output_cost = ZERO
    for row, produced, wasted, reason in production:
        row.produced_quantity = produced
        row.wasted_quantity = wasted
        row.waste_reason = reason
        if row.is_scrap:
            row.allocated_cost_per_unit = ZERO
            row.total_allocated_cost = ZERO
        else:
            row.allocated_cost_per_unit = cost_per_unit
            row.total_allocated_cost = q4(produced * cost_per_unit)
        total_output_cost += row.total_allocated_cost

    # 3) outputs in
    order.produce_transaction = post_movement(
        ctx,
        transaction_type=TYPE_IN,
        lines=[
            MovementLine(
                item=row.item,
                quantity=produced,
                unit_cost=cost_per_unit if cost_per_unit > 0 else None,
                notes=f"Transformation output: {order.order_code}",
            )
            for row, produced, _, _ in production
            if produced > 0
        ],
        notes=f"Transformation {order.order_code}: produce outputs",
        **common,
    )

    TransformationOrderInput.objects.bulk_update(
        [row for row, _ in consumption], ["consumed_quantity", "unit_cost", "total_cost"]
    )
    TransformationOrderOutput.objects.bulk_update(
        [row for row, _, _, _ in production],
        [
            "produced_quantity",
            "wasted_quantity",
            "waste_reason",
            "allocated_cost_per_unit",
            "total_allocated_cost",
        ],
    )

    order.total_input_cost = total_input_cost
    order.total_output_cost = q4(total_output_cost)
    order.cost_variance = q4(total_input_cost - total_output_cost)
    order.actual_quantity = q4(sum((produced for _, produced, _, _ in production), ZERO))
    order.status = TransformationOrder.STATUS_COMPLETED
    order.execution_date = execution_date
    order.completion_date = timezone.now()
    order.updated_by = _actor(ctx)
    order.save()

    logger.info(
        "Transformation order executed",
        extra={
            "order_id": str(order.pk),
            "order_code": order.order_code,
            "consume_transaction": str(order.consume_transaction_id),
            "produce_transaction": str(order.produce_transaction_id),
            "total_input_cost": str(order.total_input_cost),
        },
    )
    return order

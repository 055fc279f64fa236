# transformations/models.py

"""
TRANSFORMATIONS (REPACK / KITTING / DISASSEMBLY)

A template is a recipe: input items consumed and output items produced
per one unit of planned quantity. An order scales a template and, when
executed, consumes the inputs with one 'out' stock transaction and
produces the outputs with one 'in' stock transaction.

Template lock:
    usage_count > 0 -> only is_active may change; delete is rejected

Order workflow (anything else is rejected):
    draft     -> preparing | cancelled
    preparing -> completed (execute only) | cancelled
    completed, cancelled: terminal

All quantities on order lines are base units of the line item.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

User = settings.AUTH_USER_MODEL


def _qty(**kwargs):
    return models.DecimalField(max_digits=18, decimal_places=4, **kwargs)


class TransformationTemplate(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        "organizations.Company",
        on_delete=models.CASCADE,
        related_name="transformation_templates",
    )

    template_code = models.CharField(max_length=50)
    template_name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)

    # orders created from this template; > 0 locks the recipe
    usage_count = models.PositiveIntegerField(default=0)

    deleted_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transformation_templates_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["template_code"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "template_code"],
                condition=Q(deleted_at__isnull=True),
                name="uniq_live_template_company_code",
            ),
        ]

    def save(self, *args, **kwargs):
        self.template_code = (self.template_code or "").strip().upper()
        self.template_name = (self.template_name or "").strip()
        self.full_clean()
        return super().save(*args, **kwargs)

    def clean(self):
        if not self.template_code:
            raise ValidationError({"template_code": "template_code is required"})
        if not self.template_name:
            raise ValidationError({"template_name": "template_name is required"})

    @property
    def is_locked(self) -> bool:
        return self.usage_count > 0

    def __str__(self):
        return f"{self.template_code} - {self.template_name}"


class TemplateLine(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sequence = models.PositiveIntegerField(default=1)
    item = models.ForeignKey(
        "inventory.Item",
        on_delete=models.PROTECT,
        related_name="+",
    )
    uom = models.ForeignKey(
        "inventory.UnitOfMeasure",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    # per one unit of the order's planned quantity
    quantity = _qty()
    notes = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        abstract = True
        ordering = ["sequence"]


class TransformationTemplateInput(TemplateLine):
    template = models.ForeignKey(
        TransformationTemplate,
        on_delete=models.CASCADE,
        related_name="inputs",
    )

    class Meta(TemplateLine.Meta):
        constraints = [
            models.UniqueConstraint(fields=["template", "item"], name="uniq_template_input_item"),
            models.CheckConstraint(condition=Q(quantity__gt=0), name="template_input_qty_gt_zero"),
        ]


class TransformationTemplateOutput(TemplateLine):
    template = models.ForeignKey(
        TransformationTemplate,
        on_delete=models.CASCADE,
        related_name="outputs",
    )
    is_scrap = models.BooleanField(default=False)

    class Meta(TemplateLine.Meta):
        constraints = [
            models.UniqueConstraint(fields=["template", "item"], name="uniq_template_output_item"),
            models.CheckConstraint(condition=Q(quantity__gt=0), name="template_output_qty_gt_zero"),
        ]


class TransformationOrder(models.Model):
    STATUS_DRAFT = "draft"
    STATUS_PREPARING = "preparing"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"

    STATUSES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_PREPARING, "Preparing"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    ALLOWED_TRANSITIONS = {
        STATUS_DRAFT: (STATUS_PREPARING, STATUS_CANCELLED),
        STATUS_PREPARING: (STATUS_COMPLETED, STATUS_CANCELLED),
        STATUS_COMPLETED: (),
        STATUS_CANCELLED: (),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        "organizations.Company",
        on_delete=models.CASCADE,
        related_name="transformation_orders",
    )
    business_unit = models.ForeignKey(
        "organizations.BusinessUnit",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transformation_orders",
    )

    order_code = models.CharField(max_length=32)
    template = models.ForeignKey(
        TransformationTemplate,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    warehouse = models.ForeignKey(
        "inventory.Warehouse",
        on_delete=models.PROTECT,
        related_name="transformation_orders",
    )

    status = models.CharField(max_length=20, choices=STATUSES, default=STATUS_DRAFT)

    planned_quantity = _qty()
    actual_quantity = _qty(default=Decimal("0"))

    total_input_cost = _qty(default=Decimal("0"))
    total_output_cost = _qty(default=Decimal("0"))
    # input value not carried by non-scrap outputs (waste + scrap)
    cost_variance = _qty(default=Decimal("0"))

    order_date = models.DateField(default=timezone.localdate)
    planned_date = models.DateField(null=True, blank=True)
    execution_date = models.DateField(null=True, blank=True)
    completion_date = models.DateTimeField(null=True, blank=True)

    notes = models.TextField(blank=True, default="")

    consume_transaction = models.ForeignKey(
        "inventory.StockTransaction",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    produce_transaction = models.ForeignKey(
        "inventory.StockTransaction",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )

    deleted_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transformation_orders_created",
    )
    updated_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "order_code"],
                name="uniq_transformation_company_code",
            ),
            models.CheckConstraint(
                condition=Q(planned_quantity__gt=0),
                name="transformation_planned_qty_gt_zero",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "status"], name="transformation_status_idx"),
        ]

    def can_transition_to(self, target: str) -> bool:
        return target in self.ALLOWED_TRANSITIONS.get(self.status, ())

    def clean(self):
        if self.status == self.STATUS_COMPLETED and not self.completion_date:
            raise ValidationError(
                {"completion_date": "completion_date is required for completed orders"}
            )

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.order_code} ({self.status})"


class OrderLine(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sequence = models.PositiveIntegerField(default=1)
    item = models.ForeignKey(
        "inventory.Item",
        on_delete=models.PROTECT,
        related_name="+",
    )
    uom = models.ForeignKey(
        "inventory.UnitOfMeasure",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    planned_quantity = _qty()

    class Meta:
        abstract = True
        ordering = ["sequence"]


class TransformationOrderInput(OrderLine):
    order = models.ForeignKey(
        TransformationOrder,
        on_delete=models.CASCADE,
        related_name="inputs",
    )
    consumed_quantity = _qty(default=Decimal("0"))
    # planning estimate until execution, then the ledger valuation rate
    unit_cost = _qty(default=Decimal("0"))
    total_cost = _qty(default=Decimal("0"))

    class Meta(OrderLine.Meta):
        constraints = [
            models.CheckConstraint(
                condition=Q(consumed_quantity__gte=0) & Q(unit_cost__gte=0),
                name="transformation_input_nonnegative",
            ),
        ]

    def __str__(self):
        return f"{self.order_id} | in {self.item_id} {self.consumed_quantity}/{self.planned_quantity}"


class TransformationOrderOutput(OrderLine):
    order = models.ForeignKey(
        TransformationOrder,
        on_delete=models.CASCADE,
        related_name="outputs",
    )
    is_scrap = models.BooleanField(default=False)

    produced_quantity = _qty(default=Decimal("0"))
    wasted_quantity = _qty(default=Decimal("0"))
    waste_reason = models.CharField(max_length=255, blank=True, default="")

    allocated_cost_per_unit = _qty(default=Decimal("0"))
    total_allocated_cost = _qty(default=Decimal("0"))

    class Meta(OrderLine.Meta):
        constraints = [
            models.CheckConstraint(
                condition=Q(produced_quantity__gte=0) & Q(wasted_quantity__gte=0),
                name="transformation_output_nonnegative",
            ),
        ]

    def __str__(self):
        return f"{self.order_id} | out {self.item_id} {self.produced_quantity}/{self.planned_quantity}"

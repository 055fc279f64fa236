# adjustments/models.py

"""
STOCK ADJUSTMENTS

Manual count corrections for one warehouse.

Lifecycle:
    draft --approve--> approved --post--> posted      (terminal)
    draft ------------------------post--> posted
    draft | approved --cancel--> cancelled            (terminal)
    draft --delete--> deleted (soft)

Lines keep the balance seen when the draft was written (current_qty),
the target quantity (adjusted_qty) and their difference, all in base units.
Posting moves the live balance by `difference` through the stock engine.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class StockAdjustment(models.Model):
    TYPE_INCREASE = "increase"
    TYPE_DECREASE = "decrease"
    TYPE_PHYSICAL_COUNT = "physical_count"

    ADJUSTMENT_TYPES = [
        (TYPE_INCREASE, "Increase"),
        (TYPE_DECREASE, "Decrease"),
        (TYPE_PHYSICAL_COUNT, "Physical Count"),
    ]

    STATUS_DRAFT = "draft"
    STATUS_APPROVED = "approved"
    STATUS_POSTED = "posted"
    STATUS_CANCELLED = "cancelled"

    STATUSES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_POSTED, "Posted"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        "organizations.Company",
        on_delete=models.CASCADE,
        related_name="stock_adjustments",
    )
    business_unit = models.ForeignKey(
        "organizations.BusinessUnit",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_adjustments",
    )

    adjustment_code = models.CharField(max_length=32)
    adjustment_type = models.CharField(max_length=20, choices=ADJUSTMENT_TYPES)
    adjustment_date = models.DateField(default=timezone.localdate)

    warehouse = models.ForeignKey(
        "inventory.Warehouse",
        on_delete=models.PROTECT,
        related_name="stock_adjustments",
    )
    location = models.ForeignKey(
        "inventory.WarehouseLocation",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="stock_adjustments",
    )

    status = models.CharField(max_length=20, choices=STATUSES, default=STATUS_DRAFT)
    reason = models.CharField(max_length=255)
    notes = models.TextField(blank=True, default="")

    total_value = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))

    # one stock transaction per direction (gains post 'in', losses post 'out')
    stock_transaction_in = models.ForeignKey(
        "inventory.StockTransaction",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    stock_transaction_out = models.ForeignKey(
        "inventory.StockTransaction",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )

    approved_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    posted_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    posted_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    deleted_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_adjustments_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "adjustment_code"],
                name="uniq_adjustment_company_code",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "status"], name="adjustment_company_status_idx"),
            models.Index(fields=["warehouse", "adjustment_date"], name="adjustment_wh_date_idx"),
        ]

    def clean(self):
        self.reason = (self.reason or "").strip()
        if not self.reason:
            raise ValidationError({"reason": "reason is required"})
        if self.location_id and self.location.warehouse_id != self.warehouse_id:
            raise ValidationError({"location": "Location must belong to the adjustment warehouse"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    @property
    def is_editable(self) -> bool:
        return self.status == self.STATUS_DRAFT and self.deleted_at is None

    def __str__(self):
        return f"{self.adjustment_code} ({self.status})"


class StockAdjustmentItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    adjustment = models.ForeignKey(
        StockAdjustment,
        on_delete=models.CASCADE,
        related_name="items",
    )
    line_no = models.PositiveIntegerField(default=1)

    item = models.ForeignKey(
        "inventory.Item",
        on_delete=models.PROTECT,
        related_name="adjustment_lines",
    )
    uom = models.ForeignKey(
        "inventory.UnitOfMeasure",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    package = models.ForeignKey(
        "inventory.ItemPackage",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )

    # what the user typed, and its factor to base units
    input_qty = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))
    conversion_factor = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("1"))

    current_qty = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))
    adjusted_qty = models.DecimalField(max_digits=18, decimal_places=4)
    difference = models.DecimalField(max_digits=18, decimal_places=4)

    unit_cost = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))
    total_cost = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))

    reason = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["line_no"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(adjusted_qty__gte=0),
                name="adjustment_item_adjusted_qty_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(unit_cost__gte=0),
                name="adjustment_item_unit_cost_nonnegative",
            ),
        ]

    def __str__(self):
        return f"{self.item_id}: {self.current_qty} -> {self.adjusted_qty}"

# picking/models.py

"""
PICK LISTS

Warehouse picking work orders. Picking never moves stock by itself; it
records what was allocated and what the picker actually found.

Status workflow (anything else is rejected):
    pending     -> in_progress | cancelled
    in_progress -> paused | done | cancelled
    paused      -> in_progress | cancelled
    done, cancelled: terminal
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

User = settings.AUTH_USER_MODEL


class PickList(models.Model):
    STATUS_PENDING = "pending"
    STATUS_IN_PROGRESS = "in_progress"
    STATUS_PAUSED = "paused"
    STATUS_DONE = "done"
    STATUS_CANCELLED = "cancelled"

    STATUSES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_IN_PROGRESS, "In progress"),
        (STATUS_PAUSED, "Paused"),
        (STATUS_DONE, "Done"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    ALLOWED_TRANSITIONS = {
        STATUS_PENDING: (STATUS_IN_PROGRESS, STATUS_CANCELLED),
        STATUS_IN_PROGRESS: (STATUS_PAUSED, STATUS_DONE, STATUS_CANCELLED),
        STATUS_PAUSED: (STATUS_IN_PROGRESS, STATUS_CANCELLED),
        STATUS_DONE: (),
        STATUS_CANCELLED: (),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        "organizations.Company",
        on_delete=models.CASCADE,
        related_name="pick_lists",
    )
    business_unit = models.ForeignKey(
        "organizations.BusinessUnit",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="pick_lists",
    )

    pick_list_code = models.CharField(max_length=32)
    warehouse = models.ForeignKey(
        "inventory.Warehouse",
        on_delete=models.PROTECT,
        related_name="pick_lists",
    )
    status = models.CharField(max_length=20, choices=STATUSES, default=STATUS_PENDING)

    notes = models.TextField(blank=True, default="")
    cancel_reason = models.TextField(blank=True, default="")

    assignees = models.ManyToManyField(User, blank=True, related_name="assigned_pick_lists")

    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="pick_lists_created",
    )
    updated_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "pick_list_code"],
                name="uniq_pick_list_company_code",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "status"], name="pick_list_company_status_idx"),
        ]

    def can_transition_to(self, target: str) -> bool:
        return target in self.ALLOWED_TRANSITIONS.get(self.status, ())

    def clean(self):
        if self.status == self.STATUS_DONE and not self.completed_at:
            raise ValidationError({"completed_at": "completed_at is required for done pick lists"})

    def save(self, *args, **kwargs):
        self.full_clean(validate_constraints=False)
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.pick_list_code} ({self.status})"


class PickListItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    pick_list = models.ForeignKey(PickList, on_delete=models.CASCADE, related_name="items")
    line_no = models.PositiveIntegerField(default=1)

    item = models.ForeignKey(
        "inventory.Item",
        on_delete=models.PROTECT,
        related_name="pick_list_items",
    )
    uom = models.ForeignKey(
        "inventory.UnitOfMeasure",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    location = models.ForeignKey(
        "inventory.WarehouseLocation",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="pick_list_items",
    )

    allocated_qty = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))
    picked_qty = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))
    short_qty = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["line_no"]
        constraints = [
            models.CheckConstraint(
                condition=Q(allocated_qty__gte=0) & Q(picked_qty__gte=0) & Q(short_qty__gte=0),
                name="pick_item_quantities_nonnegative",
            ),
            models.CheckConstraint(
                condition=Q(picked_qty__lte=F("allocated_qty")),
                name="pick_item_picked_lte_allocated",
            ),
        ]

    def __str__(self):
        return f"{self.pick_list_id} | {self.item_id} {self.picked_qty}/{self.allocated_qty}"

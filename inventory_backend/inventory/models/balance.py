# inventory/models/balance.py

"""
AUTHORITATIVE STOCK BALANCES

ItemWarehouse:
- One live (deleted_at IS NULL) row per (item, warehouse)
- current_stock is the on-hand quantity in base units (signed decimal)
- Created lazily by the stock engine; never hard-deleted
- Service-managed only: every change is paired with a ledger row
  (StockTransactionItem) written in the same database transaction

ItemLocation:
- Per-location on-hand quantity, maintained as a side effect of movements
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from .item import Item
from .warehouse import Warehouse, WarehouseLocation


class ItemWarehouse(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        "organizations.Company",
        on_delete=models.CASCADE,
        related_name="item_balances",
    )
    item = models.ForeignKey(
        Item, on_delete=models.PROTECT, related_name="warehouse_balances"
    )
    warehouse = models.ForeignKey(
        Warehouse, on_delete=models.PROTECT, related_name="item_balances"
    )

    current_stock = models.DecimalField(
        max_digits=18, decimal_places=4, default=Decimal("0")
    )
    reserved_stock = models.DecimalField(
        max_digits=18, decimal_places=4, default=Decimal("0")
    )
    available_stock = models.DecimalField(
        max_digits=18,
        decimal_places=4,
        default=Decimal("0"),
        help_text="Derived: current_stock - reserved_stock.",
    )

    default_location = models.ForeignKey(
        WarehouseLocation,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="default_for_balances",
    )

    deleted_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="item_balances_created",
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="item_balances_updated",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "item_warehouse"
        ordering = ["item", "warehouse"]
        constraints = [
            models.UniqueConstraint(
                fields=["item", "warehouse"],
                condition=Q(deleted_at__isnull=True),
                name="uniq_item_warehouse_live",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "warehouse"], name="item_wh_company_wh_idx"),
        ]

    def save(self, *args, **kwargs):
        self.available_stock = Decimal(self.current_stock or 0) - Decimal(
            self.reserved_stock or 0
        )
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "current_stock" in update_fields:
            kwargs["update_fields"] = {*update_fields, "available_stock"}
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.item_id} @ {self.warehouse_id}: {self.current_stock}"


class ItemLocation(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        "organizations.Company",
        on_delete=models.CASCADE,
        related_name="item_locations",
    )
    item = models.ForeignKey(
        Item, on_delete=models.PROTECT, related_name="location_balances"
    )
    warehouse = models.ForeignKey(
        Warehouse, on_delete=models.PROTECT, related_name="item_locations"
    )
    location = models.ForeignKey(
        WarehouseLocation, on_delete=models.PROTECT, related_name="item_locations"
    )

    qty_on_hand = models.DecimalField(
        max_digits=18, decimal_places=4, default=Decimal("0")
    )
    qty_reserved = models.DecimalField(
        max_digits=18, decimal_places=4, default=Decimal("0")
    )

    # FIFO order for outbound moves without an explicit bin
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["location"]
        constraints = [
            models.UniqueConstraint(
                fields=["item", "location"],
                name="uniq_item_location",
            ),
        ]

    def __str__(self):
        return f"{self.item_id} @ {self.location_id}: {self.qty_on_hand}"

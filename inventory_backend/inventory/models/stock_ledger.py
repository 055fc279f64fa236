# inventory/models/stock_ledger.py

"""
CANONICAL STOCK LEDGER

Immutable before/after audit row, one per (line, warehouse) effect.

GUARANTEES:
- Append-only (no updates, no deletes)
- quantity is the SIGNED base-unit delta (+in, -out)
- qty_after == qty_before + quantity
- stock_value_before/after == qty_before/after * valuation_rate
- qty_after equals ItemWarehouse.current_stock right after the write
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .item import Item, ItemPackage, UnitOfMeasure
from .stock_transaction import StockTransaction, StockTransactionLine
from .warehouse import Warehouse, WarehouseLocation


class StockTransactionItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        "organizations.Company",
        on_delete=models.CASCADE,
        related_name="stock_ledger_entries",
    )
    transaction = models.ForeignKey(
        StockTransaction, on_delete=models.PROTECT, related_name="ledger_entries"
    )
    line = models.ForeignKey(
        StockTransactionLine,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_entries",
    )

    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name="ledger_entries")
    warehouse = models.ForeignKey(
        Warehouse, on_delete=models.PROTECT, related_name="ledger_entries"
    )
    location = models.ForeignKey(
        WarehouseLocation,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="ledger_entries",
    )
    uom = models.ForeignKey(
        UnitOfMeasure,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_entries",
    )
    package = models.ForeignKey(
        ItemPackage,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_entries",
    )

    input_qty = models.DecimalField(max_digits=18, decimal_places=4)
    conversion_factor = models.DecimalField(
        max_digits=14, decimal_places=4, default=Decimal("1")
    )
    quantity = models.DecimalField(
        max_digits=18,
        decimal_places=4,
        help_text="Signed base-unit delta applied to the balance.",
    )

    unit_cost = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal("0"))
    total_cost = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))

    qty_before = models.DecimalField(max_digits=18, decimal_places=4)
    qty_after = models.DecimalField(max_digits=18, decimal_places=4)

    valuation_rate = models.DecimalField(
        max_digits=14, decimal_places=4, default=Decimal("0")
    )
    stock_value_before = models.DecimalField(
        max_digits=18, decimal_places=4, default=Decimal("0")
    )
    stock_value_after = models.DecimalField(
        max_digits=18, decimal_places=4, default=Decimal("0")
    )

    posting_date = models.DateField(default=timezone.localdate)
    posting_time = models.TimeField()

    batch_no = models.CharField(max_length=64, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_ledger_entries",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["item", "warehouse", "created_at"], name="ledger_item_wh_created_idx"),
            models.Index(fields=["transaction"], name="ledger_transaction_idx"),
            models.Index(fields=["posting_date"], name="ledger_posting_date_idx"),
        ]

    def clean(self):
        if self.quantity is None or self.quantity == 0:
            raise ValidationError("quantity must be non-zero")

        if self.input_qty is None or self.input_qty <= 0:
            raise ValidationError("input_qty must be greater than zero")

        if self.qty_before is not None and self.qty_after is not None:
            if self.qty_before + self.quantity != self.qty_after:
                raise ValidationError("qty_after must equal qty_before + quantity")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Stock ledger entries are immutable")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Stock ledger entries are immutable and cannot be deleted")

    def __str__(self):
        return f"{self.item_id} @ {self.warehouse_id} | {self.quantity} -> {self.qty_after}"

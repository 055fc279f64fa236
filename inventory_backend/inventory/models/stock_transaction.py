# inventory/models/stock_transaction.py

"""
STOCK TRANSACTION (DOCUMENT HEADER + REQUESTED LINES)

Lifecycle:
    draft --post--> posted     (terminal; immutable)
    draft --delete--> deleted  (terminal; soft delete via deleted_at)

Lines (StockTransactionLine) hold what was requested, in the caller's
package/UOM. Balance effects are recorded at posting time as immutable
StockTransactionItem ledger rows, one per (line, warehouse leg).
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

from .item import Item, ItemPackage, UnitOfMeasure
from .warehouse import Warehouse, WarehouseLocation


class StockTransaction(models.Model):
    TYPE_IN = "in"
    TYPE_OUT = "out"
    TYPE_TRANSFER = "transfer"

    TRANSACTION_TYPES = [
        (TYPE_IN, "Stock In"),
        (TYPE_OUT, "Stock Out"),
        (TYPE_TRANSFER, "Transfer"),
    ]

    STATUS_DRAFT = "draft"
    STATUS_POSTED = "posted"

    STATUSES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_POSTED, "Posted"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        "organizations.Company",
        on_delete=models.CASCADE,
        related_name="stock_transactions",
    )
    business_unit = models.ForeignKey(
        "organizations.BusinessUnit",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_transactions",
    )

    transaction_code = models.CharField(max_length=32)
    transaction_type = models.CharField(max_length=10, choices=TRANSACTION_TYPES)
    transaction_date = models.DateField(default=timezone.localdate)

    warehouse = models.ForeignKey(
        Warehouse, on_delete=models.PROTECT, related_name="stock_transactions"
    )
    to_warehouse = models.ForeignKey(
        Warehouse,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="incoming_transfers",
    )
    from_location = models.ForeignKey(
        WarehouseLocation,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="outgoing_transactions",
    )
    to_location = models.ForeignKey(
        WarehouseLocation,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="incoming_transactions",
    )

    # Source document (purchase_receipt, stock_adjustment, pos_transaction, ...)
    reference_type = models.CharField(max_length=40, blank=True, default="")
    reference_id = models.UUIDField(null=True, blank=True)

    status = models.CharField(max_length=10, choices=STATUSES, default=STATUS_DRAFT)
    notes = models.TextField(blank=True, default="")

    posted_at = models.DateTimeField(null=True, blank=True)
    posted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_transactions_posted",
    )

    deleted_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_transactions_created",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "transaction_code"],
                name="uniq_stock_txn_company_code",
            ),
            models.CheckConstraint(
                condition=~Q(transaction_type="transfer") | Q(to_warehouse__isnull=False),
                name="stock_txn_transfer_has_destination",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "status"], name="stock_txn_company_status_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="stock_txn_reference_idx"),
            models.Index(fields=["transaction_date"], name="stock_txn_date_idx"),
        ]

    def clean(self):
        if self.transaction_type == self.TYPE_TRANSFER:
            if not self.to_warehouse_id:
                raise ValidationError({"to_warehouse": "Transfers require a destination warehouse"})
            if self.to_warehouse_id == self.warehouse_id:
                raise ValidationError(
                    {"to_warehouse": "Destination warehouse must differ from source"}
                )

    @property
    def is_draft(self) -> bool:
        return self.status == self.STATUS_DRAFT and self.deleted_at is None

    def __str__(self):
        return f"{self.transaction_code} ({self.transaction_type}, {self.status})"


class StockTransactionLine(models.Model):
    """
    Requested line. input_qty is in the caller's package (or the item UOM).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    transaction = models.ForeignKey(
        StockTransaction, on_delete=models.CASCADE, related_name="lines"
    )
    line_no = models.PositiveIntegerField(default=1)

    item = models.ForeignKey(
        Item, on_delete=models.PROTECT, related_name="stock_transaction_lines"
    )
    uom = models.ForeignKey(
        UnitOfMeasure,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="stock_transaction_lines",
    )
    package = models.ForeignKey(
        ItemPackage,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="stock_transaction_lines",
    )

    input_qty = models.DecimalField(max_digits=18, decimal_places=4)
    unit_cost = models.DecimalField(
        max_digits=14, decimal_places=4, null=True, blank=True
    )

    batch_no = models.CharField(max_length=64, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["line_no"]
        constraints = [
            models.CheckConstraint(
                condition=Q(input_qty__gt=Decimal("0")),
                name="stock_txn_line_qty_gt_zero",
            ),
        ]

    def __str__(self):
        return f"{self.transaction_id} #{self.line_no}: {self.item_id} x {self.input_qty}"

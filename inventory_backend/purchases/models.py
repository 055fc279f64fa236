# purchases/models.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

FOURPLACES = Decimal("0.0001")


def _qty(v) -> Decimal:
    return Decimal(str(v or "0")).quantize(FOURPLACES)


User = settings.AUTH_USER_MODEL


class Supplier(models.Model):
    """
    Supplier master (per company).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        "organizations.Company",
        on_delete=models.CASCADE,
        related_name="suppliers",
    )

    supplier_code = models.CharField(max_length=32)
    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=50, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    address = models.TextField(blank=True, default="")

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "supplier_code"],
                name="uniq_supplier_company_code",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "name"], name="supplier_company_name_idx"),
            models.Index(fields=["is_active"], name="supplier_active_idx"),
        ]

    def clean(self):
        self.supplier_code = (self.supplier_code or "").strip().upper()
        if not self.supplier_code:
            raise ValidationError({"supplier_code": "supplier_code is required"})
        if not (self.name or "").strip():
            raise ValidationError({"name": "name is required"})

    def save(self, *args, **kwargs):
        self.full_clean(validate_constraints=False)
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.supplier_code} - {self.name}"


class PurchaseOrder(models.Model):
    """
    Purchase order header.

    Status:
        draft -> approved -> partially_received -> received
        draft | approved -> cancelled

    partially_received / received are derived from line quantity_received
    when receipts are posted (never set by hand).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    STATUS_DRAFT = "draft"
    STATUS_APPROVED = "approved"
    STATUS_PARTIALLY_RECEIVED = "partially_received"
    STATUS_RECEIVED = "received"
    STATUS_CANCELLED = "cancelled"

    STATUSES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_PARTIALLY_RECEIVED, "Partially received"),
        (STATUS_RECEIVED, "Received"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    RECEIVABLE_STATUSES = (STATUS_APPROVED, STATUS_PARTIALLY_RECEIVED)

    company = models.ForeignKey(
        "organizations.Company",
        on_delete=models.CASCADE,
        related_name="purchase_orders",
    )
    business_unit = models.ForeignKey(
        "organizations.BusinessUnit",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchase_orders",
    )

    order_code = models.CharField(max_length=32)
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        related_name="purchase_orders",
    )
    order_date = models.DateField(default=timezone.localdate)
    expected_delivery_date = models.DateField(null=True, blank=True)

    status = models.CharField(max_length=20, choices=STATUSES, default=STATUS_DRAFT)

    total_amount = models.DecimalField(
        max_digits=18, decimal_places=4, default=Decimal("0")
    )
    notes = models.TextField(blank=True, default="")

    approved_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    approved_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchase_orders_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "order_code"],
                name="uniq_purchase_order_company_code",
            ),
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=Decimal("0")),
                name="purchase_order_total_nonnegative",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "status"], name="po_company_status_idx"),
            models.Index(fields=["supplier", "order_date"], name="po_supplier_date_idx"),
        ]

    def clean(self):
        if (
            self.expected_delivery_date
            and self.order_date
            and self.expected_delivery_date < self.order_date
        ):
            raise ValidationError(
                {"expected_delivery_date": "expected_delivery_date cannot be before order_date"}
            )
        if self.supplier_id and self.company_id and self.supplier.company_id != self.company_id:
            raise ValidationError({"supplier": "Supplier belongs to another company"})

    def save(self, *args, **kwargs):
        self.full_clean(validate_constraints=False)
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.order_code} ({self.status})"


class PurchaseOrderItem(models.Model):
    """
    Ordered line. quantity and quantity_received are in the line's own
    package / UOM; rate is per base unit.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    purchase_order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.CASCADE,
        related_name="items",
    )
    line_no = models.PositiveIntegerField(default=1)

    item = models.ForeignKey(
        "inventory.Item",
        on_delete=models.PROTECT,
        related_name="purchase_order_items",
    )
    package = models.ForeignKey(
        "inventory.ItemPackage",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    uom = models.ForeignKey(
        "inventory.UnitOfMeasure",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )

    quantity = models.DecimalField(max_digits=18, decimal_places=4)
    rate = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))
    line_total = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))
    quantity_received = models.DecimalField(
        max_digits=18, decimal_places=4, default=Decimal("0")
    )
    notes = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["line_no"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="po_item_quantity_gt_zero",
            ),
            models.CheckConstraint(
                condition=models.Q(rate__gte=0),
                name="po_item_rate_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity_received__lte=models.F("quantity")),
                name="po_item_received_lte_quantity",
            ),
        ]

    @property
    def conversion_factor(self) -> Decimal:
        if self.package_id:
            return Decimal(self.package.qty_per_pack)
        return Decimal("1")

    @property
    def quantity_outstanding(self) -> Decimal:
        return max(_qty(self.quantity) - _qty(self.quantity_received), Decimal("0"))

    def __str__(self):
        return f"{self.item_id} x {self.quantity}"


class PurchaseReceipt(models.Model):
    """
    Goods received note (GRN).

    Receiving is performed by purchases.services.receiving_service:
    - posts an 'in' stock transaction through the stock engine
    - rolls quantities up to the purchase order
    - posts AP best-effort after the stock work commits
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    STATUS_DRAFT = "draft"
    STATUS_RECEIVED = "received"
    STATUS_CANCELLED = "cancelled"

    STATUSES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_RECEIVED, "Received"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    company = models.ForeignKey(
        "organizations.Company",
        on_delete=models.CASCADE,
        related_name="purchase_receipts",
    )
    business_unit = models.ForeignKey(
        "organizations.BusinessUnit",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchase_receipts",
    )

    receipt_code = models.CharField(max_length=32)
    purchase_order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="receipts",
    )
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        related_name="receipts",
    )
    warehouse = models.ForeignKey(
        "inventory.Warehouse",
        on_delete=models.PROTECT,
        related_name="purchase_receipts",
    )

    receipt_date = models.DateField(default=timezone.localdate)
    supplier_invoice_number = models.CharField(max_length=64, blank=True, default="")
    supplier_invoice_date = models.DateField(null=True, blank=True)

    status = models.CharField(max_length=20, choices=STATUSES, default=STATUS_DRAFT)
    notes = models.TextField(blank=True, default="")

    total_amount = models.DecimalField(
        max_digits=18, decimal_places=4, default=Decimal("0")
    )

    stock_transaction = models.ForeignKey(
        "inventory.StockTransaction",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    journal_entry = models.ForeignKey(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )

    received_at = models.DateTimeField(null=True, blank=True)
    received_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchase_receipts_received",
    )
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchase_receipts_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "receipt_code"],
                name="uniq_purchase_receipt_company_code",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "status"], name="grn_company_status_idx"),
            models.Index(fields=["warehouse", "receipt_date"], name="grn_wh_date_idx"),
        ]

    def clean(self):
        if self.status == self.STATUS_RECEIVED and not self.received_at:
            raise ValidationError(
                {"received_at": "received_at is required when status is received"}
            )
        if self.status == self.STATUS_CANCELLED and self.received_at:
            raise ValidationError(
                {"received_at": "received_at must be empty when status is cancelled"}
            )
        if self.purchase_order_id and self.purchase_order.supplier_id != self.supplier_id:
            raise ValidationError({"supplier": "Supplier does not match the purchase order"})

    def save(self, *args, **kwargs):
        if self.supplier_invoice_number is not None:
            self.supplier_invoice_number = self.supplier_invoice_number.strip()
        self.full_clean(validate_constraints=False)
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.receipt_code} ({self.status})"


class PurchaseReceiptItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    receipt = models.ForeignKey(
        PurchaseReceipt,
        on_delete=models.CASCADE,
        related_name="items",
    )
    line_no = models.PositiveIntegerField(default=1)

    purchase_order_item = models.ForeignKey(
        PurchaseOrderItem,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="receipt_items",
    )
    item = models.ForeignKey(
        "inventory.Item",
        on_delete=models.PROTECT,
        related_name="purchase_receipt_items",
    )
    package = models.ForeignKey(
        "inventory.ItemPackage",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )
    uom = models.ForeignKey(
        "inventory.UnitOfMeasure",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )

    quantity_ordered = models.DecimalField(
        max_digits=18, decimal_places=4, default=Decimal("0")
    )
    quantity_received = models.DecimalField(max_digits=18, decimal_places=4)
    rate = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))
    notes = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["line_no"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity_received__gt=0),
                name="grn_item_quantity_gt_zero",
            ),
            models.CheckConstraint(
                condition=models.Q(rate__gte=0),
                name="grn_item_rate_nonnegative",
            ),
        ]

    @property
    def conversion_factor(self) -> Decimal:
        if self.package_id:
            return Decimal(self.package.qty_per_pack)
        return Decimal("1")

    @property
    def line_total(self) -> Decimal:
        # rate is per base unit
        return _qty(_qty(self.quantity_received) * self.conversion_factor * _qty(self.rate))

    def __str__(self):
        return f"{self.item_id} x {self.quantity_received}"

# inventory/models/item.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class UnitOfMeasure(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        "organizations.Company",
        on_delete=models.CASCADE,
        related_name="units_of_measure",
    )

    code = models.CharField(max_length=20)
    name = models.CharField(max_length=100)
    symbol = models.CharField(max_length=20, blank=True, default="")

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["code"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"],
                name="uniq_uom_company_code",
            ),
        ]

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        self.name = (self.name or "").strip()
        return super().save(*args, **kwargs)

    def __str__(self):
        return self.symbol or self.code


class Item(models.Model):
    """
    Stockable (or non-stock) item master.

    STOCK MODEL (IMPORTANT):
    - Item itself does NOT store stock
    - Balances live in ItemWarehouse (one live row per item + warehouse)
    - Every balance change is explained by a StockTransactionItem ledger row

    standard_cost is the valuation fallback when no ledger rate exists yet.
    """

    TYPE_STOCK = "stock"
    TYPE_NON_STOCK = "non_stock"

    ITEM_TYPES = [
        (TYPE_STOCK, "Stock Item"),
        (TYPE_NON_STOCK, "Non-stock Item"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        "organizations.Company",
        on_delete=models.CASCADE,
        related_name="items",
    )

    item_code = models.CharField(max_length=64)
    item_name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True, default="")

    item_type = models.CharField(max_length=20, choices=ITEM_TYPES, default=TYPE_STOCK)

    uom = models.ForeignKey(
        UnitOfMeasure,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="items",
    )

    standard_cost = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        null=True,
        blank=True,
        help_text="Fallback valuation rate when the ledger has no rate yet.",
    )
    selling_price = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    is_active = models.BooleanField(default=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="items_created",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["item_code"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "item_code"],
                condition=Q(deleted_at__isnull=True),
                name="uniq_item_company_code_live",
            ),
            models.CheckConstraint(
                condition=Q(selling_price__gte=Decimal("0.00")),
                name="item_selling_price_nonnegative",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "item_code"], name="inv_item_company_code_idx"),
        ]

    def clean(self):
        self.item_code = (self.item_code or "").strip().upper()
        self.item_name = (self.item_name or "").strip()
        if not self.item_code:
            raise ValidationError({"item_code": "item_code is required"})
        if not self.item_name:
            raise ValidationError({"item_name": "item_name is required"})
        if self.standard_cost is not None and self.standard_cost < 0:
            raise ValidationError({"standard_cost": "standard_cost cannot be negative"})

    def save(self, *args, **kwargs):
        self.full_clean(validate_constraints=False)
        return super().save(*args, **kwargs)

    @property
    def is_stock_item(self) -> bool:
        return self.item_type == self.TYPE_STOCK

    def __str__(self):
        return f"{self.item_code} - {self.item_name}"


class ItemPackage(models.Model):
    """
    A packaging unit for an item (e.g. box of 12).

    qty_per_pack converts a package quantity into base units.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    item = models.ForeignKey(Item, on_delete=models.CASCADE, related_name="packages")

    pack_name = models.CharField(max_length=100)
    qty_per_pack = models.DecimalField(
        max_digits=14, decimal_places=4, default=Decimal("1")
    )
    is_base = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["qty_per_pack"]
        constraints = [
            models.CheckConstraint(
                condition=Q(qty_per_pack__gt=0),
                name="item_package_qty_per_pack_gt_zero",
            ),
            models.UniqueConstraint(
                fields=["item", "pack_name"],
                name="uniq_item_package_name",
            ),
        ]

    def __str__(self):
        return f"{self.pack_name} ({self.qty_per_pack})"

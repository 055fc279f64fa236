# inventory/models/warehouse.py

import uuid

from django.core.exceptions import ValidationError
from django.db import models

DEFAULT_LOCATION_CODE = "MAIN"


class Warehouse(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    company = models.ForeignKey(
        "organizations.Company",
        on_delete=models.CASCADE,
        related_name="warehouses",
    )
    business_unit = models.ForeignKey(
        "organizations.BusinessUnit",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="warehouses",
    )

    warehouse_code = models.CharField(max_length=50)
    warehouse_name = models.CharField(max_length=255)
    address = models.TextField(blank=True, default="")

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["warehouse_code"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "warehouse_code"],
                name="uniq_warehouse_company_code",
            ),
        ]

    def clean(self):
        self.warehouse_code = (self.warehouse_code or "").strip().upper()
        self.warehouse_name = (self.warehouse_name or "").strip()
        if not self.warehouse_code:
            raise ValidationError({"warehouse_code": "warehouse_code is required"})
        if not self.warehouse_name:
            raise ValidationError({"warehouse_name": "warehouse_name is required"})

    def save(self, *args, **kwargs):
        self.full_clean(validate_constraints=False)
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.warehouse_code} - {self.warehouse_name}"


class WarehouseLocation(models.Model):
    """
    A bin / shelf inside a warehouse.

    The MAIN location is created on demand the first time stock lands in
    a warehouse without an explicit location.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    warehouse = models.ForeignKey(
        Warehouse,
        on_delete=models.CASCADE,
        related_name="locations",
    )

    code = models.CharField(max_length=50)
    name = models.CharField(max_length=255)

    is_pickable = models.BooleanField(default=True)
    is_storable = models.BooleanField(default=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["code"]
        constraints = [
            models.UniqueConstraint(
                fields=["warehouse", "code"],
                name="uniq_location_warehouse_code",
            ),
        ]

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        self.name = (self.name or "").strip() or self.code
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.warehouse.warehouse_code}/{self.code}"

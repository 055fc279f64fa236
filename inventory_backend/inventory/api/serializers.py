# inventory/api/serializers.py

"""
INVENTORY SERIALIZERS

Read serializers are plain ModelSerializers (snake_case, as stored).

Write payloads for stock transactions follow the client contract
(camelCase: transactionType, warehouseId, items[].itemId, ...). They only
validate shape; ownership and business rules are enforced by the engine.
"""

from __future__ import annotations

from rest_framework import serializers

from inventory.models import (
    Item,
    ItemLocation,
    ItemPackage,
    ItemWarehouse,
    StockTransaction,
    StockTransactionItem,
    StockTransactionLine,
    UnitOfMeasure,
    Warehouse,
    WarehouseLocation,
)
from inventory.services.delta import TRANSACTION_TYPES


# ---------------- MASTER DATA ----------------
class UnitOfMeasureSerializer(serializers.ModelSerializer):
    class Meta:
        model = UnitOfMeasure
        fields = ["id", "code", "name", "symbol", "is_active", "created_at"]
        read_only_fields = ["id", "created_at"]


class ItemPackageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ItemPackage
        fields = ["id", "pack_name", "qty_per_pack", "is_base", "created_at"]
        read_only_fields = ["id", "created_at"]

    def validate_qty_per_pack(self, value):
        if value <= 0:
            raise serializers.ValidationError("qty_per_pack must be greater than zero")
        return value


class ItemSerializer(serializers.ModelSerializer):
    uom_id = serializers.PrimaryKeyRelatedField(
        source="uom",
        queryset=UnitOfMeasure.objects.all(),
        required=False,
        allow_null=True,
    )
    uom_code = serializers.CharField(source="uom.code", read_only=True, default=None)
    packages = ItemPackageSerializer(many=True, read_only=True)

    class Meta:
        model = Item
        fields = [
            "id",
            "item_code",
            "item_name",
            "description",
            "item_type",
            "uom_id",
            "uom_code",
            "standard_cost",
            "selling_price",
            "is_active",
            "packages",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "packages", "created_at", "updated_at"]

    def validate_uom_id(self, uom):
        company_id = self.context.get("company_id")
        if uom is not None and company_id and uom.company_id != company_id:
            raise serializers.ValidationError("Unit of measure not found")
        return uom


class WarehouseLocationSerializer(serializers.ModelSerializer):
    class Meta:
        model = WarehouseLocation
        fields = ["id", "code", "name", "is_pickable", "is_storable", "is_active", "created_at"]
        read_only_fields = ["id", "created_at"]


class WarehouseSerializer(serializers.ModelSerializer):
    locations = WarehouseLocationSerializer(many=True, read_only=True)

    class Meta:
        model = Warehouse
        fields = [
            "id",
            "warehouse_code",
            "warehouse_name",
            "address",
            "business_unit",
            "is_active",
            "locations",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "business_unit", "locations", "created_at", "updated_at"]


# ---------------- BALANCES ----------------
class ItemWarehouseSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source="item.item_code", read_only=True)
    item_name = serializers.CharField(source="item.item_name", read_only=True)
    warehouse_code = serializers.CharField(source="warehouse.warehouse_code", read_only=True)
    default_location_code = serializers.CharField(
        source="default_location.code", read_only=True, default=None
    )

    class Meta:
        model = ItemWarehouse
        fields = [
            "id",
            "item",
            "item_code",
            "item_name",
            "warehouse",
            "warehouse_code",
            "current_stock",
            "reserved_stock",
            "available_stock",
            "default_location",
            "default_location_code",
            "updated_at",
        ]
        read_only_fields = fields


class ItemLocationSerializer(serializers.ModelSerializer):
    location_code = serializers.CharField(source="location.code", read_only=True)

    class Meta:
        model = ItemLocation
        fields = ["id", "item", "warehouse", "location", "location_code", "qty_on_hand", "qty_reserved"]
        read_only_fields = fields


class BalanceLookupQuerySerializer(serializers.Serializer):
    itemId = serializers.UUIDField()
    warehouseId = serializers.UUIDField()


class BalanceLookupSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    warehouse_id = serializers.UUIDField()
    current_stock = serializers.DecimalField(max_digits=18, decimal_places=4)


# ---------------- LEDGER ----------------
class StockLedgerEntrySerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source="item.item_code", read_only=True)
    warehouse_code = serializers.CharField(source="warehouse.warehouse_code", read_only=True)
    transaction_code = serializers.CharField(source="transaction.transaction_code", read_only=True)
    location_code = serializers.CharField(source="location.code", read_only=True, default=None)

    class Meta:
        model = StockTransactionItem
        fields = [
            "id",
            "transaction",
            "transaction_code",
            "line",
            "item",
            "item_code",
            "warehouse",
            "warehouse_code",
            "location",
            "location_code",
            "uom",
            "package",
            "input_qty",
            "conversion_factor",
            "quantity",
            "unit_cost",
            "total_cost",
            "qty_before",
            "qty_after",
            "valuation_rate",
            "stock_value_before",
            "stock_value_after",
            "posting_date",
            "posting_time",
            "batch_no",
            "notes",
            "created_by",
            "created_at",
        ]
        read_only_fields = fields


# ---------------- TRANSACTIONS (READ) ----------------
class StockTransactionLineSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source="item.item_code", read_only=True)
    item_name = serializers.CharField(source="item.item_name", read_only=True)

    class Meta:
        model = StockTransactionLine
        fields = [
            "id",
            "line_no",
            "item",
            "item_code",
            "item_name",
            "uom",
            "package",
            "input_qty",
            "unit_cost",
            "batch_no",
            "notes",
        ]
        read_only_fields = fields


class StockTransactionSerializer(serializers.ModelSerializer):
    warehouse_code = serializers.CharField(source="warehouse.warehouse_code", read_only=True)
    to_warehouse_code = serializers.CharField(
        source="to_warehouse.warehouse_code", read_only=True, default=None
    )

    class Meta:
        model = StockTransaction
        fields = [
            "id",
            "transaction_code",
            "transaction_type",
            "transaction_date",
            "warehouse",
            "warehouse_code",
            "to_warehouse",
            "to_warehouse_code",
            "reference_type",
            "reference_id",
            "status",
            "notes",
            "posted_at",
            "created_at",
        ]
        read_only_fields = fields


class StockTransactionDetailSerializer(StockTransactionSerializer):
    lines = StockTransactionLineSerializer(many=True, read_only=True)
    ledger_entries = StockLedgerEntrySerializer(many=True, read_only=True)
    warehouse_detail = WarehouseSerializer(source="warehouse", read_only=True)
    to_warehouse_detail = WarehouseSerializer(source="to_warehouse", read_only=True)
    created_by_email = serializers.CharField(source="created_by.email", read_only=True, default=None)
    posted_by_email = serializers.CharField(source="posted_by.email", read_only=True, default=None)

    class Meta(StockTransactionSerializer.Meta):
        fields = StockTransactionSerializer.Meta.fields + [
            "from_location",
            "to_location",
            "lines",
            "ledger_entries",
            "warehouse_detail",
            "to_warehouse_detail",
            "created_by_email",
            "posted_by_email",
        ]
        read_only_fields = fields


# ---------------- TRANSACTIONS (WRITE) ----------------
class StockTransactionLineInputSerializer(serializers.Serializer):
    itemId = serializers.UUIDField()
    quantity = serializers.DecimalField(max_digits=18, decimal_places=4)
    uomId = serializers.UUIDField(required=False, allow_null=True)
    packageId = serializers.UUIDField(required=False, allow_null=True)
    unitCost = serializers.DecimalField(
        max_digits=14, decimal_places=4, required=False, allow_null=True
    )
    batchNo = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be greater than zero")
        return value

    def validate_unitCost(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("unitCost cannot be negative")
        return value


class StockTransactionCreateSerializer(serializers.Serializer):
    STATUS_CHOICES = (StockTransaction.STATUS_POSTED, StockTransaction.STATUS_DRAFT)

    transactionType = serializers.ChoiceField(choices=TRANSACTION_TYPES)
    warehouseId = serializers.UUIDField()
    toWarehouseId = serializers.UUIDField(required=False, allow_null=True)
    fromLocationId = serializers.UUIDField(required=False, allow_null=True)
    toLocationId = serializers.UUIDField(required=False, allow_null=True)
    transactionDate = serializers.DateField(required=False, allow_null=True)
    status = serializers.ChoiceField(
        choices=STATUS_CHOICES, required=False, default=StockTransaction.STATUS_POSTED
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    referenceType = serializers.CharField(
        required=False, allow_blank=True, default="", max_length=40
    )
    referenceId = serializers.UUIDField(required=False, allow_null=True)
    items = StockTransactionLineInputSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required")
        return value

    def validate(self, attrs):
        if attrs["transactionType"] == StockTransaction.TYPE_TRANSFER and not attrs.get(
            "toWarehouseId"
        ):
            raise serializers.ValidationError(
                {"toWarehouseId": "Destination warehouse is required for transfers"}
            )
        return attrs


class StockTransactionCreatedSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    transactionCode = serializers.CharField()

# adjustments/api/serializers.py

from __future__ import annotations

from rest_framework import serializers

from adjustments.models import StockAdjustment, StockAdjustmentItem


class StockAdjustmentItemSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source="item.item_code", read_only=True)
    item_name = serializers.CharField(source="item.item_name", read_only=True)
    uom_code = serializers.CharField(source="uom.code", read_only=True, default=None)

    class Meta:
        model = StockAdjustmentItem
        fields = [
            "id",
            "line_no",
            "item",
            "item_code",
            "item_name",
            "uom",
            "uom_code",
            "package",
            "input_qty",
            "conversion_factor",
            "current_qty",
            "adjusted_qty",
            "difference",
            "unit_cost",
            "total_cost",
            "reason",
        ]
        read_only_fields = fields


class StockAdjustmentSerializer(serializers.ModelSerializer):
    warehouse_code = serializers.CharField(source="warehouse.warehouse_code", read_only=True)
    location_code = serializers.CharField(source="location.code", read_only=True, default=None)

    class Meta:
        model = StockAdjustment
        fields = [
            "id",
            "adjustment_code",
            "adjustment_type",
            "adjustment_date",
            "warehouse",
            "warehouse_code",
            "location",
            "location_code",
            "status",
            "reason",
            "notes",
            "total_value",
            "stock_transaction_in",
            "stock_transaction_out",
            "approved_at",
            "posted_at",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class StockAdjustmentDetailSerializer(StockAdjustmentSerializer):
    items = StockAdjustmentItemSerializer(many=True, read_only=True)
    created_by_email = serializers.CharField(source="created_by.email", read_only=True, default=None)
    approved_by_email = serializers.CharField(source="approved_by.email", read_only=True, default=None)
    posted_by_email = serializers.CharField(source="posted_by.email", read_only=True, default=None)

    class Meta(StockAdjustmentSerializer.Meta):
        fields = StockAdjustmentSerializer.Meta.fields + [
            "items",
            "created_by_email",
            "approved_by_email",
            "posted_by_email",
        ]
        read_only_fields = fields


# ---------------- WRITE (camelCase client contract) ----------------
class StockAdjustmentLineInputSerializer(serializers.Serializer):
    itemId = serializers.UUIDField()
    adjustedQty = serializers.DecimalField(max_digits=18, decimal_places=4)
    packageId = serializers.UUIDField(required=False, allow_null=True)
    uomId = serializers.UUIDField(required=False, allow_null=True)
    unitCost = serializers.DecimalField(
        max_digits=14, decimal_places=4, required=False, allow_null=True
    )
    reason = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_adjustedQty(self, value):
        if value < 0:
            raise serializers.ValidationError("Adjusted quantity cannot be negative")
        return value

    def validate_unitCost(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("unitCost cannot be negative")
        return value


class StockAdjustmentCreateSerializer(serializers.Serializer):
    warehouseId = serializers.UUIDField(required=False)
    adjustmentType = serializers.ChoiceField(
        choices=StockAdjustment.ADJUSTMENT_TYPES, required=False
    )
    adjustmentDate = serializers.DateField(required=False)
    reason = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    locationId = serializers.UUIDField(required=False, allow_null=True)
    items = StockAdjustmentLineInputSerializer(many=True, required=False)

    REQUIRED = ("warehouseId", "adjustmentType", "adjustmentDate", "reason")

    def validate(self, attrs):
        if any(not attrs.get(name) for name in self.REQUIRED):
            raise serializers.ValidationError(
                "Missing required fields: warehouseId, adjustmentType, adjustmentDate, reason"
            )
        if not attrs.get("items"):
            raise serializers.ValidationError("At least one item is required")
        return attrs


class StockAdjustmentUpdateSerializer(serializers.Serializer):
    adjustmentType = serializers.ChoiceField(
        choices=StockAdjustment.ADJUSTMENT_TYPES, required=False
    )
    adjustmentDate = serializers.DateField(required=False)
    reason = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    locationId = serializers.UUIDField(required=False, allow_null=True)
    items = StockAdjustmentLineInputSerializer(many=True, required=False)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required")
        return value

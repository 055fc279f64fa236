# picking/api/serializers.py

from rest_framework import serializers

from picking.models import PickList, PickListItem


class PickListItemSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source="item.item_code", read_only=True)
    item_name = serializers.CharField(source="item.item_name", read_only=True)
    location_code = serializers.CharField(source="location.code", read_only=True, default=None)

    class Meta:
        model = PickListItem
        fields = [
            "id",
            "line_no",
            "item",
            "item_code",
            "item_name",
            "uom",
            "location",
            "location_code",
            "allocated_qty",
            "picked_qty",
            "short_qty",
        ]
        read_only_fields = fields


class PickListSerializer(serializers.ModelSerializer):
    warehouse_code = serializers.CharField(source="warehouse.warehouse_code", read_only=True)

    class Meta:
        model = PickList
        fields = [
            "id",
            "pick_list_code",
            "warehouse",
            "warehouse_code",
            "status",
            "notes",
            "cancel_reason",
            "started_at",
            "completed_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PickListDetailSerializer(PickListSerializer):
    items = PickListItemSerializer(many=True, read_only=True)
    assignees = serializers.SerializerMethodField()

    class Meta(PickListSerializer.Meta):
        fields = PickListSerializer.Meta.fields + ["assignees", "items"]
        read_only_fields = fields

    def get_assignees(self, obj):
        return [{"id": str(u.id), "email": u.email} for u in obj.assignees.all()]


# ---------------- INPUT ----------------
class PickLineInputSerializer(serializers.Serializer):
    itemId = serializers.UUIDField()
    allocatedQty = serializers.DecimalField(max_digits=18, decimal_places=4)
    uomId = serializers.UUIDField(required=False, allow_null=True)
    locationId = serializers.UUIDField(required=False, allow_null=True)

    def validate_allocatedQty(self, value):
        if value <= 0:
            raise serializers.ValidationError("Allocated quantity must be greater than zero")
        return value


class PickListCreateSerializer(serializers.Serializer):
    warehouseId = serializers.UUIDField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    assigneeIds = serializers.ListField(child=serializers.UUIDField(), required=False, default=list)
    items = PickLineInputSerializer(many=True, required=False)

    def validate(self, attrs):
        if not attrs.get("items"):
            raise serializers.ValidationError("At least one item is required")
        return attrs


class PickedQtyInputSerializer(serializers.Serializer):
    pickedQty = serializers.DecimalField(max_digits=18, decimal_places=4)


class PickListStatusInputSerializer(serializers.Serializer):
    status = serializers.CharField(required=False, allow_blank=True)
    reason = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if not attrs.get("status"):
            raise serializers.ValidationError("status is required")
        return attrs

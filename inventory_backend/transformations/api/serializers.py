# transformations/api/serializers.py

from __future__ import annotations

from rest_framework import serializers

from transformations.models import (
    TransformationOrder,
    TransformationOrderInput,
    TransformationOrderOutput,
    TransformationTemplate,
    TransformationTemplateInput,
    TransformationTemplateOutput,
)

LINE_FIELDS = ["id", "sequence", "item", "item_code", "item_name", "uom", "uom_code"]


class _LineSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source="item.item_code", read_only=True)
    item_name = serializers.CharField(source="item.item_name", read_only=True)
    uom_code = serializers.CharField(source="uom.code", read_only=True, default=None)


class TemplateInputSerializer(_LineSerializer):
    class Meta:
        model = TransformationTemplateInput
        fields = LINE_FIELDS + ["quantity", "notes"]
        read_only_fields = fields


class TemplateOutputSerializer(_LineSerializer):
    class Meta:
        model = TransformationTemplateOutput
        fields = LINE_FIELDS + ["quantity", "is_scrap", "notes"]
        read_only_fields = fields


class TransformationTemplateSerializer(serializers.ModelSerializer):
    is_locked = serializers.BooleanField(read_only=True)

    class Meta:
        model = TransformationTemplate
        fields = [
            "id",
            "template_code",
            "template_name",
            "description",
            "is_active",
            "usage_count",
            "is_locked",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class TransformationTemplateDetailSerializer(TransformationTemplateSerializer):
    inputs = TemplateInputSerializer(many=True, read_only=True)
    outputs = TemplateOutputSerializer(many=True, read_only=True)

    class Meta(TransformationTemplateSerializer.Meta):
        fields = TransformationTemplateSerializer.Meta.fields + ["inputs", "outputs"]
        read_only_fields = fields


class OrderInputSerializer(_LineSerializer):
    class Meta:
        model = TransformationOrderInput
        fields = LINE_FIELDS + [
            "planned_quantity",
            "consumed_quantity",
            "unit_cost",
            "total_cost",
        ]
        read_only_fields = fields


class OrderOutputSerializer(_LineSerializer):
    class Meta:
        model = TransformationOrderOutput
        fields = LINE_FIELDS + [
            "is_scrap",
            "planned_quantity",
            "produced_quantity",
            "wasted_quantity",
            "waste_reason",
            "allocated_cost_per_unit",
            "total_allocated_cost",
        ]
        read_only_fields = fields


class TransformationOrderSerializer(serializers.ModelSerializer):
    template_code = serializers.CharField(source="template.template_code", read_only=True)
    warehouse_code = serializers.CharField(source="warehouse.warehouse_code", read_only=True)

    class Meta:
        model = TransformationOrder
        fields = [
            "id",
            "order_code",
            "template",
            "template_code",
            "warehouse",
            "warehouse_code",
            "status",
            "planned_quantity",
            "actual_quantity",
            "total_input_cost",
            "total_output_cost",
            "cost_variance",
            "order_date",
            "planned_date",
            "execution_date",
            "completion_date",
            "notes",
            "consume_transaction",
            "produce_transaction",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class TransformationOrderDetailSerializer(TransformationOrderSerializer):
    inputs = OrderInputSerializer(many=True, read_only=True)
    outputs = OrderOutputSerializer(many=True, read_only=True)

    class Meta(TransformationOrderSerializer.Meta):
        fields = TransformationOrderSerializer.Meta.fields + ["inputs", "outputs"]
        read_only_fields = fields


# ---------------- WRITE (camelCase client contract) ----------------
class RecipeLineInputSerializer(serializers.Serializer):
    itemId = serializers.UUIDField()
    quantity = serializers.DecimalField(max_digits=18, decimal_places=4)
    uomId = serializers.UUIDField(required=False, allow_null=True)
    isScrap = serializers.BooleanField(required=False, default=False)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be greater than zero")
        return value


class TemplateCreateSerializer(serializers.Serializer):
    templateCode = serializers.CharField()
    templateName = serializers.CharField()
    description = serializers.CharField(required=False, allow_blank=True, default="")
    isActive = serializers.BooleanField(required=False, default=True)
    inputs = RecipeLineInputSerializer(many=True)
    outputs = RecipeLineInputSerializer(many=True)

    def validate(self, attrs):
        if not attrs.get("inputs"):
            raise serializers.ValidationError("Template has no inputs")
        if not attrs.get("outputs"):
            raise serializers.ValidationError("Template has no outputs")
        return attrs


class TemplateUpdateSerializer(serializers.Serializer):
    templateName = serializers.CharField(required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    isActive = serializers.BooleanField(required=False)
    inputs = RecipeLineInputSerializer(many=True, required=False)
    outputs = RecipeLineInputSerializer(many=True, required=False)


class OrderCreateSerializer(serializers.Serializer):
    templateId = serializers.UUIDField()
    warehouseId = serializers.UUIDField()
    plannedQuantity = serializers.DecimalField(max_digits=18, decimal_places=4)
    orderDate = serializers.DateField(required=False)
    plannedDate = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class OrderUpdateSerializer(serializers.Serializer):
    plannedQuantity = serializers.DecimalField(max_digits=18, decimal_places=4, required=False)
    plannedDate = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class OrderStatusInputSerializer(serializers.Serializer):
    status = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs.get("status"):
            raise serializers.ValidationError("status is required")
        return attrs


class ConsumedInputSerializer(serializers.Serializer):
    inputLineId = serializers.UUIDField()
    consumedQuantity = serializers.DecimalField(max_digits=18, decimal_places=4)
    packageId = serializers.UUIDField(required=False, allow_null=True)


class ProducedOutputSerializer(serializers.Serializer):
    outputLineId = serializers.UUIDField()
    producedQuantity = serializers.DecimalField(max_digits=18, decimal_places=4)
    wastedQuantity = serializers.DecimalField(
        max_digits=18, decimal_places=4, required=False, default=0
    )
    wasteReason = serializers.CharField(required=False, allow_blank=True, default="")
    packageId = serializers.UUIDField(required=False, allow_null=True)


class ExecuteInputSerializer(serializers.Serializer):
    inputs = ConsumedInputSerializer(many=True, required=False)
    outputs = ProducedOutputSerializer(many=True, required=False)
    executionDate = serializers.DateField(required=False)

# pos/api/serializers.py

from rest_framework import serializers

from pos.models import PosTransaction, PosTransactionItem, PosTransactionPayment


class PosTransactionItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = PosTransactionItem
        fields = [
            "id",
            "line_no",
            "item",
            "item_code",
            "item_name",
            "package",
            "quantity",
            "unit_price",
            "discount",
            "line_total",
        ]
        read_only_fields = fields


class PosTransactionPaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = PosTransactionPayment
        fields = ["id", "method", "amount", "reference"]
        read_only_fields = fields


class PosTransactionSerializer(serializers.ModelSerializer):
    warehouse_code = serializers.CharField(source="warehouse.warehouse_code", read_only=True)
    item_count = serializers.IntegerField(source="items.count", read_only=True)

    class Meta:
        model = PosTransaction
        fields = [
            "id",
            "transaction_code",
            "transaction_date",
            "warehouse",
            "warehouse_code",
            "customer_name",
            "subtotal",
            "total_discount",
            "tax_rate",
            "total_tax",
            "total_amount",
            "amount_paid",
            "change_amount",
            "status",
            "cashier",
            "cashier_name",
            "item_count",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class PosTransactionDetailSerializer(PosTransactionSerializer):
    items = PosTransactionItemSerializer(many=True, read_only=True)
    payments = PosTransactionPaymentSerializer(many=True, read_only=True)

    class Meta(PosTransactionSerializer.Meta):
        fields = PosTransactionSerializer.Meta.fields + [
            "total_cost",
            "stock_transaction",
            "void_stock_transaction",
            "voided_at",
            "items",
            "payments",
        ]
        read_only_fields = fields


# ---------------- INPUT ----------------
class PosLineInputSerializer(serializers.Serializer):
    itemId = serializers.UUIDField()
    quantity = serializers.DecimalField(max_digits=18, decimal_places=4)
    unitPrice = serializers.DecimalField(max_digits=18, decimal_places=4, min_value=0)
    discount = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False, default=0
    )
    packageId = serializers.UUIDField(required=False, allow_null=True)

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be greater than zero")
        return value


class PosPaymentInputSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=[c[0] for c in PosTransactionPayment.METHOD_CHOICES])
    amount = serializers.DecimalField(max_digits=18, decimal_places=4)
    reference = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Payment amount must be greater than zero")
        return value


class PosSaleCreateSerializer(serializers.Serializer):
    warehouseId = serializers.UUIDField(required=False, allow_null=True)
    customerName = serializers.CharField(required=False, allow_blank=True, default="")
    taxRate = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False, default=0
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    items = PosLineInputSerializer(many=True, required=False)
    payments = PosPaymentInputSerializer(many=True, required=False)

    def validate(self, attrs):
        if not attrs.get("items"):
            raise serializers.ValidationError("Items are required")
        if not attrs.get("payments"):
            raise serializers.ValidationError("Payments are required")
        return attrs

# purchases/api/serializers.py

from rest_framework import serializers

from purchases.models import (
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseReceipt,
    PurchaseReceiptItem,
    Supplier,
)


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = [
            "id",
            "supplier_code",
            "name",
            "phone",
            "email",
            "address",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ("id", "created_at", "updated_at")


# ---------------- PURCHASE ORDERS ----------------
class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source="item.item_code", read_only=True)
    item_name = serializers.CharField(source="item.item_name", read_only=True)
    quantity_outstanding = serializers.DecimalField(
        max_digits=18, decimal_places=4, read_only=True
    )

    class Meta:
        model = PurchaseOrderItem
        fields = [
            "id",
            "line_no",
            "item",
            "item_code",
            "item_name",
            "package",
            "uom",
            "quantity",
            "rate",
            "line_total",
            "quantity_received",
            "quantity_outstanding",
            "notes",
        ]
        read_only_fields = fields


class PurchaseOrderSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source="supplier.name", read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            "id",
            "order_code",
            "supplier",
            "supplier_name",
            "order_date",
            "expected_delivery_date",
            "status",
            "total_amount",
            "notes",
            "approved_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PurchaseOrderDetailSerializer(PurchaseOrderSerializer):
    items = PurchaseOrderItemSerializer(many=True, read_only=True)

    class Meta(PurchaseOrderSerializer.Meta):
        fields = PurchaseOrderSerializer.Meta.fields + ["items"]
        read_only_fields = fields


class PurchaseOrderLineInputSerializer(serializers.Serializer):
    itemId = serializers.UUIDField()
    quantity = serializers.DecimalField(max_digits=18, decimal_places=4)
    rate = serializers.DecimalField(max_digits=18, decimal_places=4, required=False, default=0)
    packageId = serializers.UUIDField(required=False, allow_null=True)
    uomId = serializers.UUIDField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be greater than zero")
        return value

    def validate_rate(self, value):
        if value < 0:
            raise serializers.ValidationError("rate cannot be negative")
        return value


class PurchaseOrderCreateSerializer(serializers.Serializer):
    supplierId = serializers.UUIDField()
    orderDate = serializers.DateField(required=False, allow_null=True)
    expectedDeliveryDate = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    items = PurchaseOrderLineInputSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required")
        return value


# ---------------- PURCHASE RECEIPTS ----------------
class PurchaseReceiptItemSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source="item.item_code", read_only=True)
    item_name = serializers.CharField(source="item.item_name", read_only=True)
    package_name = serializers.CharField(source="package.pack_name", read_only=True, default=None)
    line_total = serializers.DecimalField(max_digits=18, decimal_places=4, read_only=True)

    class Meta:
        model = PurchaseReceiptItem
        fields = [
            "id",
            "line_no",
            "purchase_order_item",
            "item",
            "item_code",
            "item_name",
            "package",
            "package_name",
            "uom",
            "quantity_ordered",
            "quantity_received",
            "rate",
            "line_total",
            "notes",
        ]
        read_only_fields = fields


class PurchaseReceiptSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source="supplier.name", read_only=True)
    warehouse_code = serializers.CharField(source="warehouse.warehouse_code", read_only=True)
    order_code = serializers.CharField(
        source="purchase_order.order_code", read_only=True, default=None
    )

    class Meta:
        model = PurchaseReceipt
        fields = [
            "id",
            "receipt_code",
            "purchase_order",
            "order_code",
            "supplier",
            "supplier_name",
            "warehouse",
            "warehouse_code",
            "receipt_date",
            "supplier_invoice_number",
            "supplier_invoice_date",
            "status",
            "notes",
            "total_amount",
            "stock_transaction",
            "journal_entry",
            "received_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PurchaseReceiptDetailSerializer(PurchaseReceiptSerializer):
    items = PurchaseReceiptItemSerializer(many=True, read_only=True)

    class Meta(PurchaseReceiptSerializer.Meta):
        fields = PurchaseReceiptSerializer.Meta.fields + ["items"]
        read_only_fields = fields


class PurchaseReceiptLineInputSerializer(serializers.Serializer):
    itemId = serializers.UUIDField()
    purchaseOrderItemId = serializers.UUIDField(required=False, allow_null=True)
    quantityOrdered = serializers.DecimalField(
        max_digits=18, decimal_places=4, required=False, allow_null=True
    )
    quantityReceived = serializers.DecimalField(max_digits=18, decimal_places=4)
    rate = serializers.DecimalField(max_digits=18, decimal_places=4, required=False, default=0)
    packageId = serializers.UUIDField(required=False, allow_null=True)
    uomId = serializers.UUIDField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_quantityReceived(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be greater than zero")
        return value

    def validate_rate(self, value):
        if value < 0:
            raise serializers.ValidationError("rate cannot be negative")
        return value


class PurchaseReceiptCreateSerializer(serializers.Serializer):
    supplierId = serializers.UUIDField(required=False, allow_null=True)
    purchaseOrderId = serializers.UUIDField(required=False, allow_null=True)
    warehouseId = serializers.UUIDField()
    receiptDate = serializers.DateField(required=False, allow_null=True)
    supplierInvoiceNumber = serializers.CharField(required=False, allow_blank=True, default="")
    supplierInvoiceDate = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    items = PurchaseReceiptLineInputSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required")
        return value

    def validate(self, attrs):
        if not attrs.get("supplierId") and not attrs.get("purchaseOrderId"):
            raise serializers.ValidationError("supplierId or purchaseOrderId is required")
        return attrs


class PurchaseReceiptUpdateSerializer(serializers.Serializer):
    STATUS_CHOICES = (
        PurchaseReceipt.STATUS_DRAFT,
        PurchaseReceipt.STATUS_RECEIVED,
        PurchaseReceipt.STATUS_CANCELLED,
    )

    warehouseId = serializers.UUIDField(required=False, allow_null=True)
    receiptDate = serializers.DateField(required=False, allow_null=True)
    supplierInvoiceNumber = serializers.CharField(required=False, allow_blank=True)
    supplierInvoiceDate = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=STATUS_CHOICES, required=False)
    items = PurchaseReceiptLineInputSerializer(many=True, required=False)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required")
        return value

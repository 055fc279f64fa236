# purchases/api/views.py

"""
PURCHASING API (mounted under /api/purchases/)

    suppliers/                          list / create / retrieve / patch
    purchase-orders/                    list / create / retrieve
    purchase-orders/{id}/approve/       draft -> approved
    purchase-orders/{id}/cancel/
    purchase-receipts/                  list / create (draft)
    purchase-receipts/{id}/             GET / PUT / DELETE (draft only)

PUT with status "received" receives the draft (stock + PO roll-up + AP);
status "cancelled" cancels it.
"""

from django.db import IntegrityError, transaction
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.services.exceptions import ConflictError, NotFound
from inventory.services.lookups import get_item, get_owned, get_package, get_uom, get_warehouse
from permissions.context import RequestContextMixin
from permissions.roles import (
    CAP_PURCHASE_EDIT,
    CAP_PURCHASE_RECEIVE,
    CAP_PURCHASE_VIEW,
    HasCapability,
)
from purchases.api.serializers import (
    PurchaseOrderCreateSerializer,
    PurchaseOrderDetailSerializer,
    PurchaseOrderSerializer,
    PurchaseReceiptCreateSerializer,
    PurchaseReceiptDetailSerializer,
    PurchaseReceiptSerializer,
    PurchaseReceiptUpdateSerializer,
    SupplierSerializer,
)
from purchases.models import PurchaseOrder, PurchaseOrderItem, PurchaseReceipt, Supplier
from purchases.services.purchase_order_service import (
    PurchaseOrderLine,
    approve_purchase_order,
    cancel_purchase_order,
    create_purchase_order,
    get_purchase_order,
)
from purchases.services.receiving_service import (
    ReceiptLine,
    cancel_receipt,
    create_receipt,
    delete_receipt,
    get_receipt,
    receive_receipt,
    update_receipt,
)


class PurchasingViewSetMixin(RequestContextMixin):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_PURCHASE_VIEW


def get_supplier(ctx, pk):
    return get_owned(Supplier, ctx, pk, label="Supplier")


def receipt_lines(ctx, items, order=None) -> list[ReceiptLine]:
    lines = []
    for row in items:
        item = get_item(ctx, row["itemId"])

        po_item = None
        if row.get("purchaseOrderItemId"):
            if order is None:
                raise NotFound("Purchase order line not found")
            po_item = PurchaseOrderItem.objects.filter(
                pk=row["purchaseOrderItemId"], purchase_order=order
            ).first()
            if po_item is None:
                raise NotFound("Purchase order line not found")

        lines.append(
            ReceiptLine(
                item=item,
                quantity_received=row["quantityReceived"],
                rate=row.get("rate") or 0,
                package=get_package(item, row.get("packageId")),
                uom=get_uom(ctx, row.get("uomId")),
                purchase_order_item=po_item,
                quantity_ordered=row.get("quantityOrdered"),
                notes=row.get("notes") or "",
            )
        )
    return lines


@extend_schema(tags=["purchases"])
class SupplierViewSet(PurchasingViewSetMixin, viewsets.ModelViewSet):
    serializer_class = SupplierSerializer
    http_method_names = ["get", "post", "patch", "head", "options"]
    required_capabilities = {
        "create": CAP_PURCHASE_EDIT,
        "partial_update": CAP_PURCHASE_EDIT,
    }
    filterset_fields = ["is_active"]

    def get_queryset(self):
        return self.scope_queryset(Supplier.objects.all()).order_by("name")

    def _save(self, serializer, **kwargs):
        try:
            with transaction.atomic():
                return serializer.save(**kwargs)
        except IntegrityError as exc:
            raise ConflictError("Supplier code already exists") from exc

    def perform_create(self, serializer):
        self._save(serializer, company_id=self.ctx.company_id)

    def perform_update(self, serializer):
        self._save(serializer)


@extend_schema(tags=["purchases"])
class PurchaseOrderViewSet(
    PurchasingViewSetMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    required_capabilities = {
        "create": CAP_PURCHASE_EDIT,
        "approve": CAP_PURCHASE_EDIT,
        "cancel": CAP_PURCHASE_EDIT,
    }
    filterset_fields = ["status", "supplier"]

    def get_queryset(self):
        qs = self.scope_queryset(
            PurchaseOrder.objects.filter(deleted_at__isnull=True)
        ).select_related("supplier")
        if self.action == "retrieve":
            qs = qs.prefetch_related("items__item")
        return qs.order_by("-created_at")

    def get_serializer_class(self):
        if self.action == "retrieve":
            return PurchaseOrderDetailSerializer
        return PurchaseOrderSerializer

    def _detail(self, order, status_code=status.HTTP_200_OK):
        order = (
            PurchaseOrder.objects.select_related("supplier")
            .prefetch_related("items__item")
            .get(pk=order.pk)
        )
        return Response(PurchaseOrderDetailSerializer(order).data, status=status_code)

    @extend_schema(
        tags=["purchases"],
        request=PurchaseOrderCreateSerializer,
        responses={201: PurchaseOrderDetailSerializer},
    )
    def create(self, request, *args, **kwargs):
        s = PurchaseOrderCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data
        ctx = self.ctx

        lines = []
        for row in data["items"]:
            item = get_item(ctx, row["itemId"])
            lines.append(
                PurchaseOrderLine(
                    item=item,
                    quantity=row["quantity"],
                    rate=row.get("rate") or 0,
                    package=get_package(item, row.get("packageId")),
                    uom=get_uom(ctx, row.get("uomId")),
                    notes=row.get("notes") or "",
                )
            )

        order = create_purchase_order(
            ctx,
            supplier=get_supplier(ctx, data["supplierId"]),
            lines=lines,
            order_date=data.get("orderDate"),
            expected_delivery_date=data.get("expectedDeliveryDate"),
            notes=data.get("notes") or "",
        )
        return self._detail(order, status.HTTP_201_CREATED)

    @extend_schema(tags=["purchases"], request=None, responses={200: PurchaseOrderDetailSerializer})
    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        order = approve_purchase_order(self.ctx, get_purchase_order(self.ctx, pk))
        return self._detail(order)

    @extend_schema(tags=["purchases"], request=None, responses={200: PurchaseOrderDetailSerializer})
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        order = cancel_purchase_order(self.ctx, get_purchase_order(self.ctx, pk))
        return self._detail(order)


@extend_schema(tags=["purchases"])
class PurchaseReceiptViewSet(
    PurchasingViewSetMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    required_capabilities = {
        "create": CAP_PURCHASE_RECEIVE,
        "update": CAP_PURCHASE_RECEIVE,
        "destroy": CAP_PURCHASE_RECEIVE,
    }
    filterset_fields = ["status", "supplier", "warehouse", "purchase_order"]

    def get_queryset(self):
        qs = self.scope_queryset(
            PurchaseReceipt.objects.filter(deleted_at__isnull=True)
        ).select_related("supplier", "warehouse", "purchase_order")
        if self.action == "retrieve":
            qs = qs.prefetch_related("items__item", "items__package")
        return qs.order_by("-created_at")

    def get_serializer_class(self):
        if self.action == "retrieve":
            return PurchaseReceiptDetailSerializer
        return PurchaseReceiptSerializer

    def _detail(self, receipt, *, status_code=status.HTTP_200_OK, warnings=None):
        receipt = (
            PurchaseReceipt.objects.select_related("supplier", "warehouse", "purchase_order")
            .prefetch_related("items__item", "items__package")
            .get(pk=receipt.pk)
        )
        data = dict(PurchaseReceiptDetailSerializer(receipt).data)
        if warnings is not None:
            data["warnings"] = warnings
        return Response(data, status=status_code)

    @extend_schema(
        tags=["purchases"],
        request=PurchaseReceiptCreateSerializer,
        responses={201: PurchaseReceiptDetailSerializer},
    )
    def create(self, request, *args, **kwargs):
        s = PurchaseReceiptCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data
        ctx = self.ctx

        order = None
        if data.get("purchaseOrderId"):
            order = get_purchase_order(ctx, data["purchaseOrderId"])

        if data.get("supplierId"):
            supplier = get_supplier(ctx, data["supplierId"])
        else:
            supplier = order.supplier

        receipt = create_receipt(
            ctx,
            supplier=supplier,
            warehouse=get_warehouse(ctx, data["warehouseId"]),
            lines=receipt_lines(ctx, data["items"], order),
            purchase_order=order,
            receipt_date=data.get("receiptDate"),
            supplier_invoice_number=data.get("supplierInvoiceNumber") or "",
            supplier_invoice_date=data.get("supplierInvoiceDate"),
            notes=data.get("notes") or "",
        )
        return self._detail(receipt, status_code=status.HTTP_201_CREATED)

    @extend_schema(
        tags=["purchases"],
        request=PurchaseReceiptUpdateSerializer,
        responses={200: PurchaseReceiptDetailSerializer},
    )
    def update(self, request, pk=None):
        ctx = self.ctx
        receipt = get_receipt(ctx, pk)

        s = PurchaseReceiptUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        warehouse = None
        if data.get("warehouseId"):
            warehouse = get_warehouse(ctx, data["warehouseId"])
        items = data.get("items")

        receipt = update_receipt(
            ctx,
            receipt,
            warehouse=warehouse,
            receipt_date=data.get("receiptDate"),
            supplier_invoice_number=data.get("supplierInvoiceNumber"),
            supplier_invoice_date=data.get("supplierInvoiceDate"),
            notes=data.get("notes"),
            lines=receipt_lines(ctx, items, receipt.purchase_order) if items is not None else None,
        )

        target = data.get("status")
        if target == PurchaseReceipt.STATUS_RECEIVED:
            receipt, outcome = receive_receipt(ctx, receipt)
            return self._detail(receipt, warnings=outcome.warnings)
        if target == PurchaseReceipt.STATUS_CANCELLED:
            receipt = cancel_receipt(ctx, receipt)

        return self._detail(receipt)

    @extend_schema(tags=["purchases"], request=None, responses={200: dict})
    def destroy(self, request, pk=None):
        receipt = delete_receipt(self.ctx, get_receipt(self.ctx, pk))
        return Response({"id": str(receipt.id), "deleted": True}, status=status.HTTP_200_OK)

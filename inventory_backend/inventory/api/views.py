# inventory/api/views.py

"""
INVENTORY API

- Master data: units of measure, items (+ packages), warehouses (+ locations)
- Stock transactions: list / create (posted or draft) / retrieve / delete draft / post draft
- Read projections: stock ledger, item_warehouse balances, balance lookup

Every queryset is scoped to the caller's company. Mutations of stock go
through inventory.services.engine only.
"""

from __future__ import annotations

from django.db import IntegrityError, transaction
from django.utils import timezone
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.api.filters import (
    ItemFilter,
    ItemWarehouseFilter,
    StockLedgerFilter,
    StockTransactionFilter,
)
from inventory.api.serializers import (
    BalanceLookupQuerySerializer,
    BalanceLookupSerializer,
    ItemLocationSerializer,
    ItemPackageSerializer,
    ItemSerializer,
    ItemWarehouseSerializer,
    StockLedgerEntrySerializer,
    StockTransactionCreatedSerializer,
    StockTransactionCreateSerializer,
    StockTransactionDetailSerializer,
    StockTransactionSerializer,
    UnitOfMeasureSerializer,
    WarehouseLocationSerializer,
    WarehouseSerializer,
)
from inventory.models import (
    Item,
    ItemLocation,
    ItemWarehouse,
    StockTransaction,
    StockTransactionItem,
    UnitOfMeasure,
    Warehouse,
)
from inventory.services.balances import read_balance
from inventory.services.engine import (
    MovementLine,
    create_draft,
    delete_draft,
    get_transaction,
    post_draft,
    post_movement,
)
from inventory.services.exceptions import ConflictError
from inventory.services.lookups import (
    get_item,
    get_location,
    get_package,
    get_uom,
    get_warehouse,
)
from permissions.context import RequestContextMixin
from permissions.roles import (
    CAP_INVENTORY_EDIT,
    CAP_INVENTORY_VIEW,
    CAP_STOCK_POST,
    HasCapability,
)


def save_or_conflict(serializer, message: str, **kwargs):
    try:
        with transaction.atomic():
            return serializer.save(**kwargs)
    except IntegrityError as exc:
        raise ConflictError(message) from exc


def movement_lines(ctx, items) -> list[MovementLine]:
    """Resolve camelCase request lines into engine MovementLines (tenant-scoped)."""
    lines = []
    for row in items:
        item = get_item(ctx, row["itemId"])
        lines.append(
            MovementLine(
                item=item,
                quantity=row["quantity"],
                unit_cost=row.get("unitCost"),
                package=get_package(item, row.get("packageId")),
                uom=get_uom(ctx, row.get("uomId")),
                batch_no=row.get("batchNo") or "",
                notes=row.get("notes") or "",
            )
        )
    return lines


class InventoryViewSetMixin(RequestContextMixin):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_INVENTORY_VIEW

    def get_serializer_context(self):
        context = super().get_serializer_context()
        user = getattr(self.request, "user", None)
        context["company_id"] = getattr(user, "company_id", None)
        return context


# ============================================================
# MASTER DATA
# ============================================================

@extend_schema(tags=["inventory"])
class UnitOfMeasureViewSet(InventoryViewSetMixin, viewsets.ModelViewSet):
    serializer_class = UnitOfMeasureSerializer
    http_method_names = ["get", "post", "patch", "head", "options"]
    required_capabilities = {
        "create": CAP_INVENTORY_EDIT,
        "partial_update": CAP_INVENTORY_EDIT,
    }

    def get_queryset(self):
        return self.scope_queryset(UnitOfMeasure.objects.all()).order_by("code")

    def perform_create(self, serializer):
        save_or_conflict(
            serializer,
            "Unit of measure code already exists",
            company_id=self.ctx.company_id,
        )

    def perform_update(self, serializer):
        save_or_conflict(serializer, "Unit of measure code already exists")


@extend_schema(tags=["inventory"])
class ItemViewSet(InventoryViewSetMixin, viewsets.ModelViewSet):
    """
    Items. DELETE is a soft delete (deleted_at); ledger history stays intact.
    """

    serializer_class = ItemSerializer
    filterset_class = ItemFilter
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]
    required_capabilities = {
        "create": CAP_INVENTORY_EDIT,
        "partial_update": CAP_INVENTORY_EDIT,
        "destroy": CAP_INVENTORY_EDIT,
    }

    def get_queryset(self):
        return (
            self.scope_queryset(Item.objects.filter(deleted_at__isnull=True))
            .select_related("uom")
            .prefetch_related("packages")
            .order_by("item_code")
        )

    def check_permissions(self, request):
        super().check_permissions(request)
        if self.action == "packages" and request.method == "POST":
            self.ctx.require(CAP_INVENTORY_EDIT)

    def perform_create(self, serializer):
        save_or_conflict(
            serializer,
            "Item code already exists",
            company_id=self.ctx.company_id,
            created_by=self.request.user,
        )

    def perform_update(self, serializer):
        save_or_conflict(serializer, "Item code already exists")

    def perform_destroy(self, instance):
        instance.deleted_at = timezone.now()
        instance.is_active = False
        instance.save(update_fields=["deleted_at", "is_active", "updated_at"])

    @extend_schema(
        tags=["inventory"],
        request=ItemPackageSerializer,
        responses={200: ItemPackageSerializer(many=True), 201: ItemPackageSerializer},
    )
    @action(detail=True, methods=["get", "post"], url_path="packages")
    def packages(self, request, pk=None):
        item = self.get_object()

        if request.method == "GET":
            return Response(ItemPackageSerializer(item.packages.all(), many=True).data)

        s = ItemPackageSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        package = save_or_conflict(s, "Package name already exists for this item", item=item)
        return Response(ItemPackageSerializer(package).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["inventory"], responses=ItemLocationSerializer(many=True))
    @action(detail=True, methods=["get"], url_path="locations")
    def locations(self, request, pk=None):
        item = self.get_object()
        qs = ItemLocation.objects.filter(
            company_id=self.ctx.company_id, item=item
        ).select_related("location")
        return Response(ItemLocationSerializer(qs, many=True).data)


@extend_schema(tags=["inventory"])
class WarehouseViewSet(InventoryViewSetMixin, viewsets.ModelViewSet):
    serializer_class = WarehouseSerializer
    http_method_names = ["get", "post", "patch", "head", "options"]
    required_capabilities = {
        "create": CAP_INVENTORY_EDIT,
        "partial_update": CAP_INVENTORY_EDIT,
    }

    def get_queryset(self):
        return (
            self.scope_queryset(Warehouse.objects.all())
            .prefetch_related("locations")
            .order_by("warehouse_code")
        )

    def check_permissions(self, request):
        super().check_permissions(request)
        if self.action == "locations" and request.method == "POST":
            self.ctx.require(CAP_INVENTORY_EDIT)

    def perform_create(self, serializer):
        save_or_conflict(
            serializer,
            "Warehouse code already exists",
            company_id=self.ctx.company_id,
            business_unit_id=self.ctx.business_unit_id,
        )

    def perform_update(self, serializer):
        save_or_conflict(serializer, "Warehouse code already exists")

    @extend_schema(
        tags=["inventory"],
        request=WarehouseLocationSerializer,
        responses={200: WarehouseLocationSerializer(many=True), 201: WarehouseLocationSerializer},
    )
    @action(detail=True, methods=["get", "post"], url_path="locations")
    def locations(self, request, pk=None):
        warehouse = self.get_object()

        if request.method == "GET":
            return Response(
                WarehouseLocationSerializer(warehouse.locations.all(), many=True).data
            )

        s = WarehouseLocationSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        location = save_or_conflict(
            s, "Location code already exists in this warehouse", warehouse=warehouse
        )
        return Response(
            WarehouseLocationSerializer(location).data, status=status.HTTP_201_CREATED
        )


# ============================================================
# STOCK TRANSACTIONS
# ============================================================

@extend_schema(tags=["inventory"])
class StockTransactionViewSet(
    InventoryViewSetMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    POST creates and posts in one atomic step (or saves a draft when
    status="draft"). DELETE only soft-deletes drafts. POST {id}/post/
    posts a draft.
    """

    filterset_class = StockTransactionFilter
    required_capabilities = {
        "create": CAP_STOCK_POST,
        "destroy": CAP_STOCK_POST,
        "post_transaction": CAP_STOCK_POST,
    }

    def get_queryset(self):
        qs = self.scope_queryset(
            StockTransaction.objects.filter(deleted_at__isnull=True)
        ).select_related("warehouse", "to_warehouse", "created_by", "posted_by")

        if self.action == "retrieve":
            qs = qs.prefetch_related(
                "lines__item",
                "ledger_entries__item",
                "ledger_entries__warehouse",
                "ledger_entries__location",
                "warehouse__locations",
                "to_warehouse__locations",
            )
        return qs.order_by("-created_at")

    def get_serializer_class(self):
        if self.action == "retrieve":
            return StockTransactionDetailSerializer
        if self.action == "create":
            return StockTransactionCreateSerializer
        return StockTransactionSerializer

    @extend_schema(
        tags=["inventory"],
        request=StockTransactionCreateSerializer,
        responses={201: StockTransactionCreatedSerializer},
    )
    def create(self, request, *args, **kwargs):
        s = StockTransactionCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data
        ctx = self.ctx

        warehouse = get_warehouse(ctx, data["warehouseId"])
        to_warehouse = None
        if data.get("toWarehouseId"):
            to_warehouse = get_warehouse(ctx, data["toWarehouseId"], label="Destination warehouse")

        from_location = get_location(warehouse, data.get("fromLocationId"))
        to_location = get_location(to_warehouse or warehouse, data.get("toLocationId"))

        kwargs = dict(
            transaction_type=data["transactionType"],
            warehouse=warehouse,
            to_warehouse=to_warehouse,
            lines=movement_lines(ctx, data["items"]),
            transaction_date=data.get("transactionDate"),
            reference_type=data.get("referenceType") or "",
            reference_id=data.get("referenceId"),
            notes=data.get("notes") or "",
            from_location=from_location,
            to_location=to_location,
        )

        if data["status"] == StockTransaction.STATUS_DRAFT:
            txn = create_draft(ctx, **kwargs)
        else:
            txn = post_movement(ctx, **kwargs)

        return Response(
            {"id": str(txn.id), "transactionCode": txn.transaction_code},
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(tags=["inventory"], request=None, responses={200: dict})
    def destroy(self, request, pk=None):
        txn = get_transaction(self.ctx, pk)
        delete_draft(self.ctx, txn)
        return Response({"id": str(txn.id), "deleted": True}, status=status.HTTP_200_OK)

    @extend_schema(tags=["inventory"], request=None, responses={200: StockTransactionDetailSerializer})
    @action(detail=True, methods=["post"], url_path="post", url_name="post")
    def post_transaction(self, request, pk=None):
        txn = post_draft(self.ctx, get_transaction(self.ctx, pk))
        txn = StockTransaction.objects.select_related(
            "warehouse", "to_warehouse", "created_by", "posted_by"
        ).get(pk=txn.pk)
        return Response(StockTransactionDetailSerializer(txn).data, status=status.HTTP_200_OK)


@extend_schema(tags=["inventory"])
class StockLedgerViewSet(InventoryViewSetMixin, viewsets.ReadOnlyModelViewSet):
    serializer_class = StockLedgerEntrySerializer
    filterset_class = StockLedgerFilter

    def get_queryset(self):
        return (
            self.scope_queryset(StockTransactionItem.objects.all())
            .select_related("item", "warehouse", "transaction", "location")
            .order_by("-created_at")
        )


@extend_schema(tags=["inventory"])
class ItemWarehouseViewSet(InventoryViewSetMixin, viewsets.ReadOnlyModelViewSet):
    serializer_class = ItemWarehouseSerializer
    filterset_class = ItemWarehouseFilter

    def get_queryset(self):
        return (
            self.scope_queryset(ItemWarehouse.objects.filter(deleted_at__isnull=True))
            .select_related("item", "warehouse", "default_location")
            .order_by("item__item_code", "warehouse__warehouse_code")
        )

    @extend_schema(
        tags=["inventory"],
        parameters=[
            OpenApiParameter(name="itemId", type=str, location=OpenApiParameter.QUERY, required=True),
            OpenApiParameter(
                name="warehouseId", type=str, location=OpenApiParameter.QUERY, required=True
            ),
        ],
        responses={200: BalanceLookupSerializer},
        description="Current on-hand balance for one item + warehouse (0 when no row exists).",
    )
    @action(detail=False, methods=["get"], url_path="lookup")
    def lookup(self, request):
        q = BalanceLookupQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)

        item = get_item(self.ctx, q.validated_data["itemId"])
        warehouse = get_warehouse(self.ctx, q.validated_data["warehouseId"])
        balance = read_balance(self.ctx, item, warehouse)

        return Response(
            BalanceLookupSerializer(
                {"item_id": item.id, "warehouse_id": warehouse.id, "current_stock": balance}
            ).data
        )

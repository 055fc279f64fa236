# adjustments/api/views.py

"""
STOCK ADJUSTMENT API

    GET    stock-adjustments/               list (filter: status, warehouse, adjustment_type)
    POST   stock-adjustments/               create draft
    GET    stock-adjustments/{id}/          detail with lines
    PUT    stock-adjustments/{id}/          edit draft
    DELETE stock-adjustments/{id}/          soft-delete draft
    POST   stock-adjustments/{id}/approve/
    POST   stock-adjustments/{id}/post/     moves stock, then best-effort GL
    POST   stock-adjustments/{id}/cancel/
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from adjustments.api.serializers import (
    StockAdjustmentCreateSerializer,
    StockAdjustmentDetailSerializer,
    StockAdjustmentSerializer,
    StockAdjustmentUpdateSerializer,
)
from adjustments.models import StockAdjustment
from adjustments.services.adjustment_service import (
    AdjustmentLine,
    approve_adjustment,
    cancel_adjustment,
    create_adjustment,
    delete_adjustment,
    get_adjustment,
    post_adjustment,
    update_draft,
)
from inventory.services.lookups import (
    get_item,
    get_location,
    get_package,
    get_uom,
    get_warehouse,
)
from permissions.context import RequestContextMixin
from permissions.roles import (
    CAP_ADJUST_APPROVE,
    CAP_ADJUST_CREATE,
    CAP_ADJUST_POST,
    CAP_INVENTORY_VIEW,
    HasCapability,
)


def adjustment_lines(ctx, items) -> list[AdjustmentLine]:
    lines = []
    for row in items:
        item = get_item(ctx, row["itemId"])
        lines.append(
            AdjustmentLine(
                item=item,
                adjusted_qty=row["adjustedQty"],
                package=get_package(item, row.get("packageId")),
                uom=get_uom(ctx, row.get("uomId")),
                unit_cost=row.get("unitCost"),
                reason=row.get("reason") or "",
            )
        )
    return lines


@extend_schema(tags=["adjustments"])
class StockAdjustmentViewSet(
    RequestContextMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_INVENTORY_VIEW
    required_capabilities = {
        "create": CAP_ADJUST_CREATE,
        "update": CAP_ADJUST_CREATE,
        "destroy": CAP_ADJUST_CREATE,
        "approve": CAP_ADJUST_APPROVE,
        "cancel": CAP_ADJUST_APPROVE,
        "post_adjustment": CAP_ADJUST_POST,
    }
    filterset_fields = ["status", "warehouse", "adjustment_type"]

    def get_queryset(self):
        qs = self.scope_queryset(
            StockAdjustment.objects.filter(deleted_at__isnull=True)
        ).select_related("warehouse", "location", "created_by", "approved_by", "posted_by")
        if self.action == "retrieve":
            qs = qs.prefetch_related("items__item", "items__uom")
        return qs.order_by("-created_at")

    def get_serializer_class(self):
        if self.action == "retrieve":
            return StockAdjustmentDetailSerializer
        return StockAdjustmentSerializer

    def _detail(self, adjustment, *, status_code=status.HTTP_200_OK, warnings=None):
        adjustment = (
            StockAdjustment.objects.select_related("warehouse", "location")
            .prefetch_related("items__item", "items__uom")
            .get(pk=adjustment.pk)
        )
        data = dict(StockAdjustmentDetailSerializer(adjustment).data)
        if warnings is not None:
            data["warnings"] = warnings
        return Response(data, status=status_code)

    @extend_schema(
        tags=["adjustments"],
        request=StockAdjustmentCreateSerializer,
        responses={201: StockAdjustmentDetailSerializer},
    )
    def create(self, request, *args, **kwargs):
        s = StockAdjustmentCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data
        ctx = self.ctx

        warehouse = get_warehouse(ctx, data["warehouseId"])
        adjustment = create_adjustment(
            ctx,
            adjustment_type=data["adjustmentType"],
            warehouse=warehouse,
            reason=data["reason"],
            lines=adjustment_lines(ctx, data["items"]),
            adjustment_date=data["adjustmentDate"],
            location=get_location(warehouse, data.get("locationId")),
            notes=data.get("notes") or "",
        )
        return self._detail(adjustment, status_code=status.HTTP_201_CREATED)

    @extend_schema(
        tags=["adjustments"],
        request=StockAdjustmentUpdateSerializer,
        responses={200: StockAdjustmentDetailSerializer},
    )
    def update(self, request, pk=None):
        ctx = self.ctx
        adjustment = get_adjustment(ctx, pk)

        s = StockAdjustmentUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        items = data.get("items")
        adjustment = update_draft(
            ctx,
            adjustment,
            adjustment_type=data.get("adjustmentType"),
            adjustment_date=data.get("adjustmentDate"),
            reason=data.get("reason"),
            notes=data.get("notes"),
            location=get_location(adjustment.warehouse, data.get("locationId")),
            lines=adjustment_lines(ctx, items) if items is not None else None,
        )
        return self._detail(adjustment)

    @extend_schema(tags=["adjustments"], request=None, responses={200: dict})
    def destroy(self, request, pk=None):
        adjustment = delete_adjustment(self.ctx, get_adjustment(self.ctx, pk))
        return Response({"id": str(adjustment.id), "deleted": True}, status=status.HTTP_200_OK)

    @extend_schema(tags=["adjustments"], request=None, responses={200: StockAdjustmentDetailSerializer})
    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        adjustment = approve_adjustment(self.ctx, get_adjustment(self.ctx, pk))
        return self._detail(adjustment)

    @extend_schema(tags=["adjustments"], request=None, responses={200: StockAdjustmentDetailSerializer})
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        adjustment = cancel_adjustment(self.ctx, get_adjustment(self.ctx, pk))
        return self._detail(adjustment)

    @extend_schema(tags=["adjustments"], request=None, responses={200: StockAdjustmentDetailSerializer})
    @action(detail=True, methods=["post"], url_path="post", url_name="post")
    def post_adjustment(self, request, pk=None):
        adjustment, outcome = post_adjustment(self.ctx, get_adjustment(self.ctx, pk))
        return self._detail(adjustment, warnings=outcome.warnings)

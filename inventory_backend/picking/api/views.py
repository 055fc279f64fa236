# picking/api/views.py

"""
PICK LIST API

    pick-lists/                             GET list, POST create
    pick-lists/{id}/                        GET
    pick-lists/{id}/items/{item_id}/        PATCH {"pickedQty": ...}
    pick-lists/{id}/status/                 PATCH {"status": ..., "reason"?: ...}
"""

from django.contrib.auth import get_user_model
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.services.lookups import get_item, get_location, get_owned, get_uom, get_warehouse
from permissions.context import RequestContextMixin
from permissions.roles import CAP_INVENTORY_VIEW, CAP_PICK_MANAGE, HasCapability
from picking.api.serializers import (
    PickedQtyInputSerializer,
    PickListCreateSerializer,
    PickListDetailSerializer,
    PickListItemSerializer,
    PickListSerializer,
    PickListStatusInputSerializer,
)
from picking.models import PickList
from picking.services.pick_list_service import (
    PickLine,
    change_status,
    create_pick_list,
    get_pick_list,
    record_picked_qty,
)


@extend_schema(tags=["picking"])
class PickListViewSet(
    RequestContextMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_INVENTORY_VIEW
    required_capabilities = {
        "create": CAP_PICK_MANAGE,
        "picked_qty": CAP_PICK_MANAGE,
        "set_status": CAP_PICK_MANAGE,
    }
    filterset_fields = ["status", "warehouse"]

    def get_queryset(self):
        qs = self.scope_queryset(
            PickList.objects.filter(deleted_at__isnull=True)
        ).select_related("warehouse")
        if self.action == "retrieve":
            qs = qs.prefetch_related("items__item", "items__location", "assignees")
        return qs.order_by("-created_at")

    def get_serializer_class(self):
        if self.action == "retrieve":
            return PickListDetailSerializer
        return PickListSerializer

    def _detail(self, pick_list, status_code=status.HTTP_200_OK):
        pick_list = (
            PickList.objects.select_related("warehouse")
            .prefetch_related("items__item", "items__location", "assignees")
            .get(pk=pick_list.pk)
        )
        return Response(PickListDetailSerializer(pick_list).data, status=status_code)

    @extend_schema(
        tags=["picking"],
        request=PickListCreateSerializer,
        responses={201: PickListDetailSerializer},
    )
    def create(self, request, *args, **kwargs):
        s = PickListCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data
        ctx = self.ctx

        warehouse = get_warehouse(ctx, data["warehouseId"])
        lines = [
            PickLine(
                item=get_item(ctx, row["itemId"]),
                allocated_qty=row["allocatedQty"],
                uom=get_uom(ctx, row.get("uomId")),
                location=get_location(warehouse, row.get("locationId")),
            )
            for row in data["items"]
        ]
        assignees = [
            get_owned(get_user_model(), ctx, pk, label="Assignee")
            for pk in data.get("assigneeIds") or []
        ]

        pick_list = create_pick_list(
            ctx,
            warehouse=warehouse,
            lines=lines,
            notes=data.get("notes") or "",
            assignees=assignees,
        )
        return self._detail(pick_list, status.HTTP_201_CREATED)

    @extend_schema(
        tags=["picking"],
        request=PickedQtyInputSerializer,
        responses={200: PickListItemSerializer},
    )
    @action(detail=True, methods=["patch"], url_path=r"items/(?P<item_id>[^/.]+)")
    def picked_qty(self, request, pk=None, item_id=None):
        s = PickedQtyInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        row = record_picked_qty(
            self.ctx,
            get_pick_list(self.ctx, pk),
            item_id,
            s.validated_data["pickedQty"],
        )
        return Response(PickListItemSerializer(row).data)

    @extend_schema(
        tags=["picking"],
        request=PickListStatusInputSerializer,
        responses={200: PickListDetailSerializer},
    )
    @action(detail=True, methods=["patch"], url_path="status")
    def set_status(self, request, pk=None):
        s = PickListStatusInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        pick_list = change_status(
            self.ctx,
            get_pick_list(self.ctx, pk),
            data["status"],
            reason=data.get("reason"),
        )
        return self._detail(pick_list)

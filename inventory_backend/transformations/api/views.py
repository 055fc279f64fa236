# transformations/api/views.py

"""
TRANSFORMATION API (mounted under /api/transformations/)

    templates/                      list / create
    templates/{id}/                 GET / PATCH / DELETE (PATCH + DELETE refused once used)
    orders/                         list (filter: status, warehouse, template) / create
    orders/{id}/                    GET / PATCH / DELETE (draft only)
    orders/{id}/status/             PATCH {status: preparing | cancelled}
    orders/{id}/execute/            POST consumes inputs, produces outputs
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.services.lookups import get_item, get_uom, get_warehouse
from permissions.context import RequestContextMixin
from permissions.roles import CAP_INVENTORY_VIEW, CAP_TRANSFORM_MANAGE, HasCapability
from transformations.api.serializers import (
    ExecuteInputSerializer,
    OrderCreateSerializer,
    OrderStatusInputSerializer,
    OrderUpdateSerializer,
    TemplateCreateSerializer,
    TemplateUpdateSerializer,
    TransformationOrderDetailSerializer,
    TransformationOrderSerializer,
    TransformationTemplateDetailSerializer,
    TransformationTemplateSerializer,
)
from transformations.models import TransformationOrder, TransformationTemplate
from transformations.services.transformation_service import (
    ConsumedInput,
    ProducedOutput,
    RecipeLine,
    change_status,
    create_order,
    create_template,
    delete_order,
    delete_template,
    execute_order,
    get_order,
    get_template,
    update_order,
    update_template,
)

MANAGE_ACTIONS = {
    "create": CAP_TRANSFORM_MANAGE,
    "partial_update": CAP_TRANSFORM_MANAGE,
    "destroy": CAP_TRANSFORM_MANAGE,
}


def recipe_lines(ctx, rows) -> list[RecipeLine]:
    return [
        RecipeLine(
            item=get_item(ctx, row["itemId"]),
            quantity=row["quantity"],
            uom=get_uom(ctx, row.get("uomId")),
            is_scrap=row.get("isScrap", False),
            notes=row.get("notes") or "",
        )
        for row in rows
    ]


@extend_schema(tags=["transformations"])
class TransformationTemplateViewSet(
    RequestContextMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_INVENTORY_VIEW
    required_capabilities = MANAGE_ACTIONS
    filterset_fields = ["is_active"]

    def get_queryset(self):
        qs = self.scope_queryset(TransformationTemplate.objects.filter(deleted_at__isnull=True))
        if self.action == "retrieve":
            qs = qs.prefetch_related("inputs__item", "inputs__uom", "outputs__item", "outputs__uom")
        return qs.order_by("template_code")

    def get_serializer_class(self):
        if self.action == "retrieve":
            return TransformationTemplateDetailSerializer
        return TransformationTemplateSerializer

    def _detail(self, template, status_code=status.HTTP_200_OK):
        template = (
            TransformationTemplate.objects.prefetch_related(
                "inputs__item", "inputs__uom", "outputs__item", "outputs__uom"
            ).get(pk=template.pk)
        )
        return Response(TransformationTemplateDetailSerializer(template).data, status=status_code)

    @extend_schema(
        tags=["transformations"],
        request=TemplateCreateSerializer,
        responses={201: TransformationTemplateDetailSerializer},
    )
    def create(self, request, *args, **kwargs):
        s = TemplateCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data
        ctx = self.ctx

        template = create_template(
            ctx,
            template_code=data["templateCode"],
            template_name=data["templateName"],
            description=data.get("description") or "",
            is_active=data.get("isActive", True),
            inputs=recipe_lines(ctx, data["inputs"]),
            outputs=recipe_lines(ctx, data["outputs"]),
        )
        return self._detail(template, status.HTTP_201_CREATED)

    @extend_schema(
        tags=["transformations"],
        request=TemplateUpdateSerializer,
        responses={200: TransformationTemplateDetailSerializer},
    )
    def partial_update(self, request, pk=None):
        ctx = self.ctx
        template = get_template(ctx, pk)

        s = TemplateUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        template = update_template(
            ctx,
            template,
            template_name=data.get("templateName"),
            description=data.get("description"),
            is_active=data.get("isActive"),
            inputs=recipe_lines(ctx, data["inputs"]) if "inputs" in data else None,
            outputs=recipe_lines(ctx, data["outputs"]) if "outputs" in data else None,
        )
        return self._detail(template)

    @extend_schema(tags=["transformations"], request=None, responses={200: dict})
    def destroy(self, request, pk=None):
        template = delete_template(self.ctx, get_template(self.ctx, pk))
        return Response({"id": str(template.id), "deleted": True}, status=status.HTTP_200_OK)


@extend_schema(tags=["transformations"])
class TransformationOrderViewSet(
    RequestContextMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_INVENTORY_VIEW
    required_capabilities = {
        **MANAGE_ACTIONS,
        "set_status": CAP_TRANSFORM_MANAGE,
        "execute": CAP_TRANSFORM_MANAGE,
    }
    filterset_fields = ["status", "warehouse", "template"]

    def get_queryset(self):
        qs = self.scope_queryset(
            TransformationOrder.objects.filter(deleted_at__isnull=True)
        ).select_related("template", "warehouse")
        if self.action == "retrieve":
            qs = qs.prefetch_related("inputs__item", "inputs__uom", "outputs__item", "outputs__uom")
        return qs.order_by("-created_at")

    def get_serializer_class(self):
        if self.action == "retrieve":
            return TransformationOrderDetailSerializer
        return TransformationOrderSerializer

    def _detail(self, order, status_code=status.HTTP_200_OK):
        order = (
            TransformationOrder.objects.select_related("template", "warehouse")
            .prefetch_related("inputs__item", "inputs__uom", "outputs__item", "outputs__uom")
            .get(pk=order.pk)
        )
        return Response(TransformationOrderDetailSerializer(order).data, status=status_code)

    @extend_schema(
        tags=["transformations"],
        request=OrderCreateSerializer,
        responses={201: TransformationOrderDetailSerializer},
    )
    def create(self, request, *args, **kwargs):
        s = OrderCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data
        ctx = self.ctx

        order = create_order(
            ctx,
            template=get_template(ctx, data["templateId"]),
            warehouse=get_warehouse(ctx, data["warehouseId"]),
            planned_quantity=data["plannedQuantity"],
            order_date=data.get("orderDate"),
            planned_date=data.get("plannedDate"),
            notes=data.get("notes") or "",
        )
        return self._detail(order, status.HTTP_201_CREATED)

    @extend_schema(
        tags=["transformations"],
        request=OrderUpdateSerializer,
        responses={200: TransformationOrderDetailSerializer},
    )
    def partial_update(self, request, pk=None):
        ctx = self.ctx
        order = get_order(ctx, pk)

        s = OrderUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        order = update_order(
            ctx,
            order,
            planned_quantity=data.get("plannedQuantity"),
            planned_date=data.get("plannedDate"),
            notes=data.get("notes"),
        )
        return self._detail(order)

    @extend_schema(tags=["transformations"], request=None, responses={200: dict})
    def destroy(self, request, pk=None):
        order = delete_order(self.ctx, get_order(self.ctx, pk))
        return Response({"id": str(order.id), "deleted": True}, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["transformations"],
        request=OrderStatusInputSerializer,
        responses={200: TransformationOrderDetailSerializer},
    )
    @action(detail=True, methods=["patch"], url_path="status")
    def set_status(self, request, pk=None):
        s = OrderStatusInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        order = change_status(self.ctx, get_order(self.ctx, pk), s.validated_data["status"])
        return self._detail(order)

    @extend_schema(
        tags=["transformations"],
        request=ExecuteInputSerializer,
        responses={200: TransformationOrderDetailSerializer},
    )
    @action(detail=True, methods=["post"])
    def execute(self, request, pk=None):
        s = ExecuteInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        inputs = data.get("inputs")
        outputs = data.get("outputs")
        order = execute_order(
            self.ctx,
            get_order(self.ctx, pk),
            inputs=[
                ConsumedInput(
                    line_id=row["inputLineId"],
                    quantity=row["consumedQuantity"],
                    package_id=row.get("packageId"),
                )
                for row in inputs
            ]
            if inputs is not None
            else None,
            outputs=[
                ProducedOutput(
                    line_id=row["outputLineId"],
                    produced_quantity=row["producedQuantity"],
                    wasted_quantity=row.get("wastedQuantity", 0),
                    waste_reason=row.get("wasteReason") or "",
                    package_id=row.get("packageId"),
                )
                for row in outputs
            ]
            if outputs is not None
            else None,
            execution_date=data.get("executionDate"),
        )
        return self._detail(order)

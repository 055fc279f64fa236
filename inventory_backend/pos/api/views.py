# pos/api/views.py

"""
POS API (mounted under /api/pos/)

    transactions/               GET list, POST record a sale
    transactions/{id}/          GET
    transactions/{id}/void/     POST (completed sales only)

Sale and void responses carry "warnings" for GL postings that failed
after the stock side committed.
"""

from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.services.lookups import get_item, get_package, get_warehouse
from permissions.context import RequestContextMixin
from permissions.roles import CAP_POS_SELL, CAP_POS_VOID, HasCapability
from pos.api.serializers import (
    PosSaleCreateSerializer,
    PosTransactionDetailSerializer,
    PosTransactionSerializer,
)
from pos.models import PosTransaction
from pos.services.sale_service import SaleLine, SalePayment, get_sale, record_sale, void_sale


@extend_schema(tags=["pos"])
class PosTransactionViewSet(
    RequestContextMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_POS_SELL
    required_capabilities = {"void": CAP_POS_VOID}
    filterset_fields = ["status", "warehouse", "cashier"]

    def get_queryset(self):
        qs = self.scope_queryset(PosTransaction.objects.all()).select_related("warehouse")
        if self.action == "retrieve":
            qs = qs.prefetch_related("items", "payments")
        return qs.order_by("-transaction_date")

    def get_serializer_class(self):
        if self.action == "retrieve":
            return PosTransactionDetailSerializer
        return PosTransactionSerializer

    def _detail(self, sale, *, warnings, status_code=status.HTTP_200_OK):
        sale = (
            PosTransaction.objects.select_related("warehouse")
            .prefetch_related("items", "payments")
            .get(pk=sale.pk)
        )
        data = dict(PosTransactionDetailSerializer(sale).data)
        data["warnings"] = warnings
        return Response(data, status=status_code)

    @extend_schema(
        tags=["pos"],
        request=PosSaleCreateSerializer,
        responses={201: PosTransactionDetailSerializer},
    )
    def create(self, request, *args, **kwargs):
        s = PosSaleCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data
        ctx = self.ctx

        lines = []
        for row in data["items"]:
            item = get_item(ctx, row["itemId"])
            lines.append(
                SaleLine(
                    item=item,
                    quantity=row["quantity"],
                    unit_price=row["unitPrice"],
                    discount=row.get("discount") or 0,
                    package=get_package(item, row.get("packageId")),
                )
            )

        warehouse = None
        if data.get("warehouseId"):
            warehouse = get_warehouse(ctx, data["warehouseId"])

        sale, outcome = record_sale(
            ctx,
            lines=lines,
            payments=[
                SalePayment(method=p["method"], amount=p["amount"], reference=p.get("reference") or "")
                for p in data["payments"]
            ],
            warehouse=warehouse,
            tax_rate=data.get("taxRate") or 0,
            customer_name=data.get("customerName") or "",
            notes=data.get("notes") or "",
        )
        return self._detail(sale, warnings=outcome.warnings, status_code=status.HTTP_201_CREATED)

    @extend_schema(tags=["pos"], request=None, responses={200: PosTransactionDetailSerializer})
    @action(detail=True, methods=["post"])
    def void(self, request, pk=None):
        sale, outcome = void_sale(self.ctx, get_sale(self.ctx, pk))
        return self._detail(sale, warnings=outcome.warnings)

# inventory/api/urls.py

"""
INVENTORY URLS (mounted under /api/inventory/)

    units-of-measure/      items/            warehouses/
    stock-transactions/    stock-ledger/     balances/  (+ balances/lookup/)
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from inventory.api.views import (
    ItemViewSet,
    ItemWarehouseViewSet,
    StockLedgerViewSet,
    StockTransactionViewSet,
    UnitOfMeasureViewSet,
    WarehouseViewSet,
)

router = DefaultRouter()

router.register(r"units-of-measure", UnitOfMeasureViewSet, basename="units-of-measure")
router.register(r"items", ItemViewSet, basename="items")
router.register(r"warehouses", WarehouseViewSet, basename="warehouses")
router.register(r"stock-transactions", StockTransactionViewSet, basename="stock-transactions")
router.register(r"stock-ledger", StockLedgerViewSet, basename="stock-ledger")
router.register(r"balances", ItemWarehouseViewSet, basename="balances")

urlpatterns = [
    path("", include(router.urls)),
]

# purchases/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from purchases.api.views import PurchaseOrderViewSet, PurchaseReceiptViewSet, SupplierViewSet

router = DefaultRouter()
router.register(r"suppliers", SupplierViewSet, basename="purchase-suppliers")
router.register(r"purchase-orders", PurchaseOrderViewSet, basename="purchase-orders")
router.register(r"purchase-receipts", PurchaseReceiptViewSet, basename="purchase-receipts")

urlpatterns = [
    path("", include(router.urls)),
]

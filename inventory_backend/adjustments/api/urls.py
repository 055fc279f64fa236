# adjustments/api/urls.py

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from adjustments.api.views import StockAdjustmentViewSet

router = SimpleRouter()
router.register(r"stock-adjustments", StockAdjustmentViewSet, basename="stock-adjustments")

urlpatterns = [
    path("", include(router.urls)),
]

# pos/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from pos.api.views import PosTransactionViewSet

router = DefaultRouter()
router.register(r"transactions", PosTransactionViewSet, basename="pos-transactions")

urlpatterns = [
    path("", include(router.urls)),
]

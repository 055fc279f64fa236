# transformations/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from transformations.api.views import TransformationOrderViewSet, TransformationTemplateViewSet

router = DefaultRouter()
router.register(r"templates", TransformationTemplateViewSet, basename="transformation-templates")
router.register(r"orders", TransformationOrderViewSet, basename="transformation-orders")

urlpatterns = [
    path("", include(router.urls)),
]

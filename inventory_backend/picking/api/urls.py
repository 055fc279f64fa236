# picking/api/urls.py

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from picking.api.views import PickListViewSet

router = SimpleRouter()
router.register(r"pick-lists", PickListViewSet, basename="pick-lists")

urlpatterns = [
    path("", include(router.urls)),
]

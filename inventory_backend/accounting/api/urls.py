# accounting/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from accounting.api.view import JournalEntryViewSet, LedgerEntryViewSet
from accounting.api.views import AccountListView, TrialBalanceView

router = DefaultRouter()
router.register("journal-entries", JournalEntryViewSet, basename="journal-entry")
router.register("ledger-entries", LedgerEntryViewSet, basename="ledger-entry")

urlpatterns = [
    path("", include(router.urls)),
    path("accounts/", AccountListView.as_view(), name="accounts"),
    path("trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
]

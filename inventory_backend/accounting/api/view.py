# accounting/api/view.py

"""
ACCOUNTING API VIEWSETS (READ-ONLY / AUDIT SAFE)

- Journal entries and ledger entries are append-only; no write endpoints.
- Capability-gated (accounting.view) and scoped to the caller's company.

Filtering:
    /api/accounting/ledger-entries/?journal_entry=30
    /api/accounting/ledger-entries/?account=28
    /api/accounting/journal-entries/?reference=pos_sale:<id>
"""

from drf_spectacular.utils import extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.viewsets import ReadOnlyModelViewSet

from accounting.api.serializers import JournalEntrySerializer, LedgerEntrySerializer
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from permissions.context import RequestContextMixin
from permissions.roles import CAP_ACCOUNTING_VIEW, HasCapability


@extend_schema(tags=["accounting"])
class JournalEntryViewSet(RequestContextMixin, ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_ACCOUNTING_VIEW
    serializer_class = JournalEntrySerializer
    filterset_fields = ["reference"]

    def get_queryset(self):
        return (
            self.scope_queryset(JournalEntry.objects.filter(is_posted=True))
            .prefetch_related("ledger_entries__account")
            .order_by("-posted_at", "-id")
        )


@extend_schema(tags=["accounting"])
class LedgerEntryViewSet(RequestContextMixin, ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_ACCOUNTING_VIEW
    serializer_class = LedgerEntrySerializer
    filterset_fields = ["journal_entry", "account", "entry_type"]

    def get_queryset(self):
        return (
            self.scope_queryset(
                LedgerEntry.objects.select_related("journal_entry", "account"),
                "journal_entry__company_id",
            )
            .order_by("-created_at", "-id")
        )

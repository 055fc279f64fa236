# accounting/api/views/accounts.py

"""
ACCOUNTS API (READ-ONLY)

GET /api/accounting/accounts/
Returns the caller's company accounts. Accounts are seeded with
`manage.py seed_chart_of_accounts`.
"""

from drf_spectacular.utils import extend_schema
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.serializers.accounts import AccountListSerializer
from accounting.models.account import Account
from permissions.context import RequestContextMixin
from permissions.roles import CAP_ACCOUNTING_VIEW, HasCapability


class AccountListView(RequestContextMixin, GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_ACCOUNTING_VIEW
    serializer_class = AccountListSerializer

    @extend_schema(
        tags=["accounting"],
        responses=AccountListSerializer(many=True),
    )
    def get(self, request, *args, **kwargs):
        qs = self.scope_queryset(Account.objects.filter(is_active=True)).order_by("code")
        return Response(AccountListSerializer(qs, many=True).data)

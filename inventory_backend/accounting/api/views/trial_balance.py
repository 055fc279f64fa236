# accounting/api/views/trial_balance.py

"""
TRIAL BALANCE API VIEW (READ-ONLY)

GET /api/accounting/trial-balance/?as_of_date=2026-01-31
"""

from __future__ import annotations

from datetime import datetime, time

from django.utils import timezone
from django.utils.dateparse import parse_date
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounting.api.serializers import TrialBalanceSerializer
from accounting.services.trial_balance_service import TrialBalanceService
from permissions.context import RequestContextMixin
from permissions.roles import CAP_ACCOUNTING_VIEW, HasCapability


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(
            name="as_of_date",
            type=str,
            location=OpenApiParameter.QUERY,
            required=False,
            description="End-of-day snapshot (YYYY-MM-DD). Defaults to now.",
        ),
    ],
    responses={200: TrialBalanceSerializer},
)
class TrialBalanceView(RequestContextMixin, APIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_ACCOUNTING_VIEW

    def get(self, request):
        as_of = None
        raw = request.query_params.get("as_of_date")
        if raw:
            day = parse_date(raw)
            if day is None:
                raise ValidationError({"as_of_date": "Use YYYY-MM-DD"})
            as_of = timezone.make_aware(
                datetime.combine(day, time(23, 59, 59)),
                timezone.get_current_timezone(),
            )

        data = TrialBalanceService().generate(company_id=self.ctx.company_id, as_of=as_of)
        return Response(TrialBalanceSerializer(data).data)

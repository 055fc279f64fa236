# accounting/services/trial_balance_service.py

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from django.db.models import Sum
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry

TWOPLACES = Decimal("0.01")


def _q2(amount: Decimal) -> Decimal:
    return (amount or Decimal("0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


class TrialBalanceService:
    """
    Trial Balance computation service.

    Guarantees:
    - Scopes to one company's ACTIVE accounts
    - Uses POSTED journal_entry.posted_at as accounting timeline
    - Avoids N+1 queries by aggregating in bulk
    """

    def generate(self, *, company_id, as_of=None):
        cutoff = as_of or timezone.now()
        if timezone.is_naive(cutoff):
            cutoff = timezone.make_aware(cutoff, timezone.get_current_timezone())

        accounts = list(
            Account.objects.filter(company_id=company_id, is_active=True)
            .only("id", "code", "name", "account_type")
            .order_by("code")
        )

        rows = (
            LedgerEntry.objects.filter(
                account__in=accounts,
                journal_entry__company_id=company_id,
                journal_entry__is_posted=True,
                journal_entry__posted_at__lte=cutoff,
            )
            .values("account_id", "entry_type")
            .annotate(total=Sum("amount"))
        )

        totals = {}
        for r in rows:
            totals[(r["account_id"], r["entry_type"])] = _q2(r["total"])

        accounts_output = []
        total_debit = Decimal("0.00")
        total_credit = Decimal("0.00")

        for acc in accounts:
            debit = totals.get((acc.id, LedgerEntry.DEBIT), Decimal("0.00"))
            credit = totals.get((acc.id, LedgerEntry.CREDIT), Decimal("0.00"))
            if not debit and not credit:
                continue

            accounts_output.append(
                {
                    "account_id": acc.id,
                    "account_code": acc.code,
                    "account_name": acc.name,
                    "account_type": acc.account_type,
                    "debit": debit,
                    "credit": credit,
                    "balance": debit - credit,
                }
            )
            total_debit += debit
            total_credit += credit

        return {
            "as_of": cutoff,
            "accounts": accounts_output,
            "totals": {
                "debit": total_debit,
                "credit": total_credit,
                "balanced": total_debit == total_credit,
            },
        }

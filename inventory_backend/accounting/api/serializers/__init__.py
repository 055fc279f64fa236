# accounting/api/serializers/__init__.py

from accounting.api.serializers.accounts import AccountListSerializer
from accounting.api.serializers.journal_entries import JournalEntrySerializer
from accounting.api.serializers.ledger_entries import LedgerEntrySerializer
from accounting.api.serializers.trial_balance import TrialBalanceSerializer

__all__ = [
    "AccountListSerializer",
    "JournalEntrySerializer",
    "LedgerEntrySerializer",
    "TrialBalanceSerializer",
]

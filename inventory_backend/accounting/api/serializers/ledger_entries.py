# accounting/api/serializers/ledger_entries.py

from rest_framework import serializers

from accounting.models.ledger import LedgerEntry


class LedgerEntrySerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)
    reference = serializers.CharField(source="journal_entry.reference", read_only=True)
    posted_at = serializers.DateTimeField(source="journal_entry.posted_at", read_only=True)

    class Meta:
        model = LedgerEntry
        fields = (
            "id",
            "journal_entry",
            "reference",
            "posted_at",
            "account",
            "account_code",
            "account_name",
            "entry_type",
            "amount",
            "created_at",
        )
        read_only_fields = fields

# accounting/tests/test_journal_integrity.py

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from accounting.models import Account, JournalEntry, LedgerEntry
from accounting.services.account_resolver import (
    DEFAULT_CHART,
    ensure_default_chart,
    get_inventory_account,
)
from accounting.services.exceptions import (
    AccountResolutionError,
    IdempotencyError,
    JournalEntryCreationError,
)
from accounting.services.journal_entry_service import create_journal_entry
from inventory.tests.factories import make_company


class JournalIntegrityTests(TestCase):
    def setUp(self):
        self.company = make_company()
        ensure_default_chart(self.company)
        self.cash = Account.objects.get(company=self.company, code="A-1000")
        self.revenue = Account.objects.get(company=self.company, code="R-4000")

    def _post(self, amount="10.00", **kwargs):
        return create_journal_entry(
            company_id=self.company.id,
            description="Test sale",
            postings=[
                {"account": self.cash, "debit": Decimal(amount)},
                {"account": self.revenue, "credit": Decimal(amount)},
            ],
            **kwargs,
        )

    def test_balanced_entry_creates_ledger_lines(self):
        entry = self._post()

        lines = LedgerEntry.objects.filter(journal_entry=entry)
        self.assertEqual(lines.count(), 2)
        self.assertEqual(
            sorted(lines.values_list("entry_type", flat=True)),
            [LedgerEntry.CREDIT, LedgerEntry.DEBIT],
        )

    def test_unbalanced_entry_is_rejected(self):
        with self.assertRaises(JournalEntryCreationError):
            create_journal_entry(
                company_id=self.company.id,
                description="Broken",
                postings=[
                    {"account": self.cash, "debit": Decimal("10.00")},
                    {"account": self.revenue, "credit": Decimal("9.99")},
                ],
            )
        self.assertFalse(JournalEntry.objects.exists())

    def test_posting_with_both_sides_is_rejected(self):
        with self.assertRaises(JournalEntryCreationError):
            create_journal_entry(
                company_id=self.company.id,
                description="Broken",
                postings=[
                    {"account": self.cash, "debit": Decimal("1"), "credit": Decimal("1")},
                ],
            )

    def test_reference_is_idempotent_per_company(self):
        self._post(reference_type="pos_sale", reference_id="abc")

        with self.assertRaises(IdempotencyError):
            self._post(reference_type="pos_sale", reference_id="abc")

        self.assertEqual(JournalEntry.objects.filter(reference="pos_sale:abc").count(), 1)

    def test_accounts_from_another_company_are_rejected(self):
        other = make_company("OTHER", "Other Co")
        ensure_default_chart(other)
        foreign_cash = Account.objects.get(company=other, code="A-1000")

        with self.assertRaises(JournalEntryCreationError):
            create_journal_entry(
                company_id=self.company.id,
                description="Cross-tenant",
                postings=[
                    {"account": foreign_cash, "debit": Decimal("5")},
                    {"account": self.revenue, "credit": Decimal("5")},
                ],
            )

    def test_journal_and_ledger_rows_are_immutable(self):
        entry = self._post()
        line = entry.ledger_entries.first()

        with self.assertRaises(ValidationError):
            entry.save()
        with self.assertRaises(ValidationError):
            entry.delete()
        with self.assertRaises(ValidationError):
            line.save()
        with self.assertRaises(ValidationError):
            line.delete()


class AccountResolverTests(TestCase):
    def test_seeding_is_idempotent(self):
        company = make_company()

        created = ensure_default_chart(company)
        self.assertEqual(len(created), len(DEFAULT_CHART))
        self.assertEqual(ensure_default_chart(company), [])
        self.assertEqual(Account.objects.filter(company=company).count(), len(DEFAULT_CHART))

    def test_missing_account_hard_fails(self):
        company = make_company()
        with self.assertRaises(AccountResolutionError) as cm:
            get_inventory_account(company.id)
        self.assertIn("A-1200", str(cm.exception))

    def test_inactive_account_is_not_resolved(self):
        company = make_company()
        ensure_default_chart(company)
        Account.objects.filter(company=company, code="A-1200").update(is_active=False)

        with self.assertRaises(AccountResolutionError):
            get_inventory_account(company.id)

# accounting/tests/test_posting_rules.py

from __future__ import annotations

import uuid
from decimal import Decimal

from django.test import TestCase, override_settings

from accounting.models import JournalEntry
from accounting.services.account_resolver import ensure_default_chart
from accounting.services.posting import post_best_effort
from accounting.services.posting_rules import (
    post_pos_cogs,
    post_pos_sale,
    post_pos_void,
    post_purchase_receipt,
    post_stock_adjustment,
)
from inventory.tests.factories import make_company


def _lines(entry):
    return {
        (row.account.code, row.entry_type): row.amount
        for row in entry.ledger_entries.select_related("account")
    }


class PostingRuleTests(TestCase):
    def setUp(self):
        self.company = make_company()
        ensure_default_chart(self.company)

    def test_purchase_receipt_debits_inventory_credits_payables(self):
        entry = post_purchase_receipt(
            company_id=self.company.id,
            receipt_id=uuid.uuid4(),
            receipt_code="GRN-2026-0001",
            amount=Decimal("150.00"),
        )
        self.assertEqual(
            _lines(entry),
            {
                ("A-1200", "DEBIT"): Decimal("150.00"),
                ("L-2000", "CREDIT"): Decimal("150.00"),
            },
        )

    def test_adjustment_gain_and_loss(self):
        gain = post_stock_adjustment(
            company_id=self.company.id,
            adjustment_id=uuid.uuid4(),
            adjustment_code="ADJ-2026-0001",
            net_value=Decimal("20"),
        )
        loss = post_stock_adjustment(
            company_id=self.company.id,
            adjustment_id=uuid.uuid4(),
            adjustment_code="ADJ-2026-0002",
            net_value=Decimal("-7.5"),
        )

        self.assertEqual(
            _lines(gain),
            {("A-1200", "DEBIT"): Decimal("20.00"), ("E-5100", "CREDIT"): Decimal("20.00")},
        )
        self.assertEqual(
            _lines(loss),
            {("E-5100", "DEBIT"): Decimal("7.50"), ("A-1200", "CREDIT"): Decimal("7.50")},
        )

    def test_zero_amounts_post_nothing(self):
        self.assertIsNone(
            post_stock_adjustment(
                company_id=self.company.id,
                adjustment_id=uuid.uuid4(),
                adjustment_code="ADJ-2026-0003",
                net_value=Decimal("0"),
            )
        )
        self.assertIsNone(
            post_pos_cogs(
                company_id=self.company.id,
                sale_id=uuid.uuid4(),
                sale_code="POS-2026-0001",
                cost=Decimal("0"),
            )
        )
        self.assertFalse(JournalEntry.objects.exists())

    def test_pos_sale_with_tax_and_its_void(self):
        sale_id = uuid.uuid4()
        sale = post_pos_sale(
            company_id=self.company.id,
            sale_id=sale_id,
            sale_code="POS-2026-0001",
            total_amount=Decimal("110.00"),
            tax_amount=Decimal("10.00"),
        )
        self.assertEqual(
            _lines(sale),
            {
                ("A-1000", "DEBIT"): Decimal("110.00"),
                ("R-4000", "CREDIT"): Decimal("100.00"),
                ("L-2100", "CREDIT"): Decimal("10.00"),
            },
        )

        void = post_pos_void(
            company_id=self.company.id,
            sale_id=sale_id,
            sale_code="POS-2026-0001",
            total_amount=Decimal("110.00"),
            tax_amount=Decimal("10.00"),
        )
        self.assertEqual(
            _lines(void),
            {
                ("R-4000", "DEBIT"): Decimal("100.00"),
                ("L-2100", "DEBIT"): Decimal("10.00"),
                ("A-1000", "CREDIT"): Decimal("110.00"),
            },
        )

    def test_cogs_and_reversal(self):
        sale_id = uuid.uuid4()
        cogs = post_pos_cogs(
            company_id=self.company.id, sale_id=sale_id, sale_code="POS-1", cost=Decimal("40")
        )
        back = post_pos_cogs(
            company_id=self.company.id,
            sale_id=sale_id,
            sale_code="POS-1",
            cost=Decimal("40"),
            reverse=True,
        )
        self.assertEqual(cogs.reference, f"pos_cogs:{sale_id}")
        self.assertEqual(back.reference, f"pos_void_cogs:{sale_id}")
        self.assertEqual(_lines(back)[("A-1200", "DEBIT")], Decimal("40.00"))


class BestEffortPostingTests(TestCase):
    def setUp(self):
        self.company = make_company()

    def test_disabled_posting_is_skipped(self):
        with override_settings(ACCOUNTING_POSTING_ENABLED=False):
            outcome = post_best_effort(
                "AP posting",
                post_purchase_receipt,
                company_id=self.company.id,
                receipt_id=uuid.uuid4(),
                receipt_code="GRN-1",
                amount=Decimal("10"),
            )
        self.assertEqual(outcome.journal_entries, [])
        self.assertEqual(outcome.warnings, [])

    @override_settings(ACCOUNTING_POSTING_ENABLED=True)
    def test_missing_accounts_become_warnings(self):
        with self.assertLogs("accounting.services.posting", level="WARNING"):
            outcome = post_best_effort(
                "AP posting",
                post_purchase_receipt,
                company_id=self.company.id,
                receipt_id=uuid.uuid4(),
                receipt_code="GRN-1",
                amount=Decimal("10"),
            )

        self.assertEqual(len(outcome.warnings), 1)
        self.assertTrue(outcome.warnings[0].startswith("AP posting failed"))
        self.assertFalse(JournalEntry.objects.exists())

    @override_settings(ACCOUNTING_POSTING_ENABLED=True)
    def test_enabled_posting_returns_entry(self):
        ensure_default_chart(self.company)
        outcome = post_best_effort(
            "AP posting",
            post_purchase_receipt,
            company_id=self.company.id,
            receipt_id=uuid.uuid4(),
            receipt_code="GRN-1",
            amount=Decimal("10"),
        )
        self.assertEqual(len(outcome.journal_entries), 1)
        self.assertEqual(outcome.warnings, [])

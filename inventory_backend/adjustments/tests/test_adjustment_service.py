from datetime import date
from decimal import Decimal

from django.test import TestCase, override_settings

from accounting.models import JournalEntry
from accounting.services.account_resolver import ensure_default_chart
from adjustments.models import StockAdjustment
from adjustments.services.adjustment_service import (
    AdjustmentLine,
    approve_adjustment,
    cancel_adjustment,
    create_adjustment,
    delete_adjustment,
    get_adjustment,
    post_adjustment,
    update_draft,
)
from inventory.models import StockTransaction, StockTransactionItem
from inventory.services.balances import read_balance
from inventory.services.engine import MovementLine, post_movement
from inventory.services.exceptions import (
    DocumentStateError,
    InsufficientStock,
    NotFound,
    StockValidationError,
)
from inventory.tests.factories import (
    ctx_for,
    make_company,
    make_item,
    make_package,
    make_user,
    make_warehouse,
    stock_in,
)


class StockAdjustmentServiceTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.user = make_user(self.company)
        self.ctx = ctx_for(self.user)
        self.warehouse = make_warehouse(self.company, "WH-A")
        self.item = make_item(self.company, "ITEM-1")
        self.other = make_item(self.company, "ITEM-2")

        stock_in(self.ctx, self.item, self.warehouse, 10, unit_cost=Decimal("2"))

    def _create(self, lines, **extra):
        return create_adjustment(
            self.ctx,
            adjustment_type=extra.pop("adjustment_type", StockAdjustment.TYPE_PHYSICAL_COUNT),
            warehouse=self.warehouse,
            reason=extra.pop("reason", "Cycle count"),
            adjustment_date=date(2026, 3, 1),
            lines=lines,
            **extra,
        )

    def test_create_snapshots_current_balance_and_difference(self):
        adj = self._create([AdjustmentLine(item=self.item, adjusted_qty=Decimal("7"))])

        self.assertEqual(adj.status, StockAdjustment.STATUS_DRAFT)
        self.assertEqual(adj.adjustment_code, "ADJ-2026-0001")

        line = adj.items.get()
        self.assertEqual(line.current_qty, Decimal("10"))
        self.assertEqual(line.adjusted_qty, Decimal("7"))
        self.assertEqual(line.difference, Decimal("-3"))
        # unit cost falls back to the latest ledger rate
        self.assertEqual(line.unit_cost, Decimal("2"))
        self.assertEqual(adj.total_value, Decimal("-6"))

        # drafts never touch balances
        self.assertEqual(read_balance(self.ctx, self.item, self.warehouse), Decimal("10"))

    def test_package_target_is_converted_to_base_units(self):
        box = make_package(self.item, "Box", Decimal("12"))
        adj = self._create([AdjustmentLine(item=self.item, adjusted_qty=Decimal("2"), package=box)])

        line = adj.items.get()
        self.assertEqual(line.input_qty, Decimal("2"))
        self.assertEqual(line.conversion_factor, Decimal("12"))
        self.assertEqual(line.adjusted_qty, Decimal("24"))
        self.assertEqual(line.difference, Decimal("14"))

    def test_zero_target_is_allowed(self):
        adj = self._create([AdjustmentLine(item=self.item, adjusted_qty=Decimal("0"))])
        self.assertEqual(adj.items.get().difference, Decimal("-10"))

    def test_reason_and_lines_are_required(self):
        with self.assertRaises(StockValidationError):
            self._create([AdjustmentLine(item=self.item, adjusted_qty=Decimal("1"))], reason="  ")
        with self.assertRaises(StockValidationError):
            self._create([])

    def test_post_moves_balances_by_difference(self):
        adj = self._create(
            [
                AdjustmentLine(item=self.item, adjusted_qty=Decimal("7")),
                AdjustmentLine(item=self.other, adjusted_qty=Decimal("5"), unit_cost=Decimal("4")),
            ]
        )

        adj, outcome = post_adjustment(self.ctx, adj)

        self.assertEqual(adj.status, StockAdjustment.STATUS_POSTED)
        self.assertIsNotNone(adj.posted_at)
        self.assertEqual(outcome.warnings, [])
        self.assertEqual(read_balance(self.ctx, self.item, self.warehouse), Decimal("7"))
        self.assertEqual(read_balance(self.ctx, self.other, self.warehouse), Decimal("5"))

        txn_in = adj.stock_transaction_in
        txn_out = adj.stock_transaction_out
        self.assertEqual(txn_in.transaction_type, "in")
        self.assertEqual(txn_out.transaction_type, "out")
        for txn in (txn_in, txn_out):
            self.assertEqual(txn.status, StockTransaction.STATUS_POSTED)
            self.assertEqual(txn.reference_type, "stock_adjustment")
            self.assertEqual(txn.reference_id, adj.pk)

        gain = StockTransactionItem.objects.get(transaction=txn_in)
        self.assertEqual(gain.quantity, Decimal("5"))
        self.assertEqual(gain.valuation_rate, Decimal("4"))
        loss = StockTransactionItem.objects.get(transaction=txn_out)
        self.assertEqual(loss.quantity, Decimal("-3"))
        self.assertEqual(loss.qty_after, Decimal("7"))

    def test_gain_only_adjustment_has_no_out_transaction(self):
        adj = self._create([AdjustmentLine(item=self.item, adjusted_qty=Decimal("12"))])
        adj, _ = post_adjustment(self.ctx, adj)

        self.assertIsNotNone(adj.stock_transaction_in_id)
        self.assertIsNone(adj.stock_transaction_out_id)

    def test_post_rejects_all_zero_differences(self):
        adj = self._create([AdjustmentLine(item=self.item, adjusted_qty=Decimal("10"))])

        with self.assertRaises(StockValidationError) as cm:
            post_adjustment(self.ctx, adj)
        self.assertEqual(cm.exception.message, "No net adjustment (all differences are zero)")

        adj.refresh_from_db()
        self.assertEqual(adj.status, StockAdjustment.STATUS_DRAFT)

    def test_post_twice_is_rejected(self):
        adj = self._create([AdjustmentLine(item=self.item, adjusted_qty=Decimal("4"))])
        post_adjustment(self.ctx, adj)

        with self.assertRaises(DocumentStateError):
            post_adjustment(self.ctx, adj)
        self.assertEqual(read_balance(self.ctx, self.item, self.warehouse), Decimal("4"))

    def test_failed_post_rolls_back_every_line(self):
        adj = self._create(
            [
                AdjustmentLine(item=self.other, adjusted_qty=Decimal("3")),
                AdjustmentLine(item=self.item, adjusted_qty=Decimal("2")),
            ]
        )
        # balance drops after the snapshot; the -8 line can no longer post
        post_movement(
            self.ctx,
            transaction_type="out",
            warehouse=self.warehouse,
            lines=[MovementLine(item=self.item, quantity=Decimal("5"))],
        )

        with self.assertRaises(InsufficientStock):
            post_adjustment(self.ctx, adj)

        adj.refresh_from_db()
        self.assertEqual(adj.status, StockAdjustment.STATUS_DRAFT)
        self.assertIsNone(adj.stock_transaction_in_id)
        self.assertEqual(read_balance(self.ctx, self.other, self.warehouse), Decimal("0"))
        self.assertEqual(read_balance(self.ctx, self.item, self.warehouse), Decimal("5"))
        self.assertFalse(
            StockTransaction.objects.filter(reference_type="stock_adjustment").exists()
        )

    def test_approve_then_post(self):
        adj = self._create([AdjustmentLine(item=self.item, adjusted_qty=Decimal("9"))])
        adj = approve_adjustment(self.ctx, adj)
        self.assertEqual(adj.status, StockAdjustment.STATUS_APPROVED)
        self.assertEqual(adj.approved_by, self.user)

        with self.assertRaises(DocumentStateError):
            update_draft(self.ctx, adj, reason="late edit")

        adj, _ = post_adjustment(self.ctx, adj)
        self.assertEqual(adj.status, StockAdjustment.STATUS_POSTED)

        with self.assertRaises(DocumentStateError):
            cancel_adjustment(self.ctx, adj)

    def test_update_draft_replaces_lines(self):
        adj = self._create([AdjustmentLine(item=self.item, adjusted_qty=Decimal("9"))])

        adj = update_draft(
            self.ctx,
            adj,
            reason="Recount",
            lines=[AdjustmentLine(item=self.item, adjusted_qty=Decimal("15"))],
        )

        self.assertEqual(adj.reason, "Recount")
        line = adj.items.get()
        self.assertEqual(line.difference, Decimal("5"))
        self.assertEqual(adj.total_value, Decimal("10"))

    def test_cancel_and_delete(self):
        adj = self._create([AdjustmentLine(item=self.item, adjusted_qty=Decimal("9"))])
        adj = cancel_adjustment(self.ctx, adj)
        self.assertEqual(adj.status, StockAdjustment.STATUS_CANCELLED)

        with self.assertRaises(DocumentStateError) as cm:
            delete_adjustment(self.ctx, adj)
        self.assertEqual(cm.exception.message, "Only draft adjustments can be deleted")

        draft = self._create([AdjustmentLine(item=self.item, adjusted_qty=Decimal("9"))])
        delete_adjustment(self.ctx, draft)
        with self.assertRaises(NotFound):
            get_adjustment(self.ctx, draft.pk)

    def test_other_company_cannot_see_adjustment(self):
        adj = self._create([AdjustmentLine(item=self.item, adjusted_qty=Decimal("9"))])

        other_company = make_company("OTHER", "Other Co")
        outsider = ctx_for(make_user(other_company, email="other@example.com"))

        with self.assertRaises(NotFound):
            get_adjustment(outsider, adj.pk)


@override_settings(ACCOUNTING_POSTING_ENABLED=True)
class StockAdjustmentPostingTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.ctx = ctx_for(make_user(self.company))
        self.warehouse = make_warehouse(self.company, "WH-A")
        self.item = make_item(self.company, "ITEM-1")
        stock_in(self.ctx, self.item, self.warehouse, 10, unit_cost=Decimal("2"))

    def _post(self, adjusted_qty):
        adj = create_adjustment(
            self.ctx,
            adjustment_type=StockAdjustment.TYPE_DECREASE,
            warehouse=self.warehouse,
            reason="Damaged",
            lines=[AdjustmentLine(item=self.item, adjusted_qty=Decimal(adjusted_qty))],
        )
        return post_adjustment(self.ctx, adj)

    def test_loss_posts_expense_against_inventory(self):
        ensure_default_chart(self.company)

        adj, outcome = self._post("6")

        self.assertEqual(outcome.warnings, [])
        entry = JournalEntry.objects.get(reference=f"stock_adjustment:{adj.pk}")
        lines = {(le.account.code, le.entry_type): le.amount for le in entry.ledger_entries.all()}
        self.assertEqual(lines[("E-5100", "DEBIT")], Decimal("8.00"))
        self.assertEqual(lines[("A-1200", "CREDIT")], Decimal("8.00"))

    def test_missing_chart_is_a_warning_not_a_failure(self):
        with self.assertLogs("accounting.services.posting", "WARNING"):
            adj, outcome = self._post("6")

        self.assertEqual(adj.status, StockAdjustment.STATUS_POSTED)
        self.assertEqual(len(outcome.warnings), 1)
        self.assertIn("Adjustment GL posting failed", outcome.warnings[0])
        self.assertEqual(read_balance(self.ctx, self.item, self.warehouse), Decimal("6"))

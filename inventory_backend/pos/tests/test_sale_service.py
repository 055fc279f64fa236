from decimal import Decimal

from django.test import TestCase, override_settings

from accounting.models import JournalEntry
from accounting.services.account_resolver import ensure_default_chart
from inventory.models import ItemLocation, StockTransaction
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
    make_location,
    make_user,
    make_warehouse,
    stock_in,
)
from pos.models import PosTransaction
from pos.services.sale_service import (
    PosSaleError,
    SaleLine,
    SalePayment,
    compute_totals,
    get_sale,
    record_sale,
    void_sale,
)


class ComputeTotalsTests(TestCase):
    def test_discount_is_percentage_and_tax_applies_after_discount(self):
        totals = compute_totals(
            [SaleLine(item=None, quantity=Decimal("3"), unit_price=Decimal("10"), discount=Decimal("10"))],
            Decimal("12"),
        )

        self.assertEqual(totals.subtotal, Decimal("30"))
        self.assertEqual(totals.total_discount, Decimal("3"))
        self.assertEqual(totals.total_tax, Decimal("3.24"))
        self.assertEqual(totals.total_amount, Decimal("30.24"))
        self.assertEqual(totals.line_totals, (Decimal("27"),))


class PosSaleServiceTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.warehouse = make_warehouse(self.company, "VAN-1")
        self.cashier = make_user(
            self.company,
            email="cashier@example.com",
            role="cashier",
            first_name="Cara",
            last_name="Cashier",
            van_warehouse=self.warehouse,
        )
        self.ctx = ctx_for(self.cashier)
        self.item = make_item(self.company, "ITEM-1")

        stock_in(self.ctx, self.item, self.warehouse, 10, unit_cost=Decimal("2"))

    def _sell(self, quantity="3", paid="50", **extra):
        return record_sale(
            self.ctx,
            lines=[SaleLine(item=self.item, quantity=Decimal(quantity), unit_price=Decimal("10"))],
            payments=[SalePayment(method="cash", amount=Decimal(paid))],
            **extra,
        )

    def test_sale_moves_stock_out_of_van_warehouse(self):
        sale, outcome = self._sell()

        self.assertEqual(sale.status, PosTransaction.STATUS_COMPLETED)
        self.assertTrue(sale.transaction_code.startswith("POS-"))
        self.assertEqual(sale.warehouse_id, self.warehouse.pk)
        self.assertEqual(sale.total_amount, Decimal("30"))
        self.assertEqual(sale.change_amount, Decimal("20"))
        self.assertEqual(sale.cashier_name, "Cara Cashier")
        self.assertEqual(outcome.warnings, [])

        txn = StockTransaction.objects.get(pk=sale.stock_transaction_id)
        self.assertEqual(txn.transaction_type, "out")
        self.assertEqual(txn.reference_type, "pos_sale")
        self.assertEqual(txn.reference_id, sale.pk)
        self.assertEqual(read_balance(self.ctx, self.item, self.warehouse), Decimal("7"))

    def test_cost_of_goods_comes_from_ledger_rate(self):
        sale, _ = self._sell(quantity="4")
        self.assertEqual(sale.total_cost, Decimal("8"))

    def test_insufficient_payment_writes_nothing(self):
        with self.assertRaisesMessage(PosSaleError, "Insufficient payment amount"):
            self._sell(paid="29.99")

        self.assertFalse(PosTransaction.objects.exists())
        self.assertEqual(read_balance(self.ctx, self.item, self.warehouse), Decimal("10"))

    def test_insufficient_stock_rolls_back_sale(self):
        with self.assertRaises(InsufficientStock):
            self._sell(quantity="11", paid="500")

        self.assertFalse(PosTransaction.objects.exists())
        self.assertEqual(read_balance(self.ctx, self.item, self.warehouse), Decimal("10"))

    def test_explicit_warehouse_overrides_van(self):
        store = make_warehouse(self.company, "STORE-1")
        stock_in(self.ctx, self.item, store, 5, unit_cost=Decimal("2"))

        sale, _ = self._sell(quantity="2", warehouse=store)

        self.assertEqual(sale.warehouse_id, store.pk)
        self.assertEqual(read_balance(self.ctx, self.item, store), Decimal("3"))
        self.assertEqual(read_balance(self.ctx, self.item, self.warehouse), Decimal("10"))

    def test_sale_from_bin_stocked_by_transfer(self):
        store = make_warehouse(self.company, "STORE-1")
        shelf = make_location(store, "SHELF-1")
        post_movement(
            self.ctx,
            transaction_type="transfer",
            warehouse=self.warehouse,
            to_warehouse=store,
            to_location=shelf,
            lines=[MovementLine(item=self.item, quantity=Decimal("6"))],
        )

        sale, _ = self._sell(quantity="5", warehouse=store)

        self.assertEqual(sale.status, PosTransaction.STATUS_COMPLETED)
        self.assertEqual(read_balance(self.ctx, self.item, store), Decimal("1"))
        self.assertEqual(
            ItemLocation.objects.get(item=self.item, location=shelf).qty_on_hand, Decimal("1")
        )

    def test_user_without_warehouse_is_rejected(self):
        other = make_user(self.company, email="nowh@example.com", role="cashier")

        with self.assertRaisesMessage(StockValidationError, "No warehouse assigned"):
            record_sale(
                ctx_for(other),
                lines=[SaleLine(item=self.item, quantity=Decimal("1"), unit_price=Decimal("1"))],
                payments=[SalePayment(method="cash", amount=Decimal("1"))],
            )

    def test_items_and_payments_are_required(self):
        with self.assertRaisesMessage(StockValidationError, "Items are required"):
            record_sale(self.ctx, lines=[], payments=[SalePayment(method="cash", amount=Decimal("1"))])
        with self.assertRaisesMessage(StockValidationError, "Payments are required"):
            record_sale(
                self.ctx,
                lines=[SaleLine(item=self.item, quantity=Decimal("1"), unit_price=Decimal("1"))],
                payments=[],
            )

    def test_void_restores_stock_once(self):
        sale, _ = self._sell()

        voided, outcome = void_sale(self.ctx, sale)

        self.assertEqual(voided.status, PosTransaction.STATUS_VOIDED)
        self.assertIsNotNone(voided.voided_at)
        self.assertEqual(outcome.warnings, [])
        txn = StockTransaction.objects.get(pk=voided.void_stock_transaction_id)
        self.assertEqual(txn.transaction_type, "in")
        self.assertEqual(txn.reference_type, "pos_void")
        self.assertEqual(read_balance(self.ctx, self.item, self.warehouse), Decimal("10"))

        with self.assertRaisesMessage(DocumentStateError, "Transaction is already voided"):
            void_sale(self.ctx, voided)
        self.assertEqual(read_balance(self.ctx, self.item, self.warehouse), Decimal("10"))

    def test_other_company_cannot_void(self):
        sale, _ = self._sell()
        other = make_company(code="OTHER", name="Other Co")
        other_ctx = ctx_for(make_user(other, email="other@example.com"))

        with self.assertRaisesMessage(NotFound, "Transaction not found"):
            get_sale(other_ctx, sale.pk)

    @override_settings(ACCOUNTING_POSTING_ENABLED=True)
    def test_sale_and_void_post_gl(self):
        ensure_default_chart(self.company)

        sale, outcome = record_sale(
            self.ctx,
            lines=[SaleLine(item=self.item, quantity=Decimal("3"), unit_price=Decimal("10"))],
            payments=[SalePayment(method="cash", amount=Decimal("40"))],
            tax_rate=Decimal("10"),
        )
        self.assertEqual(outcome.warnings, [])
        self.assertEqual(len(outcome.journal_entries), 2)

        sale_entry = JournalEntry.objects.get(reference=f"pos_sale:{sale.pk}")
        lines = {(le.account.code, le.entry_type): le.amount for le in sale_entry.ledger_entries.all()}
        self.assertEqual(lines[("A-1000", "DEBIT")], Decimal("33.00"))
        self.assertEqual(lines[("R-4000", "CREDIT")], Decimal("30.00"))
        self.assertEqual(lines[("L-2100", "CREDIT")], Decimal("3.00"))

        cogs_entry = JournalEntry.objects.get(reference=f"pos_cogs:{sale.pk}")
        lines = {(le.account.code, le.entry_type): le.amount for le in cogs_entry.ledger_entries.all()}
        self.assertEqual(lines[("C-5000", "DEBIT")], Decimal("6.00"))
        self.assertEqual(lines[("A-1200", "CREDIT")], Decimal("6.00"))

        _, outcome = void_sale(self.ctx, sale)
        self.assertEqual(outcome.warnings, [])
        self.assertTrue(JournalEntry.objects.filter(reference=f"pos_void:{sale.pk}").exists())
        self.assertTrue(JournalEntry.objects.filter(reference=f"pos_void_cogs:{sale.pk}").exists())

    @override_settings(ACCOUNTING_POSTING_ENABLED=True)
    def test_gl_failure_is_reported_not_raised(self):
        sale, outcome = self._sell()

        self.assertEqual(sale.status, PosTransaction.STATUS_COMPLETED)
        self.assertEqual(len(outcome.warnings), 2)
        self.assertTrue(outcome.warnings[0].startswith("Sale GL posting failed"))
        self.assertTrue(outcome.warnings[1].startswith("COGS posting failed"))
        self.assertEqual(read_balance(self.ctx, self.item, self.warehouse), Decimal("7"))

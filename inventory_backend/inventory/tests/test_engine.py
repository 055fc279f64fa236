# inventory/tests/test_engine.py

from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings

from inventory.models import (
    DEFAULT_LOCATION_CODE,
    Item,
    ItemLocation,
    ItemWarehouse,
    StockTransaction,
    StockTransactionItem,
)
from inventory.services.balances import read_balance
from inventory.services.delta import signed_delta
from inventory.services.document_codes import next_document_code
from inventory.services.engine import (
    MovementLine,
    create_draft,
    delete_draft,
    post_draft,
    post_movement,
)
from inventory.services.exceptions import (
    DocumentStateError,
    InsufficientStock,
    InvalidQuantity,
    InvalidTransactionType,
    NotFound,
    StockValidationError,
)
from inventory.tests.factories import (
    ctx_for,
    make_company,
    make_item,
    make_location,
    make_package,
    make_user,
    make_warehouse,
    stock_in,
)


class SignedDeltaTests(TestCase):
    def test_signs_per_type_and_leg(self):
        self.assertEqual(signed_delta("in", 5), Decimal("5"))
        self.assertEqual(signed_delta("out", 5), Decimal("-5"))
        self.assertEqual(signed_delta("transfer", 5), Decimal("-5"))
        self.assertEqual(signed_delta("transfer", 5, leg="destination"), Decimal("5"))

    def test_rejects_non_positive_quantity(self):
        with self.assertRaises(InvalidQuantity):
            signed_delta("in", 0)
        with self.assertRaises(InvalidQuantity):
            signed_delta("out", Decimal("-1"))

    def test_rejects_unknown_type(self):
        with self.assertRaises(InvalidTransactionType):
            signed_delta("adjust", 1)


class StockEngineTests(TestCase):
    """
    GUARANTEES:
    - Balances never go negative on outbound moves (no partial writes)
    - Every balance change has a matching immutable ledger row
    - Transfers conserve the total across warehouses
    - Failures roll back everything, including earlier lines
    """

    def setUp(self):
        self.company = make_company()
        self.user = make_user(self.company)
        self.ctx = ctx_for(self.user)

        self.wh_a = make_warehouse(self.company, "WH-A")
        self.wh_b = make_warehouse(self.company, "WH-B")
        self.item = make_item(self.company, "ITEM-1", standard_cost=Decimal("2.50"))

    # --------------------------------------------------
    # Reader
    # --------------------------------------------------

    def test_read_balance_absent_is_zero_and_idempotent(self):
        self.assertEqual(read_balance(self.ctx, self.item, self.wh_a), Decimal("0"))
        self.assertFalse(ItemWarehouse.objects.exists())

        stock_in(self.ctx, self.item, self.wh_a, 7)
        first = read_balance(self.ctx, self.item, self.wh_a)
        second = read_balance(self.ctx, self.item, self.wh_a)
        self.assertEqual(first, Decimal("7"))
        self.assertEqual(first, second)

    # --------------------------------------------------
    # In / Out
    # --------------------------------------------------

    def test_stock_in_creates_balance_ledger_and_default_location(self):
        txn = stock_in(self.ctx, self.item, self.wh_a, 10, unit_cost=Decimal("4"))

        self.assertEqual(txn.status, StockTransaction.STATUS_POSTED)
        self.assertIsNotNone(txn.posted_at)
        self.assertEqual(read_balance(self.ctx, self.item, self.wh_a), Decimal("10"))

        entry = StockTransactionItem.objects.get(transaction=txn)
        self.assertEqual(entry.quantity, Decimal("10"))
        self.assertEqual(entry.qty_before, Decimal("0"))
        self.assertEqual(entry.qty_after, Decimal("10"))
        self.assertEqual(entry.valuation_rate, Decimal("4"))
        self.assertEqual(entry.stock_value_after, Decimal("40"))
        self.assertEqual(entry.location.code, DEFAULT_LOCATION_CODE)

        location_row = ItemLocation.objects.get(item=self.item, warehouse=self.wh_a)
        self.assertEqual(location_row.qty_on_hand, Decimal("10"))

    def test_insufficient_stock_rejects_without_partial_write(self):
        stock_in(self.ctx, self.item, self.wh_a, 10)
        txn_count = StockTransaction.objects.count()
        ledger_count = StockTransactionItem.objects.count()

        with self.assertRaises(InsufficientStock) as cm:
            post_movement(
                self.ctx,
                transaction_type="out",
                warehouse=self.wh_a,
                lines=[MovementLine(item=self.item, quantity=Decimal("15"))],
            )

        self.assertEqual(
            cm.exception.message,
            "Insufficient stock for item ITEM-1 in WH-A. Available: 10, Requested: 15",
        )
        self.assertEqual(read_balance(self.ctx, self.item, self.wh_a), Decimal("10"))
        self.assertEqual(StockTransaction.objects.count(), txn_count)
        self.assertEqual(StockTransactionItem.objects.count(), ledger_count)

    def test_out_of_absent_balance_is_insufficient(self):
        with self.assertRaises(InsufficientStock):
            post_movement(
                self.ctx,
                transaction_type="out",
                warehouse=self.wh_a,
                lines=[MovementLine(item=self.item, quantity=Decimal("1"))],
            )
        self.assertFalse(ItemWarehouse.objects.exists())

    @override_settings(INVENTORY_ALLOW_NEGATIVE_STOCK=True)
    def test_negative_stock_allowed_when_enabled(self):
        post_movement(
            self.ctx,
            transaction_type="out",
            warehouse=self.wh_a,
            lines=[MovementLine(item=self.item, quantity=Decimal("3"))],
        )
        self.assertEqual(read_balance(self.ctx, self.item, self.wh_a), Decimal("-3"))

    def test_multi_line_failure_rolls_back_earlier_lines(self):
        other = make_item(self.company, "ITEM-2")
        stock_in(self.ctx, self.item, self.wh_a, 5)

        with self.assertRaises(InsufficientStock):
            post_movement(
                self.ctx,
                transaction_type="out",
                warehouse=self.wh_a,
                lines=[
                    MovementLine(item=self.item, quantity=Decimal("2")),
                    MovementLine(item=other, quantity=Decimal("1")),
                ],
            )

        self.assertEqual(read_balance(self.ctx, self.item, self.wh_a), Decimal("5"))
        self.assertEqual(StockTransaction.objects.count(), 1)

    # --------------------------------------------------
    # Transfers
    # --------------------------------------------------

    def test_transfer_conserves_total_and_reuses_source_rate(self):
        stock_in(self.ctx, self.item, self.wh_a, 20, unit_cost=Decimal("3"))

        txn = post_movement(
            self.ctx,
            transaction_type="transfer",
            warehouse=self.wh_a,
            to_warehouse=self.wh_b,
            lines=[MovementLine(item=self.item, quantity=Decimal("8"))],
        )

        self.assertEqual(read_balance(self.ctx, self.item, self.wh_a), Decimal("12"))
        self.assertEqual(read_balance(self.ctx, self.item, self.wh_b), Decimal("8"))

        source, destination = StockTransactionItem.objects.filter(transaction=txn).order_by(
            "quantity"
        )
        self.assertEqual(source.quantity, Decimal("-8"))
        self.assertEqual(destination.quantity, Decimal("8"))
        self.assertEqual(source.valuation_rate, Decimal("3"))
        self.assertEqual(destination.valuation_rate, source.valuation_rate)

    def test_transfer_requires_distinct_destination(self):
        with self.assertRaises(StockValidationError):
            post_movement(
                self.ctx,
                transaction_type="transfer",
                warehouse=self.wh_a,
                to_warehouse=self.wh_a,
                lines=[MovementLine(item=self.item, quantity=Decimal("1"))],
            )

    # --------------------------------------------------
    # Ledger fidelity + valuation
    # --------------------------------------------------

    def test_ledger_matches_balance_after_each_write(self):
        stock_in(self.ctx, self.item, self.wh_a, 10, unit_cost=Decimal("2"))
        post_movement(
            self.ctx,
            transaction_type="out",
            warehouse=self.wh_a,
            lines=[MovementLine(item=self.item, quantity=Decimal("4"))],
        )

        last = StockTransactionItem.objects.filter(item=self.item).order_by("-created_at").first()
        balance = ItemWarehouse.objects.get(item=self.item, warehouse=self.wh_a)

        self.assertEqual(last.qty_after, balance.current_stock)
        self.assertEqual(last.qty_before + last.quantity, last.qty_after)
        self.assertEqual(last.stock_value_after, last.qty_after * last.valuation_rate)
        # no unit cost on the out line: previous ledger rate is reused
        self.assertEqual(last.valuation_rate, Decimal("2"))

    def test_valuation_falls_back_to_standard_cost(self):
        txn = stock_in(self.ctx, self.item, self.wh_a, 2)
        entry = txn.ledger_entries.get()
        self.assertEqual(entry.valuation_rate, Decimal("2.5"))

    def test_ledger_rows_are_immutable(self):
        txn = stock_in(self.ctx, self.item, self.wh_a, 1)
        entry = txn.ledger_entries.get()

        entry.notes = "edited"
        with self.assertRaises(ValidationError):
            entry.save()
        with self.assertRaises(ValidationError):
            entry.delete()

    def test_package_quantity_is_normalized(self):
        box = make_package(self.item, "Box", Decimal("12"))
        txn = post_movement(
            self.ctx,
            transaction_type="in",
            warehouse=self.wh_a,
            lines=[MovementLine(item=self.item, quantity=Decimal("2"), package=box)],
        )

        entry = txn.ledger_entries.get()
        self.assertEqual(entry.input_qty, Decimal("2"))
        self.assertEqual(entry.conversion_factor, Decimal("12"))
        self.assertEqual(entry.quantity, Decimal("24"))
        self.assertEqual(read_balance(self.ctx, self.item, self.wh_a), Decimal("24"))

    def test_package_of_another_item_is_rejected(self):
        other = make_item(self.company, "ITEM-2")
        box = make_package(other, "Box")

        with self.assertRaises(StockValidationError):
            post_movement(
                self.ctx,
                transaction_type="in",
                warehouse=self.wh_a,
                lines=[MovementLine(item=self.item, quantity=Decimal("1"), package=box)],
            )

    def test_non_stock_item_is_rejected(self):
        service = make_item(self.company, "SVC-1", item_type=Item.TYPE_NON_STOCK)
        with self.assertRaises(StockValidationError):
            stock_in(self.ctx, service, self.wh_a, 1)

    # --------------------------------------------------
    # Drafts
    # --------------------------------------------------

    def test_draft_has_no_balance_effect_until_posted(self):
        draft = create_draft(
            self.ctx,
            transaction_type="in",
            warehouse=self.wh_a,
            lines=[MovementLine(item=self.item, quantity=Decimal("6"))],
        )
        self.assertEqual(draft.status, StockTransaction.STATUS_DRAFT)
        self.assertEqual(read_balance(self.ctx, self.item, self.wh_a), Decimal("0"))

        posted = post_draft(self.ctx, draft)
        self.assertEqual(posted.status, StockTransaction.STATUS_POSTED)
        self.assertEqual(read_balance(self.ctx, self.item, self.wh_a), Decimal("6"))

        with self.assertRaises(DocumentStateError):
            post_draft(self.ctx, posted)

    def test_only_drafts_can_be_deleted(self):
        posted = stock_in(self.ctx, self.item, self.wh_a, 1)
        with self.assertRaises(DocumentStateError):
            delete_draft(self.ctx, posted)

        draft = create_draft(
            self.ctx,
            transaction_type="in",
            warehouse=self.wh_a,
            lines=[MovementLine(item=self.item, quantity=Decimal("1"))],
        )
        delete_draft(self.ctx, draft)
        draft.refresh_from_db()
        self.assertIsNotNone(draft.deleted_at)

        with self.assertRaises(NotFound):
            post_draft(self.ctx, draft)

    # --------------------------------------------------
    # Tenancy + codes
    # --------------------------------------------------

    def test_other_company_warehouse_is_not_found(self):
        other_company = make_company("OTHER", "Other Co")
        foreign_wh = make_warehouse(other_company, "WH-X")

        with self.assertRaises(NotFound):
            stock_in(self.ctx, self.item, foreign_wh, 1)

    def test_document_codes_are_sequential_per_prefix_and_year(self):
        on = date(2025, 3, 1)
        self.assertEqual(next_document_code(self.company.id, "ST", on_date=on), "ST-2025-0001")
        self.assertEqual(next_document_code(self.company.id, "ST", on_date=on), "ST-2025-0002")
        self.assertEqual(next_document_code(self.company.id, "ADJ", on_date=on), "ADJ-2025-0001")
        self.assertEqual(
            next_document_code(self.company.id, "ST", on_date=date(2026, 1, 2)), "ST-2026-0001"
        )

    def test_stock_transaction_codes_use_transaction_date_year(self):
        txn = post_movement(
            self.ctx,
            transaction_type="in",
            warehouse=self.wh_a,
            transaction_date=date(2024, 6, 30),
            lines=[MovementLine(item=self.item, quantity=Decimal("1"))],
        )
        self.assertEqual(txn.transaction_code, "ST-2024-0001")


class LocationRoutingTests(TestCase):
    """
    GUARANTEES:
    - A balance row created by a located move defaults to that bin
    - Outbound moves without a bin consume bins oldest first
    - Reserved bin quantity is never consumed
    """

    def setUp(self):
        self.company = make_company()
        self.ctx = ctx_for(make_user(self.company))

        self.wh_1 = make_warehouse(self.company, "W1")
        self.wh_2 = make_warehouse(self.company, "W2")
        self.bin_b = make_location(self.wh_2, "BIN-B")
        self.item = make_item(self.company, "ITEM-1", standard_cost=Decimal("1"))

        stock_in(self.ctx, self.item, self.wh_1, 100)
        post_movement(
            self.ctx,
            transaction_type="transfer",
            warehouse=self.wh_1,
            to_warehouse=self.wh_2,
            to_location=self.bin_b,
            lines=[MovementLine(item=self.item, quantity=Decimal("30"))],
        )

    def _out(self, warehouse, quantity, **extra):
        return post_movement(
            self.ctx,
            transaction_type="out",
            warehouse=warehouse,
            lines=[MovementLine(item=self.item, quantity=Decimal(quantity))],
            **extra,
        )

    def _bin_qty(self, location):
        return ItemLocation.objects.get(item=self.item, location=location).qty_on_hand

    def test_transfer_into_bin_seeds_default_location(self):
        balance = ItemWarehouse.objects.get(item=self.item, warehouse=self.wh_2)
        self.assertEqual(balance.default_location_id, self.bin_b.pk)
        self.assertEqual(self._bin_qty(self.bin_b), Decimal("30"))
        self.assertFalse(
            ItemLocation.objects.filter(item=self.item, warehouse=self.wh_2)
            .exclude(location=self.bin_b)
            .exists()
        )

    def test_out_without_location_draws_from_transferred_bin(self):
        txn = self._out(self.wh_2, "5")

        self.assertEqual(read_balance(self.ctx, self.item, self.wh_2), Decimal("25"))
        self.assertEqual(self._bin_qty(self.bin_b), Decimal("25"))
        self.assertEqual(txn.ledger_entries.get().location_id, self.bin_b.pk)

    def test_out_from_explicit_location(self):
        txn = self._out(self.wh_2, "7", from_location=self.bin_b)

        self.assertEqual(self._bin_qty(self.bin_b), Decimal("23"))
        self.assertEqual(txn.ledger_entries.get().location_id, self.bin_b.pk)

    def test_out_without_location_consumes_bins_fifo(self):
        bin_c = make_location(self.wh_2, "BIN-C")
        post_movement(
            self.ctx,
            transaction_type="in",
            warehouse=self.wh_2,
            to_location=bin_c,
            lines=[MovementLine(item=self.item, quantity=Decimal("10"))],
        )

        txn = self._out(self.wh_2, "35")

        self.assertEqual(self._bin_qty(self.bin_b), Decimal("0"))
        self.assertEqual(self._bin_qty(bin_c), Decimal("5"))
        self.assertEqual(read_balance(self.ctx, self.item, self.wh_2), Decimal("5"))
        # ledger row names the first bin drawn from
        self.assertEqual(txn.ledger_entries.get().location_id, self.bin_b.pk)

    def test_fifo_skips_reserved_quantity(self):
        bin_c = make_location(self.wh_2, "BIN-C")
        post_movement(
            self.ctx,
            transaction_type="in",
            warehouse=self.wh_2,
            to_location=bin_c,
            lines=[MovementLine(item=self.item, quantity=Decimal("10"))],
        )
        ItemLocation.objects.filter(item=self.item, location=self.bin_b).update(
            qty_reserved=Decimal("30")
        )

        txn = self._out(self.wh_2, "4")

        self.assertEqual(self._bin_qty(self.bin_b), Decimal("30"))
        self.assertEqual(self._bin_qty(bin_c), Decimal("6"))
        self.assertEqual(txn.ledger_entries.get().location_id, bin_c.pk)

    def test_fifo_shortfall_rolls_back(self):
        ItemLocation.objects.filter(item=self.item, location=self.bin_b).update(
            qty_reserved=Decimal("28")
        )
        txn_count = StockTransaction.objects.count()

        with self.assertRaisesMessage(
            StockValidationError, "Insufficient stock across locations for FIFO consumption."
        ):
            self._out(self.wh_2, "5")

        self.assertEqual(read_balance(self.ctx, self.item, self.wh_2), Decimal("30"))
        self.assertEqual(self._bin_qty(self.bin_b), Decimal("30"))
        self.assertEqual(StockTransaction.objects.count(), txn_count)

    def test_source_warehouse_keeps_main_bin(self):
        self._out(self.wh_1, "10")

        main = ItemLocation.objects.get(item=self.item, warehouse=self.wh_1)
        self.assertEqual(main.location.code, DEFAULT_LOCATION_CODE)
        self.assertEqual(main.qty_on_hand, Decimal("60"))

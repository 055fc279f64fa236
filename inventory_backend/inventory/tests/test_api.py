# inventory/tests/test_api.py

from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient

from inventory.models import StockTransaction
from inventory.services.balances import read_balance
from inventory.tests.factories import (
    ctx_for,
    make_company,
    make_item,
    make_user,
    make_warehouse,
    stock_in,
)

BASE = "/api/inventory"


class StockTransactionApiTests(TestCase):
    """
    HTTP contract for stock transactions:
    - 201 {id, transactionCode} on create
    - every error is {"error": "..."} with the mapped status
    """

    def setUp(self):
        self.client = APIClient()
        self.company = make_company()
        self.user = make_user(self.company, email="clerk@example.com", role="warehouse")
        self.ctx = ctx_for(self.user)
        self.client.force_authenticate(self.user)

        self.wh_a = make_warehouse(self.company, "WH-A")
        self.wh_b = make_warehouse(self.company, "WH-B")
        self.item = make_item(self.company, "ITEM-1")

    def _payload(self, transaction_type="in", quantity="10", **extra):
        body = {
            "transactionType": transaction_type,
            "warehouseId": str(self.wh_a.id),
            "items": [{"itemId": str(self.item.id), "quantity": quantity, "unitCost": "2.00"}],
        }
        body.update(extra)
        return body

    def test_create_posts_and_returns_code(self):
        res = self.client.post(f"{BASE}/stock-transactions/", self._payload(), format="json")

        self.assertEqual(res.status_code, 201, res.data)
        self.assertIn("id", res.data)
        self.assertTrue(res.data["transactionCode"].startswith("ST-"))
        self.assertEqual(read_balance(self.ctx, self.item, self.wh_a), Decimal("10"))

    def test_insufficient_stock_returns_error_envelope(self):
        stock_in(self.ctx, self.item, self.wh_a, 10)

        res = self.client.post(
            f"{BASE}/stock-transactions/",
            self._payload("out", "15"),
            format="json",
        )

        self.assertEqual(res.status_code, 400)
        self.assertEqual(
            res.data,
            {"error": "Insufficient stock for item ITEM-1 in WH-A. Available: 10, Requested: 15"},
        )
        self.assertEqual(read_balance(self.ctx, self.item, self.wh_a), Decimal("10"))

    def test_transfer_moves_stock_between_warehouses(self):
        stock_in(self.ctx, self.item, self.wh_a, 20)

        res = self.client.post(
            f"{BASE}/stock-transactions/",
            self._payload("transfer", "5", toWarehouseId=str(self.wh_b.id)),
            format="json",
        )

        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(read_balance(self.ctx, self.item, self.wh_a), Decimal("15"))
        self.assertEqual(read_balance(self.ctx, self.item, self.wh_b), Decimal("5"))

    def test_validation_errors_are_flattened(self):
        res = self.client.post(
            f"{BASE}/stock-transactions/",
            self._payload(quantity="0"),
            format="json",
        )
        self.assertEqual(res.status_code, 400)
        self.assertIn("Quantity must be greater than zero", res.data["error"])

    def test_draft_lifecycle(self):
        res = self.client.post(
            f"{BASE}/stock-transactions/", self._payload(status="draft"), format="json"
        )
        self.assertEqual(res.status_code, 201, res.data)
        txn_id = res.data["id"]
        self.assertEqual(read_balance(self.ctx, self.item, self.wh_a), Decimal("0"))

        res = self.client.post(f"{BASE}/stock-transactions/{txn_id}/post/")
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["status"], StockTransaction.STATUS_POSTED)
        self.assertEqual(len(res.data["ledger_entries"]), 1)

        res = self.client.delete(f"{BASE}/stock-transactions/{txn_id}/")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data, {"error": "Only draft transactions can be deleted"})

    def test_delete_draft(self):
        res = self.client.post(
            f"{BASE}/stock-transactions/", self._payload(status="draft"), format="json"
        )
        txn_id = res.data["id"]

        res = self.client.delete(f"{BASE}/stock-transactions/{txn_id}/")
        self.assertEqual(res.status_code, 200)

        res = self.client.get(f"{BASE}/stock-transactions/{txn_id}/")
        self.assertEqual(res.status_code, 404)
        self.assertIn("error", res.data)

    def test_retrieve_includes_lines_and_ledger(self):
        txn = stock_in(self.ctx, self.item, self.wh_a, 3)

        res = self.client.get(f"{BASE}/stock-transactions/{txn.id}/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["transaction_code"], txn.transaction_code)
        self.assertEqual(len(res.data["lines"]), 1)
        self.assertEqual(Decimal(res.data["ledger_entries"][0]["qty_after"]), Decimal("3"))
        self.assertEqual(res.data["created_by_email"], self.user.email)

    def test_other_company_warehouse_is_404(self):
        other = make_company("OTHER", "Other Co")
        foreign_wh = make_warehouse(other, "WH-X")

        res = self.client.post(
            f"{BASE}/stock-transactions/",
            self._payload(warehouseId=str(foreign_wh.id)),
            format="json",
        )
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data, {"error": "Warehouse not found"})

    def test_list_is_company_scoped(self):
        stock_in(self.ctx, self.item, self.wh_a, 1)

        other = make_company("OTHER", "Other Co")
        other_user = make_user(other, email="other@example.com")
        other_item = make_item(other, "ITEM-1")
        stock_in(ctx_for(other_user), other_item, make_warehouse(other, "WH-A"), 1)

        res = self.client.get(f"{BASE}/stock-transactions/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 1)


class InventoryReadApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.company = make_company()
        self.user = make_user(self.company, email="viewer@example.com", role="viewer")
        self.ctx = ctx_for(self.user)
        self.client.force_authenticate(self.user)

        self.warehouse = make_warehouse(self.company, "WH-A")
        self.item = make_item(self.company, "ITEM-1")

    def test_balance_lookup_returns_zero_when_absent(self):
        res = self.client.get(
            f"{BASE}/balances/lookup/",
            {"itemId": str(self.item.id), "warehouseId": str(self.warehouse.id)},
        )
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(Decimal(res.data["current_stock"]), Decimal("0"))

    def test_balance_lookup_after_stock_in(self):
        stock_in(self.ctx, self.item, self.warehouse, 4)

        res = self.client.get(
            f"{BASE}/balances/lookup/",
            {"itemId": str(self.item.id), "warehouseId": str(self.warehouse.id)},
        )
        self.assertEqual(Decimal(res.data["current_stock"]), Decimal("4"))

        res = self.client.get(f"{BASE}/balances/")
        self.assertEqual(res.data["count"], 1)

        res = self.client.get(f"{BASE}/stock-ledger/", {"item": str(self.item.id)})
        self.assertEqual(res.data["count"], 1)

    def test_viewer_cannot_post_stock(self):
        res = self.client.post(
            f"{BASE}/stock-transactions/",
            {
                "transactionType": "in",
                "warehouseId": str(self.warehouse.id),
                "items": [{"itemId": str(self.item.id), "quantity": "1"}],
            },
            format="json",
        )
        self.assertEqual(res.status_code, 403)
        self.assertIn("error", res.data)

    def test_anonymous_is_rejected(self):
        res = APIClient().get(f"{BASE}/stock-transactions/")
        self.assertEqual(res.status_code, 401)
        self.assertIn("error", res.data)


class MasterDataApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.company = make_company()
        self.user = make_user(self.company, email="manager@example.com", role="manager")
        self.client.force_authenticate(self.user)

    def test_create_item_with_package(self):
        res = self.client.post(
            f"{BASE}/items/",
            {"item_code": "sku-1", "item_name": "Widget", "standard_cost": "1.5000"},
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["item_code"], "SKU-1")

        res = self.client.post(
            f"{BASE}/items/{res.data['id']}/packages/",
            {"pack_name": "Carton", "qty_per_pack": "24"},
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)

    def test_duplicate_item_code_is_conflict(self):
        make_item(self.company, "SKU-1")
        res = self.client.post(
            f"{BASE}/items/",
            {"item_code": "SKU-1", "item_name": "Widget"},
            format="json",
        )
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data, {"error": "Item code already exists"})

    def test_create_warehouse_and_location(self):
        res = self.client.post(
            f"{BASE}/warehouses/",
            {"warehouse_code": "main", "warehouse_name": "Main Warehouse"},
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        wh_id = res.data["id"]

        res = self.client.post(
            f"{BASE}/warehouses/{wh_id}/locations/",
            {"code": "a-01", "name": "Aisle 1"},
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["code"], "A-01")

from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient

from inventory.services.balances import read_balance
from inventory.tests.factories import ctx_for, make_company, make_item, make_user, make_warehouse
from purchases.models import PurchaseReceipt
from purchases.tests.factories import make_supplier

BASE = "/api/purchases"


class PurchasingApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.company = make_company()
        self.manager = make_user(self.company, email="manager@example.com", role="manager")
        self.ctx = ctx_for(self.manager)
        self.client.force_authenticate(self.manager)

        self.warehouse = make_warehouse(self.company, "WH-A")
        self.supplier = make_supplier(self.company)
        self.item = make_item(self.company, "ITEM-1")

    def _create_order(self, quantity="10"):
        res = self.client.post(
            f"{BASE}/purchase-orders/",
            {
                "supplierId": str(self.supplier.id),
                "orderDate": "2026-04-01",
                "items": [{"itemId": str(self.item.id), "quantity": quantity, "rate": "2"}],
            },
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        return res.data

    def _create_receipt(self, **extra):
        body = {
            "supplierId": str(self.supplier.id),
            "warehouseId": str(self.warehouse.id),
            "receiptDate": "2026-04-02",
            "items": [{"itemId": str(self.item.id), "quantityReceived": "3", "rate": "2"}],
        }
        body.update(extra)
        res = self.client.post(f"{BASE}/purchase-receipts/", body, format="json")
        self.assertEqual(res.status_code, 201, res.data)
        return res.data

    def test_create_supplier_normalizes_code(self):
        res = self.client.post(
            f"{BASE}/suppliers/",
            {"supplier_code": " sup-9 ", "name": "Ninth"},
            format="json",
        )

        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["supplier_code"], "SUP-9")

    def test_duplicate_supplier_code_is_conflict(self):
        res = self.client.post(
            f"{BASE}/suppliers/",
            {"supplier_code": "SUP-1", "name": "Duplicate"},
            format="json",
        )

        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["error"], "Supplier code already exists")

    def test_order_lifecycle(self):
        order = self._create_order()
        self.assertEqual(order["status"], "draft")
        self.assertTrue(order["order_code"].startswith("PO-2026-"))
        self.assertEqual(Decimal(order["total_amount"]), Decimal("20"))

        res = self.client.post(f"{BASE}/purchase-orders/{order['id']}/approve/", format="json")
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["status"], "approved")

        res = self.client.post(f"{BASE}/purchase-orders/{order['id']}/approve/", format="json")
        self.assertEqual(res.status_code, 400)
        self.assertIn("error", res.data)

    def test_put_received_moves_stock_and_returns_warnings(self):
        receipt = self._create_receipt()
        self.assertEqual(receipt["status"], "draft")

        res = self.client.put(
            f"{BASE}/purchase-receipts/{receipt['id']}/",
            {"status": "received"},
            format="json",
        )

        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["status"], "received")
        self.assertEqual(res.data["warnings"], [])
        self.assertIsNotNone(res.data["stock_transaction"])
        self.assertEqual(read_balance(self.ctx, self.item, self.warehouse), Decimal("3"))

        res = self.client.put(
            f"{BASE}/purchase-receipts/{receipt['id']}/",
            {"notes": "again"},
            format="json",
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"], "Only draft receipts can be edited")

    def test_receipt_against_order_lines(self):
        order = self._create_order(quantity="3")
        self.client.post(f"{BASE}/purchase-orders/{order['id']}/approve/", format="json")

        receipt = self._create_receipt(
            supplierId=None,
            purchaseOrderId=order["id"],
            items=[
                {
                    "itemId": str(self.item.id),
                    "purchaseOrderItemId": order["items"][0]["id"],
                    "quantityReceived": "3",
                    "rate": "2",
                }
            ],
        )
        self.assertEqual(str(receipt["supplier"]), str(self.supplier.id))

        res = self.client.put(
            f"{BASE}/purchase-receipts/{receipt['id']}/",
            {"status": "received"},
            format="json",
        )
        self.assertEqual(res.status_code, 200, res.data)

        res = self.client.get(f"{BASE}/purchase-orders/{order['id']}/")
        self.assertEqual(res.data["status"], "received")
        self.assertEqual(Decimal(res.data["items"][0]["quantity_outstanding"]), Decimal("0"))

    def test_put_cancelled_and_delete(self):
        receipt = self._create_receipt()
        res = self.client.put(
            f"{BASE}/purchase-receipts/{receipt['id']}/",
            {"status": "cancelled"},
            format="json",
        )
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["status"], "cancelled")

        res = self.client.delete(f"{BASE}/purchase-receipts/{receipt['id']}/")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"], "Only draft receipts can be deleted")

        draft = self._create_receipt()
        res = self.client.delete(f"{BASE}/purchase-receipts/{draft['id']}/")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["deleted"])
        self.assertIsNotNone(PurchaseReceipt.objects.get(pk=draft["id"]).deleted_at)

    def test_unknown_receipt_is_404(self):
        res = self.client.get(f"{BASE}/purchase-receipts/00000000-0000-0000-0000-000000000000/")
        self.assertEqual(res.status_code, 404)

        res = self.client.put(
            f"{BASE}/purchase-receipts/00000000-0000-0000-0000-000000000000/",
            {"status": "received"},
            format="json",
        )
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["error"], "Receipt not found")

    def test_purchaser_cannot_receive(self):
        purchaser = make_user(self.company, email="buyer@example.com", role="purchaser")
        self.client.force_authenticate(purchaser)

        res = self.client.get(f"{BASE}/purchase-receipts/")
        self.assertEqual(res.status_code, 200)

        res = self.client.post(
            f"{BASE}/purchase-receipts/",
            {
                "supplierId": str(self.supplier.id),
                "warehouseId": str(self.warehouse.id),
                "items": [{"itemId": str(self.item.id), "quantityReceived": "1"}],
            },
            format="json",
        )
        self.assertEqual(res.status_code, 403)

        order = self._create_order()
        self.assertEqual(order["status"], "draft")

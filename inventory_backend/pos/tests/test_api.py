from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient

from inventory.services.balances import read_balance
from inventory.tests.factories import (
    ctx_for,
    make_company,
    make_item,
    make_user,
    make_warehouse,
    stock_in,
)

BASE = "/api/pos/transactions"


class PosApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.company = make_company()
        self.warehouse = make_warehouse(self.company, "VAN-1")
        self.cashier = make_user(
            self.company,
            email="cashier@example.com",
            role="cashier",
            van_warehouse=self.warehouse,
        )
        self.ctx = ctx_for(self.cashier)
        self.client.force_authenticate(self.cashier)

        self.item = make_item(self.company, "ITEM-1")
        stock_in(self.ctx, self.item, self.warehouse, 10, unit_cost=Decimal("2"))

    def _payload(self, quantity="2", paid="100", **extra):
        body = {
            "items": [{"itemId": str(self.item.id), "quantity": quantity, "unitPrice": "15"}],
            "payments": [{"method": "cash", "amount": paid}],
        }
        body.update(extra)
        return body

    def test_create_sale(self):
        res = self.client.post(f"{BASE}/", self._payload(), format="json")

        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["status"], "completed")
        self.assertEqual(Decimal(res.data["total_amount"]), Decimal("30"))
        self.assertEqual(Decimal(res.data["change_amount"]), Decimal("70"))
        self.assertEqual(len(res.data["items"]), 1)
        self.assertEqual(len(res.data["payments"]), 1)
        self.assertEqual(res.data["warnings"], [])
        self.assertEqual(read_balance(self.ctx, self.item, self.warehouse), Decimal("8"))

        res = self.client.get(f"{BASE}/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 1)

    def test_insufficient_payment(self):
        res = self.client.post(f"{BASE}/", self._payload(paid="10"), format="json")

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"], "Insufficient payment amount")
        self.assertEqual(read_balance(self.ctx, self.item, self.warehouse), Decimal("10"))

    def test_items_required(self):
        res = self.client.post(f"{BASE}/", self._payload(items=[]), format="json")

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"], "Items are required")

    def test_insufficient_stock(self):
        res = self.client.post(f"{BASE}/", self._payload(quantity="20", paid="1000"), format="json")

        self.assertEqual(res.status_code, 400)
        self.assertIn("Insufficient stock", res.data["error"])

    def test_cashier_cannot_void_but_manager_can(self):
        sale = self.client.post(f"{BASE}/", self._payload(), format="json").data

        res = self.client.post(f"{BASE}/{sale['id']}/void/", format="json")
        self.assertEqual(res.status_code, 403)

        manager = make_user(self.company, email="manager@example.com", role="manager")
        self.client.force_authenticate(manager)

        res = self.client.post(f"{BASE}/{sale['id']}/void/", format="json")
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["status"], "voided")
        self.assertEqual(read_balance(self.ctx, self.item, self.warehouse), Decimal("10"))

        res = self.client.post(f"{BASE}/{sale['id']}/void/", format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"], "Transaction is already voided")

    def test_unknown_transaction_void_is_404(self):
        manager = make_user(self.company, email="manager@example.com", role="manager")
        self.client.force_authenticate(manager)

        res = self.client.post(f"{BASE}/00000000-0000-0000-0000-000000000000/void/", format="json")
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["error"], "Transaction not found")

from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient

from adjustments.models import StockAdjustment
from inventory.services.balances import read_balance
from inventory.tests.factories import (
    ctx_for,
    make_company,
    make_item,
    make_user,
    make_warehouse,
    stock_in,
)

BASE = "/api/stock-adjustments"


class StockAdjustmentApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.company = make_company()
        self.manager = make_user(self.company, email="manager@example.com", role="manager")
        self.ctx = ctx_for(self.manager)
        self.client.force_authenticate(self.manager)

        self.warehouse = make_warehouse(self.company, "WH-A")
        self.item = make_item(self.company, "ITEM-1")
        stock_in(self.ctx, self.item, self.warehouse, 10, unit_cost=Decimal("3"))

    def _payload(self, adjusted_qty="8", **extra):
        body = {
            "warehouseId": str(self.warehouse.id),
            "adjustmentType": "physical_count",
            "adjustmentDate": "2026-05-04",
            "reason": "Cycle count",
            "items": [{"itemId": str(self.item.id), "adjustedQty": adjusted_qty}],
        }
        body.update(extra)
        return body

    def _create(self, **kwargs):
        res = self.client.post(f"{BASE}/", self._payload(**kwargs), format="json")
        self.assertEqual(res.status_code, 201, res.data)
        return res.data

    def test_create_returns_draft_with_lines(self):
        data = self._create()

        self.assertEqual(data["status"], "draft")
        self.assertTrue(data["adjustment_code"].startswith("ADJ-2026-"))
        self.assertEqual(len(data["items"]), 1)
        self.assertEqual(Decimal(data["items"][0]["current_qty"]), Decimal("10"))
        self.assertEqual(Decimal(data["items"][0]["difference"]), Decimal("-2"))
        self.assertEqual(Decimal(data["total_value"]), Decimal("-6"))

    def test_missing_required_fields(self):
        res = self.client.post(f"{BASE}/", {"items": []}, format="json")

        self.assertEqual(res.status_code, 400)
        self.assertIn("Missing required fields", res.data["error"])

    def test_items_are_required(self):
        res = self.client.post(f"{BASE}/", self._payload(items=[]), format="json")

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"], "At least one item is required")

    def test_post_moves_stock_and_reports_warnings(self):
        data = self._create()

        res = self.client.post(f"{BASE}/{data['id']}/post/", format="json")

        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["status"], "posted")
        self.assertEqual(res.data["warnings"], [])
        self.assertIsNotNone(res.data["stock_transaction_out"])
        self.assertEqual(read_balance(self.ctx, self.item, self.warehouse), Decimal("8"))

    def test_put_only_on_drafts(self):
        data = self._create()

        res = self.client.put(
            f"{BASE}/{data['id']}/",
            {"reason": "Recount", "items": [{"itemId": str(self.item.id), "adjustedQty": "12"}]},
            format="json",
        )
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["reason"], "Recount")
        self.assertEqual(Decimal(res.data["items"][0]["difference"]), Decimal("2"))

        self.client.post(f"{BASE}/{data['id']}/approve/", format="json")
        res = self.client.put(f"{BASE}/{data['id']}/", {"reason": "Again"}, format="json")

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"], "Only draft adjustments can be updated")

    def test_delete_draft(self):
        data = self._create()

        res = self.client.delete(f"{BASE}/{data['id']}/")
        self.assertEqual(res.status_code, 200)

        res = self.client.get(f"{BASE}/{data['id']}/")
        self.assertEqual(res.status_code, 404)
        self.assertEqual(
            StockAdjustment.objects.filter(deleted_at__isnull=False).count(), 1
        )

    def test_unknown_adjustment_is_404(self):
        res = self.client.post(
            f"{BASE}/00000000-0000-0000-0000-000000000000/post/", format="json"
        )

        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["error"], "Stock adjustment not found")

    def test_warehouse_role_cannot_approve_or_post(self):
        data = self._create()
        clerk = make_user(self.company, email="clerk@example.com", role="warehouse")
        self.client.force_authenticate(clerk)

        self.assertEqual(self.client.post(f"{BASE}/{data['id']}/approve/").status_code, 403)
        self.assertEqual(self.client.post(f"{BASE}/{data['id']}/post/").status_code, 403)

        res = self.client.get(f"{BASE}/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 1)

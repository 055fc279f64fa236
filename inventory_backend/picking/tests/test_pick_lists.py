from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient

from inventory.services.exceptions import DocumentStateError, InvalidQuantity, StockValidationError
from inventory.tests.factories import ctx_for, make_company, make_item, make_user, make_warehouse
from picking.models import PickList
from picking.services.pick_list_service import (
    PickLine,
    change_status,
    create_pick_list,
    record_picked_qty,
)

BASE = "/api/pick-lists"


class PickListServiceTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.user = make_user(self.company, role="warehouse")
        self.ctx = ctx_for(self.user)
        self.warehouse = make_warehouse(self.company, "WH-A")
        self.item = make_item(self.company, "ITEM-1")
        self.other = make_item(self.company, "ITEM-2")

        self.pick_list = create_pick_list(
            self.ctx,
            warehouse=self.warehouse,
            lines=[
                PickLine(item=self.item, allocated_qty=Decimal("5")),
                PickLine(item=self.other, allocated_qty=Decimal("2")),
            ],
        )
        self.first, self.second = list(self.pick_list.items.order_by("line_no"))

    def test_create_is_pending_with_code(self):
        self.assertEqual(self.pick_list.status, PickList.STATUS_PENDING)
        self.assertTrue(self.pick_list.pick_list_code.startswith("PL-"))
        self.assertEqual(self.first.allocated_qty, Decimal("5"))

    def test_picking_only_while_in_progress(self):
        with self.assertRaises(DocumentStateError):
            record_picked_qty(self.ctx, self.pick_list, self.first.pk, Decimal("1"))

        change_status(self.ctx, self.pick_list, PickList.STATUS_IN_PROGRESS)
        row = record_picked_qty(self.ctx, self.pick_list, self.first.pk, Decimal("3"))
        self.assertEqual(row.picked_qty, Decimal("3"))

    def test_picked_qty_bounds(self):
        change_status(self.ctx, self.pick_list, PickList.STATUS_IN_PROGRESS)

        with self.assertRaisesMessage(InvalidQuantity, "cannot exceed allocated"):
            record_picked_qty(self.ctx, self.pick_list, self.first.pk, Decimal("6"))
        with self.assertRaisesMessage(InvalidQuantity, "cannot be negative"):
            record_picked_qty(self.ctx, self.pick_list, self.first.pk, Decimal("-1"))

        row = record_picked_qty(self.ctx, self.pick_list, self.first.pk, Decimal("0"))
        self.assertEqual(row.picked_qty, Decimal("0"))

    def test_done_requires_a_pick_and_stamps_short_qty(self):
        change_status(self.ctx, self.pick_list, PickList.STATUS_IN_PROGRESS)

        with self.assertRaisesMessage(StockValidationError, "must have picked quantity"):
            change_status(self.ctx, self.pick_list, PickList.STATUS_DONE)

        record_picked_qty(self.ctx, self.pick_list, self.first.pk, Decimal("4"))
        done = change_status(self.ctx, self.pick_list, PickList.STATUS_DONE)

        self.assertEqual(done.status, PickList.STATUS_DONE)
        self.assertIsNotNone(done.completed_at)
        self.first.refresh_from_db()
        self.second.refresh_from_db()
        self.assertEqual(self.first.short_qty, Decimal("1"))
        self.assertEqual(self.second.short_qty, Decimal("2"))

    def test_invalid_transitions(self):
        with self.assertRaisesMessage(DocumentStateError, "Invalid transition from pending to done"):
            change_status(self.ctx, self.pick_list, PickList.STATUS_DONE)
        with self.assertRaisesMessage(DocumentStateError, "Invalid transition from pending to paused"):
            change_status(self.ctx, self.pick_list, PickList.STATUS_PAUSED)

        cancelled = change_status(self.ctx, self.pick_list, PickList.STATUS_CANCELLED, reason=" no stock ")
        self.assertEqual(cancelled.cancel_reason, "no stock")

        with self.assertRaisesMessage(DocumentStateError, "Invalid transition from cancelled to in_progress"):
            change_status(self.ctx, self.pick_list, PickList.STATUS_IN_PROGRESS)

    def test_pause_and_resume(self):
        change_status(self.ctx, self.pick_list, PickList.STATUS_IN_PROGRESS)
        paused = change_status(self.ctx, self.pick_list, PickList.STATUS_PAUSED)
        self.assertEqual(paused.status, PickList.STATUS_PAUSED)

        resumed = change_status(self.ctx, self.pick_list, PickList.STATUS_IN_PROGRESS)
        self.assertEqual(resumed.status, PickList.STATUS_IN_PROGRESS)
        self.assertIsNotNone(resumed.started_at)

    def test_same_status_is_noop(self):
        same = change_status(self.ctx, self.pick_list, PickList.STATUS_PENDING)
        self.assertEqual(same.status, PickList.STATUS_PENDING)
        self.assertIsNone(same.started_at)


class PickListApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.company = make_company()
        self.user = make_user(self.company, email="picker@example.com", role="warehouse")
        self.client.force_authenticate(self.user)
        self.warehouse = make_warehouse(self.company, "WH-A")
        self.item = make_item(self.company, "ITEM-1")

    def _create(self):
        res = self.client.post(
            f"{BASE}/",
            {
                "warehouseId": str(self.warehouse.id),
                "assigneeIds": [str(self.user.id)],
                "items": [{"itemId": str(self.item.id), "allocatedQty": "4"}],
            },
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        return res.data

    def test_full_workflow(self):
        data = self._create()
        self.assertEqual(data["status"], "pending")
        self.assertEqual(data["assignees"][0]["email"], "picker@example.com")
        item_id = data["items"][0]["id"]

        res = self.client.patch(f"{BASE}/{data['id']}/status/", {"status": "in_progress"}, format="json")
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["status"], "in_progress")

        res = self.client.patch(
            f"{BASE}/{data['id']}/items/{item_id}/", {"pickedQty": "3"}, format="json"
        )
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(Decimal(res.data["picked_qty"]), Decimal("3"))

        res = self.client.patch(f"{BASE}/{data['id']}/status/", {"status": "done"}, format="json")
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["status"], "done")
        self.assertEqual(Decimal(res.data["items"][0]["short_qty"]), Decimal("1"))

    def test_same_status_returns_200(self):
        data = self._create()

        res = self.client.patch(f"{BASE}/{data['id']}/status/", {"status": "pending"}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "pending")

    def test_invalid_transition_is_400(self):
        data = self._create()

        res = self.client.patch(f"{BASE}/{data['id']}/status/", {"status": "done"}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"], "Invalid transition from pending to done")

    def test_status_is_required(self):
        data = self._create()

        res = self.client.patch(f"{BASE}/{data['id']}/status/", {}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"], "status is required")

    def test_picked_over_allocated_is_400(self):
        data = self._create()
        self.client.patch(f"{BASE}/{data['id']}/status/", {"status": "in_progress"}, format="json")

        res = self.client.patch(
            f"{BASE}/{data['id']}/items/{data['items'][0]['id']}/",
            {"pickedQty": "9"},
            format="json",
        )
        self.assertEqual(res.status_code, 400)
        self.assertIn("cannot exceed allocated", res.data["error"])

    def test_viewer_can_list_but_not_create(self):
        self._create()
        viewer = make_user(self.company, email="viewer@example.com", role="viewer")
        self.client.force_authenticate(viewer)

        res = self.client.get(f"{BASE}/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 1)

        res = self.client.post(f"{BASE}/", {}, format="json")
        self.assertEqual(res.status_code, 403)

    def test_unknown_pick_list_is_404(self):
        res = self.client.patch(
            f"{BASE}/00000000-0000-0000-0000-000000000000/status/",
            {"status": "in_progress"},
            format="json",
        )
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["error"], "Pick list not found")

from datetime import date
from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient

from inventory.models import StockTransaction, StockTransactionItem
from inventory.services.balances import read_balance
from inventory.services.exceptions import (
    ConflictError,
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
from transformations.models import TransformationOrder, TransformationTemplate
from transformations.services.transformation_service import (
    ConsumedInput,
    ProducedOutput,
    RecipeLine,
    change_status,
    create_order,
    create_template,
    delete_order,
    delete_template,
    execute_order,
    update_order,
    update_template,
)

BASE = "/api/transformations"


class TransformationSetupMixin:
    def setUp(self):
        self.company = make_company()
        self.user = make_user(self.company, email="ops@example.com", role="warehouse")
        self.ctx = ctx_for(self.user)
        self.warehouse = make_warehouse(self.company, "WH-A")

        self.bulk = make_item(self.company, "RICE-25KG", standard_cost=Decimal("40"))
        self.retail = make_item(self.company, "RICE-1KG")
        self.dust = make_item(self.company, "RICE-DUST")

        stock_in(self.ctx, self.bulk, self.warehouse, 10, unit_cost=Decimal("48"))

    def _template(self, code="REPACK-RICE"):
        return create_template(
            self.ctx,
            template_code=code,
            template_name="Repack rice sack",
            inputs=[RecipeLine(item=self.bulk, quantity=Decimal("1"))],
            outputs=[
                RecipeLine(item=self.retail, quantity=Decimal("24")),
                RecipeLine(item=self.dust, quantity=Decimal("1"), is_scrap=True),
            ],
        )

    def _order(self, template=None, planned="2"):
        return create_order(
            self.ctx,
            template=template or self._template(),
            warehouse=self.warehouse,
            planned_quantity=Decimal(planned),
            order_date=date(2026, 5, 4),
        )

    def _preparing(self, planned="2"):
        order = self._order(planned=planned)
        return change_status(self.ctx, order, TransformationOrder.STATUS_PREPARING)


class TransformationTemplateTests(TransformationSetupMixin, TestCase):
    def test_create_stores_recipe(self):
        template = self._template(code=" repack-rice ")

        self.assertEqual(template.template_code, "REPACK-RICE")
        self.assertEqual(template.usage_count, 0)
        self.assertEqual(template.inputs.get().item_id, self.bulk.pk)
        outputs = list(template.outputs.order_by("sequence"))
        self.assertEqual([row.item_id for row in outputs], [self.retail.pk, self.dust.pk])
        self.assertTrue(outputs[1].is_scrap)

    def test_duplicate_code_conflicts(self):
        self._template()
        with self.assertRaisesMessage(ConflictError, "Template code REPACK-RICE already exists"):
            self._template()

    def test_recipe_needs_both_sides_and_unique_items(self):
        with self.assertRaisesMessage(StockValidationError, "Template has no inputs"):
            create_template(
                self.ctx,
                template_code="EMPTY",
                template_name="Empty",
                inputs=[],
                outputs=[RecipeLine(item=self.retail, quantity=Decimal("1"))],
            )
        with self.assertRaisesMessage(StockValidationError, "Duplicate output item RICE-1KG"):
            create_template(
                self.ctx,
                template_code="DUP",
                template_name="Dup",
                inputs=[RecipeLine(item=self.bulk, quantity=Decimal("1"))],
                outputs=[
                    RecipeLine(item=self.retail, quantity=Decimal("1")),
                    RecipeLine(item=self.retail, quantity=Decimal("2")),
                ],
            )

    def test_unused_template_can_be_edited_and_deleted(self):
        template = self._template()

        template = update_template(
            self.ctx,
            template,
            template_name="Repack rice (new)",
            outputs=[RecipeLine(item=self.retail, quantity=Decimal("25"))],
        )
        self.assertEqual(template.template_name, "Repack rice (new)")
        self.assertEqual(template.outputs.get().quantity, Decimal("25"))
        self.assertEqual(template.inputs.count(), 1)

        delete_template(self.ctx, template)
        self.assertFalse(TransformationTemplate.objects.filter(deleted_at__isnull=True).exists())

    def test_used_template_is_locked_except_status(self):
        template = self._template()
        order = self._order(template=template)
        template.refresh_from_db()
        self.assertEqual(template.usage_count, 1)

        with self.assertRaisesMessage(
            DocumentStateError, "Template is locked because it is used by 1 order(s)"
        ):
            update_template(self.ctx, template, template_name="Other")
        with self.assertRaisesMessage(
            DocumentStateError, "Cannot delete template REPACK-RICE because it is used by 1 order(s)"
        ):
            delete_template(self.ctx, template)

        template = update_template(self.ctx, template, is_active=False)
        self.assertFalse(template.is_active)

        delete_order(self.ctx, order)
        template.refresh_from_db()
        self.assertEqual(template.usage_count, 0)
        delete_template(self.ctx, template)


class TransformationOrderTests(TransformationSetupMixin, TestCase):
    def test_create_scales_template_lines(self):
        order = self._order(planned="2")

        self.assertEqual(order.status, TransformationOrder.STATUS_DRAFT)
        self.assertEqual(order.order_code, "TRN-2026-0001")

        line = order.inputs.get()
        self.assertEqual(line.planned_quantity, Decimal("2"))
        self.assertEqual(line.unit_cost, Decimal("48"))
        self.assertEqual(line.total_cost, Decimal("96"))

        planned = {row.item_id: row.planned_quantity for row in order.outputs.all()}
        self.assertEqual(planned, {self.retail.pk: Decimal("48"), self.dust.pk: Decimal("2")})
        # nothing moves until execution
        self.assertEqual(read_balance(self.ctx, self.bulk, self.warehouse), Decimal("10"))

    def test_inactive_template_cannot_start_orders(self):
        template = update_template(self.ctx, self._template(), is_active=False)

        with self.assertRaisesMessage(StockValidationError, "Template is not active"):
            self._order(template=template)

    def test_update_only_while_draft(self):
        order = update_order(self.ctx, self._order(), planned_quantity=Decimal("3"), notes="rush")

        self.assertEqual(order.inputs.get().planned_quantity, Decimal("3"))
        self.assertEqual(order.notes, "rush")

        change_status(self.ctx, order, TransformationOrder.STATUS_PREPARING)
        with self.assertRaisesMessage(
            DocumentStateError, "Only draft orders can be updated"
        ):
            update_order(self.ctx, order, notes="late")
        with self.assertRaisesMessage(DocumentStateError, "Only draft orders can be deleted"):
            delete_order(self.ctx, order)

    def test_workflow_transitions(self):
        order = self._order()

        with self.assertRaisesMessage(DocumentStateError, "Only preparing orders can be executed"):
            execute_order(self.ctx, order)
        with self.assertRaisesMessage(DocumentStateError, "completed by executing"):
            change_status(self.ctx, order, TransformationOrder.STATUS_COMPLETED)

        order = change_status(self.ctx, order, TransformationOrder.STATUS_PREPARING)
        order = change_status(self.ctx, order, TransformationOrder.STATUS_CANCELLED)
        with self.assertRaisesMessage(
            DocumentStateError, "Invalid transition from cancelled to preparing"
        ):
            change_status(self.ctx, order, TransformationOrder.STATUS_PREPARING)

    def test_execute_as_planned_moves_stock_and_allocates_cost(self):
        order = execute_order(self.ctx, self._preparing(), execution_date=date(2026, 5, 5))

        self.assertEqual(order.status, TransformationOrder.STATUS_COMPLETED)
        self.assertEqual(order.execution_date, date(2026, 5, 5))
        self.assertIsNotNone(order.completion_date)

        self.assertEqual(read_balance(self.ctx, self.bulk, self.warehouse), Decimal("8"))
        self.assertEqual(read_balance(self.ctx, self.retail, self.warehouse), Decimal("48"))
        self.assertEqual(read_balance(self.ctx, self.dust, self.warehouse), Decimal("2"))

        # 2 sacks x 48 spread over 50 produced units
        self.assertEqual(order.total_input_cost, Decimal("96"))
        self.assertEqual(order.total_output_cost, Decimal("92.16"))
        self.assertEqual(order.cost_variance, Decimal("3.84"))
        self.assertEqual(order.actual_quantity, Decimal("50"))

        retail = order.outputs.get(item=self.retail)
        dust = order.outputs.get(item=self.dust)
        self.assertEqual(retail.allocated_cost_per_unit, Decimal("1.92"))
        self.assertEqual(dust.total_allocated_cost, Decimal("0"))

        consume = StockTransaction.objects.get(pk=order.consume_transaction_id)
        produce = StockTransaction.objects.get(pk=order.produce_transaction_id)
        self.assertEqual(consume.transaction_type, "out")
        self.assertEqual(produce.transaction_type, "in")
        self.assertEqual(consume.reference_type, "transformation_order")
        self.assertEqual(produce.reference_id, order.pk)
        self.assertEqual(
            produce.ledger_entries.get(item=self.retail).valuation_rate, Decimal("1.92")
        )

    def test_execute_with_actuals_and_waste(self):
        order = self._preparing()
        retail_line = order.outputs.get(item=self.retail)
        dust_line = order.outputs.get(item=self.dust)

        order = execute_order(
            self.ctx,
            order,
            inputs=[ConsumedInput(line_id=order.inputs.get().pk, quantity=Decimal("2"))],
            outputs=[
                ProducedOutput(
                    line_id=retail_line.pk,
                    produced_quantity=Decimal("45"),
                    wasted_quantity=Decimal("3"),
                    waste_reason=" torn bags ",
                ),
                ProducedOutput(line_id=dust_line.pk, produced_quantity=Decimal("2")),
            ],
        )

        self.assertEqual(read_balance(self.ctx, self.retail, self.warehouse), Decimal("45"))
        self.assertEqual(order.total_output_cost, Decimal("86.4"))
        self.assertEqual(order.cost_variance, Decimal("9.6"))

        retail_line.refresh_from_db()
        self.assertEqual(retail_line.wasted_quantity, Decimal("3"))
        self.assertEqual(retail_line.waste_reason, "torn bags")
        # waste only absorbs cost; no extra ledger rows
        self.assertEqual(
            StockTransactionItem.objects.filter(item=self.retail).count(), 1
        )

    def test_execute_normalizes_packages(self):
        pack = make_package(self.retail, "Bundle", Decimal("12"))
        order = self._preparing()
        retail_line = order.outputs.get(item=self.retail)

        execute_order(
            self.ctx,
            order,
            outputs=[
                ProducedOutput(line_id=retail_line.pk, produced_quantity=Decimal("4"), package_id=pack.pk)
            ],
        )

        self.assertEqual(read_balance(self.ctx, self.retail, self.warehouse), Decimal("48"))
        self.assertEqual(read_balance(self.ctx, self.dust, self.warehouse), Decimal("0"))

    def test_insufficient_input_rolls_back_everything(self):
        order = self._preparing(planned="11")
        txn_count = StockTransaction.objects.count()

        with self.assertRaises(InsufficientStock):
            execute_order(self.ctx, order)

        order.refresh_from_db()
        self.assertEqual(order.status, TransformationOrder.STATUS_PREPARING)
        self.assertIsNone(order.consume_transaction_id)
        self.assertEqual(StockTransaction.objects.count(), txn_count)
        self.assertEqual(read_balance(self.ctx, self.bulk, self.warehouse), Decimal("10"))
        self.assertEqual(read_balance(self.ctx, self.retail, self.warehouse), Decimal("0"))

    def test_execute_rejects_foreign_lines_and_empty_production(self):
        template = self._template()
        order = change_status(
            self.ctx, self._order(template=template), TransformationOrder.STATUS_PREPARING
        )
        other = self._order(template=template)

        with self.assertRaisesMessage(NotFound, "Input line not found"):
            execute_order(
                self.ctx,
                order,
                inputs=[ConsumedInput(line_id=other.inputs.get().pk, quantity=Decimal("1"))],
            )
        with self.assertRaisesMessage(StockValidationError, "At least one output must be produced"):
            execute_order(
                self.ctx,
                order,
                outputs=[
                    ProducedOutput(
                        line_id=order.outputs.get(item=self.retail).pk,
                        produced_quantity=Decimal("0"),
                        wasted_quantity=Decimal("5"),
                    )
                ],
            )

    def test_other_company_cannot_see_order(self):
        order = self._order()
        other_ctx = ctx_for(make_user(make_company(code="OTHER"), email="o@example.com"))

        with self.assertRaisesMessage(NotFound, "Transformation order not found"):
            execute_order(other_ctx, order)


class TransformationApiTests(TransformationSetupMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def _create_template(self):
        res = self.client.post(
            f"{BASE}/templates/",
            {
                "templateCode": "REPACK-RICE",
                "templateName": "Repack rice sack",
                "inputs": [{"itemId": str(self.bulk.id), "quantity": "1"}],
                "outputs": [
                    {"itemId": str(self.retail.id), "quantity": "24"},
                    {"itemId": str(self.dust.id), "quantity": "1", "isScrap": True},
                ],
            },
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        return res.data

    def _create_order(self, template_id, planned="2"):
        res = self.client.post(
            f"{BASE}/orders/",
            {
                "templateId": template_id,
                "warehouseId": str(self.warehouse.id),
                "plannedQuantity": planned,
            },
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        return res.data

    def test_full_workflow(self):
        template = self._create_template()
        self.assertEqual(len(template["outputs"]), 2)

        order = self._create_order(template["id"])
        self.assertEqual(order["status"], "draft")
        self.assertTrue(order["order_code"].startswith("TRN-"))

        res = self.client.patch(
            f"{BASE}/orders/{order['id']}/status/", {"status": "preparing"}, format="json"
        )
        self.assertEqual(res.status_code, 200, res.data)

        retail_line = next(row for row in order["outputs"] if str(row["item"]) == str(self.retail.id))
        res = self.client.post(
            f"{BASE}/orders/{order['id']}/execute/",
            {
                "outputs": [
                    {"outputLineId": retail_line["id"], "producedQuantity": "46", "wastedQuantity": "2"}
                ]
            },
            format="json",
        )
        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["status"], "completed")
        self.assertEqual(Decimal(res.data["total_input_cost"]), Decimal("96"))
        self.assertEqual(read_balance(self.ctx, self.retail, self.warehouse), Decimal("46"))
        self.assertEqual(read_balance(self.ctx, self.bulk, self.warehouse), Decimal("8"))

    def test_locked_template_patch_is_400(self):
        template = self._create_template()
        self._create_order(template["id"])

        res = self.client.patch(
            f"{BASE}/templates/{template['id']}/", {"templateName": "Other"}, format="json"
        )
        self.assertEqual(res.status_code, 400)
        self.assertIn("Template is locked", res.data["error"])

        res = self.client.patch(
            f"{BASE}/templates/{template['id']}/", {"isActive": False}, format="json"
        )
        self.assertEqual(res.status_code, 200, res.data)
        self.assertFalse(res.data["is_active"])

    def test_insufficient_stock_is_400_and_order_stays_preparing(self):
        template = self._create_template()
        order = self._create_order(template["id"], planned="20")
        self.client.patch(f"{BASE}/orders/{order['id']}/status/", {"status": "preparing"}, format="json")

        res = self.client.post(f"{BASE}/orders/{order['id']}/execute/", {}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertIn("Insufficient stock for item RICE-25KG", res.data["error"])

        res = self.client.get(f"{BASE}/orders/{order['id']}/")
        self.assertEqual(res.data["status"], "preparing")

    def test_delete_draft_order(self):
        template = self._create_template()
        order = self._create_order(template["id"])

        res = self.client.delete(f"{BASE}/orders/{order['id']}/")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["deleted"])

        res = self.client.get(f"{BASE}/orders/{order['id']}/")
        self.assertEqual(res.status_code, 404)

    def test_viewer_can_list_but_not_manage(self):
        self._create_template()
        viewer = make_user(self.company, email="viewer@example.com", role="viewer")
        self.client.force_authenticate(viewer)

        res = self.client.get(f"{BASE}/templates/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 1)

        res = self.client.post(f"{BASE}/orders/", {}, format="json")
        self.assertEqual(res.status_code, 403)

    def test_unknown_order_is_404(self):
        res = self.client.post(
            f"{BASE}/orders/00000000-0000-0000-0000-000000000000/execute/", {}, format="json"
        )
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["error"], "Transformation order not found")

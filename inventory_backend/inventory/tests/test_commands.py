from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from inventory.models import ItemWarehouse
from inventory.tests.factories import (
    ctx_for,
    make_company,
    make_item,
    make_user,
    make_warehouse,
    stock_in,
)


class ReconcileStockBalancesTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.ctx = ctx_for(make_user(self.company))
        self.item = make_item(self.company, "ITEM-1")
        self.warehouse = make_warehouse(self.company, "WH-A")
        stock_in(self.ctx, self.item, self.warehouse, "10", unit_cost="2")

    def _drift(self, value):
        ItemWarehouse.objects.filter(item=self.item, warehouse=self.warehouse).update(
            current_stock=Decimal(value)
        )

    def test_clean_ledger_reports_ok(self):
        out = StringIO()
        call_command("reconcile_stock_balances", stdout=out)
        self.assertIn("OK: balances match the ledger.", out.getvalue())

    def test_drift_is_reported_and_strict_fails(self):
        self._drift("7")

        out = StringIO()
        call_command("reconcile_stock_balances", stdout=out)
        self.assertIn("DRIFT ITEM-1 @ WH-A", out.getvalue())

        with self.assertRaises(CommandError):
            call_command("reconcile_stock_balances", "--strict", stdout=StringIO())

    def test_fix_restores_ledger_total(self):
        self._drift("7")

        call_command("reconcile_stock_balances", "--fix", "--strict", stdout=StringIO())

        balance = ItemWarehouse.objects.get(item=self.item, warehouse=self.warehouse)
        self.assertEqual(balance.current_stock, Decimal("10"))

    def test_unknown_company(self):
        with self.assertRaises(CommandError):
            call_command("reconcile_stock_balances", "--company", "NOPE", stdout=StringIO())

"""
======================================================
PATH: inventory/migrations/0001_initial.py
======================================================
MIGRATION: CREATE INVENTORY CORE

- Master data: UnitOfMeasure, Item, ItemPackage, Warehouse, WarehouseLocation
- Balances: item_warehouse (one live row per item + warehouse), ItemLocation
- Documents: StockTransaction + StockTransactionLine
- Ledger: StockTransactionItem (append-only)
- DocumentSequence (gap-free document codes)
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


def _uuid_pk():
    return models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        serialize=False,
    )


def _qty(**kwargs):
    return models.DecimalField(max_digits=18, decimal_places=4, **kwargs)


def _user_fk(related_name):
    return models.ForeignKey(
        to=settings.AUTH_USER_MODEL,
        blank=True,
        null=True,
        on_delete=django.db.models.deletion.SET_NULL,
        related_name=related_name,
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("organizations", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        # ---------------- MASTER DATA ----------------
        migrations.CreateModel(
            name="UnitOfMeasure",
            fields=[
                ("id", _uuid_pk()),
                ("code", models.CharField(max_length=20)),
                ("name", models.CharField(max_length=100)),
                ("symbol", models.CharField(blank=True, default="", max_length=20)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "company",
                    models.ForeignKey(
                        to="organizations.company",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="units_of_measure",
                    ),
                ),
            ],
            options={"ordering": ["code"]},
        ),
        migrations.CreateModel(
            name="Item",
            fields=[
                ("id", _uuid_pk()),
                ("item_code", models.CharField(max_length=64)),
                ("item_name", models.CharField(db_index=True, max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "item_type",
                    models.CharField(
                        choices=[("stock", "Stock Item"), ("non_stock", "Non-stock Item")],
                        default="stock",
                        max_length=20,
                    ),
                ),
                (
                    "standard_cost",
                    models.DecimalField(
                        blank=True,
                        decimal_places=4,
                        help_text="Fallback valuation rate when the ledger has no rate yet.",
                        max_digits=14,
                        null=True,
                    ),
                ),
                (
                    "selling_price",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        to="organizations.company",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                    ),
                ),
                (
                    "uom",
                    models.ForeignKey(
                        to="inventory.unitofmeasure",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="items",
                    ),
                ),
                ("created_by", _user_fk("items_created")),
            ],
            options={"ordering": ["item_code"]},
        ),
        migrations.CreateModel(
            name="ItemPackage",
            fields=[
                ("id", _uuid_pk()),
                ("pack_name", models.CharField(max_length=100)),
                (
                    "qty_per_pack",
                    models.DecimalField(decimal_places=4, default=Decimal("1"), max_digits=14),
                ),
                ("is_base", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "item",
                    models.ForeignKey(
                        to="inventory.item",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="packages",
                    ),
                ),
            ],
            options={"ordering": ["qty_per_pack"]},
        ),
        migrations.CreateModel(
            name="Warehouse",
            fields=[
                ("id", _uuid_pk()),
                ("warehouse_code", models.CharField(max_length=50)),
                ("warehouse_name", models.CharField(max_length=255)),
                ("address", models.TextField(blank=True, default="")),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        to="organizations.company",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="warehouses",
                    ),
                ),
                (
                    "business_unit",
                    models.ForeignKey(
                        to="organizations.businessunit",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="warehouses",
                    ),
                ),
            ],
            options={"ordering": ["warehouse_code"]},
        ),
        migrations.CreateModel(
            name="WarehouseLocation",
            fields=[
                ("id", _uuid_pk()),
                ("code", models.CharField(max_length=50)),
                ("name", models.CharField(max_length=255)),
                ("is_pickable", models.BooleanField(default=True)),
                ("is_storable", models.BooleanField(default=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "warehouse",
                    models.ForeignKey(
                        to="inventory.warehouse",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="locations",
                    ),
                ),
            ],
            options={"ordering": ["code"]},
        ),
        # ---------------- BALANCES ----------------
        migrations.CreateModel(
            name="ItemWarehouse",
            fields=[
                ("id", _uuid_pk()),
                ("current_stock", _qty(default=Decimal("0"))),
                ("reserved_stock", _qty(default=Decimal("0"))),
                (
                    "available_stock",
                    _qty(default=Decimal("0"), help_text="Derived: current_stock - reserved_stock."),
                ),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        to="organizations.company",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="item_balances",
                    ),
                ),
                (
                    "item",
                    models.ForeignKey(
                        to="inventory.item",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="warehouse_balances",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        to="inventory.warehouse",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="item_balances",
                    ),
                ),
                (
                    "default_location",
                    models.ForeignKey(
                        to="inventory.warehouselocation",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="default_for_balances",
                    ),
                ),
                ("created_by", _user_fk("item_balances_created")),
                ("updated_by", _user_fk("item_balances_updated")),
            ],
            options={
                "db_table": "item_warehouse",
                "ordering": ["item", "warehouse"],
            },
        ),
        migrations.CreateModel(
            name="ItemLocation",
            fields=[
                ("id", _uuid_pk()),
                ("qty_on_hand", _qty(default=Decimal("0"))),
                ("qty_reserved", _qty(default=Decimal("0"))),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        to="organizations.company",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="item_locations",
                    ),
                ),
                (
                    "item",
                    models.ForeignKey(
                        to="inventory.item",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="location_balances",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        to="inventory.warehouse",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="item_locations",
                    ),
                ),
                (
                    "location",
                    models.ForeignKey(
                        to="inventory.warehouselocation",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="item_locations",
                    ),
                ),
            ],
            options={"ordering": ["location"]},
        ),
        # ---------------- DOCUMENTS ----------------
        migrations.CreateModel(
            name="StockTransaction",
            fields=[
                ("id", _uuid_pk()),
                ("transaction_code", models.CharField(max_length=32)),
                (
                    "transaction_type",
                    models.CharField(
                        choices=[
                            ("in", "Stock In"),
                            ("out", "Stock Out"),
                            ("transfer", "Transfer"),
                        ],
                        max_length=10,
                    ),
                ),
                ("transaction_date", models.DateField(default=django.utils.timezone.localdate)),
                ("reference_type", models.CharField(blank=True, default="", max_length=40)),
                ("reference_id", models.UUIDField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("draft", "Draft"), ("posted", "Posted")],
                        default="draft",
                        max_length=10,
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        to="organizations.company",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stock_transactions",
                    ),
                ),
                (
                    "business_unit",
                    models.ForeignKey(
                        to="organizations.businessunit",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_transactions",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        to="inventory.warehouse",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_transactions",
                    ),
                ),
                (
                    "to_warehouse",
                    models.ForeignKey(
                        to="inventory.warehouse",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="incoming_transfers",
                    ),
                ),
                (
                    "from_location",
                    models.ForeignKey(
                        to="inventory.warehouselocation",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="outgoing_transactions",
                    ),
                ),
                (
                    "to_location",
                    models.ForeignKey(
                        to="inventory.warehouselocation",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="incoming_transactions",
                    ),
                ),
                ("posted_by", _user_fk("stock_transactions_posted")),
                ("created_by", _user_fk("stock_transactions_created")),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="StockTransactionLine",
            fields=[
                ("id", _uuid_pk()),
                ("line_no", models.PositiveIntegerField(default=1)),
                ("input_qty", _qty()),
                (
                    "unit_cost",
                    models.DecimalField(blank=True, decimal_places=4, max_digits=14, null=True),
                ),
                ("batch_no", models.CharField(blank=True, default="", max_length=64)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "transaction",
                    models.ForeignKey(
                        to="inventory.stocktransaction",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                    ),
                ),
                (
                    "item",
                    models.ForeignKey(
                        to="inventory.item",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_transaction_lines",
                    ),
                ),
                (
                    "uom",
                    models.ForeignKey(
                        to="inventory.unitofmeasure",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_transaction_lines",
                    ),
                ),
                (
                    "package",
                    models.ForeignKey(
                        to="inventory.itempackage",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_transaction_lines",
                    ),
                ),
            ],
            options={"ordering": ["line_no"]},
        ),
        # ---------------- LEDGER ----------------
        migrations.CreateModel(
            name="StockTransactionItem",
            fields=[
                ("id", _uuid_pk()),
                ("input_qty", _qty()),
                (
                    "conversion_factor",
                    models.DecimalField(decimal_places=4, default=Decimal("1"), max_digits=14),
                ),
                ("quantity", _qty(help_text="Signed base-unit delta applied to the balance.")),
                (
                    "unit_cost",
                    models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=14),
                ),
                ("total_cost", _qty(default=Decimal("0"))),
                ("qty_before", _qty()),
                ("qty_after", _qty()),
                (
                    "valuation_rate",
                    models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=14),
                ),
                ("stock_value_before", _qty(default=Decimal("0"))),
                ("stock_value_after", _qty(default=Decimal("0"))),
                ("posting_date", models.DateField(default=django.utils.timezone.localdate)),
                ("posting_time", models.TimeField()),
                ("batch_no", models.CharField(blank=True, default="", max_length=64)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "company",
                    models.ForeignKey(
                        to="organizations.company",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stock_ledger_entries",
                    ),
                ),
                (
                    "transaction",
                    models.ForeignKey(
                        to="inventory.stocktransaction",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                    ),
                ),
                (
                    "line",
                    models.ForeignKey(
                        to="inventory.stocktransactionline",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                    ),
                ),
                (
                    "item",
                    models.ForeignKey(
                        to="inventory.item",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        to="inventory.warehouse",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                    ),
                ),
                (
                    "location",
                    models.ForeignKey(
                        to="inventory.warehouselocation",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="ledger_entries",
                    ),
                ),
                (
                    "uom",
                    models.ForeignKey(
                        to="inventory.unitofmeasure",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                    ),
                ),
                (
                    "package",
                    models.ForeignKey(
                        to="inventory.itempackage",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                    ),
                ),
                ("created_by", _user_fk("stock_ledger_entries")),
            ],
            options={"ordering": ["created_at"]},
        ),
        # ---------------- SEQUENCES ----------------
        migrations.CreateModel(
            name="DocumentSequence",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("prefix", models.CharField(max_length=10)),
                ("year", models.PositiveIntegerField()),
                ("last_value", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        to="organizations.company",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="document_sequences",
                    ),
                ),
            ],
            options={"ordering": ["company", "prefix", "year"]},
        ),
        # ---------------- CONSTRAINTS + INDEXES ----------------
        migrations.AddConstraint(
            model_name="unitofmeasure",
            constraint=models.UniqueConstraint(
                fields=("company", "code"), name="uniq_uom_company_code"
            ),
        ),
        migrations.AddConstraint(
            model_name="item",
            constraint=models.UniqueConstraint(
                condition=models.Q(deleted_at__isnull=True),
                fields=("company", "item_code"),
                name="uniq_item_company_code_live",
            ),
        ),
        migrations.AddConstraint(
            model_name="item",
            constraint=models.CheckConstraint(
                condition=models.Q(selling_price__gte=Decimal("0.00")),
                name="item_selling_price_nonnegative",
            ),
        ),
        migrations.AddIndex(
            model_name="item",
            index=models.Index(fields=["company", "item_code"], name="inv_item_company_code_idx"),
        ),
        migrations.AddConstraint(
            model_name="itempackage",
            constraint=models.CheckConstraint(
                condition=models.Q(qty_per_pack__gt=0),
                name="item_package_qty_per_pack_gt_zero",
            ),
        ),
        migrations.AddConstraint(
            model_name="itempackage",
            constraint=models.UniqueConstraint(
                fields=("item", "pack_name"), name="uniq_item_package_name"
            ),
        ),
        migrations.AddConstraint(
            model_name="warehouse",
            constraint=models.UniqueConstraint(
                fields=("company", "warehouse_code"), name="uniq_warehouse_company_code"
            ),
        ),
        migrations.AddConstraint(
            model_name="warehouselocation",
            constraint=models.UniqueConstraint(
                fields=("warehouse", "code"), name="uniq_location_warehouse_code"
            ),
        ),
        migrations.AddConstraint(
            model_name="itemwarehouse",
            constraint=models.UniqueConstraint(
                condition=models.Q(deleted_at__isnull=True),
                fields=("item", "warehouse"),
                name="uniq_item_warehouse_live",
            ),
        ),
        migrations.AddIndex(
            model_name="itemwarehouse",
            index=models.Index(fields=["company", "warehouse"], name="item_wh_company_wh_idx"),
        ),
        migrations.AddConstraint(
            model_name="itemlocation",
            constraint=models.UniqueConstraint(
                fields=("item", "location"), name="uniq_item_location"
            ),
        ),
        migrations.AddConstraint(
            model_name="stocktransaction",
            constraint=models.UniqueConstraint(
                fields=("company", "transaction_code"), name="uniq_stock_txn_company_code"
            ),
        ),
        migrations.AddConstraint(
            model_name="stocktransaction",
            constraint=models.CheckConstraint(
                condition=~models.Q(transaction_type="transfer")
                | models.Q(to_warehouse__isnull=False),
                name="stock_txn_transfer_has_destination",
            ),
        ),
        migrations.AddIndex(
            model_name="stocktransaction",
            index=models.Index(fields=["company", "status"], name="stock_txn_company_status_idx"),
        ),
        migrations.AddIndex(
            model_name="stocktransaction",
            index=models.Index(fields=["reference_type", "reference_id"], name="stock_txn_reference_idx"),
        ),
        migrations.AddIndex(
            model_name="stocktransaction",
            index=models.Index(fields=["transaction_date"], name="stock_txn_date_idx"),
        ),
        migrations.AddConstraint(
            model_name="stocktransactionline",
            constraint=models.CheckConstraint(
                condition=models.Q(input_qty__gt=Decimal("0")),
                name="stock_txn_line_qty_gt_zero",
            ),
        ),
        migrations.AddIndex(
            model_name="stocktransactionitem",
            index=models.Index(
                fields=["item", "warehouse", "created_at"], name="ledger_item_wh_created_idx"
            ),
        ),
        migrations.AddIndex(
            model_name="stocktransactionitem",
            index=models.Index(fields=["transaction"], name="ledger_transaction_idx"),
        ),
        migrations.AddIndex(
            model_name="stocktransactionitem",
            index=models.Index(fields=["posting_date"], name="ledger_posting_date_idx"),
        ),
        migrations.AddConstraint(
            model_name="documentsequence",
            constraint=models.UniqueConstraint(
                fields=("company", "prefix", "year"), name="uniq_document_sequence"
            ),
        ),
    ]

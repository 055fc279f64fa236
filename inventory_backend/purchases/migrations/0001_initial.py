"""
======================================================
PATH: purchases/migrations/0001_initial.py
======================================================
MIGRATION: CREATE Supplier, PurchaseOrder(+Item), PurchaseReceipt(+Item)
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


def _uuid_pk():
    return models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)


def _qty(**kwargs):
    return models.DecimalField(max_digits=18, decimal_places=4, **kwargs)


def _fk(to, related_name, *, on_delete=django.db.models.deletion.PROTECT, nullable=False):
    extra = {"blank": True, "null": True} if nullable else {}
    return models.ForeignKey(on_delete=on_delete, related_name=related_name, to=to, **extra)


def _user_fk(related_name="+"):
    return _fk(
        settings.AUTH_USER_MODEL,
        related_name,
        on_delete=django.db.models.deletion.SET_NULL,
        nullable=True,
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("organizations", "0001_initial"),
        ("inventory", "0001_initial"),
        ("accounting", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Supplier",
            fields=[
                ("id", _uuid_pk()),
                ("supplier_code", models.CharField(max_length=32)),
                ("name", models.CharField(max_length=200)),
                ("phone", models.CharField(blank=True, default="", max_length=50)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("address", models.TextField(blank=True, default="")),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    _fk(
                        "organizations.company",
                        "suppliers",
                        on_delete=django.db.models.deletion.CASCADE,
                    ),
                ),
            ],
            options={"ordering": ["name"]},
        ),
        migrations.CreateModel(
            name="PurchaseOrder",
            fields=[
                ("id", _uuid_pk()),
                ("order_code", models.CharField(max_length=32)),
                ("order_date", models.DateField(default=django.utils.timezone.localdate)),
                ("expected_delivery_date", models.DateField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("approved", "Approved"),
                            ("partially_received", "Partially received"),
                            ("received", "Received"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("total_amount", _qty(default=Decimal("0"))),
                ("notes", models.TextField(blank=True, default="")),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                (
                    "company",
                    _fk(
                        "organizations.company",
                        "purchase_orders",
                        on_delete=django.db.models.deletion.CASCADE,
                    ),
                ),
                (
                    "business_unit",
                    _fk(
                        "organizations.businessunit",
                        "purchase_orders",
                        on_delete=django.db.models.deletion.SET_NULL,
                        nullable=True,
                    ),
                ),
                ("supplier", _fk("purchases.supplier", "purchase_orders")),
                ("approved_by", _user_fk()),
                ("created_by", _user_fk("purchase_orders_created")),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="PurchaseOrderItem",
            fields=[
                ("id", _uuid_pk()),
                ("line_no", models.PositiveIntegerField(default=1)),
                ("quantity", _qty()),
                ("rate", _qty(default=Decimal("0"))),
                ("line_total", _qty(default=Decimal("0"))),
                ("quantity_received", _qty(default=Decimal("0"))),
                ("notes", models.CharField(blank=True, default="", max_length=255)),
                (
                    "purchase_order",
                    _fk(
                        "purchases.purchaseorder",
                        "items",
                        on_delete=django.db.models.deletion.CASCADE,
                    ),
                ),
                ("item", _fk("inventory.item", "purchase_order_items")),
                ("package", _fk("inventory.itempackage", "+", nullable=True)),
                ("uom", _fk("inventory.unitofmeasure", "+", nullable=True)),
            ],
            options={"ordering": ["line_no"]},
        ),
        migrations.CreateModel(
            name="PurchaseReceipt",
            fields=[
                ("id", _uuid_pk()),
                ("receipt_code", models.CharField(max_length=32)),
                ("receipt_date", models.DateField(default=django.utils.timezone.localdate)),
                (
                    "supplier_invoice_number",
                    models.CharField(blank=True, default="", max_length=64),
                ),
                ("supplier_invoice_date", models.DateField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("received", "Received"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                ("total_amount", _qty(default=Decimal("0"))),
                ("received_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                (
                    "company",
                    _fk(
                        "organizations.company",
                        "purchase_receipts",
                        on_delete=django.db.models.deletion.CASCADE,
                    ),
                ),
                (
                    "business_unit",
                    _fk(
                        "organizations.businessunit",
                        "purchase_receipts",
                        on_delete=django.db.models.deletion.SET_NULL,
                        nullable=True,
                    ),
                ),
                (
                    "purchase_order",
                    _fk("purchases.purchaseorder", "receipts", nullable=True),
                ),
                ("supplier", _fk("purchases.supplier", "receipts")),
                ("warehouse", _fk("inventory.warehouse", "purchase_receipts")),
                (
                    "stock_transaction",
                    _fk("inventory.stocktransaction", "+", nullable=True),
                ),
                ("journal_entry", _fk("accounting.journalentry", "+", nullable=True)),
                ("received_by", _user_fk("purchase_receipts_received")),
                ("created_by", _user_fk("purchase_receipts_created")),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="PurchaseReceiptItem",
            fields=[
                ("id", _uuid_pk()),
                ("line_no", models.PositiveIntegerField(default=1)),
                ("quantity_ordered", _qty(default=Decimal("0"))),
                ("quantity_received", _qty()),
                ("rate", _qty(default=Decimal("0"))),
                ("notes", models.CharField(blank=True, default="", max_length=255)),
                (
                    "receipt",
                    _fk(
                        "purchases.purchasereceipt",
                        "items",
                        on_delete=django.db.models.deletion.CASCADE,
                    ),
                ),
                (
                    "purchase_order_item",
                    _fk("purchases.purchaseorderitem", "receipt_items", nullable=True),
                ),
                ("item", _fk("inventory.item", "purchase_receipt_items")),
                ("package", _fk("inventory.itempackage", "+", nullable=True)),
                ("uom", _fk("inventory.unitofmeasure", "+", nullable=True)),
            ],
            options={"ordering": ["line_no"]},
        ),
        # ---------------- CONSTRAINTS / INDEXES ----------------
        migrations.AddConstraint(
            model_name="supplier",
            constraint=models.UniqueConstraint(
                fields=("company", "supplier_code"), name="uniq_supplier_company_code"
            ),
        ),
        migrations.AddIndex(
            model_name="supplier",
            index=models.Index(fields=["company", "name"], name="supplier_company_name_idx"),
        ),
        migrations.AddIndex(
            model_name="supplier",
            index=models.Index(fields=["is_active"], name="supplier_active_idx"),
        ),
        migrations.AddConstraint(
            model_name="purchaseorder",
            constraint=models.UniqueConstraint(
                fields=("company", "order_code"), name="uniq_purchase_order_company_code"
            ),
        ),
        migrations.AddConstraint(
            model_name="purchaseorder",
            constraint=models.CheckConstraint(
                condition=models.Q(total_amount__gte=Decimal("0")),
                name="purchase_order_total_nonnegative",
            ),
        ),
        migrations.AddIndex(
            model_name="purchaseorder",
            index=models.Index(fields=["company", "status"], name="po_company_status_idx"),
        ),
        migrations.AddIndex(
            model_name="purchaseorder",
            index=models.Index(fields=["supplier", "order_date"], name="po_supplier_date_idx"),
        ),
        migrations.AddConstraint(
            model_name="purchaseorderitem",
            constraint=models.CheckConstraint(
                condition=models.Q(quantity__gt=0), name="po_item_quantity_gt_zero"
            ),
        ),
        migrations.AddConstraint(
            model_name="purchaseorderitem",
            constraint=models.CheckConstraint(
                condition=models.Q(rate__gte=0), name="po_item_rate_nonnegative"
            ),
        ),
        migrations.AddConstraint(
            model_name="purchaseorderitem",
            constraint=models.CheckConstraint(
                condition=models.Q(quantity_received__lte=models.F("quantity")),
                name="po_item_received_lte_quantity",
            ),
        ),
        migrations.AddConstraint(
            model_name="purchasereceipt",
            constraint=models.UniqueConstraint(
                fields=("company", "receipt_code"), name="uniq_purchase_receipt_company_code"
            ),
        ),
        migrations.AddIndex(
            model_name="purchasereceipt",
            index=models.Index(fields=["company", "status"], name="grn_company_status_idx"),
        ),
        migrations.AddIndex(
            model_name="purchasereceipt",
            index=models.Index(fields=["warehouse", "receipt_date"], name="grn_wh_date_idx"),
        ),
        migrations.AddConstraint(
            model_name="purchasereceiptitem",
            constraint=models.CheckConstraint(
                condition=models.Q(quantity_received__gt=0), name="grn_item_quantity_gt_zero"
            ),
        ),
        migrations.AddConstraint(
            model_name="purchasereceiptitem",
            constraint=models.CheckConstraint(
                condition=models.Q(rate__gte=0), name="grn_item_rate_nonnegative"
            ),
        ),
    ]

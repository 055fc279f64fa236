"""
======================================================
PATH: adjustments/migrations/0001_initial.py
======================================================
MIGRATION: CREATE StockAdjustment + StockAdjustmentItem
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


def _qty(**kwargs):
    return models.DecimalField(max_digits=18, decimal_places=4, **kwargs)


def _user_fk(related_name="+"):
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
        ("inventory", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="StockAdjustment",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        primary_key=True,
                        default=uuid.uuid4,
                        editable=False,
                        serialize=False,
                    ),
                ),
                ("adjustment_code", models.CharField(max_length=32)),
                (
                    "adjustment_type",
                    models.CharField(
                        choices=[
                            ("increase", "Increase"),
                            ("decrease", "Decrease"),
                            ("physical_count", "Physical Count"),
                        ],
                        max_length=20,
                    ),
                ),
                ("adjustment_date", models.DateField(default=django.utils.timezone.localdate)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("approved", "Approved"),
                            ("posted", "Posted"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("reason", models.CharField(max_length=255)),
                ("notes", models.TextField(blank=True, default="")),
                ("total_value", _qty(default=Decimal("0"))),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stock_adjustments",
                        to="organizations.company",
                    ),
                ),
                (
                    "business_unit",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_adjustments",
                        to="organizations.businessunit",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_adjustments",
                        to="inventory.warehouse",
                    ),
                ),
                (
                    "location",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_adjustments",
                        to="inventory.warehouselocation",
                    ),
                ),
                (
                    "stock_transaction_in",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="inventory.stocktransaction",
                    ),
                ),
                (
                    "stock_transaction_out",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="inventory.stocktransaction",
                    ),
                ),
                ("approved_by", _user_fk()),
                ("posted_by", _user_fk()),
                ("created_by", _user_fk("stock_adjustments_created")),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="StockAdjustmentItem",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        primary_key=True,
                        default=uuid.uuid4,
                        editable=False,
                        serialize=False,
                    ),
                ),
                ("line_no", models.PositiveIntegerField(default=1)),
                ("input_qty", _qty(default=Decimal("0"))),
                ("conversion_factor", _qty(default=Decimal("1"))),
                ("current_qty", _qty(default=Decimal("0"))),
                ("adjusted_qty", _qty()),
                ("difference", _qty()),
                ("unit_cost", _qty(default=Decimal("0"))),
                ("total_cost", _qty(default=Decimal("0"))),
                ("reason", models.CharField(blank=True, default="", max_length=255)),
                (
                    "adjustment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="adjustments.stockadjustment",
                    ),
                ),
                (
                    "item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="adjustment_lines",
                        to="inventory.item",
                    ),
                ),
                (
                    "uom",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="inventory.unitofmeasure",
                    ),
                ),
                (
                    "package",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="inventory.itempackage",
                    ),
                ),
            ],
            options={
                "ordering": ["line_no"],
            },
        ),
        # ---------------- CONSTRAINTS / INDEXES ----------------
        migrations.AddConstraint(
            model_name="stockadjustment",
            constraint=models.UniqueConstraint(
                fields=("company", "adjustment_code"),
                name="uniq_adjustment_company_code",
            ),
        ),
        migrations.AddIndex(
            model_name="stockadjustment",
            index=models.Index(fields=["company", "status"], name="adjustment_company_status_idx"),
        ),
        migrations.AddIndex(
            model_name="stockadjustment",
            index=models.Index(fields=["warehouse", "adjustment_date"], name="adjustment_wh_date_idx"),
        ),
        migrations.AddConstraint(
            model_name="stockadjustmentitem",
            constraint=models.CheckConstraint(
                condition=models.Q(adjusted_qty__gte=0),
                name="adjustment_item_adjusted_qty_nonnegative",
            ),
        ),
        migrations.AddConstraint(
            model_name="stockadjustmentitem",
            constraint=models.CheckConstraint(
                condition=models.Q(unit_cost__gte=0),
                name="adjustment_item_unit_cost_nonnegative",
            ),
        ),
    ]

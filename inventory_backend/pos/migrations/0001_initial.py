"""
======================================================
PATH: pos/migrations/0001_initial.py
======================================================
MIGRATION: CREATE PosTransaction + PosTransactionItem + PosTransactionPayment
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


def _money(**kwargs):
    kwargs.setdefault("default", Decimal("0"))
    return models.DecimalField(max_digits=18, decimal_places=4, **kwargs)


def _uuid_pk():
    return models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)


def _stock_txn_fk():
    return models.ForeignKey(
        blank=True,
        null=True,
        on_delete=django.db.models.deletion.PROTECT,
        related_name="+",
        to="inventory.stocktransaction",
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
            name="PosTransaction",
            fields=[
                ("id", _uuid_pk()),
                ("transaction_code", models.CharField(max_length=32)),
                (
                    "transaction_date",
                    models.DateTimeField(db_index=True, default=django.utils.timezone.now),
                ),
                ("customer_name", models.CharField(blank=True, default="", max_length=255)),
                ("subtotal", _money()),
                ("total_discount", _money()),
                ("tax_rate", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=5)),
                ("total_tax", _money()),
                ("total_amount", _money()),
                ("amount_paid", _money()),
                ("change_amount", _money()),
                ("total_cost", _money()),
                (
                    "status",
                    models.CharField(
                        choices=[("completed", "Completed"), ("voided", "Voided")],
                        default="completed",
                        max_length=20,
                    ),
                ),
                ("cashier_name", models.CharField(blank=True, default="", max_length=255)),
                ("notes", models.TextField(blank=True, default="")),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="pos_transactions",
                        to="organizations.company",
                    ),
                ),
                (
                    "business_unit",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="pos_transactions",
                        to="organizations.businessunit",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="pos_transactions",
                        to="inventory.warehouse",
                    ),
                ),
                (
                    "cashier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="pos_transactions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                ("stock_transaction", _stock_txn_fk()),
                ("void_stock_transaction", _stock_txn_fk()),
                (
                    "voided_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="pos_transactions_voided",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-transaction_date"],
            },
        ),
        migrations.CreateModel(
            name="PosTransactionItem",
            fields=[
                ("id", _uuid_pk()),
                ("line_no", models.PositiveIntegerField(default=1)),
                ("item_code", models.CharField(max_length=64)),
                ("item_name", models.CharField(max_length=255)),
                ("quantity", models.DecimalField(decimal_places=4, max_digits=18)),
                ("unit_price", models.DecimalField(decimal_places=4, max_digits=18)),
                ("discount", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=5)),
                ("line_total", models.DecimalField(decimal_places=4, max_digits=18)),
                (
                    "pos_transaction",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="pos.postransaction",
                    ),
                ),
                (
                    "item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="pos_transaction_items",
                        to="inventory.item",
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
        migrations.CreateModel(
            name="PosTransactionPayment",
            fields=[
                ("id", _uuid_pk()),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("cash", "Cash"),
                            ("credit_card", "Credit card"),
                            ("gcash", "GCash"),
                            ("paymaya", "PayMaya"),
                            ("bank_transfer", "Bank transfer"),
                            ("check", "Check"),
                            ("other", "Other"),
                        ],
                        max_length=32,
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=4, max_digits=18)),
                ("reference", models.CharField(blank=True, default="", max_length=128)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "pos_transaction",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payments",
                        to="pos.postransaction",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
            },
        ),
        migrations.AddConstraint(
            model_name="postransaction",
            constraint=models.UniqueConstraint(
                fields=("company", "transaction_code"),
                name="uniq_pos_transaction_company_code",
            ),
        ),
        migrations.AddConstraint(
            model_name="postransaction",
            constraint=models.CheckConstraint(
                condition=models.Q(("change_amount__gte", 0)),
                name="pos_transaction_change_nonnegative",
            ),
        ),
        migrations.AddConstraint(
            model_name="postransaction",
            constraint=models.CheckConstraint(
                condition=models.Q(("total_amount__gte", 0)),
                name="pos_transaction_total_nonnegative",
            ),
        ),
        migrations.AddIndex(
            model_name="postransaction",
            index=models.Index(fields=["company", "status"], name="pos_company_status_idx"),
        ),
        migrations.AddIndex(
            model_name="postransaction",
            index=models.Index(fields=["cashier", "transaction_date"], name="pos_cashier_date_idx"),
        ),
        migrations.AddConstraint(
            model_name="postransactionitem",
            constraint=models.CheckConstraint(
                condition=models.Q(("quantity__gt", 0)),
                name="pos_item_quantity_gt_zero",
            ),
        ),
        migrations.AddConstraint(
            model_name="postransactionitem",
            constraint=models.CheckConstraint(
                condition=models.Q(("discount__gte", 0), ("discount__lte", 100)),
                name="pos_item_discount_pct_range",
            ),
        ),
        migrations.AddConstraint(
            model_name="postransactionpayment",
            constraint=models.CheckConstraint(
                condition=models.Q(("amount__gt", 0)),
                name="pos_payment_amount_gt_zero",
            ),
        ),
    ]

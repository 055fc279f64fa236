"""
======================================================
PATH: transformations/migrations/0001_initial.py
======================================================
MIGRATION: CREATE TransformationTemplate (+ inputs/outputs)
           CREATE TransformationOrder (+ inputs/outputs)
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


def _user_fk(related_name="+"):
    return models.ForeignKey(
        to=settings.AUTH_USER_MODEL,
        blank=True,
        null=True,
        on_delete=django.db.models.deletion.SET_NULL,
        related_name=related_name,
    )


def _item_fk():
    return models.ForeignKey(
        on_delete=django.db.models.deletion.PROTECT,
        related_name="+",
        to="inventory.item",
    )


def _uom_fk():
    return models.ForeignKey(
        blank=True,
        null=True,
        on_delete=django.db.models.deletion.PROTECT,
        related_name="+",
        to="inventory.unitofmeasure",
    )


def _txn_fk():
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
            name="TransformationTemplate",
            fields=[
                ("id", _uuid_pk()),
                ("template_code", models.CharField(max_length=50)),
                ("template_name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("is_active", models.BooleanField(default=True)),
                ("usage_count", models.PositiveIntegerField(default=0)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="transformation_templates",
                        to="organizations.company",
                    ),
                ),
                ("created_by", _user_fk("transformation_templates_created")),
            ],
            options={
                "ordering": ["template_code"],
            },
        ),
        migrations.CreateModel(
            name="TransformationTemplateInput",
            fields=[
                ("id", _uuid_pk()),
                ("sequence", models.PositiveIntegerField(default=1)),
                ("quantity", _qty()),
                ("notes", models.CharField(blank=True, default="", max_length=255)),
                ("item", _item_fk()),
                ("uom", _uom_fk()),
                (
                    "template",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="inputs",
                        to="transformations.transformationtemplate",
                    ),
                ),
            ],
            options={
                "ordering": ["sequence"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="TransformationTemplateOutput",
            fields=[
                ("id", _uuid_pk()),
                ("sequence", models.PositiveIntegerField(default=1)),
                ("quantity", _qty()),
                ("notes", models.CharField(blank=True, default="", max_length=255)),
                ("is_scrap", models.BooleanField(default=False)),
                ("item", _item_fk()),
                ("uom", _uom_fk()),
                (
                    "template",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="outputs",
                        to="transformations.transformationtemplate",
                    ),
                ),
            ],
            options={
                "ordering": ["sequence"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="TransformationOrder",
            fields=[
                ("id", _uuid_pk()),
                ("order_code", models.CharField(max_length=32)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("preparing", "Preparing"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("planned_quantity", _qty()),
                ("actual_quantity", _qty(default=Decimal("0"))),
                ("total_input_cost", _qty(default=Decimal("0"))),
                ("total_output_cost", _qty(default=Decimal("0"))),
                ("cost_variance", _qty(default=Decimal("0"))),
                ("order_date", models.DateField(default=django.utils.timezone.localdate)),
                ("planned_date", models.DateField(blank=True, null=True)),
                ("execution_date", models.DateField(blank=True, null=True)),
                ("completion_date", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="transformation_orders",
                        to="organizations.company",
                    ),
                ),
                (
                    "business_unit",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="transformation_orders",
                        to="organizations.businessunit",
                    ),
                ),
                (
                    "template",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="transformations.transformationtemplate",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transformation_orders",
                        to="inventory.warehouse",
                    ),
                ),
                ("consume_transaction", _txn_fk()),
                ("produce_transaction", _txn_fk()),
                ("created_by", _user_fk("transformation_orders_created")),
                ("updated_by", _user_fk()),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="TransformationOrderInput",
            fields=[
                ("id", _uuid_pk()),
                ("sequence", models.PositiveIntegerField(default=1)),
                ("planned_quantity", _qty()),
                ("consumed_quantity", _qty(default=Decimal("0"))),
                ("unit_cost", _qty(default=Decimal("0"))),
                ("total_cost", _qty(default=Decimal("0"))),
                ("item", _item_fk()),
                ("uom", _uom_fk()),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="inputs",
                        to="transformations.transformationorder",
                    ),
                ),
            ],
            options={
                "ordering": ["sequence"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="TransformationOrderOutput",
            fields=[
                ("id", _uuid_pk()),
                ("sequence", models.PositiveIntegerField(default=1)),
                ("planned_quantity", _qty()),
                ("is_scrap", models.BooleanField(default=False)),
                ("produced_quantity", _qty(default=Decimal("0"))),
                ("wasted_quantity", _qty(default=Decimal("0"))),
                ("waste_reason", models.CharField(blank=True, default="", max_length=255)),
                ("allocated_cost_per_unit", _qty(default=Decimal("0"))),
                ("total_allocated_cost", _qty(default=Decimal("0"))),
                ("item", _item_fk()),
                ("uom", _uom_fk()),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="outputs",
                        to="transformations.transformationorder",
                    ),
                ),
            ],
            options={
                "ordering": ["sequence"],
                "abstract": False,
            },
        ),
        migrations.AddConstraint(
            model_name="transformationtemplate",
            constraint=models.UniqueConstraint(
                condition=models.Q(("deleted_at__isnull", True)),
                fields=("company", "template_code"),
                name="uniq_live_template_company_code",
            ),
        ),
        migrations.AddConstraint(
            model_name="transformationtemplateinput",
            constraint=models.UniqueConstraint(
                fields=("template", "item"), name="uniq_template_input_item"
            ),
        ),
        migrations.AddConstraint(
            model_name="transformationtemplateinput",
            constraint=models.CheckConstraint(
                condition=models.Q(("quantity__gt", 0)), name="template_input_qty_gt_zero"
            ),
        ),
        migrations.AddConstraint(
            model_name="transformationtemplateoutput",
            constraint=models.UniqueConstraint(
                fields=("template", "item"), name="uniq_template_output_item"
            ),
        ),
        migrations.AddConstraint(
            model_name="transformationtemplateoutput",
            constraint=models.CheckConstraint(
                condition=models.Q(("quantity__gt", 0)), name="template_output_qty_gt_zero"
            ),
        ),
        migrations.AddConstraint(
            model_name="transformationorder",
            constraint=models.UniqueConstraint(
                fields=("company", "order_code"),
                name="uniq_transformation_company_code",
            ),
        ),
        migrations.AddConstraint(
            model_name="transformationorder",
            constraint=models.CheckConstraint(
                condition=models.Q(("planned_quantity__gt", 0)),
                name="transformation_planned_qty_gt_zero",
            ),
        ),
        migrations.AddIndex(
            model_name="transformationorder",
            index=models.Index(fields=["company", "status"], name="transformation_status_idx"),
        ),
        migrations.AddConstraint(
            model_name="transformationorderinput",
            constraint=models.CheckConstraint(
                condition=models.Q(("consumed_quantity__gte", 0), ("unit_cost__gte", 0)),
                name="transformation_input_nonnegative",
            ),
        ),
        migrations.AddConstraint(
            model_name="transformationorderoutput",
            constraint=models.CheckConstraint(
                condition=models.Q(("produced_quantity__gte", 0), ("wasted_quantity__gte", 0)),
                name="transformation_output_nonnegative",
            ),
        ),
    ]

"""
======================================================
PATH: picking/migrations/0001_initial.py
======================================================
MIGRATION: CREATE PickList + PickListItem
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


def _qty():
    return models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))


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
            name="PickList",
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
                ("pick_list_code", models.CharField(max_length=32)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("in_progress", "In progress"),
                            ("paused", "Paused"),
                            ("done", "Done"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                ("cancel_reason", models.TextField(blank=True, default="")),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                (
                    "company",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="pick_lists",
                        to="organizations.company",
                    ),
                ),
                (
                    "business_unit",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="pick_lists",
                        to="organizations.businessunit",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="pick_lists",
                        to="inventory.warehouse",
                    ),
                ),
                (
                    "assignees",
                    models.ManyToManyField(
                        blank=True,
                        related_name="assigned_pick_lists",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                ("created_by", _user_fk("pick_lists_created")),
                ("updated_by", _user_fk()),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="PickListItem",
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
                ("allocated_qty", _qty()),
                ("picked_qty", _qty()),
                ("short_qty", _qty()),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "pick_list",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="picking.picklist",
                    ),
                ),
                (
                    "item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="pick_list_items",
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
                    "location",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="pick_list_items",
                        to="inventory.warehouselocation",
                    ),
                ),
            ],
            options={
                "ordering": ["line_no"],
            },
        ),
        migrations.AddConstraint(
            model_name="picklist",
            constraint=models.UniqueConstraint(
                fields=("company", "pick_list_code"),
                name="uniq_pick_list_company_code",
            ),
        ),
        migrations.AddIndex(
            model_name="picklist",
            index=models.Index(fields=["company", "status"], name="pick_list_company_status_idx"),
        ),
        migrations.AddConstraint(
            model_name="picklistitem",
            constraint=models.CheckConstraint(
                condition=models.Q(
                    ("allocated_qty__gte", 0), ("picked_qty__gte", 0), ("short_qty__gte", 0)
                ),
                name="pick_item_quantities_nonnegative",
            ),
        ),
        migrations.AddConstraint(
            model_name="picklistitem",
            constraint=models.CheckConstraint(
                condition=models.Q(("picked_qty__lte", models.F("allocated_qty"))),
                name="pick_item_picked_lte_allocated",
            ),
        ),
    ]

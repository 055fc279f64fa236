"""
======================================================
PATH: users/migrations/0002_user_van_warehouse.py
======================================================
MIGRATION: ADD User.van_warehouse (POS STOCK SOURCE)
"""

from __future__ import annotations

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    dependencies = [
        ("users", "0001_initial"),
        ("inventory", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="user",
            name="van_warehouse",
            field=models.ForeignKey(
                to="inventory.warehouse",
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="van_users",
                help_text="Default stock source for POS sales by this user.",
            ),
        ),
    ]

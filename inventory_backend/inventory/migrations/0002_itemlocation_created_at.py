"""
======================================================
PATH: inventory/migrations/0002_itemlocation_created_at.py
======================================================
MIGRATION: ADD ItemLocation.created_at (FIFO BIN ORDER)
"""

from __future__ import annotations

from django.db import migrations, models
import django.utils.timezone


class Migration(migrations.Migration):
    dependencies = [
        ("inventory", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="itemlocation",
            name="created_at",
            field=models.DateTimeField(default=django.utils.timezone.now),
        ),
    ]

# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS (pytest-django / CI)

- In-memory SQLite
- Fast password hashing
- Ledger posting off unless a test turns it on with override_settings
- Throttling off
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import REST_FRAMEWORK

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

ACCOUNTING_POSTING_ENABLED = False
INVENTORY_ALLOW_NEGATIVE_STOCK = False

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_CLASSES": (),
}

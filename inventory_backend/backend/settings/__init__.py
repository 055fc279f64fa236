"""
PATH: backend/settings/__init__.py

Settings package entrypoint.

Nothing is imported here on purpose. Use DJANGO_SETTINGS_MODULE to select:
- backend.settings.dev   (local development)
- backend.settings.test  (pytest / CI)
- backend.settings.prod  (production)
"""

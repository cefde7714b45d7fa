"""
PATH: backend/settings/__init__.py

Settings package entrypoint. Loads nothing on purpose.
Select with DJANGO_SETTINGS_MODULE:
- backend.settings.dev   (local development)
- backend.settings.test  (test runs, pytest-django)
- backend.settings.prod  (production)
"""

"""
PATH: backend/settings/test.py

TEST SETTINGS
- In-memory SQLite
- Fast password hashing
- Ledger logging kept quiet unless LOG_LEVEL is set
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import LOGGING, env  # explicit for Ruff (F405)

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

LEDGER_ACCOUNT_CODES = {}
LEDGER_DEFAULT_CURRENCY = "PKR"
LEDGER_PNL_FALLBACK_ENABLED = True
LEDGER_PNL_FALLBACK_SOURCE = "sales.services.sale_reports.sales_totals_for_period"
LEDGER_RECONCILIATION_BATCH_SIZE = 100

_test_log_level = env("LOG_LEVEL", default="CRITICAL").strip().upper()
for _logger_name in ("accounting", "parties", "sales"):
    LOGGING["loggers"][_logger_name]["level"] = _test_log_level

# No throttling under test.
REST_FRAMEWORK = {**REST_FRAMEWORK, "DEFAULT_THROTTLE_CLASSES": ()}  # noqa: F405

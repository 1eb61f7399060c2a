"""
PATH: backend/settings/test.py

TEST SETTINGS
- In-memory sqlite (no DATABASE_URL needed in CI)
- Fast password hashing
- No throttling (API tests hammer the same endpoints)
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import REST_FRAMEWORK

DEBUG = False
TESTING = True

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_CLASSES": (),
}

LEDGER_BASE_CURRENCY = "USD"
LEDGER_BALANCE_TOLERANCE = "0.01"
LEDGER_AUDIT_SINK = ""

# backend/settings/prod.py
"""
PATH: backend/settings/prod.py

PRODUCTION SETTINGS

- DEBUG forced off, SECRET_KEY / hosts / origins fail closed
- PostgreSQL only: report snapshots rely on REPEATABLE READ isolation
- Ledger constants validated at startup (base currency, tolerance)
- WhiteNoise serves the admin and schema-docs static files
- Cookie + security headers hardened behind a TLS-terminating proxy
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from django.core.exceptions import ImproperlyConfigured

from .base import *  # noqa: F403
from .base import BASE_DIR, LEDGER_BALANCE_TOLERANCE, LEDGER_BASE_CURRENCY, MIDDLEWARE, env

DEBUG = False


def _required(name: str) -> str:
    value = (env(name, default="") or "").strip()
    if not value:
        raise ImproperlyConfigured(f"{name} must be set in production.")
    return value


def _https_origins(name: str) -> list[str]:
    origins = env.list(name, default=[])
    if not origins:
        raise ImproperlyConfigured(f"{name} must be set in production.")
    for origin in origins:
        if not origin.startswith("https://") or "localhost" in origin or "127.0.0.1" in origin:
            raise ImproperlyConfigured(f"{name} entries must be public https:// origins, got {origin!r}.")
    return origins


# ----------------------------
# Secrets + hosts
# ----------------------------
SECRET_KEY = _required("SECRET_KEY")
if SECRET_KEY == "dev-insecure-change-me":
    raise ImproperlyConfigured("SECRET_KEY must be set to a strong value in production.")

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=[])
if not ALLOWED_HOSTS:
    raise ImproperlyConfigured("ALLOWED_HOSTS must be set in production.")

# ----------------------------
# Database (PostgreSQL only)
# ----------------------------
if not _required("DATABASE_URL").startswith(("postgres://", "postgresql://")):
    raise ImproperlyConfigured("The ledger requires a PostgreSQL DATABASE_URL in production.")

DATABASES = {"default": env.db("DATABASE_URL")}
DATABASES["default"]["CONN_MAX_AGE"] = env.int("DB_CONN_MAX_AGE", default=60)

# ----------------------------
# Ledger constants
# ----------------------------
if len(LEDGER_BASE_CURRENCY) != 3 or not LEDGER_BASE_CURRENCY.isalpha():
    raise ImproperlyConfigured(f"LEDGER_BASE_CURRENCY must be an ISO 4217 code, got {LEDGER_BASE_CURRENCY!r}.")

try:
    _tolerance = Decimal(str(LEDGER_BALANCE_TOLERANCE))
except InvalidOperation as exc:
    raise ImproperlyConfigured("LEDGER_BALANCE_TOLERANCE must be a decimal.") from exc
if not Decimal("0") <= _tolerance <= Decimal("1"):
    raise ImproperlyConfigured("LEDGER_BALANCE_TOLERANCE must be between 0 and 1.")

# ----------------------------
# Static files (admin + API docs)
# ----------------------------
STATIC_ROOT = env("STATIC_ROOT", default=str(BASE_DIR / "staticfiles"))
MIDDLEWARE.insert(1, "whitenoise.middleware.WhiteNoiseMiddleware")
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

# ----------------------------
# TLS proxy + HSTS
# ----------------------------
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SECURE_SSL_REDIRECT = env.bool("SECURE_SSL_REDIRECT", default=True)
SECURE_HSTS_SECONDS = env.int("SECURE_HSTS_SECONDS", default=3600)
SECURE_HSTS_INCLUDE_SUBDOMAINS = env.bool("SECURE_HSTS_INCLUDE_SUBDOMAINS", default=True)
SECURE_HSTS_PRELOAD = env.bool("SECURE_HSTS_PRELOAD", default=False)

# ----------------------------
# Cookies + headers
# ----------------------------
SESSION_COOKIE_SECURE = CSRF_COOKIE_SECURE = True
SESSION_COOKIE_HTTPONLY = CSRF_COOKIE_HTTPONLY = True
SESSION_COOKIE_SAMESITE = CSRF_COOKIE_SAMESITE = "Lax"

SECURE_CONTENT_TYPE_NOSNIFF = True
SECURE_REFERRER_POLICY = "same-origin"
SECURE_CROSS_ORIGIN_OPENER_POLICY = "same-origin"
X_FRAME_OPTIONS = "DENY"

# ----------------------------
# CORS / CSRF
# ----------------------------
CORS_ALLOWED_ORIGINS = _https_origins("CORS_ALLOWED_ORIGINS")
CSRF_TRUSTED_ORIGINS = _https_origins("CSRF_TRUSTED_ORIGINS")
CORS_ALLOW_CREDENTIALS = False

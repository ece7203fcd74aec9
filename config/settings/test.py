from .base import *  # noqa
from .base import BASE_DIR
from .base import REST_FRAMEWORK as BASE_REST_FRAMEWORK

DEBUG = False

# SQLite keeps the suite self-contained; row-lock races are exercised on Postgres only
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "test_db.sqlite3",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# Plain storage; the manifest backend needs collectstatic
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}

# Relax throttling for tests to reduce flakiness
REST_FRAMEWORK = {**BASE_REST_FRAMEWORK}
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {
    **BASE_REST_FRAMEWORK.get("DEFAULT_THROTTLE_RATES", {}),
    "user": "10000/min",
    "anon": "10000/min",
    "inventory": "10000/min",
    "inventory_write": "10000/min",
    "checkout": "10000/min",
    "checkout_write": "10000/min",
    "sales": "10000/min",
}

INVENTORY_RESERVATION_TTL_MINUTES = 30
IDEMPOTENCY_RETENTION_HOURS = 24
CHECKOUT_MAX_ITEM_QUANTITY = 1000
CHECKOUT_MAX_DISCOUNT_PCT = 50
CHECKOUT_TOTAL_TOLERANCE = "0.01"

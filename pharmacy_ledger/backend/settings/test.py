# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS

- SQLite unless DATABASE_URL points somewhere else. The SQLite test
  database is a file so the concurrent sale tests can run on it too.
- Fast password hashing.
- Throttling off so API tests are deterministic.
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import BASE_DIR, LOGGING, REST_FRAMEWORK, env, sqlite_ledger_options

DEBUG = False

DATABASES = {
    "default": sqlite_ledger_options(
        env.db("DATABASE_URL", default=f"sqlite:///{BASE_DIR / 'test.sqlite3'}")
    ),
}
if DATABASES["default"]["ENGINE"] == "django.db.backends.sqlite3":
    # a file, not shared-cache memory: concurrent tests open one connection per thread
    DATABASES["default"]["TEST"] = {"NAME": str(BASE_DIR / "test_ledger.sqlite3")}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_CLASSES": (),
}

LOGGING = {
    **LOGGING,
    "loggers": {
        name: {**cfg, "level": "WARNING"} for name, cfg in LOGGING["loggers"].items()
    },
}

# backend/settings/dev.py
"""
PATH: backend/settings/dev.py

LOCAL DEVELOPMENT SETTINGS

- DEBUG on, localhost front-end allowed
- Browsable API alongside JSON
- Ledger loggers at DEBUG so every sale / refund / adjustment shows up
- Looser ledger budget for stepping through flows in a debugger
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import LEDGER, LOGGING, REST_FRAMEWORK, env

DEBUG = True

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["localhost", "127.0.0.1"])

_local_frontend = ["http://localhost:5173", "http://127.0.0.1:5173"]
CORS_ALLOWED_ORIGINS = env.list("CORS_ALLOWED_ORIGINS", default=_local_frontend)
CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS", default=_local_frontend)
CORS_ALLOW_CREDENTIALS = True

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_RENDERER_CLASSES": (
        "rest_framework.renderers.JSONRenderer",
        "rest_framework.renderers.BrowsableAPIRenderer",
    ),
}

LEDGER = {
    **LEDGER,
    "TRANSACTION_TIMEOUT_SECONDS": env.float("LEDGER_TRANSACTION_TIMEOUT_SECONDS", default=30.0),
}

LOGGING = {
    **LOGGING,
    "loggers": {
        name: {**cfg, "level": "DEBUG"} for name, cfg in LOGGING["loggers"].items()
    },
}

# backend/wsgi.py
"""
WSGI entrypoint for the pharmacy ledger service.

Deployments MUST set DJANGO_SETTINGS_MODULE=backend.settings.prod;
local runs fall back to backend.settings.dev.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault(
    "DJANGO_SETTINGS_MODULE",
    os.getenv("DJANGO_SETTINGS_MODULE", "backend.settings.dev"),
)

application = get_wsgi_application()

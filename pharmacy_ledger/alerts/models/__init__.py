"""
PATH: alerts/models/__init__.py

Alerts models export surface.
"""

from .alert import AlertKind, AlertTier, StockAlert

__all__ = [
    "AlertKind",
    "AlertTier",
    "StockAlert",
]

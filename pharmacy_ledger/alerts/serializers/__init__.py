"""
Alerts serializers export surface.
"""

from .alert import (
    AcknowledgeSerializer,
    BulkAcknowledgeSerializer,
    StockAlertSerializer,
    SweepCommandSerializer,
)

__all__ = [
    "AcknowledgeSerializer",
    "BulkAcknowledgeSerializer",
    "StockAlertSerializer",
    "SweepCommandSerializer",
]

"""
Inventory serializers export surface.
"""

from .batch import BatchSerializer, StockLevelSerializer
from .commands import (
    AdjustCommandSerializer,
    ReceiveCommandSerializer,
    StatusCommandSerializer,
    TransferCommandSerializer,
)
from .movement import MovementSerializer, MovementSummarySerializer, ReconciliationSerializer

__all__ = [
    "BatchSerializer",
    "MovementSerializer",
    "MovementSummarySerializer",
    "ReconciliationSerializer",
    "StockLevelSerializer",
    "AdjustCommandSerializer",
    "ReceiveCommandSerializer",
    "StatusCommandSerializer",
    "TransferCommandSerializer",
]

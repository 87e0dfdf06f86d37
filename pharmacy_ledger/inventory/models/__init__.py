"""
PATH: inventory/models/__init__.py

Inventory models export surface.
"""

from .batch import Batch, BatchStatus
from .movement import Movement, MovementType
from .operation import OperationKind, StockOperation

__all__ = [
    "Batch",
    "BatchStatus",
    "Movement",
    "MovementType",
    "OperationKind",
    "StockOperation",
]

"""
Inventory views package exports.

Purpose:
- Central export point for router imports.
"""

from .batch import BatchViewSet
from .movement import MovementViewSet
from .stock import ProductStockViewSet

__all__ = [
    "BatchViewSet",
    "MovementViewSet",
    "ProductStockViewSet",
]

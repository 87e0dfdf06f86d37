"""
Sales views package exports.
"""

from .checkout import SaleViewSet
from .refund import SaleLineViewSet

__all__ = [
    "SaleViewSet",
    "SaleLineViewSet",
]

"""
PATH: sales/models/__init__.py

Sales models export surface.
"""

from .sale import Sale
from .sale_line import SaleLine
from .sale_line_allocation import SaleLineAllocation
from .sale_line_refund import SaleLineRefund

__all__ = [
    "Sale",
    "SaleLine",
    "SaleLineAllocation",
    "SaleLineRefund",
]

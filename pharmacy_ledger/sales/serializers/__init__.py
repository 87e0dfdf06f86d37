"""
Sales serializers export surface.
"""

from .checkout import CheckoutSerializer, CheckoutLineSerializer
from .refund_command import LineRefundCommandSerializer
from .sale import SaleLineSerializer, SaleSerializer

__all__ = [
    "CheckoutSerializer",
    "CheckoutLineSerializer",
    "LineRefundCommandSerializer",
    "SaleLineSerializer",
    "SaleSerializer",
]

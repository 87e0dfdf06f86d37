# sales/urls.py

"""
SALES URLS

Registered under /api/sales/:
- ""                     POST checkout, GET history
- lines/{id}/refund/     POST line refund
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from sales.views import SaleLineViewSet, SaleViewSet

router = SimpleRouter()
router.register(r"lines", SaleLineViewSet, basename="sale-lines")
router.register(r"", SaleViewSet, basename="sales")

urlpatterns = [
    path("", include(router.urls)),
]

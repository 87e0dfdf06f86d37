# inventory/urls.py

"""
INVENTORY URLS

Registered under /api/inventory/:
- batches/    (+ receive / transfer / {id}/adjust / {id}/status / {id}/movements / {id}/reconcile)
- movements/  (+ summary)
- products/   (stock / {id}/stock)
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from inventory.views import BatchViewSet, MovementViewSet, ProductStockViewSet

router = DefaultRouter()
router.register(r"batches", BatchViewSet, basename="batches")
router.register(r"movements", MovementViewSet, basename="movements")
router.register(r"products", ProductStockViewSet, basename="products")

urlpatterns = [
    path("", include(router.urls)),
]

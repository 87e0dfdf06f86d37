# inventory/views/stock.py

"""
PRODUCT STOCK LEVELS (READ-ONLY)

- GET /api/inventory/products/stock/          every product with an active batch
- GET /api/inventory/products/{id}/stock/     one product (zeros when nothing is active)

on_hand / reserved sum active batches; available counts unexpired ones only.
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.serializers import StockLevelSerializer
from inventory.services.batch_store import BatchStore
from inventory.services.exceptions import LedgerError
from inventory.views.errors import ledger_error_response
from permissions.roles import CAP_AUDIT_VIEW, CAP_INVENTORY_VIEW, HasAnyCapability


class ProductStockViewSet(viewsets.ViewSet):
    def get_permissions(self):
        self.required_any_capabilities = {CAP_INVENTORY_VIEW, CAP_AUDIT_VIEW}
        return [IsAuthenticated(), HasAnyCapability()]

    @extend_schema(responses=StockLevelSerializer(many=True))
    @action(detail=False, methods=["get"], url_path="stock")
    def levels(self, request):
        levels = sorted(BatchStore().stock_levels().values(), key=lambda level: str(level.product_id))
        return Response(StockLevelSerializer(levels, many=True).data)

    @extend_schema(responses=StockLevelSerializer)
    @action(detail=True, methods=["get"], url_path="stock")
    def stock(self, request, pk=None):
        try:
            level = BatchStore().stock_level(pk)
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(StockLevelSerializer(level).data)

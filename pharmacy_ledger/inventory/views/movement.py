# inventory/views/movement.py

"""
MOVEMENT LOG (READ-ONLY)

- list:    allow-listed filters + ordering (MovementFilter)
- summary: per-type counts / totals for a period
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.filters import MovementFilter
from inventory.models import Movement
from inventory.serializers import MovementSerializer, MovementSummarySerializer
from inventory.serializers.commands import SummaryQuerySerializer
from inventory.services.movement_log import MovementLog
from permissions.roles import CAP_AUDIT_VIEW, CAP_INVENTORY_VIEW, HasAnyCapability


class MovementViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = MovementSerializer
    filterset_class = MovementFilter

    def get_permissions(self):
        self.required_any_capabilities = {CAP_AUDIT_VIEW, CAP_INVENTORY_VIEW}
        return [IsAuthenticated(), HasAnyCapability()]

    def get_queryset(self):
        return (
            Movement.objects
            .select_related("batch", "product", "performed_by")
            .order_by("-id")
        )

    @extend_schema(
        parameters=[
            OpenApiParameter("date_from", str, description="YYYY-MM-DD"),
            OpenApiParameter("date_to", str, description="YYYY-MM-DD"),
            OpenApiParameter("product", str, description="Product UUID"),
        ],
        responses=MovementSummarySerializer(many=True),
    )
    @action(detail=False, methods=["get"], url_path="summary")
    def summary(self, request):
        query = SummaryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        rows = MovementLog().summarize(
            date_from=params.get("date_from"),
            date_to=params.get("date_to"),
            product_id=params.get("product"),
        )
        return Response(MovementSummarySerializer(rows, many=True).data)

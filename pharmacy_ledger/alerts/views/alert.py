# alerts/views/alert.py

"""
ALERT FEED

- list / retrieve           GET  /api/alerts/
- acknowledge (one)         POST /api/alerts/{id}/acknowledge/
- acknowledge (bulk)        POST /api/alerts/acknowledge/
- sweep                     POST /api/alerts/sweep/
- stats                     GET  /api/alerts/stats/
"""

from __future__ import annotations

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from alerts.filters import AlertFilter
from alerts.models import StockAlert
from alerts.serializers import (
    AcknowledgeSerializer,
    BulkAcknowledgeSerializer,
    StockAlertSerializer,
    SweepCommandSerializer,
)
from alerts.services.evaluator import AlertEvaluator
from inventory.services.exceptions import LedgerError
from inventory.views.errors import ledger_error_response
from permissions.roles import (
    CAP_ALERTS_ACK,
    CAP_ALERTS_SWEEP,
    CAP_ALERTS_VIEW,
    HasCapability,
)

ACTION_CAPABILITIES = {
    "acknowledge": CAP_ALERTS_ACK,
    "bulk_acknowledge": CAP_ALERTS_ACK,
    "sweep": CAP_ALERTS_SWEEP,
}


class AlertViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = StockAlertSerializer
    filterset_class = AlertFilter

    def get_permissions(self):
        self.required_capability = ACTION_CAPABILITIES.get(self.action, CAP_ALERTS_VIEW)
        return [IsAuthenticated(), HasCapability()]

    def get_queryset(self):
        return (
            StockAlert.objects
            .select_related("product", "batch", "acknowledged_by")
            .order_by("-raised_at")
        )

    def get_evaluator(self) -> AlertEvaluator:
        return AlertEvaluator()

    @action(detail=True, methods=["post"], url_path="acknowledge")
    def acknowledge(self, request, pk=None):
        command = AcknowledgeSerializer(data=request.data)
        command.is_valid(raise_exception=True)

        try:
            alert = self.get_evaluator().acknowledge(
                pk,
                actor=request.user,
                action_taken=command.validated_data["action_taken"],
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(StockAlertSerializer(alert).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["post"], url_path="acknowledge")
    def bulk_acknowledge(self, request):
        command = BulkAcknowledgeSerializer(data=request.data)
        command.is_valid(raise_exception=True)
        data = command.validated_data

        try:
            updated = self.get_evaluator().bulk_acknowledge(
                data["alert_ids"],
                actor=request.user,
                action_taken=data["action_taken"],
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response({"acknowledged": updated}, status=status.HTTP_200_OK)

    @action(detail=False, methods=["post"], url_path="sweep")
    def sweep(self, request):
        command = SweepCommandSerializer(data=request.data)
        command.is_valid(raise_exception=True)

        result = self.get_evaluator().sweep(force=command.validated_data["force"])
        return Response(
            {
                "created": result.created,
                "suppressed": result.suppressed,
                "batches_checked": result.batches_checked,
                "products_checked": result.products_checked,
                "alerts": StockAlertSerializer(result.alerts, many=True).data,
            },
            status=status.HTTP_200_OK,
        )

    @action(detail=False, methods=["get"], url_path="stats")
    def stats(self, request):
        return Response(self.get_evaluator().stats())

"""
======================================================
PATH: inventory/views/batch.py
======================================================
BATCH VIEWSET

Purpose:
- Read batches (filterable, allow-listed ordering)
- Controlled ledger actions: receive / adjust / transfer / status
- Per-batch movement history and ledger reconciliation

RULES:
- Batches are never created, edited or deleted directly through the API
- Every quantity change runs through the TransactionCoordinator
  (one atomic ledger transaction per request)
"""

from __future__ import annotations

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.filters import BatchFilter
from inventory.models import Batch
from inventory.serializers import (
    AdjustCommandSerializer,
    BatchSerializer,
    MovementSerializer,
    ReceiveCommandSerializer,
    ReconciliationSerializer,
    StatusCommandSerializer,
    TransferCommandSerializer,
)
from inventory.services.coordinator import TransactionCoordinator
from inventory.services.exceptions import LedgerError
from inventory.views.errors import ledger_error_response
from permissions.roles import (
    CAP_AUDIT_VIEW,
    CAP_INVENTORY_ADJUST,
    CAP_INVENTORY_RECEIVE,
    CAP_INVENTORY_STATUS,
    CAP_INVENTORY_TRANSFER,
    CAP_INVENTORY_VIEW,
    HasAnyCapability,
    HasCapability,
)

ACTION_CAPABILITIES = {
    "receive": CAP_INVENTORY_RECEIVE,
    "adjust": CAP_INVENTORY_ADJUST,
    "transfer": CAP_INVENTORY_TRANSFER,
    "change_status": CAP_INVENTORY_STATUS,
    "reconcile": CAP_AUDIT_VIEW,
}


class BatchViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = BatchSerializer
    filterset_class = BatchFilter
    permission_classes = [IsAuthenticated]

    required_capability = None
    required_any_capabilities = None

    def get_permissions(self):
        # reset per request to avoid state leaking between actions
        self.required_capability = None
        self.required_any_capabilities = None

        capability = ACTION_CAPABILITIES.get(self.action)
        if capability:
            self.required_capability = capability
            return [IsAuthenticated(), HasCapability()]

        self.required_any_capabilities = {CAP_INVENTORY_VIEW, CAP_AUDIT_VIEW}
        return [IsAuthenticated(), HasAnyCapability()]

    def get_queryset(self):
        return Batch.objects.select_related("product").order_by("expiration_date", "received_at", "id")

    def get_coordinator(self) -> TransactionCoordinator:
        return TransactionCoordinator.for_database()

    def _command(self, serializer_class):
        serializer = serializer_class(data=self.request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data["idempotency_key"] = (data.get("idempotency_key") or "").strip() or None
        return data

    # -------------------------------------------------
    # RECEIVE (new batch or top-up)
    # -------------------------------------------------
    @action(detail=False, methods=["post"], url_path="receive")
    def receive(self, request):
        """
        POST /api/inventory/batches/receive/
        """
        data = self._command(ReceiveCommandSerializer)

        try:
            result = self.get_coordinator().receive(
                data["product_id"],
                data["quantity"],
                unit_cost=data["unit_cost"],
                expiration_date=data["expiration_date"],
                batch_number=data["batch_number"],
                lot_number=data["lot_number"],
                supplier_ref=data["supplier_ref"],
                location=data["location"],
                reason=data["reason"],
                actor=request.user,
                idempotency_key=data["idempotency_key"],
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(
            {
                "batch": BatchSerializer(result.batch).data,
                "movement": MovementSerializer(result.movement).data,
                "operation_id": str(result.operation.id),
                "created": result.created,
            },
            status=status.HTTP_201_CREATED if result.created else status.HTTP_200_OK,
        )

    # -------------------------------------------------
    # ADJUST
    # -------------------------------------------------
    @action(detail=True, methods=["post"], url_path="adjust")
    def adjust(self, request, pk=None):
        data = self._command(AdjustCommandSerializer)

        try:
            result = self.get_coordinator().adjust(
                pk,
                data["quantity_delta"],
                data["reason"],
                kind=data["kind"],
                actor=request.user,
                idempotency_key=data["idempotency_key"],
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(
            {
                "batch": BatchSerializer(result.batch).data,
                "movement": MovementSerializer(result.movement).data,
                "operation_id": str(result.operation.id),
            },
            status=status.HTTP_200_OK,
        )

    # -------------------------------------------------
    # TRANSFER
    # -------------------------------------------------
    @action(detail=False, methods=["post"], url_path="transfer")
    def transfer(self, request):
        data = self._command(TransferCommandSerializer)

        try:
            result = self.get_coordinator().transfer(
                data["from_batch_id"],
                data["to_batch_id"],
                data["quantity"],
                data["reason"],
                actor=request.user,
                idempotency_key=data["idempotency_key"],
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(
            {
                "source": BatchSerializer(result.source).data,
                "destination": BatchSerializer(result.destination).data,
                "movements": MovementSerializer([result.outbound, result.inbound], many=True).data,
                "operation_id": str(result.operation.id),
            },
            status=status.HTTP_200_OK,
        )

    # -------------------------------------------------
    # STATUS (recall / reinstate / retire)
    # -------------------------------------------------
    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request, pk=None):
        data = self._command(StatusCommandSerializer)

        try:
            result = self.get_coordinator().change_status(
                pk,
                data["status"],
                data["reason"],
                actor=request.user,
                idempotency_key=data["idempotency_key"],
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(
            {
                "batch": BatchSerializer(result.batch).data,
                "previous_status": result.previous_status,
                "movement": MovementSerializer(result.movement).data if result.movement else None,
                "operation_id": str(result.operation.id),
            },
            status=status.HTTP_200_OK,
        )

    # -------------------------------------------------
    # AUDIT
    # -------------------------------------------------
    @action(detail=True, methods=["get"], url_path="movements")
    def movements(self, request, pk=None):
        batch = self.get_object()
        history = self.get_coordinator().log.history_for_batch(batch.id)
        return Response(MovementSerializer(history, many=True).data)

    @action(detail=True, methods=["get"], url_path="reconcile")
    def reconcile(self, request, pk=None):
        batch = self.get_object()
        result = self.get_coordinator().log.reconcile(batch)
        payload = ReconciliationSerializer(result).data
        return Response(payload)

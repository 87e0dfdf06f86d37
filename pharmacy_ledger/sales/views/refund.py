# sales/views/refund.py

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.services.coordinator import TransactionCoordinator
from inventory.services.exceptions import LedgerError
from inventory.views.errors import ledger_error_response
from permissions.roles import CAP_POS_REFUND, HasCapability
from sales.models import Sale, SaleLine
from sales.serializers import LineRefundCommandSerializer, SaleSerializer


class SaleLineViewSet(viewsets.GenericViewSet):
    """
    Sale line refunds.

    - refund: protected capability (pharmacist/manager/admin)
    - stock goes back to the batches the line was sold from
    """

    queryset = SaleLine.objects.select_related("sale", "product")
    serializer_class = LineRefundCommandSerializer

    def get_permissions(self):
        self.required_capability = CAP_POS_REFUND
        return [IsAuthenticated(), HasCapability()]

    # --------------------------------------------------
    # REFUND (PARTIAL OR FULL, PER LINE)
    # --------------------------------------------------

    @action(detail=True, methods=["post"], url_path="refund")
    def refund(self, request, pk=None):
        command = LineRefundCommandSerializer(data=request.data)
        command.is_valid(raise_exception=True)
        data = command.validated_data

        try:
            result = TransactionCoordinator.for_database().refund(
                pk,
                data["quantity"],
                reason=data["reason"],
                actor=request.user,
                idempotency_key=data.get("idempotency_key"),
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        sale = (
            Sale.objects
            .prefetch_related("lines__product", "lines__allocations__batch", "lines__refunds")
            .get(id=result.sale.id)
        )
        return Response(
            {
                "refunded_quantity": result.quantity,
                "refund_amount": str(result.amount),
                "operation_id": str(result.operation.id),
                "sale": SaleSerializer(sale).data,
            },
            status=status.HTTP_200_OK,
        )

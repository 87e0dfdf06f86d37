# sales/views/checkout.py

"""
POINT OF SALE (CHECKOUT + SALES HISTORY)

- create:         POST /api/sales/   one atomic ledger sale
- list/retrieve:  sales history with per-line batch allocations
"""

from __future__ import annotations

from rest_framework import mixins, status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.services.coordinator import TransactionCoordinator
from inventory.services.exceptions import LedgerError
from inventory.services.sale_session import SaleLineRequest
from inventory.views.errors import ledger_error_response
from permissions.roles import (
    CAP_AUDIT_VIEW,
    CAP_POS_REFUND,
    CAP_POS_SELL,
    HasAnyCapability,
    HasCapability,
)
from sales.models import Sale
from sales.serializers import CheckoutSerializer, SaleSerializer


class SaleViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = SaleSerializer
    filterset_fields = ["status", "payment_method"]

    required_capability = None
    required_any_capabilities = None

    def get_permissions(self):
        self.required_capability = None
        self.required_any_capabilities = None

        if self.action == "create":
            self.required_capability = CAP_POS_SELL
            return [IsAuthenticated(), HasCapability()]

        self.required_any_capabilities = {CAP_POS_SELL, CAP_POS_REFUND, CAP_AUDIT_VIEW}
        return [IsAuthenticated(), HasAnyCapability()]

    def get_queryset(self):
        return (
            Sale.objects
            .select_related("cashier")
            .prefetch_related(
                "lines",
                "lines__product",
                "lines__allocations",
                "lines__allocations__batch",
                "lines__refunds",
            )
            .order_by("-created_at")
        )

    def get_serializer_class(self):
        if self.action == "create":
            return CheckoutSerializer
        return SaleSerializer

    def create(self, request, *args, **kwargs):
        command = CheckoutSerializer(data=request.data)
        command.is_valid(raise_exception=True)
        data = command.validated_data

        lines = [
            SaleLineRequest(
                product_id=item["product_id"],
                quantity=item["quantity"],
                unit_price=item.get("unit_price"),
                discount_percent=item.get("discount_percent"),
                pinned_batch_id=item.get("batch_id"),
            )
            for item in data["items"]
        ]

        try:
            result = TransactionCoordinator.for_database().record_sale(
                lines,
                actor=request.user,
                payment_method=data["payment_method"],
                customer_payment=data.get("customer_payment"),
                insurance_payment=data.get("insurance_payment"),
                prescription_number=data["prescription_number"],
                prescribing_doctor=data["prescribing_doctor"],
                customer_name=data["customer_name"],
                notes=data["notes"],
                idempotency_key=data.get("idempotency_key"),
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        sale = self.get_queryset().get(id=result.sale.id)
        return Response(SaleSerializer(sale).data, status=status.HTTP_201_CREATED)

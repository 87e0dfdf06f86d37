# sales/serializers/sale.py

from rest_framework import serializers

from sales.models import Sale, SaleLine, SaleLineAllocation, SaleLineRefund
from sales.services.pricing import from_minor


class MinorAmountField(serializers.Field):
    """Integer minor units out as a 2dp decimal string."""

    def __init__(self, **kwargs):
        kwargs["read_only"] = True
        super().__init__(**kwargs)

    def to_representation(self, value):
        if value is None:
            return None
        return str(from_minor(value))


class SaleLineAllocationSerializer(serializers.ModelSerializer):
    batch_number = serializers.CharField(source="batch.batch_number", read_only=True)
    expiration_date = serializers.DateField(source="batch.expiration_date", read_only=True)

    class Meta:
        model = SaleLineAllocation
        fields = ["batch", "batch_number", "expiration_date", "quantity", "sequence", "movement"]
        read_only_fields = fields


class SaleLineRefundSerializer(serializers.ModelSerializer):
    amount = MinorAmountField(source="amount_minor")

    class Meta:
        model = SaleLineRefund
        fields = ["id", "allocation", "quantity", "amount", "reason", "refunded_by", "refunded_at", "movement"]
        read_only_fields = fields


class SaleLineSerializer(serializers.ModelSerializer):
    """
    Sale line (read-only), with the batches it was filled from.
    """

    product_name = serializers.CharField(source="product.name", read_only=True)
    unit_price = MinorAmountField(source="unit_price_minor")
    discount_amount = MinorAmountField(source="discount_minor")
    tax_amount = MinorAmountField(source="tax_minor")
    line_total = MinorAmountField(source="line_total_minor")
    quantity_refunded = serializers.IntegerField(read_only=True)
    allocations = SaleLineAllocationSerializer(many=True, read_only=True)
    refunds = SaleLineRefundSerializer(many=True, read_only=True)

    class Meta:
        model = SaleLine
        fields = [
            "id",
            "product",
            "product_name",
            "pinned_batch",
            "quantity",
            "unit_price",
            "discount_percent",
            "discount_amount",
            "tax_amount",
            "line_total",
            "quantity_refunded",
            "allocations",
            "refunds",
        ]
        read_only_fields = fields


class SaleSerializer(serializers.ModelSerializer):
    subtotal = MinorAmountField(source="subtotal_minor")
    discount = MinorAmountField(source="discount_minor")
    tax = MinorAmountField(source="tax_minor")
    total = MinorAmountField(source="total_minor")
    customer_payment = MinorAmountField(source="customer_payment_minor")
    insurance_payment = MinorAmountField(source="insurance_payment_minor")
    cashier_username = serializers.CharField(source="cashier.username", read_only=True, default=None)
    lines = SaleLineSerializer(many=True, read_only=True)

    class Meta:
        model = Sale
        fields = [
            "id",
            "sale_number",
            "operation",
            "status",
            "cashier",
            "cashier_username",
            "subtotal",
            "discount",
            "tax",
            "total",
            "payment_method",
            "customer_payment",
            "insurance_payment",
            "prescription_number",
            "prescribing_doctor",
            "customer_name",
            "notes",
            "created_at",
            "lines",
        ]
        read_only_fields = fields

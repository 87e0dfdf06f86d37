# sales/serializers/checkout.py

"""
POS CHECKOUT COMMAND SERIALIZER

Shapes the point-of-sale payload. Stock availability, prescription rules,
pricing and payment matching are enforced by the TransactionCoordinator.
"""

from decimal import Decimal

from rest_framework import serializers

from sales.models import Sale


class CheckoutLineSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0"),
        required=False,
        allow_null=True,
        help_text="Override of the catalog price; defaults to product.unit_price.",
    )
    discount_percent = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal("0"),
        max_value=Decimal("100"),
        required=False,
        default=Decimal("0"),
    )
    batch_id = serializers.UUIDField(
        required=False,
        allow_null=True,
        help_text="Pin the line to one batch instead of FIFO allocation.",
    )


class CheckoutSerializer(serializers.Serializer):
    items = CheckoutLineSerializer(many=True)

    payment_method = serializers.ChoiceField(
        choices=Sale.PAYMENT_METHOD_CHOICES,
        default=Sale.PAYMENT_CASH,
    )
    customer_payment = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True
    )
    insurance_payment = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True
    )

    prescription_number = serializers.CharField(required=False, allow_blank=True, max_length=64, default="")
    prescribing_doctor = serializers.CharField(required=False, allow_blank=True, max_length=128, default="")
    customer_name = serializers.CharField(required=False, allow_blank=True, max_length=128, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    idempotency_key = serializers.CharField(required=False, allow_blank=True, max_length=128)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("At least one item is required")
        return value

# sales/serializers/refund_command.py

from rest_framework import serializers


class LineRefundCommandSerializer(serializers.Serializer):
    """
    Command serializer for line refund requests.

    This serializer does NOT touch the database.
    It only validates input for the refund action.
    """

    quantity = serializers.IntegerField(min_value=1)
    reason = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=255,
        default="",
    )
    idempotency_key = serializers.CharField(required=False, allow_blank=True, max_length=128)

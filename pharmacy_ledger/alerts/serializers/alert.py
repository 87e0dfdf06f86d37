# alerts/serializers/alert.py

from rest_framework import serializers

from alerts.models import StockAlert


class StockAlertSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)
    batch_number = serializers.CharField(source="batch.batch_number", read_only=True, default=None)
    acknowledged_by_username = serializers.CharField(
        source="acknowledged_by.username",
        read_only=True,
        default=None,
    )

    class Meta:
        model = StockAlert
        fields = [
            "id",
            "kind",
            "tier",
            "product",
            "product_name",
            "batch",
            "batch_number",
            "quantity",
            "expiration_date",
            "days_to_expiry",
            "message",
            "raised_at",
            "is_acknowledged",
            "acknowledged_by",
            "acknowledged_by_username",
            "acknowledged_at",
            "action_taken",
        ]
        read_only_fields = fields


class AcknowledgeSerializer(serializers.Serializer):
    action_taken = serializers.CharField(required=False, allow_blank=True, default="")


class BulkAcknowledgeSerializer(AcknowledgeSerializer):
    alert_ids = serializers.ListField(
        child=serializers.UUIDField(),
        allow_empty=False,
        max_length=500,
    )


class SweepCommandSerializer(serializers.Serializer):
    force = serializers.BooleanField(required=False, default=False)

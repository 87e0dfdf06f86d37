# inventory/serializers/movement.py

from rest_framework import serializers

from inventory.models import Movement


class MovementSerializer(serializers.ModelSerializer):
    batch_number = serializers.CharField(source="batch.batch_number", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)
    performed_by_username = serializers.CharField(
        source="performed_by.username",
        read_only=True,
        default=None,
    )

    class Meta:
        model = Movement
        fields = [
            "id",
            "batch",
            "batch_number",
            "product",
            "product_name",
            "movement_type",
            "quantity_change",
            "quantity_before",
            "quantity_after",
            "operation",
            "counterpart_batch",
            "unit_cost_snapshot",
            "performed_by",
            "performed_by_username",
            "reason",
            "created_at",
        ]
        read_only_fields = fields


class MovementSummarySerializer(serializers.Serializer):
    movement_type = serializers.CharField()
    count = serializers.IntegerField()
    total_quantity = serializers.IntegerField()
    average_quantity = serializers.FloatField()


class ReconciliationSerializer(serializers.Serializer):
    batch_id = serializers.UUIDField()
    batch_number = serializers.CharField()
    quantity_on_hand = serializers.IntegerField()
    ledger_total = serializers.IntegerField()
    quantity_received = serializers.IntegerField()
    movement_count = serializers.IntegerField()
    consistent = serializers.BooleanField()
    drift = serializers.IntegerField()

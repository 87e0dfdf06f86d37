# inventory/serializers/commands.py

"""
Command serializers for the ledger actions.

These serializers do NOT touch the database. They only shape input;
business rules (availability, status, product match) are enforced by the
TransactionCoordinator inside the ledger transaction.
"""

from rest_framework import serializers

from inventory.models import BatchStatus, MovementType


class _LedgerCommandSerializer(serializers.Serializer):
    idempotency_key = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=128,
    )


class ReceiveCommandSerializer(_LedgerCommandSerializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    unit_cost = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    expiration_date = serializers.DateField()
    batch_number = serializers.CharField(max_length=128)
    lot_number = serializers.CharField(required=False, allow_blank=True, max_length=128, default="")
    supplier_ref = serializers.CharField(required=False, allow_blank=True, max_length=128, default="")
    location = serializers.CharField(required=False, allow_blank=True, max_length=64, default="")
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")


class AdjustCommandSerializer(_LedgerCommandSerializer):
    quantity_delta = serializers.IntegerField()
    reason = serializers.CharField(max_length=255)
    kind = serializers.ChoiceField(
        choices=[
            MovementType.ADJUSTMENT,
            MovementType.DAMAGED,
            MovementType.EXPIRED,
        ],
        required=False,
        default=MovementType.ADJUSTMENT,
    )

    def validate_quantity_delta(self, value):
        if value == 0:
            raise serializers.ValidationError("quantity_delta cannot be 0")
        return value


class TransferCommandSerializer(_LedgerCommandSerializer):
    from_batch_id = serializers.UUIDField()
    to_batch_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    reason = serializers.CharField(max_length=255)


class StatusCommandSerializer(_LedgerCommandSerializer):
    status = serializers.ChoiceField(choices=BatchStatus.choices)
    reason = serializers.CharField(max_length=255)


class SummaryQuerySerializer(serializers.Serializer):
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    product = serializers.UUIDField(required=False)

    def validate(self, attrs):
        date_from, date_to = attrs.get("date_from"), attrs.get("date_to")
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError("date_from must be on or before date_to")
        return attrs

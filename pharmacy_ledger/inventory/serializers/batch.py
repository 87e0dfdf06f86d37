# inventory/serializers/batch.py

from rest_framework import serializers

from inventory.models import Batch


class BatchSerializer(serializers.ModelSerializer):
    """
    Read-only batch representation.

    Quantities are never writable through the API; they change only
    through the ledger actions (receive / adjust / transfer / status).
    """

    product_name = serializers.CharField(source="product.name", read_only=True)
    product_sku = serializers.CharField(source="product.sku", read_only=True)
    quantity_available = serializers.IntegerField(read_only=True)
    is_sellable = serializers.BooleanField(read_only=True)

    class Meta:
        model = Batch
        fields = [
            "id",
            "product",
            "product_name",
            "product_sku",
            "batch_number",
            "lot_number",
            "supplier_ref",
            "quantity_received",
            "quantity_on_hand",
            "quantity_reserved",
            "quantity_available",
            "unit_cost",
            "expiration_date",
            "received_at",
            "status",
            "location",
            "version",
            "is_sellable",
            "updated_at",
        ]
        read_only_fields = fields

class StockLevelSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    on_hand = serializers.IntegerField()
    reserved = serializers.IntegerField()
    available = serializers.IntegerField()
    active_batches = serializers.IntegerField()

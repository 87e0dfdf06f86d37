# catalog/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models


class Product(models.Model):
    """
    Represents a sellable product.

    STOCK MODEL (IMPORTANT):
    - Product itself does NOT store stock
    - Stock lives in inventory.Batch
    - Available stock = sum of (on_hand - reserved) over ACTIVE, NON-EXPIRED batches

    The inventory core only ever reads products; maintenance happens in admin.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sku = models.CharField(max_length=128, unique=True, db_index=True)
    name = models.CharField(max_length=255, db_index=True)
    generic_name = models.CharField(max_length=255, blank=True, default="")

    # Selling price (snapshot at sale time is stored on SaleLine)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)

    # Percent, e.g. 7.50
    tax_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    minimum_stock_level = models.PositiveIntegerField(default=10)
    reorder_point = models.PositiveIntegerField(default=20)
    maximum_stock_level = models.PositiveIntegerField(null=True, blank=True)

    requires_prescription = models.BooleanField(default=False)
    controlled_substance = models.BooleanField(default=False)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    def clean(self):
        if self.unit_price is None or Decimal(self.unit_price) < 0:
            raise ValidationError("unit_price cannot be negative")

        if self.tax_rate is None or not (Decimal("0") <= Decimal(self.tax_rate) <= Decimal("100")):
            raise ValidationError("tax_rate must be between 0 and 100")

        if self.reorder_point < self.minimum_stock_level:
            raise ValidationError("reorder_point cannot be below minimum_stock_level")

        if (
            self.maximum_stock_level is not None
            and self.maximum_stock_level < self.reorder_point
        ):
            raise ValidationError("maximum_stock_level cannot be below reorder_point")

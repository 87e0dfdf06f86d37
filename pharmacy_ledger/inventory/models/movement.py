# inventory/models/movement.py

"""
CANONICAL INVENTORY LEDGER

Immutable record of one quantity change on one batch.

GUARANTEES:
- Append-only (no updates, no deletes; model AND queryset level)
- quantity_change is signed; direction is validated against movement_type
- quantity_after == quantity_before + quantity_change
- Every movement references the StockOperation that produced it
- Transfer movements name the other batch as counterpart_batch
"""

from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from catalog.models import Product

from .batch import Batch
from .operation import StockOperation


class MovementType(models.TextChoices):
    PURCHASE = "purchase", "Purchase / Receipt"
    SALE = "sale", "Sale"
    RETURN = "return", "Customer Return"
    ADJUSTMENT = "adjustment", "Manual Adjustment"
    TRANSFER_IN = "transfer_in", "Transfer In"
    TRANSFER_OUT = "transfer_out", "Transfer Out"
    EXPIRED = "expired", "Expired Write-off"
    DAMAGED = "damaged", "Damaged Write-off"


# +1 = must increase stock, -1 = must decrease, None = either (non-zero)
MOVEMENT_DIRECTION = {
    MovementType.PURCHASE: 1,
    MovementType.RETURN: 1,
    MovementType.TRANSFER_IN: 1,
    MovementType.SALE: -1,
    MovementType.TRANSFER_OUT: -1,
    MovementType.EXPIRED: -1,
    MovementType.DAMAGED: -1,
    MovementType.ADJUSTMENT: None,
}


RELATION_FIELDS = ["batch", "product", "operation", "counterpart_batch", "performed_by"]


class MovementQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise ValidationError("Movement records are immutable")

    def delete(self):
        raise ValidationError("Movement records are immutable and cannot be deleted")

    def for_period(self, date_from=None, date_to=None):
        qs = self
        if date_from is not None:
            qs = qs.filter(created_at__date__gte=date_from)
        if date_to is not None:
            qs = qs.filter(created_at__date__lte=date_to)
        return qs


class Movement(models.Model):
    id = models.BigAutoField(primary_key=True)

    batch = models.ForeignKey(
        Batch,
        on_delete=models.PROTECT,
        related_name="movements",
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="movements",
    )

    movement_type = models.CharField(max_length=16, choices=MovementType.choices)

    quantity_change = models.IntegerField()
    quantity_before = models.IntegerField()
    quantity_after = models.IntegerField()

    operation = models.ForeignKey(
        StockOperation,
        on_delete=models.PROTECT,
        related_name="movements",
    )

    counterpart_batch = models.ForeignKey(
        Batch,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="counterpart_movements",
    )

    unit_cost_snapshot = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Batch unit cost at movement time (immutable).",
    )

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    reason = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    objects = MovementQuerySet.as_manager()

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(fields=["created_at"], name="inventory_m_created_5a1e3f_idx"),
            models.Index(fields=["movement_type"], name="inventory_m_movemen_9e2c44_idx"),
            models.Index(fields=["product", "created_at"], name="inventory_m_product_7b3d12_idx"),
            models.Index(fields=["batch", "id"], name="inventory_m_batch_i_0c8f6e_idx"),
        ]

    def clean(self):
        if self.quantity_change == 0:
            raise ValidationError("quantity_change cannot be zero")

        direction = MOVEMENT_DIRECTION.get(self.movement_type)
        if direction is not None and (self.quantity_change > 0) != (direction > 0):
            raise ValidationError(
                f"{self.movement_type} movement must "
                f"{'increase' if direction > 0 else 'decrease'} stock"
            )

        if self.quantity_after != self.quantity_before + self.quantity_change:
            raise ValidationError("quantity_after must equal quantity_before + quantity_change")

        if self.quantity_after < 0:
            raise ValidationError("quantity_after cannot be negative")

        if self.batch_id and self.product_id and self.batch.product_id != self.product_id:
            raise ValidationError("Batch does not belong to product")

        is_transfer = self.movement_type in {
            MovementType.TRANSFER_IN,
            MovementType.TRANSFER_OUT,
        }
        if is_transfer and not self.counterpart_batch_id:
            raise ValidationError("Transfer movements must reference the counterpart batch")
        if not is_transfer and self.counterpart_batch_id:
            raise ValidationError("Only transfer movements carry a counterpart batch")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Movement records are immutable")

        # relation fields are checked by the database; clean() covers the rest
        self.clean_fields(exclude=RELATION_FIELDS)
        self.clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Movement records are immutable and cannot be deleted")

    def __str__(self):
        return f"#{self.id} {self.movement_type} {self.quantity_change:+d} on {self.batch_id}"

# sales/models/sale_line_allocation.py

from django.core.exceptions import ValidationError
from django.db import models

from .sale_line import SaleLine


class SaleLineAllocation(models.Model):
    """
    How much of a sale line came out of which batch.

    Written once per (line, batch) together with the Movement(sale) it
    corresponds to. Refunds return stock to these batches in sequence order.
    """

    line = models.ForeignKey(SaleLine, on_delete=models.PROTECT, related_name="allocations")
    batch = models.ForeignKey(
        "inventory.Batch",
        on_delete=models.PROTECT,
        related_name="sale_allocations",
    )
    movement = models.OneToOneField(
        "inventory.Movement",
        on_delete=models.PROTECT,
        related_name="sale_allocation",
    )

    quantity = models.PositiveIntegerField()
    sequence = models.PositiveSmallIntegerField()

    class Meta:
        ordering = ["line_id", "sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["line", "batch"],
                name="sale_allocation_line_batch_unique",
            ),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("SaleLineAllocation records are immutable")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("SaleLineAllocation records cannot be deleted")

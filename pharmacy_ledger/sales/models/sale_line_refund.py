# sales/models/sale_line_refund.py

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .sale_line import SaleLine
from .sale_line_allocation import SaleLineAllocation


class SaleLineRefund(models.Model):
    """
    Append-only record of stock returned for one sale line from one batch.

    GUARANTEES:
    - Sum(quantity) per line never exceeds the line quantity
    - Sum(quantity) per allocation never exceeds the allocation quantity
    - Each row pairs with exactly one Movement(return)
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    line = models.ForeignKey(SaleLine, on_delete=models.PROTECT, related_name="refunds")
    allocation = models.ForeignKey(
        SaleLineAllocation,
        on_delete=models.PROTECT,
        related_name="refunds",
    )
    operation = models.ForeignKey(
        "inventory.StockOperation",
        on_delete=models.PROTECT,
        related_name="sale_refunds",
    )
    movement = models.OneToOneField(
        "inventory.Movement",
        on_delete=models.PROTECT,
        related_name="refund_entry",
    )

    quantity = models.PositiveIntegerField()
    amount_minor = models.BigIntegerField()
    reason = models.TextField(blank=True, default="")

    refunded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sale_line_refunds",
    )
    refunded_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["refunded_at"]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("SaleLineRefund records are immutable")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("SaleLineRefund records cannot be deleted")

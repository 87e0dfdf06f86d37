# sales/models/sale_line.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Sum

from catalog.models import Product

from .sale import Sale


class SaleLine(models.Model):
    """
    One product line of a sale with its price snapshot.

    Which batches supplied the line lives in SaleLineAllocation.
    """

    sale = models.ForeignKey(Sale, on_delete=models.PROTECT, related_name="lines")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="sale_lines")

    # the batch the cashier asked for explicitly (null = FIFO)
    pinned_batch = models.ForeignKey(
        "inventory.Batch",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="pinned_sale_lines",
    )

    quantity = models.PositiveIntegerField()
    unit_price_minor = models.BigIntegerField()
    discount_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    discount_minor = models.BigIntegerField(default=0)
    tax_minor = models.BigIntegerField(default=0)
    line_total_minor = models.BigIntegerField()

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.product} x {self.quantity}"

    @property
    def quantity_refunded(self) -> int:
        return int(self.refunds.aggregate(total=Sum("quantity"))["total"] or 0)

    @property
    def amount_refunded_minor(self) -> int:
        return int(self.refunds.aggregate(total=Sum("amount_minor"))["total"] or 0)

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("SaleLine records are immutable")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("SaleLine records cannot be deleted")

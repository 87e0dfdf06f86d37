# sales/models/sale.py

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from sales.services.pricing import from_minor

User = settings.AUTH_USER_MODEL


class Sale(models.Model):
    """
    Represents a committed point-of-sale transaction.

    GUARANTEES:
    - Written only by the ledger coordinator, in the same transaction as
      the stock movements it caused
    - Money is stored in integer minor units
    - Financial fields are immutable; only status moves (via refunds)
    """

    STATUS_COMPLETED = "completed"
    STATUS_PARTIALLY_REFUNDED = "partially_refunded"
    STATUS_REFUNDED = "refunded"

    STATUS_CHOICES = [
        (STATUS_COMPLETED, "Completed"),
        (STATUS_PARTIALLY_REFUNDED, "Partially Refunded"),
        (STATUS_REFUNDED, "Refunded"),
    ]

    PAYMENT_CASH = "cash"
    PAYMENT_CARD = "card"
    PAYMENT_INSURANCE = "insurance"
    PAYMENT_CHECK = "check"
    PAYMENT_DIGITAL = "digital"

    PAYMENT_METHOD_CHOICES = [
        (PAYMENT_CASH, "Cash"),
        (PAYMENT_CARD, "Card"),
        (PAYMENT_INSURANCE, "Insurance"),
        (PAYMENT_CHECK, "Check"),
        (PAYMENT_DIGITAL, "Digital Wallet"),
    ]

    # only these may change after the row is written
    MUTABLE_FIELDS = {"status"}

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale_number = models.CharField(max_length=32, unique=True)

    operation = models.OneToOneField(
        "inventory.StockOperation",
        on_delete=models.PROTECT,
        related_name="sale",
    )

    status = models.CharField(
        max_length=24,
        choices=STATUS_CHOICES,
        default=STATUS_COMPLETED,
    )

    cashier = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales",
    )

    subtotal_minor = models.BigIntegerField(default=0)
    discount_minor = models.BigIntegerField(default=0)
    tax_minor = models.BigIntegerField(default=0)
    total_minor = models.BigIntegerField(default=0)

    payment_method = models.CharField(
        max_length=16,
        choices=PAYMENT_METHOD_CHOICES,
        default=PAYMENT_CASH,
    )
    customer_payment_minor = models.BigIntegerField(null=True, blank=True)
    insurance_payment_minor = models.BigIntegerField(null=True, blank=True)

    prescription_number = models.CharField(max_length=64, blank=True, default="")
    prescribing_doctor = models.CharField(max_length=128, blank=True, default="")
    customer_name = models.CharField(max_length=128, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="sales_sale_status_3a8e1d_idx"),
        ]

    def __str__(self):
        return f"{self.sale_number} ({self.status})"

    @property
    def total_amount(self):
        return from_minor(self.total_minor)

    @property
    def is_refundable(self) -> bool:
        return self.status != self.STATUS_REFUNDED

    def save(self, *args, **kwargs):
        if not self._state.adding:
            update_fields = kwargs.get("update_fields")
            if not update_fields or not set(update_fields) <= self.MUTABLE_FIELDS:
                raise ValidationError("Sale financial fields are immutable")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Sales cannot be deleted; refund them instead")

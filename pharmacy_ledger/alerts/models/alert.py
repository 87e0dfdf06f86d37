# alerts/models/alert.py

"""
STOCK ALERT (EXPIRY + STOCK LEVEL NOTIFICATIONS)

Raised by the AlertEvaluator sweep; acknowledged by staff.

Rules:
- Expiry alerts reference one batch; stock alerts reference only the product
- The snapshot fields (quantity, expiration_date, days_to_expiry) describe
  the state at raise time and never change
- Only the acknowledgement fields may be updated after insert
"""

from __future__ import annotations

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class AlertKind(models.TextChoices):
    EXPIRY = "expiry", "Expiry"
    STOCK = "stock", "Stock level"


class AlertTier(models.TextChoices):
    # expiry
    EXPIRED = "expired", "Expired"
    CRITICAL = "critical", "Critical"
    WARNING = "warning", "Warning"
    WATCH = "watch", "Watch"
    # stock level (critical is shared)
    OUT_OF_STOCK = "out_of_stock", "Out of stock"
    LOW = "low", "Low stock"
    REORDER = "reorder", "Reorder point"


EXPIRY_TIERS = {AlertTier.EXPIRED, AlertTier.CRITICAL, AlertTier.WARNING, AlertTier.WATCH}
STOCK_TIERS = {AlertTier.OUT_OF_STOCK, AlertTier.CRITICAL, AlertTier.LOW, AlertTier.REORDER}


class StockAlert(models.Model):
    ACK_FIELDS = {"is_acknowledged", "acknowledged_by", "acknowledged_at", "action_taken"}

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    kind = models.CharField(max_length=16, choices=AlertKind.choices)
    tier = models.CharField(max_length=16, choices=AlertTier.choices)

    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.CASCADE,
        related_name="alerts",
    )
    batch = models.ForeignKey(
        "inventory.Batch",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="alerts",
    )

    quantity = models.IntegerField(default=0)
    expiration_date = models.DateField(null=True, blank=True)
    days_to_expiry = models.IntegerField(null=True, blank=True)
    message = models.CharField(max_length=255)

    raised_at = models.DateTimeField(default=timezone.now)

    is_acknowledged = models.BooleanField(default=False)
    acknowledged_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="acknowledged_alerts",
    )
    acknowledged_at = models.DateTimeField(null=True, blank=True)
    action_taken = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-raised_at"]
        indexes = [
            models.Index(
                fields=["product", "batch", "tier", "raised_at"],
                name="alerts_stoc_product_4e2b91_idx",
            ),
            models.Index(
                fields=["is_acknowledged", "raised_at"],
                name="alerts_stoc_is_ackn_7c1d05_idx",
            ),
        ]

    def __str__(self):
        return f"[{self.tier}] {self.message}"

    def clean(self):
        if self.kind == AlertKind.EXPIRY:
            if self.batch_id is None:
                raise ValidationError("Expiry alerts must reference a batch")
            if self.tier not in EXPIRY_TIERS:
                raise ValidationError(f"'{self.tier}' is not an expiry tier")
        elif self.kind == AlertKind.STOCK:
            if self.batch_id is not None:
                raise ValidationError("Stock alerts reference a product, not a batch")
            if self.tier not in STOCK_TIERS:
                raise ValidationError(f"'{self.tier}' is not a stock tier")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            update_fields = kwargs.get("update_fields")
            if not update_fields or not set(update_fields) <= self.ACK_FIELDS:
                raise ValidationError("Only acknowledgement fields of an alert may change")
        else:
            self.clean()
        return super().save(*args, **kwargs)

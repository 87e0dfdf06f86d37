# inventory/models/batch.py

"""
BATCH (ONE RECEIVED LOT OF ONE PRODUCT)

CANONICAL MODEL:
- Batch = stock of one product received under one batch/lot number with one expiry
- quantity_on_hand / quantity_reserved are mutated ONLY via BatchStore.mutate()
- quantity_available is ALWAYS derived (on_hand - reserved), never stored
- version increments on every quantity change (optimistic conflict detection)
- Never deleted: exhausted or expired stock is retired via status

GUARANTEES (enforced by the database, not only by services):
- quantity_on_hand >= 0
- quantity_reserved >= 0
- quantity_reserved <= quantity_on_hand
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from catalog.models import Product


class BatchStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    EXPIRED = "expired", "Expired"
    DAMAGED = "damaged", "Damaged"
    RECALLED = "recalled", "Recalled"


@dataclass(frozen=True)
class QuantitySnapshot:
    on_hand: int
    reserved: int
    version: int

    @property
    def available(self) -> int:
        return self.on_hand - self.reserved


class BatchQuerySet(models.QuerySet):
    def delete(self):
        raise ValidationError(
            "Batches are never deleted; retire them with a status change instead"
        )

    def active(self):
        return self.filter(status=BatchStatus.ACTIVE)

    def sellable(self, on_date=None):
        on_date = on_date or timezone.localdate()
        return self.active().filter(expiration_date__gte=on_date)

    def fifo(self):
        # earliest expiry first; equal expiry -> oldest receipt first
        return self.order_by("expiration_date", "received_at", "id")


class Batch(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="batches",
    )

    batch_number = models.CharField(max_length=128)
    lot_number = models.CharField(max_length=128, blank=True, default="")
    supplier_ref = models.CharField(
        max_length=128,
        blank=True,
        default="",
        help_text="Supplier / purchase order reference",
    )

    quantity_received = models.PositiveIntegerField(
        help_text="Quantity of the first receipt that created this batch",
    )
    quantity_on_hand = models.IntegerField(default=0)
    quantity_reserved = models.IntegerField(default=0)

    unit_cost = models.DecimalField(max_digits=12, decimal_places=2)

    expiration_date = models.DateField()
    received_at = models.DateTimeField(default=timezone.now)

    status = models.CharField(
        max_length=16,
        choices=BatchStatus.choices,
        default=BatchStatus.ACTIVE,
    )
    location = models.CharField(max_length=64, blank=True, default="")

    version = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BatchQuerySet.as_manager()

    class Meta:
        ordering = ["expiration_date", "received_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity_on_hand__gte=0),
                name="batch_on_hand_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(quantity_reserved__gte=0),
                name="batch_reserved_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(quantity_reserved__lte=F("quantity_on_hand")),
                name="batch_reserved_within_on_hand",
            ),
            models.UniqueConstraint(
                fields=["product", "batch_number", "lot_number", "expiration_date"],
                name="batch_identity_unique",
            ),
        ]
        indexes = [
            models.Index(
                fields=["product", "status", "expiration_date"],
                name="inventory_b_product_6f1c2a_idx",
            ),
            models.Index(fields=["expiration_date"], name="inventory_b_expirat_8d0e4b_idx"),
            models.Index(fields=["status"], name="inventory_b_status_2b9a71_idx"),
        ]

    def __str__(self):
        return f"{self.product} | {self.batch_number} | exp {self.expiration_date}"

    @property
    def quantity_available(self) -> int:
        return int(self.quantity_on_hand) - int(self.quantity_reserved)

    @property
    def is_sellable(self) -> bool:
        return (
            self.status == BatchStatus.ACTIVE
            and self.expiration_date >= timezone.localdate()
        )

    def snapshot(self) -> QuantitySnapshot:
        return QuantitySnapshot(
            on_hand=int(self.quantity_on_hand),
            reserved=int(self.quantity_reserved),
            version=int(self.version),
        )

    def clean(self):
        if self.quantity_on_hand < 0:
            raise ValidationError("quantity_on_hand cannot be negative")
        if self.quantity_reserved < 0:
            raise ValidationError("quantity_reserved cannot be negative")
        if self.quantity_reserved > self.quantity_on_hand:
            raise ValidationError("quantity_reserved cannot exceed quantity_on_hand")

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "Batches are never deleted; retire them with a status change instead"
        )

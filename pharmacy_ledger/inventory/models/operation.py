# inventory/models/operation.py

"""
STOCK OPERATION (ORIGINATING TRANSACTION REFERENCE)

One row per COMMITTED ledger operation (receipt, sale, refund, adjustment,
transfer, status change). Every Movement points at the operation that wrote it.

Idempotency:
- idempotency_key is optional and unique.
- A replay of a committed key is rejected by the coordinator before any
  stock is touched (DuplicateOperation).

Rows only exist for committed work: a rolled-back operation leaves nothing behind.
"""

from __future__ import annotations

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


class OperationKind(models.TextChoices):
    RECEIPT = "receipt", "Receipt"
    SALE = "sale", "Sale"
    REFUND = "refund", "Refund"
    ADJUSTMENT = "adjustment", "Adjustment"
    TRANSFER = "transfer", "Transfer"
    STATUS_CHANGE = "status_change", "Status Change"


class StockOperation(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    kind = models.CharField(max_length=16, choices=OperationKind.choices)

    idempotency_key = models.CharField(
        max_length=128,
        unique=True,
        null=True,
        blank=True,
    )

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_operations",
    )

    reason = models.TextField(blank=True, default="")

    committed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["committed_at"]
        indexes = [
            models.Index(fields=["kind", "committed_at"], name="inventory_s_kind_4c7d90_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("StockOperation records are immutable")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("StockOperation records are immutable and cannot be deleted")

    def __str__(self):
        return f"{self.kind} {self.id}"

# inventory/services/allocation.py

"""
FIFO-BY-EXPIRY ALLOCATION ENGINE

Purpose:
- Decide WHICH batches satisfy a requested quantity of one product.
- Earliest-expiring stock leaves the shelf first; ties go to the oldest receipt.

Rules:
- Quantities are whole integer units (> 0).
- Only ACTIVE, non-expired batches with available stock are eligible.
- The plan sums EXACTLY to the request or the request fails with
  InsufficientStock (no partial plans).
- A pinned batch is used alone: no spill-over into other batches.

The engine never writes. The coordinator turns a plan into reservations,
and reservations made earlier in the same transaction already reduce
`available` when the next line is planned.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence

from django.utils import timezone

from inventory.models import Batch, BatchStatus
from inventory.services.batch_store import BatchStore
from inventory.services.exceptions import (
    InsufficientStock,
    StateError,
    ValidationError,
)


@dataclass(frozen=True)
class Allocation:
    batch_id: object
    batch_number: str
    expiration_date: date
    quantity: int


def require_positive_quantity(value, *, name: str = "quantity") -> int:
    """
    Quantity normalizer.
    HARD RULE: quantities are positive integer units in this system.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a whole integer unit")

    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise ValidationError(f"{name} must be a whole integer unit")
        value = int(value)

    if not isinstance(value, int):
        raise ValidationError(f"{name} must be a whole integer unit")

    if value <= 0:
        raise ValidationError(f"{name} must be greater than zero")

    return value


def plan_fifo(batches: Sequence[Batch], quantity: int) -> list[Allocation]:
    """
    Split `quantity` across already-ordered batches.

    Batches with nothing available are skipped. Returns an empty list when
    the batches cannot cover the request; callers decide how to fail.
    """
    remaining = quantity
    plan: list[Allocation] = []

    for batch in batches:
        if remaining <= 0:
            break

        available = int(batch.quantity_on_hand) - int(batch.quantity_reserved)
        if available <= 0:
            continue

        take = min(available, remaining)
        plan.append(
            Allocation(
                batch_id=batch.id,
                batch_number=batch.batch_number,
                expiration_date=batch.expiration_date,
                quantity=take,
            )
        )
        remaining -= take

    if remaining > 0:
        return []

    return plan


def total_available(batches: Iterable[Batch]) -> int:
    return sum(max(0, int(b.quantity_on_hand) - int(b.quantity_reserved)) for b in batches)


class AllocationEngine:
    def __init__(self, store: BatchStore):
        self.store = store

    def allocate(
        self,
        product_id,
        quantity,
        *,
        pinned_batch_id=None,
        today: Optional[date] = None,
    ) -> list[Allocation]:
        quantity = require_positive_quantity(quantity)
        today = today or timezone.localdate()

        if pinned_batch_id is not None:
            return self._allocate_pinned(product_id, quantity, pinned_batch_id, today)

        candidates = self.store.list_active_batches(product_id, sellable_on=today)
        plan = plan_fifo(candidates, quantity)

        if not plan:
            raise InsufficientStock(
                product_id=product_id,
                requested=quantity,
                available=total_available(candidates),
            )

        return plan

    def _allocate_pinned(self, product_id, quantity: int, batch_id, today: date) -> list[Allocation]:
        batch = self.store.get_batch(batch_id)

        if str(batch.product_id) != str(product_id):
            raise ValidationError(
                f"Batch {batch.batch_number} does not belong to the requested product"
            )

        if batch.status != BatchStatus.ACTIVE:
            raise StateError(f"Batch {batch.batch_number} is {batch.status}")

        if batch.expiration_date < today:
            raise StateError(f"Batch {batch.batch_number} expired on {batch.expiration_date}")

        if batch.quantity_available < quantity:
            raise InsufficientStock(
                product_id=product_id,
                batch_id=batch.id,
                requested=quantity,
                available=max(0, batch.quantity_available),
            )

        return [
            Allocation(
                batch_id=batch.id,
                batch_number=batch.batch_number,
                expiration_date=batch.expiration_date,
                quantity=quantity,
            )
        ]

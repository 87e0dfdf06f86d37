# inventory/services/movement_log.py

"""
MOVEMENT LOG (APPEND-ONLY AUDIT TRAIL)

Purpose:
- Record one immutable Movement per batch quantity change
- Answer history / summary / search queries for audit and reporting
- Cross-check the ledger against live batch quantities (reconcile)

Rules:
- append() is the only writer and must run inside the same ledger
  transaction as the BatchStore mutation it records
- before/after come from the BatchMutation snapshot, never re-read
- The Batch row stays the live source of truth; the log is the audit trail

Reconciliation:
- A batch is born with on_hand = 0, so the signed sum of all its movement
  deltas must equal quantity_on_hand at any committed point in time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from django.db import DEFAULT_DB_ALIAS
from django.db.models import Avg, Count, Sum
from django.db.models.functions import Abs

from inventory.filters import MovementFilter
from inventory.models import Batch, Movement, StockOperation
from inventory.models.movement import MOVEMENT_DIRECTION
from inventory.services.batch_store import BatchMutation
from inventory.services.exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MovementSummary:
    movement_type: str
    count: int
    total_quantity: int
    average_quantity: float


@dataclass(frozen=True)
class Reconciliation:
    batch_id: object
    batch_number: str
    quantity_on_hand: int
    ledger_total: int
    quantity_received: int
    movement_count: int

    @property
    def consistent(self) -> bool:
        return self.ledger_total == self.quantity_on_hand

    @property
    def drift(self) -> int:
        return self.quantity_on_hand - self.ledger_total


class MovementLog:
    def __init__(self, *, using: str = DEFAULT_DB_ALIAS):
        self.using = using

    def _movements(self):
        return Movement.objects.using(self.using)

    # -------------------------------------------------
    # WRITE
    # -------------------------------------------------
    def append(
        self,
        *,
        batch: Batch,
        movement_type: str,
        mutation: BatchMutation,
        operation: StockOperation,
        actor=None,
        reason: str = "",
        counterpart_batch: Optional[Batch] = None,
    ) -> Movement:
        delta = mutation.on_hand_delta

        if delta == 0:
            raise ValidationError("A movement must change on-hand quantity")

        direction = MOVEMENT_DIRECTION.get(movement_type, 0)
        if direction == 0:
            raise ValidationError(f"Unknown movement type '{movement_type}'")
        if direction is not None and (delta > 0) != (direction > 0):
            raise ValidationError(f"{movement_type} cannot record a change of {delta:+d}")

        if str(mutation.batch_id) != str(batch.id):
            raise ValidationError("Mutation does not belong to this batch")

        movement = Movement(
            batch=batch,
            product_id=batch.product_id,
            movement_type=movement_type,
            quantity_change=delta,
            quantity_before=mutation.before.on_hand,
            quantity_after=mutation.after.on_hand,
            operation=operation,
            counterpart_batch=counterpart_batch,
            unit_cost_snapshot=batch.unit_cost,
            performed_by=actor if getattr(actor, "pk", None) else None,
            reason=reason or "",
        )
        movement.save(using=self.using)
        return movement

    # -------------------------------------------------
    # READS
    # -------------------------------------------------
    def history_for_batch(self, batch_id) -> list[Movement]:
        return list(
            self._movements()
            .filter(batch_id=batch_id)
            .select_related("operation", "performed_by", "counterpart_batch")
            .order_by("id")
        )

    def history_for_product(
        self,
        product_id,
        *,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Movement]:
        return list(
            self._movements()
            .filter(product_id=product_id)
            .for_period(date_from, date_to)
            .select_related("batch", "operation", "performed_by")
            .order_by("id")
        )

    def summarize(
        self,
        *,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        product_id=None,
    ) -> list[MovementSummary]:
        qs = self._movements().for_period(date_from, date_to)
        if product_id is not None:
            qs = qs.filter(product_id=product_id)

        rows = (
            qs.values("movement_type")
            .annotate(
                count=Count("id"),
                total_quantity=Sum(Abs("quantity_change")),
                average_quantity=Avg(Abs("quantity_change")),
            )
            .order_by("movement_type")
        )

        return [
            MovementSummary(
                movement_type=row["movement_type"],
                count=int(row["count"]),
                total_quantity=int(row["total_quantity"] or 0),
                average_quantity=round(float(row["average_quantity"] or 0), 2),
            )
            for row in rows
        ]

    def search(self, params: dict):
        """
        Filter + sort through the MovementFilter allow-list.

        Unknown sort keys or malformed values raise ValidationError.
        """
        filterset = MovementFilter(
            data=params,
            queryset=self._movements().select_related("batch", "product", "performed_by"),
        )
        if not filterset.is_valid():
            raise ValidationError(
                "Invalid movement query",
                errors={field: [str(m) for m in messages] for field, messages in filterset.errors.items()},
            )
        return filterset.qs

    # -------------------------------------------------
    # AUDIT
    # -------------------------------------------------
    def reconcile(self, batch: Batch) -> Reconciliation:
        agg = self._movements().filter(batch_id=batch.id).aggregate(
            total=Sum("quantity_change"),
            count=Count("id"),
        )
        return Reconciliation(
            batch_id=batch.id,
            batch_number=batch.batch_number,
            quantity_on_hand=int(batch.quantity_on_hand),
            ledger_total=int(agg["total"] or 0),
            quantity_received=int(batch.quantity_received),
            movement_count=int(agg["count"] or 0),
        )

    def reconcile_all(self, *, product_id=None) -> list[Reconciliation]:
        batches = Batch.objects.using(self.using).order_by("id")
        if product_id is not None:
            batches = batches.filter(product_id=product_id)

        totals = {
            row["batch_id"]: row
            for row in self._movements()
            .values("batch_id")
            .annotate(total=Sum("quantity_change"), count=Count("id"))
            .order_by()
        }

        results = []
        for batch in batches.iterator():
            row = totals.get(batch.id, {})
            result = Reconciliation(
                batch_id=batch.id,
                batch_number=batch.batch_number,
                quantity_on_hand=int(batch.quantity_on_hand),
                ledger_total=int(row.get("total") or 0),
                quantity_received=int(batch.quantity_received),
                movement_count=int(row.get("count") or 0),
            )
            if not result.consistent:
                logger.error(
                    "Ledger drift detected",
                    extra={
                        "batch_id": str(batch.id),
                        "on_hand": result.quantity_on_hand,
                        "ledger_total": result.ledger_total,
                    },
                )
            results.append(result)

        return results

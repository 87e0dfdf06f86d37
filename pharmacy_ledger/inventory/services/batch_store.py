# inventory/services/batch_store.py

"""
BATCH STORE

Authoritative per-batch quantity state.

Purpose:
- Read batches (single, per-product FIFO listing, per-product stock level)
- Lock batches for mutation in a deadlock-free order
- Apply quantity deltas atomically with invariant + version checks

Rules:
- quantity_on_hand / quantity_reserved change ONLY through mutate()
- Every mutation runs inside the caller's ledger transaction; mutate()
  opens a savepoint so a rejected mutation leaves nothing behind
- Locks taken by read_for_mutation() / lock_products() are held until the
  enclosing transaction ends
- Lock order is ALWAYS primary-key order

Concurrency:
- Pessimistic: SELECT ... FOR UPDATE (PostgreSQL); on SQLite the whole
  database is write-locked by the transaction instead
- Optimistic: UPDATE ... WHERE version = <read version>; zero rows
  updated means somebody else changed the row -> ConflictError
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, Optional

from django.db import DEFAULT_DB_ALIAS, IntegrityError, transaction
from django.db.models import Count, F, Q, Sum
from django.utils import timezone

from catalog.models import Product
from inventory.models import Batch, BatchStatus
from inventory.models.batch import QuantitySnapshot
from inventory.services.exceptions import (
    ConflictError,
    InvariantViolation,
    NotFound,
    ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchMutation:
    batch_id: object
    before: QuantitySnapshot
    after: QuantitySnapshot

    @property
    def on_hand_delta(self) -> int:
        return self.after.on_hand - self.before.on_hand

    @property
    def reserved_delta(self) -> int:
        return self.after.reserved - self.before.reserved


def as_batch_id(value) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise NotFound(f"Batch {value} not found")


def as_product_id(value) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise NotFound(f"Product {value} not found")


@dataclass(frozen=True)
class StockLevel:
    """Per-product totals over active batches. available counts unexpired stock only."""

    product_id: uuid.UUID
    on_hand: int = 0
    reserved: int = 0
    available: int = 0
    active_batches: int = 0


def _require_int(value, *, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be a whole integer unit")
    return value


class BatchStore:
    def __init__(self, *, using: str = DEFAULT_DB_ALIAS):
        self.using = using

    # -------------------------------------------------
    # READS
    # -------------------------------------------------
    def _batches(self):
        return Batch.objects.using(self.using)

    def get_batch(self, batch_id) -> Batch:
        try:
            return self._batches().select_related("product").get(id=as_batch_id(batch_id))
        except Batch.DoesNotExist:
            raise NotFound(f"Batch {batch_id} not found")

    def list_active_batches(self, product_id, *, sellable_on=None) -> list[Batch]:
        """
        Active batches of one product, oldest expiry first.

        With sellable_on, batches that expire before that date are left out
        even if the expiry sweep has not retired them yet.
        """
        batches = self._batches()
        qs = batches.active() if sellable_on is None else batches.sellable(sellable_on)
        return list(qs.filter(product_id=as_product_id(product_id)).fifo())

    def stock_levels(self, product_ids: Optional[Iterable] = None, *, today=None) -> dict:
        """
        StockLevel per product id, aggregated in one query.

        Products without an active batch are absent from the result.
        """
        today = today or timezone.localdate()
        qs = self._batches().active()
        if product_ids is not None:
            qs = qs.filter(product_id__in={as_product_id(pid) for pid in product_ids})

        rows = (
            qs.order_by()
            .values("product_id")
            .annotate(
                on_hand=Sum("quantity_on_hand"),
                reserved=Sum("quantity_reserved"),
                available=Sum(
                    F("quantity_on_hand") - F("quantity_reserved"),
                    filter=Q(expiration_date__gte=today),
                ),
                active_batches=Count("id"),
            )
        )
        return {
            row["product_id"]: StockLevel(
                product_id=row["product_id"],
                on_hand=int(row["on_hand"] or 0),
                reserved=int(row["reserved"] or 0),
                available=int(row["available"] or 0),
                active_batches=int(row["active_batches"]),
            )
            for row in rows
        }

    def stock_level(self, product_id, *, today=None) -> StockLevel:
        product_id = as_product_id(product_id)
        if not Product.objects.using(self.using).filter(id=product_id).exists():
            raise NotFound(f"Product {product_id} not found")

        levels = self.stock_levels([product_id], today=today)
        return levels.get(product_id, StockLevel(product_id=product_id))

    def find_batch(self, *, product_id, batch_number, lot_number, expiration_date) -> Optional[Batch]:
        return (
            self._batches()
            .select_for_update()
            .filter(
                product_id=as_product_id(product_id),
                batch_number=batch_number,
                lot_number=lot_number,
                expiration_date=expiration_date,
            )
            .first()
        )

    # -------------------------------------------------
    # LOCKING
    # -------------------------------------------------
    def read_for_mutation(self, batch_ids: Iterable) -> dict:
        """
        Lock the given batches (primary-key order) and return them by id.

        Must be called inside a ledger transaction.
        """
        wanted = {as_batch_id(bid) for bid in batch_ids}
        if not wanted:
            return {}

        locked = {
            batch.id: batch
            for batch in self._batches()
            .select_for_update()
            .filter(id__in=wanted)
            .order_by("id")
        }

        missing = [str(bid) for bid in wanted if bid not in locked]
        if missing:
            raise NotFound(f"Batch not found: {', '.join(sorted(missing))}")

        return locked

    def lock_products(self, product_ids: Iterable) -> list[Batch]:
        """
        Lock every active batch of the given products in one ordered statement.

        Multi-line sales call this before reserving anything so that two
        concurrent sales over overlapping products queue instead of deadlocking.
        """
        ids = {as_product_id(pid) for pid in product_ids}
        if not ids:
            return []

        return list(
            self._batches()
            .select_for_update()
            .filter(product_id__in=ids, status=BatchStatus.ACTIVE)
            .order_by("id")
        )

    # -------------------------------------------------
    # WRITES
    # -------------------------------------------------
    def create_batch(
        self,
        *,
        product,
        batch_number: str,
        lot_number: str,
        expiration_date,
        unit_cost,
        quantity_received: int,
        supplier_ref: str = "",
        location: str = "",
    ) -> Batch:
        """
        Create an empty batch row (on_hand = 0).

        The receipt that triggered it fills it through mutate() so the
        purchase movement pairs with a recorded before/after.
        """
        for name, value in (
            ("batch_number", batch_number),
            ("lot_number", lot_number),
            ("supplier_ref", supplier_ref),
            ("location", location),
        ):
            limit = Batch._meta.get_field(name).max_length
            if len(value or "") > limit:
                raise ValidationError(f"{name} must be at most {limit} characters")

        try:
            with transaction.atomic(using=self.using):
                return self._batches().create(
                    product=product,
                    batch_number=batch_number,
                    lot_number=lot_number,
                    expiration_date=expiration_date,
                    unit_cost=unit_cost,
                    quantity_received=quantity_received,
                    quantity_on_hand=0,
                    quantity_reserved=0,
                    supplier_ref=supplier_ref,
                    location=location,
                )
        except IntegrityError as exc:
            # same identity inserted by a concurrent receipt
            raise ConflictError(f"Batch {batch_number} was created concurrently") from exc

    def mutate(
        self,
        batch_id,
        on_hand_delta: int = 0,
        reserved_delta: int = 0,
        *,
        expected_version: Optional[int] = None,
    ) -> BatchMutation:
        """
        Atomic compare-and-apply of a quantity delta.

        Raises:
        - InvariantViolation if the result breaks 0 <= reserved <= on_hand
        - ConflictError if expected_version is stale or the row changed
          between read and write
        """
        on_hand_delta = _require_int(on_hand_delta, name="on_hand_delta")
        reserved_delta = _require_int(reserved_delta, name="reserved_delta")
        batch_id = as_batch_id(batch_id)

        with transaction.atomic(using=self.using):
            batch = self.read_for_mutation([batch_id])[batch_id]
            before = batch.snapshot()

            if expected_version is not None and before.version != expected_version:
                raise ConflictError(
                    f"Batch {batch_id} changed (version {before.version}, expected {expected_version})"
                )

            on_hand = before.on_hand + on_hand_delta
            reserved = before.reserved + reserved_delta

            if on_hand < 0 or reserved < 0 or reserved > on_hand:
                logger.error(
                    "Rejected batch mutation",
                    extra={
                        "batch_id": str(batch_id),
                        "on_hand": before.on_hand,
                        "reserved": before.reserved,
                        "on_hand_delta": on_hand_delta,
                        "reserved_delta": reserved_delta,
                    },
                )
                raise InvariantViolation(
                    f"Batch {batch.batch_number}: on_hand={on_hand}, reserved={reserved} "
                    "violates 0 <= reserved <= on_hand"
                )

            updated = (
                self._batches()
                .filter(id=batch_id, version=before.version)
                .update(
                    quantity_on_hand=on_hand,
                    quantity_reserved=reserved,
                    version=F("version") + 1,
                    updated_at=timezone.now(),
                )
            )
            if updated != 1:
                raise ConflictError(f"Batch {batch_id} was modified concurrently")

        return BatchMutation(
            batch_id=batch_id,
            before=before,
            after=QuantitySnapshot(
                on_hand=on_hand,
                reserved=reserved,
                version=before.version + 1,
            ),
        )

    def set_status(self, batch_id, status: str) -> Batch:
        if status not in BatchStatus.values:
            raise ValidationError(f"Unknown batch status '{status}'")
        batch_id = as_batch_id(batch_id)

        with transaction.atomic(using=self.using):
            batch = self.read_for_mutation([batch_id])[batch_id]
            self._batches().filter(id=batch_id).update(
                status=status,
                version=F("version") + 1,
                updated_at=timezone.now(),
            )
        return self.get_batch(batch.id)

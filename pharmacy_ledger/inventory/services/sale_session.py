# inventory/services/sale_session.py

"""
PENDING SALE (RESERVE -> COMMIT | RELEASE)

A PendingSale lives inside ONE ledger transaction opened by
TransactionCoordinator.begin_sale().

Phases:
1) reserve(): allocate FIFO (or the pinned batch) and raise quantity_reserved
   on every selected batch. Later lines see earlier reservations.
2) commit(): per (line, batch) decrement on_hand AND reserved together,
   write one Movement(sale) and the sale records.
3) release(): give every reservation back (cancel / failure path).

GUARANTEES:
- A sale never commits partially: either every line is consumed or none is
- commit() and cancel() are each allowed once, and never both
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from django.db import connections
from django.utils import timezone

from catalog.models import Product
from inventory.models import Batch, MovementType, StockOperation
from inventory.services.allocation import Allocation
from inventory.services.exceptions import StateError
from sales.models import Sale, SaleLine, SaleLineAllocation
from sales.services.pricing import LinePrice, SaleTotals, from_minor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleLineRequest:
    product_id: object
    quantity: int
    unit_price: Optional[Decimal] = None
    discount_percent: Decimal = Decimal("0")
    pinned_batch_id: object = None


@dataclass(frozen=True)
class SaleLineResult:
    line: SaleLine
    product_id: object
    quantity: int
    allocations: tuple
    line_total: Decimal


@dataclass(frozen=True)
class SaleResult:
    sale: Sale
    operation: StockOperation
    lines: tuple
    total: Decimal


@dataclass
class _PlannedLine:
    request: SaleLineRequest
    product: Product
    price: LinePrice
    allocations: list = field(default_factory=list)


@dataclass(frozen=True)
class _Reservation:
    batch_id: object
    quantity: int


def next_sale_number() -> str:
    return f"S-{timezone.now():%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


class PendingSale:
    def __init__(
        self,
        *,
        coordinator,
        operation,
        handle,
        planned: list,
        totals: SaleTotals,
        header: dict,
        today: date,
    ):
        self._coordinator = coordinator
        self._store = coordinator.store
        self._allocator = coordinator.allocator
        self._log = coordinator.log
        self.operation = operation
        self.handle = handle
        self.planned = planned
        self.totals = totals
        self.header = header
        self.today = today

        self.reservations: list[_Reservation] = []
        self._batches: dict = {}
        self.committed = False
        self.cancelled = False
        self.result: Optional[SaleResult] = None

    # -------------------------------------------------
    # PHASE 1: RESERVE
    # -------------------------------------------------
    def reserve(self) -> None:
        for planned in self.planned:
            self.handle.check_deadline("allocation")

            allocations = self._allocator.allocate(
                planned.product.id,
                planned.request.quantity,
                pinned_batch_id=planned.request.pinned_batch_id,
                today=self.today,
            )

            for allocation in allocations:
                self._store.mutate(allocation.batch_id, 0, allocation.quantity)
                self.reservations.append(
                    _Reservation(batch_id=allocation.batch_id, quantity=allocation.quantity)
                )

            planned.allocations = allocations

    @property
    def reserved_quantity(self) -> int:
        return sum(r.quantity for r in self.reservations)

    # -------------------------------------------------
    # PHASE 2: COMMIT
    # -------------------------------------------------
    def commit(self) -> SaleResult:
        if self.committed:
            raise StateError("Sale already committed")
        if self.cancelled:
            raise StateError("Sale was cancelled")

        self.handle.check_deadline("commit")

        stock_op = self._coordinator.record_operation(self.operation)
        using = self._store.using
        actor = self.operation.actor

        sale = Sale(
            sale_number=next_sale_number(),
            operation=stock_op,
            cashier=actor if getattr(actor, "pk", None) else None,
            subtotal_minor=self.totals.subtotal_minor,
            discount_minor=self.totals.discount_minor,
            tax_minor=self.totals.tax_minor,
            total_minor=self.totals.total_minor,
            **self.header,
        )
        sale.save(using=using)

        line_results = []
        for planned in self.planned:
            line = SaleLine(
                sale=sale,
                product=planned.product,
                pinned_batch_id=planned.request.pinned_batch_id,
                quantity=planned.price.quantity,
                unit_price_minor=planned.price.unit_price_minor,
                discount_percent=planned.price.discount_percent,
                discount_minor=planned.price.discount_minor,
                tax_minor=planned.price.tax_minor,
                line_total_minor=planned.price.total_minor,
            )
            line.save(using=using)

            for sequence, allocation in enumerate(planned.allocations):
                batch = self._batch(allocation.batch_id)
                mutation = self._store.mutate(
                    allocation.batch_id,
                    -allocation.quantity,
                    -allocation.quantity,
                )
                movement = self._log.append(
                    batch=batch,
                    movement_type=MovementType.SALE,
                    mutation=mutation,
                    operation=stock_op,
                    actor=actor,
                    reason=f"Sale {sale.sale_number}",
                )
                self._consume(allocation)
                SaleLineAllocation(
                    line=line,
                    batch=batch,
                    movement=movement,
                    quantity=allocation.quantity,
                    sequence=sequence,
                ).save(using=using)

            line_results.append(
                SaleLineResult(
                    line=line,
                    product_id=planned.product.id,
                    quantity=planned.price.quantity,
                    allocations=tuple(planned.allocations),
                    line_total=from_minor(planned.price.total_minor),
                )
            )

        self.committed = True
        self.result = SaleResult(
            sale=sale,
            operation=stock_op,
            lines=tuple(line_results),
            total=from_minor(sale.total_minor),
        )
        return self.result

    # -------------------------------------------------
    # PHASE 3: RELEASE
    # -------------------------------------------------
    def cancel(self) -> None:
        if self.committed:
            raise StateError("Sale already committed")
        if self.cancelled:
            return

        self.release()
        self.cancelled = True
        self.handle.set_rollback()

    def release(self) -> None:
        """
        Return every outstanding reservation, newest first.

        When the transaction is already broken the rollback discards the
        reservations on its own and nothing is written here.
        """
        if not self.reservations:
            return

        if connections[self._store.using].needs_rollback:
            self.reservations = []
            return

        for reservation in reversed(self.reservations):
            self._store.mutate(reservation.batch_id, 0, -reservation.quantity)

        logger.info(
            "Released sale reservations",
            extra={
                "operation_id": str(self.operation.id),
                "reservations": len(self.reservations),
            },
        )
        self.reservations = []

    def _consume(self, allocation: Allocation) -> None:
        # a consumed reservation must never be released again
        for index, reservation in enumerate(self.reservations):
            if reservation.batch_id == allocation.batch_id and reservation.quantity == allocation.quantity:
                del self.reservations[index]
                return

    def _batch(self, batch_id) -> Batch:
        batch = self._batches.get(batch_id)
        if batch is None:
            batch = self._store.get_batch(batch_id)
            self._batches[batch_id] = batch
        return batch

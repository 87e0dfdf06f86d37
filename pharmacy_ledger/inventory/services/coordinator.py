# inventory/services/coordinator.py

"""
TRANSACTION COORDINATOR (THE ONLY WRITER OF STOCK)

Purpose:
- Run every stock-changing operation (sale, refund, adjustment, transfer,
  receipt, status change) as ONE atomic unit:
    validate -> lock -> mutate batches -> append movements -> commit
- Any failure rolls the whole unit back; nothing partial is ever visible

Rules:
- Batches are locked in primary-key order, all of them before the first write
- Every quantity change goes through BatchStore.mutate() and is paired with
  exactly one Movement in the same transaction
- Optional idempotency keys: replaying a committed key raises DuplicateOperation
- Operations carry an in-memory lifecycle (lifecycle.py); committed ones
  leave a StockOperation row that every movement points at

Collaborators are passed in explicitly (no module-level state):

    coordinator = TransactionCoordinator.for_database("default")
    with coordinator.begin_sale(lines, actor=user) as pending:
        result = pending.commit()
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Iterator, Optional

from django.db import DEFAULT_DB_ALIAS, IntegrityError, transaction
from django.db.models import Sum
from django.utils import timezone

from catalog.models import Product
from inventory.models import (
    Batch,
    BatchStatus,
    Movement,
    MovementType,
    OperationKind,
    StockOperation,
)
from inventory.services import lifecycle
from inventory.services.allocation import AllocationEngine, require_positive_quantity
from inventory.services.batch_store import BatchStore, as_batch_id, as_product_id
from inventory.services.db import LedgerHandle, ledger_transaction
from inventory.services.exceptions import (
    DuplicateOperation,
    InsufficientStock,
    LedgerError,
    NotFound,
    StateError,
    ValidationError,
)
from inventory.services.movement_log import MovementLog
from inventory.services.sale_session import (
    PendingSale,
    SaleLineRequest,
    SaleResult,
    _PlannedLine,
)
from sales.models import Sale, SaleLine, SaleLineAllocation, SaleLineRefund
from sales.services.pricing import (
    from_minor,
    price_line,
    prorate_refund,
    total_sale,
    validate_payments,
)

logger = logging.getLogger(__name__)


# ============================================================
# BATCH STATUS RULES
# ============================================================

# expired / damaged are terminal
BATCH_STATUS_TRANSITIONS = {
    BatchStatus.ACTIVE: {BatchStatus.EXPIRED, BatchStatus.DAMAGED, BatchStatus.RECALLED},
    BatchStatus.RECALLED: {BatchStatus.ACTIVE, BatchStatus.EXPIRED, BatchStatus.DAMAGED},
}

WRITE_OFF_MOVEMENT = {
    BatchStatus.EXPIRED: MovementType.EXPIRED,
    BatchStatus.DAMAGED: MovementType.DAMAGED,
}

ADJUSTMENT_KINDS = {
    MovementType.ADJUSTMENT,
    MovementType.DAMAGED,
    MovementType.EXPIRED,
}


# ============================================================
# RESULTS
# ============================================================

@dataclass(frozen=True)
class ReceiptResult:
    batch: Batch
    movement: Movement
    operation: StockOperation
    created: bool


@dataclass(frozen=True)
class AdjustmentResult:
    batch: Batch
    movement: Movement
    operation: StockOperation
    quantity_delta: int


@dataclass(frozen=True)
class TransferResult:
    source: Batch
    destination: Batch
    outbound: Movement
    inbound: Movement
    operation: StockOperation
    quantity: int


@dataclass(frozen=True)
class RefundResult:
    sale: Sale
    line: SaleLine
    refunds: tuple
    movements: tuple
    operation: StockOperation
    quantity: int
    amount: Decimal


@dataclass(frozen=True)
class StatusChangeResult:
    batch: Batch
    previous_status: str
    movement: Optional[Movement]
    operation: StockOperation


# ============================================================
# INPUT NORMALIZERS
# ============================================================

def _require_reason(reason) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("reason is required")
    return reason


def _require_delta(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("quantity_delta must be a whole integer unit")
    if value == 0:
        raise ValidationError("quantity_delta cannot be 0")
    return value


def _to_cost(value) -> Decimal:
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError("unit_cost is required")
    try:
        cost = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("unit_cost must be a decimal amount")
    if cost < 0:
        raise ValidationError("unit_cost cannot be negative")
    return cost.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _to_date(value, *, name: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an ISO date (YYYY-MM-DD)")


class TransactionCoordinator:
    def __init__(
        self,
        *,
        store: BatchStore,
        allocator: AllocationEngine,
        log: MovementLog,
        using: str = DEFAULT_DB_ALIAS,
        timeout: Optional[float] = None,
    ):
        self.store = store
        self.allocator = allocator
        self.log = log
        self.using = using
        self.timeout = timeout

    @classmethod
    def for_database(cls, using: str = DEFAULT_DB_ALIAS, *, timeout: Optional[float] = None):
        store = BatchStore(using=using)
        return cls(
            store=store,
            allocator=AllocationEngine(store),
            log=MovementLog(using=using),
            using=using,
            timeout=timeout,
        )

    # -------------------------------------------------
    # OPERATION SCOPE
    # -------------------------------------------------
    @contextmanager
    def _operation(
        self,
        kind: str,
        *,
        actor=None,
        reason: str = "",
        idempotency_key: Optional[str] = None,
    ) -> Iterator[tuple[lifecycle.LedgerOperation, LedgerHandle]]:
        op = lifecycle.LedgerOperation(
            kind=kind,
            actor=actor,
            reason=reason,
            idempotency_key=(idempotency_key or "").strip() or None,
        )

        try:
            with ledger_transaction(using=self.using, timeout=self.timeout) as handle:
                self._reject_replay(op.idempotency_key)
                yield op, handle
        except LedgerError as exc:
            op.rollback()
            logger.warning(
                "Ledger operation rejected",
                extra={
                    "operation_id": str(op.id),
                    "kind": kind,
                    "code": exc.code,
                    "error": exc.message,
                },
            )
            raise
        except Exception:
            op.rollback()
            logger.exception(
                "Ledger operation failed",
                extra={"operation_id": str(op.id), "kind": kind},
            )
            raise

        if handle.rollback_requested:
            op.rollback()
            logger.info(
                "Ledger operation cancelled",
                extra={"operation_id": str(op.id), "kind": kind},
            )
            return

        op.transition(lifecycle.COMMITTED)
        logger.info(
            "Ledger operation committed",
            extra={"operation_id": str(op.id), "kind": kind},
        )

    def _reject_replay(self, idempotency_key: Optional[str]) -> None:
        if not idempotency_key:
            return
        if StockOperation.objects.using(self.using).filter(idempotency_key=idempotency_key).exists():
            raise DuplicateOperation(
                f"Operation with idempotency key '{idempotency_key}' was already committed"
            )

    def record_operation(self, op: lifecycle.LedgerOperation) -> StockOperation:
        """Persist the StockOperation row movements will reference."""
        actor = op.actor
        try:
            with transaction.atomic(using=self.using):
                return StockOperation.objects.using(self.using).create(
                    id=op.id,
                    kind=op.kind,
                    idempotency_key=op.idempotency_key,
                    performed_by=actor if getattr(actor, "pk", None) else None,
                    reason=op.reason,
                )
        except IntegrityError as exc:
            # a concurrent twin with the same key committed first
            raise DuplicateOperation(
                f"Operation with idempotency key '{op.idempotency_key}' was already committed"
            ) from exc

    # -------------------------------------------------
    # SALE
    # -------------------------------------------------
    def _plan_sale_lines(self, lines: Iterable, *, prescription_number: str) -> list[_PlannedLine]:
        requests = [
            line if isinstance(line, SaleLineRequest) else SaleLineRequest(**line)
            for line in lines
        ]
        if not requests:
            raise ValidationError("Sale must contain at least one line")

        product_ids = [as_product_id(r.product_id) for r in requests]
        products = {
            p.id: p
            for p in Product.objects.using(self.using).filter(id__in=set(product_ids))
        }

        planned = []
        for request, product_id in zip(requests, product_ids):
            quantity = require_positive_quantity(request.quantity)

            product = products.get(product_id)
            if product is None:
                raise NotFound(f"Product {request.product_id} not found")
            if not product.is_active:
                raise ValidationError(f"Product {product.name} is not active")
            if product.requires_prescription and not prescription_number:
                raise ValidationError(f"Prescription required for {product.name}")

            price = price_line(
                unit_price=request.unit_price if request.unit_price is not None else product.unit_price,
                quantity=quantity,
                discount_percent=request.discount_percent,
                tax_rate=product.tax_rate,
            )
            planned.append(_PlannedLine(request=request, product=product, price=price))

        return planned

    @contextmanager
    def begin_sale(
        self,
        lines: Iterable,
        *,
        actor=None,
        payment_method: str = Sale.PAYMENT_CASH,
        customer_payment=None,
        insurance_payment=None,
        prescription_number: str = "",
        prescribing_doctor: str = "",
        customer_name: str = "",
        notes: str = "",
        idempotency_key: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Iterator[PendingSale]:
        """
        Reserve stock for every line and hand back a PendingSale.

        Call pending.commit() to consume the reservations. Leaving the block
        without committing (or with an exception) releases everything and
        rolls the transaction back.
        """
        if payment_method not in dict(Sale.PAYMENT_METHOD_CHOICES):
            raise ValidationError(f"Unsupported payment method '{payment_method}'")

        prescription_number = (prescription_number or "").strip()
        today = today or timezone.localdate()

        with self._operation(
            OperationKind.SALE,
            actor=actor,
            idempotency_key=idempotency_key,
        ) as (op, handle):
            planned = self._plan_sale_lines(lines, prescription_number=prescription_number)
            totals = total_sale(p.price for p in planned)
            customer_minor, insurance_minor = validate_payments(
                totals.total_minor,
                customer_payment=customer_payment,
                insurance_payment=insurance_payment,
            )
            op.transition(lifecycle.VALIDATED)

            # all locks up front, one ordered statement
            self.store.lock_products({p.product.id for p in planned})
            handle.check_deadline("locking")

            pending = PendingSale(
                coordinator=self,
                operation=op,
                handle=handle,
                planned=planned,
                totals=totals,
                header={
                    "payment_method": payment_method,
                    "customer_payment_minor": customer_minor,
                    "insurance_payment_minor": insurance_minor,
                    "prescription_number": prescription_number,
                    "prescribing_doctor": (prescribing_doctor or "").strip(),
                    "customer_name": (customer_name or "").strip(),
                    "notes": notes or "",
                },
                today=today,
            )

            try:
                pending.reserve()
                op.transition(lifecycle.APPLIED)
                yield pending
            except BaseException:
                if not pending.committed:
                    pending.release()
                raise

            if not pending.committed:
                pending.cancel()

    def record_sale(self, lines: Iterable, **kwargs) -> SaleResult:
        with self.begin_sale(lines, **kwargs) as pending:
            result = pending.commit()
        return result

    # -------------------------------------------------
    # REFUND
    # -------------------------------------------------
    def refund(
        self,
        sale_line_id,
        quantity,
        *,
        reason: str = "",
        actor=None,
        idempotency_key: Optional[str] = None,
    ) -> RefundResult:
        quantity = require_positive_quantity(quantity)
        reason = (reason or "").strip()

        with self._operation(
            OperationKind.REFUND,
            actor=actor,
            reason=reason,
            idempotency_key=idempotency_key,
        ) as (op, handle):
            try:
                line = SaleLine.objects.using(self.using).filter(id=int(sale_line_id)).first()
            except (TypeError, ValueError):
                line = None
            if line is None:
                raise NotFound(f"Sale line {sale_line_id} not found")

            # serializes refunds of the same sale
            sale = Sale.objects.using(self.using).select_for_update().get(id=line.sale_id)
            if sale.status == Sale.STATUS_REFUNDED:
                raise StateError(f"Sale {sale.sale_number} is already fully refunded")

            allocations = list(
                SaleLineAllocation.objects.using(self.using)
                .filter(line_id=line.id)
                .annotate(refunded=Sum("refunds__quantity"))
                .order_by("sequence")
            )
            refunded_qty = sum(int(a.refunded or 0) for a in allocations)
            refundable = int(line.quantity) - refunded_qty
            if quantity > refundable:
                raise ValidationError(
                    f"Refund quantity {quantity} exceeds refundable quantity {refundable}"
                )
            op.transition(lifecycle.VALIDATED)

            plan = []
            left = quantity
            for allocation in allocations:
                if left <= 0:
                    break
                open_qty = int(allocation.quantity) - int(allocation.refunded or 0)
                take = min(open_qty, left)
                if take > 0:
                    plan.append((allocation, take))
                    left -= take

            locked = self.store.read_for_mutation(a.batch_id for a, _ in plan)
            handle.check_deadline("locking")

            refunded_minor = int(
                SaleLineRefund.objects.using(self.using)
                .filter(line_id=line.id)
                .aggregate(total=Sum("amount_minor"))["total"]
                or 0
            )
            amount_minor = prorate_refund(
                line_total_minor=int(line.line_total_minor),
                line_quantity=int(line.quantity),
                refunded_quantity=refunded_qty,
                refunded_minor=refunded_minor,
                quantity=quantity,
            )

            stock_op = self.record_operation(op)
            refunds, movements = [], []
            amount_left = amount_minor
            for index, (allocation, take) in enumerate(plan):
                is_last = index == len(plan) - 1
                share = amount_left if is_last else (amount_minor * take) // quantity
                amount_left -= share

                batch = locked[allocation.batch_id]
                mutation = self.store.mutate(batch.id, take, 0)
                movement = self.log.append(
                    batch=batch,
                    movement_type=MovementType.RETURN,
                    mutation=mutation,
                    operation=stock_op,
                    actor=actor,
                    reason=reason or f"Refund of sale {sale.sale_number}",
                )
                refund = SaleLineRefund(
                    line=line,
                    allocation=allocation,
                    operation=stock_op,
                    movement=movement,
                    quantity=take,
                    amount_minor=share,
                    reason=reason,
                    refunded_by=actor if getattr(actor, "pk", None) else None,
                )
                refund.save(using=self.using)
                refunds.append(refund)
                movements.append(movement)
            op.transition(lifecycle.APPLIED)

            sold = SaleLine.objects.using(self.using).filter(sale_id=sale.id).aggregate(
                total=Sum("quantity")
            )["total"]
            returned = SaleLineRefund.objects.using(self.using).filter(line__sale_id=sale.id).aggregate(
                total=Sum("quantity")
            )["total"]
            fully_refunded = int(returned or 0) >= int(sold or 0)
            sale.status = (
                Sale.STATUS_REFUNDED if fully_refunded else Sale.STATUS_PARTIALLY_REFUNDED
            )
            sale.save(using=self.using, update_fields=["status"])

        return RefundResult(
            sale=sale,
            line=line,
            refunds=tuple(refunds),
            movements=tuple(movements),
            operation=stock_op,
            quantity=quantity,
            amount=from_minor(amount_minor),
        )

    # -------------------------------------------------
    # ADJUSTMENT
    # -------------------------------------------------
    def adjust(
        self,
        batch_id,
        quantity_delta,
        reason,
        *,
        kind: str = MovementType.ADJUSTMENT,
        actor=None,
        idempotency_key: Optional[str] = None,
    ) -> AdjustmentResult:
        delta = _require_delta(quantity_delta)
        reason = _require_reason(reason)

        if kind not in ADJUSTMENT_KINDS:
            raise ValidationError(f"Unsupported adjustment type '{kind}'")
        if kind != MovementType.ADJUSTMENT and delta > 0:
            raise ValidationError(f"A {kind} adjustment can only remove stock")

        with self._operation(
            OperationKind.ADJUSTMENT,
            actor=actor,
            reason=reason,
            idempotency_key=idempotency_key,
        ) as (op, handle):
            batch_id = as_batch_id(batch_id)
            batch = self.store.read_for_mutation([batch_id])[batch_id]

            # stock only comes back into active batches
            if delta > 0 and batch.status != BatchStatus.ACTIVE:
                raise StateError(
                    f"Batch {batch.batch_number} is {batch.status}; cannot add stock to it"
                )
            if delta < 0 and -delta > batch.quantity_available:
                raise InsufficientStock(
                    f"Cannot remove {-delta} from batch {batch.batch_number}: "
                    f"only {batch.quantity_available} available",
                    product_id=batch.product_id,
                    batch_id=batch.id,
                    requested=-delta,
                    available=batch.quantity_available,
                )
            op.transition(lifecycle.VALIDATED)

            stock_op = self.record_operation(op)
            mutation = self.store.mutate(batch.id, delta, 0)
            movement = self.log.append(
                batch=batch,
                movement_type=kind,
                mutation=mutation,
                operation=stock_op,
                actor=actor,
                reason=reason,
            )
            op.transition(lifecycle.APPLIED)

        return AdjustmentResult(
            batch=self.store.get_batch(batch.id),
            movement=movement,
            operation=stock_op,
            quantity_delta=delta,
        )

    # -------------------------------------------------
    # TRANSFER
    # -------------------------------------------------
    def transfer(
        self,
        from_batch_id,
        to_batch_id,
        quantity,
        reason,
        *,
        actor=None,
        idempotency_key: Optional[str] = None,
    ) -> TransferResult:
        quantity = require_positive_quantity(quantity)
        reason = _require_reason(reason)
        source_id = as_batch_id(from_batch_id)
        destination_id = as_batch_id(to_batch_id)

        if source_id == destination_id:
            raise ValidationError("Cannot transfer a batch into itself")

        with self._operation(
            OperationKind.TRANSFER,
            actor=actor,
            reason=reason,
            idempotency_key=idempotency_key,
        ) as (op, handle):
            locked = self.store.read_for_mutation([source_id, destination_id])
            source, destination = locked[source_id], locked[destination_id]

            if source.product_id != destination.product_id:
                raise ValidationError("Cannot transfer between batches of different products")
            if source.status != BatchStatus.ACTIVE or destination.status != BatchStatus.ACTIVE:
                raise StateError("Both batches must be active to transfer stock")
            if source.quantity_available < quantity:
                raise InsufficientStock(
                    product_id=source.product_id,
                    batch_id=source.id,
                    requested=quantity,
                    available=source.quantity_available,
                )
            op.transition(lifecycle.VALIDATED)

            stock_op = self.record_operation(op)
            out_mutation = self.store.mutate(source.id, -quantity, 0)
            in_mutation = self.store.mutate(destination.id, quantity, 0)

            outbound = self.log.append(
                batch=source,
                movement_type=MovementType.TRANSFER_OUT,
                mutation=out_mutation,
                operation=stock_op,
                actor=actor,
                reason=reason,
                counterpart_batch=destination,
            )
            inbound = self.log.append(
                batch=destination,
                movement_type=MovementType.TRANSFER_IN,
                mutation=in_mutation,
                operation=stock_op,
                actor=actor,
                reason=reason,
                counterpart_batch=source,
            )
            op.transition(lifecycle.APPLIED)

        return TransferResult(
            source=self.store.get_batch(source.id),
            destination=self.store.get_batch(destination.id),
            outbound=outbound,
            inbound=inbound,
            operation=stock_op,
            quantity=quantity,
        )

    # -------------------------------------------------
    # RECEIPT
    # -------------------------------------------------
    def receive(
        self,
        product_id,
        quantity,
        *,
        unit_cost,
        expiration_date,
        batch_number: str,
        lot_number: str = "",
        supplier_ref: str = "",
        location: str = "",
        reason: str = "",
        actor=None,
        idempotency_key: Optional[str] = None,
    ) -> ReceiptResult:
        quantity = require_positive_quantity(quantity)
        cost = _to_cost(unit_cost)
        expiration_date = _to_date(expiration_date, name="expiration_date")
        batch_number = (batch_number or "").strip()
        lot_number = (lot_number or "").strip()

        if not batch_number:
            raise ValidationError("batch_number is required")
        if expiration_date < timezone.localdate():
            raise ValidationError("Cannot receive stock that is already expired")

        with self._operation(
            OperationKind.RECEIPT,
            actor=actor,
            reason=reason or f"Receipt of batch {batch_number}",
            idempotency_key=idempotency_key,
        ) as (op, handle):
            product = Product.objects.using(self.using).filter(id=as_product_id(product_id)).first()
            if product is None:
                raise NotFound(f"Product {product_id} not found")
            if not product.is_active:
                raise StateError(f"Product {product.name} is not active")

            batch = self.store.find_batch(
                product_id=product.id,
                batch_number=batch_number,
                lot_number=lot_number,
                expiration_date=expiration_date,
            )
            created = batch is None

            if batch is not None:
                if batch.status != BatchStatus.ACTIVE:
                    raise StateError(
                        f"Batch {batch.batch_number} is {batch.status}; cannot receive into it"
                    )
                if batch.unit_cost != cost:
                    logger.warning(
                        "Receipt cost differs from batch cost; keeping batch cost",
                        extra={
                            "batch_id": str(batch.id),
                            "batch_cost": str(batch.unit_cost),
                            "receipt_cost": str(cost),
                        },
                    )
            else:
                batch = self.store.create_batch(
                    product=product,
                    batch_number=batch_number,
                    lot_number=lot_number,
                    expiration_date=expiration_date,
                    unit_cost=cost,
                    quantity_received=quantity,
                    supplier_ref=(supplier_ref or "").strip(),
                    location=(location or "").strip(),
                )
            op.transition(lifecycle.VALIDATED)

            stock_op = self.record_operation(op)
            mutation = self.store.mutate(batch.id, quantity, 0)
            movement = self.log.append(
                batch=batch,
                movement_type=MovementType.PURCHASE,
                mutation=mutation,
                operation=stock_op,
                actor=actor,
                reason=op.reason,
            )
            op.transition(lifecycle.APPLIED)

        return ReceiptResult(
            batch=self.store.get_batch(batch.id),
            movement=movement,
            operation=stock_op,
            created=created,
        )

    # -------------------------------------------------
    # STATUS CHANGE (recall / retire)
    # -------------------------------------------------
    def change_status(
        self,
        batch_id,
        status: str,
        reason,
        *,
        actor=None,
        idempotency_key: Optional[str] = None,
    ) -> StatusChangeResult:
        reason = _require_reason(reason)
        if status not in BatchStatus.values:
            raise ValidationError(f"Unknown batch status '{status}'")

        with self._operation(
            OperationKind.STATUS_CHANGE,
            actor=actor,
            reason=reason,
            idempotency_key=idempotency_key,
        ) as (op, handle):
            batch_id = as_batch_id(batch_id)
            batch = self.store.read_for_mutation([batch_id])[batch_id]
            previous = batch.status

            if status not in BATCH_STATUS_TRANSITIONS.get(previous, set()):
                raise StateError(f"Batch {batch.batch_number} cannot go from {previous} to {status}")
            if status in WRITE_OFF_MOVEMENT and batch.quantity_reserved > 0:
                raise StateError(f"Batch {batch.batch_number} has stock reserved by a sale in progress")
            op.transition(lifecycle.VALIDATED)

            stock_op = self.record_operation(op)
            movement = None
            if status in WRITE_OFF_MOVEMENT and batch.quantity_on_hand > 0:
                mutation = self.store.mutate(batch.id, -int(batch.quantity_on_hand), 0)
                movement = self.log.append(
                    batch=batch,
                    movement_type=WRITE_OFF_MOVEMENT[status],
                    mutation=mutation,
                    operation=stock_op,
                    actor=actor,
                    reason=reason,
                )
            updated = self.store.set_status(batch.id, status)
            op.transition(lifecycle.APPLIED)

        return StatusChangeResult(
            batch=updated,
            previous_status=previous,
            movement=movement,
            operation=stock_op,
        )

    def retire_expired_batches(self, *, today: Optional[date] = None, actor=None) -> list[StatusChangeResult]:
        """
        Move every active batch past its expiration date to EXPIRED,
        writing off what is left. One transaction per batch.
        """
        today = today or timezone.localdate()
        expired_ids = list(
            Batch.objects.using(self.using)
            .active()
            .filter(expiration_date__lt=today)
            .order_by("id")
            .values_list("id", flat=True)
        )

        results = []
        for batch_id in expired_ids:
            try:
                results.append(
                    self.change_status(
                        batch_id,
                        BatchStatus.EXPIRED,
                        f"Expired on or before {today.isoformat()}",
                        actor=actor,
                    )
                )
            except StateError:
                # status moved under us (already retired by someone else)
                continue
        return results

# inventory/tests/test_coordinator_sales.py

from __future__ import annotations

from decimal import Decimal

from django.test import TestCase

from inventory.models import Batch, Movement, MovementType, OperationKind, StockOperation
from inventory.services.coordinator import TransactionCoordinator
from inventory.services.exceptions import (
    DuplicateOperation,
    InsufficientStock,
    LedgerTimeout,
    NotFound,
    ValidationError,
)
from inventory.services.sale_session import SaleLineRequest
from inventory.tests.helpers import make_product, make_user, receive
from sales.models import Sale, SaleLineAllocation


class SaleFlowTests(TestCase):
    """
    Point-of-sale ledger flow.

    GUARANTEES:
    - FIFO-by-expiry consumption with one sale movement per consumed batch
    - A sale applies completely or not at all
    - Reservations never outlive the sale that made them
    """

    def setUp(self):
        self.coordinator = TransactionCoordinator.for_database()
        self.cashier = make_user("cashier_1")
        self.product = make_product(unit_price=Decimal("2.50"))

        # X expires before Y
        self.x = receive(self.coordinator, self.product, 10, expires_in_days=30, batch_number="X")
        self.y = receive(self.coordinator, self.product, 10, expires_in_days=180, batch_number="Y")

    def _batch(self, batch):
        return Batch.objects.get(id=batch.id)

    def _sale_movements(self):
        return Movement.objects.filter(movement_type=MovementType.SALE).order_by("id")

    # -------------------------------------------------
    # HAPPY PATH
    # -------------------------------------------------
    def test_sale_of_fifteen_drains_x_then_takes_five_from_y(self):
        result = self.coordinator.record_sale(
            [SaleLineRequest(product_id=self.product.id, quantity=15)],
            actor=self.cashier,
        )

        self.assertEqual(self._batch(self.x).quantity_on_hand, 0)
        self.assertEqual(self._batch(self.y).quantity_on_hand, 5)

        movements = list(self._sale_movements())
        self.assertEqual(len(movements), 2)
        self.assertEqual(
            [(m.batch_id, m.quantity_change) for m in movements],
            [(self.x.id, -10), (self.y.id, -5)],
        )
        self.assertTrue(all(m.operation_id == result.operation.id for m in movements))

        line = result.lines[0]
        self.assertEqual(
            [(a.batch_number, a.quantity) for a in line.allocations],
            [("X", 10), ("Y", 5)],
        )
        self.assertEqual(result.total, Decimal("37.50"))
        self.assertEqual(result.sale.status, Sale.STATUS_COMPLETED)

    def test_reserved_is_zero_after_commit(self):
        self.coordinator.record_sale([{"product_id": self.product.id, "quantity": 12}])

        for batch in (self.x, self.y):
            self.assertEqual(self._batch(batch).quantity_reserved, 0)

    def test_pinned_line_uses_only_that_batch(self):
        result = self.coordinator.record_sale(
            [SaleLineRequest(product_id=self.product.id, quantity=3, pinned_batch_id=self.y.id)]
        )

        self.assertEqual(self._batch(self.x).quantity_on_hand, 10)
        self.assertEqual(self._batch(self.y).quantity_on_hand, 7)
        self.assertEqual(result.lines[0].allocations[0].batch_id, self.y.id)

    def test_two_lines_same_product_see_each_others_reservations(self):
        result = self.coordinator.record_sale(
            [
                SaleLineRequest(product_id=self.product.id, quantity=8),
                SaleLineRequest(product_id=self.product.id, quantity=8),
            ]
        )

        first, second = result.lines
        self.assertEqual([(a.batch_number, a.quantity) for a in first.allocations], [("X", 8)])
        self.assertEqual(
            [(a.batch_number, a.quantity) for a in second.allocations],
            [("X", 2), ("Y", 6)],
        )
        self.assertEqual(SaleLineAllocation.objects.count(), 3)

    def test_pricing_with_discount_and_tax(self):
        taxed = make_product(name="Vitamin C", unit_price=Decimal("10.00"), tax_rate=Decimal("7.50"))
        receive(self.coordinator, taxed, 10)

        result = self.coordinator.record_sale(
            [SaleLineRequest(product_id=taxed.id, quantity=3, discount_percent=Decimal("10"))],
            customer_payment=Decimal("20.00"),
            insurance_payment=Decimal("9.03"),
        )

        # 30.00 - 3.00 discount = 27.00, + 7.5% tax (2.025 -> 2.03) = 29.03
        sale = result.sale
        self.assertEqual(sale.subtotal_minor, 3000)
        self.assertEqual(sale.discount_minor, 300)
        self.assertEqual(sale.tax_minor, 203)
        self.assertEqual(sale.total_minor, 2903)
        self.assertEqual(sale.customer_payment_minor, 2000)
        self.assertEqual(sale.insurance_payment_minor, 903)

    # -------------------------------------------------
    # FAILURE = NO SIDE EFFECTS
    # -------------------------------------------------
    def _assert_untouched(self):
        for batch in (self.x, self.y):
            fresh = self._batch(batch)
            self.assertEqual((fresh.quantity_on_hand, fresh.quantity_reserved), (10, 0))
        self.assertFalse(self._sale_movements().exists())
        self.assertFalse(Sale.objects.exists())

    def test_insufficient_stock_fails_whole_sale(self):
        with self.assertRaises(InsufficientStock):
            self.coordinator.record_sale([SaleLineRequest(product_id=self.product.id, quantity=21)])

        self._assert_untouched()

    def test_failing_second_line_releases_first_line(self):
        other = make_product(name="Amoxicillin 250mg")
        receive(self.coordinator, other, 2)

        with self.assertRaises(InsufficientStock):
            self.coordinator.record_sale(
                [
                    SaleLineRequest(product_id=self.product.id, quantity=12),
                    SaleLineRequest(product_id=other.id, quantity=5),
                ]
            )

        self._assert_untouched()

    def test_voluntary_cancel_releases_reservations(self):
        with self.coordinator.begin_sale([SaleLineRequest(product_id=self.product.id, quantity=12)]) as pending:
            self.assertEqual(pending.reserved_quantity, 12)
            self.assertEqual(self._batch(self.x).quantity_reserved, 10)
            self.assertEqual(self._batch(self.y).quantity_reserved, 2)
            pending.cancel()

        self._assert_untouched()
        self.assertFalse(StockOperation.objects.filter(kind=OperationKind.SALE).exists())

    def test_leaving_block_without_commit_cancels(self):
        with self.coordinator.begin_sale([SaleLineRequest(product_id=self.product.id, quantity=4)]):
            pass

        self._assert_untouched()

    def test_exception_inside_block_rolls_back(self):
        with self.assertRaises(RuntimeError):
            with self.coordinator.begin_sale([SaleLineRequest(product_id=self.product.id, quantity=4)]):
                raise RuntimeError("terminal crashed")

        self._assert_untouched()

    def test_validation_errors(self):
        cases = [
            [],
            [SaleLineRequest(product_id=self.product.id, quantity=0)],
            [SaleLineRequest(product_id=self.product.id, quantity=1, discount_percent=Decimal("150"))],
        ]
        for lines in cases:
            with self.assertRaises(ValidationError):
                self.coordinator.record_sale(lines)

        with self.assertRaises(NotFound):
            self.coordinator.record_sale(
                [SaleLineRequest(product_id="00000000-0000-0000-0000-000000000000", quantity=1)]
            )

        self._assert_untouched()

    def test_malformed_product_id_is_not_found(self):
        for product_id in ("not-a-uuid", None, 42):
            with self.assertRaises(NotFound):
                self.coordinator.record_sale([{"product_id": product_id, "quantity": 1}])

        with self.assertRaises(NotFound):
            self.coordinator.allocator.allocate("not-a-uuid", 1)

        self._assert_untouched()

    def test_prescription_required(self):
        rx = make_product(name="Morphine 10mg", requires_prescription=True)
        receive(self.coordinator, rx, 5)

        with self.assertRaises(ValidationError):
            self.coordinator.record_sale([SaleLineRequest(product_id=rx.id, quantity=1)])

        result = self.coordinator.record_sale(
            [SaleLineRequest(product_id=rx.id, quantity=1)],
            prescription_number="RX-1001",
            prescribing_doctor="Dr. Osei",
        )
        self.assertEqual(result.sale.prescription_number, "RX-1001")

    def test_payment_must_match_total_exactly(self):
        with self.assertRaises(ValidationError):
            self.coordinator.record_sale(
                [SaleLineRequest(product_id=self.product.id, quantity=2)],
                customer_payment=Decimal("4.99"),
            )

        self._assert_untouched()

    def test_timeout_fails_closed(self):
        impatient = TransactionCoordinator.for_database(timeout=1e-9)

        with self.assertRaises(LedgerTimeout) as ctx:
            impatient.record_sale([SaleLineRequest(product_id=self.product.id, quantity=3)])

        self.assertTrue(ctx.exception.retryable)
        self._assert_untouched()

    # -------------------------------------------------
    # NO-OVERSELL + IDEMPOTENCY
    # -------------------------------------------------
    def test_sequential_sales_never_oversell(self):
        product = make_product(name="Cetirizine 10mg")
        batch = receive(self.coordinator, product, 100)

        outcomes = []
        for _ in range(2):
            try:
                self.coordinator.record_sale([SaleLineRequest(product_id=product.id, quantity=60)])
                outcomes.append("ok")
            except InsufficientStock:
                outcomes.append("insufficient")

        self.assertEqual(sorted(outcomes), ["insufficient", "ok"])
        self.assertEqual(Batch.objects.get(id=batch.id).quantity_on_hand, 40)

    def test_replayed_idempotency_key_is_rejected(self):
        lines = [SaleLineRequest(product_id=self.product.id, quantity=2)]
        self.coordinator.record_sale(lines, idempotency_key="pos-1-0001")

        with self.assertRaises(DuplicateOperation):
            self.coordinator.record_sale(lines, idempotency_key="pos-1-0001")

        self.assertEqual(Sale.objects.count(), 1)
        self.assertEqual(self._batch(self.x).quantity_on_hand, 8)

    def test_cancelled_sale_does_not_burn_its_key(self):
        lines = [SaleLineRequest(product_id=self.product.id, quantity=2)]
        with self.coordinator.begin_sale(lines, idempotency_key="pos-1-0002") as pending:
            pending.cancel()

        self.coordinator.record_sale(lines, idempotency_key="pos-1-0002")
        self.assertEqual(Sale.objects.count(), 1)

# inventory/tests/test_movement_log.py

from __future__ import annotations

from django.core.exceptions import ValidationError as DjangoValidationError
from django.test import TestCase
from django.utils import timezone

from inventory.models import Batch, Movement, MovementType
from inventory.services.coordinator import TransactionCoordinator
from inventory.services.exceptions import ValidationError
from inventory.services.sale_session import SaleLineRequest
from inventory.tests.helpers import make_product, receive


class MovementLogTests(TestCase):
    """
    GUARANTEES:
    - Movements are append-only at model and queryset level
    - Summing a batch's movements gives its on-hand quantity
    """

    def setUp(self):
        self.coordinator = TransactionCoordinator.for_database()
        self.log = self.coordinator.log
        self.product = make_product()
        self.batch = receive(self.coordinator, self.product, 20)

    def test_movements_cannot_be_changed(self):
        movement = Movement.objects.get(batch_id=self.batch.id)

        movement.reason = "rewritten"
        with self.assertRaises(DjangoValidationError):
            movement.save()
        with self.assertRaises(DjangoValidationError):
            movement.delete()
        with self.assertRaises(DjangoValidationError):
            Movement.objects.filter(id=movement.id).update(reason="rewritten")
        with self.assertRaises(DjangoValidationError):
            Movement.objects.all().delete()

    def test_history_is_ordered_and_reconciles(self):
        self.coordinator.record_sale([SaleLineRequest(product_id=self.product.id, quantity=6)])
        self.coordinator.adjust(self.batch.id, 2, "Cycle count")

        history = self.log.history_for_batch(self.batch.id)
        self.assertEqual(
            [(m.movement_type, m.quantity_before, m.quantity_after) for m in history],
            [
                (MovementType.PURCHASE, 0, 20),
                (MovementType.SALE, 20, 14),
                (MovementType.ADJUSTMENT, 14, 16),
            ],
        )

        result = self.log.reconcile(Batch.objects.get(id=self.batch.id))
        self.assertTrue(result.consistent)
        self.assertEqual(result.drift, 0)
        self.assertEqual(result.movement_count, 3)

    def test_reconcile_all_reports_drift(self):
        # simulate an out-of-band write that skipped the ledger
        Batch.objects.filter(id=self.batch.id).update(quantity_on_hand=25)

        results = self.log.reconcile_all(product_id=self.product.id)

        self.assertEqual(len(results), 1)
        self.assertFalse(results[0].consistent)
        self.assertEqual(results[0].drift, 5)

    def test_summary_by_type(self):
        self.coordinator.record_sale([SaleLineRequest(product_id=self.product.id, quantity=3)])
        self.coordinator.record_sale([SaleLineRequest(product_id=self.product.id, quantity=5)])

        today = timezone.localdate()
        rows = {row.movement_type: row for row in self.log.summarize(date_from=today, date_to=today)}

        self.assertEqual(rows[MovementType.SALE].count, 2)
        self.assertEqual(rows[MovementType.SALE].total_quantity, 8)
        self.assertEqual(rows[MovementType.SALE].average_quantity, 4.0)
        self.assertEqual(rows[MovementType.PURCHASE].total_quantity, 20)

    def test_search_filters_and_rejects_unknown_sort(self):
        self.coordinator.adjust(self.batch.id, -1, "Count")

        adjustments = self.log.search({"movement_type": [MovementType.ADJUSTMENT]})
        self.assertEqual(adjustments.count(), 1)

        with self.assertRaises(ValidationError) as ctx:
            self.log.search({"ordering": "reason"})
        self.assertIn("ordering", ctx.exception.context["errors"])

    def test_append_rejects_wrong_direction(self):
        mutation = self.coordinator.store.mutate(self.batch.id, 0, 0)

        with self.assertRaises(ValidationError):
            self.log.append(
                batch=self.batch,
                movement_type=MovementType.SALE,
                mutation=mutation,
                operation=Movement.objects.first().operation,
            )

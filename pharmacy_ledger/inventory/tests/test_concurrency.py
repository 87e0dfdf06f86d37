# inventory/tests/test_concurrency.py

"""
Real concurrent sales against one batch.

PostgreSQL serializes them on row locks; SQLite on the database write
lock taken at BEGIN IMMEDIATE. Either way the loser must see the winner's
sale and fail with insufficient_stock.
"""

from __future__ import annotations

import threading

from django.db import connections
from django.test import TransactionTestCase

from inventory.models import Batch, Movement, MovementType
from inventory.services.coordinator import TransactionCoordinator
from inventory.services.exceptions import LedgerError
from inventory.services.sale_session import SaleLineRequest
from inventory.tests.helpers import make_product, receive


class ConcurrentSaleTests(TransactionTestCase):
    """
    GUARANTEES:
    - Two sales racing for the same stock never oversell
    - Exactly one of two competing 60-unit sales of a 100-unit batch wins;
      the other fails with insufficient_stock, never a lock conflict
    """

    def setUp(self):
        self.coordinator = TransactionCoordinator.for_database()
        self.product = make_product()
        self.batch = receive(self.coordinator, self.product, 100)

    def _race(self, quantities):
        barrier = threading.Barrier(len(quantities))
        outcomes = []
        lock = threading.Lock()

        def sell(quantity):
            try:
                barrier.wait()
                coordinator = TransactionCoordinator.for_database()
                coordinator.record_sale([SaleLineRequest(product_id=self.product.id, quantity=quantity)])
                outcome = "ok"
            except LedgerError as exc:
                outcome = exc.code
            finally:
                connections.close_all()
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=sell, args=(q,)) for q in quantities]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        return outcomes

    def test_two_sales_of_sixty_from_one_hundred(self):
        outcomes = self._race([60, 60])

        self.assertEqual(sorted(outcomes), ["insufficient_stock", "ok"])

        batch = Batch.objects.get(id=self.batch.id)
        self.assertEqual(batch.quantity_on_hand, 40)
        self.assertEqual(batch.quantity_reserved, 0)
        self.assertEqual(Movement.objects.filter(movement_type=MovementType.SALE).count(), 1)

    def test_many_small_sales_drain_exactly(self):
        outcomes = self._race([7] * 16)

        # 14 x 7 = 98 fits in 100; the last two cannot
        self.assertEqual(len(outcomes), 16)
        self.assertEqual(outcomes.count("ok"), 14)
        self.assertEqual(outcomes.count("insufficient_stock"), 2)

        batch = Batch.objects.get(id=self.batch.id)
        self.assertEqual(batch.quantity_on_hand, 2)
        self.assertEqual(batch.quantity_reserved, 0)

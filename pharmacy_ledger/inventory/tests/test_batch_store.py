# inventory/tests/test_batch_store.py

from __future__ import annotations

from datetime import timedelta

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.test import TestCase
from django.utils import timezone

from inventory.models import Batch, BatchStatus
from inventory.services.batch_store import BatchStore
from inventory.services.coordinator import TransactionCoordinator
from inventory.services.exceptions import (
    ConflictError,
    InvariantViolation,
    NotFound,
    ValidationError,
)
from inventory.tests.helpers import make_product, receive


class BatchStoreTests(TestCase):
    """
    Atomic quantity primitive.

    GUARANTEES:
    - 0 <= reserved <= on_hand after every mutation
    - Rejected mutations leave the row untouched
    - Stale versions are conflicts, never silent overwrites
    """

    def setUp(self):
        self.store = BatchStore()
        self.product = make_product()
        self.batch = receive(TransactionCoordinator.for_database(), self.product, 10)

    def _fresh(self):
        return Batch.objects.get(id=self.batch.id)

    def test_mutate_returns_before_and_after(self):
        with transaction.atomic():
            mutation = self.store.mutate(self.batch.id, -3, 0)

        self.assertEqual(mutation.before.on_hand, 10)
        self.assertEqual(mutation.after.on_hand, 7)
        self.assertEqual(mutation.on_hand_delta, -3)
        self.assertEqual(mutation.after.version, mutation.before.version + 1)
        self.assertEqual(self._fresh().quantity_on_hand, 7)

    def test_on_hand_cannot_go_negative(self):
        with self.assertRaises(InvariantViolation):
            self.store.mutate(self.batch.id, -11, 0)

        self.assertEqual(self._fresh().quantity_on_hand, 10)

    def test_reserved_cannot_exceed_on_hand(self):
        with self.assertRaises(InvariantViolation):
            self.store.mutate(self.batch.id, 0, 11)

        self.store.mutate(self.batch.id, 0, 10)
        with self.assertRaises(InvariantViolation):
            # dropping on_hand below the reservation is also rejected
            self.store.mutate(self.batch.id, -1, 0)

        batch = self._fresh()
        self.assertEqual((batch.quantity_on_hand, batch.quantity_reserved), (10, 10))

    def test_reserved_cannot_go_negative(self):
        with self.assertRaises(InvariantViolation):
            self.store.mutate(self.batch.id, 0, -1)

    def test_stale_version_is_a_conflict(self):
        version = self._fresh().version
        self.store.mutate(self.batch.id, 1, 0, expected_version=version)

        with self.assertRaises(ConflictError) as ctx:
            self.store.mutate(self.batch.id, 1, 0, expected_version=version)

        self.assertTrue(ctx.exception.retryable)
        self.assertEqual(self._fresh().quantity_on_hand, 11)

    def test_deltas_must_be_integers(self):
        with self.assertRaises(ValidationError):
            self.store.mutate(self.batch.id, 1.5, 0)
        with self.assertRaises(ValidationError):
            self.store.mutate(self.batch.id, True, 0)

    def test_missing_batch(self):
        with self.assertRaises(NotFound):
            self.store.get_batch("00000000-0000-0000-0000-000000000000")
        with self.assertRaises(NotFound):
            self.store.mutate("garbage", 1, 0)

    def test_list_active_batches_orders_by_expiry(self):
        coordinator = TransactionCoordinator.for_database()
        later = receive(coordinator, self.product, 5, expires_in_days=700)
        sooner = receive(coordinator, self.product, 5, expires_in_days=10)

        ids = [b.id for b in self.store.list_active_batches(self.product.id)]

        self.assertEqual(ids, [sooner.id, self.batch.id, later.id])

        # the 10-day batch is past its expiry 30 days from now
        in_a_month = timezone.localdate() + timedelta(days=30)
        sellable = [b.id for b in self.store.list_active_batches(self.product.id, sellable_on=in_a_month)]
        self.assertEqual(sellable, [self.batch.id, later.id])

    def test_read_for_mutation_reports_missing_ids(self):
        with transaction.atomic():
            with self.assertRaises(NotFound):
                self.store.read_for_mutation([self.batch.id, "00000000-0000-0000-0000-000000000001"])

    def test_batches_are_never_deleted(self):
        with self.assertRaises(DjangoValidationError):
            self._fresh().delete()
        with self.assertRaises(DjangoValidationError):
            Batch.objects.filter(id=self.batch.id).delete()

        self.assertTrue(Batch.objects.filter(id=self.batch.id).exists())

    # -------------------------------------------------
    # STOCK LEVEL
    # -------------------------------------------------
    def test_stock_level_sums_active_batches(self):
        coordinator = TransactionCoordinator.for_database()
        receive(coordinator, self.product, 5, expires_in_days=30)
        recalled = receive(coordinator, self.product, 4, expires_in_days=400)
        coordinator.change_status(recalled.id, BatchStatus.RECALLED, "Supplier notice")

        with transaction.atomic():
            self.store.mutate(self.batch.id, 0, 2)

        level = self.store.stock_level(self.product.id)
        self.assertEqual(
            (level.on_hand, level.reserved, level.available, level.active_batches),
            (15, 2, 13, 2),
        )

        # the 30-day batch no longer counts as available once it has expired
        later = timezone.localdate() + timedelta(days=60)
        self.assertEqual(self.store.stock_level(self.product.id, today=later).available, 8)

    def test_stock_level_of_product_without_batches_is_zero(self):
        empty = make_product(name="Ibuprofen 200mg")

        level = self.store.stock_level(empty.id)

        self.assertEqual(level.product_id, empty.id)
        self.assertEqual((level.on_hand, level.available, level.active_batches), (0, 0, 0))
        self.assertNotIn(empty.id, self.store.stock_levels())

    def test_stock_level_of_unknown_product(self):
        for product_id in ("00000000-0000-0000-0000-000000000000", "not-a-uuid"):
            with self.assertRaises(NotFound):
                self.store.stock_level(product_id)

        with self.assertRaises(NotFound):
            self.store.list_active_batches("not-a-uuid")

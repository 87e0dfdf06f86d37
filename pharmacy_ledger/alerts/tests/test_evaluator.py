# alerts/tests/test_evaluator.py

from __future__ import annotations

import uuid
from datetime import date, timedelta
from types import SimpleNamespace

from django.core.exceptions import ValidationError as DjangoValidationError
from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from alerts.models import AlertKind, AlertTier, StockAlert
from alerts.services.evaluator import STOCK_NORMAL, AlertConfig, AlertEvaluator
from inventory.models import Batch
from inventory.services.coordinator import TransactionCoordinator
from inventory.services.exceptions import NotFound, StateError, ValidationError
from inventory.tests.helpers import make_product, make_user, receive


def _clock(days=0, hours=0):
    moment = timezone.now() + timedelta(days=days, hours=hours)
    return lambda: moment


class ClassificationTests(SimpleTestCase):
    def setUp(self):
        self.evaluator = AlertEvaluator(config=AlertConfig())
        self.today = date(2026, 3, 1)

    def test_expiry_tiers(self):
        expected = {
            -1: AlertTier.EXPIRED,
            0: AlertTier.CRITICAL,
            30: AlertTier.CRITICAL,
            31: AlertTier.WARNING,
            60: AlertTier.WARNING,
            61: AlertTier.WATCH,
            90: AlertTier.WATCH,
            91: None,
        }
        for days, tier in expected.items():
            with self.subTest(days=days):
                self.assertEqual(
                    self.evaluator.classify_expiry(self.today + timedelta(days=days), self.today),
                    tier,
                )

    def test_stock_tiers(self):
        product = SimpleNamespace(minimum_stock_level=10, reorder_point=20)
        expected = {
            0: AlertTier.OUT_OF_STOCK,
            -3: AlertTier.OUT_OF_STOCK,
            5: AlertTier.CRITICAL,
            6: AlertTier.LOW,
            10: AlertTier.LOW,
            11: AlertTier.REORDER,
            20: AlertTier.REORDER,
            21: STOCK_NORMAL,
        }
        for available, tier in expected.items():
            with self.subTest(available=available):
                self.assertEqual(self.evaluator.classify_stock(available, product), tier)


class SweepTests(TestCase):
    """
    GUARANTEES:
    - One alert per (kind, product, batch, tier) per cool-down window
    - force=True raises again inside the window
    - A sweep never writes to batches
    """

    def setUp(self):
        coordinator = TransactionCoordinator.for_database()
        self.product = make_product()
        self.soon = receive(coordinator, self.product, 5, expires_in_days=20, batch_number="SOON")
        self.later = receive(coordinator, self.product, 8, expires_in_days=75, batch_number="LATER")

        # well stocked, far from expiry: no alerts
        receive(coordinator, make_product(name="Saline 0.9%"), 100, expires_in_days=400)

    def _keys(self, alerts):
        return sorted((a.kind, a.tier, a.batch_id is not None) for a in alerts)

    def test_first_sweep_raises_expiry_and_stock_alerts(self):
        result = AlertEvaluator().sweep()

        self.assertEqual(result.created, 3)
        self.assertEqual(result.products_checked, 2)
        self.assertEqual(
            self._keys(result.alerts),
            [
                (AlertKind.EXPIRY, AlertTier.CRITICAL, True),
                (AlertKind.EXPIRY, AlertTier.WATCH, True),
                (AlertKind.STOCK, AlertTier.REORDER, False),
            ],
        )

        stock_alert = StockAlert.objects.get(kind=AlertKind.STOCK)
        self.assertEqual(stock_alert.product_id, self.product.id)
        self.assertEqual(stock_alert.quantity, 13)

    def test_cooldown_suppresses_repeats(self):
        evaluator = AlertEvaluator()
        evaluator.sweep()

        again = evaluator.sweep()
        self.assertEqual(again.created, 0)
        self.assertEqual(again.suppressed, 3)

        forced = evaluator.sweep(force=True)
        self.assertEqual(forced.created, 3)

        next_day = AlertEvaluator(clock=_clock(hours=25)).sweep()
        self.assertEqual(next_day.created, 3)
        self.assertEqual(StockAlert.objects.count(), 9)

    def test_expired_batches_leave_available_stock(self):
        result = AlertEvaluator(clock=_clock(days=30)).sweep()

        by_batch = {a.batch_id: a.tier for a in result.alerts if a.kind == AlertKind.EXPIRY}
        self.assertEqual(by_batch[self.soon.id], AlertTier.EXPIRED)
        self.assertEqual(by_batch[self.later.id], AlertTier.WARNING)

        stock = [a for a in result.alerts if a.kind == AlertKind.STOCK]
        self.assertEqual([(a.tier, a.quantity) for a in stock], [(AlertTier.LOW, 8)])

    def test_sweep_does_not_touch_batches(self):
        before = list(Batch.objects.order_by("id").values_list("id", "version", "quantity_on_hand", "updated_at"))

        AlertEvaluator().sweep()
        AlertEvaluator(clock=_clock(days=30)).sweep(force=True)

        after = list(Batch.objects.order_by("id").values_list("id", "version", "quantity_on_hand", "updated_at"))
        self.assertEqual(before, after)

    def test_recalled_batches_are_ignored(self):
        coordinator = TransactionCoordinator.for_database()
        coordinator.change_status(self.soon.id, "recalled", "Supplier recall")

        result = AlertEvaluator().sweep()

        self.assertNotIn(self.soon.id, {a.batch_id for a in result.alerts})
        # recalled stock is not sellable: 8 left -> low
        stock = StockAlert.objects.get(kind=AlertKind.STOCK)
        self.assertEqual(stock.tier, AlertTier.LOW)


class FeedTests(TestCase):
    def setUp(self):
        self.manager = make_user()
        self.product = make_product()
        receive(TransactionCoordinator.for_database(), self.product, 3, expires_in_days=10)
        self.evaluator = AlertEvaluator()
        self.evaluator.sweep()
        self.alerts = list(StockAlert.objects.order_by("kind"))

    def test_acknowledge_once(self):
        alert = self.alerts[0]

        acked = self.evaluator.acknowledge(alert.id, actor=self.manager, action_taken="Moved to front shelf")
        self.assertTrue(acked.is_acknowledged)
        self.assertEqual(acked.acknowledged_by, self.manager)
        self.assertIsNotNone(acked.acknowledged_at)

        with self.assertRaises(StateError):
            self.evaluator.acknowledge(alert.id, actor=self.manager)

        for missing in (uuid.uuid4(), "not-a-uuid"):
            with self.assertRaises(NotFound):
                self.evaluator.acknowledge(missing)

    def test_alert_rows_are_immutable_except_acknowledgement(self):
        alert = self.alerts[0]
        alert.message = "edited"
        with self.assertRaises(DjangoValidationError):
            alert.save()

    def test_bulk_acknowledge_skips_already_acknowledged(self):
        self.evaluator.acknowledge(self.alerts[0].id)

        updated = self.evaluator.bulk_acknowledge([a.id for a in self.alerts], actor=self.manager)
        self.assertEqual(updated, len(self.alerts) - 1)

        with self.assertRaises(ValidationError):
            self.evaluator.bulk_acknowledge([])

    def test_feed_filters_and_stats(self):
        self.evaluator.acknowledge(self.alerts[0].id)

        open_alerts = self.evaluator.feed({"acknowledged": "false"})
        self.assertEqual(open_alerts.count(), len(self.alerts) - 1)

        with self.assertRaises(ValidationError):
            self.evaluator.feed({"ordering": "message"})

        stats = self.evaluator.stats()
        self.assertEqual(stats["total"], len(self.alerts))
        self.assertEqual(stats["acknowledged"], 1)
        self.assertEqual(stats["unacknowledged"], len(self.alerts) - 1)
        self.assertEqual(sum(stats["by_tier"].values()), stats["unacknowledged"])

    def test_cleanup_removes_old_acknowledged_only(self):
        self.evaluator.acknowledge(self.alerts[0].id)

        self.assertEqual(self.evaluator.cleanup_acknowledged(), 0)

        later = AlertEvaluator(clock=_clock(days=91))
        self.assertEqual(later.cleanup_acknowledged(), 1)
        self.assertEqual(StockAlert.objects.count(), len(self.alerts) - 1)

        with self.assertRaises(ValidationError):
            later.cleanup_acknowledged(0)

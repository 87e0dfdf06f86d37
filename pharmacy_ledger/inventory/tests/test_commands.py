# inventory/tests/test_commands.py

from __future__ import annotations

from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.utils import timezone

from alerts.models import StockAlert
from inventory.models import Batch, BatchStatus
from inventory.services.coordinator import TransactionCoordinator
from inventory.tests.helpers import make_product, receive


class LedgerCommandTests(TestCase):
    def setUp(self):
        self.coordinator = TransactionCoordinator.for_database()
        self.product = make_product()
        self.batch = receive(self.coordinator, self.product, 12, expires_in_days=5)

    def _call(self, *args):
        out = StringIO()
        call_command(*args, stdout=out)
        return out.getvalue()

    def test_reconcile_ledger(self):
        self.assertIn("Ledger is consistent.", self._call("reconcile_ledger"))

        Batch.objects.filter(id=self.batch.id).update(quantity_on_hand=11)

        self.assertIn("drift=-1", self._call("reconcile_ledger"))
        with self.assertRaises(CommandError):
            self._call("reconcile_ledger", "--fail-on-drift")

    def test_expire_batches(self):
        later = (timezone.localdate() + timedelta(days=6)).isoformat()

        output = self._call("expire_batches", f"--today={later}")

        self.assertIn("written off: 12", output)
        self.assertEqual(Batch.objects.get(id=self.batch.id).status, BatchStatus.EXPIRED)

        with self.assertRaises(CommandError):
            self._call("expire_batches", "--today=tomorrow")

    def test_evaluate_alerts(self):
        output = self._call("evaluate_alerts")

        self.assertIn("Alerts raised:    2", output)
        self.assertEqual(StockAlert.objects.count(), 2)

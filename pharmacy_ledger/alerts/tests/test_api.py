# alerts/tests/test_api.py

from __future__ import annotations

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from alerts.models import StockAlert
from inventory.services.coordinator import TransactionCoordinator
from inventory.tests.helpers import make_product, make_user, receive
from permissions.roles import ROLE_CASHIER, ROLE_PHARMACIST, ROLE_STOCK_CLERK


class AlertApiTests(TestCase):
    """
    Alert feed endpoints.

    GUARANTEES:
    - Sweeps are limited to managers/admins
    - Acknowledging needs the acknowledge capability and happens once
    - Cashiers do not see the feed
    """

    def setUp(self):
        self.client = APIClient()
        self.manager = make_user()
        self.pharmacist = make_user("pharmacist_1", role=ROLE_PHARMACIST)
        self.clerk = make_user("clerk_1", role=ROLE_STOCK_CLERK)
        self.cashier = make_user("cashier_1", role=ROLE_CASHIER)

        receive(TransactionCoordinator.for_database(), make_product(), 4, expires_in_days=15)

    def _sweep(self, **body):
        self.client.force_authenticate(self.manager)
        return self.client.post(reverse("alerts-sweep"), body, format="json")

    def test_manager_sweep_then_feed(self):
        response = self._sweep()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["created"], 2)
        self.assertEqual(self._sweep().data["suppressed"], 2)
        self.assertEqual(self._sweep(force=True).data["created"], 2)

        self.client.force_authenticate(self.clerk)
        response = self.client.get(reverse("alerts-list"), {"kind": "expiry"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 2)

    def test_sweep_and_feed_permissions(self):
        self.client.force_authenticate(self.pharmacist)
        self.assertEqual(
            self.client.post(reverse("alerts-sweep"), {}, format="json").status_code,
            status.HTTP_403_FORBIDDEN,
        )

        self.client.force_authenticate(self.cashier)
        self.assertEqual(self.client.get(reverse("alerts-list")).status_code, status.HTTP_403_FORBIDDEN)

    def test_acknowledge(self):
        self._sweep()
        alert = StockAlert.objects.order_by("kind").first()
        url = reverse("alerts-acknowledge", args=[alert.id])

        self.client.force_authenticate(self.clerk)
        self.assertEqual(self.client.post(url, {}, format="json").status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.pharmacist)
        response = self.client.post(url, {"action_taken": "Discounted for quick sale"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["is_acknowledged"])
        self.assertEqual(response.data["acknowledged_by_username"], "pharmacist_1")

        response = self.client.post(url, {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"]["code"], "invalid_state")

    def test_bulk_acknowledge_and_stats(self):
        self._sweep()
        ids = [str(pk) for pk in StockAlert.objects.values_list("id", flat=True)]

        self.client.force_authenticate(self.pharmacist)
        response = self.client.post(reverse("alerts-bulk-acknowledge"), {"alert_ids": ids}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["acknowledged"], len(ids))

        response = self.client.post(reverse("alerts-bulk-acknowledge"), {"alert_ids": []}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        stats = self.client.get(reverse("alerts-stats")).data
        self.assertEqual(stats["acknowledged"], len(ids))
        self.assertEqual(stats["unacknowledged"], 0)

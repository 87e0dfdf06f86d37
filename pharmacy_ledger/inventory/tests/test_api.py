# inventory/tests/test_api.py

from __future__ import annotations

from datetime import timedelta

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from inventory.models import Batch, BatchStatus, Movement
from inventory.services.coordinator import TransactionCoordinator
from inventory.tests.helpers import make_product, make_user, receive
from permissions.roles import ROLE_AUDITOR, ROLE_CASHIER, ROLE_STOCK_CLERK


class BatchApiTests(TestCase):
    """
    Batch ledger endpoints.

    GUARANTEES:
    - Stock only changes through the ledger actions
    - Each action is gated by its own capability
    - Ledger errors use the {"error": {...}} envelope
    """

    def setUp(self):
        self.client = APIClient()
        self.manager = make_user()
        self.clerk = make_user("clerk_1", role=ROLE_STOCK_CLERK)
        self.cashier = make_user("cashier_1", role=ROLE_CASHIER)
        self.auditor = make_user("auditor_1", role=ROLE_AUDITOR)

        self.product = make_product()
        self.batch = receive(TransactionCoordinator.for_database(), self.product, 10, batch_number="LOT-A")

    def _receive_body(self, **extra):
        body = {
            "product_id": str(self.product.id),
            "quantity": 24,
            "unit_cost": "3.10",
            "expiration_date": (timezone.localdate() + timedelta(days=500)).isoformat(),
            "batch_number": "LOT-B",
        }
        body.update(extra)
        return body

    # -------------------------------------------------
    # RECEIVE
    # -------------------------------------------------
    def test_clerk_receives_new_batch_then_tops_up(self):
        self.client.force_authenticate(self.clerk)
        url = reverse("batches-receive")

        created = self.client.post(url, self._receive_body(), format="json")
        self.assertEqual(created.status_code, status.HTTP_201_CREATED)
        self.assertTrue(created.data["created"])
        self.assertEqual(created.data["batch"]["quantity_on_hand"], 24)
        self.assertEqual(created.data["movement"]["movement_type"], "purchase")

        topped = self.client.post(url, self._receive_body(quantity=6), format="json")
        self.assertEqual(topped.status_code, status.HTTP_200_OK)
        self.assertFalse(topped.data["created"])
        self.assertEqual(topped.data["batch"]["quantity_on_hand"], 30)

    def test_overlong_location_is_rejected(self):
        self.client.force_authenticate(self.clerk)

        response = self.client.post(
            reverse("batches-receive"), self._receive_body(location="Shelf " + "X" * 70), format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("location", response.data)
        self.assertFalse(Batch.objects.filter(batch_number="LOT-B").exists())

    def test_cashier_cannot_receive(self):
        self.client.force_authenticate(self.cashier)
        response = self.client.post(reverse("batches-receive"), self._receive_body(), format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    # -------------------------------------------------
    # ADJUST / TRANSFER / STATUS
    # -------------------------------------------------
    def test_adjust_beyond_stock_is_conflict(self):
        self.client.force_authenticate(self.manager)
        url = reverse("batches-adjust", args=[self.batch.id])

        response = self.client.post(url, {"quantity_delta": -11, "reason": "Count"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"]["code"], "insufficient_stock")

        response = self.client.post(url, {"quantity_delta": -2, "reason": "Count"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["batch"]["quantity_on_hand"], 8)

    def test_clerk_cannot_adjust(self):
        self.client.force_authenticate(self.clerk)
        url = reverse("batches-adjust", args=[self.batch.id])
        response = self.client.post(url, {"quantity_delta": 1, "reason": "Count"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_transfer(self):
        other = receive(TransactionCoordinator.for_database(), self.product, 1, expires_in_days=200)
        self.client.force_authenticate(self.clerk)

        response = self.client.post(
            reverse("batches-transfer"),
            {"from_batch_id": str(self.batch.id), "to_batch_id": str(other.id), "quantity": 4, "reason": "Shelf"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["source"]["quantity_on_hand"], 6)
        self.assertEqual(response.data["destination"]["quantity_on_hand"], 5)
        self.assertEqual(len(response.data["movements"]), 2)

    def test_recall_and_illegal_transition(self):
        self.client.force_authenticate(self.manager)
        url = reverse("batches-change-status", args=[self.batch.id])

        response = self.client.post(url, {"status": BatchStatus.DAMAGED, "reason": "Water damage"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["previous_status"], BatchStatus.ACTIVE)
        self.assertEqual(response.data["movement"]["quantity_change"], -10)

        response = self.client.post(url, {"status": BatchStatus.ACTIVE, "reason": "Undo"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"]["code"], "invalid_state")

        self.assertEqual(Batch.objects.get(id=self.batch.id).status, BatchStatus.DAMAGED)

    # -------------------------------------------------
    # AUDIT
    # -------------------------------------------------
    def test_auditor_reads_history_and_reconciles(self):
        self.client.force_authenticate(self.auditor)

        history = self.client.get(reverse("batches-movements", args=[self.batch.id]))
        self.assertEqual(history.status_code, status.HTTP_200_OK)
        self.assertEqual(len(history.data), 1)

        reconcile = self.client.get(reverse("batches-reconcile", args=[self.batch.id]))
        self.assertEqual(reconcile.status_code, status.HTTP_200_OK)
        self.assertTrue(reconcile.data["consistent"])
        self.assertEqual(reconcile.data["drift"], 0)

        summary = self.client.get(reverse("movements-summary"))
        self.assertEqual(summary.status_code, status.HTTP_200_OK)
        self.assertEqual(summary.data[0]["movement_type"], "purchase")

    def test_product_stock_level(self):
        self.client.force_authenticate(self.auditor)

        level = self.client.get(reverse("products-stock", args=[self.product.id]))
        self.assertEqual(level.status_code, status.HTTP_200_OK)
        self.assertEqual(level.data["on_hand"], 10)
        self.assertEqual(level.data["available"], 10)
        self.assertEqual(level.data["active_batches"], 1)

        listing = self.client.get(reverse("products-levels"))
        self.assertEqual(listing.status_code, status.HTTP_200_OK)
        self.assertEqual([row["product_id"] for row in listing.data], [str(self.product.id)])

        missing = self.client.get(reverse("products-stock", args=["00000000-0000-0000-0000-000000000000"]))
        self.assertEqual(missing.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(missing.data["error"]["code"], "not_found")

    def test_batches_cannot_be_written_directly(self):
        self.client.force_authenticate(self.manager)
        detail = reverse("batches-detail", args=[self.batch.id])

        self.assertEqual(
            self.client.patch(detail, {"quantity_on_hand": 999}, format="json").status_code,
            status.HTTP_405_METHOD_NOT_ALLOWED,
        )
        self.assertEqual(self.client.delete(detail).status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
        self.assertEqual(Movement.objects.filter(batch_id=self.batch.id).count(), 1)

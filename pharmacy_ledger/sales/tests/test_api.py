# sales/tests/test_api.py

from __future__ import annotations

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from inventory.models import Batch, Movement, MovementType
from inventory.services.coordinator import TransactionCoordinator
from inventory.tests.helpers import make_product, make_user, receive
from permissions.roles import ROLE_AUDITOR, ROLE_CASHIER, ROLE_PHARMACIST
from sales.models import Sale, SaleLine


class CheckoutApiTests(TestCase):
    """
    POS checkout endpoint.

    GUARANTEES:
    - 201 with per-line batch allocations on success
    - Ledger errors come back as {"error": {code, message, retryable}}
    - Nothing is persisted when the sale is rejected
    """

    def setUp(self):
        self.client = APIClient()
        self.cashier = make_user("cashier_1", role=ROLE_CASHIER)
        self.auditor = make_user("auditor_1", role=ROLE_AUDITOR)

        coordinator = TransactionCoordinator.for_database()
        self.product = make_product()
        self.early = receive(coordinator, self.product, 4, expires_in_days=40, batch_number="EARLY")
        self.late = receive(coordinator, self.product, 10, expires_in_days=300, batch_number="LATE")

        self.url = reverse("sales-list")

    def _payload(self, quantity, **extra):
        return {"items": [{"product_id": str(self.product.id), "quantity": quantity}], **extra}

    def test_cashier_checkout(self):
        self.client.force_authenticate(self.cashier)

        response = self.client.post(self.url, self._payload(6, customer_payment="60.00"), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["total"], "60.00")
        self.assertEqual(response.data["cashier_username"], "cashier_1")

        allocations = response.data["lines"][0]["allocations"]
        self.assertEqual([(a["batch_number"], a["quantity"]) for a in allocations], [("EARLY", 4), ("LATE", 2)])

        self.assertEqual(Batch.objects.get(id=self.early.id).quantity_on_hand, 0)
        self.assertEqual(Batch.objects.get(id=self.late.id).quantity_on_hand, 8)

    def test_insufficient_stock_error_shape(self):
        self.client.force_authenticate(self.cashier)

        response = self.client.post(self.url, self._payload(15), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        error = response.data["error"]
        self.assertEqual(error["code"], "insufficient_stock")
        self.assertFalse(error["retryable"])
        self.assertEqual(error["details"]["requested"], 15)
        self.assertEqual(error["details"]["available"], 14)

        self.assertFalse(Sale.objects.exists())
        self.assertFalse(Movement.objects.filter(movement_type=MovementType.SALE).exists())

    def test_payload_validation(self):
        self.client.force_authenticate(self.cashier)

        response = self.client.post(self.url, {"items": []}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(self.url, self._payload(0), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_auditor_can_read_but_not_sell(self):
        self.client.force_authenticate(self.cashier)
        self.client.post(self.url, self._payload(1), format="json")

        self.client.force_authenticate(self.auditor)
        response = self.client.post(self.url, self._payload(1), format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 1)

    def test_unauthenticated(self):
        response = self.client.post(self.url, self._payload(1), format="json")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class LineRefundApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.cashier = make_user("cashier_1", role=ROLE_CASHIER)
        self.pharmacist = make_user("pharmacist_1", role=ROLE_PHARMACIST)

        coordinator = TransactionCoordinator.for_database()
        self.product = make_product()
        self.batch = receive(coordinator, self.product, 10)

        result = coordinator.record_sale(
            [{"product_id": self.product.id, "quantity": 4}],
            actor=self.cashier,
        )
        self.line = result.lines[0].line
        self.url = reverse("sale-lines-refund", args=[self.line.id])

    # -------------------------------------------------
    # SUCCESS
    # -------------------------------------------------
    def test_pharmacist_partial_refund(self):
        self.client.force_authenticate(self.pharmacist)

        response = self.client.post(self.url, {"quantity": 1, "reason": "Customer returned item"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["refunded_quantity"], 1)
        self.assertEqual(response.data["refund_amount"], "10.00")
        self.assertEqual(response.data["sale"]["status"], Sale.STATUS_PARTIALLY_REFUNDED)
        self.assertEqual(Batch.objects.get(id=self.batch.id).quantity_on_hand, 7)

    # -------------------------------------------------
    # AUTHORIZATION
    # -------------------------------------------------
    def test_cashier_cannot_refund(self):
        self.client.force_authenticate(self.cashier)

        response = self.client.post(self.url, {"quantity": 1}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Batch.objects.get(id=self.batch.id).quantity_on_hand, 6)

    # -------------------------------------------------
    # REJECTIONS
    # -------------------------------------------------
    def test_over_refund_and_unknown_line(self):
        self.client.force_authenticate(self.pharmacist)

        response = self.client.post(self.url, {"quantity": 5}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["code"], "validation_error")

        missing = reverse("sale-lines-refund", args=[SaleLine.objects.order_by("-id").first().id + 100])
        response = self.client.post(missing, {"quantity": 1}, format="json")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["error"]["code"], "not_found")

    def test_replayed_key_is_conflict(self):
        self.client.force_authenticate(self.pharmacist)
        body = {"quantity": 1, "reason": "Return", "idempotency_key": "refund-abc"}

        first = self.client.post(self.url, body, format="json")
        second = self.client.post(self.url, body, format="json")

        self.assertEqual(first.status_code, status.HTTP_200_OK)
        self.assertEqual(second.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(second.data["error"]["code"], "duplicate_operation")
        self.assertEqual(Batch.objects.get(id=self.batch.id).quantity_on_hand, 7)

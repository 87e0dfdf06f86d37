from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.test import TestCase
from rest_framework.test import APIRequestFactory

from permissions.roles import (
    ALL_CAPABILITIES,
    CAP_ALERTS_SWEEP,
    CAP_AUDIT_VIEW,
    CAP_INVENTORY_ADJUST,
    CAP_INVENTORY_VIEW,
    CAP_POS_REFUND,
    CAP_POS_SELL,
    HasAnyCapability,
    HasCapability,
    capabilities_for,
    user_has_capability,
)

User = get_user_model()


class CapabilityTests(TestCase):
    """
    Capability-based permissions.

    GUARANTEES:
    - Roles map to the expected capabilities
    - Views that forget to declare a capability stay closed
    - Anonymous users are denied everywhere
    """

    def setUp(self):
        self.factory = APIRequestFactory()

        self.cashier = User.objects.create_user(username="cashier", password="pass", role="cashier")
        self.pharmacist = User.objects.create_user(username="pharmacist", password="pass", role="pharmacist")
        self.auditor = User.objects.create_user(username="auditor", password="pass", role="auditor")
        self.root = User.objects.create_superuser(username="root", password="pass")

    # --------------------------------------------------
    # Helpers
    # --------------------------------------------------

    def _request_for(self, user=None):
        request = self.factory.get("/")
        request.user = user or AnonymousUser()
        return request

    def _view(self, capability=None, any_of=None):
        view = type("View", (), {})()
        view.required_capability = capability
        view.required_any_capabilities = any_of
        return view

    # --------------------------------------------------
    # ROLE MAP
    # --------------------------------------------------

    def test_cashier_sells_but_never_refunds(self):
        self.assertTrue(user_has_capability(self.cashier, CAP_POS_SELL))
        self.assertFalse(user_has_capability(self.cashier, CAP_POS_REFUND))
        self.assertFalse(user_has_capability(self.cashier, CAP_INVENTORY_ADJUST))

    def test_pharmacist_refunds_but_does_not_adjust(self):
        self.assertTrue(user_has_capability(self.pharmacist, CAP_POS_REFUND))
        self.assertFalse(user_has_capability(self.pharmacist, CAP_INVENTORY_ADJUST))
        self.assertFalse(user_has_capability(self.pharmacist, CAP_ALERTS_SWEEP))

    def test_auditor_is_read_only(self):
        caps = capabilities_for(self.auditor)
        self.assertIn(CAP_AUDIT_VIEW, caps)
        self.assertNotIn(CAP_POS_SELL, caps)
        self.assertNotIn(CAP_INVENTORY_ADJUST, caps)

    def test_superuser_gets_everything(self):
        self.assertEqual(capabilities_for(self.root), set(ALL_CAPABILITIES))

    # --------------------------------------------------
    # PERMISSION CLASSES
    # --------------------------------------------------

    def test_has_capability(self):
        view = self._view(capability=CAP_POS_REFUND)

        self.assertTrue(HasCapability().has_permission(self._request_for(self.pharmacist), view))
        self.assertFalse(HasCapability().has_permission(self._request_for(self.cashier), view))
        self.assertFalse(HasCapability().has_permission(self._request_for(), view))

    def test_undeclared_capability_denies(self):
        self.assertFalse(HasCapability().has_permission(self._request_for(self.root), self._view()))
        self.assertFalse(HasAnyCapability().has_permission(self._request_for(self.root), self._view()))

    def test_has_any_capability(self):
        view = self._view(any_of={CAP_AUDIT_VIEW, CAP_INVENTORY_VIEW})

        self.assertTrue(HasAnyCapability().has_permission(self._request_for(self.cashier), view))
        self.assertTrue(HasAnyCapability().has_permission(self._request_for(self.auditor), view))
        self.assertFalse(HasAnyCapability().has_permission(self._request_for(), view))

# permissions/roles.py

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import BasePermission


# =========================================================
# ROLE CONSTANTS (STAFF JOB ROLES)
# =========================================================
# They describe what the staff member does at the counter / in the store room.
ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_PHARMACIST = "pharmacist"
ROLE_CASHIER = "cashier"
ROLE_STOCK_CLERK = "stock_clerk"
ROLE_AUDITOR = "auditor"

STAFF_ROLES = {
    ROLE_ADMIN,
    ROLE_MANAGER,
    ROLE_PHARMACIST,
    ROLE_CASHIER,
    ROLE_STOCK_CLERK,
    ROLE_AUDITOR,
}


# =========================================================
# CAPABILITIES (THE REAL PERMISSION LANGUAGE)
# =========================================================
# Views protect capabilities, not raw roles.
CAP_POS_SELL = "pos.sell"
CAP_POS_REFUND = "pos.refund"

CAP_INVENTORY_VIEW = "inventory.view"
CAP_INVENTORY_RECEIVE = "inventory.receive"
CAP_INVENTORY_ADJUST = "inventory.adjust"       # manual corrections, write-offs
CAP_INVENTORY_TRANSFER = "inventory.transfer"
CAP_INVENTORY_STATUS = "inventory.status"       # recall / retire a batch

CAP_ALERTS_VIEW = "alerts.view"
CAP_ALERTS_ACK = "alerts.acknowledge"
CAP_ALERTS_SWEEP = "alerts.sweep"

CAP_AUDIT_VIEW = "audit.view"                   # movement log + reconciliation

ALL_CAPABILITIES = {
    CAP_POS_SELL,
    CAP_POS_REFUND,
    CAP_INVENTORY_VIEW,
    CAP_INVENTORY_RECEIVE,
    CAP_INVENTORY_ADJUST,
    CAP_INVENTORY_TRANSFER,
    CAP_INVENTORY_STATUS,
    CAP_ALERTS_VIEW,
    CAP_ALERTS_ACK,
    CAP_ALERTS_SWEEP,
    CAP_AUDIT_VIEW,
}


# =========================================================
# ROLE → CAPABILITY MAP (DEFAULT)
# =========================================================
ROLE_CAPABILITIES: dict[str, set[str]] = {
    ROLE_ADMIN: {
        *ALL_CAPABILITIES,
    },
    ROLE_MANAGER: {
        CAP_POS_SELL,
        CAP_POS_REFUND,
        CAP_INVENTORY_VIEW,
        CAP_INVENTORY_RECEIVE,
        CAP_INVENTORY_ADJUST,
        CAP_INVENTORY_TRANSFER,
        CAP_INVENTORY_STATUS,
        CAP_ALERTS_VIEW,
        CAP_ALERTS_ACK,
        CAP_ALERTS_SWEEP,
        CAP_AUDIT_VIEW,
    },
    ROLE_PHARMACIST: {
        CAP_POS_SELL,
        CAP_POS_REFUND,
        CAP_INVENTORY_VIEW,
        CAP_INVENTORY_RECEIVE,
        CAP_INVENTORY_STATUS,
        CAP_ALERTS_VIEW,
        CAP_ALERTS_ACK,
    },
    ROLE_CASHIER: {
        CAP_POS_SELL,
        CAP_INVENTORY_VIEW,
        # no refunds without a pharmacist/manager
    },
    ROLE_STOCK_CLERK: {
        CAP_INVENTORY_VIEW,
        CAP_INVENTORY_RECEIVE,
        CAP_INVENTORY_TRANSFER,
        CAP_ALERTS_VIEW,
    },
    ROLE_AUDITOR: {
        CAP_INVENTORY_VIEW,
        CAP_ALERTS_VIEW,
        CAP_AUDIT_VIEW,
    },
}


# =========================================================
# Helpers
# =========================================================
def get_user_role(user) -> Optional[str]:
    return getattr(user, "role", None)


def capabilities_for(user) -> set[str]:
    """
    Capabilities granted by the user's role.
    Superusers get everything regardless of role.
    """
    if getattr(user, "is_superuser", False):
        return set(ALL_CAPABILITIES)
    return set(ROLE_CAPABILITIES.get(get_user_role(user), set()))


def user_has_capability(user, capability: str) -> bool:
    if not user or not user.is_authenticated:
        return False
    return capability in capabilities_for(user)


# =========================================================
# Capability Permissions
# =========================================================
class HasCapability(BasePermission):
    """
    Require a specific capability.

    Usage:
        permission_classes = [IsAuthenticated, HasCapability]
        view.required_capability = CAP_POS_REFUND
    """

    def has_permission(self, request, view):
        required = getattr(view, "required_capability", None)
        if not required:
            # deny-by-default: a view that forgot to declare stays closed
            return False
        return user_has_capability(request.user, required)


class HasAnyCapability(BasePermission):
    """
    Require ANY capability from a set.

    Usage:
        view.required_any_capabilities = {CAP_INVENTORY_VIEW, CAP_AUDIT_VIEW}
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_any_capabilities", None)
        if not required:
            return False

        caps = capabilities_for(user)
        return any(cap in caps for cap in set(required))

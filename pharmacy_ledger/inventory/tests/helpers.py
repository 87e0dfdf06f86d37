# inventory/tests/helpers.py

"""
Shared builders for ledger tests.

Stock always enters through TransactionCoordinator.receive() so every
batch carries its purchase movement and reconciles.
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone

from catalog.models import Product
from permissions.roles import ROLE_MANAGER

User = get_user_model()


def make_user(username: str = "manager", role: str = ROLE_MANAGER, **extra):
    return User.objects.create_user(
        username=username,
        password="password123",
        role=role,
        **extra,
    )


def make_product(name: str = "Paracetamol 500mg", **extra):
    payload = {
        "sku": f"SKU-{uuid.uuid4().hex[:8].upper()}",
        "name": name,
        "unit_price": Decimal("10.00"),
        "tax_rate": Decimal("0.00"),
        "minimum_stock_level": 10,
        "reorder_point": 20,
    }
    payload.update(extra)
    return Product.objects.create(**payload)


def receive(coordinator, product, quantity: int, *, expires_in_days: int = 365, batch_number=None, **extra):
    result = coordinator.receive(
        product.id,
        quantity,
        unit_cost=extra.pop("unit_cost", Decimal("5.00")),
        expiration_date=timezone.localdate() + timedelta(days=expires_in_days),
        batch_number=batch_number or f"B-{uuid.uuid4().hex[:6].upper()}",
        **extra,
    )
    return result.batch

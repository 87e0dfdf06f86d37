"""
======================================================
PATH: inventory/migrations/0001_initial.py
======================================================
MIGRATION: CREATE Batch, StockOperation, Movement

- Batch quantity invariants are enforced as CHECK constraints.
- Movement uses an auto-increment id (append order == id order).
"""

from __future__ import annotations

import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Batch",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("batch_number", models.CharField(max_length=128)),
                ("lot_number", models.CharField(blank=True, default="", max_length=128)),
                (
                    "supplier_ref",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Supplier / purchase order reference",
                        max_length=128,
                    ),
                ),
                (
                    "quantity_received",
                    models.PositiveIntegerField(
                        help_text="Quantity of the first receipt that created this batch"
                    ),
                ),
                ("quantity_on_hand", models.IntegerField(default=0)),
                ("quantity_reserved", models.IntegerField(default=0)),
                ("unit_cost", models.DecimalField(decimal_places=2, max_digits=12)),
                ("expiration_date", models.DateField()),
                ("received_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("expired", "Expired"),
                            ("damaged", "Damaged"),
                            ("recalled", "Recalled"),
                        ],
                        default="active",
                        max_length=16,
                    ),
                ),
                ("location", models.CharField(blank=True, default="", max_length=64)),
                ("version", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="batches",
                        to="catalog.product",
                    ),
                ),
            ],
            options={
                "ordering": ["expiration_date", "received_at"],
                "indexes": [
                    models.Index(
                        fields=["product", "status", "expiration_date"],
                        name="inventory_b_product_6f1c2a_idx",
                    ),
                    models.Index(fields=["expiration_date"], name="inventory_b_expirat_8d0e4b_idx"),
                    models.Index(fields=["status"], name="inventory_b_status_2b9a71_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("quantity_on_hand__gte", 0)),
                        name="batch_on_hand_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("quantity_reserved__gte", 0)),
                        name="batch_reserved_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("quantity_reserved__lte", models.F("quantity_on_hand"))
                        ),
                        name="batch_reserved_within_on_hand",
                    ),
                    models.UniqueConstraint(
                        fields=("product", "batch_number", "lot_number", "expiration_date"),
                        name="batch_identity_unique",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockOperation",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("receipt", "Receipt"),
                            ("sale", "Sale"),
                            ("refund", "Refund"),
                            ("adjustment", "Adjustment"),
                            ("transfer", "Transfer"),
                            ("status_change", "Status Change"),
                        ],
                        max_length=16,
                    ),
                ),
                (
                    "idempotency_key",
                    models.CharField(blank=True, max_length=128, null=True, unique=True),
                ),
                ("reason", models.TextField(blank=True, default="")),
                ("committed_at", models.DateTimeField(auto_now_add=True)),
                (
                    "performed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_operations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["committed_at"],
                "indexes": [
                    models.Index(
                        fields=["kind", "committed_at"],
                        name="inventory_s_kind_4c7d90_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Movement",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                (
                    "movement_type",
                    models.CharField(
                        choices=[
                            ("purchase", "Purchase / Receipt"),
                            ("sale", "Sale"),
                            ("return", "Customer Return"),
                            ("adjustment", "Manual Adjustment"),
                            ("transfer_in", "Transfer In"),
                            ("transfer_out", "Transfer Out"),
                            ("expired", "Expired Write-off"),
                            ("damaged", "Damaged Write-off"),
                        ],
                        max_length=16,
                    ),
                ),
                ("quantity_change", models.IntegerField()),
                ("quantity_before", models.IntegerField()),
                ("quantity_after", models.IntegerField()),
                (
                    "unit_cost_snapshot",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Batch unit cost at movement time (immutable).",
                        max_digits=12,
                    ),
                ),
                ("reason", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "batch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="movements",
                        to="inventory.batch",
                    ),
                ),
                (
                    "counterpart_batch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="counterpart_movements",
                        to="inventory.batch",
                    ),
                ),
                (
                    "operation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="movements",
                        to="inventory.stockoperation",
                    ),
                ),
                (
                    "performed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_movements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="movements",
                        to="catalog.product",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
                "indexes": [
                    models.Index(fields=["created_at"], name="inventory_m_created_5a1e3f_idx"),
                    models.Index(fields=["movement_type"], name="inventory_m_movemen_9e2c44_idx"),
                    models.Index(
                        fields=["product", "created_at"],
                        name="inventory_m_product_7b3d12_idx",
                    ),
                    models.Index(fields=["batch", "id"], name="inventory_m_batch_i_0c8f6e_idx"),
                ],
            },
        ),
    ]

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
        ("inventory", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="StockAlert",
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
                        choices=[("expiry", "Expiry"), ("stock", "Stock level")],
                        max_length=16,
                    ),
                ),
                (
                    "tier",
                    models.CharField(
                        choices=[
                            ("expired", "Expired"),
                            ("critical", "Critical"),
                            ("warning", "Warning"),
                            ("watch", "Watch"),
                            ("out_of_stock", "Out of stock"),
                            ("low", "Low stock"),
                            ("reorder", "Reorder point"),
                        ],
                        max_length=16,
                    ),
                ),
                ("quantity", models.IntegerField(default=0)),
                ("expiration_date", models.DateField(blank=True, null=True)),
                ("days_to_expiry", models.IntegerField(blank=True, null=True)),
                ("message", models.CharField(max_length=255)),
                ("raised_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("is_acknowledged", models.BooleanField(default=False)),
                ("acknowledged_at", models.DateTimeField(blank=True, null=True)),
                ("action_taken", models.TextField(blank=True, default="")),
                (
                    "acknowledged_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="acknowledged_alerts",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "batch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="alerts",
                        to="inventory.batch",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="alerts",
                        to="catalog.product",
                    ),
                ),
            ],
            options={
                "ordering": ["-raised_at"],
                "indexes": [
                    models.Index(
                        fields=["product", "batch", "tier", "raised_at"],
                        name="alerts_stoc_product_4e2b91_idx",
                    ),
                    models.Index(
                        fields=["is_acknowledged", "raised_at"],
                        name="alerts_stoc_is_ackn_7c1d05_idx",
                    ),
                ],
            },
        ),
    ]

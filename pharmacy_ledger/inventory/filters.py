# inventory/filters.py

"""
INVENTORY QUERY FILTERS (ALLOW-LISTED)

Every filter and every sort key callers may use is declared here.

Rules:
- Caller values are only ever bound as ORM parameters
- Ordering is restricted to the enumerated fields; anything else is a
  validation error, never passed through to SQL
"""

from __future__ import annotations

from datetime import timedelta

import django_filters
from django.utils import timezone

from inventory.models import Batch, BatchStatus, Movement, MovementType


class MovementFilter(django_filters.FilterSet):
    product = django_filters.UUIDFilter(field_name="product_id")
    batch = django_filters.UUIDFilter(field_name="batch_id")
    operation = django_filters.UUIDFilter(field_name="operation_id")
    movement_type = django_filters.MultipleChoiceFilter(choices=MovementType.choices)
    performed_by = django_filters.UUIDFilter(field_name="performed_by_id")
    date_from = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    date_to = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")

    ordering = django_filters.OrderingFilter(
        fields=(
            ("id", "id"),
            ("created_at", "created_at"),
            ("movement_type", "movement_type"),
            ("quantity_change", "quantity_change"),
        ),
    )

    class Meta:
        model = Movement
        fields = []


class BatchFilter(django_filters.FilterSet):
    product = django_filters.UUIDFilter(field_name="product_id")
    status = django_filters.MultipleChoiceFilter(choices=BatchStatus.choices)
    batch_number = django_filters.CharFilter(lookup_expr="iexact")
    location = django_filters.CharFilter(lookup_expr="iexact")
    in_stock = django_filters.BooleanFilter(method="filter_in_stock")
    expiring_within_days = django_filters.NumberFilter(
        method="filter_expiring_within",
        min_value=1,
        max_value=365,
    )

    ordering = django_filters.OrderingFilter(
        fields=(
            ("expiration_date", "expiration_date"),
            ("received_at", "received_at"),
            ("batch_number", "batch_number"),
            ("quantity_on_hand", "quantity_on_hand"),
        ),
    )

    class Meta:
        model = Batch
        fields = []

    def filter_in_stock(self, queryset, name, value):
        if value is None:
            return queryset
        if value:
            return queryset.filter(quantity_on_hand__gt=0)
        return queryset.filter(quantity_on_hand=0)

    def filter_expiring_within(self, queryset, name, value):
        if value is None:
            return queryset

        days = int(value)
        today = timezone.localdate()
        return queryset.filter(
            status=BatchStatus.ACTIVE,
            expiration_date__gte=today,
            expiration_date__lte=today + timedelta(days=days),
        )

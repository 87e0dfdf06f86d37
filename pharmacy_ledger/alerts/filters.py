# alerts/filters.py

"""
ALERT FEED FILTERS (ALLOW-LISTED)
"""

from __future__ import annotations

import django_filters

from alerts.models import AlertKind, AlertTier, StockAlert


class AlertFilter(django_filters.FilterSet):
    kind = django_filters.ChoiceFilter(choices=AlertKind.choices)
    tier = django_filters.MultipleChoiceFilter(choices=AlertTier.choices)
    product = django_filters.UUIDFilter(field_name="product_id")
    batch = django_filters.UUIDFilter(field_name="batch_id")
    acknowledged = django_filters.BooleanFilter(field_name="is_acknowledged")
    raised_from = django_filters.DateFilter(field_name="raised_at", lookup_expr="date__gte")
    raised_to = django_filters.DateFilter(field_name="raised_at", lookup_expr="date__lte")

    ordering = django_filters.OrderingFilter(
        fields=(
            ("raised_at", "raised_at"),
            ("days_to_expiry", "days_to_expiry"),
            ("tier", "tier"),
        ),
    )

    class Meta:
        model = StockAlert
        fields = []

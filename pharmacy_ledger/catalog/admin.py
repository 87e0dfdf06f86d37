# catalog/admin.py

from __future__ import annotations

from django.contrib import admin

from catalog.models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "sku",
        "unit_price",
        "minimum_stock_level",
        "reorder_point",
        "requires_prescription",
        "is_active",
    )
    list_filter = ("is_active", "requires_prescription", "controlled_substance")
    search_fields = ("name", "sku", "generic_name")
    readonly_fields = ("created_at", "updated_at")

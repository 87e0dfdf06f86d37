from django.contrib import admin

from inventory.models import Batch, Movement, StockOperation


@admin.register(Batch)
class BatchAdmin(admin.ModelAdmin):
    list_display = (
        "product",
        "batch_number",
        "lot_number",
        "expiration_date",
        "quantity_on_hand",
        "quantity_reserved",
        "status",
    )
    list_filter = ("status", "expiration_date")
    search_fields = ("batch_number", "lot_number", "product__name", "product__sku")

    # quantities move only through the ledger
    readonly_fields = (
        "quantity_received",
        "quantity_on_hand",
        "quantity_reserved",
        "version",
        "status",
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Movement)
class MovementAdmin(admin.ModelAdmin):
    list_display = ("batch", "movement_type", "quantity_change", "quantity_after", "created_at")
    list_filter = ("movement_type",)
    search_fields = ("batch__batch_number", "product__name", "reason")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StockOperation)
class StockOperationAdmin(admin.ModelAdmin):
    list_display = ("id", "kind", "performed_by", "committed_at")
    list_filter = ("kind",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

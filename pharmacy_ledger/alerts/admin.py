from django.contrib import admin

from alerts.models import StockAlert


@admin.register(StockAlert)
class StockAlertAdmin(admin.ModelAdmin):
    list_display = ("tier", "kind", "product", "batch", "days_to_expiry", "is_acknowledged", "raised_at")
    list_filter = ("kind", "tier", "is_acknowledged")
    search_fields = ("message", "product__name", "batch__batch_number")

    # raised by the sweep, acknowledged through the API
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

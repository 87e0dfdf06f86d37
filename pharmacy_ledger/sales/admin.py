# sales/admin.py

from django.contrib import admin

from sales.models import Sale, SaleLine, SaleLineRefund


# ======================================================
# SALE ADMIN (READ-ONLY: sales are written by the ledger)
# ======================================================


class SaleLineInline(admin.TabularInline):
    model = SaleLine
    extra = 0
    can_delete = False
    fields = ("product", "quantity", "unit_price_minor", "discount_percent", "line_total_minor")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = (
        "sale_number",
        "status",
        "total_amount",
        "payment_method",
        "cashier",
        "created_at",
    )
    search_fields = ("sale_number", "customer_name", "prescription_number")
    list_filter = ("status", "payment_method", "created_at")
    inlines = [SaleLineInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ======================================================
# LINE REFUND ADMIN
# ======================================================


@admin.register(SaleLineRefund)
class SaleLineRefundAdmin(admin.ModelAdmin):
    list_display = ("line", "quantity", "amount_minor", "refunded_by", "refunded_at")
    search_fields = ("line__sale__sale_number", "reason")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

from django.contrib import admin

from .models import StockTransfer


@admin.register(StockTransfer)
class StockTransferAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "quantity", "from_branch", "to_branch", "status", "created_at")
    list_filter = ("status", "from_branch", "to_branch")
    search_fields = ("product__code", "reference")
    readonly_fields = ("status", "shipped_at", "received_at", "canceled_at", "shipped_by", "received_by", "canceled_by")

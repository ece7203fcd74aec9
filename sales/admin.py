from django.contrib import admin

from .models import Sale, SaleItem


class SaleItemInline(admin.TabularInline):
    model = SaleItem
    extra = 0
    readonly_fields = ("product", "product_name", "quantity", "unit_price", "discount_amount", "subtotal", "total")
    can_delete = False


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ("id", "number", "user", "total", "payment_method", "status", "created_at")
    list_filter = ("status", "payment_method")
    search_fields = ("number", "client_id", "idempotency_key")
    inlines = [SaleItemInline]

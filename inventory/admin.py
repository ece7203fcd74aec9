"""Admin registrations for inventory app."""

from django.contrib import admin

from .models import StockLedgerEntry, StockReservation, StockReservationItem


@admin.register(StockLedgerEntry)
class StockLedgerEntryAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "branch", "entry_type", "quantity", "reason", "reference", "created_at")
    list_filter = ("entry_type", "branch")
    search_fields = ("product__code", "reference", "idempotency_key")

    # Ledger rows are append-only, even for staff
    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class StockReservationItemInline(admin.TabularInline):
    model = StockReservationItem
    extra = 0
    readonly_fields = ("product", "quantity")
    can_delete = False


@admin.register(StockReservation)
class StockReservationAdmin(admin.ModelAdmin):
    list_display = ("reservation_id", "status", "requested_by", "expires_at", "created_at")
    list_filter = ("status",)
    search_fields = ("reservation_id", "reference")
    inlines = [StockReservationItemInline]


# EOF

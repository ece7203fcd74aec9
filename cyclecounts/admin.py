from django.contrib import admin

from .models import CycleCount, CycleCountItem


class CycleCountItemInline(admin.TabularInline):
    model = CycleCountItem
    extra = 0
    readonly_fields = ("product", "expected_qty", "counted_qty", "variance_qty", "adjustment_entry")


@admin.register(CycleCount)
class CycleCountAdmin(admin.ModelAdmin):
    list_display = ("id", "branch", "count_type", "status", "tolerance_pct", "created_at", "adjustments_applied_at")
    list_filter = ("status", "count_type", "branch")
    inlines = [CycleCountItemInline]

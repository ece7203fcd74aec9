"""Admin registrations for idempotency records (read-only)."""

from django.contrib import admin

from .models import IdempotencyRecord


@admin.register(IdempotencyRecord)
class IdempotencyRecordAdmin(admin.ModelAdmin):
    list_display = ("id", "operation", "key", "actor", "created_at", "expires_at")
    list_filter = ("operation",)
    search_fields = ("key",)
    readonly_fields = ("key", "operation", "actor", "request_hash", "result", "created_at", "expires_at")

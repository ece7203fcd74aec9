"""Admin registration for catalog models."""

from django.contrib import admin

from .models import Branch, Product


@admin.register(Branch)
class BranchAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "is_active")
    search_fields = ("name", "code")
    list_filter = ("is_active",)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "category", "sale_price", "stock", "min_stock", "is_active")
    search_fields = ("code", "name")
    list_filter = ("is_active", "category")
    readonly_fields = ("stock",)

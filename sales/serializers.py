from rest_framework import serializers

from .models import Sale, SaleItem


class SaleItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = SaleItem
        fields = ["product", "product_name", "quantity", "unit_price", "discount_amount", "subtotal", "total"]
        read_only_fields = fields


class SaleSerializer(serializers.ModelSerializer):
    """API representation of a completed sale with its line items."""

    items = SaleItemSerializer(many=True, read_only=True)

    class Meta:
        model = Sale
        fields = [
            "id",
            "number",
            "status",
            "user",
            "client_id",
            "branch",
            "subtotal",
            "discount_amount",
            "total",
            "payment_method",
            "payments",
            "notes",
            "reservation_id",
            "created_at",
            "items",
        ]
        read_only_fields = fields

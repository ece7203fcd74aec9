from decimal import Decimal

from common.choices import PaymentMethod
from rest_framework import serializers

MONEY = {"max_digits": 12, "decimal_places": 2}


class CheckoutItemSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(min_value=Decimal("0.01"), **MONEY)
    discount_amount = serializers.DecimalField(min_value=Decimal("0.00"), default=Decimal("0.00"), **MONEY)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=500)


class PaymentSerializer(serializers.Serializer):
    method = serializers.ChoiceField(
        choices=[PaymentMethod.CASH, PaymentMethod.CARD, PaymentMethod.TRANSFER]
    )
    amount = serializers.DecimalField(min_value=Decimal("0.01"), **MONEY)
    reference = serializers.CharField(required=False, allow_blank=True, max_length=128)
    card_last4 = serializers.RegexField(r"^\d{4}$", required=False)
    auth_code = serializers.CharField(required=False, allow_blank=True, max_length=64)


class CheckoutSerializer(serializers.Serializer):
    """Checkout request as sent by the POS terminal.

    ``total`` is the client-side computed total; when present it must agree with
    the server recomputation.
    """

    items = CheckoutItemSerializer(many=True, allow_empty=False)
    client_id = serializers.CharField(required=False, allow_blank=True, max_length=64)
    branch_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    discount_amount = serializers.DecimalField(min_value=Decimal("0.00"), default=Decimal("0.00"), **MONEY)
    discount_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=Decimal("0"), max_value=Decimal("100"), required=False
    )
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    payments = PaymentSerializer(many=True, required=False)
    total = serializers.DecimalField(required=False, **MONEY)
    reservation_id = serializers.CharField(required=False, allow_blank=True, max_length=128)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    idempotency_key = serializers.CharField(max_length=128)

    def validate(self, attrs):
        pct = attrs.get("discount_percentage")
        if pct and attrs.get("discount_amount"):
            raise serializers.ValidationError("Use either discount_amount or discount_percentage, not both")
        payments = attrs.get("payments") or []
        if attrs["payment_method"] == PaymentMethod.MIXED and len(payments) < 2:
            raise serializers.ValidationError("Mixed payment requires at least two payments")
        return attrs


class StockValidationItemSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class StockValidationSerializer(serializers.Serializer):
    items = StockValidationItemSerializer(many=True, allow_empty=False)
    reservation_id = serializers.CharField(required=False, allow_blank=True, max_length=128)

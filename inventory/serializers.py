"""Serializers for inventory domain.

Read serializers for ledger entries and reservations, plus the request shapes
validated at the API boundary before a call enters the engine.
"""

from common.choices import LedgerEntryType
from django.utils import timezone
from rest_framework import serializers

from .models import StockLedgerEntry, StockReservation, StockReservationItem


class StockLedgerEntrySerializer(serializers.ModelSerializer):
    """Read-only representation of a ledger entry."""

    product_code = serializers.CharField(source="product.code", read_only=True)

    class Meta:
        model = StockLedgerEntry
        fields = [
            "id",
            "product",
            "product_code",
            "branch",
            "entry_type",
            "quantity",
            "reason",
            "reference",
            "idempotency_key",
            "created_by",
            "created_at",
        ]
        read_only_fields = fields


class StockReservationItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = StockReservationItem
        fields = ["product", "quantity"]
        read_only_fields = fields


class StockReservationSerializer(serializers.ModelSerializer):
    """Read-only representation of stock reservations."""

    items = StockReservationItemSerializer(many=True, read_only=True)

    class Meta:
        model = StockReservation
        fields = [
            "reservation_id",
            "status",
            "requested_by",
            "reference",
            "items",
            "expires_at",
            "created_at",
            "consumed_at",
            "released_at",
            "expired_at",
        ]
        read_only_fields = fields

    def to_representation(self, instance):
        data = super().to_representation(instance)
        # Expiry is lazy; an active row past expires_at no longer holds stock
        if instance.status == StockReservation.STATUS_ACTIVE and not instance.is_live(timezone.now()):
            data["status"] = StockReservation.STATUS_EXPIRED
        return data


# Request shapes
class ReservationItemSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class ReserveStockSerializer(serializers.Serializer):
    reservation_id = serializers.CharField(max_length=128)
    items = ReservationItemSerializer(many=True, allow_empty=False)
    expiration_minutes = serializers.IntegerField(min_value=1, max_value=24 * 60, required=False)
    reference = serializers.CharField(max_length=120, required=False, allow_blank=True)


class StockUpdateSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    entry_type = serializers.ChoiceField(
        choices=[LedgerEntryType.IN, LedgerEntryType.OUT, LedgerEntryType.ADJUSTMENT]
    )
    quantity = serializers.IntegerField()
    reason = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    branch_id = serializers.IntegerField(min_value=1, required=False, allow_null=True, default=None)
    reference = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")
    idempotency_key = serializers.CharField(max_length=128)

    def validate(self, attrs):
        qty = attrs["quantity"]
        if attrs["entry_type"] == LedgerEntryType.ADJUSTMENT:
            if qty == 0:
                raise serializers.ValidationError({"quantity": "Adjustment must be non-zero."})
        elif qty <= 0:
            raise serializers.ValidationError({"quantity": "Must be a positive integer."})
        return attrs


class BulkStockItemSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    new_stock = serializers.IntegerField(min_value=0)
    reason = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")


class BulkStockUpdateSerializer(serializers.Serializer):
    idempotency_key = serializers.CharField(max_length=128)
    updates = BulkStockItemSerializer(many=True, allow_empty=False)

    def validate_updates(self, value):
        ids = [u["product_id"] for u in value]
        if len(ids) != len(set(ids)):
            raise serializers.ValidationError("Each product may appear only once.")
        return value


class LedgerHistoryQuerySerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    branch_id = serializers.IntegerField(min_value=1, required=False)
    entry_type = serializers.ChoiceField(choices=LedgerEntryType.choices, required=False)
    created_after = serializers.DateTimeField(required=False)
    created_before = serializers.DateTimeField(required=False)
    page = serializers.IntegerField(min_value=1, required=False, default=1)
    page_size = serializers.IntegerField(min_value=1, max_value=200, required=False)


class ReconcileSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)


# EOF

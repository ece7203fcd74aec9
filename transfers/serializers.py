from rest_framework import serializers

from .models import StockTransfer


class StockTransferSerializer(serializers.ModelSerializer):
    """Read-only representation of a transfer and its transition audit fields."""

    class Meta:
        model = StockTransfer
        fields = [
            "id",
            "product",
            "quantity",
            "from_branch",
            "to_branch",
            "reference",
            "status",
            "requested_by",
            "shipped_by",
            "received_by",
            "canceled_by",
            "created_at",
            "shipped_at",
            "received_at",
            "canceled_at",
        ]
        read_only_fields = fields


class TransferRequestSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)
    from_branch_id = serializers.IntegerField(min_value=1)
    to_branch_id = serializers.IntegerField(min_value=1)
    reference = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")
    idempotency_key = serializers.CharField(max_length=128)

    def validate(self, attrs):
        if attrs["from_branch_id"] == attrs["to_branch_id"]:
            raise serializers.ValidationError("Source and destination branches must differ.")
        return attrs

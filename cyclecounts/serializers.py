from common.choices import CycleCountType
from rest_framework import serializers

from .models import CycleCount, CycleCountItem


class CycleCountSerializer(serializers.ModelSerializer):
    class Meta:
        model = CycleCount
        fields = [
            "id",
            "branch",
            "count_type",
            "tolerance_pct",
            "note",
            "status",
            "created_by",
            "created_at",
            "started_at",
            "completed_at",
            "canceled_at",
            "preloaded_at",
            "adjustments_applied_at",
            "applied_by",
        ]
        read_only_fields = fields


class CycleCountItemSerializer(serializers.ModelSerializer):
    product_code = serializers.CharField(source="product.code", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = CycleCountItem
        fields = [
            "id",
            "product",
            "product_code",
            "product_name",
            "expected_qty",
            "counted_qty",
            "variance_qty",
            "counted_by",
            "reason",
            "adjustment_entry",
        ]
        read_only_fields = fields


class CreateCycleCountSerializer(serializers.Serializer):
    branch_id = serializers.IntegerField(min_value=1, required=False, allow_null=True, default=None)
    count_type = serializers.ChoiceField(choices=CycleCountType.choices, default=CycleCountType.CYCLIC)
    tolerance_pct = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False, allow_null=True, default=None
    )
    note = serializers.CharField(required=False, allow_blank=True, default="")


class PreloadItemsSerializer(serializers.Serializer):
    branch_id = serializers.IntegerField(min_value=1, required=False, allow_null=True, default=None)
    product_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False, default=list)


class SetItemCountSerializer(serializers.Serializer):
    counted_qty = serializers.IntegerField(min_value=0)
    reason = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")


class CycleCountListQuerySerializer(serializers.Serializer):
    branch_id = serializers.IntegerField(min_value=1, required=False)
    status = serializers.CharField(required=False)
    page = serializers.IntegerField(min_value=1, required=False, default=1)
    page_size = serializers.IntegerField(min_value=1, max_value=200, required=False, default=50)

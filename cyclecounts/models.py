"""Physical stock counts reconciled against the ledger."""

from common.choices import CycleCountStatus, CycleCountType
from common.models import TimeStampedModel
from django.db import models


class CycleCount(TimeStampedModel):
    STATUS_PENDING = CycleCountStatus.PENDING
    STATUS_IN_PROGRESS = CycleCountStatus.IN_PROGRESS
    STATUS_COMPLETED = CycleCountStatus.COMPLETED
    STATUS_CANCELED = CycleCountStatus.CANCELED
    STATUS_CHOICES = CycleCountStatus.choices

    # Null branch counts the whole organisation
    branch = models.ForeignKey(
        "catalog.Branch", null=True, blank=True, on_delete=models.PROTECT, related_name="cycle_counts"
    )
    count_type = models.CharField(max_length=16, choices=CycleCountType.choices, default=CycleCountType.CYCLIC)
    tolerance_pct = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    note = models.TextField(blank=True)
    created_by = models.CharField(max_length=64, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)

    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    canceled_at = models.DateTimeField(null=True, blank=True)
    preloaded_at = models.DateTimeField(null=True, blank=True)
    adjustments_applied_at = models.DateTimeField(null=True, blank=True)
    applied_by = models.CharField(max_length=64, blank=True)

    class Meta:
        ordering = ["-created_at", "id"]
        constraints = [
            models.CheckConstraint(
                name="cyclecount_tolerance_range",
                condition=models.Q(tolerance_pct__isnull=True)
                | models.Q(tolerance_pct__gte=0, tolerance_pct__lte=100),
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"CycleCount<{self.id}> {self.count_type} {self.status}"


class CycleCountItem(TimeStampedModel):
    cycle_count = models.ForeignKey(CycleCount, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="cycle_count_items")
    expected_qty = models.IntegerField()
    counted_qty = models.IntegerField(null=True, blank=True)
    counted_by = models.CharField(max_length=64, blank=True)
    reason = models.CharField(max_length=200, blank=True)
    variance_qty = models.IntegerField(null=True, blank=True)
    adjustment_entry = models.OneToOneField(
        "inventory.StockLedgerEntry",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="cycle_count_item",
    )

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["cycle_count", "product"], name="uniq_cyclecount_product"),
            models.CheckConstraint(
                name="cyclecount_item_counted_non_negative",
                condition=models.Q(counted_qty__isnull=True) | models.Q(counted_qty__gte=0),
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"CycleCountItem<{self.cycle_count_id}> product={self.product_id}"

"""Branch-to-branch stock transfers.

Quantity leaves the source ledger on ship and reaches the destination ledger on
receive; while shipped it is in transit and counted at neither branch.
"""

from common.choices import TransferStatus
from common.models import TimeStampedModel
from django.db import models


class StockTransfer(TimeStampedModel):
    STATUS_REQUESTED = TransferStatus.REQUESTED
    STATUS_SHIPPED = TransferStatus.SHIPPED
    STATUS_RECEIVED = TransferStatus.RECEIVED
    STATUS_CANCELED = TransferStatus.CANCELED
    STATUS_CHOICES = TransferStatus.choices

    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="transfers")
    quantity = models.IntegerField()
    from_branch = models.ForeignKey("catalog.Branch", on_delete=models.PROTECT, related_name="outgoing_transfers")
    to_branch = models.ForeignKey("catalog.Branch", on_delete=models.PROTECT, related_name="incoming_transfers")
    reference = models.CharField(max_length=120, blank=True)
    idempotency_key = models.CharField(max_length=128, null=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_REQUESTED, db_index=True)

    requested_by = models.CharField(max_length=64, blank=True)
    shipped_by = models.CharField(max_length=64, blank=True)
    received_by = models.CharField(max_length=64, blank=True)
    canceled_by = models.CharField(max_length=64, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    received_at = models.DateTimeField(null=True, blank=True)
    canceled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "id"]
        constraints = [
            models.CheckConstraint(name="transfer_positive_qty", condition=models.Q(quantity__gt=0)),
            models.CheckConstraint(
                name="transfer_distinct_branches", condition=~models.Q(from_branch=models.F("to_branch"))
            ),
        ]
        indexes = [
            models.Index(fields=["status", "created_at"], name="transfer_status_created_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Transfer<{self.id}> {self.quantity}x{self.product_id} {self.from_branch_id}->{self.to_branch_id}"

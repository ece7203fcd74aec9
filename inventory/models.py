"""Inventory models: the append-only stock ledger and checkout reservations.

The ledger is the source of truth for stock. ``Product.stock`` is only a cache
of the ledger balance and is corrected by reconciliation.
"""

from common.choices import LedgerEntryType, ReservationStatus
from common.exceptions import InvalidState
from common.models import TimeStampedModel
from django.db import models

POSITIVE_TYPES = (
    LedgerEntryType.IN,
    LedgerEntryType.TRANSFER_IN,
    LedgerEntryType.RESERVATION_RELEASE,
)
NEGATIVE_TYPES = (
    LedgerEntryType.OUT,
    LedgerEntryType.TRANSFER_OUT,
)


class LedgerQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise InvalidState("Stock ledger entries are append-only")

    def delete(self):
        raise InvalidState("Stock ledger entries are append-only")


class StockLedgerEntry(models.Model):
    """One applied stock effect. Quantity is signed; the type fixes the sign."""

    TYPE_IN = LedgerEntryType.IN
    TYPE_OUT = LedgerEntryType.OUT
    TYPE_ADJUSTMENT = LedgerEntryType.ADJUSTMENT
    TYPE_TRANSFER_OUT = LedgerEntryType.TRANSFER_OUT
    TYPE_TRANSFER_IN = LedgerEntryType.TRANSFER_IN
    TYPE_RESERVATION_RELEASE = LedgerEntryType.RESERVATION_RELEASE
    TYPE_CHOICES = LedgerEntryType.choices

    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="ledger_entries")
    branch = models.ForeignKey(
        "catalog.Branch", null=True, blank=True, on_delete=models.PROTECT, related_name="ledger_entries"
    )
    entry_type = models.CharField(max_length=24, choices=TYPE_CHOICES)
    quantity = models.IntegerField()
    reason = models.CharField(max_length=200, blank=True)
    reference = models.CharField(max_length=120, blank=True, db_index=True)
    idempotency_key = models.CharField(max_length=128, null=True, blank=True)
    created_by = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    objects = LedgerQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(name="ledger_quantity_non_zero", condition=~models.Q(quantity=0)),
            models.CheckConstraint(
                name="ledger_quantity_sign_matches_type",
                condition=(
                    models.Q(entry_type__in=[t.value for t in POSITIVE_TYPES], quantity__gt=0)
                    | models.Q(entry_type__in=[t.value for t in NEGATIVE_TYPES], quantity__lt=0)
                    | models.Q(entry_type=LedgerEntryType.ADJUSTMENT.value)
                ),
            ),
        ]
        indexes = [
            models.Index(fields=["product", "branch"], name="ledger_product_branch_idx"),
            models.Index(fields=["product", "created_at"], name="ledger_product_created_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise InvalidState("Stock ledger entries are append-only")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise InvalidState("Stock ledger entries are append-only")

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entry_type} {self.quantity} product={self.product_id} branch={self.branch_id or '-'}"


class StockReservation(TimeStampedModel):
    """Time-boxed soft hold on quantity during checkout. Never moves ledger stock."""

    STATUS_ACTIVE = ReservationStatus.ACTIVE
    STATUS_CONSUMED = ReservationStatus.CONSUMED
    STATUS_RELEASED = ReservationStatus.RELEASED
    STATUS_EXPIRED = ReservationStatus.EXPIRED
    STATUS_CHOICES = ReservationStatus.choices

    reservation_id = models.CharField(max_length=128, unique=True)
    requested_by = models.CharField(max_length=64, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    expires_at = models.DateTimeField(db_index=True)
    reference = models.CharField(max_length=120, blank=True)
    consumed_at = models.DateTimeField(null=True, blank=True)
    released_at = models.DateTimeField(null=True, blank=True)
    expired_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "id"]
        indexes = [
            models.Index(fields=["status", "expires_at"], name="reservation_status_exp_idx"),
        ]

    def is_live(self, now) -> bool:
        """Active and not yet past ``expires_at``."""
        return self.status == self.STATUS_ACTIVE and self.expires_at > now

    def __str__(self) -> str:  # pragma: no cover
        return f"Reservation<{self.reservation_id}> state={self.status}"


class StockReservationItem(models.Model):
    reservation = models.ForeignKey(StockReservation, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="reservation_items")
    quantity = models.IntegerField()

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(name="reservation_item_positive_qty", condition=models.Q(quantity__gt=0)),
            models.UniqueConstraint(fields=["reservation", "product"], name="uniq_reservation_product"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"ReservationItem<{self.reservation_id}> product={self.product_id} qty={self.quantity}"


# EOF

"""Shared enumerations and choices used across apps."""

from django.db import models


class LedgerEntryType(models.TextChoices):
    """Kinds of stock-affecting events recorded in the ledger."""

    IN = "in", "Inbound"
    OUT = "out", "Outbound"
    ADJUSTMENT = "adjustment", "Adjustment"
    TRANSFER_OUT = "transfer_out", "Transfer out"
    TRANSFER_IN = "transfer_in", "Transfer in"
    RESERVATION_RELEASE = "reservation_release", "Reservation release"


class ReservationStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    CONSUMED = "consumed", "Consumed"
    RELEASED = "released", "Released"
    EXPIRED = "expired", "Expired"


class TransferStatus(models.TextChoices):
    """Lifecycle statuses for branch-to-branch transfers."""

    REQUESTED = "requested", "Requested"
    SHIPPED = "shipped", "Shipped"
    RECEIVED = "received", "Received"
    CANCELED = "canceled", "Canceled"


class CycleCountType(models.TextChoices):
    CYCLIC = "cyclic", "Cyclic"
    GENERAL = "general", "General"


class CycleCountStatus(models.TextChoices):
    """Lifecycle statuses for physical stock counts."""

    PENDING = "pending", "Pending"
    IN_PROGRESS = "in_progress", "In progress"
    COMPLETED = "completed", "Completed"
    CANCELED = "canceled", "Canceled"


class PaymentMethod(models.TextChoices):
    CASH = "cash", "Cash"
    CARD = "card", "Card"
    TRANSFER = "transfer", "Bank transfer"
    MIXED = "mixed", "Mixed"


class SaleStatus(models.TextChoices):
    COMPLETED = "completed", "Completed"
    PENDING = "pending", "Pending"
    FAILED = "failed", "Failed"

from decimal import Decimal

from common.choices import PaymentMethod, SaleStatus
from common.models import TimeStampedModel
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class Sale(TimeStampedModel):
    """Completed point-of-sale transaction.

    Totals are snapshotted at checkout; stock effects live in the ledger under
    the reference ``sale:<number>``.
    """

    STATUS_COMPLETED = SaleStatus.COMPLETED
    STATUS_PENDING = SaleStatus.PENDING
    STATUS_FAILED = SaleStatus.FAILED

    number = models.CharField(max_length=32, unique=True, null=True, blank=True, db_index=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="sales", on_delete=models.PROTECT)
    client_id = models.CharField(max_length=64, blank=True)
    branch = models.ForeignKey("catalog.Branch", null=True, blank=True, on_delete=models.PROTECT, related_name="sales")
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    payment_method = models.CharField(max_length=16, choices=PaymentMethod.choices)
    payments = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    notes = models.TextField(blank=True)
    status = models.CharField(max_length=16, choices=SaleStatus.choices, default=SaleStatus.COMPLETED, db_index=True)
    reservation_id = models.CharField(max_length=128, blank=True)
    idempotency_key = models.CharField(max_length=128, blank=True)

    class Meta:
        ordering = ["-id"]
        indexes = [
            models.Index(fields=["user", "created_at"], name="sale_user_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(name="sale_total_non_negative", condition=models.Q(total__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Sale#{self.number or self.id} user={self.user_id} total={self.total}"


class SaleItem(models.Model):
    """Line item snapshot: product, quantity and the price charged."""

    sale = models.ForeignKey(Sale, related_name="items", on_delete=models.CASCADE)
    product = models.ForeignKey("catalog.Product", related_name="sale_items", on_delete=models.PROTECT)
    product_name = models.CharField(max_length=200, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(name="saleitem_price_non_negative", condition=models.Q(unit_price__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"SaleItem#{self.id} sale={self.sale_id} product={self.product_id} qty={self.quantity}"

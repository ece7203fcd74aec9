"""Catalog app models.

Products and branches are owned by the catalog; the inventory engine reads them
and refreshes ``Product.stock``, a denormalized cache of the ledger balance.
"""

from decimal import Decimal

from common.models import TimeStampedModel
from django.db import models


class Branch(TimeStampedModel):
    """Physical store location holding stock."""

    name = models.CharField(max_length=120)
    code = models.CharField(max_length=32, unique=True)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.name} ({self.code})"


class Product(TimeStampedModel):
    """Sellable piece of jewelry."""

    code = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=200)
    category = models.CharField(max_length=120, blank=True)
    material = models.CharField(max_length=120, blank=True)
    purchase_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    sale_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    # Cached ledger balance; see inventory.services.reconcile_product
    stock = models.IntegerField(default=0)
    min_stock = models.IntegerField(default=5)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(name="product_sale_price_non_negative", condition=models.Q(sale_price__gte=0)),
            models.CheckConstraint(
                name="product_purchase_price_non_negative", condition=models.Q(purchase_price__gte=0)
            ),
        ]
        indexes = [
            models.Index(fields=["category", "is_active"], name="catalog_product_category_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code} {self.name}"


# EOF

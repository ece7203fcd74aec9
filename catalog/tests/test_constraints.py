from decimal import Decimal

import pytest
from catalog.models import Branch, Product
from catalog.tests.factories import BranchFactory, ProductFactory
from django.db import IntegrityError


@pytest.mark.django_db
def test_negative_sale_price_rejected():
    with pytest.raises(IntegrityError):
        ProductFactory(sale_price=Decimal("-1.00"))


@pytest.mark.django_db
def test_product_code_is_unique():
    ProductFactory(code="RING-001")
    with pytest.raises(IntegrityError):
        Product.objects.create(code="RING-001", name="Duplicate ring")


@pytest.mark.django_db
def test_branch_code_is_unique():
    BranchFactory(code="CENTRO")
    with pytest.raises(IntegrityError):
        Branch.objects.create(code="CENTRO", name="Centro 2")

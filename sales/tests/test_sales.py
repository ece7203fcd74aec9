import re
from decimal import Decimal

import pytest
from catalog.tests.factories import ProductFactory
from django.db import IntegrityError
from inventory.tests.factories import UserFactory
from sales.models import Sale
from sales.services import create_sale


def _line(product, quantity=1):
    total = product.sale_price * quantity
    return {
        "product": product,
        "quantity": quantity,
        "unit_price": product.sale_price,
        "subtotal": total,
        "total": total,
    }


@pytest.mark.django_db
def test_create_sale_numbers_and_snapshots_lines():
    user = UserFactory()
    product = ProductFactory(name="Silver chain")
    totals = {"subtotal": Decimal("500.00"), "discount_amount": Decimal("50.00"), "total": Decimal("450.00")}

    sale = create_sale(
        user_id=user.id,
        lines=[_line(product, 2)],
        totals=totals,
        payment_method="cash",
        payments=[{"method": "cash", "amount": Decimal("450.00")}],
    )

    assert re.fullmatch(rf"SALE-\d{{8}}-{sale.id:06d}", sale.number)
    assert sale.status == Sale.STATUS_COMPLETED
    sale.refresh_from_db()
    assert sale.payments == [{"method": "cash", "amount": "450.00"}]
    item = sale.items.get()
    assert item.product_name == "Silver chain"
    assert item.quantity == 2


@pytest.mark.django_db
def test_negative_total_rejected():
    user = UserFactory()
    with pytest.raises(IntegrityError):
        Sale.objects.create(user=user, payment_method="cash", total=Decimal("-0.01"))

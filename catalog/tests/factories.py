from decimal import Decimal

import factory
from catalog.models import Branch, Product
from factory import Faker
from factory.django import DjangoModelFactory


class BranchFactory(DjangoModelFactory):
    class Meta:
        model = Branch

    name = Faker("city")
    code = factory.Sequence(lambda n: f"BR-{n:03d}")
    is_active = True


class ProductFactory(DjangoModelFactory):
    class Meta:
        model = Product

    code = factory.Sequence(lambda n: f"JWL-{n:05d}")
    name = Faker("sentence", nb_words=3)
    category = "Rings"
    material = "Gold"
    purchase_price = Decimal("100.00")
    sale_price = Decimal("250.00")
    stock = 0
    min_stock = 2
    is_active = True

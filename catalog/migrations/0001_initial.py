from decimal import Decimal

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Branch",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=120)),
                ("code", models.CharField(max_length=32, unique=True)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("code", models.CharField(max_length=64, unique=True)),
                ("name", models.CharField(max_length=200)),
                ("category", models.CharField(blank=True, max_length=120)),
                ("material", models.CharField(blank=True, max_length=120)),
                ("purchase_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("sale_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("stock", models.IntegerField(default=0)),
                ("min_stock", models.IntegerField(default=5)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [models.Index(fields=["category", "is_active"], name="catalog_product_category_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("sale_price__gte", 0)), name="product_sale_price_non_negative"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("purchase_price__gte", 0)), name="product_purchase_price_non_negative"
                    ),
                ],
            },
        ),
    ]

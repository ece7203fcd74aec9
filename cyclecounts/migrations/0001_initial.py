import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        ("inventory", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="CycleCount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "count_type",
                    models.CharField(
                        choices=[("cyclic", "Cyclic"), ("general", "General")], default="cyclic", max_length=16
                    ),
                ),
                ("tolerance_pct", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("note", models.TextField(blank=True)),
                ("created_by", models.CharField(blank=True, max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("in_progress", "In progress"),
                            ("completed", "Completed"),
                            ("canceled", "Canceled"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("canceled_at", models.DateTimeField(blank=True, null=True)),
                ("preloaded_at", models.DateTimeField(blank=True, null=True)),
                ("adjustments_applied_at", models.DateTimeField(blank=True, null=True)),
                ("applied_by", models.CharField(blank=True, max_length=64)),
                (
                    "branch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="cycle_counts",
                        to="catalog.branch",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("tolerance_pct__isnull", True),
                            models.Q(("tolerance_pct__gte", 0), ("tolerance_pct__lte", 100)),
                            _connector="OR",
                        ),
                        name="cyclecount_tolerance_range",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CycleCountItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("expected_qty", models.IntegerField()),
                ("counted_qty", models.IntegerField(blank=True, null=True)),
                ("counted_by", models.CharField(blank=True, max_length=64)),
                ("reason", models.CharField(blank=True, max_length=200)),
                ("variance_qty", models.IntegerField(blank=True, null=True)),
                (
                    "adjustment_entry",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="cycle_count_item",
                        to="inventory.stockledgerentry",
                    ),
                ),
                (
                    "cycle_count",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="cyclecounts.cyclecount",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="cycle_count_items",
                        to="catalog.product",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
                "constraints": [
                    models.UniqueConstraint(fields=("cycle_count", "product"), name="uniq_cyclecount_product"),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("counted_qty__isnull", True), ("counted_qty__gte", 0), _connector="OR"
                        ),
                        name="cyclecount_item_counted_non_negative",
                    ),
                ],
            },
        ),
    ]

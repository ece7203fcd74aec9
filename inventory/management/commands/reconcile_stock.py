from django.core.management.base import BaseCommand
from inventory.services import reconcile_all_products, reconcile_product


class Command(BaseCommand):
    help = "Correct cached Product.stock values to their ledger balance and report drift."

    def add_arguments(self, parser):
        parser.add_argument("--product", type=int, default=None, help="Reconcile a single product id")

    def handle(self, *args, **options):
        if options["product"]:
            result = reconcile_product(product_id=options["product"], actor="system")
            findings = [result] if result["updated"] else []
            checked = 1
        else:
            summary = reconcile_all_products(actor="system")
            findings = summary["findings"]
            checked = summary["checked"]
        for finding in findings:
            self.stdout.write(
                f"product={finding['product_id']} cached={finding['previous_stock']} "
                f"ledger={finding['balance']} drift={finding['drift']}"
            )
        self.stdout.write(self.style.SUCCESS(f"Products checked: {checked}, corrected: {len(findings)}"))

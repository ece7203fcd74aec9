from django.core.management.base import BaseCommand
from inventory.services import expire_reservations


class Command(BaseCommand):
    help = "Mark active stock reservations that have passed their expires_at timestamp as expired."

    def handle(self, *args, **options):
        count = expire_reservations()
        self.stdout.write(self.style.SUCCESS(f"Expired reservations: {count}"))

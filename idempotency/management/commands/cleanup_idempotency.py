from django.core.management.base import BaseCommand
from idempotency.services import prune_expired


class Command(BaseCommand):
    help = "Delete idempotency records past their retention window (expires_at)"

    def handle(self, *args, **options):
        count = prune_expired()
        self.stdout.write(self.style.SUCCESS(f"Deleted {count} expired idempotency records."))

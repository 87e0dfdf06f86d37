# inventory/management/commands/expire_batches.py

from __future__ import annotations

from datetime import date

from django.core.management.base import BaseCommand, CommandError

from inventory.services.coordinator import TransactionCoordinator


class Command(BaseCommand):
    help = "Retire active batches past their expiration date and write off remaining stock."

    def add_arguments(self, parser):
        parser.add_argument(
            "--today",
            default=None,
            help="Evaluate as of this date (YYYY-MM-DD). Defaults to the local date.",
        )
        parser.add_argument(
            "--database",
            default="default",
            help="Database alias to use.",
        )

    def handle(self, *args, **options):
        today = None
        if options.get("today"):
            try:
                today = date.fromisoformat(options["today"])
            except ValueError:
                raise CommandError("--today must be YYYY-MM-DD")

        coordinator = TransactionCoordinator.for_database(options["database"])
        results = coordinator.retire_expired_batches(today=today)

        for result in results:
            written_off = -result.movement.quantity_change if result.movement else 0
            self.stdout.write(
                f"EXPIRED {result.batch.batch_number} ({result.batch.id}) written off: {written_off}"
            )

        self.stdout.write(self.style.SUCCESS(f"Batches retired: {len(results)}"))

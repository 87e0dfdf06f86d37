# alerts/management/commands/cleanup_alerts.py

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from alerts.services.evaluator import AlertEvaluator
from inventory.services.exceptions import ValidationError


class Command(BaseCommand):
    help = "Delete acknowledged alerts older than the retention window."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=None,
            help="Age in days (defaults to ALERT_RETENTION_DAYS).",
        )
        parser.add_argument(
            "--database",
            default="default",
            help="Database alias to use.",
        )

    def handle(self, *args, **options):
        evaluator = AlertEvaluator(using=options["database"])
        try:
            deleted = evaluator.cleanup_acknowledged(options.get("days"))
        except ValidationError as exc:
            raise CommandError(exc.message)

        self.stdout.write(self.style.SUCCESS(f"Acknowledged alerts deleted: {deleted}"))

# alerts/management/commands/evaluate_alerts.py

from __future__ import annotations

from django.core.management.base import BaseCommand

from alerts.services.evaluator import AlertEvaluator


class Command(BaseCommand):
    help = "Sweep active batches and products and raise expiry / stock-level alerts."

    def add_arguments(self, parser):
        parser.add_argument(
            "--force",
            action="store_true",
            help="Raise alerts even if the same alert was raised within the cool-down window.",
        )
        parser.add_argument(
            "--database",
            default="default",
            help="Database alias to use.",
        )

    def handle(self, *args, **options):
        evaluator = AlertEvaluator(using=options["database"])
        result = evaluator.sweep(force=bool(options.get("force")))

        for alert in result.alerts:
            self.stdout.write(f"[{alert.tier}] {alert.message}")

        self.stdout.write("\n--- Summary ---")
        self.stdout.write(f"Batches checked:  {result.batches_checked}")
        self.stdout.write(f"Products checked: {result.products_checked}")
        self.stdout.write(f"Alerts raised:    {result.created}")
        self.stdout.write(f"Suppressed:       {result.suppressed} (within cool-down)")

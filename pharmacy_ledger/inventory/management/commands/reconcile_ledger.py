# inventory/management/commands/reconcile_ledger.py

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from inventory.services.movement_log import MovementLog


class Command(BaseCommand):
    help = "Cross-check every batch's on-hand quantity against the signed sum of its movements."

    def add_arguments(self, parser):
        parser.add_argument(
            "--product",
            dest="product_id",
            default=None,
            help="Only reconcile batches of this product (UUID).",
        )
        parser.add_argument(
            "--database",
            default="default",
            help="Database alias to reconcile.",
        )
        parser.add_argument(
            "--fail-on-drift",
            action="store_true",
            help="Exit with an error when any batch is inconsistent.",
        )

    def handle(self, *args, **options):
        log = MovementLog(using=options["database"])
        results = log.reconcile_all(product_id=options.get("product_id"))

        drifted = [r for r in results if not r.consistent]

        for result in drifted:
            self.stdout.write(
                self.style.ERROR(
                    f"DRIFT {result.batch_number} ({result.batch_id}): "
                    f"on_hand={result.quantity_on_hand} ledger={result.ledger_total} "
                    f"drift={result.drift:+d}"
                )
            )

        self.stdout.write("\n--- Summary ---")
        self.stdout.write(f"Batches checked: {len(results)}")
        self.stdout.write(f"Inconsistent:    {len(drifted)}")

        if drifted and options.get("fail_on_drift"):
            raise CommandError(f"{len(drifted)} batch(es) out of balance with the movement log")

        if not drifted:
            self.stdout.write(self.style.SUCCESS("Ledger is consistent."))

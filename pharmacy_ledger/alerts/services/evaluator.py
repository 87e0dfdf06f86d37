# alerts/services/evaluator.py

"""
ALERT EVALUATOR (EXPIRY + STOCK LEVEL)

Purpose:
- Classify batches by days-to-expiry and products by available stock
- Raise StockAlert rows from a periodic sweep
- Serve the alert feed (list / acknowledge / stats / cleanup)

Expiry tiers (days from today to expiration_date):
    < 0        expired
    <= 30      critical
    <= 60      warning
    <= 90      watch
    otherwise  nothing

Stock tiers (available = on_hand - reserved over sellable batches):
    <= 0                      out_of_stock
    <= minimum * ratio        critical
    <= minimum                low
    <= reorder_point          reorder
    otherwise                 normal (no alert)

Sweep GUARANTEES:
- Reads are one snapshot and take no row locks
- Never writes to Batch (or anything in the inventory ledger)
- One alert per (kind, product, batch, tier) per cool-down window;
  force=True ignores the window
- Each alert insert is its own short write: an interrupted sweep leaves
  only complete alerts and a re-run raises only what is missing
"""

from __future__ import annotations

import logging
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Iterable, Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DEFAULT_DB_ALIAS, connections, transaction
from django.utils import timezone

from alerts.filters import AlertFilter
from alerts.models import AlertKind, AlertTier, StockAlert
from catalog.models import Product
from inventory.models import Batch
from inventory.services.batch_store import BatchStore
from inventory.services.exceptions import NotFound, StateError, ValidationError

logger = logging.getLogger(__name__)

STOCK_NORMAL = "normal"


@dataclass(frozen=True)
class AlertConfig:
    expiry_critical_days: int = 30
    expiry_warning_days: int = 60
    expiry_watch_days: int = 90
    critical_stock_ratio: float = 0.5
    cooldown_hours: int = 24
    retention_days: int = 90

    @classmethod
    def from_settings(cls) -> "AlertConfig":
        conf = getattr(settings, "ALERTS", {})
        return cls(
            expiry_critical_days=int(conf.get("EXPIRY_CRITICAL_DAYS", 30)),
            expiry_warning_days=int(conf.get("EXPIRY_WARNING_DAYS", 60)),
            expiry_watch_days=int(conf.get("EXPIRY_WATCH_DAYS", 90)),
            critical_stock_ratio=float(conf.get("CRITICAL_STOCK_RATIO", 0.5)),
            cooldown_hours=int(conf.get("COOLDOWN_HOURS", 24)),
            retention_days=int(conf.get("RETENTION_DAYS", 90)),
        )


@dataclass(frozen=True)
class AlertCandidate:
    kind: str
    tier: str
    product: Product
    batch: Optional[Batch]
    quantity: int
    expiration_date: Optional[date]
    days_to_expiry: Optional[int]
    message: str

    @property
    def key(self) -> tuple:
        return (self.kind, self.product.id, self.batch.id if self.batch else None, self.tier)


@dataclass(frozen=True)
class SweepResult:
    created: int
    suppressed: int
    batches_checked: int
    products_checked: int
    alerts: tuple


class AlertEvaluator:
    def __init__(
        self,
        *,
        using: str = DEFAULT_DB_ALIAS,
        clock: Optional[Callable] = None,
        config: Optional[AlertConfig] = None,
    ):
        self.using = using
        self.clock = clock or timezone.now
        self.config = config or AlertConfig.from_settings()

    def _alerts(self):
        return StockAlert.objects.using(self.using)

    def today(self) -> date:
        return timezone.localdate(self.clock())

    # -------------------------------------------------
    # CLASSIFICATION (pure)
    # -------------------------------------------------
    def classify_expiry(self, expiration_date: date, today: Optional[date] = None) -> Optional[str]:
        today = today or self.today()
        days = (expiration_date - today).days

        if days < 0:
            return AlertTier.EXPIRED
        if days <= self.config.expiry_critical_days:
            return AlertTier.CRITICAL
        if days <= self.config.expiry_warning_days:
            return AlertTier.WARNING
        if days <= self.config.expiry_watch_days:
            return AlertTier.WATCH
        return None

    def classify_stock(self, available: int, product: Product) -> str:
        minimum = int(product.minimum_stock_level)

        if available <= 0:
            return AlertTier.OUT_OF_STOCK
        if available <= minimum * self.config.critical_stock_ratio:
            return AlertTier.CRITICAL
        if available <= minimum:
            return AlertTier.LOW
        if available <= int(product.reorder_point):
            return AlertTier.REORDER
        return STOCK_NORMAL

    # -------------------------------------------------
    # SWEEP
    # -------------------------------------------------
    @contextmanager
    def _read_snapshot(self):
        connection = connections[self.using]
        with transaction.atomic(using=self.using):
            # must be the first statement of the transaction
            if connection.vendor == "postgresql" and not connection.savepoint_ids:
                with connection.cursor() as cursor:
                    cursor.execute("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ READ ONLY")
            yield

    def collect(self, today: Optional[date] = None) -> tuple[list[AlertCandidate], int, int]:
        """
        Build alert candidates from one read of active batches.

        Returns (candidates, batches_checked, products_checked).
        """
        today = today or self.today()
        watch_until = today + timedelta(days=self.config.expiry_watch_days)

        with self._read_snapshot():
            batches = list(
                Batch.objects.using(self.using)
                .active()
                .filter(product__is_active=True)
                .select_related("product")
                .order_by("product_id", "expiration_date", "id")
            )
            products = list(Product.objects.using(self.using).filter(is_active=True).order_by("id"))
            levels = BatchStore(using=self.using).stock_levels(today=today)

        candidates: list[AlertCandidate] = []

        for batch in batches:
            if batch.quantity_on_hand <= 0 or batch.expiration_date > watch_until:
                continue

            tier = self.classify_expiry(batch.expiration_date, today)
            if tier is None:
                continue

            days = (batch.expiration_date - today).days
            if days < 0:
                message = f"{batch.product.name} batch {batch.batch_number} expired {-days} day(s) ago"
            else:
                message = f"{batch.product.name} batch {batch.batch_number} expires in {days} day(s)"

            candidates.append(
                AlertCandidate(
                    kind=AlertKind.EXPIRY,
                    tier=tier,
                    product=batch.product,
                    batch=batch,
                    quantity=int(batch.quantity_on_hand),
                    expiration_date=batch.expiration_date,
                    days_to_expiry=days,
                    message=message,
                )
            )

        for product in products:
            level = levels.get(product.id)
            available = level.available if level else 0
            tier = self.classify_stock(available, product)
            if tier == STOCK_NORMAL:
                continue

            candidates.append(
                AlertCandidate(
                    kind=AlertKind.STOCK,
                    tier=tier,
                    product=product,
                    batch=None,
                    quantity=available,
                    expiration_date=None,
                    days_to_expiry=None,
                    message=(
                        f"{product.name}: {available} available "
                        f"(minimum {product.minimum_stock_level}, reorder at {product.reorder_point})"
                    ),
                )
            )

        return candidates, len(batches), len(products)

    def sweep(self, *, force: bool = False) -> SweepResult:
        now = self.clock()
        candidates, batches_checked, products_checked = self.collect(timezone.localdate(now))

        recent = set()
        if not force:
            cutoff = now - timedelta(hours=self.config.cooldown_hours)
            recent = set(
                self._alerts()
                .filter(raised_at__gte=cutoff)
                .values_list("kind", "product_id", "batch_id", "tier")
            )

        created = []
        suppressed = 0
        for candidate in candidates:
            if candidate.key in recent:
                suppressed += 1
                continue

            with transaction.atomic(using=self.using):
                alert = StockAlert(
                    kind=candidate.kind,
                    tier=candidate.tier,
                    product=candidate.product,
                    batch=candidate.batch,
                    quantity=candidate.quantity,
                    expiration_date=candidate.expiration_date,
                    days_to_expiry=candidate.days_to_expiry,
                    message=candidate.message[:255],
                    raised_at=now,
                )
                alert.save(using=self.using)
            recent.add(candidate.key)
            created.append(alert)

        logger.info(
            "Alert sweep finished",
            extra={
                "created": len(created),
                "suppressed": suppressed,
                "batches_checked": batches_checked,
                "products_checked": products_checked,
                "force": force,
            },
        )

        return SweepResult(
            created=len(created),
            suppressed=suppressed,
            batches_checked=batches_checked,
            products_checked=products_checked,
            alerts=tuple(created),
        )

    # -------------------------------------------------
    # FEED
    # -------------------------------------------------
    def feed(self, params: Optional[dict] = None):
        filterset = AlertFilter(
            data=params or {},
            queryset=self._alerts().select_related("product", "batch", "acknowledged_by"),
        )
        if not filterset.is_valid():
            raise ValidationError(
                "Invalid alert query",
                errors={field: [str(m) for m in messages] for field, messages in filterset.errors.items()},
            )
        return filterset.qs

    def acknowledge(self, alert_id, *, actor=None, action_taken: str = "") -> StockAlert:
        with transaction.atomic(using=self.using):
            try:
                alert = self._alerts().select_for_update().get(id=alert_id)
            except (StockAlert.DoesNotExist, DjangoValidationError, ValueError, TypeError):
                raise NotFound(f"Alert {alert_id} not found")

            if alert.is_acknowledged:
                raise StateError(f"Alert {alert_id} is already acknowledged")

            alert.is_acknowledged = True
            alert.acknowledged_by = actor if getattr(actor, "pk", None) else None
            alert.acknowledged_at = self.clock()
            alert.action_taken = (action_taken or "").strip()
            alert.save(
                using=self.using,
                update_fields=["is_acknowledged", "acknowledged_by", "acknowledged_at", "action_taken"],
            )

        logger.info("Alert acknowledged", extra={"alert_id": str(alert.id), "tier": alert.tier})
        return alert

    def bulk_acknowledge(self, alert_ids: Iterable, *, actor=None, action_taken: str = "") -> int:
        ids = list(alert_ids or [])
        if not ids:
            raise ValidationError("alert_ids must be a non-empty list")

        updated = (
            self._alerts()
            .filter(id__in=ids, is_acknowledged=False)
            .update(
                is_acknowledged=True,
                acknowledged_by=actor if getattr(actor, "pk", None) else None,
                acknowledged_at=self.clock(),
                action_taken=(action_taken or "").strip(),
            )
        )
        logger.info("Alerts acknowledged in bulk", extra={"requested": len(ids), "updated": updated})
        return updated

    def stats(self) -> dict:
        open_alerts = self._alerts().filter(is_acknowledged=False)
        by_tier = Counter()
        by_kind = Counter()
        for kind, tier in open_alerts.values_list("kind", "tier"):
            by_kind[kind] += 1
            by_tier[f"{kind}.{tier}"] += 1

        return {
            "total": self._alerts().count(),
            "unacknowledged": sum(by_kind.values()),
            "acknowledged": self._alerts().filter(is_acknowledged=True).count(),
            "by_kind": dict(by_kind),
            "by_tier": dict(by_tier),
        }

    def cleanup_acknowledged(self, older_than_days: Optional[int] = None) -> int:
        days = self.config.retention_days if older_than_days is None else older_than_days
        if isinstance(days, bool) or not isinstance(days, int) or days < 1:
            raise ValidationError("older_than_days must be a positive integer")

        cutoff = self.clock() - timedelta(days=days)
        deleted, _ = (
            self._alerts()
            .filter(is_acknowledged=True, acknowledged_at__lt=cutoff)
            .delete()
        )
        logger.info("Acknowledged alerts cleaned up", extra={"deleted": deleted, "older_than_days": days})
        return deleted

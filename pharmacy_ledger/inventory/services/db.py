# inventory/services/db.py

"""
SCOPED LEDGER TRANSACTION

ledger_transaction() is the ONLY way core operations open a transaction.

GUARANTEES:
- One database transaction per block (a savepoint when nested)
- Commit only when the block exits normally
- Rollback on ANY exception, on handle.set_rollback(), or when the
  wall-clock budget is exhausted (LedgerTimeout)
- PostgreSQL: SET LOCAL lock_timeout / statement_timeout so a blocked
  row lock cannot stall the caller past its budget
- Driver-level contention errors (lock timeout, deadlock, serialization
  failure, "database is locked") surface as ConflictError
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, OperationalError, connections, transaction

from inventory.services.exceptions import ConflictError, LedgerTimeout

logger = logging.getLogger(__name__)


def _ledger_setting(name: str, default):
    return getattr(settings, "LEDGER", {}).get(name, default)


@dataclass
class LedgerHandle:
    """Resource handle for one ledger transaction."""

    using: str
    timeout: Optional[float]
    started_at: float = field(default_factory=time.monotonic)
    rollback_requested: bool = False

    @property
    def connection(self):
        return connections[self.using]

    def remaining(self) -> Optional[float]:
        if self.timeout is None:
            return None
        return self.timeout - (time.monotonic() - self.started_at)

    def check_deadline(self, stage: str = "") -> None:
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise LedgerTimeout(
                f"Ledger transaction exceeded {self.timeout:.2f}s"
                + (f" during {stage}" if stage else "")
            )

    def set_rollback(self) -> None:
        self.rollback_requested = True


def _apply_session_timeouts(handle: LedgerHandle, lock_timeout_ms: int) -> None:
    if handle.connection.vendor != "postgresql":
        return

    with handle.connection.cursor() as cursor:
        if lock_timeout_ms > 0:
            # integer milliseconds; SET does not take bind parameters
            cursor.execute(f"SET LOCAL lock_timeout = {int(lock_timeout_ms)}")
        if handle.timeout:
            cursor.execute(f"SET LOCAL statement_timeout = {int(handle.timeout * 1000)}")


@contextmanager
def ledger_transaction(
    *,
    using: str = DEFAULT_DB_ALIAS,
    timeout: Optional[float] = None,
    lock_timeout_ms: Optional[int] = None,
) -> Iterator[LedgerHandle]:
    if timeout is None:
        timeout = _ledger_setting("TRANSACTION_TIMEOUT_SECONDS", 5.0)
    if lock_timeout_ms is None:
        lock_timeout_ms = _ledger_setting("LOCK_TIMEOUT_MS", 3000)

    handle = LedgerHandle(using=using, timeout=timeout or None)

    try:
        with transaction.atomic(using=using):
            _apply_session_timeouts(handle, lock_timeout_ms)
            yield handle

            if handle.rollback_requested:
                transaction.set_rollback(True, using=using)
            else:
                handle.check_deadline("commit")
    except OperationalError as exc:
        logger.warning(
            "Ledger transaction aborted by database contention",
            extra={"using": using, "error": str(exc)},
        )
        raise ConflictError(f"Concurrent update conflict: {exc}") from exc

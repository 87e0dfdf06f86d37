# inventory/services/exceptions.py

"""
LEDGER DOMAIN ERRORS

Every core operation either returns its fully applied result or raises one of
these with nothing persisted.

Each error carries:
- code:        stable machine-readable identifier (API + logs)
- status_code: HTTP status used by the API layer
- retryable:   True only for transient contention (conflict / timeout)
"""

from __future__ import annotations


class LedgerError(Exception):
    code = "ledger_error"
    status_code = 400
    retryable = False

    def __init__(self, message: str = "", **context):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.context = context

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }


class ValidationError(LedgerError):
    """Malformed or rule-breaking input (bad quantity, missing reason, ...)."""

    code = "validation_error"
    status_code = 400


class NotFound(LedgerError):
    code = "not_found"
    status_code = 404


class InsufficientStock(LedgerError):
    code = "insufficient_stock"
    status_code = 409

    def __init__(
        self,
        message: str = "",
        *,
        product_id=None,
        batch_id=None,
        requested: int = 0,
        available: int = 0,
    ):
        super().__init__(
            message or f"Insufficient stock. Requested: {requested}, available: {available}",
            product_id=product_id,
            batch_id=batch_id,
            requested=requested,
            available=available,
        )
        self.product_id = product_id
        self.batch_id = batch_id
        self.requested = requested
        self.available = available


class InvariantViolation(LedgerError):
    """A mutation would break 0 <= reserved <= on_hand."""

    code = "invariant_violation"
    status_code = 409


class ConflictError(LedgerError):
    """Lost a race (version changed, lock wait aborted, deadlock). Safe to retry."""

    code = "conflict"
    status_code = 409
    retryable = True


class LedgerTimeout(ConflictError):
    code = "timeout"
    status_code = 503


class StateError(LedgerError):
    """Operation not allowed in the current state (refunded sale, retired batch, ...)."""

    code = "invalid_state"
    status_code = 409


class DuplicateOperation(StateError):
    code = "duplicate_operation"

# inventory/views/errors.py

from rest_framework.response import Response

from inventory.services.exceptions import LedgerError


# ======================================================
# API ERROR NORMALIZATION
# ======================================================

def error_response(*, code: str, message: str, http_status: int, retryable: bool = False, details=None):
    """
    Canonical API error response.
    """
    body = {"code": code, "message": message, "retryable": retryable}
    if details:
        body["details"] = details
    return Response({"error": body}, status=http_status)


def ledger_error_response(exc: LedgerError):
    return error_response(
        code=exc.code,
        message=exc.message,
        http_status=exc.status_code,
        retryable=exc.retryable,
        details=exc.context or None,
    )

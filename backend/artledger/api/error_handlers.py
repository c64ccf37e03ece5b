"""Error Handlers — map ArtLedger errors and request validation failures to JSON.

Invariants:
    - ArtLedgerError → its own http_status and to_response() envelope
    - 503 responses (StoreUnavailable, TransferIncomplete) carry Retry-After
    - RequestValidationError → 400 VALIDATION_ERROR with per-field details
    - Anything else → 500 INTERNAL_ERROR, no internal details in the body

Design Decisions:
    - Expected caller outcomes (4xx) logged at WARNING, infrastructure failures at ERROR
    - Validation details name the camelCase wire field, never Python internals
"""

import logging
import math

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from artledger.core.errors import ArtLedgerError, ErrorSeverity

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_SECONDS = 1


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ArtLedgerError, _artledger_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(Exception, _unexpected_error)


async def _artledger_error(request: Request, exc: ArtLedgerError) -> JSONResponse:
    log = logger.error if exc.http_status >= 500 else logger.warning
    log(
        f"{exc.code}: {exc.message}",
        extra={
            "error_code": exc.code, "path": request.url.path,
            "artwork_id": exc.context.artwork_id,
            "operation": exc.context.operation,
        },
    )
    headers = None
    if exc.http_status == status.HTTP_503_SERVICE_UNAVAILABLE:
        headers = {"Retry-After": str(_retry_after_seconds(exc))}
    return JSONResponse(
        status_code=exc.http_status, content=exc.to_response(), headers=headers,
    )


async def _validation_error(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.warning(
        f"Invalid request: {len(details)} field error(s)",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Invalid request data",
                "category": "validation",
                "severity": ErrorSeverity.WARNING.value,
                "details": details,
            },
        },
    )


async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled {type(exc).__name__}",
        exc_info=exc, extra={"path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "category": "internal",
                "severity": ErrorSeverity.CRITICAL.value,
            },
        },
    )


def _retry_after_seconds(exc: ArtLedgerError) -> int:
    if exc.context.retry_after_ms:
        return max(1, math.ceil(exc.context.retry_after_ms / 1000))
    return DEFAULT_RETRY_AFTER_SECONDS

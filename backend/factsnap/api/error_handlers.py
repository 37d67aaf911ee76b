"""Error Handlers — every failure leaves the API in one JSON envelope.

Invariants:
    - FactSnapError → its own to_response() body and http_status
    - RequestValidationError → 400 VALIDATION_ERROR with per-field details
    - Starlette HTTPException (unknown route, wrong method) → same envelope
    - Exception (catch-all) → 500, never leaks internal details
    - Every envelope carries the request_id of the failing request
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from factsnap.core.errors import ErrorCategory, ErrorSeverity, FactSnapError
from factsnap.infrastructure.observability import request_id_var

logger = logging.getLogger(__name__)

_HTTP_CODES = {
    status.HTTP_404_NOT_FOUND: ("NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND),
    status.HTTP_405_METHOD_NOT_ALLOWED: ("METHOD_NOT_ALLOWED", ErrorCategory.VALIDATION),
}


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FactSnapError, _handle_factsnap_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(Exception, _handle_unexpected_error)


def _respond(status_code: int, body: dict) -> JSONResponse:
    body["error"]["request_id"] = request_id_var.get()
    return JSONResponse(status_code=status_code, content=body)


def _envelope(
    code: str, message: str, category: ErrorCategory, severity: ErrorSeverity,
    **extra,
) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "category": category.value,
            "severity": severity.value,
            **extra,
        },
    }


async def _handle_factsnap_error(request: Request, exc: FactSnapError):
    log = logger.error if exc.http_status >= 500 else logger.warning
    log(
        f"FactSnapError: {exc.message}",
        extra={"error_code": exc.code, "path": request.url.path},
    )
    return _respond(exc.http_status, exc.to_response())


async def _handle_validation_error(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(loc) for loc in e["loc"] if loc != "body"),
            "message": e["msg"],
            "type": e["type"],
        }
        for e in exc.errors()
    ]
    logger.warning(
        f"Invalid request data on {request.url.path}: {len(details)} error(s)",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    return _respond(
        status.HTTP_400_BAD_REQUEST,
        _envelope(
            "VALIDATION_ERROR", "Invalid request data",
            ErrorCategory.VALIDATION, ErrorSeverity.ERROR, details=details,
        ),
    )


async def _handle_http_exception(request: Request, exc: StarletteHTTPException):
    code, category = _HTTP_CODES.get(
        exc.status_code, ("HTTP_ERROR", ErrorCategory.VALIDATION),
    )
    return _respond(
        exc.status_code,
        _envelope(code, str(exc.detail), category, ErrorSeverity.WARNING),
    )


async def _handle_unexpected_error(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}",
        extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
        exc_info=True,
    )
    return _respond(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        _envelope(
            "INTERNAL_ERROR", "An unexpected error occurred",
            ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL,
        ),
    )

"""Exception handlers for consistent error responses.

Every failure leaves the API in one JSON envelope:

    {
        "error": {
            "code": "FORBIDDEN",
            "message": "You don't have access to this resource",
            "details": {...}  // only for validation errors
        }
    }

Domain failures (`app.errors.AccessError`) carry their own status and
code. ConfigurationError is logged in full but rendered as a generic
internal error, so role/permission misconfiguration never leaks to
clients. Storage errors keep their own handlers and are never reported
as a denial.
"""

import logging
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.errors import AccessError, ConfigurationError

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."

# Substring of the driver message → (error code, client message)
INTEGRITY_ERRORS = (
    ("unique", "DUPLICATE_RECORD", "A record with this value already exists"),
    ("foreign key", "FOREIGN_KEY_VIOLATION", "Referenced record does not exist"),
    ("not null", "NULL_VALUE_NOT_ALLOWED", "Required field is missing"),
)


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Union[dict, list, None] = None,
    headers: dict | None = None,
) -> JSONResponse:
    error = {"code": error_code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error}, headers=headers)


def _request_extra(request: Request, **extra) -> dict:
    return {"path": request.url.path, "method": request.method, **extra}


# ── Domain errors ────────────────────────────────────────────

async def access_error_handler(request: Request, exc: AccessError) -> JSONResponse:
    """Render Unauthenticated / Forbidden / NotFound / InvalidState / ConfigurationError."""
    extra = _request_extra(request, error_code=exc.error_code)

    if isinstance(exc, ConfigurationError):
        logger.error("Configuration error on %s: %s", request.url.path, exc.message, extra=extra)
        return create_error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            GENERIC_ERROR_MESSAGE,
            "INTERNAL_SERVER_ERROR",
        )

    logger.warning("Request rejected: %s - %s", exc.error_code, exc.message, extra=extra)
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return create_error_response(exc.status_code, exc.message, exc.error_code, headers=headers)


# ── Framework errors ─────────────────────────────────────────

async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    """Unmatched routes, wrong methods and any HTTPException raised directly."""
    if exc.status_code >= 500:
        logger.error("HTTP %s: %s", exc.status_code, exc.detail, extra=_request_extra(request))
    return create_error_response(
        exc.status_code,
        str(exc.detail),
        f"HTTP_{exc.status_code}",
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, ValidationError],
) -> JSONResponse:
    logger.warning("Validation error on %s", request.url.path, extra=_request_extra(request))
    errors = [
        {
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return create_error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        "VALIDATION_ERROR",
        details={"errors": errors},
    )


# ── Storage errors ───────────────────────────────────────────

async def database_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Constraint violations: duplicate SKU/email/order number, dangling FKs."""
    logger.error("Integrity error on %s: %s", request.url.path, exc, extra=_request_extra(request))

    driver_message = str(getattr(exc, "orig", exc)).lower()
    for needle, error_code, message in INTEGRITY_ERRORS:
        if needle in driver_message:
            break
    else:
        error_code, message = "INTEGRITY_ERROR", "Database constraint violation"

    return create_error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, message, error_code)


async def operational_exception_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error("Database unavailable on %s: %s", request.url.path, exc, extra=_request_extra(request))
    return create_error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Database temporarily unavailable. Please try again.",
        "DATABASE_UNAVAILABLE",
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception on %s: %s", request.url.path, exc,
        extra=_request_extra(request),
        exc_info=exc,
    )
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        GENERIC_ERROR_MESSAGE,
        "INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app):
    """Register all custom exception handlers with FastAPI app."""
    app.add_exception_handler(AccessError, access_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, database_exception_handler)
    app.add_exception_handler(OperationalError, operational_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

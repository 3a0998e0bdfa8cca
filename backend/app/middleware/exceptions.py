"""Exception types and handlers for the access-control API.

Every failure leaves the service in one envelope:

    {"error": {"code": "...", "message": "...", "details": {...}}}

Denials that are part of normal resolution (no membership, flag unset)
are never raised from the services; they come back as None / False.
Exceptions here cover bad references, guard failures and storage errors.
"""

import logging

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ParcelOpsException(Exception):
    """Base class for errors that map to a known HTTP status and code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ResourceNotFoundError(ParcelOpsException):
    """A role template, role or membership the request refers to is missing."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "RESOURCE_NOT_FOUND"

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class PermissionDeniedError(ParcelOpsException):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "PERMISSION_DENIED"

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message)


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: dict | list | None = None,
    headers: dict | None = None,
) -> JSONResponse:
    error = {"code": error_code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error}, headers=headers)


def _request_context(request: Request) -> dict:
    return {"path": request.url.path, "method": request.method}


async def parcelops_exception_handler(request: Request, exc: ParcelOpsException) -> JSONResponse:
    logger.warning(
        "%s on %s: %s", exc.error_code, request.url.path, exc.message,
        extra=_request_context(request),
    )
    return create_error_response(exc.status_code, exc.message, exc.error_code)


async def http_exception_handler(
    request: Request, exc: HTTPException | StarletteHTTPException,
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("HTTP %s: %s", exc.status_code, exc.detail, extra=_request_context(request))
    return create_error_response(
        exc.status_code,
        str(exc.detail),
        f"HTTP_{exc.status_code}",
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError | ValidationError,
) -> JSONResponse:
    """Unknown permission keys and malformed bodies land here."""
    errors = [
        {
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning(
        "Validation error on %s (%d issue(s))", request.url.path, len(errors),
        extra=_request_context(request),
    )
    return create_error_response(
        422,
        "Validation error",
        "VALIDATION_ERROR",
        details={"errors": errors},
    )


# Substring of the driver message -> (error code, client message)
_INTEGRITY_CLASSES = (
    ("unique", "DUPLICATE_RECORD", "A record with this key already exists"),
    ("foreign key", "FOREIGN_KEY_VIOLATION", "Referenced record does not exist"),
    ("not null", "NULL_VALUE_NOT_ALLOWED", "Required field is missing"),
)


async def integrity_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Storage constraint violations.

    A concurrent membership, warehouse scope or override write that loses
    the race against the unique indexes surfaces as DUPLICATE_RECORD.
    """
    driver_message = str(getattr(exc, "orig", exc)).lower()
    logger.error(
        "Integrity error on %s: %s", request.url.path, driver_message,
        extra=_request_context(request),
    )

    error_code, message = "INTEGRITY_ERROR", "Database constraint violation"
    for needle, code, text in _INTEGRITY_CLASSES:
        if needle in driver_message:
            error_code, message = code, text
            break

    return create_error_response(422, message, error_code)


async def operational_exception_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error(
        "Database unavailable on %s: %s", request.url.path, exc,
        extra=_request_context(request),
    )
    return create_error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Database temporarily unavailable. Please try again.",
        "DATABASE_UNAVAILABLE",
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s", request.url.path, extra=_request_context(request))
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please try again later.",
        "INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app):
    """Attach every handler above to a FastAPI app."""
    app.add_exception_handler(ParcelOpsException, parcelops_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_exception_handler)
    app.add_exception_handler(OperationalError, operational_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

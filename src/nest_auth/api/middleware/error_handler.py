"""Global error handling.

Every error leaves the API as the same envelope::

    {"statusCode": 401, "message": "...", "timestamp": "...", "path": "...", "traceId": "..."}

Handlers log with the request context; exception text that could carry SQL
parameters or credentials is only logged in debug mode.
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from nest_auth.config import settings
from nest_auth.core.exceptions import AuthError
from nest_auth.core.logging import mask_sensitive_data
from nest_auth.models.base import utcnow

logger = logging.getLogger(__name__)


def _trace_id(request: Request) -> str | None:
    context = getattr(request.state, "context", None)
    return context.request_id if context is not None else None


def _log_extra(request: Request) -> dict:
    return {
        "request_id": _trace_id(request),
        "path": request.url.path,
        "method": request.method,
    }


def error_response(request: Request, status_code: int, message) -> JSONResponse:
    """Build the error envelope."""
    return JSONResponse(
        status_code=status_code,
        content={
            "statusCode": status_code,
            "message": message,
            "timestamp": utcnow().isoformat(),
            "path": request.url.path,
            "traceId": _trace_id(request),
        },
    )


async def handle_auth_error(request: Request, exc: AuthError) -> JSONResponse:
    """Handle domain errors raised by strategies, guards and services.

    Args:
        request: The incoming request
        exc: The domain exception

    Returns:
        JSONResponse with the status the exception maps to
    """
    extra = {**_log_extra(request), "status_code": exc.http_status, "error_type": type(exc).__name__}
    if exc.http_status >= 500:
        logger.error(f"{type(exc).__name__}: {exc.message}", extra=extra)
    else:
        logger.info(f"{type(exc).__name__}: {exc.message}", extra=extra)
    return error_response(request, exc.http_status, exc.message)


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.info(
        f"HTTP {exc.status_code} on {request.url.path}",
        extra={**_log_extra(request), "status_code": exc.status_code},
    )
    response = error_response(request, exc.status_code, exc.detail)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors as 400 with one message per field.

    Args:
        request: The incoming request
        exc: The validation error

    Returns:
        JSONResponse listing the invalid fields
    """
    errors = exc.errors()
    messages = []
    for error in errors:
        field = ".".join(str(x) for x in error.get("loc", []))
        messages.append(f"{field}: {error.get('msg', 'Invalid value')}")

    extra = _log_extra(request)
    if settings.debug:
        # Submitted values may include passwords
        extra["errors"] = mask_sensitive_data(
            [{k: v for k, v in error.items() if k != "input"} for error in errors]
        )
    logger.warning(f"Validation error on {request.url.path}", extra=extra)

    return error_response(request, status.HTTP_400_BAD_REQUEST, messages or "Invalid input data")


async def handle_integrity_error(
    request: Request, exc: IntegrityError
) -> JSONResponse:
    """Handle database integrity errors.

    Unique-index violations become 409; anything else is a 500.
    """
    # Do not log str(exc): it can include SQL + bound parameters.
    if settings.debug:
        logger.exception(f"Database integrity error on {request.url.path}", extra=_log_extra(request))
    else:
        logger.error(f"Database integrity error on {request.url.path}", extra=_log_extra(request))

    error_msg = str(exc.orig if exc.orig is not None else exc).lower()
    if "unique" in error_msg or "duplicate" in error_msg:
        return error_response(request, status.HTTP_409_CONFLICT, "Resource already exists")

    return error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Database operation failed"
    )


async def handle_generic_error(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions without exposing internal details."""
    extra = {**_log_extra(request), "error_type": type(exc).__name__}
    if settings.debug:
        logger.exception(f"Unexpected error on {request.url.path}", extra=extra)
    else:
        logger.error(f"Unexpected error on {request.url.path}", extra=extra)

    return error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
    )

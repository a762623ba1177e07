"""Request logging middleware.

Every request gets a ``RequestContext`` (request id, method, path, client
ip) stored on ``request.state.context``. Dependencies hand that object to
the services that log, and the id is echoed in ``X-Request-ID``. At DEBUG
the request headers and JSON body are logged with credentials masked.
"""

import json
import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from nest_auth.core.context import RequestContext
from nest_auth.core.logging import filter_secrets, mask_sensitive_data

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all HTTP requests without leaking credentials."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        context = RequestContext(
            method=request.method,
            path=filter_secrets(request.url.path),
            client_ip=request.client.host if request.client else None,
        )
        request.state.context = context

        start_time = time.time()
        logger.info("Request started", extra={**context.log_extra(), "client_ip": context.client_ip})
        if logger.isEnabledFor(logging.DEBUG):
            await log_request_payload(request, context)

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(
                "Request failed",
                extra={**context.log_extra(), "duration_ms": duration_ms},
            )
            raise

        duration_ms = int((time.time() - start_time) * 1000)
        response.headers[REQUEST_ID_HEADER] = context.request_id

        # user_id is filled in by the session guard, if one ran
        logger.info(
            "Request completed",
            extra={
                **context.log_extra(),
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response


async def log_request_payload(request: Request, context: RequestContext) -> None:
    """
    Log masked request headers and JSON body at DEBUG.

    Starlette caches the body read here, so the route can still consume it.
    """
    body = None
    if "application/json" in request.headers.get("content-type", ""):
        raw = await request.body()
        if raw:
            try:
                body = json.loads(raw)
            except ValueError:
                body = "<invalid json>"

    logger.debug(
        "Request payload",
        extra={
            **context.log_extra(),
            "headers": mask_sensitive_data(dict(request.headers)),
            "body": mask_sensitive_data(body),
        },
    )

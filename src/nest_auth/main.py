from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from nest_auth.api.middleware.error_handler import (
    handle_auth_error,
    handle_generic_error,
    handle_http_exception,
    handle_integrity_error,
    handle_validation_error,
)
from nest_auth.api.middleware.logging import RequestLoggingMiddleware
from nest_auth.api.v1 import router as v1_router
from nest_auth.api.v1.health import router as health_router
from nest_auth.config import settings
from nest_auth.core.exceptions import AuthError
from nest_auth.core.logging import setup_logging
from nest_auth.db.session import async_engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    yield
    # Shutdown
    await async_engine.dispose()


def create_app() -> FastAPI:
    setup_logging(settings.log_level, json_format=settings.log_json)

    app = FastAPI(
        title="Nest Auth API",
        description="Authentication, sessions and API keys",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    # Add request logging middleware
    app.add_middleware(RequestLoggingMiddleware)

    # Register exception handlers (order matters - most specific first)
    app.add_exception_handler(AuthError, handle_auth_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    app.add_exception_handler(Exception, handle_generic_error)

    # Register routers
    app.include_router(health_router)
    app.include_router(v1_router)

    return app


app = create_app()

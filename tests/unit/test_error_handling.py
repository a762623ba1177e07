"""Unit tests for the error envelope handlers."""

import json
from types import SimpleNamespace
from unittest.mock import Mock

import pytest
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from nest_auth.api.middleware.error_handler import (
    handle_auth_error,
    handle_generic_error,
    handle_http_exception,
    handle_integrity_error,
    handle_validation_error,
)
from nest_auth.core.context import RequestContext
from nest_auth.core.exceptions import (
    Conflict,
    Forbidden,
    InternalError,
    NotFound,
    Unauthenticated,
    ValidationFailed,
)


def make_request(path: str = "/api/v1/test", method: str = "GET") -> Mock:
    request = Mock(spec=Request)
    request.url.path = path
    request.method = method
    request.state = SimpleNamespace(context=RequestContext(request_id="trace-123"))
    return request


def body(response: JSONResponse) -> dict:
    return json.loads(response.body)


class TestAuthErrorHandler:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc, status_code",
        [
            (Unauthenticated(), 401),
            (Forbidden(), 403),
            (NotFound(), 404),
            (ValidationFailed(), 400),
            (Conflict(), 409),
            (InternalError(), 500),
        ],
    )
    async def test_status_mapping(self, exc, status_code):
        response = await handle_auth_error(make_request(), exc)

        assert response.status_code == status_code
        assert body(response)["statusCode"] == status_code

    @pytest.mark.asyncio
    async def test_envelope_fields(self):
        """Every error carries statusCode, message, timestamp, path and traceId."""
        response = await handle_auth_error(
            make_request("/api/v1/auth/login/email", "POST"),
            Unauthenticated("Invalid credentials"),
        )

        data = body(response)
        assert data["statusCode"] == 401
        assert data["message"] == "Invalid credentials"
        assert data["path"] == "/api/v1/auth/login/email"
        assert data["traceId"] == "trace-123"
        assert "timestamp" in data

    @pytest.mark.asyncio
    async def test_missing_context_gives_null_trace_id(self):
        request = make_request()
        request.state = SimpleNamespace()

        response = await handle_auth_error(request, Forbidden())

        assert body(response)["traceId"] is None


class TestHttpExceptionHandler:
    @pytest.mark.asyncio
    async def test_not_found_route(self):
        response = await handle_http_exception(
            make_request(), HTTPException(status_code=404, detail="Not Found")
        )

        assert response.status_code == 404
        assert body(response)["message"] == "Not Found"

    @pytest.mark.asyncio
    async def test_headers_preserved(self):
        exc = HTTPException(status_code=401, detail="nope", headers={"WWW-Authenticate": "Bearer"})

        response = await handle_http_exception(make_request(), exc)

        assert response.headers["WWW-Authenticate"] == "Bearer"


class TestValidationErrorHandler:
    @pytest.mark.asyncio
    async def test_validation_maps_to_400(self):
        exc = RequestValidationError(
            [
                {"loc": ("body", "email"), "msg": "value is not a valid email address", "type": "value_error"},
                {"loc": ("body", "password"), "msg": "Field required", "type": "missing"},
            ]
        )

        response = await handle_validation_error(make_request(method="POST"), exc)

        assert response.status_code == 400
        data = body(response)
        assert data["statusCode"] == 400
        assert "body.email: value is not a valid email address" in data["message"]
        assert "body.password: Field required" in data["message"]


class TestIntegrityErrorHandler:
    @pytest.mark.asyncio
    async def test_unique_violation_is_conflict(self):
        exc = IntegrityError(
            "INSERT INTO users ...", {}, Exception("UNIQUE constraint failed: users.email")
        )

        response = await handle_integrity_error(make_request(method="POST"), exc)

        assert response.status_code == 409
        assert body(response)["message"] == "Resource already exists"

    @pytest.mark.asyncio
    async def test_other_integrity_error_is_500(self):
        exc = IntegrityError("INSERT ...", {}, Exception("NOT NULL constraint failed: users.email"))

        response = await handle_integrity_error(make_request(method="POST"), exc)

        assert response.status_code == 500
        # SQL never reaches the client
        assert "INSERT" not in response.body.decode()


class TestGenericErrorHandler:
    @pytest.mark.asyncio
    async def test_internal_details_hidden(self):
        response = await handle_generic_error(
            make_request(), RuntimeError("password=hunter2 leaked")
        )

        assert response.status_code == 500
        assert body(response)["message"] == "Internal server error"
        assert "hunter2" not in response.body.decode()

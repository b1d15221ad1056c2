from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any, Awaitable, Coroutine, cast

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from starlette.requests import Request
from starlette.responses import Response

from pokevgc.api.errors import unauthorized
from pokevgc.api.http_setup import register_exception_handlers, register_http_middleware
from pokevgc.core.config import (
    AppConfig,
    AuthConfig,
    DatabaseConfig,
    LoggingConfig,
    SecurityConfig,
)
from pokevgc.core.logging import CORRELATION_ID_CTX

LOGGER = logging.getLogger(__name__)


def _config() -> AppConfig:
    return AppConfig(
        auth=AuthConfig(
            secret_key="secret",
            access_token_ttl_seconds=900,
            refresh_token_ttl_days=7,
            issuer="test",
        ),
        database=DatabaseConfig(sqlite_path="runtime/test.db"),
        logging=LoggingConfig(level="INFO"),
        security=SecurityConfig(
            cors_allowed_origins=["http://localhost:3000"],
            request_max_bytes=8,
        ),
    )


def _app() -> FastAPI:
    app = FastAPI()
    register_http_middleware(app, config=_config(), logger=LOGGER)
    register_exception_handlers(app, logger=LOGGER)
    return app


def _request(path: str, method: str = "GET", headers: list[tuple[bytes, bytes]] | None = None) -> Request:
    scope: dict[str, Any] = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": b"",
        "root_path": "",
        "headers": headers or [],
        "client": ("127.0.0.1", 1234),
        "server": ("testserver", 80),
    }

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": b"", "more_body": False}

    return Request(scope, receive)


def _dispatch_by_name(app: FastAPI, name: str):
    for middleware in app.user_middleware:
        dispatch = middleware.kwargs.get("dispatch")
        if callable(dispatch) and getattr(dispatch, "__name__", "") == name:
            return dispatch
    raise AssertionError(f"Dispatch {name!r} not found")


def _resolve_response(result: Response | Awaitable[Response]) -> Response:
    if inspect.iscoroutine(result):
        return asyncio.run(cast(Coroutine[Any, Any, Response], result))
    return cast(Response, result)


async def _ok(_request: Request) -> Response:
    return Response(content="ok", status_code=200)


def test_http_setup_adds_security_headers_and_request_id() -> None:
    dispatch = _dispatch_by_name(_app(), "request_logging_middleware")
    request = _request("/api/health", headers=[(b"x-request-id", b"req-123")])

    response = asyncio.run(dispatch(request, _ok))

    assert response.headers["X-Request-ID"] == "req-123"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_http_setup_generates_request_id_when_absent() -> None:
    dispatch = _dispatch_by_name(_app(), "request_logging_middleware")

    response = asyncio.run(dispatch(_request("/api/health"), _ok))

    assert len(response.headers["X-Request-ID"]) == 32


def test_http_setup_rejects_large_request_before_handler() -> None:
    dispatch = _dispatch_by_name(_app(), "request_size_limit_middleware")
    request = _request("/auth/login", method="POST", headers=[(b"content-length", b"20")])

    response = asyncio.run(dispatch(request, _ok))

    assert response.status_code == 413
    assert json.loads(response.body)["error_code"] == "REQUEST_TOO_LARGE"


def test_http_setup_serializes_api_error_with_headers() -> None:
    app = _app()
    handler = app.exception_handlers[HTTPException]
    error = unauthorized()
    error.headers = {"WWW-Authenticate": "Bearer"}

    response: Response = _resolve_response(handler(_request("/api/me"), error))

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"
    assert json.loads(response.body) == {
        "error_code": "AUTH_TOKEN_INVALID",
        "message": "Unauthorized",
    }


def test_http_setup_handles_unexpected_exceptions_without_details() -> None:
    app = _app()
    handler = app.exception_handlers[Exception]

    response: Response = _resolve_response(
        handler(_request("/api/dmgcalc"), RuntimeError("sqlite exploded"))
    )

    assert response.status_code == 500
    assert b"INTERNAL_SERVER_ERROR" in response.body
    assert b"sqlite exploded" not in response.body


def test_http_setup_maps_validation_exception_to_400() -> None:
    app = _app()
    handler = app.exception_handlers[RequestValidationError]
    error = RequestValidationError(
        [{"type": "int_parsing", "loc": ("body", "userId"), "msg": "Input should be a valid integer"}]
    )

    response: Response = _resolve_response(handler(_request("/api/admin/set-role"), error))

    assert response.status_code == 400
    assert json.loads(response.body) == {
        "error_code": "VALIDATION_ERROR",
        "message": "userId: Input should be a valid integer",
    }


def test_http_setup_rejects_malformed_content_length() -> None:
    dispatch = _dispatch_by_name(_app(), "request_size_limit_middleware")
    request = _request("/auth/login", method="POST", headers=[(b"content-length", b"ten")])

    response = asyncio.run(dispatch(request, _ok))

    assert response.status_code == 400
    assert json.loads(response.body)["error_code"] == "VALIDATION_ERROR"


def test_http_setup_scopes_correlation_id_to_request() -> None:
    dispatch = _dispatch_by_name(_app(), "request_logging_middleware")
    seen: list[str] = []

    async def call_next(_request: Request) -> Response:
        seen.append(CORRELATION_ID_CTX.get())
        return Response(content="ok", status_code=200)

    asyncio.run(dispatch(_request("/api/health", headers=[(b"x-correlation-id", b"corr-9")]), call_next))

    assert seen == ["corr-9"]
    assert CORRELATION_ID_CTX.get() != "corr-9"

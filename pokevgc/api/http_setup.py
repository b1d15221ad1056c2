"""Request perimeter for the API: size cap, request logging, error envelopes."""

from __future__ import annotations

import time
import uuid
from typing import Any, Mapping

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pokevgc.api.contracts import ApiErrorResponse
from pokevgc.api.errors import ApiErrorCode, to_error_payload
from pokevgc.core.config import AppConfig
from pokevgc.core.logging import reset_correlation_id, set_correlation_id

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
}
REQUEST_ID_HEADERS = ("x-request-id", "x-correlation-id")


def error_response(
    status_code: int,
    error_code: str,
    message: str,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ApiErrorResponse(error_code=error_code, message=message).model_dump(),
        headers=dict(headers) if headers else None,
    )


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = str(first.get("msg") or "Invalid value")
    return f"{location}: {message}" if location else message


def _request_fields(request: Request, status_code: int) -> dict[str, Any]:
    return {
        "path": request.url.path,
        "method": request.method,
        "status_code": status_code,
    }


def register_http_middleware(app: FastAPI, *, config: AppConfig, logger: Any) -> None:
    """Install the body size cap and the request logging middleware."""
    max_bytes = config.security.request_max_bytes

    @app.middleware("http")
    async def request_size_limit_middleware(request: Request, call_next):
        declared = request.headers.get("content-length")
        if declared is None:
            return await call_next(request)
        if not declared.isdigit():
            return error_response(
                400, ApiErrorCode.VALIDATION_ERROR, "Invalid Content-Length header"
            )
        if int(declared) > max_bytes:
            return error_response(
                413,
                ApiErrorCode.REQUEST_TOO_LARGE,
                f"Request body exceeds {max_bytes} bytes",
            )
        return await call_next(request)

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        correlation_id = next(
            (request.headers[name] for name in REQUEST_ID_HEADERS if request.headers.get(name)),
            uuid.uuid4().hex,
        )
        token = set_correlation_id(correlation_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers.update(SECURITY_HEADERS)
            response.headers["X-Request-ID"] = correlation_id
            fields = _request_fields(request, response.status_code)
            fields["duration_ms"] = round((time.perf_counter() - started) * 1000, 1)
            logger.info("request_completed", extra=fields)
            return response
        finally:
            reset_correlation_id(token)


def register_exception_handlers(app: FastAPI, *, logger: Any) -> None:
    """Render every failure as an ``ApiErrorResponse``."""

    @app.exception_handler(HTTPException)
    async def handle_http_exception(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        payload = to_error_payload(exc.detail, exc.status_code)
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(payload["error_code"], extra=_request_fields(request, exc.status_code))
        return error_response(
            exc.status_code, payload["error_code"], payload["message"], exc.headers
        )

    # Schema failures share the 400 contract of service-level validation.
    @app.exception_handler(RequestValidationError)
    async def handle_validation_exception(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        logger.warning("request_validation_failed", extra=_request_fields(request, 400))
        return error_response(
            400, ApiErrorCode.VALIDATION_ERROR, _first_validation_message(exc)
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        logger.exception("unhandled_exception", extra=_request_fields(request, 500))
        return error_response(500, ApiErrorCode.INTERNAL_SERVER_ERROR, "Server error")

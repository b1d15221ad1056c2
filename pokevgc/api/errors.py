"""Shared API error types and helpers."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from fastapi import HTTPException


class ApiErrorCode(StrEnum):
    """Machine-readable API error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_MISSING_TOKEN = "AUTH_MISSING_TOKEN"
    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"
    AUTH_TOKEN_INVALID = "AUTH_TOKEN_INVALID"
    AUTH_FORBIDDEN = "AUTH_FORBIDDEN"
    AUTH_EMAIL_TAKEN = "AUTH_EMAIL_TAKEN"
    NOT_FOUND = "NOT_FOUND"
    REQUEST_TOO_LARGE = "REQUEST_TOO_LARGE"
    DATA_INTEGRITY_ERROR = "DATA_INTEGRITY_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class ApiError(HTTPException):
    """HTTP exception carrying stable API error envelope."""

    def __init__(
        self, *, status_code: int, error_code: ApiErrorCode, message: str
    ) -> None:
        super().__init__(
            status_code=status_code,
            detail={"error_code": str(error_code), "message": message},
        )
        self.error_code = error_code


def validation_error(message: str) -> ApiError:
    """Build a 400 error for client-correctable input."""
    return ApiError(
        status_code=400, error_code=ApiErrorCode.VALIDATION_ERROR, message=message
    )


def unauthorized(
    message: str = "Unauthorized",
    error_code: ApiErrorCode = ApiErrorCode.AUTH_TOKEN_INVALID,
) -> ApiError:
    return ApiError(status_code=401, error_code=error_code, message=message)


def forbidden(message: str = "Forbidden") -> ApiError:
    return ApiError(
        status_code=403, error_code=ApiErrorCode.AUTH_FORBIDDEN, message=message
    )


def not_found(message: str) -> ApiError:
    return ApiError(status_code=404, error_code=ApiErrorCode.NOT_FOUND, message=message)


def data_integrity_error(message: str) -> ApiError:
    """Build a 500 error for reference data that breaks an assumed invariant."""
    return ApiError(
        status_code=500,
        error_code=ApiErrorCode.DATA_INTEGRITY_ERROR,
        message=message,
    )


def to_error_payload(detail: Any, status_code: int) -> dict[str, str]:
    """Normalize HTTP exception detail into stable error payload."""
    if isinstance(detail, dict):
        error_code = str(detail.get("error_code") or f"HTTP_{status_code}")
        message = str(detail.get("message") or detail.get("detail") or "HTTP error")
        return {"error_code": error_code, "message": message}
    return {
        "error_code": f"HTTP_{status_code}",
        "message": str(detail or "HTTP error"),
    }

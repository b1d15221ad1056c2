"""HTTP middleware and route dependencies that enforce auth on protected API routes."""

from __future__ import annotations

from typing import Callable

from fastapi import HTTPException, Request

from pokevgc.api.errors import ApiErrorCode, to_error_payload, unauthorized
from pokevgc.api.http_setup import error_response
from pokevgc.auth.models import Principal, Role
from pokevgc.auth.service import AuthService, require_role

PUBLIC_API_PATHS = frozenset({"/api/health", "/api/dmgcalc"})
_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def extract_bearer_token(authorization: str | None) -> str:
    """Extract bearer token from authorization header value."""
    parts = (authorization or "").strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return ""
    return parts[1].strip()


def is_protected_path(path: str) -> bool:
    return path.startswith("/api/") and path not in PUBLIC_API_PATHS


def create_auth_middleware(service: AuthService) -> Callable:
    """Create middleware that validates access tokens on protected paths."""

    async def auth_middleware(request: Request, call_next: Callable):
        """Validate bearer token and attach the principal to request state."""
        if not is_protected_path(request.url.path):
            return await call_next(request)

        token = extract_bearer_token(request.headers.get("authorization"))
        if not token:
            return error_response(
                401, ApiErrorCode.AUTH_MISSING_TOKEN, "Unauthorized", _CHALLENGE
            )

        try:
            principal = service.verify(token)
        except HTTPException as exc:
            payload = to_error_payload(exc.detail, exc.status_code)
            return error_response(
                exc.status_code, payload["error_code"], payload["message"], _CHALLENGE
            )

        request.state.principal = principal
        return await call_next(request)

    return auth_middleware


def current_principal(request: Request) -> Principal:
    """Dependency returning the principal attached by the auth middleware."""
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise unauthorized(error_code=ApiErrorCode.AUTH_MISSING_TOKEN)
    return principal


def role_required(role: Role) -> Callable[[Request], Principal]:
    """Build a dependency that admits only principals holding ``role``."""

    def dependency(request: Request) -> Principal:
        return require_role(getattr(request.state, "principal", None), role)

    return dependency

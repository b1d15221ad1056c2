"""Authentication service for registration, login, token rotation and verification."""

from __future__ import annotations

import logging
import re
import time
from typing import Callable, Protocol

from pokevgc.api.errors import (
    ApiError,
    ApiErrorCode,
    forbidden,
    not_found,
    unauthorized,
    validation_error,
)
from pokevgc.auth.models import (
    AuthSession,
    AuthUser,
    IssuedTokens,
    Principal,
    RefreshTokenRecord,
    Role,
    RotatedRefreshToken,
)
from pokevgc.core.config import AuthConfig
from pokevgc.core.security import (
    build_signed_token,
    decode_signed_token,
    hash_password,
    new_refresh_token,
    verify_password,
)

LOGGER = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
NAME_MAX_LENGTH = 20
EMAIL_MAX_LENGTH = 200
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 200


class AuthStore(Protocol):
    def get_user_by_email(self, email: str) -> AuthUser | None: ...

    def get_user_by_id(self, user_id: int) -> AuthUser | None: ...

    def create_user(
        self, *, name: str, email: str, password_hash: str, role: Role
    ) -> AuthUser | None: ...

    def list_users(self, limit: int = 500) -> list[AuthUser]: ...

    def set_role(self, user_id: int, role: Role) -> bool: ...

    def save_refresh_token(self, record: RefreshTokenRecord) -> None: ...

    def consume_refresh_token(self, token: str) -> RefreshTokenRecord | None: ...

    def delete_refresh_token(self, token: str) -> None: ...


def _invalid_credentials() -> ApiError:
    return unauthorized(
        "Invalid credentials", error_code=ApiErrorCode.AUTH_INVALID_CREDENTIALS
    )


def _invalid_refresh_token() -> ApiError:
    return unauthorized("Invalid or expired refresh token")


class AuthService:
    """Issues, verifies, rotates and revokes session credentials."""

    def __init__(
        self,
        repo: AuthStore,
        config: AuthConfig,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._repo = repo
        self._config = config
        self._clock = clock

    def bootstrap_admin_user(self) -> None:
        """Ensure the configured admin account exists."""
        if not self._config.admin_email or not self._config.admin_password:
            return
        existing = self._repo.get_user_by_email(self._config.admin_email)
        if existing is not None:
            return
        self._repo.create_user(
            name="admin",
            email=self._config.admin_email,
            password_hash=hash_password(self._config.admin_password),
            role=Role.ADMIN,
        )
        LOGGER.info("bootstrap_admin_created")

    def register(self, name: str, email: str, password: str) -> AuthUser:
        """Create a player account after validating the submitted fields."""
        trimmed_name = name.strip()
        trimmed_email = email.strip().lower()
        if not trimmed_name or len(trimmed_name) > NAME_MAX_LENGTH:
            raise validation_error(f"Name is required (max {NAME_MAX_LENGTH} chars)")
        if len(trimmed_email) > EMAIL_MAX_LENGTH or not EMAIL_RE.match(trimmed_email):
            raise validation_error("Invalid email")
        if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
            raise validation_error(
                f"Password must be {PASSWORD_MIN_LENGTH}-{PASSWORD_MAX_LENGTH} characters"
            )
        try:
            password.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise validation_error("Password must be valid UTF-8 text") from exc

        user = None
        if self._repo.get_user_by_email(trimmed_email) is None:
            user = self._repo.create_user(
                name=trimmed_name,
                email=trimmed_email,
                password_hash=hash_password(password),
                role=Role.PLAYER,
            )
        if user is None:
            raise ApiError(
                status_code=409,
                error_code=ApiErrorCode.AUTH_EMAIL_TAKEN,
                message="Email already registered",
            )
        LOGGER.info("user_registered", extra={"user_id": user.user_id})
        return user

    def login(self, email: str, password: str) -> AuthSession:
        """Authenticate credentials and issue access/refresh token pair."""
        trimmed_email = email.strip().lower()
        if not trimmed_email or not password:
            raise validation_error("Email and password required")

        user = self._repo.get_user_by_email(trimmed_email)
        if user is None or not verify_password(password, user.password_hash):
            raise _invalid_credentials()

        tokens = self.issue(user)
        LOGGER.info("login_succeeded", extra={"user_id": user.user_id})
        return self._session(user, tokens.access_token, tokens.refresh_token)

    def issue(self, user: AuthUser) -> IssuedTokens:
        """Sign an access token and persist a new refresh token for ``user``."""
        return IssuedTokens(
            access_token=self._sign_access_token(user),
            refresh_token=self._issue_refresh_token(user.user_id),
        )

    def verify(self, access_token: str) -> Principal:
        """Validate an access token; every failure is the same 401."""
        try:
            payload = decode_signed_token(
                access_token, self._config.secret_key, now=self._clock()
            )
        except ValueError as exc:
            raise unauthorized() from exc

        if payload.get("iss") != self._config.issuer or payload.get("type") != "access":
            raise unauthorized()
        try:
            return Principal(
                user_id=int(str(payload.get("sub"))),
                role=Role(str(payload.get("role"))),
            )
        except ValueError as exc:
            raise unauthorized() from exc

    def rotate(self, refresh_token: str) -> RotatedRefreshToken | None:
        """Consume ``refresh_token`` and issue its replacement.

        Returns ``None`` when the token is unknown, already used or expired.
        The old row is deleted before the new one is inserted, so a failure
        in between leaves the user logged out rather than holding two tokens.
        """
        record = self._repo.consume_refresh_token(refresh_token)
        if record is None:
            return None
        if record.expires_at <= int(self._clock()):
            LOGGER.info("refresh_token_expired", extra={"user_id": record.user_id})
            return None
        return RotatedRefreshToken(
            user_id=record.user_id,
            refresh_token=self._issue_refresh_token(record.user_id),
        )

    def refresh(self, refresh_token: str) -> AuthSession:
        """Rotate the refresh token and mint a fresh access token."""
        if not refresh_token:
            raise validation_error("Refresh token required")
        rotated = self.rotate(refresh_token)
        if rotated is None:
            raise _invalid_refresh_token()

        user = self._repo.get_user_by_id(rotated.user_id)
        if user is None:
            self._repo.delete_refresh_token(rotated.refresh_token)
            raise _invalid_refresh_token()
        return self._session(user, self._sign_access_token(user), rotated.refresh_token)

    def revoke(self, refresh_token: str) -> None:
        """Delete the refresh token; unknown tokens are ignored."""
        if not refresh_token:
            raise validation_error("Refresh token required")
        self._repo.delete_refresh_token(refresh_token)

    def list_users(self) -> list[AuthUser]:
        return self._repo.list_users()

    def set_role(self, user_id: int | None, role: str) -> None:
        """Change a user's role (admin operation)."""
        try:
            new_role = Role(role)
        except ValueError as exc:
            raise validation_error("Invalid input") from exc
        if not user_id:
            raise validation_error("Invalid input")
        if not self._repo.set_role(user_id, new_role):
            raise not_found(f"User not found: {user_id}")
        LOGGER.info("role_changed", extra={"user_id": user_id, "role": str(new_role)})

    def _sign_access_token(self, user: AuthUser) -> str:
        now_ts = int(self._clock())
        payload = {
            "iss": self._config.issuer,
            "sub": str(user.user_id),
            "role": str(user.role),
            "type": "access",
            "iat": now_ts,
            "exp": now_ts + self._config.access_token_ttl_seconds,
        }
        return build_signed_token(payload, self._config.secret_key)

    def _issue_refresh_token(self, user_id: int) -> str:
        token = new_refresh_token()
        self._repo.save_refresh_token(
            RefreshTokenRecord(
                token=token,
                user_id=user_id,
                expires_at=int(self._clock()) + self._config.refresh_token_ttl_seconds,
            )
        )
        return token

    def _session(self, user: AuthUser, access_token: str, refresh_token: str) -> AuthSession:
        return AuthSession(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
            expires_in=self._config.access_token_ttl_seconds,
            user=user.summary(),
        )


def require_role(principal: Principal | None, role: Role) -> Principal:
    """Authorize ``principal`` for ``role``: 401 without identity, 403 on mismatch."""
    if principal is None:
        raise unauthorized()
    if principal.role is not role:
        raise forbidden()
    return principal

"""Pydantic models for authentication domain."""

from __future__ import annotations

from enum import StrEnum

from pydantic import AliasChoices, BaseModel, Field


class Role(StrEnum):
    """Closed set of account roles."""

    PLAYER = "player"
    ADMIN = "admin"


class AuthUser(BaseModel):
    """Persisted auth user model."""

    user_id: int
    name: str
    email: str
    password_hash: str
    role: Role = Role.PLAYER

    def summary(self) -> dict[str, int | str]:
        """Return the public fields exposed to clients."""
        return {
            "id": self.user_id,
            "name": self.name,
            "email": self.email,
            "role": str(self.role),
        }


class Principal(BaseModel):
    """Identity resolved from a verified access token."""

    user_id: int
    role: Role


class RegisterRequest(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""


class LoginRequest(BaseModel):
    """Login request payload."""

    email: str = ""
    password: str = ""


class RefreshRequest(BaseModel):
    """Refresh or logout request payload carrying a refresh token."""

    refresh_token: str = Field(
        default="",
        validation_alias=AliasChoices("refreshToken", "refresh_token"),
    )


class SetRoleRequest(BaseModel):
    user_id: int | None = Field(
        default=None, validation_alias=AliasChoices("userId", "user_id")
    )
    role: str = ""


class IssuedTokens(BaseModel):
    """Fresh access/refresh token pair."""

    access_token: str
    refresh_token: str


class RotatedRefreshToken(BaseModel):
    """Result of consuming a refresh token and issuing its replacement."""

    user_id: int
    refresh_token: str


class AuthSession(BaseModel):
    """Auth session returned by login and refresh."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: dict[str, int | str]


class RefreshTokenRecord(BaseModel):
    """Refresh token persistence record."""

    token: str
    user_id: int
    expires_at: int

"""Pydantic API response models used in OpenAPI contracts."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Response model serialized with the camelCase names the web client reads."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiErrorResponse(BaseModel):
    """Stable error envelope for API responses."""

    error_code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error message")


class HealthResponse(BaseModel):
    status: Literal["ok"]


class SuccessResponse(BaseModel):
    success: Literal[True] = True


class UserSummaryResponse(BaseModel):
    """Public view of a user account."""

    id: int
    name: str
    email: str
    role: str


class AuthSessionResponse(_CamelModel):
    """Authentication session response payload."""

    access_token: str
    refresh_token: str
    token_type: str
    expires_in: int
    user: UserSummaryResponse


class PrincipalResponse(_CamelModel):
    user_id: int
    role: str


class AuthMeResponse(BaseModel):
    """Current principal resolved from the bearer token."""

    user: PrincipalResponse


class UsersListResponse(BaseModel):
    items: list[UserSummaryResponse]


class DamageDetailsResponse(BaseModel):
    """Intermediate factors of a damage calculation."""

    base_damage: int
    stab: float
    type_multiplier: float


class DamageCalcResponse(BaseModel):
    damage: int
    details: DamageDetailsResponse

"""Public API response contracts."""

from pokevgc.api.contracts.models import (
    ApiErrorResponse,
    AuthMeResponse,
    AuthSessionResponse,
    DamageCalcResponse,
    DamageDetailsResponse,
    HealthResponse,
    PrincipalResponse,
    SuccessResponse,
    UserSummaryResponse,
    UsersListResponse,
)

__all__ = [
    "ApiErrorResponse",
    "AuthMeResponse",
    "AuthSessionResponse",
    "DamageCalcResponse",
    "DamageDetailsResponse",
    "HealthResponse",
    "PrincipalResponse",
    "SuccessResponse",
    "UserSummaryResponse",
    "UsersListResponse",
]

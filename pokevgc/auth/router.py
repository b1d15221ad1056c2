"""Authentication and account administration API routers."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from pokevgc.api.contracts import (
    ApiErrorResponse,
    AuthMeResponse,
    AuthSessionResponse,
    PrincipalResponse,
    SuccessResponse,
    UserSummaryResponse,
    UsersListResponse,
)
from pokevgc.auth.middleware import current_principal, role_required
from pokevgc.auth.models import (
    LoginRequest,
    Principal,
    RefreshRequest,
    RegisterRequest,
    Role,
    SetRoleRequest,
)
from pokevgc.auth.service import AuthService


def create_auth_router(service: AuthService) -> APIRouter:
    """Build router with register/login/refresh/logout endpoints."""
    router = APIRouter(prefix="/auth", tags=["auth"])

    @router.post(
        "/register",
        status_code=201,
        response_model=SuccessResponse,
        responses={400: {"model": ApiErrorResponse}, 409: {"model": ApiErrorResponse}},
    )
    def register(req: RegisterRequest) -> SuccessResponse:
        service.register(req.name, req.email, req.password)
        return SuccessResponse()

    @router.post(
        "/login",
        response_model=AuthSessionResponse,
        responses={400: {"model": ApiErrorResponse}, 401: {"model": ApiErrorResponse}},
    )
    def login(req: LoginRequest) -> AuthSessionResponse:
        """Authenticate user and return token pair."""
        session = service.login(req.email, req.password)
        return AuthSessionResponse(**session.model_dump())

    @router.post(
        "/refresh",
        response_model=AuthSessionResponse,
        responses={400: {"model": ApiErrorResponse}, 401: {"model": ApiErrorResponse}},
    )
    def refresh(req: RefreshRequest) -> AuthSessionResponse:
        """Rotate refresh token and issue new session tokens."""
        session = service.refresh(req.refresh_token)
        return AuthSessionResponse(**session.model_dump())

    @router.post(
        "/logout",
        response_model=SuccessResponse,
        responses={400: {"model": ApiErrorResponse}},
    )
    def logout(req: RefreshRequest) -> SuccessResponse:
        """Invalidate supplied refresh token."""
        service.revoke(req.refresh_token)
        return SuccessResponse()

    return router


def create_account_router(service: AuthService) -> APIRouter:
    """Build router for the current principal and admin-only user management."""
    router = APIRouter(prefix="/api", tags=["accounts"])

    @router.get(
        "/me",
        response_model=AuthMeResponse,
        responses={401: {"model": ApiErrorResponse}},
    )
    def me(principal: Principal = Depends(current_principal)) -> AuthMeResponse:
        """Return current authenticated principal from access token."""
        return AuthMeResponse(
            user=PrincipalResponse(user_id=principal.user_id, role=str(principal.role))
        )

    @router.get(
        "/admin/users",
        response_model=UsersListResponse,
        responses={401: {"model": ApiErrorResponse}, 403: {"model": ApiErrorResponse}},
    )
    def list_users(
        _: Principal = Depends(role_required(Role.ADMIN)),
    ) -> UsersListResponse:
        items = [UserSummaryResponse(**user.summary()) for user in service.list_users()]
        return UsersListResponse(items=items)

    @router.post(
        "/admin/set-role",
        response_model=SuccessResponse,
        responses={
            400: {"model": ApiErrorResponse},
            401: {"model": ApiErrorResponse},
            403: {"model": ApiErrorResponse},
            404: {"model": ApiErrorResponse},
        },
    )
    def set_role(
        req: SetRoleRequest,
        _: Principal = Depends(role_required(Role.ADMIN)),
    ) -> SuccessResponse:
        """Promote or demote a user."""
        service.set_role(req.user_id, req.role)
        return SuccessResponse()

    return router

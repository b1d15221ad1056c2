from __future__ import annotations

from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute

from pokevgc.api.errors import ApiError
from pokevgc.auth.models import (
    LoginRequest,
    Principal,
    RefreshRequest,
    RegisterRequest,
    Role,
    SetRoleRequest,
)
from pokevgc.battle.models import DamageCalcRequest
from pokevgc.battle.repository import ReferenceDataRepository
from pokevgc.core.config import (
    AppConfig,
    AuthConfig,
    DatabaseConfig,
    LoggingConfig,
    SecurityConfig,
)
from web_api import create_app

ADMIN_EMAIL = "oak@pallet.lab"
ADMIN_PASSWORD = "professor-oak-1"


def _config(database_path: Path) -> AppConfig:
    return AppConfig(
        auth=AuthConfig(
            secret_key="route-secret",
            access_token_ttl_seconds=900,
            refresh_token_ttl_days=7,
            issuer="pokevgc-test",
            admin_email=ADMIN_EMAIL,
            admin_password=ADMIN_PASSWORD,
        ),
        database=DatabaseConfig(sqlite_path=str(database_path)),
        logging=LoggingConfig(level="WARNING"),
        security=SecurityConfig(
            cors_allowed_origins=["http://localhost:3000"],
            request_max_bytes=1024,
        ),
    )


def _endpoint(app: FastAPI, path: str, method: str = "POST"):
    route = next(
        (
            candidate
            for candidate in app.routes
            if isinstance(candidate, APIRoute)
            and candidate.path == path
            and method in candidate.methods
        ),
        None,
    )
    assert route is not None, f"{method} {path} not registered"
    return route.endpoint


@pytest.fixture
def app(tmp_path: Path) -> FastAPI:
    database_path = tmp_path / "pokevgc.db"
    reference = ReferenceDataRepository(database_path)
    reference.load_reference_data(
        {
            "types": [{"name": "Electric", "strength": ["Water"], "weakness": ["Ground"]}],
            "moves": [
                {"code": 85, "name": "Thunderbolt", "power": 90, "accuracy": 100, "type": "Electric", "category": "Special"}
            ],
            "pokemon": [
                {
                    "sid": 25,
                    "name": "Pikachu",
                    "types": ["Electric"],
                    "stats": {"hp": 35, "attack": 55, "sp_atk": 50, "defence": 40, "sp_def": 50, "speed": 90},
                    "moves": [85],
                },
                {
                    "sid": 74,
                    "name": "Geodude",
                    "types": ["Rock", "Ground"],
                    "stats": {"hp": 40, "attack": 80, "sp_atk": 30, "defence": 100, "sp_def": 30, "speed": 20},
                    "moves": [],
                },
            ],
        }
    )
    reference.close()
    return create_app(_config(database_path))


def test_health_endpoint_contract_function(app: FastAPI) -> None:
    payload = _endpoint(app, "/api/health", "GET")()

    assert payload.model_dump() == {"status": "ok"}


def test_register_login_refresh_logout_flow(app: FastAPI) -> None:
    register = _endpoint(app, "/auth/register")
    login = _endpoint(app, "/auth/login")
    refresh = _endpoint(app, "/auth/refresh")
    logout = _endpoint(app, "/auth/logout")

    assert register(RegisterRequest(name="Ash", email="ash@pallet.town", password="pikachu-123")).success
    session = login(LoginRequest(email="ash@pallet.town", password="pikachu-123"))
    body = session.model_dump(by_alias=True)
    assert set(body) == {"accessToken", "refreshToken", "tokenType", "expiresIn", "user"}
    assert body["user"]["role"] == "player"

    rotated = refresh(RefreshRequest.model_validate({"refreshToken": session.refresh_token}))
    assert rotated.refresh_token != session.refresh_token
    with pytest.raises(ApiError) as reused:
        refresh(RefreshRequest.model_validate({"refreshToken": session.refresh_token}))
    assert reused.value.status_code == 401

    assert logout(RefreshRequest.model_validate({"refresh_token": rotated.refresh_token})).success
    with pytest.raises(ApiError) as revoked:
        refresh(RefreshRequest.model_validate({"refreshToken": rotated.refresh_token}))
    assert revoked.value.status_code == 401


def test_me_returns_principal(app: FastAPI) -> None:
    me = _endpoint(app, "/api/me", "GET")

    payload = me(principal=Principal(user_id=3, role=Role.PLAYER))

    assert payload.model_dump(by_alias=True) == {"user": {"userId": 3, "role": "player"}}


def test_admin_can_list_users_and_promote(app: FastAPI) -> None:
    register = _endpoint(app, "/auth/register")
    list_users = _endpoint(app, "/api/admin/users", "GET")
    set_role = _endpoint(app, "/api/admin/set-role")
    admin = Principal(user_id=1, role=Role.ADMIN)
    register(RegisterRequest(name="Misty", email="misty@cerulean.gym", password="starmie-123"))

    users = list_users(_=admin).items
    misty = next(user for user in users if user.email == "misty@cerulean.gym")
    assert [user.role for user in users] == ["admin", "player"]

    set_role(req=SetRoleRequest.model_validate({"userId": misty.id, "role": "admin"}), _=admin)

    assert {user.role for user in list_users(_=admin).items} == {"admin"}


def test_bootstrap_admin_can_log_in(app: FastAPI) -> None:
    login = _endpoint(app, "/auth/login")

    session = login(LoginRequest(email=ADMIN_EMAIL, password=ADMIN_PASSWORD))

    assert session.user.role == "admin"


def test_login_with_unencodable_password_is_uniform_401(app: FastAPI) -> None:
    login = _endpoint(app, "/auth/login")
    password = "\ud800xxxxxxxx"

    with pytest.raises(ApiError) as known:
        login(LoginRequest(email=ADMIN_EMAIL, password=password))
    with pytest.raises(ApiError) as unknown:
        login(LoginRequest(email="nobody@pallet.lab", password=password))

    assert known.value.status_code == unknown.value.status_code == 401
    assert known.value.detail == unknown.value.detail


def test_register_rejects_unencodable_password(app: FastAPI) -> None:
    register = _endpoint(app, "/auth/register")

    with pytest.raises(ApiError) as exc:
        register(RegisterRequest(name="Brock", email="brock@pewter.gym", password="\ud800onix-rock"))

    assert exc.value.status_code == 400


def test_damage_calc_endpoint(app: FastAPI) -> None:
    damage_calc = _endpoint(app, "/api/dmgcalc")

    result = damage_calc(
        DamageCalcRequest.model_validate(
            {"attacker": "Pikachu", "defender": "Geodude", "move": "Thunderbolt", "attacker_level": 50}
        )
    )

    assert result.model_dump(by_alias=True) == {
        "damage": 51,
        "details": {"base_damage": 68, "stab": 1.5, "type_multiplier": 0.5},
    }


def test_damage_calc_endpoint_rejects_unknown_pokemon(app: FastAPI) -> None:
    damage_calc = _endpoint(app, "/api/dmgcalc")

    with pytest.raises(ApiError) as exc:
        damage_calc(DamageCalcRequest(attacker="Agumon", defender="Geodude", move="Thunderbolt"))

    assert exc.value.status_code == 400


def test_cors_is_outermost_middleware(app: FastAPI) -> None:
    assert app.user_middleware[0].cls is CORSMiddleware
    dispatch_names = [
        getattr(middleware.kwargs.get("dispatch"), "__name__", "")
        for middleware in app.user_middleware[1:]
    ]
    assert dispatch_names[-1] == "auth_middleware"


def test_openapi_contains_error_contracts(app: FastAPI) -> None:
    schema = app.openapi()

    login = schema["paths"]["/auth/login"]["post"]
    set_role = schema["paths"]["/api/admin/set-role"]["post"]
    dmgcalc = schema["paths"]["/api/dmgcalc"]["post"]

    assert login["responses"]["401"]["content"]["application/json"]["schema"]["$ref"].endswith(
        "ApiErrorResponse"
    )
    assert set(set_role["responses"]) >= {"200", "400", "401", "403", "404"}
    assert dmgcalc["responses"]["200"]["content"]["application/json"]["schema"]["$ref"].endswith(
        "DamageCalcResponse"
    )

from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pokevgc.api.contracts import HealthResponse
from pokevgc.api.http_setup import register_exception_handlers, register_http_middleware
from pokevgc.auth.middleware import create_auth_middleware
from pokevgc.auth.repository import AuthRepository
from pokevgc.auth.router import create_account_router, create_auth_router
from pokevgc.auth.service import AuthService
from pokevgc.battle.calculator import DamageCalculator
from pokevgc.battle.repository import ReferenceDataRepository
from pokevgc.battle.router import create_battle_router
from pokevgc.core.config import AppConfig
from pokevgc.core.logging import setup_logging

LOGGER = logging.getLogger(__name__)

APP_ROOT = Path(__file__).resolve().parent


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Wire repositories, services and routers into a FastAPI app."""
    load_dotenv()
    app_config = config or AppConfig.from_env()
    setup_logging(app_config.logging.level)

    app = FastAPI(title="Pokémon VGC API", version="1.0.0")

    database_path = app_config.database.resolve_path(APP_ROOT)
    auth_repo = AuthRepository(database_path)
    auth_service = AuthService(auth_repo, app_config.auth)
    auth_service.bootstrap_admin_user()
    reference_repo = ReferenceDataRepository(database_path)

    # Last added runs outermost: CORS, then logging/size limits, then auth.
    app.middleware("http")(create_auth_middleware(auth_service))
    register_http_middleware(app, config=app_config, logger=LOGGER)
    register_exception_handlers(app, logger=LOGGER)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_config.security.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    app.include_router(create_auth_router(auth_service))
    app.include_router(create_account_router(auth_service))
    app.include_router(create_battle_router(DamageCalculator(reference_repo)))

    @app.get("/api/health", response_model=HealthResponse, tags=["health"])
    def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.on_event("shutdown")
    def close_repositories() -> None:
        auth_repo.close()
        reference_repo.close()

    return app

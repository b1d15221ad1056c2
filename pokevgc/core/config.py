"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEV_SECRET_KEY = "dev-access-secret-change-me"
DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"


def _env_str(name: str, default: str = "") -> str:
    return os.getenv(name, "").strip() or default


def _env_int(name: str, default: int, *, minimum: int = 1) -> int:
    raw = os.getenv(name, "").strip()
    return max(minimum, int(raw)) if raw else default


def _env_list(name: str, default: str) -> list[str]:
    return [item.strip() for item in _env_str(name, default).split(",") if item.strip()]


@dataclass(frozen=True)
class AuthConfig:
    """Token signing and lifetimes, plus the optional bootstrap admin."""

    secret_key: str
    access_token_ttl_seconds: int
    refresh_token_ttl_days: int
    issuer: str
    admin_email: str = ""
    admin_password: str = ""

    @property
    def refresh_token_ttl_seconds(self) -> int:
        return self.refresh_token_ttl_days * 24 * 60 * 60

    @classmethod
    def from_env(cls) -> "AuthConfig":
        return cls(
            secret_key=_env_str("AUTH_SECRET_KEY", DEV_SECRET_KEY),
            access_token_ttl_seconds=_env_int("AUTH_ACCESS_TOKEN_TTL_SECONDS", 900),
            refresh_token_ttl_days=_env_int("AUTH_REFRESH_TOKEN_TTL_DAYS", 7),
            issuer=_env_str("AUTH_ISSUER", "pokevgc"),
            admin_email=_env_str("AUTH_ADMIN_EMAIL").lower(),
            # Not stripped: surrounding spaces are part of the password.
            admin_password=os.getenv("AUTH_ADMIN_PASSWORD", ""),
        )


@dataclass(frozen=True)
class DatabaseConfig:
    """SQLite file holding users, refresh tokens and reference data."""

    sqlite_path: str

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        return cls(sqlite_path=_env_str("DATABASE_PATH", "runtime/pokevgc.db"))

    def resolve_path(self, root: Path) -> Path:
        """Relative paths are anchored at ``root``, not the working directory."""
        return (root / self.sqlite_path).resolve()


@dataclass(frozen=True)
class LoggingConfig:
    level: str

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(level=_env_str("LOG_LEVEL", "INFO"))


@dataclass(frozen=True)
class SecurityConfig:
    """API perimeter settings."""

    cors_allowed_origins: list[str]
    request_max_bytes: int

    @classmethod
    def from_env(cls) -> "SecurityConfig":
        return cls(
            cors_allowed_origins=_env_list("CORS_ALLOWED_ORIGINS", DEFAULT_CORS_ORIGINS),
            request_max_bytes=_env_int("REQUEST_MAX_BYTES", 1024 * 1024),
        )


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""

    auth: AuthConfig
    database: DatabaseConfig
    logging: LoggingConfig
    security: SecurityConfig

    @staticmethod
    def from_env() -> "AppConfig":
        """Build app config from process environment."""
        return AppConfig(
            auth=AuthConfig.from_env(),
            database=DatabaseConfig.from_env(),
            logging=LoggingConfig.from_env(),
            security=SecurityConfig.from_env(),
        )

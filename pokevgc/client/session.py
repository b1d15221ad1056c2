"""HTTP client that keeps one access/refresh session alive against the API.

The client holds at most one token pair. It logs out on its own when the
access token's ``exp`` claim passes, and on a 401 from a protected call it
tries exactly one silent refresh followed by one retry before giving up.
"""

from __future__ import annotations

import logging
import threading
import time
from enum import StrEnum
from threading import RLock
from typing import Any, Callable

import requests

from pokevgc.client.timer import ExpiryTimer, TimerFactory
from pokevgc.core.security import read_token_expiry

LOGGER = logging.getLogger(__name__)


class SessionState(StrEnum):
    LOGGED_OUT = "logged_out"
    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"


class ApiClientError(Exception):
    """Non-auth API failure surfaced to the caller."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class SessionExpiredError(Exception):
    """Raised when the session ended and the user must log in again."""


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.reason or "Request failed"
    if isinstance(payload, dict):
        return str(payload.get("message") or payload.get("error") or "Request failed")
    return "Request failed"


class SessionClient:
    """Session-aware API client with proactive expiry logout."""

    def __init__(
        self,
        base_url: str,
        *,
        http: requests.Session | None = None,
        timeout: float = 10.0,
        clock: Callable[[], float] = time.time,
        timer_factory: TimerFactory = threading.Timer,
        on_logout: Callable[[], None] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http or requests.Session()
        self._timeout = timeout
        self._on_logout = on_logout
        self._lock = RLock()
        self._state = SessionState.LOGGED_OUT
        self._access_token = ""
        self._refresh_token = ""
        self._user: dict[str, Any] | None = None
        self._expiry_timer = ExpiryTimer(
            self._expire, clock=clock, timer_factory=timer_factory
        )

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def access_token(self) -> str:
        with self._lock:
            return self._access_token

    @property
    def refresh_token(self) -> str:
        with self._lock:
            return self._refresh_token

    @property
    def user(self) -> dict[str, Any] | None:
        with self._lock:
            return self._user

    @property
    def is_logged_in(self) -> bool:
        return self.state is not SessionState.LOGGED_OUT

    def register(self, name: str, email: str, password: str) -> None:
        response = self._post("/auth/register", {"name": name, "email": email, "password": password})
        if not response.ok:
            raise ApiClientError(response.status_code, _error_message(response))

    def login(self, email: str, password: str) -> dict[str, Any]:
        """Log in and start a session; return the user summary."""
        response = self._post("/auth/login", {"email": email, "password": password})
        if not response.ok:
            raise ApiClientError(response.status_code, _error_message(response))
        self._apply_session(response.json())
        return self.user or {}

    def logout(self) -> None:
        """End the session locally and revoke the refresh token server-side."""
        with self._lock:
            refresh_token = self._refresh_token
            was_logged_in = self._state is not SessionState.LOGGED_OUT
            self._expiry_timer.cancel()
            self._state = SessionState.LOGGED_OUT
            self._access_token = ""
            self._refresh_token = ""
            self._user = None

        if refresh_token:
            try:
                self._post("/auth/logout", {"refreshToken": refresh_token})
            except requests.RequestException:
                LOGGER.warning("logout_request_failed", exc_info=True)
        if was_logged_in and self._on_logout is not None:
            self._on_logout()

    def request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """Send an authenticated request, refreshing the session once on 401."""
        token = self.access_token
        if not token:
            raise SessionExpiredError("Not logged in")

        response = self._send(method, path, token, **kwargs)
        if response.status_code != 401:
            return response

        if not self._refresh():
            self.logout()
            raise SessionExpiredError("Session expired")

        response = self._send(method, path, self.access_token, **kwargs)
        if response.status_code == 401:
            self.logout()
            raise SessionExpiredError("Session expired")
        return response

    def restore(self, access_token: str, refresh_token: str, user: dict[str, Any] | None = None) -> None:
        """Resume a session persisted by the caller (e.g. from disk)."""
        self._apply_session(
            {"accessToken": access_token, "refreshToken": refresh_token, "user": user}
        )

    def _refresh(self) -> bool:
        with self._lock:
            refresh_token = self._refresh_token
            if self._state is SessionState.LOGGED_OUT or not refresh_token:
                return False
            self._state = SessionState.REFRESHING

        try:
            response = self._post("/auth/refresh", {"refreshToken": refresh_token})
        except requests.RequestException:
            LOGGER.warning("refresh_request_failed", exc_info=True)
            return False
        if not response.ok:
            LOGGER.info("refresh_rejected", extra={"status_code": response.status_code})
            return False

        try:
            self._apply_session(response.json())
        except (ValueError, ApiClientError):
            LOGGER.warning("refresh_payload_invalid", exc_info=True)
            return False
        return True

    def _apply_session(self, payload: dict[str, Any]) -> None:
        if not isinstance(payload, dict):
            raise ApiClientError(502, "Malformed session payload")
        access_token = str(payload.get("accessToken") or "")
        refresh_token = str(payload.get("refreshToken") or "")
        if not access_token or not refresh_token:
            raise ApiClientError(502, "Malformed session payload")
        with self._lock:
            self._access_token = access_token
            self._refresh_token = refresh_token
            if payload.get("user") is not None:
                self._user = dict(payload["user"])
            self._state = SessionState.AUTHENTICATED
            expires_at = read_token_expiry(access_token)
            if expires_at is None:
                self._expiry_timer.cancel()
            else:
                self._expiry_timer.arm(expires_at)

    def _expire(self) -> None:
        LOGGER.info("access_token_expired")
        self.logout()

    def _send(self, method: str, path: str, token: str, **kwargs: Any) -> requests.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {token}"
        return self._http.request(
            method,
            f"{self._base_url}{path}",
            headers=headers,
            timeout=kwargs.pop("timeout", self._timeout),
            **kwargs,
        )

    def _post(self, path: str, body: dict[str, Any]) -> requests.Response:
        return self._http.request(
            "POST", f"{self._base_url}{path}", json=body, timeout=self._timeout
        )

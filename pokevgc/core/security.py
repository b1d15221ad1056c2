"""Security primitives for password hashing and token signing."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
import secrets
import time
from typing import Any

PBKDF2_ROUNDS = 120_000
REFRESH_TOKEN_BYTES = 48


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


def _b64url_decode(value: str) -> bytes:
    """Decode URL-safe base64 string with optional missing padding."""
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode((value + padding).encode("utf-8"))


def _password_bytes(password: str) -> bytes:
    # Lone surrogates from JSON input must hash, not raise.
    return password.encode("utf-8", "surrogatepass")


def hash_password(password: str) -> str:
    """Hash password using PBKDF2-HMAC-SHA256 with random salt."""
    salt = os.urandom(16)
    derived = hashlib.pbkdf2_hmac("sha256", _password_bytes(password), salt, PBKDF2_ROUNDS)
    return f"pbkdf2_sha256${PBKDF2_ROUNDS}${_b64url_encode(salt)}${_b64url_encode(derived)}"


def verify_password(password: str, stored_hash: str) -> bool:
    """Verify password against a stored PBKDF2 hash."""
    try:
        algo, rounds_raw, salt_b64, digest_b64 = stored_hash.split("$", 3)
        if algo != "pbkdf2_sha256":
            return False
        rounds = int(rounds_raw)
        salt = _b64url_decode(salt_b64)
        expected = _b64url_decode(digest_b64)
    except ValueError:
        return False

    derived = hashlib.pbkdf2_hmac("sha256", _password_bytes(password), salt, rounds)
    return hmac.compare_digest(derived, expected)


def new_refresh_token() -> str:
    """Return an opaque high-entropy refresh token value."""
    return secrets.token_hex(REFRESH_TOKEN_BYTES)


def build_signed_token(payload: dict[str, Any], secret_key: str) -> str:
    """Create compact signed token using JWT-like 3-part structure."""
    header = {"alg": "HS256", "typ": "JWT"}
    header_part = _b64url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_part = _b64url_encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    signing_input = f"{header_part}.{payload_part}".encode("utf-8")
    signature = hmac.new(secret_key.encode("utf-8"), signing_input, hashlib.sha256).digest()
    return f"{header_part}.{payload_part}.{_b64url_encode(signature)}"


def _split_token(token: str) -> tuple[str, str, str]:
    parts = (token or "").split(".")
    if len(parts) != 3:
        raise ValueError("Malformed token")
    return parts[0], parts[1], parts[2]


def _decode_payload(payload_part: str) -> dict[str, Any]:
    try:
        payload = json.loads(_b64url_decode(payload_part).decode("utf-8"))
    except ValueError as exc:
        raise ValueError("Invalid token payload") from exc
    if not isinstance(payload, dict):
        raise ValueError("Invalid token payload")
    return payload


def decode_signed_token(
    token: str, secret_key: str, *, now: float | None = None
) -> dict[str, Any]:
    """Decode and verify compact signed token, raising ``ValueError`` on failure.

    Tokens without an ``exp`` claim are rejected; every token this service
    issues carries one.
    """
    header_part, payload_part, signature_part = _split_token(token)

    signing_input = f"{header_part}.{payload_part}".encode("utf-8")
    expected_sig = hmac.new(secret_key.encode("utf-8"), signing_input, hashlib.sha256).digest()
    try:
        got_sig = _b64url_decode(signature_part)
    except ValueError as exc:
        raise ValueError("Invalid token signature") from exc
    if not hmac.compare_digest(expected_sig, got_sig):
        raise ValueError("Invalid token signature")

    payload = _decode_payload(payload_part)

    try:
        exp = int(payload.get("exp") or 0)
    except (TypeError, ValueError) as exc:
        raise ValueError("Invalid token expiry") from exc
    current = time.time() if now is None else now
    if exp <= 0 or exp <= current:
        raise ValueError("Token expired")

    return payload


def read_token_expiry(token: str) -> int | None:
    """Return the ``exp`` claim without checking the signature.

    Advisory only: clients use it to schedule logout, never to trust a token.
    """
    try:
        _, payload_part, _ = _split_token(token)
        exp = int(_decode_payload(payload_part).get("exp") or 0)
    except (TypeError, ValueError):
        return None
    return exp or None

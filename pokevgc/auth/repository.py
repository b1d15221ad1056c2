"""Repository for auth users and refresh token persistence."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from threading import Lock

from pokevgc.auth.models import AuthUser, RefreshTokenRecord, Role
from pokevgc.core.migrations import connect


def _user_from_row(row: sqlite3.Row) -> AuthUser:
    return AuthUser(
        user_id=int(row["id"]),
        name=str(row["name"]),
        email=str(row["email"]),
        password_hash=str(row["pass"] or ""),
        role=Role(str(row["role"])),
    )


class AuthRepository:
    """SQLite-backed store for user credentials and refresh tokens."""

    def __init__(self, database_path: Path) -> None:
        self._connection = connect(database_path)
        self._lock = Lock()

    def get_user_by_email(self, email: str) -> AuthUser | None:
        """Get user by normalized email."""
        key = email.strip().lower()
        with self._lock:
            row = self._connection.execute(
                "SELECT id, name, email, pass, role FROM users WHERE email = ? LIMIT 1",
                (key,),
            ).fetchone()
        return _user_from_row(row) if row else None

    def get_user_by_id(self, user_id: int) -> AuthUser | None:
        with self._lock:
            row = self._connection.execute(
                "SELECT id, name, email, pass, role FROM users WHERE id = ? LIMIT 1",
                (user_id,),
            ).fetchone()
        return _user_from_row(row) if row else None

    def create_user(
        self, *, name: str, email: str, password_hash: str, role: Role
    ) -> AuthUser | None:
        """Insert a new user, returning ``None`` when the email is already taken."""
        key = email.strip().lower()
        with self._lock:
            try:
                cursor = self._connection.execute(
                    "INSERT INTO users (name, email, pass, role) VALUES (?, ?, ?, ?)",
                    (name, key, password_hash, str(role)),
                )
            except sqlite3.IntegrityError:
                self._connection.rollback()
                return None
            self._connection.commit()
            user_id = int(cursor.lastrowid or 0)
        return AuthUser(
            user_id=user_id,
            name=name,
            email=key,
            password_hash=password_hash,
            role=role,
        )

    def list_users(self, limit: int = 500) -> list[AuthUser]:
        with self._lock:
            rows = self._connection.execute(
                "SELECT id, name, email, pass, role FROM users ORDER BY id ASC LIMIT ?",
                (limit,),
            ).fetchall()
        return [_user_from_row(row) for row in rows]

    def set_role(self, user_id: int, role: Role) -> bool:
        """Update a user's role; return whether the user exists."""
        with self._lock:
            cursor = self._connection.execute(
                "UPDATE users SET role = ? WHERE id = ?",
                (str(role), user_id),
            )
            self._connection.commit()
        return cursor.rowcount > 0

    def save_refresh_token(self, record: RefreshTokenRecord) -> None:
        with self._lock:
            self._connection.execute(
                "INSERT INTO refresh_tokens (user_id, token, expires_at) VALUES (?, ?, ?)",
                (record.user_id, record.token, record.expires_at),
            )
            self._connection.commit()

    def consume_refresh_token(self, token: str) -> RefreshTokenRecord | None:
        """Atomically look up and delete a refresh token row.

        Only one caller can consume a given token; every later caller gets
        ``None``.
        """
        with self._lock:
            row = self._connection.execute(
                "SELECT token, user_id, expires_at FROM refresh_tokens WHERE token = ? LIMIT 1",
                (token,),
            ).fetchone()
            if row is None:
                return None
            cursor = self._connection.execute(
                "DELETE FROM refresh_tokens WHERE token = ?",
                (token,),
            )
            self._connection.commit()
            if cursor.rowcount != 1:
                return None
        return RefreshTokenRecord(
            token=str(row["token"]),
            user_id=int(row["user_id"]),
            expires_at=int(row["expires_at"]),
        )

    def delete_refresh_token(self, token: str) -> None:
        """Remove a refresh token row if present."""
        with self._lock:
            self._connection.execute(
                "DELETE FROM refresh_tokens WHERE token = ?",
                (token,),
            )
            self._connection.commit()

    def close(self) -> None:
        with self._lock:
            self._connection.close()

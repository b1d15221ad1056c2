from __future__ import annotations

import sqlite3
from pathlib import Path

from pokevgc.core.migrations import apply_migrations, connect


def test_apply_migrations_creates_auth_and_reference_tables(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "pokevgc.db"

    first = apply_migrations(db_path)
    second = apply_migrations(db_path)

    assert first == ["0001_auth.sql", "0002_reference_data.sql"]
    assert second == []

    connection = sqlite3.connect(str(db_path))
    try:
        cursor = connection.cursor()
        tables = {
            row[0]
            for row in cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            ).fetchall()
        }

        assert {
            "schema_migrations",
            "users",
            "refresh_tokens",
            "pokemon",
            "bst",
            "types",
            "pokemon_types",
            "moves",
            "pokemon_moves",
        } <= tables

        migration_ids = [
            row[0]
            for row in cursor.execute(
                "SELECT migration_id FROM schema_migrations ORDER BY migration_id"
            ).fetchall()
        ]
        assert migration_ids == ["0001_auth.sql", "0002_reference_data.sql"]
    finally:
        connection.close()


def test_connect_enforces_foreign_keys(tmp_path: Path) -> None:
    connection = connect(tmp_path / "pokevgc.db")
    try:
        assert connection.execute("PRAGMA foreign_keys").fetchone()[0] == 1
    finally:
        connection.close()


def test_refresh_tokens_are_removed_with_their_user(tmp_path: Path) -> None:
    connection = connect(tmp_path / "pokevgc.db")
    try:
        connection.execute(
            "INSERT INTO users (name, email, pass, role) VALUES ('Ash', 'ash@pallet.town', 'h', 'player')"
        )
        connection.execute(
            "INSERT INTO refresh_tokens (user_id, token, expires_at) VALUES (1, 'tok', 2000000000)"
        )
        connection.execute("DELETE FROM users WHERE id = 1")
        connection.commit()

        assert connection.execute("SELECT COUNT(*) FROM refresh_tokens").fetchone()[0] == 0
    finally:
        connection.close()

"""Ordered SQL migrations for the users, sessions and reference data tables."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from pathlib import Path

LOGGER = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "sql"
BUSY_TIMEOUT_MS = 5_000


def pending_migrations(connection: sqlite3.Connection) -> list[Path]:
    applied = {
        row[0] for row in connection.execute("SELECT migration_id FROM schema_migrations")
    }
    return [path for path in sorted(MIGRATIONS_DIR.glob("*.sql")) if path.name not in applied]


def apply_migrations(database_path: Path) -> list[str]:
    """Bring ``database_path`` up to date; return the ids applied by this call."""
    database_path.parent.mkdir(parents=True, exist_ok=True)
    applied: list[str] = []
    with closing(sqlite3.connect(str(database_path))) as connection:
        connection.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
              migration_id TEXT PRIMARY KEY,
              applied_at INTEGER NOT NULL
            )
            """
        )
        connection.commit()
        for migration in pending_migrations(connection):
            # executescript commits first, so each file lands on its own.
            connection.executescript(migration.read_text(encoding="utf-8"))
            connection.execute(
                "INSERT INTO schema_migrations (migration_id, applied_at) VALUES (?, strftime('%s','now'))",
                (migration.name,),
            )
            connection.commit()
            LOGGER.info("migration_applied %s", migration.name)
            applied.append(migration.name)
    return applied


def connect(database_path: Path) -> sqlite3.Connection:
    """Migrate, then open a connection shared across request threads."""
    apply_migrations(database_path)
    connection = sqlite3.connect(
        str(database_path),
        check_same_thread=False,
        timeout=BUSY_TIMEOUT_MS / 1000,
    )
    connection.row_factory = sqlite3.Row
    connection.execute("PRAGMA foreign_keys = ON")
    return connection

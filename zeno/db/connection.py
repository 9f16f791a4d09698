"""Database connection management — SQLite store for users, emails, actions."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

from zeno.config import DatabaseConfig

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"
MIGRATIONS = [
    "001_schema.sql",
    "002_action_queue.sql",
]


class Database:
    """Thin wrapper around sqlite3 — one short-lived connection per call.

    Constructed once per process (see ``zeno.main.create_app``) and passed
    to every repository that needs it.
    """

    def __init__(self, config: DatabaseConfig):
        self.path = Path(config.sqlite_path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection (context manager); commits on success."""
        conn = sqlite3.connect(str(self.path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def execute(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        """Execute a query and return results as list of dicts."""
        with self.connection() as conn:
            cursor = conn.execute(sql, params)
            if cursor.description:
                columns = [d[0] for d in cursor.description]
                return [dict(zip(columns, row)) for row in cursor.fetchall()]
            return []

    def execute_one(self, sql: str, params: tuple = ()) -> dict[str, Any] | None:
        """Execute a query and return the first row as a dict, or None."""
        results = self.execute(sql, params)
        return results[0] if results else None

    def execute_write(self, sql: str, params: tuple = ()) -> int:
        """Execute an INSERT/UPDATE/DELETE and return lastrowid or rowcount."""
        with self.connection() as conn:
            cursor = conn.execute(sql, params)
            return cursor.lastrowid or cursor.rowcount

    def initialize_schema(self) -> None:
        """Create tables if they don't exist."""
        for migration_file in MIGRATIONS:
            migration_path = MIGRATIONS_DIR / migration_file
            if not migration_path.exists():
                logger.warning("Migration file not found: %s", migration_path)
                continue
            with self.connection() as conn:
                conn.executescript(migration_path.read_text())
            logger.info("Applied migration: %s", migration_file)

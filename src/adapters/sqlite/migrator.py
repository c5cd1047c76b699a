"""
SQLite schema migrator.

Applies the Up part of each ``migrations/*.sql`` file once, in filename
order. Each file runs in its own transaction together with its
``_migrations`` bookkeeping row, so a failing file leaves neither
partial schema nor a record behind.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from src.adapters.sqlite_db import connect
from src.domain.errors import StorageError

logger = logging.getLogger(__name__)

DOWN_MARKER = "-- Down"


def split_statements(script: str) -> list[str]:
    """Split a SQL script into single statements, one per execute() call."""
    statements: list[str] = []
    buffer = ""
    for line in script.splitlines(keepends=True):
        buffer += line
        if sqlite3.complete_statement(buffer):
            statements.append(buffer.strip())
            buffer = ""
    if buffer.strip():
        statements.append(buffer.strip())
    return statements


class SQLiteMigrator:
    def __init__(self, db_path: str, migrations_dir: str):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def run_migrations(self) -> list[str]:
        """Apply all pending migrations. Returns the filenames applied."""
        try:
            conn = connect(self.db_path)
        except sqlite3.Error as e:
            raise StorageError("Failed to open the database for migrations.") from e

        applied_now: list[str] = []
        try:
            self._ensure_migration_table(conn)
            applied = self._get_applied_migrations(conn)

            for path in sorted(self.migrations_dir.glob("*.sql")):
                if path.name in applied:
                    continue
                logger.info("Applying migration: %s", path.name)
                self._apply_migration(conn, path)
                applied_now.append(path.name)

            logger.info("All migrations applied (%d new).", len(applied_now))
        finally:
            conn.close()
        return applied_now

    def _ensure_migration_table(self, conn: sqlite3.Connection) -> None:
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS _migrations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    filename TEXT UNIQUE NOT NULL,
                    applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
        except sqlite3.Error as e:
            raise StorageError("Failed to create the migrations table.") from e

    def _get_applied_migrations(self, conn: sqlite3.Connection) -> set[str]:
        rows = conn.execute("SELECT filename FROM _migrations").fetchall()
        return {row["filename"] for row in rows}

    def _apply_migration(self, conn: sqlite3.Connection, path: Path) -> None:
        up_script = path.read_text().split(DOWN_MARKER)[0]
        try:
            conn.execute("BEGIN IMMEDIATE")
            for statement in split_statements(up_script):
                conn.execute(statement)
            conn.execute("INSERT INTO _migrations (filename) VALUES (?)", (path.name,))
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            logger.error("Migration %s failed: %r", path.name, e)
            raise StorageError(f"Migration {path.name} failed.") from e

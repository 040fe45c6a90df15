"""Database connection management using raw sqlite3."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from diettracker.db.schema import get_schema_sql


class DatabaseConnection:
    """Manages SQLite database connections."""

    def __init__(self, db_path: Path):
        """Initialize database connection manager.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        self._ensure_directory()

    def _ensure_directory(self) -> None:
        """Create parent directories if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections.

        Yields:
            sqlite3.Connection with Row factory enabled

        Example:
            with db.get_connection() as conn:
                cursor = conn.execute("SELECT value FROM app_state")
                rows = cursor.fetchall()
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row  # Enable dict-like access
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize_schema(self) -> None:
        """Create all tables if they don't exist."""
        with self.get_connection() as conn:
            conn.executescript(get_schema_sql())

    def read_value(self, key: str) -> Optional[str]:
        """Read the stored value for a durable key.

        Args:
            key: State key

        Returns:
            Stored text, or None if the key has never been written
        """
        with self.get_connection() as conn:
            row = conn.execute(
                "SELECT value FROM app_state WHERE key = ?", (key,)
            ).fetchone()
            return row["value"] if row else None

    def write_value(self, key: str, value: str) -> None:
        """Insert or replace the stored value for a durable key.

        Args:
            key: State key
            value: Text to store
        """
        with self.get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO app_state (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                """,
                (key, value),
            )


# Global database instance (lazy loaded)
_db: Optional[DatabaseConnection] = None


def get_db() -> DatabaseConnection:
    """Get the global database instance.

    Lazily initializes the database connection using settings.

    Returns:
        DatabaseConnection instance
    """
    global _db
    if _db is None:
        from diettracker.config import get_settings

        settings = get_settings()
        _db = DatabaseConnection(settings.storage.path)
    return _db


def set_db(db: DatabaseConnection) -> None:
    """Set the global database instance.

    Useful for testing with a custom database.

    Args:
        db: DatabaseConnection instance to use
    """
    global _db
    _db = db

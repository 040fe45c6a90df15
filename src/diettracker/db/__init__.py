"""SQLite persistence for the application snapshot."""

from diettracker.db.connection import DatabaseConnection, get_db, set_db

__all__ = ["DatabaseConnection", "get_db", "set_db"]

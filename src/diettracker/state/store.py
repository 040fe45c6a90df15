"""State store: owns the snapshot, applies commands, persists after each.

The store holds exactly one authoritative in-memory snapshot. After every
dispatched command the whole snapshot is serialized and written to the
durable key. Write failures are logged and swallowed; the in-memory
snapshot stays the source of truth for the rest of the session.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Optional, Protocol, Union

from diettracker.db.connection import DatabaseConnection
from diettracker.state.commands import Command, parse_command
from diettracker.state.migration import Today, load
from diettracker.state.models import Snapshot, today_iso
from diettracker.state.reducer import apply

logger = logging.getLogger(__name__)

DEFAULT_STATE_KEY = "diet-tracker-app-state-v1"


class StateStorage(Protocol):
    """Durable storage for the serialized snapshot."""

    def read(self) -> Optional[str]: ...

    def write(self, value: str) -> None: ...


class SqliteStateStorage:
    """Stores the snapshot as one row of the ``app_state`` table."""

    def __init__(self, db: DatabaseConnection, key: str = DEFAULT_STATE_KEY):
        self.db = db
        self.key = key
        self.db.initialize_schema()

    def read(self) -> Optional[str]:
        return self.db.read_value(self.key)

    def write(self, value: str) -> None:
        self.db.write_value(self.key, value)


class MemoryStateStorage:
    """Keeps the serialized snapshot in memory."""

    def __init__(self, value: Optional[str] = None):
        self.value = value
        self.writes = 0

    def read(self) -> Optional[str]:
        return self.value

    def write(self, value: str) -> None:
        self.value = value
        self.writes += 1


def serialize_snapshot(snapshot: Snapshot) -> str:
    """Serialize a snapshot to its persisted JSON form."""
    return json.dumps(snapshot.to_dict())


class Store:
    """Owns the current snapshot and the dispatch path.

    Example:
        store = Store(MemoryStateStorage())
        store.dispatch(UpdateDayNotes(date="2025-01-01", notes="rest day"))
        store.get_state().day_logs["2025-01-01"].notes
    """

    def __init__(self, storage: StateStorage, today: Today = today_iso):
        """Load the persisted snapshot through migration.

        Args:
            storage: Durable storage backend
            today: Returns today's date key (injectable for tests)
        """
        self.storage = storage
        try:
            raw = storage.read()
        except (OSError, sqlite3.Error) as exc:
            logger.warning("Could not read persisted snapshot, starting fresh: %s", exc)
            raw = None
        self._state = load(raw, today)

    def get_state(self) -> Snapshot:
        """Return the current snapshot."""
        return self._state

    def dispatch(self, command: Union[Command, dict[str, Any]]) -> Snapshot:
        """Apply a command and persist the resulting snapshot.

        Args:
            command: A Command, or a ``{"type", "payload"}`` message

        Returns:
            The new current snapshot
        """
        if isinstance(command, dict):
            parsed = parse_command(command)
            if parsed is None:
                logger.debug("Ignoring unknown command type %r", command.get("type"))
                return self._state
            command = parsed

        self._state = apply(self._state, command)
        self._persist()
        return self._state

    def close(self) -> None:
        """Flush the current snapshot to storage."""
        self._persist()

    def _persist(self) -> None:
        try:
            self.storage.write(serialize_snapshot(self._state))
        except (TypeError, ValueError, OSError, sqlite3.Error):
            logger.exception("Failed to persist snapshot; keeping in-memory state")

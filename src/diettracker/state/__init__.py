"""Versioned snapshot state: entity model, commands, migration and store."""

from __future__ import annotations

from diettracker.state.commands import Command, parse_command
from diettracker.state.migration import backfill, load, migrate
from diettracker.state.models import (
    ActivityEntry,
    ActivityMode,
    DayLog,
    FoodItem,
    MealEntry,
    MealSlot,
    Profile,
    Snapshot,
    Survey,
)
from diettracker.state.reducer import apply
from diettracker.state.store import MemoryStateStorage, SqliteStateStorage, Store

__all__ = [
    "ActivityEntry",
    "ActivityMode",
    "Command",
    "DayLog",
    "FoodItem",
    "MealEntry",
    "MealSlot",
    "MemoryStateStorage",
    "Profile",
    "Snapshot",
    "SqliteStateStorage",
    "Store",
    "Survey",
    "apply",
    "backfill",
    "load",
    "migrate",
    "parse_command",
]

"""Pytest fixtures for diettracker tests."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

import pytest

from diettracker.db.connection import DatabaseConnection
from diettracker.state.models import (
    DayLog,
    FoodItem,
    MealEntry,
    MealSlot,
    Profile,
    Snapshot,
)

TODAY = "2025-03-10"


def fixed_today() -> str:
    return TODAY


def make_day(date_key: str, intake: float = 0, **kwargs) -> DayLog:
    """Build a day with a single lunch entry worth ``intake`` kcal."""
    meals = []
    if intake:
        food = FoodItem(id="generic", name="Generic", unit_label="kcal", kcal_per_unit=1)
        meals.append(MealEntry.from_food_item(food, MealSlot.LUNCH, intake, entry_id=f"{date_key}-m"))
    return DayLog(date=date_key, meals=meals, **kwargs)


@pytest.fixture
def temp_db():
    """Create a temporary database with schema."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    db = DatabaseConnection(db_path)
    db.initialize_schema()

    yield db

    db_path.unlink(missing_ok=True)


@pytest.fixture
def profile() -> Profile:
    """Profile with a known BMR and weight."""
    return Profile(name="Test", bmr=1600, weight_kg=80, default_activity_factor=1.2)


@pytest.fixture
def foods() -> list[FoodItem]:
    return [
        FoodItem(id="rice", name="Rice", category="home", unit_label="bowl", kcal_per_unit=250),
        FoodItem(id="samosa", name="Samosa", category="street", unit_label="piece", kcal_per_unit=260),
        FoodItem(id="cola", name="Cola", category="drinks", unit_label="can", kcal_per_unit=140),
    ]


@pytest.fixture
def sample_snapshot(profile, foods) -> Snapshot:
    """Snapshot with a catalogue and two logged days."""
    lunch = MealEntry.from_food_item(foods[0], MealSlot.LUNCH, 2, entry_id="m1")
    dinner = MealEntry.from_food_item(foods[1], MealSlot.DINNER, 3, entry_id="m2")
    return Snapshot(
        profile=profile,
        food_items=list(foods),
        day_logs={
            "2025-03-08": DayLog(date="2025-03-08", bmr_snapshot=1600, meals=[lunch], weight_kg=80.4),
            "2025-03-09": DayLog(date="2025-03-09", bmr_snapshot=1600, meals=[lunch, dinner]),
        },
        selected_date="2025-03-09",
    )


@pytest.fixture(autouse=True)
def reset_app_logger():
    """Undo configure_logging so caplog keeps seeing records."""
    yield
    logger = logging.getLogger("diettracker")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)

"""Meal and workout aggregators.

Pure functions that turn a day's raw entries into typed subtotals. Both
accept either a ``DayLog`` or raw data (a list of meal entries, or the
persisted dict shape) so callers holding unmigrated data get the same
numbers.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Iterable, Optional, Union

from diettracker.state.models import (
    DayLog,
    MealEntry,
    MealSlot,
    meal_slot_for,
    round_kcal,
    to_number,
    to_optional_number,
)

MealLike = Union[MealEntry, dict]
DayLike = Union[DayLog, dict, Iterable[MealLike], None]


@dataclass
class MealTotals:
    """Intake per meal slot for one day (kcal)."""

    lunch: float = 0
    dinner: float = 0
    extras: float = 0
    total: float = 0

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


def _entry_kcal(entry: MealLike) -> float:
    if isinstance(entry, MealEntry):
        return entry.total_kcal
    total = entry.get("totalKcal")
    if isinstance(total, (int, float)) and not isinstance(total, bool):
        return total
    # Fallback for entries that never had a total computed
    quantity = to_number(entry.get("quantity"))
    per_unit = to_number(entry.get("kcalPerUnit", entry.get("kcal_per_unit")))
    return quantity * per_unit


def _entry_slot(entry: MealLike) -> Optional[MealSlot]:
    if isinstance(entry, MealEntry):
        return meal_slot_for(entry.meal_type)
    return meal_slot_for(entry.get("mealType"))


def sum_meal_entries(entries: Iterable[MealLike]) -> float:
    """Sum the kcal of a list of meal entries."""
    return sum((_entry_kcal(e) for e in entries or []), 0)


def _meal_list(day: DayLike) -> list[MealLike]:
    if day is None:
        return []
    if isinstance(day, DayLog):
        return list(day.meals)
    if isinstance(day, dict):
        meals = day.get("meals")
        return [m for m in meals if isinstance(m, dict)] if isinstance(meals, list) else []
    return [m for m in day if isinstance(m, (MealEntry, dict))]


def compute_day_meal_totals(day: DayLike) -> MealTotals:
    """Bucket a day's meal entries by slot and total them.

    Entries labelled "extra", "extras" or "snack" all land in the extras
    bucket. Entries with an unknown slot are not counted.

    Args:
        day: A DayLog, a persisted day dict, or a list of meal entries

    Returns:
        MealTotals where ``total == lunch + dinner + extras``
    """
    buckets = {slot: [] for slot in MealSlot}
    for entry in _meal_list(day):
        slot = _entry_slot(entry)
        if slot is not None:
            buckets[slot].append(entry)

    lunch = sum_meal_entries(buckets[MealSlot.LUNCH])
    dinner = sum_meal_entries(buckets[MealSlot.DINNER])
    extras = sum_meal_entries(buckets[MealSlot.EXTRAS])
    return MealTotals(lunch=lunch, dinner=dinner, extras=extras, total=lunch + dinner + extras)


def calculate_effective_workout(day: Union[DayLog, dict, None]) -> float:
    """Return the day's workout burn scaled by its intensity factor.

    A missing or zero intensity factor means "no intensity data" and the
    raw burn is returned unscaled; it does not mean "burned nothing".

    Example:
        >>> calculate_effective_workout({"workoutCalories": 400, "intensityFactor": 1.5})
        600
        >>> calculate_effective_workout({"workoutCalories": 400, "intensityFactor": 0})
        400.0
    """
    if day is None:
        return 0
    if isinstance(day, DayLog):
        raw = day.workout_calories
        intensity = day.intensity_factor
    else:
        raw = to_number(day.get("workoutCalories", day.get("workoutKcal")))
        intensity = to_optional_number(day.get("intensityFactor"))

    if intensity is None or intensity == 0:
        return raw
    return round_kcal(raw * intensity)

"""Schema migration and backfill for persisted snapshots.

Persisted snapshots are versioned only by which fields are present. On load
the raw value is normalised exactly once into the canonical shape:

- legacy aliases are mapped onto their canonical field (the legacy key is
  kept alongside, so no information is lost),
- every missing field is filled independently with a computed or default
  value,
- keys the model does not know are preserved verbatim.

``backfill`` is a pure dict -> dict function and is idempotent:
``backfill(backfill(x)) == backfill(x)``. The only dependency on the wall
clock is the ``today`` callable used when ``selectedDate`` is missing.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional, Union

from diettracker.state.models import (
    DEFAULT_ACTIVITY_FACTOR,
    DEFAULT_FOOD_CATEGORIES,
    DEFAULT_RUN_KCAL_PER_KG_PER_KM,
    DEFAULT_STEP_KCAL_CONST,
    DEFAULT_TEF_RATIO,
    DEFAULT_WALK_KCAL_PER_KG_PER_KM,
    Snapshot,
    round_kcal,
    to_number,
    to_optional_number,
    today_iso,
)

logger = logging.getLogger(__name__)

# (canonical key, legacy key, default) for the locomotion constants
PROFILE_CONSTANT_ALIASES = (
    ("WALK_KCAL_PER_KG_PER_KM", "walkKcalPerKgPerKm", DEFAULT_WALK_KCAL_PER_KG_PER_KM),
    ("RUN_KCAL_PER_KG_PER_KM", "runKcalPerKgPerKm", DEFAULT_RUN_KCAL_PER_KG_PER_KM),
    ("STEP_KCAL_CONST", "stepKcalConst", DEFAULT_STEP_KCAL_CONST),
    ("DEFAULT_TEF_RATIO", "tefRatio", DEFAULT_TEF_RATIO),
)

# (canonical key, legacy keys...) for other renamed fields
PROFILE_FIELD_ALIASES = (
    ("bmr", "BMR", "calculatedBmr"),
    ("weightKg", "weight_kg", "weight"),
)
DAY_FIELD_ALIASES = (("workoutCalories", "workoutKcal"),)

Today = Callable[[], str]


def _missing(data: dict[str, Any], key: str) -> bool:
    return data.get(key) is None or data.get(key) == ""


def _backfill_profile(raw: Any) -> dict[str, Any]:
    profile = dict(raw) if isinstance(raw, dict) else {}

    for canonical, legacy, default in PROFILE_CONSTANT_ALIASES:
        if _missing(profile, canonical):
            profile[canonical] = to_number(profile.get(legacy), default)
        else:
            profile[canonical] = to_number(profile[canonical], default)

    for canonical, *legacy_keys in PROFILE_FIELD_ALIASES:
        if not _missing(profile, canonical):
            continue
        for legacy in legacy_keys:
            if not _missing(profile, legacy):
                profile[canonical] = profile[legacy]
                break

    return profile


def _backfill_meal(raw: dict[str, Any], fallback_id: str) -> dict[str, Any]:
    meal = dict(raw)
    if _missing(meal, "id"):
        meal["id"] = fallback_id

    quantity = to_number(meal.get("quantity"))
    if "kcalPerUnitSnapshot" not in meal:
        per_unit = to_optional_number(
            meal.get("kcalPerUnit", meal.get("kcal_per_unit"))
        )
        if per_unit is None:
            total = to_number(meal.get("totalKcal", meal.get("kcal")))
            per_unit = total / quantity if quantity else 0.0
        meal["kcalPerUnitSnapshot"] = per_unit

    if "totalKcal" not in meal:
        if "kcal" in meal:
            meal["totalKcal"] = round_kcal(to_number(meal["kcal"]))
        else:
            meal["totalKcal"] = round_kcal(
                quantity * to_number(meal["kcalPerUnitSnapshot"])
            )
    return meal


def _flatten_meals(raw: Any) -> list[dict[str, Any]]:
    """Accept both the list shape and the legacy ``{slot: [entries]}`` shape."""
    if isinstance(raw, list):
        return [m for m in raw if isinstance(m, dict)]
    if isinstance(raw, dict):
        flattened = []
        for slot, entries in raw.items():
            if not isinstance(entries, list):
                continue
            for entry in entries:
                if isinstance(entry, dict):
                    flattened.append({"mealType": slot, **entry})
        return flattened
    return []


def _backfill_day(
    date_key: str, raw: dict[str, Any], profile: dict[str, Any]
) -> dict[str, Any]:
    day = dict(raw)
    day["date"] = date_key

    if "bmrSnapshot" not in day:
        day["bmrSnapshot"] = profile.get("bmr")
    if "activities" not in day:
        day["activities"] = []
    if "activityMode" not in day:
        day["activityMode"] = "manual"
    if "activityFactor" not in day:
        day["activityFactor"] = to_number(
            profile.get("defaultActivityFactor"), DEFAULT_ACTIVITY_FACTOR
        )
    if "steps" not in day:
        day["steps"] = None
    if "survey" not in day:
        day["survey"] = None
    if "meals" not in day:
        day["meals"] = []
    if "notes" not in day:
        day["notes"] = ""

    for canonical, legacy in DAY_FIELD_ALIASES:
        if _missing(day, canonical) and not _missing(day, legacy):
            day[canonical] = day[legacy]

    day["meals"] = [
        _backfill_meal(meal, f"{date_key}-meal-{i}")
        for i, meal in enumerate(_flatten_meals(day["meals"]))
    ]

    activities = day["activities"] if isinstance(day["activities"], list) else []
    day["activities"] = [
        {**a, "id": a.get("id") or f"{date_key}-activity-{i}"}
        for i, a in enumerate(activities)
        if isinstance(a, dict)
    ]
    return day


def backfill(raw: dict[str, Any], today: Today = today_iso) -> dict[str, Any]:
    """Normalise a persisted snapshot of unknown vintage into canonical form.

    Args:
        raw: Parsed persisted value (never mutated)
        today: Returns today's date key; only used when ``selectedDate``
            is missing

    Returns:
        Canonical snapshot dict in the persisted (camelCase) shape
    """
    profile = _backfill_profile(raw.get("profile"))

    raw_days = raw.get("dayLogs")
    day_logs = {
        str(key): _backfill_day(str(key), day, profile)
        for key, day in (raw_days.items() if isinstance(raw_days, dict) else [])
        if isinstance(day, dict)
    }

    categories = raw.get("foodCategories")
    if not isinstance(categories, list) or not categories:
        categories = list(DEFAULT_FOOD_CATEGORIES)

    food_items = raw.get("foodItems")
    if not isinstance(food_items, list):
        food_items = []

    merged = {
        **raw,
        "profile": profile,
        "foodItems": food_items,
        "foodCategories": categories,
        "dayLogs": day_logs,
        "selectedDate": raw.get("selectedDate") or today(),
    }
    return Snapshot.from_dict(merged).to_dict()


def default_snapshot(today: Today = today_iso) -> Snapshot:
    """Return a freshly defaulted snapshot."""
    return Snapshot(selected_date=today())


def migrate(raw: dict[str, Any], today: Today = today_iso) -> Snapshot:
    """Backfill a parsed snapshot and build the typed model from it."""
    return Snapshot.from_dict(backfill(raw, today))


def load(
    raw_value: Optional[Union[str, bytes]], today: Today = today_iso
) -> Snapshot:
    """Load a persisted value into a canonical snapshot.

    Malformed or absent data degrades to a fresh default snapshot; it is
    never reported as an error.

    Args:
        raw_value: Serialized snapshot as read from storage, or None
        today: Returns today's date key (injectable for tests)

    Returns:
        Canonical Snapshot
    """
    if not raw_value:
        return default_snapshot(today)

    try:
        parsed = json.loads(raw_value)
    except (TypeError, ValueError) as exc:
        logger.warning("Persisted snapshot is not valid JSON, starting fresh: %s", exc)
        return default_snapshot(today)

    if not isinstance(parsed, dict):
        logger.warning(
            "Persisted snapshot has unexpected type %s, starting fresh",
            type(parsed).__name__,
        )
        return default_snapshot(today)

    try:
        return migrate(parsed, today)
    except (TypeError, ValueError, AttributeError, OverflowError) as exc:
        logger.warning("Persisted snapshot could not be migrated, starting fresh: %s", exc)
        return default_snapshot(today)

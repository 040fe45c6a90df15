"""Tests for snapshot backfill and loading."""

from __future__ import annotations

import copy
import json

from diettracker.state.migration import backfill, load, migrate
from diettracker.state.models import DEFAULT_FOOD_CATEGORIES, ActivityMode

from conftest import TODAY, fixed_today


LEGACY = {
    "profile": {
        "name": "Old",
        "BMR": 1700,
        "weight": 82,
        "walkKcalPerKgPerKm": 0.9,
        "tefRatio": 0.12,
        "theme": "dark",
    },
    "dayLogs": {
        "2024-12-01": {
            "meals": {
                "lunch": [{"name": "Dal", "kcal": 400, "quantity": 2}],
                "snack": [{"name": "Chips", "kcal": 150}],
            },
            "workoutKcal": 300,
            "mood": "ok",
        }
    },
    "customFlag": True,
}


class TestLoad:
    """Tests for loading persisted values."""

    def test_absent_value_gives_default(self) -> None:
        snapshot = load(None, fixed_today)

        assert snapshot.selected_date == TODAY
        assert snapshot.food_categories == list(DEFAULT_FOOD_CATEGORIES)
        assert snapshot.day_logs == {}

    def test_invalid_json_gives_default(self, caplog) -> None:
        snapshot = load("{not json", fixed_today)

        assert snapshot.selected_date == TODAY
        assert "not valid JSON" in caplog.text

    def test_non_object_gives_default(self) -> None:
        assert load("[1, 2, 3]", fixed_today).day_logs == {}

    def test_loads_persisted_snapshot(self, sample_snapshot) -> None:
        raw = json.dumps(sample_snapshot.to_dict())
        assert load(raw, fixed_today) == sample_snapshot

    def test_huge_integer_does_not_raise(self) -> None:
        raw = '{"dayLogs": {"2025-01-01": {"steps": 1' + "0" * 400 + "}}}"

        snapshot = load(raw, fixed_today)

        assert snapshot.day_logs["2025-01-01"].steps is None


class TestBackfill:
    """Tests for backfill of legacy shapes."""

    def test_idempotent(self) -> None:
        once = backfill(LEGACY, fixed_today)
        assert backfill(once, fixed_today) == once

    def test_idempotent_with_odd_fields(self) -> None:
        odd = {
            "profile": {"defaultActivityFactor": 0, "bmr": "", "BMR": 1500},
            "dayLogs": {
                "2025-01-01": {"meals": "oops", "activityFactor": "", "survey": "x"},
                "2025-01-02": {"meals": {"lunch": "not a list"}, "activities": {"a": 1}},
            },
        }

        once = backfill(odd, fixed_today)

        assert backfill(once, fixed_today) == once
        assert once["profile"]["bmr"] == 1500
        assert once["dayLogs"]["2025-01-01"]["meals"] == []
        assert once["dayLogs"]["2025-01-02"]["activities"] == []

    def test_input_not_mutated(self) -> None:
        original = copy.deepcopy(LEGACY)
        backfill(LEGACY, fixed_today)
        assert LEGACY == original

    def test_missing_selected_date_uses_today(self) -> None:
        assert backfill({}, fixed_today)["selectedDate"] == TODAY

    def test_profile_aliases(self) -> None:
        snapshot = migrate(LEGACY, fixed_today)

        assert snapshot.profile.bmr == 1700
        assert snapshot.profile.weight_kg == 82
        assert snapshot.profile.walk_kcal_per_kg_per_km == 0.9
        assert snapshot.profile.tef_ratio == 0.12
        assert snapshot.profile.run_kcal_per_kg_per_km == 1.0

    def test_legacy_keys_retained(self) -> None:
        profile = backfill(LEGACY, fixed_today)["profile"]

        assert profile["walkKcalPerKgPerKm"] == 0.9
        assert profile["WALK_KCAL_PER_KG_PER_KM"] == 0.9
        assert profile["theme"] == "dark"

    def test_unknown_top_level_keys_preserved(self) -> None:
        assert backfill(LEGACY, fixed_today)["customFlag"] is True

    def test_day_defaults(self) -> None:
        day = migrate(LEGACY, fixed_today).day_logs["2024-12-01"]

        assert day.date == "2024-12-01"
        assert day.bmr_snapshot == 1700
        assert day.activity_mode is ActivityMode.MANUAL
        assert day.activity_factor == 1.2
        assert day.activities == []
        assert day.steps is None
        assert day.survey is None
        assert day.notes == ""
        assert day.extra["mood"] == "ok"

    def test_workout_alias(self) -> None:
        day = migrate(LEGACY, fixed_today).day_logs["2024-12-01"]
        assert day.workout_calories == 300

    def test_legacy_meal_shape_flattened(self) -> None:
        meals = migrate(LEGACY, fixed_today).day_logs["2024-12-01"].meals

        assert [m.meal_type for m in meals] == ["lunch", "snack"]
        assert [m.total_kcal for m in meals] == [400, 150]
        assert meals[0].kcal_per_unit_snapshot == 200
        assert meals[0].id == "2024-12-01-meal-0"

    def test_fills_fields_independently(self) -> None:
        raw = {
            "profile": {"bmr": 1500},
            "dayLogs": {"2025-01-01": {"activityMode": "advanced_full", "steps": 9000}},
        }
        day = migrate(raw, fixed_today).day_logs["2025-01-01"]

        assert day.activity_mode is ActivityMode.ADVANCED_FULL
        assert day.steps == 9000
        assert day.bmr_snapshot == 1500

    def test_activity_ids_backfilled(self) -> None:
        raw = {"dayLogs": {"2025-01-01": {"activities": [{"type": "walk", "distanceKm": 3}]}}}
        day = migrate(raw, fixed_today).day_logs["2025-01-01"]

        assert day.activities[0].id == "2025-01-01-activity-0"
        assert day.activities[0].distance_km == 3

    def test_empty_categories_restored(self) -> None:
        assert backfill({"foodCategories": []}, fixed_today)["foodCategories"] == list(
            DEFAULT_FOOD_CATEGORIES
        )

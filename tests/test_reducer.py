"""Tests for commands and the pure transition function."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import ClassVar

import pytest

from diettracker.state.commands import (
    COMMAND_TYPES,
    AddFoodCategory,
    AddMealEntry,
    Command,
    DeleteFoodCategory,
    DeleteMealEntry,
    ImportSnapshot,
    RenameFoodCategory,
    SetSelectedDate,
    SetWorkout,
    UpdateDayHydration,
    UpdateDayIntensityFactor,
    UpdateDayMeta,
    UpdateDayWorkoutCalories,
    UpdateMealEntryQuantity,
    UpdateProfile,
    UpsertFoodItem,
    parse_command,
)
from diettracker.state.models import ActivityMode, FoodItem, MealEntry, MealSlot
from diettracker.state.reducer import apply, handled_command_types
from diettracker.tracking.meals import calculate_effective_workout


@dataclass
class Unrecognised(Command):
    TYPE: ClassVar[str] = "NOT_A_COMMAND"


class TestParseCommand:
    """Tests for building commands from {type, payload} messages."""

    def test_unknown_type(self) -> None:
        assert parse_command({"type": "NOPE", "payload": {}}) is None

    def test_every_type_parses_empty_payload(self) -> None:
        for type_name, cls in COMMAND_TYPES.items():
            assert isinstance(parse_command({"type": type_name, "payload": {}}), cls)

    def test_non_numeric_input_coerced(self) -> None:
        cmd = parse_command(
            {"type": "UPDATE_DAY_HYDRATION", "payload": {"date": "2025-01-01", "hydrationLitres": "lots"}}
        )
        assert cmd.hydration_litres == 0.0

    def test_empty_intensity_is_none(self) -> None:
        cmd = parse_command(
            {"type": "UPDATE_DAY_INTENSITY", "payload": {"date": "2025-01-01", "intensityFactor": ""}}
        )
        assert cmd.intensity_factor is None

    def test_add_meal_computes_total(self) -> None:
        cmd = parse_command({
            "type": "ADD_MEAL_ENTRY",
            "payload": {
                "date": "2025-01-01",
                "mealType": "lunch",
                "kcalPerUnitSnapshot": 120,
                "quantity": 2.5,
            },
        })
        assert cmd.date == "2025-01-01"
        assert cmd.entry.total_kcal == 300
        assert cmd.entry.id

    def test_upsert_assigns_id(self) -> None:
        cmd = parse_command({"type": "UPSERT_FOOD_ITEM", "payload": {"name": "Tea", "kcalPerUnit": 30}})
        assert cmd.item.id


class TestApply:
    """Tests for general transition properties."""

    def test_handles_every_command(self) -> None:
        assert handled_command_types() == frozenset(COMMAND_TYPES.values())

    def test_unknown_command_is_identity(self, sample_snapshot) -> None:
        assert apply(sample_snapshot, Unrecognised()) is sample_snapshot

    def test_input_not_mutated(self, sample_snapshot) -> None:
        before = sample_snapshot.to_dict()

        after = apply(sample_snapshot, UpdateDayHydration(date="2025-03-09", hydration_litres=2))
        apply(after, RenameFoodCategory(old_name="home", new_name="homemade"))

        assert sample_snapshot.to_dict() == before
        assert after.day_logs["2025-03-09"].hydration_litres == 2

    def test_selected_date(self, sample_snapshot) -> None:
        assert apply(sample_snapshot, SetSelectedDate(date="2025-03-01")).selected_date == "2025-03-01"
        assert apply(sample_snapshot, SetSelectedDate(date="")) is sample_snapshot


class TestMealCommands:
    """Tests for meal entry commands."""

    def test_add_creates_day(self, sample_snapshot, foods) -> None:
        entry = MealEntry.from_food_item(foods[2], MealSlot.EXTRAS, 1)
        after = apply(sample_snapshot, AddMealEntry(date="2025-03-10", entry=entry))

        day = after.day_logs["2025-03-10"]
        assert day.meals == [entry]
        assert day.bmr_snapshot == 1600

    def test_delete_on_missing_day_is_noop(self, sample_snapshot) -> None:
        cmd = DeleteMealEntry(date="2020-01-01", meal_id="m1")
        assert apply(sample_snapshot, cmd) is sample_snapshot

    def test_delete(self, sample_snapshot) -> None:
        after = apply(sample_snapshot, DeleteMealEntry(date="2025-03-09", meal_id="m1"))
        assert [m.id for m in after.day_logs["2025-03-09"].meals] == ["m2"]

    def test_quantity_uses_snapshot_rate(self, sample_snapshot) -> None:
        repriced = FoodItem(id="rice", name="Rice", category="home", unit_label="bowl", kcal_per_unit=900)
        snapshot = apply(sample_snapshot, UpsertFoodItem(item=repriced))

        after = apply(snapshot, UpdateMealEntryQuantity(date="2025-03-08", meal_id="m1", quantity=4))

        entry = after.day_logs["2025-03-08"].meals[0]
        assert entry.total_kcal == 1000
        assert entry.kcal_per_unit_snapshot == 250


class TestFoodCommands:
    """Tests for catalogue and category commands."""

    def test_upsert_replaces_in_place(self, sample_snapshot) -> None:
        item = FoodItem(id="cola", name="Diet Cola", category="drinks", kcal_per_unit=1)
        after = apply(sample_snapshot, UpsertFoodItem(item=item))

        assert [f.id for f in after.food_items] == ["rice", "samosa", "cola"]
        assert after.find_food_item("cola").name == "Diet Cola"

    def test_add_category_dedupes(self, sample_snapshot) -> None:
        assert apply(sample_snapshot, AddFoodCategory(name="home")) is sample_snapshot
        assert "fruit" in apply(sample_snapshot, AddFoodCategory(name="fruit")).food_categories

    def test_rename_cascades(self, sample_snapshot) -> None:
        after = apply(sample_snapshot, RenameFoodCategory(old_name="home", new_name="homemade"))

        assert after.food_categories[0] == "homemade"
        assert "home" not in after.food_categories
        assert after.find_food_item("rice").category == "homemade"

    def test_rename_onto_existing_merges(self, sample_snapshot) -> None:
        after = apply(sample_snapshot, RenameFoodCategory(old_name="cheat", new_name="street"))

        assert after.food_categories.count("street") == 1
        assert "cheat" not in after.food_categories

    def test_delete_category_uncategorises(self, sample_snapshot) -> None:
        before = sample_snapshot.food_items
        referencing = {f.id for f in before if f.category == "street"}
        after = apply(sample_snapshot, DeleteFoodCategory(name="street"))

        assert "street" not in after.food_categories
        assert len(after.food_items) == len(before)
        assert referencing == {"samosa"}
        for old, new in zip(before, after.food_items):
            if old.id in referencing:
                assert new.category is None
            else:
                assert new == old


class TestDayCommands:
    """Tests for day-level commands."""

    def test_meta_patch(self, sample_snapshot) -> None:
        cmd = UpdateDayMeta(
            date="2025-03-09", patch={"weightKg": 79.8, "activityMode": "advanced_neat"}
        )
        day = apply(sample_snapshot, cmd).day_logs["2025-03-09"]

        assert day.weight_kg == 79.8
        assert day.activity_mode is ActivityMode.ADVANCED_NEAT
        assert len(day.meals) == 2

    def test_set_workout(self, sample_snapshot) -> None:
        cmd = SetWorkout(date="2025-03-09", workout_calories=400, intensity_factor=1.5, workout_description="gym")
        day = apply(sample_snapshot, cmd).day_logs["2025-03-09"]

        assert (day.workout_calories, day.intensity_factor, day.workout_description) == (400, 1.5, "gym")

    @pytest.mark.parametrize("intensity", [math.nan, math.inf, "abc"])
    def test_set_workout_coerces_intensity(self, sample_snapshot, intensity) -> None:
        cmd = SetWorkout(date="2025-03-09", workout_calories=400, intensity_factor=intensity)
        day = apply(sample_snapshot, cmd).day_logs["2025-03-09"]

        assert day.intensity_factor is None
        assert calculate_effective_workout(day) == 400

    def test_direct_commands_coerce_non_finite(self) -> None:
        assert UpdateDayIntensityFactor(date="2025-03-09", intensity_factor=math.nan).intensity_factor is None
        assert UpdateDayWorkoutCalories(date="2025-03-09", workout_calories=math.inf).workout_calories == 0.0
        assert UpdateDayHydration(date="2025-03-09", hydration_litres=-math.inf).hydration_litres == 0.0
        assert UpdateMealEntryQuantity(date="2025-03-09", meal_id="m1", quantity=math.nan).quantity == 0.0


class TestProfileAndImport:
    """Tests for profile updates and whole-snapshot import."""

    def test_profile_patch(self, sample_snapshot) -> None:
        after = apply(sample_snapshot, UpdateProfile(patch={"bmr": 1700}))

        assert after.profile.bmr == 1700
        assert after.profile.weight_kg == 80

    def test_preset_sets_factor(self, sample_snapshot) -> None:
        after = apply(sample_snapshot, UpdateProfile(patch={"defaultActivityPreset": "moderate"}))
        assert after.profile.default_activity_factor == pytest.approx(1.55)

    def test_explicit_factor_wins(self, sample_snapshot) -> None:
        patch = {"defaultActivityPreset": "moderate", "defaultActivityFactor": 1.4}
        after = apply(sample_snapshot, UpdateProfile(patch=patch))
        assert after.profile.default_activity_factor == pytest.approx(1.4)

    def test_import_migrates(self, sample_snapshot) -> None:
        data = {"profile": {"BMR": 1450}, "dayLogs": {"2024-01-01": {"workoutKcal": 200}}}
        after = apply(sample_snapshot, ImportSnapshot(data=data))

        assert after.profile.bmr == 1450
        assert after.day_logs["2024-01-01"].workout_calories == 200
        assert after.selected_date == sample_snapshot.selected_date
        assert after.food_items == []

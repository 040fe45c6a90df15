"""Pure transition function for the tracker snapshot.

``apply(snapshot, command)`` returns a new snapshot and never mutates the
one it was given: every change is a structural copy, so callers may keep
references to earlier snapshots. Unknown commands return the input
unchanged.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Optional

from diettracker.state.commands import (
    AddFoodCategory,
    AddMealEntry,
    Command,
    DeleteFoodCategory,
    DeleteFoodItem,
    DeleteMealEntry,
    ImportSnapshot,
    RenameFoodCategory,
    SetSelectedDate,
    SetWorkout,
    UpdateDayActivities,
    UpdateDayHydration,
    UpdateDayIntensityFactor,
    UpdateDayMeta,
    UpdateDayNotes,
    UpdateDayStepsAndSurvey,
    UpdateDayWorkoutCalories,
    UpdateDayWorkoutDescription,
    UpdateMealEntryQuantity,
    UpdateProfile,
    UpsertFoodItem,
)
from diettracker.state.migration import migrate
from diettracker.state.models import (
    ActivityPreset,
    DayLog,
    FoodItem,
    Profile,
    Snapshot,
    activity_factor_for,
)


def _update_day(
    snapshot: Snapshot,
    date_key: str,
    update: Callable[[DayLog], DayLog],
    create: bool = True,
) -> Snapshot:
    """Apply ``update`` to a day, materialising it first when ``create``."""
    if not date_key:
        return snapshot
    if not create and date_key not in snapshot.day_logs:
        return snapshot
    day = update(snapshot.day(date_key))
    return replace(snapshot, day_logs={**snapshot.day_logs, date_key: day})


def _recategorise(
    items: list[FoodItem], old: str, new: Optional[str]
) -> list[FoodItem]:
    return [
        replace(item, category=new) if item.category == old else item
        for item in items
    ]


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _set_selected_date(snapshot: Snapshot, cmd: SetSelectedDate) -> Snapshot:
    if not cmd.date:
        return snapshot
    return replace(snapshot, selected_date=cmd.date)


def _import_snapshot(snapshot: Snapshot, cmd: ImportSnapshot) -> Snapshot:
    # Missing selectedDate keeps the current one, so the transition stays pure
    return migrate(cmd.data, today=lambda: snapshot.selected_date)


def _upsert_food_item(snapshot: Snapshot, cmd: UpsertFoodItem) -> Snapshot:
    item = cmd.item
    if not item.id:
        return snapshot
    items = list(snapshot.food_items)
    for i, existing in enumerate(items):
        if existing.id == item.id:
            items[i] = replace(item, extra={**existing.extra, **item.extra})
            break
    else:
        items.append(item)
    return replace(snapshot, food_items=items)


def _delete_food_item(snapshot: Snapshot, cmd: DeleteFoodItem) -> Snapshot:
    items = [f for f in snapshot.food_items if f.id != cmd.food_id]
    return replace(snapshot, food_items=items)


def _add_food_category(snapshot: Snapshot, cmd: AddFoodCategory) -> Snapshot:
    if not cmd.name or cmd.name in snapshot.food_categories:
        return snapshot
    return replace(snapshot, food_categories=[*snapshot.food_categories, cmd.name])


def _rename_food_category(snapshot: Snapshot, cmd: RenameFoodCategory) -> Snapshot:
    old, new = cmd.old_name, cmd.new_name
    if not old or not new or old == new or old not in snapshot.food_categories:
        return snapshot

    categories: list[str] = []
    for category in snapshot.food_categories:
        renamed = new if category == old else category
        if renamed not in categories:
            categories.append(renamed)

    return replace(
        snapshot,
        food_categories=categories,
        food_items=_recategorise(snapshot.food_items, old, new),
    )


def _delete_food_category(snapshot: Snapshot, cmd: DeleteFoodCategory) -> Snapshot:
    if cmd.name not in snapshot.food_categories:
        return snapshot
    return replace(
        snapshot,
        food_categories=[c for c in snapshot.food_categories if c != cmd.name],
        food_items=_recategorise(snapshot.food_items, cmd.name, None),
    )


def _add_meal_entry(snapshot: Snapshot, cmd: AddMealEntry) -> Snapshot:
    return _update_day(
        snapshot, cmd.date, lambda day: replace(day, meals=[*day.meals, cmd.entry])
    )


def _delete_meal_entry(snapshot: Snapshot, cmd: DeleteMealEntry) -> Snapshot:
    return _update_day(
        snapshot,
        cmd.date,
        lambda day: replace(day, meals=[m for m in day.meals if m.id != cmd.meal_id]),
        create=False,
    )


def _update_meal_entry_quantity(
    snapshot: Snapshot, cmd: UpdateMealEntryQuantity
) -> Snapshot:
    def update(day: DayLog) -> DayLog:
        meals = [
            m.with_quantity(cmd.quantity) if m.id == cmd.meal_id else m
            for m in day.meals
        ]
        return replace(day, meals=meals)

    return _update_day(snapshot, cmd.date, update, create=False)


def _update_day_meta(snapshot: Snapshot, cmd: UpdateDayMeta) -> Snapshot:
    return _update_day(
        snapshot,
        cmd.date,
        lambda day: DayLog.from_dict({**day.to_dict(), **cmd.patch, "date": cmd.date}),
    )


def _set_workout(snapshot: Snapshot, cmd: SetWorkout) -> Snapshot:
    return _update_day(
        snapshot,
        cmd.date,
        lambda day: replace(
            day,
            workout_calories=cmd.workout_calories,
            intensity_factor=cmd.intensity_factor,
            workout_description=cmd.workout_description,
        ),
    )


def _update_workout_calories(
    snapshot: Snapshot, cmd: UpdateDayWorkoutCalories
) -> Snapshot:
    return _update_day(
        snapshot,
        cmd.date,
        lambda day: replace(day, workout_calories=cmd.workout_calories),
    )


def _update_intensity(snapshot: Snapshot, cmd: UpdateDayIntensityFactor) -> Snapshot:
    return _update_day(
        snapshot,
        cmd.date,
        lambda day: replace(day, intensity_factor=cmd.intensity_factor),
    )


def _update_workout_description(
    snapshot: Snapshot, cmd: UpdateDayWorkoutDescription
) -> Snapshot:
    return _update_day(
        snapshot,
        cmd.date,
        lambda day: replace(day, workout_description=cmd.description),
    )


def _update_hydration(snapshot: Snapshot, cmd: UpdateDayHydration) -> Snapshot:
    return _update_day(
        snapshot,
        cmd.date,
        lambda day: replace(day, hydration_litres=cmd.hydration_litres),
    )


def _update_notes(snapshot: Snapshot, cmd: UpdateDayNotes) -> Snapshot:
    return _update_day(snapshot, cmd.date, lambda day: replace(day, notes=cmd.notes))


def _update_activities(snapshot: Snapshot, cmd: UpdateDayActivities) -> Snapshot:
    return _update_day(
        snapshot,
        cmd.date,
        lambda day: replace(day, activities=list(cmd.activities)),
    )


def _update_steps_and_survey(
    snapshot: Snapshot, cmd: UpdateDayStepsAndSurvey
) -> Snapshot:
    return _update_day(
        snapshot,
        cmd.date,
        lambda day: replace(day, steps=cmd.steps, survey=cmd.survey),
    )


def _update_profile(snapshot: Snapshot, cmd: UpdateProfile) -> Snapshot:
    patch = dict(cmd.patch)
    # A preset change without an explicit factor carries the preset's factor
    if "defaultActivityPreset" in patch and "defaultActivityFactor" not in patch:
        try:
            preset = ActivityPreset(str(patch["defaultActivityPreset"]).lower())
        except ValueError:
            preset = None
        if preset is not None:
            patch["defaultActivityFactor"] = activity_factor_for(preset)

    profile = Profile.from_dict({**snapshot.profile.to_dict(), **patch})
    return replace(snapshot, profile=profile)


_HANDLERS: dict[type[Command], Callable[[Snapshot, Command], Snapshot]] = {
    SetSelectedDate: _set_selected_date,
    ImportSnapshot: _import_snapshot,
    UpsertFoodItem: _upsert_food_item,
    DeleteFoodItem: _delete_food_item,
    AddFoodCategory: _add_food_category,
    RenameFoodCategory: _rename_food_category,
    DeleteFoodCategory: _delete_food_category,
    AddMealEntry: _add_meal_entry,
    DeleteMealEntry: _delete_meal_entry,
    UpdateMealEntryQuantity: _update_meal_entry_quantity,
    UpdateDayMeta: _update_day_meta,
    SetWorkout: _set_workout,
    UpdateDayWorkoutCalories: _update_workout_calories,
    UpdateDayIntensityFactor: _update_intensity,
    UpdateDayWorkoutDescription: _update_workout_description,
    UpdateDayHydration: _update_hydration,
    UpdateDayNotes: _update_notes,
    UpdateDayActivities: _update_activities,
    UpdateDayStepsAndSurvey: _update_steps_and_survey,
    UpdateProfile: _update_profile,
}  # type: ignore[dict-item]


def handled_command_types() -> frozenset[type[Command]]:
    """Return the command classes the transition function understands."""
    return frozenset(_HANDLERS)


def apply(snapshot: Snapshot, command: Command) -> Snapshot:
    """Apply one command, returning the next snapshot.

    Args:
        snapshot: Current snapshot (never mutated)
        command: Command to apply

    Returns:
        The next snapshot; the input itself for unrecognised commands
    """
    handler = _HANDLERS.get(type(command))
    if handler is None:
        return snapshot
    return handler(snapshot, command)

"""Commands accepted by the state store.

The command set is closed: one dataclass per command, each tagged with the
wire ``TYPE`` string used in ``{"type": ..., "payload": ...}`` messages.
User input is coerced when a command is built, whether through
``from_payload`` or directly, so the store never receives or stores NaN.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Optional

from diettracker.state.models import (
    ActivityEntry,
    FoodItem,
    MealEntry,
    Survey,
    new_id,
    to_number,
    to_optional_number,
)


def _optional_intensity(value: Any) -> Optional[float]:
    # "" and None mean "no intensity data"
    return to_optional_number(value)


def _optional_steps(value: Any) -> Optional[int]:
    steps = to_optional_number(value)
    return int(steps) if steps is not None else None


@dataclass
class Command:
    """Base class for all store commands."""

    TYPE: ClassVar[str] = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "Command":
        raise NotImplementedError


@dataclass
class SetSelectedDate(Command):
    TYPE: ClassVar[str] = "SET_SELECTED_DATE"

    date: str

    @classmethod
    def from_payload(cls, payload: Any) -> "SetSelectedDate":
        if isinstance(payload, dict):
            payload = payload.get("date")
        return cls(date=str(payload or ""))


@dataclass
class ImportSnapshot(Command):
    """Replace the whole snapshot; the data is migrated first."""

    TYPE: ClassVar[str] = "IMPORT_STATE"

    data: dict[str, Any]

    @classmethod
    def from_payload(cls, payload: Any) -> "ImportSnapshot":
        return cls(data=dict(payload) if isinstance(payload, dict) else {})


@dataclass
class UpsertFoodItem(Command):
    TYPE: ClassVar[str] = "UPSERT_FOOD_ITEM"

    item: FoodItem

    @classmethod
    def from_payload(cls, payload: Any) -> "UpsertFoodItem":
        item = FoodItem.from_dict(payload or {})
        if not item.id:
            item = replace(item, id=new_id())
        return cls(item=item)


@dataclass
class DeleteFoodItem(Command):
    TYPE: ClassVar[str] = "DELETE_FOOD_ITEM"

    food_id: str

    @classmethod
    def from_payload(cls, payload: Any) -> "DeleteFoodItem":
        return cls(food_id=str((payload or {}).get("id") or ""))


@dataclass
class AddFoodCategory(Command):
    TYPE: ClassVar[str] = "ADD_FOOD_CATEGORY"

    name: str

    @classmethod
    def from_payload(cls, payload: Any) -> "AddFoodCategory":
        return cls(name=str((payload or {}).get("name") or "").strip())


@dataclass
class RenameFoodCategory(Command):
    TYPE: ClassVar[str] = "RENAME_FOOD_CATEGORY"

    old_name: str
    new_name: str

    @classmethod
    def from_payload(cls, payload: Any) -> "RenameFoodCategory":
        payload = payload or {}
        return cls(
            old_name=str(payload.get("from") or "").strip(),
            new_name=str(payload.get("to") or "").strip(),
        )


@dataclass
class DeleteFoodCategory(Command):
    TYPE: ClassVar[str] = "DELETE_FOOD_CATEGORY"

    name: str

    @classmethod
    def from_payload(cls, payload: Any) -> "DeleteFoodCategory":
        return cls(name=str((payload or {}).get("name") or "").strip())


@dataclass
class AddMealEntry(Command):
    TYPE: ClassVar[str] = "ADD_MEAL_ENTRY"

    date: str
    entry: MealEntry

    @classmethod
    def from_payload(cls, payload: Any) -> "AddMealEntry":
        payload = dict(payload or {})
        date = str(payload.pop("date", "") or "")
        entry = MealEntry.from_dict(payload)
        if "totalKcal" not in payload:
            entry = entry.with_quantity(entry.quantity)
        if not entry.id:
            entry = replace(entry, id=new_id())
        return cls(date=date, entry=entry)


@dataclass
class DeleteMealEntry(Command):
    TYPE: ClassVar[str] = "DELETE_MEAL_ENTRY"

    date: str
    meal_id: str

    @classmethod
    def from_payload(cls, payload: Any) -> "DeleteMealEntry":
        payload = payload or {}
        return cls(date=str(payload.get("date") or ""), meal_id=str(payload.get("mealId") or ""))


@dataclass
class UpdateMealEntryQuantity(Command):
    TYPE: ClassVar[str] = "UPDATE_MEAL_ENTRY"

    date: str
    meal_id: str
    quantity: float

    def __post_init__(self) -> None:
        self.quantity = to_number(self.quantity)

    @classmethod
    def from_payload(cls, payload: Any) -> "UpdateMealEntryQuantity":
        payload = payload or {}
        return cls(
            date=str(payload.get("date") or ""),
            meal_id=str(payload.get("mealId") or ""),
            quantity=to_number(payload.get("quantity")),
        )


@dataclass
class UpdateDayMeta(Command):
    """Shallow-merge a camelCase patch onto a day log."""

    TYPE: ClassVar[str] = "UPDATE_DAY_META"

    date: str
    patch: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "UpdateDayMeta":
        payload = payload or {}
        patch = payload.get("patch")
        return cls(
            date=str(payload.get("date") or ""),
            patch=dict(patch) if isinstance(patch, dict) else {},
        )


@dataclass
class SetWorkout(Command):
    TYPE: ClassVar[str] = "SET_WORKOUT"

    date: str
    workout_calories: float = 0.0
    intensity_factor: Optional[float] = None
    workout_description: str = ""

    def __post_init__(self) -> None:
        self.workout_calories = to_number(self.workout_calories)
        self.intensity_factor = _optional_intensity(self.intensity_factor)

    @classmethod
    def from_payload(cls, payload: Any) -> "SetWorkout":
        payload = payload or {}
        return cls(
            date=str(payload.get("date") or ""),
            workout_calories=to_number(payload.get("workoutCalories")),
            intensity_factor=_optional_intensity(payload.get("intensityFactor")),
            workout_description=str(payload.get("workoutDescription") or ""),
        )


@dataclass
class UpdateDayWorkoutCalories(Command):
    TYPE: ClassVar[str] = "UPDATE_DAY_WORKOUT"

    date: str
    workout_calories: float

    def __post_init__(self) -> None:
        self.workout_calories = to_number(self.workout_calories)

    @classmethod
    def from_payload(cls, payload: Any) -> "UpdateDayWorkoutCalories":
        payload = payload or {}
        value = payload.get("workoutCalories", payload.get("workoutKcal"))
        return cls(date=str(payload.get("date") or ""), workout_calories=to_number(value))


@dataclass
class UpdateDayIntensityFactor(Command):
    TYPE: ClassVar[str] = "UPDATE_DAY_INTENSITY"

    date: str
    intensity_factor: Optional[float]

    def __post_init__(self) -> None:
        self.intensity_factor = _optional_intensity(self.intensity_factor)

    @classmethod
    def from_payload(cls, payload: Any) -> "UpdateDayIntensityFactor":
        payload = payload or {}
        return cls(
            date=str(payload.get("date") or ""),
            intensity_factor=_optional_intensity(payload.get("intensityFactor")),
        )


@dataclass
class UpdateDayWorkoutDescription(Command):
    TYPE: ClassVar[str] = "UPDATE_DAY_WORKOUT_DESC"

    date: str
    description: str

    @classmethod
    def from_payload(cls, payload: Any) -> "UpdateDayWorkoutDescription":
        payload = payload or {}
        return cls(
            date=str(payload.get("date") or ""),
            description=str(payload.get("workoutDesc") or ""),
        )


@dataclass
class UpdateDayHydration(Command):
    TYPE: ClassVar[str] = "UPDATE_DAY_HYDRATION"

    date: str
    hydration_litres: float

    def __post_init__(self) -> None:
        self.hydration_litres = max(0.0, to_number(self.hydration_litres))

    @classmethod
    def from_payload(cls, payload: Any) -> "UpdateDayHydration":
        payload = payload or {}
        return cls(
            date=str(payload.get("date") or ""),
            hydration_litres=payload.get("hydrationLitres"),
        )


@dataclass
class UpdateDayNotes(Command):
    TYPE: ClassVar[str] = "UPDATE_DAY_NOTES"

    date: str
    notes: str

    @classmethod
    def from_payload(cls, payload: Any) -> "UpdateDayNotes":
        payload = payload or {}
        return cls(date=str(payload.get("date") or ""), notes=str(payload.get("notes") or ""))


@dataclass
class UpdateDayActivities(Command):
    """Replace a day's activity bouts wholesale."""

    TYPE: ClassVar[str] = "UPDATE_DAY_ACTIVITIES"

    date: str
    activities: list[ActivityEntry] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> "UpdateDayActivities":
        payload = payload or {}
        return cls(
            date=str(payload.get("date") or ""),
            activities=[
                ActivityEntry.from_dict(a)
                for a in payload.get("activities") or []
                if isinstance(a, dict)
            ],
        )


@dataclass
class UpdateDayStepsAndSurvey(Command):
    TYPE: ClassVar[str] = "UPDATE_DAY_STEPS_SURVEY"

    date: str
    steps: Optional[int] = None
    survey: Optional[Survey] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "UpdateDayStepsAndSurvey":
        payload = payload or {}
        survey = payload.get("survey")
        return cls(
            date=str(payload.get("date") or ""),
            steps=_optional_steps(payload.get("steps")),
            survey=Survey.from_dict(survey) if isinstance(survey, dict) else None,
        )


@dataclass
class UpdateProfile(Command):
    """Shallow-merge a camelCase patch onto the profile."""

    TYPE: ClassVar[str] = "UPDATE_PROFILE"

    patch: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "UpdateProfile":
        return cls(patch=dict(payload) if isinstance(payload, dict) else {})


COMMAND_TYPES: dict[str, type[Command]] = {
    cls.TYPE: cls
    for cls in (
        SetSelectedDate,
        ImportSnapshot,
        UpsertFoodItem,
        DeleteFoodItem,
        AddFoodCategory,
        RenameFoodCategory,
        DeleteFoodCategory,
        AddMealEntry,
        DeleteMealEntry,
        UpdateMealEntryQuantity,
        UpdateDayMeta,
        SetWorkout,
        UpdateDayWorkoutCalories,
        UpdateDayIntensityFactor,
        UpdateDayWorkoutDescription,
        UpdateDayHydration,
        UpdateDayNotes,
        UpdateDayActivities,
        UpdateDayStepsAndSurvey,
        UpdateProfile,
    )
}


def parse_command(message: dict[str, Any]) -> Optional[Command]:
    """Build a command from a ``{"type", "payload"}`` message.

    Returns:
        The command, or None when the type is not recognised
    """
    command_cls = COMMAND_TYPES.get(str(message.get("type") or ""))
    if command_cls is None:
        return None
    return command_cls.from_payload(message.get("payload"))

"""Entity model for the tracker snapshot.

Every entity is a dataclass with a ``to_dict`` / ``from_dict`` pair that
maps to the persisted camelCase shape. Keys the model does not know about
are carried in ``extra`` so that a round-trip never drops user data.
``from_dict`` expects an already backfilled dict (see
``diettracker.state.migration``); it coerces types but does not resolve
legacy aliases.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Optional


DEFAULT_FOOD_CATEGORIES = ("home", "street", "packaged", "cheat", "drinks")

DEFAULT_DAILY_KCAL_TARGET = 2200.0
DEFAULT_ACTIVITY_FACTOR = 1.2

# Locomotion and thermic-effect constants carried on the profile
DEFAULT_WALK_KCAL_PER_KG_PER_KM = 0.78
DEFAULT_RUN_KCAL_PER_KG_PER_KM = 1.0
DEFAULT_STEP_KCAL_CONST = 0.00057
DEFAULT_TEF_RATIO = 0.10

# kcal of intake or expenditure equivalent to 1 kg of body mass
KCAL_PER_KG = 7700


def today_iso() -> str:
    """Return the current calendar date as YYYY-MM-DD."""
    return date.today().isoformat()


def to_number(value: Any, fallback: float = 0.0) -> float:
    """Coerce a value to a finite float.

    Empty strings, None, non-numeric strings, NaN and infinities all
    collapse to ``fallback``.

    Example:
        >>> to_number("12.5")
        12.5
        >>> to_number("abc", 3.0)
        3.0
    """
    if value is None or value == "":
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return fallback
    if not math.isfinite(number):
        return fallback
    return number


def to_optional_number(value: Any) -> Optional[float]:
    """Coerce a value to a finite float, or None when it is absent/invalid."""
    if value is None or value == "":
        return None
    number = to_number(value, math.nan)
    return None if math.isnan(number) else number


def round_kcal(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, -2.5 -> -2).

    Non-finite values round to 0.
    """
    if not math.isfinite(value):
        return 0
    return int(math.floor(value + 0.5))


def new_id() -> str:
    """Generate an opaque entity id."""
    return uuid.uuid4().hex


class Sex(Enum):
    """Sex recorded on the profile."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class ActivityPreset(Enum):
    """Named activity presets for the default activity factor."""

    SEDENTARY = "sedentary"          # Little or no exercise
    LIGHT = "light"                  # Light exercise 1-3 days/week
    MODERATE = "moderate"            # Moderate exercise 3-5 days/week
    ACTIVE = "active"                # Hard exercise 6-7 days/week
    VERY_ACTIVE = "very_active"      # Very hard exercise, physical job


# Activity level multipliers (Harris-Benedict activity factors)
ACTIVITY_MULTIPLIERS = {
    ActivityPreset.SEDENTARY: 1.2,
    ActivityPreset.LIGHT: 1.375,
    ActivityPreset.MODERATE: 1.55,
    ActivityPreset.ACTIVE: 1.725,
    ActivityPreset.VERY_ACTIVE: 1.9,
}


def activity_factor_for(preset: ActivityPreset) -> float:
    """Return the multiplier for an activity preset."""
    return ACTIVITY_MULTIPLIERS[preset]


class ActivityMode(Enum):
    """How a day's energy expenditure is computed."""

    MANUAL = "manual"
    ADVANCED_NEAT = "advanced_neat"  # steps and survey only
    ADVANCED_FULL = "advanced_full"  # steps, survey and activity bouts

    @property
    def is_advanced(self) -> bool:
        return self is not ActivityMode.MANUAL


class MealSlot(Enum):
    """Meal slots a day's entries are bucketed into."""

    LUNCH = "lunch"
    DINNER = "dinner"
    EXTRAS = "extras"


# "extra" and "snack" are legacy labels for the extras bucket
MEAL_SLOT_ALIASES = {
    "lunch": MealSlot.LUNCH,
    "dinner": MealSlot.DINNER,
    "extras": MealSlot.EXTRAS,
    "extra": MealSlot.EXTRAS,
    "snack": MealSlot.EXTRAS,
}


def meal_slot_for(label: Any) -> Optional[MealSlot]:
    """Resolve a stored meal-type label to its slot, or None if unknown."""
    if isinstance(label, MealSlot):
        return label
    return MEAL_SLOT_ALIASES.get(str(label or "").strip().lower())


class ActivityType(Enum):
    """Kind of a structured activity bout."""

    WALK = "walk"
    RUN = "run"
    OTHER = "other"


def parse_enum(enum_cls: type[Enum], value: Any, default: Enum) -> Any:
    """Parse an enum leniently, returning ``default`` for unknown values."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return default


def _extra(data: dict[str, Any], known: tuple[str, ...]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k not in known}


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

PROFILE_KEYS = (
    "name",
    "heightCm",
    "weightKg",
    "sex",
    "bmr",
    "dailyKcalTarget",
    "defaultActivityPreset",
    "defaultActivityFactor",
    "proteinTarget",
    "WALK_KCAL_PER_KG_PER_KM",
    "RUN_KCAL_PER_KG_PER_KM",
    "STEP_KCAL_CONST",
    "DEFAULT_TEF_RATIO",
)


@dataclass
class Profile:
    """User's physical constants, targets and locomotion constants."""

    name: str = ""
    height_cm: Optional[float] = None
    weight_kg: Optional[float] = None
    sex: Sex = Sex.MALE
    bmr: Optional[float] = None
    daily_kcal_target: float = DEFAULT_DAILY_KCAL_TARGET
    default_activity_preset: ActivityPreset = ActivityPreset.SEDENTARY
    default_activity_factor: float = DEFAULT_ACTIVITY_FACTOR
    protein_target: Optional[float] = None
    walk_kcal_per_kg_per_km: float = DEFAULT_WALK_KCAL_PER_KG_PER_KM
    run_kcal_per_kg_per_km: float = DEFAULT_RUN_KCAL_PER_KG_PER_KM
    step_kcal_const: float = DEFAULT_STEP_KCAL_CONST
    tef_ratio: float = DEFAULT_TEF_RATIO
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.default_activity_factor or self.default_activity_factor <= 0:
            self.default_activity_factor = DEFAULT_ACTIVITY_FACTOR

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.extra,
            "name": self.name,
            "heightCm": self.height_cm,
            "weightKg": self.weight_kg,
            "sex": self.sex.value,
            "bmr": self.bmr,
            "dailyKcalTarget": self.daily_kcal_target,
            "defaultActivityPreset": self.default_activity_preset.value,
            "defaultActivityFactor": self.default_activity_factor,
            "proteinTarget": self.protein_target,
            "WALK_KCAL_PER_KG_PER_KM": self.walk_kcal_per_kg_per_km,
            "RUN_KCAL_PER_KG_PER_KM": self.run_kcal_per_kg_per_km,
            "STEP_KCAL_CONST": self.step_kcal_const,
            "DEFAULT_TEF_RATIO": self.tef_ratio,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Profile":
        return cls(
            name=str(data.get("name") or ""),
            height_cm=to_optional_number(data.get("heightCm")),
            weight_kg=to_optional_number(data.get("weightKg")),
            sex=parse_enum(Sex, data.get("sex"), Sex.MALE),
            bmr=to_optional_number(data.get("bmr")),
            daily_kcal_target=to_number(
                data.get("dailyKcalTarget"), DEFAULT_DAILY_KCAL_TARGET
            ),
            default_activity_preset=parse_enum(
                ActivityPreset,
                data.get("defaultActivityPreset"),
                ActivityPreset.SEDENTARY,
            ),
            default_activity_factor=to_number(
                data.get("defaultActivityFactor"), DEFAULT_ACTIVITY_FACTOR
            ),
            protein_target=to_optional_number(data.get("proteinTarget")),
            walk_kcal_per_kg_per_km=to_number(
                data.get("WALK_KCAL_PER_KG_PER_KM"), DEFAULT_WALK_KCAL_PER_KG_PER_KM
            ),
            run_kcal_per_kg_per_km=to_number(
                data.get("RUN_KCAL_PER_KG_PER_KM"), DEFAULT_RUN_KCAL_PER_KG_PER_KM
            ),
            step_kcal_const=to_number(
                data.get("STEP_KCAL_CONST"), DEFAULT_STEP_KCAL_CONST
            ),
            tef_ratio=to_number(data.get("DEFAULT_TEF_RATIO"), DEFAULT_TEF_RATIO),
            extra=_extra(data, PROFILE_KEYS),
        )


# ---------------------------------------------------------------------------
# Food catalogue
# ---------------------------------------------------------------------------

FOOD_ITEM_KEYS = ("id", "name", "category", "unitLabel", "kcalPerUnit", "isFavourite")


@dataclass
class FoodItem:
    """A reusable catalogue entry."""

    id: str
    name: str
    category: Optional[str] = None
    unit_label: str = "serving"
    kcal_per_unit: float = 0.0
    is_favourite: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.kcal_per_unit = max(0.0, to_number(self.kcal_per_unit))

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.extra,
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "unitLabel": self.unit_label,
            "kcalPerUnit": self.kcal_per_unit,
            "isFavourite": self.is_favourite,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FoodItem":
        category = data.get("category")
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            category=str(category) if category else None,
            unit_label=str(data.get("unitLabel") or "serving"),
            kcal_per_unit=to_number(data.get("kcalPerUnit")),
            is_favourite=bool(data.get("isFavourite", False)),
            extra=_extra(data, FOOD_ITEM_KEYS),
        )


# ---------------------------------------------------------------------------
# Day log entries
# ---------------------------------------------------------------------------

MEAL_ENTRY_KEYS = (
    "id",
    "mealType",
    "foodItemId",
    "foodNameSnapshot",
    "unitLabelSnapshot",
    "kcalPerUnitSnapshot",
    "quantity",
    "totalKcal",
)


@dataclass
class MealEntry:
    """A logged line item with a snapshot of its food's per-unit rate.

    The snapshot means later catalogue edits never change historical
    totals.
    """

    id: str
    meal_type: str
    food_item_id: Optional[str]
    food_name_snapshot: str
    unit_label_snapshot: str
    kcal_per_unit_snapshot: float
    quantity: float
    total_kcal: int
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_food_item(
        cls,
        food: FoodItem,
        meal_type: MealSlot,
        quantity: Any,
        entry_id: Optional[str] = None,
    ) -> "MealEntry":
        """Create an entry snapshotting ``food`` at its current rate."""
        qty = to_number(quantity)
        return cls(
            id=entry_id or new_id(),
            meal_type=meal_type.value,
            food_item_id=food.id,
            food_name_snapshot=food.name,
            unit_label_snapshot=food.unit_label,
            kcal_per_unit_snapshot=food.kcal_per_unit,
            quantity=qty,
            total_kcal=round_kcal(qty * food.kcal_per_unit),
        )

    def with_quantity(self, quantity: Any) -> "MealEntry":
        """Return a copy with a new quantity, totalled at the snapshotted rate."""
        qty = to_number(quantity)
        return replace(
            self,
            quantity=qty,
            total_kcal=round_kcal(qty * self.kcal_per_unit_snapshot),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.extra,
            "id": self.id,
            "mealType": self.meal_type,
            "foodItemId": self.food_item_id,
            "foodNameSnapshot": self.food_name_snapshot,
            "unitLabelSnapshot": self.unit_label_snapshot,
            "kcalPerUnitSnapshot": self.kcal_per_unit_snapshot,
            "quantity": self.quantity,
            "totalKcal": self.total_kcal,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MealEntry":
        food_item_id = data.get("foodItemId")
        return cls(
            id=str(data.get("id") or ""),
            meal_type=str(data.get("mealType") or ""),
            food_item_id=str(food_item_id) if food_item_id is not None else None,
            food_name_snapshot=str(data.get("foodNameSnapshot") or ""),
            unit_label_snapshot=str(data.get("unitLabelSnapshot") or ""),
            kcal_per_unit_snapshot=to_number(data.get("kcalPerUnitSnapshot")),
            quantity=to_number(data.get("quantity")),
            total_kcal=round_kcal(to_number(data.get("totalKcal"))),
            extra=_extra(data, MEAL_ENTRY_KEYS),
        )


ACTIVITY_ENTRY_KEYS = ("id", "type", "distanceKm", "durationMin", "kcal", "label")


@dataclass
class ActivityEntry:
    """A structured bout of movement, used in advanced activity mode."""

    id: str
    type: ActivityType = ActivityType.OTHER
    distance_km: Optional[float] = None
    duration_min: Optional[float] = None
    kcal: Optional[float] = None  # explicit burn, used when distance is unknown
    label: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.distance_km = to_optional_number(self.distance_km)
        self.duration_min = to_optional_number(self.duration_min)
        self.kcal = to_optional_number(self.kcal)

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.extra,
            "id": self.id,
            "type": self.type.value,
            "distanceKm": self.distance_km,
            "durationMin": self.duration_min,
            "kcal": self.kcal,
            "label": self.label,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActivityEntry":
        return cls(
            id=str(data.get("id") or ""),
            type=parse_enum(ActivityType, data.get("type"), ActivityType.OTHER),
            distance_km=to_optional_number(data.get("distanceKm")),
            duration_min=to_optional_number(data.get("durationMin")),
            kcal=to_optional_number(data.get("kcal")),
            label=str(data.get("label") or ""),
            extra=_extra(data, ACTIVITY_ENTRY_KEYS),
        )


SURVEY_KEYS = ("subjectiveLoad", "standingHours", "activeCommute")


@dataclass
class Survey:
    """Subjective-effort survey for a day."""

    subjective_load: Optional[int] = None  # 1 (very light) .. 5 (very heavy)
    standing_hours: float = 0.0
    active_commute: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.standing_hours = max(0.0, to_number(self.standing_hours))

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.extra,
            "subjectiveLoad": self.subjective_load,
            "standingHours": self.standing_hours,
            "activeCommute": self.active_commute,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Survey":
        load = to_optional_number(data.get("subjectiveLoad"))
        return cls(
            subjective_load=int(load) if load is not None else None,
            standing_hours=max(0.0, to_number(data.get("standingHours"))),
            active_commute=bool(data.get("activeCommute", False)),
            extra=_extra(data, SURVEY_KEYS),
        )


# ---------------------------------------------------------------------------
# Day log
# ---------------------------------------------------------------------------

DAY_LOG_KEYS = (
    "date",
    "activityFactor",
    "activityMode",
    "bmrSnapshot",
    "weightKg",
    "hydrationLitres",
    "notes",
    "meals",
    "activities",
    "steps",
    "survey",
    "workoutCalories",
    "intensityFactor",
    "workoutDescription",
)


@dataclass
class DayLog:
    """Aggregate root for one calendar date."""

    date: str
    activity_factor: float = DEFAULT_ACTIVITY_FACTOR
    activity_mode: ActivityMode = ActivityMode.MANUAL
    bmr_snapshot: Optional[float] = None
    weight_kg: Optional[float] = None
    hydration_litres: float = 0.0
    notes: str = ""
    meals: list[MealEntry] = field(default_factory=list)
    activities: list[ActivityEntry] = field(default_factory=list)
    steps: Optional[int] = None
    survey: Optional[Survey] = None
    workout_calories: float = 0.0
    intensity_factor: Optional[float] = None
    workout_description: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(cls, date_key: str, profile: Profile) -> "DayLog":
        """Create the canonical empty day, snapshotting profile defaults."""
        return cls(
            date=date_key,
            activity_factor=profile.default_activity_factor,
            bmr_snapshot=profile.bmr,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.extra,
            "date": self.date,
            "activityFactor": self.activity_factor,
            "activityMode": self.activity_mode.value,
            "bmrSnapshot": self.bmr_snapshot,
            "weightKg": self.weight_kg,
            "hydrationLitres": self.hydration_litres,
            "notes": self.notes,
            "meals": [m.to_dict() for m in self.meals],
            "activities": [a.to_dict() for a in self.activities],
            "steps": self.steps,
            "survey": self.survey.to_dict() if self.survey else None,
            "workoutCalories": self.workout_calories,
            "intensityFactor": self.intensity_factor,
            "workoutDescription": self.workout_description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DayLog":
        steps = to_optional_number(data.get("steps"))
        survey = data.get("survey")
        return cls(
            date=str(data.get("date") or ""),
            activity_factor=to_number(
                data.get("activityFactor"), DEFAULT_ACTIVITY_FACTOR
            ),
            activity_mode=parse_enum(
                ActivityMode, data.get("activityMode"), ActivityMode.MANUAL
            ),
            bmr_snapshot=to_optional_number(data.get("bmrSnapshot")),
            weight_kg=to_optional_number(data.get("weightKg")),
            hydration_litres=to_number(data.get("hydrationLitres")),
            notes=str(data.get("notes") or ""),
            meals=[
                MealEntry.from_dict(m)
                for m in data.get("meals") or []
                if isinstance(m, dict)
            ],
            activities=[
                ActivityEntry.from_dict(a)
                for a in data.get("activities") or []
                if isinstance(a, dict)
            ],
            steps=int(steps) if steps is not None else None,
            survey=Survey.from_dict(survey) if isinstance(survey, dict) else None,
            workout_calories=to_number(data.get("workoutCalories")),
            intensity_factor=to_optional_number(data.get("intensityFactor")),
            workout_description=str(data.get("workoutDescription") or ""),
            extra=_extra(data, DAY_LOG_KEYS),
        )


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

SNAPSHOT_KEYS = ("profile", "foodItems", "foodCategories", "dayLogs", "selectedDate")


@dataclass
class Snapshot:
    """The root aggregate persisted as one unit."""

    profile: Profile = field(default_factory=Profile)
    food_items: list[FoodItem] = field(default_factory=list)
    food_categories: list[str] = field(
        default_factory=lambda: list(DEFAULT_FOOD_CATEGORIES)
    )
    day_logs: dict[str, DayLog] = field(default_factory=dict)
    selected_date: str = field(default_factory=today_iso)
    extra: dict[str, Any] = field(default_factory=dict)

    def day(self, date_key: str) -> DayLog:
        """Return the stored day, or a fresh canonical one (not stored)."""
        existing = self.day_logs.get(date_key)
        if existing is not None:
            return existing
        return DayLog.new(date_key, self.profile)

    def find_food_item(self, food_id: str) -> Optional[FoodItem]:
        for item in self.food_items:
            if item.id == food_id:
                return item
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.extra,
            "profile": self.profile.to_dict(),
            "foodItems": [f.to_dict() for f in self.food_items],
            "foodCategories": list(self.food_categories),
            "dayLogs": {k: d.to_dict() for k, d in self.day_logs.items()},
            "selectedDate": self.selected_date,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Snapshot":
        day_logs = data.get("dayLogs") or {}
        return cls(
            profile=Profile.from_dict(data.get("profile") or {}),
            food_items=[
                FoodItem.from_dict(f)
                for f in data.get("foodItems") or []
                if isinstance(f, dict)
            ],
            food_categories=[str(c) for c in data.get("foodCategories") or []],
            day_logs={
                str(k): DayLog.from_dict({**d, "date": str(k)})
                for k, d in day_logs.items()
                if isinstance(d, dict)
            },
            selected_date=str(data.get("selectedDate") or ""),
            extra=_extra(data, SNAPSHOT_KEYS),
        )

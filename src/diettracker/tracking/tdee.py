"""Activity factor and TDEE decomposition.

A day's Total Daily Energy Expenditure is decomposed as

    TDEE = round(BMR × AF) + TEF

where TEF (thermic effect of food) is a constant fraction of the day's
total intake, independent of how AF was obtained.

The activity factor (AF) comes from one of two paths, chosen by the day's
activity mode:

- manual: the day's flat multiplier (falling back to the profile default)
- advanced: built bottom-up from the day's inputs,

      AF = (BMR + NEAT + EAT) / BMR

  NEAT (non-exercise activity) comes from step count and the effort
  survey; EAT (exercise activity) from structured activity bouts, net of
  the resting burn already counted in BMR. "advanced_neat" days ignore the
  activity bouts.

Every exposed kcal figure is an integer; AF is kept unrounded. Missing BMR,
weight or intake degrade to zero contributions, never to NaN.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from diettracker.state.models import (
    DEFAULT_ACTIVITY_FACTOR,
    ActivityEntry,
    ActivityMode,
    ActivityType,
    Profile,
    Snapshot,
    Survey,
    round_kcal,
    to_number,
)
from diettracker.tracking.meals import MealTotals, compute_day_meal_totals

MINUTES_PER_DAY = 1440

# Standing instead of sitting, kcal per kg body weight per hour
STANDING_KCAL_PER_KG_PER_HOUR = 0.2

# Walking or cycling to work, kcal per kg body weight per day
ACTIVE_COMMUTE_KCAL_PER_KG = 1.5

# Subjective load 1..5 scales NEAT by ±5% per step away from 3
NEUTRAL_SUBJECTIVE_LOAD = 3
SUBJECTIVE_LOAD_STEP = 0.05


@dataclass
class LocomotionConstants:
    """Per-profile constants for converting movement into kcal."""

    walk_kcal_per_kg_per_km: float
    run_kcal_per_kg_per_km: float
    step_kcal_const: float
    tef_ratio: float


def constants_from_profile(profile: Profile) -> LocomotionConstants:
    """Read the locomotion constants off a profile, clamped to >= 0."""
    return LocomotionConstants(
        walk_kcal_per_kg_per_km=max(0.0, profile.walk_kcal_per_kg_per_km),
        run_kcal_per_kg_per_km=max(0.0, profile.run_kcal_per_kg_per_km),
        step_kcal_const=max(0.0, profile.step_kcal_const),
        tef_ratio=max(0.0, profile.tef_ratio),
    )


@dataclass
class ActivityBurn:
    """Estimated burn for one activity bout."""

    activity_id: str
    type: str
    gross: int
    net: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "activityId": self.activity_id,
            "type": self.type,
            "gross": self.gross,
            "net": self.net,
        }


@dataclass
class EATDetails:
    """Breakdown of exercise activity thermogenesis."""

    total_gross: int = 0
    total_net: int = 0
    items: list[ActivityBurn] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalGross": self.total_gross,
            "totalNet": self.total_net,
            "items": [i.to_dict() for i in self.items],
        }


@dataclass
class AdvancedActivity:
    """Result of the bottom-up activity factor computation."""

    af_advanced: float
    neat: int
    eat: int
    eat_details: EATDetails
    maintenance_plus_activity: int


@dataclass
class TDEEBreakdown:
    """Components of a day's TDEE and where they came from."""

    bmr: int
    af_computed: float
    neat: int
    eat: int
    eat_details: EATDetails
    maintenance_plus_activity: int
    tef: int
    tdee: int
    source: str  # "manual" | "advanced"

    def to_dict(self) -> dict[str, Any]:
        return {
            "bmr": self.bmr,
            "afComputed": self.af_computed,
            "neat": self.neat,
            "eat": self.eat,
            "eatDetails": self.eat_details.to_dict(),
            "maintenancePlusActivity": self.maintenance_plus_activity,
            "tef": self.tef,
            "tdee": self.tdee,
            "source": self.source,
        }


@dataclass
class DayDerived:
    """Everything collaborators display for one day."""

    date: str
    tdee: int
    total_intake: float
    net_kcal: int
    tdee_breakdown: TDEEBreakdown
    workout_calories: float
    intensity_factor: Optional[float]
    meals: MealTotals
    activities: list[ActivityEntry]
    steps: Optional[int]
    survey: Optional[Survey]
    activity_mode: ActivityMode

    @property
    def deficit(self) -> int:
        """TDEE minus intake; positive means a deficit."""
        return -self.net_kcal

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "tdee": self.tdee,
            "totalIntake": self.total_intake,
            "netKcal": self.net_kcal,
            "tdeeBreakdown": self.tdee_breakdown.to_dict(),
            "workoutCalories": self.workout_calories,
            "intensityFactor": self.intensity_factor,
            "meals": self.meals.to_dict(),
            "activities": [a.to_dict() for a in self.activities],
            "steps": self.steps,
            "survey": self.survey.to_dict() if self.survey else None,
            "activityMode": self.activity_mode.value,
        }


def compute_neat(
    weight_kg: float,
    steps: Optional[int],
    survey: Optional[Survey],
    constants: LocomotionConstants,
) -> int:
    """Estimate non-exercise activity thermogenesis for a day.

    Args:
        weight_kg: Body weight (0 if unknown)
        steps: Step count, or None
        survey: Effort survey, or None
        constants: Locomotion constants

    Returns:
        NEAT in kcal (>= 0)
    """
    weight = max(0.0, weight_kg)
    kcal = max(0.0, to_number(steps)) * constants.step_kcal_const * weight

    multiplier = 1.0
    if survey is not None:
        kcal += survey.standing_hours * STANDING_KCAL_PER_KG_PER_HOUR * weight
        if survey.active_commute:
            kcal += ACTIVE_COMMUTE_KCAL_PER_KG * weight
        if survey.subjective_load is not None:
            load = min(5, max(1, survey.subjective_load))
            multiplier += (load - NEUTRAL_SUBJECTIVE_LOAD) * SUBJECTIVE_LOAD_STEP

    return max(0, round_kcal(kcal * multiplier))


def compute_activity_burn(
    activity: ActivityEntry,
    weight_kg: float,
    bmr: float,
    constants: LocomotionConstants,
) -> ActivityBurn:
    """Estimate gross and net burn for one activity bout.

    Walks and runs with a distance use ``distance × weight × kcal/kg/km``;
    anything else uses the bout's explicit kcal. Net burn subtracts the
    resting share of BMR over the bout's duration.
    """
    per_km = {
        ActivityType.WALK: constants.walk_kcal_per_kg_per_km,
        ActivityType.RUN: constants.run_kcal_per_kg_per_km,
    }.get(activity.type)

    if per_km is not None and activity.distance_km and weight_kg > 0:
        gross = max(0.0, activity.distance_km) * weight_kg * per_km
    else:
        gross = max(0.0, to_number(activity.kcal))

    resting = 0.0
    if activity.duration_min and bmr > 0:
        resting = bmr / MINUTES_PER_DAY * max(0.0, activity.duration_min)

    return ActivityBurn(
        activity_id=activity.id,
        type=activity.type.value,
        gross=round_kcal(gross),
        net=max(0, round_kcal(gross - resting)),
    )


def compute_eat(
    activities: list[ActivityEntry],
    weight_kg: float,
    bmr: float,
    constants: LocomotionConstants,
) -> EATDetails:
    """Sum the burn of a day's activity bouts."""
    items = [compute_activity_burn(a, weight_kg, bmr, constants) for a in activities]
    return EATDetails(
        total_gross=sum(i.gross for i in items),
        total_net=sum(i.net for i in items),
        items=items,
    )


def compute_advanced_activity_factor(
    bmr: float,
    weight_kg: float,
    activities: list[ActivityEntry],
    steps: Optional[int],
    survey: Optional[Survey],
    constants: LocomotionConstants,
    include_exercise: bool = True,
) -> AdvancedActivity:
    """Derive an activity factor bottom-up from a day's movement inputs.

    Args:
        bmr: Basal metabolic rate for the day (0 if unknown)
        weight_kg: Body weight for the day (0 if unknown)
        activities: Structured activity bouts
        steps: Step count, or None
        survey: Effort survey, or None
        constants: Locomotion constants
        include_exercise: False for NEAT-only days (activity bouts ignored)

    Returns:
        AdvancedActivity. Without a BMR there is nothing to scale, so the
        factor is a neutral 1.0 and all contributions are 0.
    """
    if bmr <= 0:
        return AdvancedActivity(
            af_advanced=1.0,
            neat=0,
            eat=0,
            eat_details=EATDetails(),
            maintenance_plus_activity=0,
        )

    neat = compute_neat(weight_kg, steps, survey, constants)
    eat_details = (
        compute_eat(activities, weight_kg, bmr, constants)
        if include_exercise
        else EATDetails()
    )
    eat = eat_details.total_net

    af = (bmr + neat + eat) / bmr
    return AdvancedActivity(
        af_advanced=af,
        neat=neat,
        eat=eat,
        eat_details=eat_details,
        maintenance_plus_activity=round_kcal(bmr * af),
    )


def compute_tdee_from_af_and_tef(
    bmr: float,
    activity_factor: float,
    intake_kcal: float,
    tef_ratio: float,
) -> tuple[int, int, int]:
    """Apply the TDEE formula.

    Returns:
        Tuple of (maintenance_plus_activity, tef, tdee)
    """
    maintenance = round_kcal(max(0.0, bmr) * activity_factor)
    tef = round_kcal(max(0.0, intake_kcal) * tef_ratio)
    return maintenance, tef, maintenance + tef


def get_day_derived(snapshot: Snapshot, date_key: str) -> DayDerived:
    """Compute intake, TDEE and energy balance for one day.

    Days that were never logged are derived from the canonical empty day
    (profile defaults), so the result is always fully populated.

    Args:
        snapshot: Current snapshot
        date_key: YYYY-MM-DD

    Returns:
        DayDerived; ``net_kcal`` is intake minus TDEE (negative = deficit)
    """
    day = snapshot.day(date_key)
    profile = snapshot.profile
    constants = constants_from_profile(profile)

    bmr_source = day.bmr_snapshot if day.bmr_snapshot is not None else profile.bmr
    bmr = max(0.0, to_number(bmr_source))
    weight_source = day.weight_kg if day.weight_kg is not None else profile.weight_kg
    weight_kg = max(0.0, to_number(weight_source))

    meals = compute_day_meal_totals(day)
    total_intake = to_number(meals.total)

    if day.activity_mode.is_advanced:
        adv = compute_advanced_activity_factor(
            bmr=bmr,
            weight_kg=weight_kg,
            activities=day.activities,
            steps=day.steps,
            survey=day.survey,
            constants=constants,
            include_exercise=day.activity_mode is ActivityMode.ADVANCED_FULL,
        )
        af, neat, eat, eat_details = adv.af_advanced, adv.neat, adv.eat, adv.eat_details
        source = "advanced"
    else:
        af = (
            to_number(day.activity_factor)
            or to_number(profile.default_activity_factor)
            or DEFAULT_ACTIVITY_FACTOR
        )
        neat, eat, eat_details = 0, 0, EATDetails()
        source = "manual"

    maintenance, tef, tdee = compute_tdee_from_af_and_tef(
        bmr, af, total_intake, constants.tef_ratio
    )

    breakdown = TDEEBreakdown(
        bmr=round_kcal(bmr),
        af_computed=af,
        neat=neat,
        eat=eat,
        eat_details=eat_details,
        maintenance_plus_activity=maintenance,
        tef=tef,
        tdee=tdee,
        source=source,
    )

    return DayDerived(
        date=date_key,
        tdee=tdee,
        total_intake=total_intake,
        net_kcal=round_kcal(total_intake - tdee),
        tdee_breakdown=breakdown,
        workout_calories=day.workout_calories,
        intensity_factor=day.intensity_factor,
        meals=meals,
        activities=list(day.activities),
        steps=day.steps,
        survey=day.survey,
        activity_mode=day.activity_mode,
    )

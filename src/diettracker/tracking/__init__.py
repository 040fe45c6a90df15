"""Derived numbers: meal totals, TDEE, momentum and trends."""

from diettracker.tracking.meals import (
    MealTotals,
    calculate_effective_workout,
    compute_day_meal_totals,
)
from diettracker.tracking.momentum import Momentum, compute_momentum, momentum_label
from diettracker.tracking.tdee import (
    DayDerived,
    TDEEBreakdown,
    compute_advanced_activity_factor,
    get_day_derived,
)

__all__ = [
    "MealTotals",
    "compute_day_meal_totals",
    "calculate_effective_workout",
    "DayDerived",
    "TDEEBreakdown",
    "compute_advanced_activity_factor",
    "get_day_derived",
    "Momentum",
    "compute_momentum",
    "momentum_label",
]

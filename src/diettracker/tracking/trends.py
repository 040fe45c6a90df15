"""Multi-day summaries over logged days.

Only days that carry some signal (meals, hydration or a weigh-in) take part
in any summary; an empty placeholder day would otherwise read as a full
deficit of TDEE.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Callable

from diettracker.state.models import KCAL_PER_KG, DayLog, Snapshot
from diettracker.tracking.meals import compute_day_meal_totals
from diettracker.tracking.tdee import DayDerived, get_day_derived

DeriveFn = Callable[[Snapshot, str], DayDerived]


def has_signal(day: DayLog) -> bool:
    """Return True if anything was actually logged on the day."""
    return (
        compute_day_meal_totals(day).total > 0
        or day.hydration_litres > 0
        or day.weight_kg is not None
    )


def is_date_key(value: str) -> bool:
    """Return True for a valid YYYY-MM-DD key."""
    try:
        date.fromisoformat(value)
    except (TypeError, ValueError):
        return False
    return True


def logged_dates(snapshot: Snapshot) -> list[str]:
    """Date keys of days with signal, oldest first."""
    return sorted(
        key
        for key, day in snapshot.day_logs.items()
        if is_date_key(key) and has_signal(day)
    )


def deficit_series(
    snapshot: Snapshot, derive: DeriveFn = get_day_derived
) -> list[dict[str, Any]]:
    """Daily and cumulative deficit for each logged day.

    Returns:
        Chronological list of ``{"date", "dailyDeficit", "totalDeficit"}``
        where positive values mean a deficit (TDEE above intake)
    """
    series = []
    running = 0
    for key in logged_dates(snapshot):
        daily = derive(snapshot, key).deficit
        running += daily
        series.append({"date": key, "dailyDeficit": daily, "totalDeficit": running})
    return series


@dataclass
class WindowSummary:
    """Averages over the most recent logged days."""

    days_considered: int = 0
    avg_intake: float = 0.0
    avg_tdee: float = 0.0
    avg_net: float = 0.0
    avg_deficit: float = 0.0
    avg_vs_target: float = 0.0  # average intake minus daily target

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def window_summary(
    snapshot: Snapshot, days: int = 7, derive: DeriveFn = get_day_derived
) -> WindowSummary:
    """Average intake, TDEE and balance over the last ``days`` logged days."""
    keys = logged_dates(snapshot)[-days:] if days > 0 else []
    if not keys:
        return WindowSummary()

    derived = [derive(snapshot, k) for k in keys]
    n = len(derived)
    avg_intake = sum(d.total_intake for d in derived) / n
    avg_tdee = sum(d.tdee for d in derived) / n
    avg_net = sum(d.net_kcal for d in derived) / n

    return WindowSummary(
        days_considered=n,
        avg_intake=avg_intake,
        avg_tdee=avg_tdee,
        avg_net=avg_net,
        avg_deficit=-avg_net,
        avg_vs_target=avg_intake - snapshot.profile.daily_kcal_target,
    )


@dataclass
class AllTimeSummary:
    """Totals over every logged day."""

    days_logged: int = 0
    total_intake: float = 0.0
    total_burn: float = 0.0
    net_deficit: float = 0.0
    estimated_kg_change: float = 0.0  # negative = loss

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def all_time_summary(
    snapshot: Snapshot, derive: DeriveFn = get_day_derived
) -> AllTimeSummary:
    """Total intake and burn across the whole log.

    Example:
        A log whose days add up to a 7700 kcal deficit reports
        ``estimated_kg_change == -1.0``.
    """
    derived = [derive(snapshot, k) for k in logged_dates(snapshot)]
    total_intake = sum(d.total_intake for d in derived)
    total_burn = sum(d.tdee for d in derived)
    net_deficit = total_burn - total_intake

    return AllTimeSummary(
        days_logged=len(derived),
        total_intake=total_intake,
        total_burn=total_burn,
        net_deficit=net_deficit,
        estimated_kg_change=-net_deficit / KCAL_PER_KG,
    )

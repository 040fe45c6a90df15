"""Smoothed body-weight trend.

Daily scale readings swing by a kilo or more with water and gut contents.
The trend is an exponentially smoothed moving average (the Hacker's Diet
method):

    T_n = T_{n-1} + α × (W_n - T_{n-1})

Weigh-ins are not daily, so α is scaled by the gap since the previous
reading:

    α_t = 1 - (1 - α)^t

Reference: https://www.fourmilab.ch/hackdiet/
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Optional

from diettracker.state.models import KCAL_PER_KG, Snapshot
from diettracker.tracking.trends import is_date_key

DEFAULT_SMOOTHING = 0.1


def time_scaled_alpha(base_alpha: float, days_elapsed: int) -> float:
    """Adjust the smoothing factor for a gap of ``days_elapsed`` days.

    Example:
        >>> time_scaled_alpha(0.1, 1)
        0.1
        >>> round(time_scaled_alpha(0.1, 3), 3)
        0.271
    """
    if days_elapsed <= 0:
        days_elapsed = 1
    return 1 - (1 - base_alpha) ** days_elapsed


def update_trend(
    prev_trend: float,
    weight_kg: float,
    smoothing: float = DEFAULT_SMOOTHING,
    days_elapsed: int = 1,
) -> float:
    """Advance the trend by one weigh-in.

    Args:
        prev_trend: Previous trend value (kg)
        weight_kg: New scale reading (kg)
        smoothing: Base smoothing factor
        days_elapsed: Days since the previous reading

    Returns:
        New trend value (kg)
    """
    alpha = time_scaled_alpha(smoothing, days_elapsed)
    return prev_trend + alpha * (weight_kg - prev_trend)


def calculate_trend_from_scratch(
    weights: list[tuple[date, float]],
    smoothing: float = DEFAULT_SMOOTHING,
) -> list[float]:
    """Trend values for a chronological list of (date, kg) readings.

    The first reading seeds the trend.
    """
    if not weights:
        return []

    trends = [weights[0][1]]
    for (prev_date, _), (curr_date, weight) in zip(weights, weights[1:]):
        days_elapsed = (curr_date - prev_date).days
        trends.append(update_trend(trends[-1], weight, smoothing, days_elapsed))
    return trends


@dataclass
class WeightTrendPoint:
    date: str
    weight_kg: float
    trend_kg: float

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "weightKg": self.weight_kg, "trendKg": self.trend_kg}


def weight_trend(
    snapshot: Snapshot, smoothing: float = DEFAULT_SMOOTHING
) -> list[WeightTrendPoint]:
    """Smoothed trend over every day with a logged weight, oldest first."""
    readings = sorted(
        (date.fromisoformat(key), day.weight_kg)
        for key, day in snapshot.day_logs.items()
        if day.weight_kg is not None and is_date_key(key)
    )
    trends = calculate_trend_from_scratch(readings, smoothing)
    return [
        WeightTrendPoint(date=d.isoformat(), weight_kg=w, trend_kg=t)
        for (d, w), t in zip(readings, trends)
    ]


def estimate_weekly_change(trend_start: float, trend_end: float, days: int = 7) -> float:
    """Weekly change in kg implied by two trend values (negative = losing)."""
    if days <= 0:
        return 0.0
    return (trend_end - trend_start) / days * 7


def estimate_daily_calorie_balance(weekly_change_kg: float) -> float:
    """Daily kcal balance implied by a weekly kg change (negative = deficit)."""
    return weekly_change_kg * KCAL_PER_KG / 7


def latest_trend(snapshot: Snapshot) -> Optional[WeightTrendPoint]:
    points = weight_trend(snapshot)
    return points[-1] if points else None


@dataclass
class WeightReport:
    """Trend movement over a recent period of weigh-ins."""

    current_weight: float
    current_trend: float
    start_weight: float
    start_trend: float
    trend_change: float
    weekly_rate: float  # kg/week, negative = losing
    implied_daily_deficit: float  # kcal/day, positive = deficit
    period_days: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentWeightKg": self.current_weight,
            "currentTrendKg": self.current_trend,
            "startWeightKg": self.start_weight,
            "startTrendKg": self.start_trend,
            "trendChangeKg": self.trend_change,
            "weeklyRateKg": self.weekly_rate,
            "impliedDailyDeficit": self.implied_daily_deficit,
            "periodDays": self.period_days,
        }


def weight_report(
    snapshot: Snapshot, days: int = 30, smoothing: float = DEFAULT_SMOOTHING
) -> Optional[WeightReport]:
    """Summarise the trend over the last ``days`` calendar days of weigh-ins.

    The trend is smoothed over the full history; only the reported window is
    limited to ``days`` before the latest weigh-in.

    Returns:
        WeightReport, or None with fewer than two weigh-ins in the window
    """
    points = weight_trend(snapshot, smoothing)
    if not points:
        return None

    latest = points[-1]
    cutoff = date.fromisoformat(latest.date) - timedelta(days=max(0, days))
    history = [p for p in points if date.fromisoformat(p.date) >= cutoff]
    if len(history) < 2:
        return None

    oldest = history[0]
    period_days = (date.fromisoformat(latest.date) - date.fromisoformat(oldest.date)).days
    weekly_rate = estimate_weekly_change(oldest.trend_kg, latest.trend_kg, period_days)
    # balance is negative in a deficit; report the deficit as positive
    implied_deficit = -estimate_daily_calorie_balance(weekly_rate)

    return WeightReport(
        current_weight=latest.weight_kg,
        current_trend=latest.trend_kg,
        start_weight=oldest.weight_kg,
        start_trend=oldest.trend_kg,
        trend_change=latest.trend_kg - oldest.trend_kg,
        weekly_rate=weekly_rate,
        implied_daily_deficit=implied_deficit,
        period_days=period_days,
    )

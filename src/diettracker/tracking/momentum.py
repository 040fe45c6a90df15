"""Momentum: direction of recent energy balance as a bounded score.

Walking back from the most recent day that carries any signal, up to ``window_days`` days
that carry any signal are collected (empty days are skipped and do not
count against the window, but the scan never looks further back than
``max_lookback_days``). Their average deficit is converted to kg/day with
7700 kcal/kg and mapped onto [-1, 1]:

    momentum_scaled = clamp(avg_delta_per_day / FULL_SCALE_KG_PER_DAY, -1, 1)

Positive values mean loss (a deficit), negative values gain.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Optional

from diettracker.state.models import KCAL_PER_KG, Snapshot
from diettracker.tracking.tdee import get_day_derived
from diettracker.tracking.trends import DeriveFn, has_signal, is_date_key

DEFAULT_WINDOW_DAYS = 5
DEFAULT_MAX_LOOKBACK_DAYS = 60

# kg/day that pins the dial at either end
FULL_SCALE_KG_PER_DAY = 0.15

# Upper bounds on the scaled value, in order; anything above is too-much-loss
ZONES = (
    ("too-much-gain", -0.5),
    ("gain", -0.1),
    ("stable", 0.1),
    ("loss", 0.3),
    ("good-loss", 0.7),
)
TOP_ZONE = "too-much-loss"


def clamp(value: float, low: float = -1.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def scale_delta(avg_delta_per_day: float) -> float:
    """Map kg/day onto the bounded dial range [-1, 1]."""
    return clamp(avg_delta_per_day / FULL_SCALE_KG_PER_DAY)


def momentum_zone(scaled: float) -> str:
    """Classify a scaled momentum value into a zone name.

    Example:
        >>> momentum_zone(0.0)
        'stable'
        >>> momentum_zone(1.0)
        'too-much-loss'
    """
    for name, upper in ZONES[:2]:
        if scaled < upper:
            return name
    for name, upper in ZONES[2:]:
        if scaled <= upper:
            return name
    return TOP_ZONE


def momentum_label(avg_delta_per_day: Optional[float]) -> str:
    """Human label for an average kg/day figure (positive = loss)."""
    delta = avg_delta_per_day or 0.0
    if delta > 0.10:
        return "Fast loss"
    if delta > 0.04:
        return "Good loss"
    if delta > 0.01:
        return "Loss"
    if delta < -0.04:
        return "Fast gain"
    if delta < -0.01:
        return "Gain"
    return "Stable"


@dataclass
class MomentumDay:
    """One day that contributed to the momentum window."""

    date: str
    deficit: int
    delta_kg: float
    scaled: float
    zone: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "deficit": self.deficit,
            "deltaKg": self.delta_kg,
            "scaled": self.scaled,
            "zone": self.zone,
        }


@dataclass
class Momentum:
    """Result of a momentum computation."""

    momentum_scaled: float = 0.0
    avg_delta_per_day: float = 0.0
    days_considered: int = 0
    history: list[MomentumDay] = field(default_factory=list)

    @property
    def zone(self) -> str:
        return momentum_zone(self.momentum_scaled)

    @property
    def label(self) -> str:
        return momentum_label(self.avg_delta_per_day)

    def to_dict(self) -> dict[str, Any]:
        return {
            "momentumScaled": self.momentum_scaled,
            "avgDeltaPerDay": self.avg_delta_per_day,
            "daysConsidered": self.days_considered,
            "zone": self.zone,
            "label": self.label,
            "history": [d.to_dict() for d in self.history],
        }


def _collect_days(
    snapshot: Snapshot, window_days: int, max_lookback_days: int
) -> list[str]:
    keys = [
        k for k, day in snapshot.day_logs.items() if is_date_key(k) and has_signal(day)
    ]
    if not keys or window_days <= 0:
        return []

    latest = date.fromisoformat(max(keys))
    collected: list[str] = []
    for offset in range(max(1, max_lookback_days)):
        key = (latest - timedelta(days=offset)).isoformat()
        day = snapshot.day_logs.get(key)
        if day is not None and has_signal(day):
            collected.append(key)
            if len(collected) >= window_days:
                break
    collected.reverse()
    return collected


def compute_momentum(
    snapshot: Snapshot,
    get_day_derived: DeriveFn = get_day_derived,
    window_days: int = DEFAULT_WINDOW_DAYS,
    max_lookback_days: int = DEFAULT_MAX_LOOKBACK_DAYS,
) -> Momentum:
    """Score the direction of recent energy balance.

    Args:
        snapshot: Current snapshot
        get_day_derived: Derivation function used for each day
        window_days: Maximum number of logged days to average
        max_lookback_days: Calendar days to scan back from the latest log

    Returns:
        Momentum with ``history`` in chronological order. With no qualifying
        days the score is 0 and ``days_considered`` is 0.
    """
    history = []
    for key in _collect_days(snapshot, window_days, max_lookback_days):
        deficit = get_day_derived(snapshot, key).deficit
        delta_kg = deficit / KCAL_PER_KG
        scaled = scale_delta(delta_kg)
        history.append(
            MomentumDay(
                date=key,
                deficit=deficit,
                delta_kg=delta_kg,
                scaled=scaled,
                zone=momentum_zone(scaled),
            )
        )

    if not history:
        return Momentum()

    avg_deficit = sum(d.deficit for d in history) / len(history)
    avg_delta = avg_deficit / KCAL_PER_KG
    return Momentum(
        momentum_scaled=scale_delta(avg_delta),
        avg_delta_per_day=avg_delta,
        days_considered=len(history),
        history=history,
    )

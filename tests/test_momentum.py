"""Tests for the momentum scorer."""

from __future__ import annotations

import math
from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from diettracker.state.models import DayLog, Profile, Snapshot
from diettracker.tracking.momentum import (
    compute_momentum,
    momentum_label,
    momentum_zone,
    scale_delta,
)

from conftest import make_day


def weighed_days(start: str, count: int, step: int = 1) -> dict[str, DayLog]:
    """Days that carry a weigh-in and nothing else."""
    first = date.fromisoformat(start)
    keys = [(first + timedelta(days=i * step)).isoformat() for i in range(count)]
    return {k: DayLog(date=k, weight_kg=80.0) for k in keys}


def stub_derive(deficits: dict[str, float]):
    def derive(snapshot, key):
        return SimpleNamespace(deficit=deficits[key])

    return derive


class TestComputeMomentum:
    """Tests for compute_momentum."""

    def test_no_days(self) -> None:
        result = compute_momentum(Snapshot())

        assert result.days_considered == 0
        assert result.momentum_scaled == 0.0
        assert result.history == []
        assert result.zone == "stable"

    def test_days_without_signal_ignored(self) -> None:
        snapshot = Snapshot(day_logs={"2025-01-01": DayLog(date="2025-01-01", notes="nothing eaten")})
        result = compute_momentum(snapshot)

        assert result.days_considered == 0
        assert math.isfinite(result.momentum_scaled)

    def test_single_day(self) -> None:
        day = make_day("2025-01-01", intake=1000, bmr_snapshot=1600)
        snapshot = Snapshot(profile=Profile(bmr=1600), day_logs={day.date: day})

        result = compute_momentum(snapshot)

        # TDEE 1920 + 100 TEF against 1000 kcal eaten
        assert result.days_considered == 1
        assert result.history[0].deficit == 1020
        assert result.avg_delta_per_day == pytest.approx(1020 / 7700)
        assert -1.0 <= result.momentum_scaled <= 1.0

    def test_window_keeps_most_recent(self) -> None:
        days = weighed_days("2025-01-01", 8)
        deficits = {k: 0 for k in days}
        result = compute_momentum(
            Snapshot(day_logs=days), get_day_derived=stub_derive(deficits), window_days=5
        )

        assert result.days_considered == 5
        assert [d.date for d in result.history] == sorted(days)[-5:]

    def test_gaps_do_not_count_against_window(self) -> None:
        days = weighed_days("2025-01-01", 5, step=3)
        result = compute_momentum(
            Snapshot(day_logs=days), get_day_derived=stub_derive({k: 0 for k in days}), window_days=5
        )
        assert result.days_considered == 5

    def test_lookback_is_bounded(self) -> None:
        days = {**weighed_days("2024-01-01", 1), **weighed_days("2025-01-01", 2)}
        result = compute_momentum(
            Snapshot(day_logs=days),
            get_day_derived=stub_derive({k: 0 for k in days}),
            window_days=5,
            max_lookback_days=60,
        )

        assert result.days_considered == 2
        assert "2024-01-01" not in [d.date for d in result.history]

    def test_later_day_without_signal_does_not_move_anchor(self) -> None:
        days = {k: make_day(k, intake=1500) for k in [f"2025-01-0{i}" for i in range(1, 6)]}
        days["2025-03-15"] = DayLog(date="2025-03-15", notes="plan")

        result = compute_momentum(
            Snapshot(profile=Profile(bmr=1600), day_logs=days), window_days=5, max_lookback_days=60
        )

        assert result.days_considered == 5
        assert [d.date for d in result.history] == sorted(days)[:5]

    def test_average(self) -> None:
        days = weighed_days("2025-01-01", 2)
        deficits = dict(zip(sorted(days), [770, -385]))
        result = compute_momentum(Snapshot(day_logs=days), get_day_derived=stub_derive(deficits))

        assert result.avg_delta_per_day == pytest.approx(0.025)
        assert result.momentum_scaled == pytest.approx(0.025 / 0.15)
        assert result.history[1].zone == "gain"

    @pytest.mark.parametrize("deficit, expected", [(1e9, 1.0), (-1e9, -1.0), (7700, 1.0)])
    def test_clamped(self, deficit, expected) -> None:
        days = weighed_days("2025-01-01", 3)
        result = compute_momentum(
            Snapshot(day_logs=days), get_day_derived=stub_derive({k: deficit for k in days})
        )

        assert result.momentum_scaled == expected
        assert all(-1.0 <= d.scaled <= 1.0 for d in result.history)

    def test_to_dict(self) -> None:
        data = compute_momentum(Snapshot()).to_dict()
        assert data["momentumScaled"] == 0.0
        assert data["daysConsidered"] == 0
        assert data["label"] == "Stable"


class TestZonesAndLabels:
    """Tests for zone classification and labels."""

    @pytest.mark.parametrize(
        "scaled, zone",
        [
            (-1.0, "too-much-gain"),
            (-0.3, "gain"),
            (0.0, "stable"),
            (0.1, "stable"),
            (0.2, "loss"),
            (0.5, "good-loss"),
            (0.9, "too-much-loss"),
        ],
    )
    def test_zones(self, scaled, zone) -> None:
        assert momentum_zone(scaled) == zone

    @pytest.mark.parametrize(
        "delta, label",
        [
            (None, "Stable"),
            (0.005, "Stable"),
            (0.02, "Loss"),
            (0.05, "Good loss"),
            (0.2, "Fast loss"),
            (-0.02, "Gain"),
            (-0.05, "Fast gain"),
        ],
    )
    def test_labels(self, delta, label) -> None:
        assert momentum_label(delta) == label

    def test_scale_delta(self) -> None:
        assert scale_delta(0.075) == pytest.approx(0.5)
        assert scale_delta(-5) == -1.0

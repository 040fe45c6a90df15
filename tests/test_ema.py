"""Tests for the smoothed weight trend."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from diettracker.state.models import DayLog, Snapshot
from diettracker.tracking.ema import (
    DEFAULT_SMOOTHING,
    calculate_trend_from_scratch,
    estimate_daily_calorie_balance,
    estimate_weekly_change,
    latest_trend,
    time_scaled_alpha,
    update_trend,
    weight_report,
    weight_trend,
)


class TestTimeScaledAlpha:
    """Tests for time_scaled_alpha function."""

    def test_daily_unchanged(self) -> None:
        assert time_scaled_alpha(0.1, 1) == pytest.approx(0.1)

    def test_three_day_gap(self) -> None:
        """After 3 days, alpha should be 1 - 0.9^3 ≈ 0.271."""
        assert time_scaled_alpha(0.1, 3) == pytest.approx(1 - 0.9**3)

    def test_zero_days_treated_as_one(self) -> None:
        assert time_scaled_alpha(0.1, 0) == pytest.approx(0.1)
        assert time_scaled_alpha(0.1, -1) == pytest.approx(0.1)

    def test_large_gap_approaches_one(self) -> None:
        assert time_scaled_alpha(0.1, 30) > 0.95


class TestUpdateTrend:
    """Tests for update_trend function."""

    def test_daily_update(self) -> None:
        assert update_trend(80.0, 79.0) == pytest.approx(79.9)

    def test_gap_moves_further(self) -> None:
        daily = update_trend(80.0, 79.0, days_elapsed=1)
        gap = update_trend(80.0, 79.0, days_elapsed=5)
        assert gap < daily


class TestCalculateTrendFromScratch:
    """Tests for calculate_trend_from_scratch."""

    def test_empty(self) -> None:
        assert calculate_trend_from_scratch([]) == []

    def test_first_reading_seeds(self) -> None:
        start = date(2025, 1, 1)
        readings = [(start + timedelta(days=i), w) for i, w in enumerate([80.0, 79.0, 79.5])]
        trends = calculate_trend_from_scratch(readings)

        assert trends[0] == 80.0
        assert trends[1] == pytest.approx(79.9)
        assert len(trends) == 3

    def test_gap_aware(self) -> None:
        dated = [(date(2025, 1, 1), 80.0), (date(2025, 1, 4), 79.0)]
        expected = 80.0 + time_scaled_alpha(DEFAULT_SMOOTHING, 3) * (79.0 - 80.0)
        assert calculate_trend_from_scratch(dated)[1] == pytest.approx(expected)


class TestWeightTrend:
    """Tests for weight_trend over a snapshot."""

    def test_uses_logged_weights_in_order(self) -> None:
        snapshot = Snapshot(
            day_logs={
                "2025-01-03": DayLog(date="2025-01-03", weight_kg=79.0),
                "2025-01-01": DayLog(date="2025-01-01", weight_kg=80.0),
                "2025-01-02": DayLog(date="2025-01-02"),
            }
        )
        points = weight_trend(snapshot)

        assert [p.date for p in points] == ["2025-01-01", "2025-01-03"]
        assert points[0].trend_kg == 80.0
        assert points[1].trend_kg == pytest.approx(80.0 - time_scaled_alpha(0.1, 2))

    def test_latest_trend(self) -> None:
        assert latest_trend(Snapshot()) is None


class TestEstimates:
    """Tests for change and balance estimates."""

    def test_weekly_change(self) -> None:
        assert estimate_weekly_change(80.0, 79.0, days=14) == pytest.approx(-0.5)

    def test_daily_balance(self) -> None:
        assert estimate_daily_calorie_balance(-0.5) == pytest.approx(-550)


def weighed(*readings: tuple[str, float]) -> Snapshot:
    return Snapshot(day_logs={k: DayLog(date=k, weight_kg=w) for k, w in readings})


class TestWeightReport:
    """Tests for the weight report built on the trend estimates."""

    def test_needs_two_weigh_ins(self) -> None:
        assert weight_report(Snapshot()) is None
        assert weight_report(weighed(("2025-01-01", 80.0))) is None

    def test_weekly_rate_and_implied_deficit(self) -> None:
        report = weight_report(weighed(("2025-01-01", 80.0), ("2025-01-08", 79.0)))
        alpha = time_scaled_alpha(DEFAULT_SMOOTHING, 7)

        assert report.period_days == 7
        assert report.start_trend == 80.0
        assert report.current_weight == 79.0
        assert report.trend_change == pytest.approx(-alpha)
        assert report.weekly_rate == pytest.approx(-alpha)
        assert report.implied_daily_deficit == pytest.approx(alpha * 1100)

    def test_window_limits_history(self) -> None:
        snapshot = weighed(("2024-06-01", 90.0), ("2025-01-01", 80.0), ("2025-01-15", 80.0))
        report = weight_report(snapshot, days=30)

        assert report.period_days == 14
        assert report.start_weight == 80.0
        assert weight_report(snapshot, days=7) is None

    def test_to_dict(self) -> None:
        report = weight_report(weighed(("2025-01-01", 80.0), ("2025-01-08", 79.0)))
        data = report.to_dict()

        assert data["periodDays"] == 7
        assert data["weeklyRateKg"] == report.weekly_rate
        assert data["impliedDailyDeficit"] > 0

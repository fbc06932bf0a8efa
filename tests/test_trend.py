"""Unit tests for per-location trend classification."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from models.records import Reading
from services.errors import InsufficientDataError
from services.trend import TrendCalculator, TrendDirection

BASE = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


def _series(values: list[float], location: str = "kitchen", step_hours: float = 1.0) -> list[Reading]:
    return [
        Reading(location=location, timestamp=BASE + timedelta(hours=i * step_hours), value=value)
        for i, value in enumerate(values)
    ]


def test_monotonic_decrease_is_decreasing_with_positive_confidence() -> None:
    result = TrendCalculator().calculate(_series([18.0, 16.0, 15.0]))

    assert result.trend is TrendDirection.decreasing
    assert result.confidence > 0
    assert result.change_rate == pytest.approx(-1.5)
    assert result.location == "kitchen"
    assert result.period_start == BASE
    assert result.period_end == BASE + timedelta(hours=2)
    assert result.reading_count == 3


def test_increasing_series_reports_rate_per_hour() -> None:
    readings = _series([10.0, 12.0, 14.0, 16.0], step_hours=0.5)

    result = TrendCalculator().calculate(readings)

    assert result.trend is TrendDirection.increasing
    assert result.change_rate == pytest.approx(4.0)
    assert result.confidence == pytest.approx(1.0)


def test_small_slope_is_stable() -> None:
    result = TrendCalculator(stable_epsilon=0.5).calculate(_series([20.0, 20.2, 20.1, 20.3]))

    assert result.trend is TrendDirection.stable


def test_flat_series_is_stable_with_full_confidence() -> None:
    result = TrendCalculator().calculate(_series([15.0, 15.0, 15.0]))

    assert result.trend is TrendDirection.stable
    assert result.change_rate == 0
    assert result.confidence == 1.0


def test_noisy_series_has_lower_confidence_than_clean_one() -> None:
    calculator = TrendCalculator()
    clean = calculator.calculate(_series([10.0, 11.0, 12.0, 13.0, 14.0]))
    noisy = calculator.calculate(_series([10.0, 14.0, 9.0, 15.0, 12.0]))

    assert 0 < noisy.confidence < clean.confidence <= 1


def test_unordered_input_is_sorted_by_time() -> None:
    readings = list(reversed(_series([18.0, 16.0, 15.0])))

    result = TrendCalculator().calculate(readings)

    assert result.trend is TrendDirection.decreasing
    assert result.period_start == BASE


@pytest.mark.parametrize("count", [0, 1, 2])
def test_fewer_than_three_readings_is_insufficient(count: int) -> None:
    with pytest.raises(InsufficientDataError, match="Insufficient data"):
        TrendCalculator().calculate(_series([12.0, 13.0, 14.0][:count]))


def test_readings_at_a_single_instant_are_insufficient() -> None:
    readings = [Reading(location="hall", timestamp=BASE, value=v) for v in (10.0, 11.0, 12.0)]

    with pytest.raises(InsufficientDataError):
        TrendCalculator().calculate(readings)


def test_mixed_locations_are_rejected() -> None:
    readings = _series([10.0, 11.0]) + _series([12.0], location="hall")

    with pytest.raises(ValueError, match="single location"):
        TrendCalculator().calculate(readings)


def test_calculate_by_location_separates_unavailable_locations() -> None:
    readings = _series([18.0, 16.0, 15.0], location="kitchen") + _series(
        [20.0, 21.0], location="bathroom"
    )

    trends, unavailable = TrendCalculator().calculate_by_location(readings)

    assert list(trends) == ["kitchen"]
    assert trends["kitchen"].trend is TrendDirection.decreasing
    assert unavailable == ["bathroom"]


def test_noisy_series_fit_matches_least_squares() -> None:
    result = TrendCalculator().calculate(_series([10.0, 14.0, 9.0, 15.0, 12.0]))

    assert isinstance(result.change_rate, float)
    assert result.change_rate == pytest.approx(0.5)
    assert result.confidence == pytest.approx(25 / 260)
    assert result.trend is TrendDirection.increasing

"""Trend classification for the readings of a single location."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np

from models.records import Reading
from services.errors import InsufficientDataError

MIN_TREND_READINGS = 3
DEFAULT_STABLE_EPSILON = 0.1
MIN_CONFIDENCE = 0.01

_SECONDS_PER_HOUR = 3600.0


class TrendDirection(str, Enum):
    increasing = "increasing"
    decreasing = "decreasing"
    stable = "stable"


@dataclass(frozen=True)
class TrendResult:
    """Direction and strength of moisture change at one location."""

    location: str
    trend: TrendDirection
    confidence: float
    change_rate: float
    period_start: datetime
    period_end: datetime
    reading_count: int


class TrendCalculator:
    """Least-squares trend of value against elapsed hours.

    ``change_rate`` is the fitted slope in value units per hour. A slope whose
    magnitude is below ``stable_epsilon`` is classified as stable. The
    confidence is the coefficient of determination of the fit, clamped to
    ``MIN_CONFIDENCE`` so that a computed trend never reports zero.
    """

    def __init__(
        self,
        stable_epsilon: float = DEFAULT_STABLE_EPSILON,
        min_readings: int = MIN_TREND_READINGS,
    ) -> None:
        if stable_epsilon < 0:
            raise ValueError("stable_epsilon must be non-negative.")
        self.stable_epsilon = stable_epsilon
        self.min_readings = max(min_readings, MIN_TREND_READINGS)

    def calculate(self, readings: Sequence[Reading]) -> TrendResult:
        ordered = sorted(readings, key=Reading.sort_key)
        if len(ordered) < self.min_readings:
            location = ordered[0].location if ordered else "unknown"
            raise InsufficientDataError(
                f"Insufficient data: {len(ordered)} readings for location {location!r}, "
                f"at least {self.min_readings} required"
            )

        locations = {reading.location for reading in ordered}
        if len(locations) > 1:
            raise ValueError(
                f"Trend readings must belong to a single location, got {sorted(locations)}"
            )

        origin = ordered[0].timestamp
        hours = [(r.timestamp - origin).total_seconds() / _SECONDS_PER_HOUR for r in ordered]
        values = [r.value for r in ordered]
        slope, r_squared = _fit_line(hours, values)
        if slope is None:
            raise InsufficientDataError(
                f"Insufficient data: readings for location {ordered[0].location!r} "
                "span no time"
            )

        if abs(slope) < self.stable_epsilon:
            direction = TrendDirection.stable
        elif slope > 0:
            direction = TrendDirection.increasing
        else:
            direction = TrendDirection.decreasing

        return TrendResult(
            location=ordered[0].location,
            trend=direction,
            confidence=max(MIN_CONFIDENCE, min(1.0, r_squared)),
            change_rate=slope,
            period_start=ordered[0].timestamp,
            period_end=ordered[-1].timestamp,
            reading_count=len(ordered),
        )

    def calculate_by_location(
        self, readings: Iterable[Reading]
    ) -> Tuple[Dict[str, TrendResult], List[str]]:
        """Return trends keyed by location and the locations lacking data."""
        grouped: Dict[str, List[Reading]] = defaultdict(list)
        for reading in readings:
            grouped[reading.location].append(reading)

        trends: Dict[str, TrendResult] = {}
        unavailable: List[str] = []
        for location in sorted(grouped):
            try:
                trends[location] = self.calculate(grouped[location])
            except InsufficientDataError:
                unavailable.append(location)
        return trends, unavailable


def _fit_line(xs: Sequence[float], ys: Sequence[float]) -> Tuple[float | None, float]:
    hours = np.asarray(xs, dtype=float)
    values = np.asarray(ys, dtype=float)
    if np.ptp(hours) == 0:
        return None, 0.0

    ss_tot = float(np.sum((values - values.mean()) ** 2))
    if ss_tot == 0:
        # A flat series is fitted exactly by a horizontal line.
        return 0.0, 1.0

    slope, intercept = np.polyfit(hours, values, 1)
    residuals = values - (slope * hours + intercept)
    ss_res = float(np.sum(residuals**2))
    return float(slope), 1.0 - ss_res / ss_tot

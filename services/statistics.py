"""Time-bucketed aggregation of moisture readings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np

from models.records import Reading, ensure_utc


@dataclass(frozen=True)
class StatBucket:
    """Summary of the readings for one location within one time window."""

    period_start: datetime
    location: str
    count: int
    average: float
    min: float
    max: float


@dataclass(frozen=True)
class ReadingSummary:
    """Statistics over every reading in an analysis, regardless of bucket."""

    count: int = 0
    average: Optional[float] = None
    median: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    standard_deviation: Optional[float] = None


@dataclass(frozen=True)
class Statistics:
    hourly: Tuple[StatBucket, ...] = ()
    daily: Tuple[StatBucket, ...] = ()
    summary: ReadingSummary = field(default_factory=ReadingSummary)


@dataclass
class _Accumulator:
    count: int = 0
    total: float = 0.0
    min_value: float | None = None
    max_value: float | None = None

    def add(self, value: float) -> None:
        self.count += 1
        self.total += value
        if self.min_value is None or value < self.min_value:
            self.min_value = value
        if self.max_value is None or value > self.max_value:
            self.max_value = value


def truncate_to_hour(timestamp: datetime) -> datetime:
    return ensure_utc(timestamp).replace(minute=0, second=0, microsecond=0)


def truncate_to_day(timestamp: datetime) -> datetime:
    return ensure_utc(timestamp).replace(hour=0, minute=0, second=0, microsecond=0)


class StatisticsAggregator:
    """Pure aggregation component that can be unit tested in isolation.

    Only occupied buckets are emitted; output is ordered by bucket start and
    then location.
    """

    def aggregate(self, readings: Iterable[Reading]) -> Statistics:
        ordered = sorted(readings, key=Reading.sort_key)
        return Statistics(
            hourly=self.bucket(ordered, truncate_to_hour),
            daily=self.bucket(ordered, truncate_to_day),
            summary=self.summarize(ordered),
        )

    def bucket(
        self,
        readings: Iterable[Reading],
        truncate: Callable[[datetime], datetime],
    ) -> Tuple[StatBucket, ...]:
        buckets: Dict[Tuple[datetime, str], _Accumulator] = {}
        for reading in readings:
            key = (truncate(reading.timestamp), reading.location)
            buckets.setdefault(key, _Accumulator()).add(reading.value)

        return tuple(
            StatBucket(
                period_start=period_start,
                location=location,
                count=acc.count,
                average=acc.total / acc.count,
                min=acc.min_value,  # type: ignore[arg-type]
                max=acc.max_value,  # type: ignore[arg-type]
            )
            for (period_start, location), acc in sorted(buckets.items())
        )

    def summarize(self, readings: Iterable[Reading]) -> ReadingSummary:
        values: List[float] = [reading.value for reading in readings]
        if not values:
            return ReadingSummary()

        series = np.asarray(values, dtype=float)
        return ReadingSummary(
            count=int(series.size),
            average=float(np.mean(series)),
            median=float(np.median(series)),
            min=float(np.min(series)),
            max=float(np.max(series)),
            # Population standard deviation (ddof=0).
            standard_deviation=float(np.std(series)),
        )

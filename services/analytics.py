"""Analytics orchestration for moisture readings."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import TYPE_CHECKING, Callable, Optional, Sequence, Tuple

from datastore.reading_store import ReadingRepository, build_default_repository
from models.records import Reading
from services.analysis_cache import AnalysisCache, fingerprint_readings
from services.errors import RepositoryError
from services.hotspots import Hotspot, HotspotDetector
from services.statistics import Statistics, StatisticsAggregator
from services.trend import TrendCalculator, TrendResult
from settings import get_settings

if TYPE_CHECKING:
    from app.validation import AnalyticsQuery

logger = logging.getLogger(__name__)

TREND_SELECTION_POLICIES = ("most_readings", "most_recent")


@dataclass(frozen=True)
class AnalysisResult:
    """Complete analysis of one reading set; cached values are shared as-is."""

    trend: Optional[TrendResult]
    location_trends: Tuple[TrendResult, ...]
    unavailable_locations: Tuple[str, ...]
    hotspots: Tuple[Hotspot, ...]
    statistics: Statistics = field(default_factory=Statistics)
    reading_count: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def select_primary_trend(
    trends: Sequence[TrendResult], policy: str = "most_readings"
) -> Optional[TrendResult]:
    """Pick the trend reported at the top level of a multi-location analysis.

    ``most_readings`` prefers the best-populated location, then the most
    recently read one. ``most_recent`` swaps those two criteria. Remaining
    ties go to the lexically smallest location name.
    """
    if policy == "most_readings":
        key = lambda t: (-t.reading_count, -t.period_end.timestamp(), t.location)  # noqa: E731
    elif policy == "most_recent":
        key = lambda t: (-t.period_end.timestamp(), -t.reading_count, t.location)  # noqa: E731
    else:
        raise ValueError(f"Unknown trend selection policy: {policy!r}")
    if not trends:
        return None
    return min(trends, key=key)


class AnalyticsService:
    """Coordinates reading retrieval, analysis, and result memoization."""

    def __init__(
        self,
        repository: ReadingRepository,
        cache: AnalysisCache,
        trend_calculator: Optional[TrendCalculator] = None,
        hotspot_detector: Optional[HotspotDetector] = None,
        statistics_aggregator: Optional[StatisticsAggregator] = None,
        trend_selection: str = "most_readings",
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        if trend_selection not in TREND_SELECTION_POLICIES:
            raise ValueError(f"Unknown trend selection policy: {trend_selection!r}")
        self.repository = repository
        self.cache = cache
        self.trend_calculator = trend_calculator or TrendCalculator()
        self.hotspot_detector = hotspot_detector or HotspotDetector()
        self.statistics_aggregator = statistics_aggregator or StatisticsAggregator()
        self.trend_selection = trend_selection
        self.clock = clock

    def load_readings(self, query: AnalyticsQuery) -> list[Reading]:
        """Fetch readings for a validated query; any store failure is a RepositoryError."""
        try:
            readings = self.repository.fetch_readings(
                query.job_id, query.start, query.end, query.location
            )
        except Exception as exc:
            logger.error(
                "Reading repository failed",
                exc_info=True,
                extra={"job_id": query.job_id, "error": str(exc)},
            )
            if isinstance(exc, RepositoryError):
                raise
            raise RepositoryError(str(exc)) from exc
        return list(readings)

    def analyze(self, readings: Sequence[Reading]) -> AnalysisResult:
        ordered = sorted(readings, key=Reading.sort_key)
        key = fingerprint_readings(ordered)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(
                "Serving analysis from cache",
                extra={"cache_key": key, "reading_count": len(ordered), "status": "hit"},
            )
            return cached

        start_time = time.perf_counter()
        result = self._compute(ordered)
        stored = self.cache.put_if_absent(key, result)
        logger.info(
            "Computed analysis",
            extra={
                "cache_key": key,
                "reading_count": result.reading_count,
                "status": "miss",
                "processing_ms": int((time.perf_counter() - start_time) * 1000),
            },
        )
        return stored

    def trend_for_location(self, readings: Sequence[Reading]) -> TrendResult:
        """Single-location trend; InsufficientDataError propagates to the caller."""
        return self.trend_calculator.calculate(readings)

    def _compute(self, ordered: Sequence[Reading]) -> AnalysisResult:
        statistics = self.statistics_aggregator.aggregate(ordered)
        hotspots = self.hotspot_detector.detect(ordered)

        by_location, unavailable = self.trend_calculator.calculate_by_location(ordered)
        for location in unavailable:
            logger.info(
                "Trend unavailable for location",
                extra={"location": location, "status": "insufficient_data"},
            )
        location_trends = tuple(by_location[name] for name in sorted(by_location))

        return AnalysisResult(
            trend=select_primary_trend(location_trends, self.trend_selection),
            location_trends=location_trends,
            unavailable_locations=tuple(unavailable),
            hotspots=tuple(hotspots),
            statistics=statistics,
            reading_count=len(ordered),
            timestamp=self.clock(),
        )


@lru_cache
def build_default_service() -> AnalyticsService:
    """Factory that wires the service from environment settings."""
    settings = get_settings()
    return AnalyticsService(
        repository=build_default_repository(),
        cache=AnalysisCache(max_entries=settings.cache_max_entries),
        trend_calculator=TrendCalculator(stable_epsilon=settings.trend_stable_epsilon),
        hotspot_detector=HotspotDetector(
            radius=settings.hotspot_radius,
            severity_threshold=settings.hotspot_threshold,
        ),
        trend_selection=settings.trend_selection,
    )

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from itertools import count
from typing import List, Optional

import pytest

from app.validation import AnalyticsQuery
from datastore.reading_store import JsonReadingRepository
from models.records import Reading
from services.analysis_cache import AnalysisCache
from services.analytics import AnalyticsService, select_primary_trend
from services.errors import InsufficientDataError, RepositoryError
from services.statistics import StatisticsAggregator
from services.trend import TrendDirection

T0 = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


class FailingRepository:
    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    def fetch_readings(self, job_id, start, end, location=None) -> List[Reading]:
        raise self.exc


def _ticking_clock():
    ticks = count()
    return lambda: T0 + timedelta(seconds=next(ticks))


def _service(**kwargs) -> AnalyticsService:
    kwargs.setdefault("repository", JsonReadingRepository())
    kwargs.setdefault("cache", AnalysisCache())
    kwargs.setdefault("clock", _ticking_clock())
    return AnalyticsService(**kwargs)


def _reading(
    location: str,
    hours: float,
    value: float,
    x: Optional[float] = None,
    y: Optional[float] = None,
) -> Reading:
    return Reading(location=location, timestamp=T0 + timedelta(hours=hours), value=value, x=x, y=y)


def _query(job_id: str = "job-1") -> AnalyticsQuery:
    return AnalyticsQuery(
        job_id=job_id,
        start=T0,
        end=T0 + timedelta(days=1),
        raw_start=T0.isoformat(),
        raw_end=(T0 + timedelta(days=1)).isoformat(),
    )


def _mixed_readings() -> List[Reading]:
    return [
        _reading("kitchen", 0, 18.0),
        _reading("kitchen", 1, 16.0),
        _reading("kitchen", 2, 15.0),
        _reading("bathroom", 0.1, 25.0, x=1.0, y=1.0),
        _reading("bathroom", 0.2, 21.0, x=1.5, y=1.0),
    ]


def test_zero_readings_produce_empty_analysis() -> None:
    result = _service().analyze([])

    assert result.reading_count == 0
    assert result.hotspots == ()
    assert result.statistics.hourly == ()
    assert result.statistics.daily == ()
    assert result.trend is None
    assert result.location_trends == ()


def test_analysis_combines_trend_hotspots_and_statistics() -> None:
    result = _service().analyze(_mixed_readings())

    assert result.reading_count == 5
    assert result.trend is not None
    assert result.trend.location == "kitchen"
    assert result.trend.trend is TrendDirection.decreasing
    assert result.trend.confidence > 0
    assert result.unavailable_locations == ("bathroom",)
    assert len(result.hotspots) == 1
    assert result.hotspots[0].max_value == 25
    assert len(result.statistics.hourly) > 1
    assert result.timestamp == T0


def test_repeated_identical_input_is_served_from_cache() -> None:
    service = _service()

    first = service.analyze(_mixed_readings())
    second = service.analyze(list(reversed(_mixed_readings())))

    assert second == first
    assert second is first
    assert second.timestamp == first.timestamp
    assert service.cache.hits == 1


def test_different_input_is_recomputed_with_new_timestamp() -> None:
    service = _service()

    first = service.analyze(_mixed_readings())
    second = service.analyze(_mixed_readings()[:3])

    assert second != first
    assert second.timestamp > first.timestamp


def test_insufficient_locations_do_not_fail_analysis() -> None:
    readings = [_reading("hall", 0, 10.0), _reading("den", 0, 12.0)]

    result = _service().analyze(readings)

    assert result.trend is None
    assert result.unavailable_locations == ("den", "hall")
    assert len(result.statistics.hourly) == 2


def test_single_location_trend_call_propagates_insufficiency() -> None:
    with pytest.raises(InsufficientDataError):
        _service().trend_for_location([_reading("hall", 0, 10.0), _reading("hall", 1, 11.0)])


def test_primary_trend_prefers_most_populous_location() -> None:
    readings = [_reading("attic", h, 10.0 + h) for h in range(4)] + [
        _reading("cellar", h + 5, 30.0 - h) for h in range(3)
    ]

    result = _service().analyze(readings)

    assert result.trend is not None and result.trend.location == "attic"
    assert [t.location for t in result.location_trends] == ["attic", "cellar"]


def test_most_recent_policy_prefers_latest_location() -> None:
    readings = [_reading("attic", h, 10.0 + h) for h in range(4)] + [
        _reading("cellar", h + 5, 30.0 - h) for h in range(3)
    ]

    result = _service(trend_selection="most_recent").analyze(readings)

    assert result.trend is not None and result.trend.location == "cellar"


def test_select_primary_trend_rejects_unknown_policy() -> None:
    with pytest.raises(ValueError):
        select_primary_trend([], policy="loudest")
    assert select_primary_trend([]) is None


def test_load_readings_wraps_repository_failures() -> None:
    service = _service(repository=FailingRepository(ConnectionError("connection lost")))

    with pytest.raises(RepositoryError, match="connection lost"):
        service.load_readings(_query())


def test_load_readings_logs_failure(caplog) -> None:
    service = _service(repository=FailingRepository(TimeoutError("timed out")))

    with caplog.at_level(logging.ERROR), pytest.raises(RepositoryError):
        service.load_readings(_query("job-9"))

    records = [r for r in caplog.records if r.name == "services.analytics"]
    assert any(getattr(r, "job_id", None) == "job-9" for r in records)


def test_load_readings_passes_query_to_repository() -> None:
    repository = JsonReadingRepository()
    repository.add_readings("job-1", _mixed_readings())
    repository.add_readings("job-2", [_reading("kitchen", 0, 99.0)])

    readings = _service(repository=repository).load_readings(_query("job-1"))

    assert len(readings) == 5


def test_concurrent_identical_analyses_converge_on_one_result() -> None:
    barrier = threading.Barrier(2)

    class CoordinatedAggregator(StatisticsAggregator):
        def aggregate(self, readings):
            items = list(readings)
            try:
                barrier.wait(timeout=1.0)
            except threading.BrokenBarrierError as exc:
                raise AssertionError("Analyses did not run concurrently") from exc
            time.sleep(0.05)
            return super().aggregate(items)

    service = _service(statistics_aggregator=CoordinatedAggregator())
    results = []
    errors = []

    def worker() -> None:
        try:
            results.append(service.analyze(_mixed_readings()))
        except Exception as exc:  # pragma: no cover - surfaced below
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert not errors
    assert len(results) == 2
    assert results[0] is results[1]
    assert len(service.cache) == 1

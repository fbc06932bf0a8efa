from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_STORE_PATH_ENV = "READINGS_STORE_PATH"
_CACHE_SIZE_ENV = "ANALYSIS_CACHE_MAX_ENTRIES"
_STABLE_EPSILON_ENV = "TREND_STABLE_EPSILON"
_TREND_SELECTION_ENV = "TREND_SELECTION_POLICY"
_HOTSPOT_RADIUS_ENV = "HOTSPOT_RADIUS"
_HOTSPOT_THRESHOLD_ENV = "HOTSPOT_SEVERITY_THRESHOLD"
_MAX_RANGE_ENV = "MAX_DATE_RANGE_DAYS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TREND_SELECTION_POLICIES = ("most_readings", "most_recent")


@dataclass(frozen=True)
class Settings:
    readings_store_path: Optional[str]
    cache_max_entries: int
    trend_stable_epsilon: float
    trend_selection: str
    hotspot_radius: float
    hotspot_threshold: float
    max_range_days: int
    log_level: str


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_int(name: str, default: int, minimum: int = 1) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _read_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_trend_selection(default: str) -> str:
    value = os.getenv(_TREND_SELECTION_ENV)
    if value is None:
        return default
    candidate = value.strip().lower()
    return candidate if candidate in _TREND_SELECTION_POLICIES else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        readings_store_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/readings.json"),
        cache_max_entries=_read_int(_CACHE_SIZE_ENV, 256, minimum=0),
        trend_stable_epsilon=_read_float(_STABLE_EPSILON_ENV, 0.1),
        trend_selection=_read_trend_selection("most_readings"),
        hotspot_radius=_read_float(_HOTSPOT_RADIUS_ENV, 1.0),
        hotspot_threshold=_read_float(_HOTSPOT_THRESHOLD_ENV, 20.0),
        max_range_days=_read_int(_MAX_RANGE_ENV, 365),
        log_level=_read_log_level("INFO"),
    )

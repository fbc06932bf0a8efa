"""Ordered validation of analytics requests.

Checks run in a fixed order and the first failure ends validation, so a
request is never touched by storage or computation unless every check passes.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Optional

from models.records import parse_timestamp
from services.errors import InvalidRequestError, MethodNotAllowedError

ALLOWED_METHOD = "POST"
JSON_MEDIA_TYPE = "application/json"
JOB_ID_PATTERN = re.compile(r"^[A-Za-z0-9-]+$")
JOB_ID_MAX_LENGTH = 50
DEFAULT_MAX_RANGE = timedelta(days=365)


@dataclass(frozen=True)
class AnalyticsQuery:
    """A validated analytics request with UTC-normalized bounds."""

    job_id: str
    start: datetime
    end: datetime
    raw_start: str
    raw_end: str
    location: Optional[str] = None


def validate_analytics_request(
    method: str,
    content_type: Optional[str],
    body: bytes,
    max_range: timedelta = DEFAULT_MAX_RANGE,
    now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
) -> AnalyticsQuery:
    if method.upper() != ALLOWED_METHOD:
        raise MethodNotAllowedError(method.upper(), allowed=(ALLOWED_METHOD,))

    if not body or not body.strip():
        raise InvalidRequestError("Missing request body")

    if _media_type(content_type) != JSON_MEDIA_TYPE:
        raise InvalidRequestError(f"Invalid content type: expected {JSON_MEDIA_TYPE}")

    payload = _decode_json(body)
    job_id = _validate_job_id(payload)
    start, end, raw_start, raw_end = _validate_date_range(payload, max_range, now())
    location = _validate_location(payload)

    return AnalyticsQuery(
        job_id=job_id,
        start=start,
        end=end,
        raw_start=raw_start,
        raw_end=raw_end,
        location=location,
    )


def _media_type(content_type: Optional[str]) -> str:
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def _decode_json(body: bytes) -> Mapping[str, Any]:
    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidRequestError("Invalid JSON body") from exc
    if not isinstance(payload, dict):
        raise InvalidRequestError("Invalid JSON body")
    return payload


def _validate_job_id(payload: Mapping[str, Any]) -> str:
    if "jobId" not in payload or payload["jobId"] is None:
        raise InvalidRequestError("Missing required parameter: jobId")

    job_id = payload["jobId"]
    if isinstance(job_id, str) and not job_id.strip():
        raise InvalidRequestError("jobId cannot be empty")
    if not isinstance(job_id, str) or not JOB_ID_PATTERN.match(job_id):
        raise InvalidRequestError("Invalid jobId format")
    if not 1 <= len(job_id) <= JOB_ID_MAX_LENGTH:
        raise InvalidRequestError(
            f"jobId length must be between 1 and {JOB_ID_MAX_LENGTH} characters"
        )
    return job_id


def _validate_date_range(
    payload: Mapping[str, Any],
    max_range: timedelta,
    now: datetime,
) -> tuple[datetime, datetime, str, str]:
    for name in ("startDate", "endDate"):
        if payload.get(name) is None:
            raise InvalidRequestError(f"Missing required parameter: {name}")

    raw_start = payload["startDate"]
    raw_end = payload["endDate"]
    start = _parse_date(raw_start, "startDate")
    end = _parse_date(raw_end, "endDate")

    if start > end:
        raise InvalidRequestError("Invalid date range: startDate must be before endDate")
    if end > now:
        raise InvalidRequestError("Invalid date range: dates cannot be in the future")
    if end - start > max_range:
        raise InvalidRequestError(
            f"Date range too large: maximum range is {_describe_range(max_range)}"
        )
    return start, end, raw_start, raw_end


def _parse_date(value: Any, name: str) -> datetime:
    if not isinstance(value, str):
        raise InvalidRequestError(f"Invalid date format: {name}")
    try:
        return parse_timestamp(value)
    except ValueError as exc:
        raise InvalidRequestError(f"Invalid date format: {name}") from exc


def _describe_range(max_range: timedelta) -> str:
    days = max_range.days
    if days == 365:
        return "1 year"
    return f"{days} days"


def _validate_location(payload: Mapping[str, Any]) -> Optional[str]:
    location = payload.get("location")
    if location is None:
        return None
    if not isinstance(location, str) or not location.strip():
        raise InvalidRequestError("Invalid location filter")
    return location.strip()

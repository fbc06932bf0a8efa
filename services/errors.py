"""Exceptions raised by the analytics pipeline."""

from __future__ import annotations

from typing import Sequence


class AnalyticsError(Exception):
    """Base class for analytics failures surfaced to callers."""


class InvalidRequestError(AnalyticsError):
    """Client input failed validation; the message is returned verbatim."""


class MethodNotAllowedError(AnalyticsError):

    def __init__(self, method: str, allowed: Sequence[str]) -> None:
        super().__init__(f"Method {method} Not Allowed")
        self.method = method
        self.allowed = tuple(allowed)


class RepositoryError(AnalyticsError):
    """Any failure raised while reading from the reading store."""


class InsufficientDataError(AnalyticsError):
    """Too few readings to compute a trend for a location."""

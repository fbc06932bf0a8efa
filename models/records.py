"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


@dataclass(frozen=True, slots=True)
class Reading:
    """A single moisture measurement retrieved from the reading store.

    ``value`` is a percentage or unit-scaled moisture figure (e.g. WME). The
    spatial coordinates are optional; a reading needs both ``x`` and ``y`` to
    take part in hotspot detection.
    """

    location: str
    timestamp: datetime
    value: float
    x: Optional[float] = None
    y: Optional[float] = None
    z: Optional[float] = None

    def __post_init__(self) -> None:
        # Instants are stored in UTC and numbers as floats so equal readings compare equal.
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))
        object.__setattr__(self, "value", float(self.value))
        for name in ("x", "y", "z"):
            coordinate = getattr(self, name)
            if coordinate is not None:
                object.__setattr__(self, name, float(coordinate))

    @property
    def is_spatial(self) -> bool:
        return self.x is not None and self.y is not None

    def sort_key(self) -> tuple:
        """Canonical ordering used for fingerprints and deterministic output."""
        return (
            self.timestamp,
            self.location,
            self.value,
            _coordinate_key(self.x),
            _coordinate_key(self.y),
            _coordinate_key(self.z),
        )


def _coordinate_key(value: Optional[float]) -> tuple[int, float]:
    # Missing coordinates sort before present ones.
    return (0, 0.0) if value is None else (1, value)


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 string into an aware UTC datetime."""
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"

    try:
        return ensure_utc(datetime.fromisoformat(candidate))
    except ValueError as exc:
        raise ValueError("Invalid timestamp format") from exc
    except OverflowError as exc:
        raise ValueError("Timestamp is outside the representable UTC range") from exc

from __future__ import annotations
import json
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Iterable, List, Optional, Protocol

from pydantic import ValidationError

from app.schemas import ReadingRecord
from models.records import Reading, ensure_utc
from services.errors import RepositoryError
from settings import get_settings


class ReadingRepository(Protocol):
    """Read contract the analytics service depends on."""

    def fetch_readings(
        self,
        job_id: str,
        start: datetime,
        end: datetime,
        location: Optional[str] = None,
    ) -> List[Reading]:
        """Return readings with ``start <= timestamp <= end``, oldest first."""
        ...


class JsonReadingRepository:
    """Reading store kept in memory with optional JSON persistence.

    The persistence file maps job identifiers to lists of readings. It is
    loaded on first access; a file that cannot be read or parsed surfaces as a
    :class:`RepositoryError` rather than an empty store.
    """

    def __init__(self, name: str = "readings", persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._jobs: Dict[str, List[Reading]] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        self._loaded = persistence_path is None

    def add_readings(self, job_id: str, readings: Iterable[Reading]) -> None:
        with self._lock:
            self._ensure_loaded()
            stored = self._jobs.setdefault(job_id, [])
            stored.extend(readings)
            stored.sort(key=Reading.sort_key)
            self._persist()

    def fetch_readings(
        self,
        job_id: str,
        start: datetime,
        end: datetime,
        location: Optional[str] = None,
    ) -> List[Reading]:
        lower, upper = ensure_utc(start), ensure_utc(end)
        with self._lock:
            self._ensure_loaded()
            stored = list(self._jobs.get(job_id, ()))
        return [
            reading
            for reading in stored
            if lower <= reading.timestamp <= upper
            and (location is None or reading.location == location)
        ]

    def job_ids(self) -> list[str]:
        with self._lock:
            self._ensure_loaded()
            return sorted(self._jobs)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            job_id: [
                ReadingRecord.model_validate(reading).model_dump(mode="json", by_alias=True)
                for reading in readings
            ]
            for job_id, readings in self._jobs.items()
        }
        try:
            self.persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))
        except OSError as exc:
            raise RepositoryError(f"Failed to write reading store {self.name!r}: {exc}") from exc

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        assert self.persistence_path is not None
        if self.persistence_path.exists():
            try:
                raw = self.persistence_path.read_text() or "{}"
                data = json.loads(raw)
                for job_id, items in data.items():
                    self._jobs[job_id] = sorted(
                        (ReadingRecord.model_validate(item).to_reading() for item in items),
                        key=Reading.sort_key,
                    )
            except (OSError, json.JSONDecodeError, AttributeError, ValidationError) as exc:
                raise RepositoryError(
                    f"Failed to load reading store {self.name!r}: {exc}"
                ) from exc
        self._loaded = True


@lru_cache
def build_default_repository(path: Optional[str] = None) -> JsonReadingRepository:
    settings = get_settings()
    store_path = settings.readings_store_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return JsonReadingRepository(name="readings", persistence_path=persistence)

"""Content-addressed memo of analysis results."""

from __future__ import annotations

import hashlib
import json
from collections import OrderedDict
from threading import Lock
from typing import TYPE_CHECKING, Iterable, Optional

from models.records import Reading

if TYPE_CHECKING:
    from services.analytics import AnalysisResult


def fingerprint_readings(readings: Iterable[Reading]) -> str:
    """Stable SHA-256 over the canonical ordering of a reading set.

    Two structurally identical reading sets produce the same key regardless of
    the order or the objects they were retrieved as.
    """
    canonical = [
        [
            reading.timestamp.isoformat(),
            reading.location,
            reading.value,
            reading.x,
            reading.y,
            reading.z,
        ]
        for reading in sorted(readings, key=Reading.sort_key)
    ]
    payload = json.dumps(canonical, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class AnalysisCache:
    """Thread-safe LRU map from reading fingerprints to analysis results.

    ``max_entries`` of ``0`` disables eviction.
    """

    def __init__(self, max_entries: int = 256) -> None:
        if max_entries < 0:
            raise ValueError("max_entries must be zero or positive.")
        self.max_entries = max_entries
        self._entries: OrderedDict[str, AnalysisResult] = OrderedDict()
        self._lock = Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[AnalysisResult]:
        with self._lock:
            result = self._entries.get(key)
            if result is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return result

    def put_if_absent(self, key: str, result: AnalysisResult) -> AnalysisResult:
        """Store ``result`` unless another writer won the race; return the stored value."""
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None:
                self._entries.move_to_end(key)
                return existing
            self._entries[key] = result
            if self.max_entries and len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
            return result

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

"""Spatial hotspot detection over tagged moisture readings."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from models.records import Reading

DEFAULT_RADIUS = 1.0
DEFAULT_SEVERITY_THRESHOLD = 20.0
MIN_CLUSTER_SIZE = 2


@dataclass(frozen=True)
class Position:
    x: float
    y: float
    z: Optional[float] = None


@dataclass(frozen=True)
class Hotspot:
    """A cluster of nearby readings whose peak exceeds the severity threshold.

    ``position`` is the location of the peak reading; ties resolve to the
    earliest reading in canonical order.
    """

    position: Position
    max_value: float
    average_value: float
    readings: Tuple[Reading, ...]


class HotspotDetector:

    def __init__(
        self,
        radius: float = DEFAULT_RADIUS,
        severity_threshold: float = DEFAULT_SEVERITY_THRESHOLD,
        min_cluster_size: int = MIN_CLUSTER_SIZE,
    ) -> None:
        if radius <= 0:
            raise ValueError("radius must be positive.")
        self.radius = radius
        self.severity_threshold = severity_threshold
        self.min_cluster_size = max(min_cluster_size, MIN_CLUSTER_SIZE)

    def detect(self, readings: Iterable[Reading]) -> List[Hotspot]:
        spatial = sorted((r for r in readings if r.is_spatial), key=Reading.sort_key)
        if len(spatial) < self.min_cluster_size:
            return []

        hotspots = [
            self._build_hotspot(cluster)
            for cluster in self.cluster(spatial)
            if len(cluster) >= self.min_cluster_size
            and max(r.value for r in cluster) > self.severity_threshold
        ]
        hotspots.sort(
            key=lambda h: (-h.max_value, h.position.x, h.position.y, h.position.z or 0.0)
        )
        return hotspots

    def cluster(self, spatial: List[Reading]) -> List[List[Reading]]:
        """Single-linkage grouping: readings within ``radius`` share a cluster."""
        parent = list(range(len(spatial)))

        def find(index: int) -> int:
            while parent[index] != index:
                parent[index] = parent[parent[index]]
                index = parent[index]
            return index

        for i in range(len(spatial)):
            for j in range(i + 1, len(spatial)):
                if _distance(spatial[i], spatial[j]) <= self.radius:
                    root_i, root_j = find(i), find(j)
                    if root_i != root_j:
                        parent[max(root_i, root_j)] = min(root_i, root_j)

        groups: Dict[int, List[Reading]] = {}
        for index, reading in enumerate(spatial):
            groups.setdefault(find(index), []).append(reading)
        return [groups[root] for root in sorted(groups)]

    @staticmethod
    def _build_hotspot(cluster: List[Reading]) -> Hotspot:
        peak = cluster[0]
        for reading in cluster[1:]:
            if reading.value > peak.value:
                peak = reading
        assert peak.x is not None and peak.y is not None
        return Hotspot(
            position=Position(x=peak.x, y=peak.y, z=peak.z),
            max_value=peak.value,
            average_value=math.fsum(r.value for r in cluster) / len(cluster),
            readings=tuple(cluster),
        )


def _distance(a: Reading, b: Reading) -> float:
    dx = a.x - b.x  # type: ignore[operator]
    dy = a.y - b.y  # type: ignore[operator]
    if a.z is not None and b.z is not None:
        return math.sqrt(dx * dx + dy * dy + (a.z - b.z) ** 2)
    return math.hypot(dx, dy)

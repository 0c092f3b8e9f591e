"""Per-state bounding rectangles for viewport framing."""

from __future__ import annotations

import math
from dataclasses import dataclass

from assembly_map.common.geometry import geometry_tree, iter_positions


@dataclass
class Rectangle:
    min_lat: float = math.inf
    max_lat: float = -math.inf
    min_lon: float = math.inf
    max_lon: float = -math.inf

    def include(self, lat: float, lon: float) -> None:
        self.min_lat = min(self.min_lat, lat)
        self.max_lat = max(self.max_lat, lat)
        self.min_lon = min(self.min_lon, lon)
        self.max_lon = max(self.max_lon, lon)

    def is_empty(self) -> bool:
        return self.min_lat > self.max_lat

    def corners(self) -> list[list[float]]:
        # South-west then north-east, each as [lat, lon].
        return [[self.min_lat, self.min_lon], [self.max_lat, self.max_lon]]


def compute_state_bounds(collection: dict, *, state_property: str = "st_name") -> dict[str, list[list[float]]]:
    rectangles: dict[str, Rectangle] = {}
    for feature in collection.get("features", []):
        state = (feature.get("properties") or {}).get(state_property)
        if not state:
            continue
        rectangle = rectangles.setdefault(state, Rectangle())
        for position in iter_positions(geometry_tree(feature.get("geometry"))):
            rectangle.include(position.lat, position.lon)

    return {state: rectangles[state].corners() for state in sorted(rectangles) if not rectangles[state].is_empty()}

"""Planar geometry in (lon, lat) degree space.

Distances are plain Euclidean on raw degrees. Both the routing edge weights and
the A* heuristic use this metric, which keeps the heuristic consistent.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


def euclidean(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    return math.hypot(lon1 - lon2, lat1 - lat2)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle; latitude decreases from the upper-left corner down."""

    ul_lon: float
    ul_lat: float
    lr_lon: float
    lr_lat: float

    @property
    def width(self) -> float:
        return self.lr_lon - self.ul_lon

    @property
    def height(self) -> float:
        return self.ul_lat - self.lr_lat

    def is_well_formed(self) -> bool:
        return self.ul_lon < self.lr_lon and self.ul_lat > self.lr_lat

    def intersects(self, other: Rect) -> bool:
        # Edge-touching rectangles do not intersect.
        return not (
            self.lr_lon <= other.ul_lon
            or self.ul_lon >= other.lr_lon
            or self.lr_lat >= other.ul_lat
            or self.ul_lat <= other.lr_lat
        )

    def contains(self, other: Rect) -> bool:
        return (
            self.ul_lon <= other.ul_lon
            and self.lr_lon >= other.lr_lon
            and self.ul_lat >= other.ul_lat
            and self.lr_lat <= other.lr_lat
        )

    def intersection(self, other: Rect) -> Rect | None:
        if not self.intersects(other):
            return None
        return Rect(
            ul_lon=max(self.ul_lon, other.ul_lon),
            ul_lat=min(self.ul_lat, other.ul_lat),
            lr_lon=min(self.lr_lon, other.lr_lon),
            lr_lat=max(self.lr_lat, other.lr_lat),
        )

    def quadrant(self, position: str) -> Rect:
        """Child rectangle for ``ul``, ``ur``, ``ll`` or ``lr``, bisecting both axes."""
        mid_lon = (self.ul_lon + self.lr_lon) / 2.0
        mid_lat = (self.ul_lat + self.lr_lat) / 2.0
        if position == "ul":
            return Rect(self.ul_lon, self.ul_lat, mid_lon, mid_lat)
        if position == "ur":
            return Rect(mid_lon, self.ul_lat, self.lr_lon, mid_lat)
        if position == "ll":
            return Rect(self.ul_lon, mid_lat, mid_lon, self.lr_lat)
        if position == "lr":
            return Rect(mid_lon, mid_lat, self.lr_lon, self.lr_lat)
        raise ValueError(f"unknown quadrant {position!r}")

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.ul_lon, self.ul_lat, self.lr_lon, self.lr_lat)

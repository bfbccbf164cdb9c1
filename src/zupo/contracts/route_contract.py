from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float

    def in_bounds(self) -> bool:
        return -90.0 <= self.latitude <= 90.0 and -180.0 <= self.longitude <= 180.0


# Output of one polyline decode, in route order
Path = Tuple[GeoPoint, ...]


@dataclass(frozen=True)
class Waypoint:
    index: int  # 0..N-1, increasing along the route
    point: GeoPoint

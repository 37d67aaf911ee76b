"""Geo Value Types — points, locations and radius bounding boxes.

Invariants:
    - Latitude in [-90, 90], longitude in [-180, 180] (checked in core/validation.py)
    - Distances are in statute miles
    - Distance itself is computed by the store (repositories/geo_sql.py);
      bounding_box() here only narrows the rows it has to look at
"""

import math
from dataclasses import dataclass


EARTH_RADIUS_MILES = 3958.8
MILES_PER_DEGREE_LAT = 69.0


@dataclass(frozen=True)
class GeoPoint:
    """A bare coordinate pair (feed center, user position)."""
    latitude: float
    longitude: float


@dataclass
class Location:
    """Where a question is anchored. Owned by exactly one question."""
    latitude: float
    longitude: float
    name: str | None = None
    address: str | None = None

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(self.latitude, self.longitude)


@dataclass(frozen=True)
class BoundingBox:
    """Coarse prefilter around a center. lon bounds are None when the box
    wraps the antimeridian or reaches a pole."""
    min_lat: float
    max_lat: float
    min_lon: float | None
    max_lon: float | None


def bounding_box(center: GeoPoint, radius_miles: float) -> BoundingBox:
    """Smallest lat/lon rectangle guaranteed to contain the radius circle."""
    dlat = radius_miles / MILES_PER_DEGREE_LAT
    min_lat = max(-90.0, center.latitude - dlat)
    max_lat = min(90.0, center.latitude + dlat)
    if min_lat <= -90.0 or max_lat >= 90.0:
        return BoundingBox(min_lat, max_lat, None, None)

    widest_lat = max(abs(min_lat), abs(max_lat))
    dlon = radius_miles / (MILES_PER_DEGREE_LAT * math.cos(math.radians(widest_lat)))
    min_lon = center.longitude - dlon
    max_lon = center.longitude + dlon
    if min_lon < -180.0 or max_lon > 180.0:
        return BoundingBox(min_lat, max_lat, None, None)
    return BoundingBox(min_lat, max_lat, min_lon, max_lon)

"""
geo.py
~~~~~~
Pure geometry helpers: bounding box around a point and haversine distance.

Known limitation
----------------
``bounding_box`` scales the longitude span by ``1 / cos(latitude)``, so the
box widens quickly as the centre approaches a pole.  Once the half-span
reaches 180° (or the cosine is effectively zero, as at ±90°) the box covers
the whole longitude range.  Latitudes are clamped to [-90, 90].
"""

from __future__ import annotations

import math
from typing import Final, NamedTuple

R_EARTH_KM: Final[float] = 6_371.0
KM_PER_MILE: Final[float] = 1.60934
MILES_PER_DEG_LAT: Final[float] = 69.0

# cos(radians(±90)) is ~6e-17, not 0
_MIN_MILES_PER_DEG_LON: Final[float] = 1e-9


class Coordinate(NamedTuple):
    """Decimal-degree position; immutable once built."""

    latitude: float
    longitude: float


class BoundingBox(NamedTuple):
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float


class Distance(NamedTuple):
    km: float
    miles: float


def km_to_miles(km: float) -> float:
    return km / KM_PER_MILE


def bounding_box(center: Coordinate, radius_miles: float) -> BoundingBox:
    """Rectangular lat/lon box enclosing a circle of *radius_miles*."""

    lat_degrees = radius_miles / MILES_PER_DEG_LAT
    miles_per_deg_lon = MILES_PER_DEG_LAT * math.cos(math.radians(center.latitude))

    if abs(miles_per_deg_lon) < _MIN_MILES_PER_DEG_LON:
        lon_degrees = math.inf
    else:
        lon_degrees = radius_miles / miles_per_deg_lon

    if lon_degrees >= 180.0:
        min_lon, max_lon = -180.0, 180.0
    else:
        min_lon = center.longitude - lon_degrees
        max_lon = center.longitude + lon_degrees

    return BoundingBox(
        min_lat=max(-90.0, center.latitude - lat_degrees),
        max_lat=min(90.0, center.latitude + lat_degrees),
        min_lon=min_lon,
        max_lon=max_lon,
    )


def distance(a: Coordinate, b: Coordinate) -> Distance:
    """Great‑circle distance between *a* and *b* (haversine)."""

    φ1, φ2 = map(math.radians, (a.latitude, b.latitude))
    dφ = math.radians(b.latitude - a.latitude)
    dλ = math.radians(b.longitude - a.longitude)
    h = math.sin(dφ / 2) ** 2 + math.cos(φ1) * math.cos(φ2) * math.sin(dλ / 2) ** 2
    km = 2 * R_EARTH_KM * math.asin(math.sqrt(min(1.0, h)))
    return Distance(km=km, miles=km_to_miles(km))


__all__ = [
    "BoundingBox",
    "Coordinate",
    "Distance",
    "bounding_box",
    "distance",
    "km_to_miles",
]

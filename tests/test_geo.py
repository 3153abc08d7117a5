"""
tests/test_geo.py
~~~~~~~~~~~~~~~~~
Haversine distance and bounding-box approximation.
"""

from __future__ import annotations

import math

import pytest

from flightfinder.geo import (
    Coordinate,
    bounding_box,
    distance,
    km_to_miles,
)

POINTS = [
    Coordinate(40.0, -74.0),
    Coordinate(-33.8688, 151.2093),
    Coordinate(0.0, 179.9),
    Coordinate(89.5, 10.0),
]


@pytest.mark.parametrize("point", POINTS)
def test_distance_to_self_is_zero(point: Coordinate) -> None:
    d = distance(point, point)
    assert d.km == 0.0
    assert d.miles == 0.0


@pytest.mark.parametrize("a", POINTS)
@pytest.mark.parametrize("b", POINTS)
def test_distance_is_symmetric(a: Coordinate, b: Coordinate) -> None:
    assert distance(a, b).km == pytest.approx(distance(b, a).km)
    assert distance(a, b).miles == pytest.approx(distance(b, a).miles)


def test_one_degree_of_latitude_is_about_111_km() -> None:
    d = distance(Coordinate(40.0, -74.0), Coordinate(41.0, -74.0))
    assert d.km == pytest.approx(111.2, rel=0.01)


def test_miles_derived_from_km() -> None:
    d = distance(Coordinate(51.47, -0.4543), Coordinate(40.6413, -73.7781))  # LHR → JFK
    assert d.miles == pytest.approx(d.km / 1.60934)
    assert 5_500 < d.km < 5_600


def test_km_to_miles() -> None:
    assert km_to_miles(160.934) == pytest.approx(100.0)


def test_antimeridian_distance_is_short() -> None:
    d = distance(Coordinate(0.0, 179.9), Coordinate(0.0, -179.9))
    assert d.km == pytest.approx(22.2, rel=0.02)


def test_bounding_box_at_mid_latitude() -> None:
    box = bounding_box(Coordinate(40.0, -74.0), 100.0)

    lat_span = 100.0 / 69.0
    lon_span = 100.0 / (69.0 * math.cos(math.radians(40.0)))
    assert box.min_lat == pytest.approx(40.0 - lat_span)
    assert box.max_lat == pytest.approx(40.0 + lat_span)
    assert box.min_lon == pytest.approx(-74.0 - lon_span)
    assert box.max_lon == pytest.approx(-74.0 + lon_span)


def test_bounding_box_widens_towards_pole() -> None:
    """Documented limitation: the longitude span grows with latitude."""
    equator = bounding_box(Coordinate(0.0, 0.0), 100.0)
    arctic = bounding_box(Coordinate(80.0, 0.0), 100.0)
    assert (arctic.max_lon - arctic.min_lon) > 5 * (equator.max_lon - equator.min_lon)


def test_bounding_box_contains_circle_points() -> None:
    center = Coordinate(40.0, -74.0)
    box = bounding_box(center, 100.0)
    for candidate in (Coordinate(40.0, -75.0), Coordinate(41.2, -74.0)):
        assert distance(center, candidate).miles <= 100.0
        assert box.min_lat <= candidate.latitude <= box.max_lat
        assert box.min_lon <= candidate.longitude <= box.max_lon


@pytest.mark.parametrize("lat", [90.0, -90.0])
@pytest.mark.parametrize("lon", [-180.0, 0.0, 180.0])
def test_bounding_box_at_pole_covers_all_longitudes(lat: float, lon: float) -> None:
    box = bounding_box(Coordinate(lat, lon), 100.0)

    assert (box.min_lon, box.max_lon) == (-180.0, 180.0)
    assert -90.0 <= box.min_lat <= box.max_lat <= 90.0


def test_bounding_box_caps_span_near_pole() -> None:
    # 89.9° N: 100 mi needs far more than 180° of longitude
    box = bounding_box(Coordinate(89.9, 45.0), 100.0)

    assert (box.min_lon, box.max_lon) == (-180.0, 180.0)
    assert box.max_lat == 90.0

"""
proximity.py
~~~~~~~~~~~~
Turn the bounding-box result into a radius-exact, distance-ranked list.

The box from :func:`geo.bounding_box` over-covers the circle (its corners
sit ~1.4× radius away), so every candidate gets an exact haversine distance
here and anything beyond the radius is dropped.
"""

from __future__ import annotations

from typing import Iterable

from .flight_service import AircraftState, coordinate_of
from .geo import Coordinate, distance


class _RankedBase(AircraftState):
    distance_km: float
    distance_miles: float


class RankedFlight(_RankedBase, total=False):
    """AircraftState plus distance; route keys appear once enriched."""

    origin: str
    destination: str


def rank_nearby(
    flights: Iterable[AircraftState],
    center: Coordinate,
    radius_miles: float,
) -> list[RankedFlight]:
    """
    Return new :class:`RankedFlight` dicts within *radius_miles* of *center*.

    The boundary is inclusive.  ``sorted`` is stable, so equal distances keep
    their input order.  Input dicts are copied, never mutated.
    """
    ranked: list[RankedFlight] = []
    for flight in flights:
        d = distance(center, coordinate_of(flight))
        if d.miles > radius_miles:
            continue
        ranked.append(
            RankedFlight(**flight, distance_km=d.km, distance_miles=d.miles)  # type: ignore[typeddict-item]
        )
    return sorted(ranked, key=lambda f: f["distance_miles"])


__all__ = ["RankedFlight", "rank_nearby"]

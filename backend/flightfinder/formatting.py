"""
formatting.py
~~~~~~~~~~~~~
Display-ready fields for one flight card.  Units follow what a US reader
expects: feet, mph, ft/min, miles.
"""

from __future__ import annotations

from typing import Any, Final

from .proximity import RankedFlight

FEET_PER_METER: Final = 3.28084
MPH_PER_MPS: Final = 2.23694
FPM_PER_MPS: Final = 196.85

NOT_AVAILABLE: Final = "N/A"
ROUTE_LOADING: Final = "Loading route..."


def altitude_text(altitude_m: float | None) -> str:
    if not altitude_m:
        return NOT_AVAILABLE
    return f"{round(altitude_m * FEET_PER_METER)} ft"


def speed_text(speed_mps: float | None) -> str:
    if not speed_mps:
        return NOT_AVAILABLE
    return f"{round(speed_mps * MPH_PER_MPS)} mph"


def heading_text(heading_deg: float | None) -> str:
    if heading_deg is None:
        return NOT_AVAILABLE
    return f"{round(heading_deg)}°"


def vertical_rate_text(rate_mps: float | None) -> str:
    fpm = round(rate_mps * FPM_PER_MPS) if rate_mps else 0
    if fpm > 0:
        return f"Climbing ({fpm} ft/min)"
    if fpm < 0:
        return f"Descending ({abs(fpm)} ft/min)"
    return "Level"


def route_text(flight: RankedFlight) -> str:
    origin = flight.get("origin")
    destination = flight.get("destination")
    if origin and destination:
        return f"{origin} → {destination}"
    return ROUTE_LOADING


def flight_card(flight: RankedFlight) -> dict[str, Any]:
    """Raw record plus the human-readable strings a list view shows."""
    return {
        **flight,
        "display": {
            "callsign": flight["callsign"],
            "route": route_text(flight),
            "route_loading": not flight.get("origin"),
            "origin_country": flight["origin_country"],
            "altitude": altitude_text(flight["altitude_m"]),
            "speed": speed_text(flight["ground_speed_mps"]),
            "heading": heading_text(flight["heading_deg"]),
            "vertical_rate": vertical_rate_text(flight["vertical_rate_mps"]),
            "distance": f"{flight['distance_miles']:.1f} miles away",
        },
    }


__all__ = ["flight_card", "route_text", "vertical_rate_text"]

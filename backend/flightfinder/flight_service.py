"""flight_service.py
~~~~~~~~~~~~~~~~~~~~
Fetch every aircraft inside a bounding box from **OpenSky** and normalise
the raw state vectors into :class:`AircraftState` dicts.

* One ``GET /states/all?lamin=…&lomin=…&lamax=…&lomax=…`` per search.
* Non-2xx, unparsable bodies and transport failures raise
  :class:`~flightfinder.errors.FetchError`; the search aborts on them.
* ``states: null`` (nothing in the box) is an empty list, not an error.
* The whole request is bounded by ``config.flight_fetch_timeout_s``.
* Output order is whatever OpenSky returns; ranking happens downstream in
  :pyfile:`proximity.py`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence, TypedDict

import httpx

from .api_logging import logged_request_async
from .config import SearchConfig
from .constants import UNKNOWN_CALLSIGN, USER_AGENT
from .errors import FetchError, FetchErrorKind
from .geo import Coordinate, bounding_box

LOG = logging.getLogger("flight_service")

# OpenSky state vector indices (17/18 elements):
# [0]=icao24, [1]=callsign, [2]=origin_country, [5]=longitude, [6]=latitude,
# [7]=baro_altitude, [8]=on_ground, [9]=velocity, [10]=true_track,
# [11]=vertical_rate
_MIN_VECTOR_LEN = 9


class AircraftState(TypedDict):
    """Airborne aircraft snapshot; both coordinates are always present."""

    icao24: str
    callsign: str
    origin_country: str
    latitude: float
    longitude: float
    altitude_m: float | None
    ground_speed_mps: float | None
    heading_deg: float | None
    vertical_rate_mps: float | None
    on_ground: bool


def coordinate_of(state: AircraftState) -> Coordinate:
    return Coordinate(state["latitude"], state["longitude"])


def _opt_float(vector: Sequence[Any], idx: int) -> float | None:
    """``float(vector[idx])`` or *None* when missing / non-numeric."""
    if idx >= len(vector) or vector[idx] is None:
        return None
    try:
        return float(vector[idx])
    except (TypeError, ValueError):
        return None


def _clean_callsign(raw: Any) -> str:
    callsign = raw.strip() if isinstance(raw, str) else ""
    return callsign or UNKNOWN_CALLSIGN


def normalize_state(vector: Any) -> AircraftState | None:
    """
    Convert one OpenSky state vector, or return *None* to drop it.

    Dropped: malformed vectors, entries without latitude or longitude,
    coordinates outside the valid ranges, and anything flagged on-ground.
    """
    if not isinstance(vector, (list, tuple)) or len(vector) < _MIN_VECTOR_LEN:
        return None

    icao24 = vector[0]
    if not isinstance(icao24, str) or not icao24.strip():
        return None

    if vector[8]:
        return None  # on the ground

    lat = _opt_float(vector, 6)
    lon = _opt_float(vector, 5)
    if lat is None or lon is None:
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        return None

    origin_country = vector[2] if isinstance(vector[2], str) else ""

    return AircraftState(
        icao24=icao24.strip().lower(),
        callsign=_clean_callsign(vector[1]),
        origin_country=origin_country,
        latitude=lat,
        longitude=lon,
        altitude_m=_opt_float(vector, 7),
        ground_speed_mps=_opt_float(vector, 9),
        heading_deg=_opt_float(vector, 10),
        vertical_rate_mps=_opt_float(vector, 11),
        on_ground=False,
    )


def parse_states(payload: Any) -> list[AircraftState]:
    """Normalise a decoded ``states/all`` body; raise on an unexpected shape."""
    if not isinstance(payload, dict):
        raise FetchError(
            FetchErrorKind.PARSE_FAILURE,
            "Error fetching flights: unexpected response format",
        )

    states = payload.get("states")
    if not states:
        return []
    if not isinstance(states, list):
        raise FetchError(
            FetchErrorKind.PARSE_FAILURE,
            "Error fetching flights: 'states' is not a list",
        )

    flights: list[AircraftState] = []
    for vector in states:
        state = normalize_state(vector)
        if state is not None:
            flights.append(state)

    LOG.debug("normalised %d of %d state vectors", len(flights), len(states))
    return flights


async def _get_states(config: SearchConfig, params: dict[str, float]) -> httpx.Response:
    async with httpx.AsyncClient(
        timeout=config.flight_fetch_timeout_s, headers={"User-Agent": USER_AGENT}
    ) as client:
        return await logged_request_async(
            client, "get", config.states_url, params=params
        )


# ── Public helper ────────────────────────────────────────────────────────
async def fetch_flights(
    center: Coordinate,
    radius_miles: float | None = None,
    *,
    config: SearchConfig | None = None,
) -> list[AircraftState]:
    """Return airborne aircraft inside the box around *center*."""

    config = config or SearchConfig()
    radius = config.radius_miles if radius_miles is None else radius_miles
    box = bounding_box(center, radius)
    params = {
        "lamin": box.min_lat,
        "lomin": box.min_lon,
        "lamax": box.max_lat,
        "lomax": box.max_lon,
    }

    try:
        resp = await asyncio.wait_for(
            _get_states(config, params), timeout=config.flight_fetch_timeout_s
        )
    except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
        raise FetchError(
            FetchErrorKind.TRANSPORT,
            "Error fetching flights: the flight data request timed out",
        ) from exc
    except httpx.RequestError as exc:
        raise FetchError(
            FetchErrorKind.TRANSPORT, f"Error fetching flights: {exc}"
        ) from exc

    if not resp.is_success:
        raise FetchError(
            FetchErrorKind.HTTP_STATUS,
            f"Failed to fetch flight data: {resp.status_code} {resp.reason_phrase}",
            status_code=resp.status_code,
        )

    try:
        payload = resp.json()
    except ValueError as exc:
        raise FetchError(
            FetchErrorKind.PARSE_FAILURE,
            "Error fetching flights: response was not valid JSON",
        ) from exc

    flights = parse_states(payload)
    LOG.info(
        "OpenSky returned %d airborne aircraft around (%.4f, %.4f)",
        len(flights),
        center.latitude,
        center.longitude,
    )
    return flights


__all__ = [
    "AircraftState",
    "coordinate_of",
    "fetch_flights",
    "normalize_state",
    "parse_states",
]

"""location_service.py
~~~~~~~~~~~~~~~~~~~~~~
Resolve the reference :class:`~flightfinder.geo.Coordinate` for a search.

Three ways in, one contract out (a ``Coordinate`` or a
:class:`~flightfinder.errors.LocationError`):

* **Sensor**: ask a :class:`PositionSensor` for one high-accuracy fix,
  with no cached position reused, bounded by ``timeout``.
* **Manual**: validate two user-typed strings.
* **Place name**: geocode free text with Nominatim, rate limited to
  1 request/s like every Nominatim client should be.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import math
from typing import Final, Protocol

from geopy.exc import GeocoderServiceError, GeocoderTimedOut
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import Nominatim

from .config import DEFAULT_LOCATION_TIMEOUT_S
from .constants import USER_AGENT
from .errors import (
    InvalidInputError,
    InvalidInputReason,
    LocationError,
    LocationErrorKind,
)
from .geo import Coordinate

LOG = logging.getLogger("location_service")

_PREFIX: Final = "Unable to get your location. "

SENSOR_MESSAGES: Final[dict[LocationErrorKind, str]] = {
    LocationErrorKind.PERMISSION_DENIED: _PREFIX + "Please allow location access.",
    LocationErrorKind.UNAVAILABLE: _PREFIX + "Location information is unavailable.",
    LocationErrorKind.TIMEOUT: _PREFIX + "Location request timed out.",
    LocationErrorKind.UNKNOWN: _PREFIX + "An unknown error occurred.",
}
UNSUPPORTED_MESSAGE: Final = "Geolocation is not supported by your device."


# ── Sensor variant ───────────────────────────────────────────────────────
class SensorErrorCode(enum.IntEnum):
    """Failure codes a position sensor may report (W3C geolocation order)."""

    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


class SensorError(Exception):
    def __init__(self, code: int, message: str = "") -> None:
        super().__init__(message or f"sensor error {code}")
        self.code = code


class PositionSensor(Protocol):
    """Anything that can produce one position fix."""

    async def current_position(
        self, *, high_accuracy: bool, timeout: float, maximum_age: float
    ) -> Coordinate: ...


_SENSOR_KINDS: Final[dict[int, LocationErrorKind]] = {
    SensorErrorCode.PERMISSION_DENIED: LocationErrorKind.PERMISSION_DENIED,
    SensorErrorCode.POSITION_UNAVAILABLE: LocationErrorKind.UNAVAILABLE,
    SensorErrorCode.TIMEOUT: LocationErrorKind.TIMEOUT,
}


def _sensor_failure(kind: LocationErrorKind) -> LocationError:
    return LocationError(kind, SENSOR_MESSAGES[kind])


async def locate_with_sensor(
    sensor: PositionSensor | None,
    *,
    timeout: float = DEFAULT_LOCATION_TIMEOUT_S,
) -> Coordinate:
    """Return one fresh, high-accuracy fix from *sensor*."""
    if sensor is None:
        raise LocationError(LocationErrorKind.UNSUPPORTED, UNSUPPORTED_MESSAGE)

    try:
        fix = await asyncio.wait_for(
            sensor.current_position(
                high_accuracy=True, timeout=timeout, maximum_age=0
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError as exc:
        raise _sensor_failure(LocationErrorKind.TIMEOUT) from exc
    except SensorError as exc:
        kind = _SENSOR_KINDS.get(exc.code, LocationErrorKind.UNKNOWN)
        LOG.info("Position sensor failed (%s): %s", kind.value, exc)
        raise _sensor_failure(kind) from exc
    except Exception as exc:  # noqa: BLE001 – driver-specific failures
        LOG.warning("Position sensor raised unexpectedly: %s", exc, exc_info=True)
        raise _sensor_failure(LocationErrorKind.UNKNOWN) from exc

    return Coordinate(float(fix[0]), float(fix[1]))


# ── Manual variant ───────────────────────────────────────────────────────
def _parse_number(text: object) -> float:
    try:
        value = float(str(text).strip())
    except ValueError as exc:
        raise InvalidInputError(
            InvalidInputReason.NOT_A_NUMBER,
            "Please enter valid latitude and longitude values.",
        ) from exc
    if math.isnan(value):
        raise InvalidInputError(
            InvalidInputReason.NOT_A_NUMBER,
            "Please enter valid latitude and longitude values.",
        )
    return value


def parse_manual(lat_text: object, lon_text: object) -> Coordinate:
    """Validate typed coordinates; the parsed values are echoed exactly."""
    lat = _parse_number(lat_text)
    lon = _parse_number(lon_text)

    if not -90.0 <= lat <= 90.0:
        raise InvalidInputError(
            InvalidInputReason.OUT_OF_RANGE, "Latitude must be between -90 and 90."
        )
    if not -180.0 <= lon <= 180.0:
        raise InvalidInputError(
            InvalidInputReason.OUT_OF_RANGE, "Longitude must be between -180 and 180."
        )
    return Coordinate(lat, lon)


# ── Place-name variant (polite rate‑limited Nominatim) ───────────────────
_nominatim = Nominatim(user_agent=USER_AGENT)
_geocode_raw = RateLimiter(
    _nominatim.geocode, min_delay_seconds=1, max_retries=0, swallow_exceptions=False
)


async def geocode_place(
    query: str,
    *,
    timeout: float = DEFAULT_LOCATION_TIMEOUT_S,
) -> Coordinate:
    """Resolve a typed place name to the best Nominatim match."""
    cleaned = " ".join(query.split())
    if not cleaned:
        raise LocationError(
            LocationErrorKind.INVALID_INPUT, "Please enter a place to search."
        )

    try:
        result = await asyncio.wait_for(
            asyncio.to_thread(_geocode_raw, cleaned, timeout=timeout),
            timeout=timeout,
        )
    except (asyncio.TimeoutError, GeocoderTimedOut) as exc:
        raise LocationError(
            LocationErrorKind.TIMEOUT, f"Looking up {cleaned!r} timed out."
        ) from exc
    except GeocoderServiceError as exc:
        LOG.warning("Nominatim failed for %r: %s", cleaned, exc)
        raise LocationError(
            LocationErrorKind.UNAVAILABLE, f"Could not look up {cleaned!r} right now."
        ) from exc

    if result is None:
        raise LocationError(
            LocationErrorKind.UNAVAILABLE, f"No location found for {cleaned!r}."
        )

    LOG.info(
        "Geocoded %r → %s (%.4f, %.4f)",
        cleaned,
        result.address,
        result.latitude,
        result.longitude,
    )
    return Coordinate(float(result.latitude), float(result.longitude))


__all__ = [
    "PositionSensor",
    "SensorError",
    "SensorErrorCode",
    "geocode_place",
    "locate_with_sensor",
    "parse_manual",
]

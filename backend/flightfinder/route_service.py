"""
route_service.py
~~~~~~~~~~~~~~~~
Look up the most recent origin/destination for one aircraft from the
**OpenSky** flights-by-aircraft endpoint.

``GET /flights/aircraft?icao24=<hex>&begin=<unix>&end=<unix>`` returns the
flights OpenSky has reconstructed for that transponder in the window; the
*last* element is the most recent.  OpenSky answers 404 when the window
holds no flights, which we treat like an empty list.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Final

import httpx
from dateutil import tz

from .api_logging import logged_request_async
from .config import SearchConfig
from .constants import UNKNOWN_AIRPORT
from .errors import EnrichmentItemError

UTC: Final = tz.UTC
LOG = logging.getLogger("route_service")

Route = tuple[str, str]


def _airport(code: Any) -> str:
    if isinstance(code, str) and code.strip():
        return code.strip()
    return UNKNOWN_AIRPORT


def route_from_records(records: Any) -> Route | None:
    """``(origin, destination)`` of the last record, or *None* if empty."""
    if not records:
        return None
    if not isinstance(records, list) or not isinstance(records[-1], dict):
        raise ValueError("unexpected route payload")
    recent = records[-1]
    return _airport(recent.get("estDepartureAirport")), _airport(
        recent.get("estArrivalAirport")
    )


async def fetch_route(
    client: httpx.AsyncClient,
    icao24: str,
    *,
    config: SearchConfig,
    now: dt.datetime | None = None,
) -> Route | None:
    """
    Return the route flown by *icao24* in the trailing window, or *None*.

    Raises :class:`EnrichmentItemError` on transport errors, non-2xx
    answers other than 404, and malformed bodies.
    """
    now = now or dt.datetime.now(UTC)
    end = int(now.timestamp())
    params = {"icao24": icao24, "begin": end - config.route_window_s, "end": end}

    try:
        resp = await logged_request_async(client, "get", config.routes_url, params=params)
    except httpx.HTTPError as exc:
        raise EnrichmentItemError(icao24, f"route lookup failed: {exc}") from exc

    if resp.status_code == 404:
        return None
    if not resp.is_success:
        raise EnrichmentItemError(icao24, f"route lookup returned HTTP {resp.status_code}")

    try:
        return route_from_records(resp.json())
    except ValueError as exc:
        raise EnrichmentItemError(icao24, f"bad route payload: {exc}") from exc


__all__ = ["Route", "fetch_route", "route_from_records"]

"""
config.py
~~~~~~~~~
Immutable search settings.

Every tunable that used to be an ambient constant (radius, throttle delay,
time windows, timeouts) lives on :class:`SearchConfig` so tests can pass an
alternate record instead of patching module globals.

Environment
-----------
``NEARBY_RADIUS_MILES``      search radius (default 100)
``ENRICHMENT_DELAY_S``       pause after each route lookup (default 0.1)
``FLIGHT_FETCH_TIMEOUT_S``   bound on the state-vector query (default 15)
``LOCATION_TIMEOUT_S``       bound on location acquisition (default 10)
``ROUTE_TIMEOUT_S``          per route-lookup timeout (default 10)
``ROUTE_WINDOW_S``           trailing route-history window (default 86400)
``CORRELATION_KEY``          ``icao24`` (default) or ``callsign``
``OPENSKY_BASE_URL``         API root (default https://opensky-network.org/api)

A value that is not a number, or is not positive (the delay may be zero),
is logged at WARNING and replaced by its default.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import Final, Literal

LOG = logging.getLogger("config")

CorrelationKey = Literal["icao24", "callsign"]

DEFAULT_RADIUS_MILES: Final[float] = 100.0
DEFAULT_ENRICHMENT_DELAY_S: Final[float] = 0.1
DEFAULT_FLIGHT_FETCH_TIMEOUT_S: Final[float] = 15.0
DEFAULT_LOCATION_TIMEOUT_S: Final[float] = 10.0
DEFAULT_ROUTE_TIMEOUT_S: Final[float] = 10.0
DEFAULT_ROUTE_WINDOW_S: Final[int] = 86_400  # 24 h
DEFAULT_OPENSKY_BASE_URL: Final[str] = "https://opensky-network.org/api"


@dataclass(frozen=True)
class SearchConfig:
    """Settings for one orchestrator; never mutated after construction."""

    radius_miles: float = DEFAULT_RADIUS_MILES
    enrichment_delay_s: float = DEFAULT_ENRICHMENT_DELAY_S
    flight_fetch_timeout_s: float = DEFAULT_FLIGHT_FETCH_TIMEOUT_S
    location_timeout_s: float = DEFAULT_LOCATION_TIMEOUT_S
    route_timeout_s: float = DEFAULT_ROUTE_TIMEOUT_S
    route_window_s: int = DEFAULT_ROUTE_WINDOW_S
    correlation_key: CorrelationKey = "icao24"
    opensky_base_url: str = DEFAULT_OPENSKY_BASE_URL

    def __post_init__(self) -> None:
        if self.radius_miles <= 0:
            raise ValueError("radius_miles must be positive")
        if self.enrichment_delay_s < 0:
            raise ValueError("enrichment_delay_s must not be negative")
        if self.correlation_key not in ("icao24", "callsign"):
            raise ValueError(f"unsupported correlation key {self.correlation_key!r}")

    @property
    def states_url(self) -> str:
        return f"{self.opensky_base_url.rstrip('/')}/states/all"

    @property
    def routes_url(self) -> str:
        return f"{self.opensky_base_url.rstrip('/')}/flights/aircraft"


def _env_float(name: str, default: float, *, allow_zero: bool = False) -> float:
    """
    Read a numeric env var; bad values are logged and replaced by *default*.

    Values must be positive, or non-negative when *allow_zero* is set.
    """
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        LOG.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default
    if not math.isfinite(value) or value < 0 or (value == 0 and not allow_zero):
        LOG.warning("Ignoring out-of-range %s=%r, using %s", name, raw, default)
        return default
    return value


def load_config() -> SearchConfig:
    """Build a :class:`SearchConfig` from the process environment."""
    key = os.getenv("CORRELATION_KEY", "icao24").strip().lower() or "icao24"
    if key not in ("icao24", "callsign"):
        LOG.warning("Unknown CORRELATION_KEY=%r, falling back to icao24", key)
        key = "icao24"

    return SearchConfig(
        radius_miles=_env_float("NEARBY_RADIUS_MILES", DEFAULT_RADIUS_MILES),
        enrichment_delay_s=_env_float(
            "ENRICHMENT_DELAY_S", DEFAULT_ENRICHMENT_DELAY_S, allow_zero=True
        ),
        flight_fetch_timeout_s=_env_float(
            "FLIGHT_FETCH_TIMEOUT_S", DEFAULT_FLIGHT_FETCH_TIMEOUT_S
        ),
        location_timeout_s=_env_float("LOCATION_TIMEOUT_S", DEFAULT_LOCATION_TIMEOUT_S),
        route_timeout_s=_env_float("ROUTE_TIMEOUT_S", DEFAULT_ROUTE_TIMEOUT_S),
        route_window_s=int(_env_float("ROUTE_WINDOW_S", DEFAULT_ROUTE_WINDOW_S)),
        correlation_key=key,  # type: ignore[arg-type]
        opensky_base_url=os.getenv("OPENSKY_BASE_URL", DEFAULT_OPENSKY_BASE_URL),
    )


__all__ = ["CorrelationKey", "SearchConfig", "load_config"]

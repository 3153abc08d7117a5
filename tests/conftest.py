"""
tests/conftest.py
~~~~~~~~~~~~~~~~~
Global pytest fixtures.

* ``state_vector`` builds OpenSky ``states/all`` rows with sane defaults so
  each test only spells out the fields it cares about.
* ``fast_config`` is a :class:`SearchConfig` with a tiny enrichment delay,
  keeping the background-task tests quick.
* ``RecordingListener`` captures every orchestrator event in arrival order.
"""

from __future__ import annotations

from typing import Any, Callable

import pytest

from flightfinder.config import SearchConfig
from flightfinder.enrichment import RoutePatch
from flightfinder.search_service import SearchSession


pytest_plugins = ["pytest_asyncio"]


def make_vector(
    icao24: str = "abc123",
    callsign: Any = "UAL123  ",
    *,
    lat: Any = 40.0,
    lon: Any = -74.0,
    on_ground: Any = False,
    country: str = "United States",
    altitude: Any = 10_000.0,
    velocity: Any = 230.0,
    heading: Any = 90.0,
    vertical_rate: Any = 0.0,
) -> list[Any]:
    """One 17-element OpenSky state vector."""
    return [
        icao24,  # 0 icao24
        callsign,  # 1 callsign
        country,  # 2 origin_country
        1_700_000_000,  # 3 time_position
        1_700_000_000,  # 4 last_contact
        lon,  # 5 longitude
        lat,  # 6 latitude
        altitude,  # 7 baro_altitude
        on_ground,  # 8 on_ground
        velocity,  # 9 velocity
        heading,  # 10 true_track
        vertical_rate,  # 11 vertical_rate
        None,  # 12 sensors
        altitude,  # 13 geo_altitude
        "1200",  # 14 squawk
        False,  # 15 spi
        0,  # 16 position_source
    ]


@pytest.fixture
def state_vector() -> Callable[..., list[Any]]:
    return make_vector


@pytest.fixture
def fast_config() -> SearchConfig:
    return SearchConfig(enrichment_delay_s=0.01, location_timeout_s=0.2)


class RecordingListener:
    """``SearchListener`` that appends ``(kind, generation, payload, ...)`` tuples.

    Status events also carry the message: ``("status", gen, status, message)``.
    """

    def __init__(self) -> None:
        self.events: list[tuple[Any, ...]] = []

    def on_status(self, session: SearchSession, message: str) -> None:
        self.events.append(("status", session.generation, session.status, message))

    def on_results(self, session: SearchSession) -> None:
        self.events.append(("results", session.generation, list(session.flights)))

    def on_patch(self, patch: RoutePatch) -> None:
        self.events.append(("patch", patch.generation, patch))

    def on_error(self, session: SearchSession, message: str) -> None:
        self.events.append(("error", session.generation, message))

    def of_kind(self, kind: str) -> list[tuple[Any, ...]]:
        return [e for e in self.events if e[0] == kind]

    def statuses(self, generation: int | None = None) -> list[Any]:
        return [
            e[2]
            for e in self.events
            if e[0] == "status" and (generation is None or e[1] == generation)
        ]


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()

"""search_service.py
~~~~~~~~~~~~~~~~~~~~
Drive one search from "where am I?" to a ranked, progressively enriched
list, reporting every stage to a :class:`SearchListener`.

Stage order
-----------
``LOCATING_USER → FETCHING_FLIGHTS → FILTERING → DISPLAYING →
ENRICHING_ROUTES → IDLE``

* The first three stages are awaited in sequence.  A failure in any of them
  moves the session to ``ERROR``, emits one ``on_error`` and ends the search.
  The entry point still *returns* the session.
* ``DISPLAYING`` hands the full ranked list to ``on_results``.
* ``ENRICHING_ROUTES`` runs detached: the entry point returns while route
  patches keep arriving through ``on_patch``.  Route failures stay inside
  the pipeline and never turn the session into ``ERROR``.

Generations
-----------
Every search bumps ``generation`` before doing anything else and cancels
the previous pipeline.  Patches and stage events from an older generation
are dropped here too, so a superseded search can never touch the newer
list.
"""

from __future__ import annotations

import asyncio
import contextlib
import datetime as dt
import enum
import functools
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Final, Protocol

from dateutil import tz

from .config import SearchConfig
from .enrichment import EnrichmentPipeline, EnrichmentState, RouteLookup, RoutePatch
from .errors import FlightFinderError
from .flight_service import AircraftState, fetch_flights
from .geo import Coordinate
from .location_service import (
    PositionSensor,
    geocode_place,
    locate_with_sensor,
    parse_manual,
)
from .proximity import RankedFlight, rank_nearby

UTC: Final = tz.UTC
LOG = logging.getLogger("search")

FlightFetcher = Callable[..., Awaitable[list[AircraftState]]]
PlaceGeocoder = Callable[..., Awaitable[Coordinate]]


class SearchStatus(str, enum.Enum):
    IDLE = "idle"
    LOCATING_USER = "locating_user"
    FETCHING_FLIGHTS = "fetching_flights"
    FILTERING = "filtering"
    DISPLAYING = "displaying"
    ENRICHING_ROUTES = "enriching_routes"
    ERROR = "error"


@dataclass
class SearchSession:
    """State of one search; replaced wholesale when the next one starts."""

    generation: int
    radius_miles: float
    status: SearchStatus = SearchStatus.IDLE
    center: Coordinate | None = None
    flights: list[RankedFlight] = field(default_factory=list)
    enrichment: EnrichmentState = EnrichmentState.NOT_STARTED
    message: str = ""
    error: str | None = None
    failure: Exception | None = None
    updated_at: dt.datetime = field(default_factory=lambda: dt.datetime.now(UTC))


class SearchListener(Protocol):
    """Presentation side of a search; every call is synchronous."""

    def on_status(self, session: SearchSession, message: str) -> None: ...

    def on_results(self, session: SearchSession) -> None: ...

    def on_patch(self, patch: RoutePatch) -> None: ...

    def on_error(self, session: SearchSession, message: str) -> None: ...


class _Superseded(Exception):
    """A newer search started while this one was awaiting a stage."""


class SearchOrchestrator:
    """Run searches one after another; only the latest one is live."""

    def __init__(
        self,
        listener: SearchListener,
        config: SearchConfig | None = None,
        *,
        fetch: FlightFetcher = fetch_flights,
        geocode: PlaceGeocoder = geocode_place,
        route_lookup: RouteLookup | None = None,
    ) -> None:
        self.listener = listener
        self.config = config or SearchConfig()
        self._fetch = fetch
        self._geocode = geocode
        self._route_lookup = route_lookup
        self._generation = 0
        self._pipeline: EnrichmentPipeline | None = None
        self.session: SearchSession | None = None

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    # ── entry points ─────────────────────────────────────────────────────
    async def find_nearby_flights(self, sensor: PositionSensor | None) -> SearchSession:
        """Search around the position reported by *sensor*."""
        session = self._begin()
        timeout = self.config.location_timeout_s
        return await self._run(
            session,
            "Getting your location...",
            lambda: locate_with_sensor(sensor, timeout=timeout),
        )

    async def search_manual_location(self, lat_text: object, lon_text: object) -> SearchSession:
        """Search around user-typed coordinates."""
        session = self._begin()

        async def _locate() -> Coordinate:
            return parse_manual(lat_text, lon_text)

        return await self._run(
            session, "Searching flights at specified location...", _locate
        )

    async def search_place(self, query: str) -> SearchSession:
        """Search around a geocoded place name."""
        session = self._begin()
        timeout = self.config.location_timeout_s
        return await self._run(
            session,
            f"Looking up {query.strip()}...",
            lambda: self._geocode(query, timeout=timeout),
        )

    # ── lifecycle helpers ────────────────────────────────────────────────
    async def wait_for_enrichment(self) -> EnrichmentState | None:
        """Await the live pipeline (tests and graceful shutdown)."""
        pipeline = self._pipeline
        if pipeline is None or pipeline.task is None:
            return pipeline.state if pipeline else None
        with contextlib.suppress(asyncio.CancelledError):
            await pipeline.task
        return pipeline.state

    def cancel(self) -> None:
        """Invalidate the live search and stop its pipeline."""
        self._generation += 1
        if self._pipeline is not None:
            self._pipeline.cancel()

    # ── internals ────────────────────────────────────────────────────────
    def _begin(self) -> SearchSession:
        self.cancel()
        session = SearchSession(
            generation=self._generation, radius_miles=self.config.radius_miles
        )
        self.session = session
        LOG.info("[gen %d] new search", session.generation)
        return session

    async def _run(
        self,
        session: SearchSession,
        locating_message: str,
        locate: Callable[[], Awaitable[Coordinate]],
    ) -> SearchSession:
        radius = session.radius_miles
        try:
            self._transition(session, SearchStatus.LOCATING_USER, locating_message)
            center = await locate()
            session.center = center

            self._transition(session, SearchStatus.FETCHING_FLIGHTS, "Fetching flight data...")
            flights = await self._fetch(center, radius, config=self.config)

            self._transition(session, SearchStatus.FILTERING, "Calculating distances...")
            ranked = rank_nearby(flights, center, radius)
        except _Superseded:
            LOG.info("[gen %d] superseded before results", session.generation)
            return session
        except FlightFinderError as exc:
            self._fail(session, str(exc), exc)
            return session
        except Exception as exc:  # noqa: BLE001 – surfaced as the terminal error
            LOG.error("[gen %d] search crashed: %s", session.generation, exc, exc_info=True)
            self._fail(session, f"Unexpected error: {exc}", exc)
            return session

        session.flights = ranked
        summary = f"Found {len(ranked)} flights within {radius:g} miles"
        try:
            self._transition(session, SearchStatus.DISPLAYING, summary)
        except _Superseded:
            return session
        self.listener.on_results(session)

        self._start_enrichment(session, summary)
        return session

    def _start_enrichment(self, session: SearchSession, summary: str) -> None:
        pipeline = EnrichmentPipeline(
            session.flights,
            self._emit_patch,
            generation=session.generation,
            is_current=self.is_current,
            config=self.config,
            lookup=self._route_lookup,
        )
        self._pipeline = pipeline
        self._transition(session, SearchStatus.ENRICHING_ROUTES, summary)
        session.enrichment = EnrichmentState.RUNNING
        task = pipeline.start()
        task.add_done_callback(
            functools.partial(self._enrichment_finished, session, pipeline, summary)
        )

    def _enrichment_finished(
        self,
        session: SearchSession,
        pipeline: EnrichmentPipeline,
        summary: str,
        task: asyncio.Task,
    ) -> None:
        if task.cancelled():
            session.enrichment = EnrichmentState.CANCELLED
            return
        exc = task.exception()
        if exc is not None:
            LOG.error("[gen %d] enrichment task died: %s", session.generation, exc)
        session.enrichment = (
            EnrichmentState.CANCELLED if exc is not None else pipeline.state
        )
        if self.is_current(session.generation):
            self._transition(session, SearchStatus.IDLE, summary)

    def _emit_patch(self, patch: RoutePatch) -> None:
        if not self.is_current(patch.generation):
            LOG.debug("[gen %d] dropping stale patch for %s", patch.generation, patch.key)
            return
        if self.session is not None:
            self.session.updated_at = dt.datetime.now(UTC)
        self.listener.on_patch(patch)

    def _transition(self, session: SearchSession, status: SearchStatus, message: str) -> None:
        if not self.is_current(session.generation):
            raise _Superseded
        session.status = status
        session.message = message
        session.updated_at = dt.datetime.now(UTC)
        LOG.info("[gen %d] %s: %s", session.generation, status.value, message)
        self.listener.on_status(session, message)

    def _fail(
        self, session: SearchSession, message: str, exc: Exception | None = None
    ) -> None:
        if not self.is_current(session.generation):
            return
        LOG.warning("[gen %d] search failed: %s", session.generation, message)
        session.status = SearchStatus.ERROR
        session.error = message
        session.failure = exc
        session.message = ""
        session.updated_at = dt.datetime.now(UTC)
        self.listener.on_status(session, "")
        self.listener.on_error(session, message)


__all__ = [
    "SearchListener",
    "SearchOrchestrator",
    "SearchSession",
    "SearchStatus",
]

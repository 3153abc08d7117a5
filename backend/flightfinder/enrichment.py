"""
enrichment.py
~~~~~~~~~~~~~
Background route enrichment for an already-rendered result list.

How a run works
---------------
* Flights are processed **one at a time, in the order given** (nearest
  first).  OpenSky throttles anonymous callers, so a fixed pause of
  ``config.enrichment_delay_s`` follows *every* lookup, including the
  failed ones.
* A failed lookup (transport error, HTTP error, bad body) is logged and
  skipped.  It is never retried and never ends the run.
* A lookup that finds a route sets ``origin`` / ``destination`` on the
  flight dict and emits one :class:`RoutePatch`.
* Every run carries the *generation* of the search that started it.  Before
  each emit the run asks ``is_current(generation)``.  Once a newer search
  exists the run stops and ends ``CANCELLED``, so a late patch can never
  land on the newer result list.

State machine: ``NOT_STARTED → RUNNING → COMPLETED | CANCELLED``.
"""

from __future__ import annotations

import asyncio
import enum
import functools
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

import httpx

from .config import CorrelationKey, SearchConfig
from .constants import USER_AGENT
from .errors import EnrichmentItemError
from .proximity import RankedFlight
from .route_service import Route, fetch_route

LOG = logging.getLogger("enrichment")

RouteLookup = Callable[[httpx.AsyncClient, str], Awaitable["Route | None"]]


class EnrichmentState(str, enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class RoutePatch:
    """One enrichment event; ``key`` is the value of ``flight[key_field]``."""

    generation: int
    key_field: CorrelationKey
    key: str
    origin: str
    destination: str
    flight: RankedFlight


class EnrichmentPipeline:
    """Sequential, throttled, cancellable route lookups for one search."""

    def __init__(
        self,
        flights: Sequence[RankedFlight],
        emit: Callable[[RoutePatch], None],
        *,
        generation: int,
        is_current: Callable[[int], bool],
        config: SearchConfig | None = None,
        lookup: RouteLookup | None = None,
    ) -> None:
        self.config = config or SearchConfig()
        self.flights = list(flights)
        self.generation = generation
        self._emit = emit
        self._is_current = is_current
        self._lookup = lookup or functools.partial(fetch_route, config=self.config)
        self._task: asyncio.Task | None = None
        self.state = EnrichmentState.NOT_STARTED
        self.emitted = 0
        self.failed = 0

    # ── lifecycle ────────────────────────────────────────────────────────
    def start(self) -> asyncio.Task:
        """Schedule the run on the running loop and return immediately."""
        if self.state is not EnrichmentState.NOT_STARTED:
            raise RuntimeError(f"pipeline already {self.state.value}")
        self._task = asyncio.create_task(
            self.run(), name=f"enrich-routes-{self.generation}"
        )
        return self._task

    def cancel(self) -> None:
        """Stop a pending or running pipeline; terminal states are kept."""
        if self.state in (EnrichmentState.COMPLETED, EnrichmentState.CANCELLED):
            return
        self.state = EnrichmentState.CANCELLED
        if self._task is not None and not self._task.done():
            self._task.cancel()

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    # ── run loop ─────────────────────────────────────────────────────────
    async def run(self) -> EnrichmentState:
        if self.state is EnrichmentState.CANCELLED:
            return self.state
        self.state = EnrichmentState.RUNNING
        LOG.info(
            "[gen %d] enriching %d flights (delay %.2fs)",
            self.generation,
            len(self.flights),
            self.config.enrichment_delay_s,
        )

        try:
            async with httpx.AsyncClient(
                timeout=self.config.route_timeout_s,
                headers={"User-Agent": USER_AGENT},
            ) as client:
                for flight in self.flights:
                    if not self._still_current():
                        return self.state
                    route = await self._lookup_one(client, flight)
                    if route is not None:
                        if not self._still_current():
                            return self.state
                        self._apply(flight, route)
                    await asyncio.sleep(self.config.enrichment_delay_s)
        except asyncio.CancelledError:
            self.state = EnrichmentState.CANCELLED
            LOG.info("[gen %d] enrichment cancelled", self.generation)
            raise

        if self.state is EnrichmentState.RUNNING:
            self.state = EnrichmentState.COMPLETED
        LOG.info(
            "[gen %d] enrichment %s: %d patched, %d failed",
            self.generation,
            self.state.value,
            self.emitted,
            self.failed,
        )
        return self.state

    def _still_current(self) -> bool:
        if self.state is EnrichmentState.CANCELLED:
            return False
        if self._is_current(self.generation):
            return True
        LOG.info("[gen %d] superseded by a newer search, stopping", self.generation)
        self.state = EnrichmentState.CANCELLED
        return False

    async def _lookup_one(
        self, client: httpx.AsyncClient, flight: RankedFlight
    ) -> Route | None:
        try:
            route = await self._lookup(client, flight["icao24"])
        except EnrichmentItemError as exc:
            self.failed += 1
            LOG.warning("Could not fetch route for %s: %s", flight["callsign"], exc)
            return None
        except Exception as exc:  # noqa: BLE001 – one aircraft never ends the run
            self.failed += 1
            LOG.warning(
                "Unexpected error fetching route for %s: %s",
                flight["callsign"],
                exc,
                exc_info=True,
            )
            return None

        if route is None:
            LOG.debug("No route records for %s", flight["callsign"])
        return route

    def _apply(self, flight: RankedFlight, route: Route) -> None:
        """Set the route on *flight* and emit, with no await in between."""
        origin, destination = route
        flight["origin"] = origin
        flight["destination"] = destination
        key_field = self.config.correlation_key
        patch = RoutePatch(
            generation=self.generation,
            key_field=key_field,
            key=flight[key_field],
            origin=origin,
            destination=destination,
            flight=flight,
        )
        try:
            self._emit(patch)
        except Exception as exc:  # noqa: BLE001 – listener bug, keep enriching
            LOG.error("Route patch listener failed: %s", exc, exc_info=True)
            return
        self.emitted += 1


__all__ = ["EnrichmentPipeline", "EnrichmentState", "RouteLookup", "RoutePatch"]

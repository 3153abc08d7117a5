"""
session_store.py
~~~~~~~~~~~~~~~~
In-memory view of the *current* search, fed by
:class:`~flightfinder.search_service.SearchOrchestrator` events and read by
the HTTP layer.

* ``on_results`` replaces the card list wholesale.
* ``on_patch`` updates only ``origin`` / ``destination`` (and the derived
  route strings) of the cards whose correlation field matches.  With
  ``correlation_key="callsign"`` that can be more than one card, e.g. two
  aircraft both shown as "Unknown".
* Events from an older generation than the one on display are ignored.
"""

from __future__ import annotations

import datetime as dt
import logging
import threading
from typing import Any, Final

from dateutil import tz

from .enrichment import RoutePatch
from .formatting import flight_card, route_text
from .search_service import SearchSession, SearchStatus

UTC: Final = tz.UTC
LOG = logging.getLogger("session_store")


class SessionStore:
    """Thread-safe snapshot holder implementing ``SearchListener``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generation = 0
        self._status = SearchStatus.IDLE
        self._message = ""
        self._error: str | None = None
        self._center: dict[str, float] | None = None
        self._radius_miles: float | None = None
        self._cards: list[dict[str, Any]] = []
        self._last_update: dt.datetime | None = None
        self.patches_applied = 0

    # ── SearchListener ───────────────────────────────────────────────────
    def on_status(self, session: SearchSession, message: str) -> None:
        with self._lock:
            if not self._accept(session.generation):
                return
            self._status = session.status
            self._message = message
            self._radius_miles = session.radius_miles
            if session.center is not None:
                self._center = {
                    "latitude": session.center.latitude,
                    "longitude": session.center.longitude,
                }

    def on_results(self, session: SearchSession) -> None:
        with self._lock:
            if not self._accept(session.generation):
                return
            self._cards = [flight_card(f) for f in session.flights]
            self._last_update = dt.datetime.now(UTC)

    def on_patch(self, patch: RoutePatch) -> None:
        with self._lock:
            if patch.generation != self._generation:
                LOG.debug("stale patch gen=%d ignored", patch.generation)
                return
            matched = 0
            for card in self._cards:
                if card.get(patch.key_field) != patch.key:
                    continue
                card["origin"] = patch.origin
                card["destination"] = patch.destination
                card["display"]["route"] = route_text(card)  # type: ignore[arg-type]
                card["display"]["route_loading"] = False
                matched += 1
            if matched:
                self.patches_applied += 1
                self._last_update = dt.datetime.now(UTC)
            else:
                LOG.debug("patch for %s=%s matched no card", patch.key_field, patch.key)

    def on_error(self, session: SearchSession, message: str) -> None:
        with self._lock:
            if not self._accept(session.generation):
                return
            self._status = SearchStatus.ERROR
            self._error = message
            self._cards = []

    # ── readers ──────────────────────────────────────────────────────────
    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "generation": self._generation,
                "status": self._status.value,
                "message": self._message,
                "error": self._error,
                "center": dict(self._center) if self._center else None,
                "radius_miles": self._radius_miles,
                "flight_count": len(self._cards),
                "last_update": self._last_update.isoformat() if self._last_update else None,
                "flights": [
                    {**card, "display": dict(card["display"])} for card in self._cards
                ],
            }

    # ── internals ────────────────────────────────────────────────────────
    def _accept(self, generation: int) -> bool:
        """Adopt a newer generation (resetting the view); reject older ones."""
        if generation < self._generation:
            return False
        if generation > self._generation:
            self._generation = generation
            self._cards = []
            self._error = None
            self._center = None
            self._message = ""
            self._last_update = None
        return True


__all__ = ["SessionStore"]

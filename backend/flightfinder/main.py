"""
main.py – FastAPI entry point
=============================

Routes
------
* ``GET /healthz``               liveness probe
* ``GET /flights/nearby.json``   start a search (``lat``/``lon`` or ``q``)
                                 and return the first render
* ``GET /flights/session.json``  current view, route patches included

A search returns as soon as the ranked list exists; route enrichment keeps
running in the background and shows up in later ``session.json`` polls.
Serve with ``uvicorn flightfinder.main:app``.
"""

from __future__ import annotations

# ─── Std-lib / third-party ────────────────────────────────────────────
import logging
import sys
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

# ─── Project modules ──────────────────────────────────────────────────
from .config import load_config
from .errors import FetchError, LocationError, LocationErrorKind
from .search_service import SearchOrchestrator, SearchSession, SearchStatus
from .session_store import SessionStore

# ─── Logging ──────────────────────────────────────────────────────────
LOG = logging.getLogger("api")

_handler = logging.StreamHandler(sys.stdout)
_handler.setFormatter(logging.Formatter("%(levelname)s:     %(name)s - %(message)s"))
for _name in (
    "api",
    "config",
    "search",
    "session_store",
    "location_service",
    "enrichment",
    "flight_service",
    "route_service",
    "extapi",
):
    _logger = logging.getLogger(_name)
    _logger.addHandler(_handler)
    _logger.setLevel(logging.INFO)

# ---------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------
load_dotenv()
CONFIG = load_config()

# One live search at a time; a new request supersedes the previous one.
store = SessionStore()
orchestrator = SearchOrchestrator(store, CONFIG)

limiter = Limiter(key_func=get_remote_address)


def _status_code(session: SearchSession) -> int:
    """Map a failed session onto an HTTP status."""
    exc = session.failure
    if isinstance(exc, LocationError):
        return 400 if exc.kind is LocationErrorKind.INVALID_INPUT else 503
    if isinstance(exc, FetchError):
        return 502
    return 500


# ---------------------------------------------------------------------
# Lifespan – stop background enrichment on shutdown
# ---------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: N802 – FastAPI naming style
    config = orchestrator.config
    LOG.info(
        "[init] radius=%g mi delay=%.2fs correlate_by=%s",
        config.radius_miles,
        config.enrichment_delay_s,
        config.correlation_key,
    )
    if config.correlation_key == "icao24":
        LOG.info(
            "[init] route patches match cards by icao24, not callsign; "
            "set CORRELATION_KEY=callsign for per-callsign matching"
        )
    yield
    orchestrator.cancel()
    await orchestrator.wait_for_enrichment()


# ---------------------------------------------------------------------
# FastAPI instance & middleware
# ---------------------------------------------------------------------
app = FastAPI(title="Nearby Flights", lifespan=lifespan)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Return 429 when rate limit is exceeded."""
    return JSONResponse(
        status_code=429,
        content={"detail": "Rate limit exceeded. Try again later."},
    )


ALLOWED_ORIGINS = [
    "http://localhost:8090",
    "http://127.0.0.1:8090",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)


# Health probe --------------------------------------------------------
@app.get("/healthz", response_class=PlainTextResponse)
async def healthz() -> PlainTextResponse:
    """Return HTTP 200 with body “ok” if the app is up."""
    return PlainTextResponse("ok", status_code=200)


# ---------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------
@app.get("/flights/nearby.json")
@limiter.limit("20/minute")
async def nearby_flights(
    request: Request,
    lat: str | None = Query(None),
    lon: str | None = Query(None),
    q: str | None = Query(None),
) -> JSONResponse:
    """
    Search around typed coordinates (``lat`` & ``lon``) or a place (``q``).

    The payload is the session snapshot at ``enriching_routes`` time: every
    card is present, routes still read “Loading route...”.
    """
    if q is not None and q.strip():
        session = await orchestrator.search_place(q)
    elif lat is not None and lon is not None:
        session = await orchestrator.search_manual_location(lat, lon)
    else:
        return JSONResponse(
            {"detail": "Provide either lat and lon, or q."}, status_code=400
        )

    payload: dict[str, Any] = store.snapshot()
    if session.status is SearchStatus.ERROR:
        return JSONResponse(jsonable_encoder(payload), status_code=_status_code(session))
    return JSONResponse(jsonable_encoder(payload))


@app.get("/flights/session.json")
async def current_session() -> JSONResponse:
    """Latest snapshot; poll it to watch route patches arrive."""
    return JSONResponse(jsonable_encoder(store.snapshot()))

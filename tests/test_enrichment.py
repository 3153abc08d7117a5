"""
tests/test_enrichment.py
~~~~~~~~~~~~~~~~~~~~~~~~
Sequential, throttled route enrichment:

1. failed lookups are skipped, emitted patches keep input order;
2. the delay follows every attempt;
3. a stale generation or ``cancel()`` stops the run for good.

Route lookups are replaced by an in-test coroutine so no HTTP is made.
"""

from __future__ import annotations

import asyncio
import time

import pytest

from flightfinder.config import SearchConfig
from flightfinder.enrichment import EnrichmentPipeline, EnrichmentState, RoutePatch
from flightfinder.errors import EnrichmentItemError
from flightfinder.flight_service import normalize_state
from flightfinder.geo import Coordinate
from flightfinder.proximity import rank_nearby

DELAY = 0.05


@pytest.fixture
def ranked(state_vector):
    vectors = [
        state_vector("aaa111", "FIRST", lat=40.1, lon=-74.0),
        state_vector("bbb222", "SECOND", lat=40.2, lon=-74.0),
        state_vector("ccc333", "THIRD", lat=40.3, lon=-74.0),
    ]
    states = [normalize_state(v) for v in vectors]
    return rank_nearby(states, Coordinate(40.0, -74.0), 100.0)


def _lookup(routes: dict, calls: list | None = None):
    async def _fake(_client, icao24: str):
        if calls is not None:
            calls.append((icao24, time.monotonic()))
        outcome = routes.get(icao24)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return _fake


async def test_failed_item_is_skipped_and_order_kept(ranked) -> None:
    patches: list[tuple[RoutePatch, float]] = []
    calls: list = []
    routes = {
        "aaa111": ("KBOS", "KJFK"),
        "bbb222": EnrichmentItemError("bbb222", "HTTP 500"),
        "ccc333": ("KEWR", "KLAX"),
    }
    pipeline = EnrichmentPipeline(
        ranked,
        lambda p: patches.append((p, time.monotonic())),
        generation=1,
        is_current=lambda g: True,
        config=SearchConfig(enrichment_delay_s=DELAY),
        lookup=_lookup(routes, calls),
    )

    started = time.monotonic()
    state = await pipeline.run()
    elapsed = time.monotonic() - started

    assert state is EnrichmentState.COMPLETED
    assert [p.key for p, _ in patches] == ["aaa111", "ccc333"]
    assert [c[0] for c in calls] == ["aaa111", "bbb222", "ccc333"]
    assert patches[1][1] - patches[0][1] >= DELAY
    # three lookups, three pauses
    assert elapsed >= 3 * DELAY
    assert pipeline.emitted == 2
    assert pipeline.failed == 1


async def test_patch_mutates_only_route_fields(ranked) -> None:
    patches: list[RoutePatch] = []
    before = [dict(f) for f in ranked]
    pipeline = EnrichmentPipeline(
        ranked,
        patches.append,
        generation=3,
        is_current=lambda g: True,
        config=SearchConfig(enrichment_delay_s=0),
        lookup=_lookup({"aaa111": ("N/A", "KSFO")}),
    )

    await pipeline.run()

    (patch,) = patches
    assert patch.generation == 3
    assert patch.key_field == "icao24"
    assert (patch.origin, patch.destination) == ("N/A", "KSFO")
    assert patch.flight is ranked[0]
    assert ranked[0] == {**before[0], "origin": "N/A", "destination": "KSFO"}
    assert ranked[1] == before[1]
    assert [f["icao24"] for f in ranked] == ["aaa111", "bbb222", "ccc333"]


async def test_unexpected_lookup_error_is_contained(ranked) -> None:
    patches: list[RoutePatch] = []
    pipeline = EnrichmentPipeline(
        ranked,
        patches.append,
        generation=1,
        is_current=lambda g: True,
        config=SearchConfig(enrichment_delay_s=0),
        lookup=_lookup({"aaa111": KeyError("boom"), "ccc333": ("A", "B")}),
    )

    assert await pipeline.run() is EnrichmentState.COMPLETED
    assert [p.key for p in patches] == ["ccc333"]


async def test_callsign_correlation(ranked) -> None:
    patches: list[RoutePatch] = []
    pipeline = EnrichmentPipeline(
        ranked,
        patches.append,
        generation=1,
        is_current=lambda g: True,
        config=SearchConfig(enrichment_delay_s=0, correlation_key="callsign"),
        lookup=_lookup({"bbb222": ("X", "Y")}),
    )

    await pipeline.run()

    assert [(p.key_field, p.key) for p in patches] == [("callsign", "SECOND")]


async def test_stale_generation_suppresses_emits(ranked) -> None:
    current = {"generation": 1}
    patches: list[RoutePatch] = []

    async def _slow(_client, icao24):
        # a newer search starts while the first lookup is in flight
        current["generation"] = 2
        return ("KBOS", "KJFK")

    pipeline = EnrichmentPipeline(
        ranked,
        patches.append,
        generation=1,
        is_current=lambda g: g == current["generation"],
        config=SearchConfig(enrichment_delay_s=0),
        lookup=_slow,
    )

    assert await pipeline.run() is EnrichmentState.CANCELLED
    assert patches == []
    assert "origin" not in ranked[0]


async def test_cancel_stops_background_task(ranked) -> None:
    patches: list[RoutePatch] = []
    pipeline = EnrichmentPipeline(
        ranked,
        patches.append,
        generation=1,
        is_current=lambda g: True,
        config=SearchConfig(enrichment_delay_s=DELAY),
        lookup=_lookup({k: ("A", "B") for k in ("aaa111", "bbb222", "ccc333")}),
    )

    task = pipeline.start()
    assert pipeline.state is EnrichmentState.NOT_STARTED
    await asyncio.sleep(DELAY / 2)
    pipeline.cancel()
    await asyncio.sleep(DELAY * 3)

    assert task.done()
    assert pipeline.state is EnrichmentState.CANCELLED
    assert len(patches) <= 1

    # terminal states are final
    pipeline.cancel()
    assert pipeline.state is EnrichmentState.CANCELLED
    with pytest.raises(RuntimeError):
        pipeline.start()


async def test_start_returns_immediately(ranked) -> None:
    gate = asyncio.Event()

    async def _blocked(_client, _icao24):
        await gate.wait()
        return None

    pipeline = EnrichmentPipeline(
        ranked,
        lambda p: None,
        generation=1,
        is_current=lambda g: True,
        config=SearchConfig(enrichment_delay_s=0),
        lookup=_blocked,
    )

    task = pipeline.start()
    await asyncio.sleep(0)
    assert not task.done()
    assert pipeline.state is EnrichmentState.RUNNING

    gate.set()
    assert await task is EnrichmentState.COMPLETED


async def test_listener_error_does_not_stop_run(ranked) -> None:
    seen: list[str] = []

    def _emit(patch: RoutePatch) -> None:
        seen.append(patch.key)
        if patch.key == "aaa111":
            raise RuntimeError("render failed")

    pipeline = EnrichmentPipeline(
        ranked,
        _emit,
        generation=1,
        is_current=lambda g: True,
        config=SearchConfig(enrichment_delay_s=0),
        lookup=_lookup({"aaa111": ("A", "B"), "bbb222": ("C", "D")}),
    )

    assert await pipeline.run() is EnrichmentState.COMPLETED
    assert seen == ["aaa111", "bbb222"]
    assert pipeline.emitted == 1

"""
api_logging.py
~~~~~~~~~~~~~~
One concise log line per outbound OpenSky request.

Usage example
-------------
>>> async with httpx.AsyncClient() as cli:
...     resp = await logged_request_async(cli, "get", STATES_URL,
...                                       params=box_params)

The helper never raises for HTTP status codes: both callers turn a non-2xx
answer into their own error type (:class:`~flightfinder.errors.FetchError`
for the state vectors, :class:`~flightfinder.errors.EnrichmentItemError`
for route lookups).  Transport errors are logged and re-raised untouched.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

LOG = logging.getLogger("extapi")


def _describe(url: str, params: Any) -> str:
    """URL with its query string, as OpenSky will see it."""
    if not params:
        return url
    return str(httpx.URL(url, params=params))


async def logged_request_async(
    client: Any,
    method: str,
    url: str,
    *args: Any,
    **kwargs: Any,
):
    """
    Await one request on *client* and log verb, URL, status and latency.

    Parameters
    ----------
    client:
        ``httpx.AsyncClient`` (or anything with awaitable verb methods).
    method:
        HTTP verb, e.g. ``"get"``.
    url:
        Absolute URL; ``params=`` are folded into the logged URL.

    Returns
    -------
    httpx.Response

    Notes
    -----
    * 2xx → *DEBUG*; route lookups fire once per aircraft and would
      otherwise flood the log.
    * 404 → *INFO*; OpenSky answers 404 when an aircraft has no recorded
      flights in the window.
    * other 4xx / 5xx → *WARNING*.
    """
    verb = method.upper()
    shown = _describe(url, kwargs.get("params"))
    t0 = time.perf_counter()
    try:
        response = await getattr(client, method.lower())(url, *args, **kwargs)
    except Exception as exc:
        latency_ms = (time.perf_counter() - t0) * 1000.0
        LOG.warning("FAIL %s %s %.0f ms %s", verb, shown, latency_ms, exc)
        raise

    latency_ms = (time.perf_counter() - t0) * 1000.0
    code = response.status_code

    if 200 <= code < 300:
        LOG.debug("%s %s → %s (%.0f ms)", verb, shown, code, latency_ms)
    elif code == 404:
        LOG.info("%s %s → 404 (%.0f ms)", verb, shown, latency_ms)
    else:
        LOG.warning("%s %s → %s (%.0f ms)", verb, shown, code, latency_ms)

    return response


__all__ = ["logged_request_async"]

"""
tests/integration/conftest.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Live OpenSky / Nominatim checks - skipped unless INTEGRATION_TESTS=1.

Usage:
    # Unit tests only (default, CI-safe)
    pytest -q

    # Live APIs
    INTEGRATION_TESTS=1 pytest tests/integration/ -v
"""

from __future__ import annotations

import os
import time
from typing import Generator

import pytest

from flightfinder.config import SearchConfig


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip every live-API test unless INTEGRATION_TESTS=1."""
    if os.getenv("INTEGRATION_TESTS"):
        return

    skip_marker = pytest.mark.skip(
        reason="Integration tests disabled (set INTEGRATION_TESTS=1 to enable)"
    )
    for item in items:
        if "integration" in str(item.path):
            item.add_marker(skip_marker)


@pytest.fixture
def rate_limiter() -> Generator[None, None, None]:
    """Pause after each test; Nominatim allows 1 req/s, OpenSky throttles too."""
    yield
    time.sleep(1.0)


@pytest.fixture
def live_config() -> SearchConfig:
    """Production endpoints with generous timeouts for slow networks."""
    return SearchConfig(flight_fetch_timeout_s=30.0, route_timeout_s=30.0)

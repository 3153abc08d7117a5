"""
tests/integration/
~~~~~~~~~~~~~~~~~~
Checks against the live OpenSky and Nominatim services.

Skipped by default. To run them:

    INTEGRATION_TESTS=1 pytest tests/integration/ -v

Rate limits:
- OpenSky: anonymous callers are throttled hard - avoid in CI
- Nominatim: 1 req/sec - enforced by the RateLimiter in location_service
"""

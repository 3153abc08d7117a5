"""
errors.py
~~~~~~~~~
Exception taxonomy for the search pipeline.

* :class:`LocationError` and :class:`InvalidInputError` abort a search
  during the *locating* stage.
* :class:`FetchError` aborts a search while fetching the state vectors.
* :class:`EnrichmentItemError` only ever reaches the enrichment loop, which
  logs it and moves on to the next aircraft.
"""

from __future__ import annotations

import enum


class FlightFinderError(Exception):
    """Base class; ``str(exc)`` is always safe to show to a user."""


class LocationErrorKind(str, enum.Enum):
    UNSUPPORTED = "unsupported"
    PERMISSION_DENIED = "permission_denied"
    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"
    INVALID_INPUT = "invalid_input"


class InvalidInputReason(str, enum.Enum):
    OUT_OF_RANGE = "out_of_range"
    NOT_A_NUMBER = "not_a_number"


class FetchErrorKind(str, enum.Enum):
    HTTP_STATUS = "http_status"
    PARSE_FAILURE = "parse_failure"
    TRANSPORT = "transport"


class LocationError(FlightFinderError):
    def __init__(self, kind: LocationErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class InvalidInputError(LocationError):
    """Manually typed coordinates could not be used."""

    def __init__(self, reason: InvalidInputReason, message: str) -> None:
        super().__init__(LocationErrorKind.INVALID_INPUT, message)
        self.reason = reason


class FetchError(FlightFinderError):
    def __init__(
        self,
        kind: FetchErrorKind,
        message: str,
        *,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


class EnrichmentItemError(FlightFinderError):
    """Route lookup failed for one aircraft."""

    def __init__(self, icao24: str, message: str) -> None:
        super().__init__(message)
        self.icao24 = icao24


__all__ = [
    "EnrichmentItemError",
    "FetchError",
    "FetchErrorKind",
    "FlightFinderError",
    "InvalidInputError",
    "InvalidInputReason",
    "LocationError",
    "LocationErrorKind",
]

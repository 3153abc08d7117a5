"""Locate airborne aircraft near a point and enrich them with route data."""

__version__ = "0.1.0"

# backend/flightfinder/constants.py

"""
Global constants shared by the outbound HTTP helpers: one User-Agent string
and the sentinels used when a data source leaves a field blank.
"""

USER_AGENT = "nearby-flights/1.0 (+https://github.com/nearby-flights/nearby-flights)"

#: Callsign shown when the transponder sends none (or only blanks)
UNKNOWN_CALLSIGN = "Unknown"

#: Airport code used when a route record lacks a departure/arrival estimate
UNKNOWN_AIRPORT = "N/A"

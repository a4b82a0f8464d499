"""
Flight lookup module.

FlightLookup is the interface the watchlist sync engine resolves tracked
flights through; HttpFlightLookup talks to the flight data service.
"""
from .base import FlightLookup
from .http_lookup import HttpFlightLookup

__all__ = ["FlightLookup", "HttpFlightLookup"]

"""
Flight lookup error classifications.

Every failure of a single flight lookup maps onto one of these exceptions.
The watchlist view only distinguishes resolved from unresolved entries, but
the concrete class is kept on the entry for diagnostics.
"""

from typing import Optional, Dict, Any


class FlightLookupError(Exception):
    """Base class for failures resolving a flight reference."""

    kind = "lookup_failed"

    def __init__(self, message: str, flight_number: Optional[str] = None,
                 date: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.flight_number = flight_number
        self.date = date
        self.context = context or {}
        self.recoverable = False


class FlightNotFoundError(FlightLookupError):
    """No flight matched the requested number and date."""

    kind = "not_found"


class TransientLookupError(FlightLookupError):
    """Network or upstream trouble; safe to retry on the next manual refresh."""

    kind = "transient"

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.recoverable = True


class NetworkError(TransientLookupError):
    """The request never produced an HTTP response."""


class LookupTimeoutError(TransientLookupError):
    """The lookup did not finish within the configured timeout."""

    kind = "timeout"

    def __init__(self, message: str, timeout_seconds: Optional[float] = None,
                 **kwargs):
        super().__init__(message, **kwargs)
        self.timeout_seconds = timeout_seconds


class UpstreamUnavailableError(TransientLookupError):
    """The flight data service answered 502/503."""

    kind = "upstream_unavailable"

    def __init__(self, message: str, status_code: Optional[int] = None,
                 **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class BadRequestError(FlightLookupError):
    """The flight data service rejected the request parameters."""

    kind = "bad_request"

    def __init__(self, message: str, status_code: Optional[int] = 400,
                 **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class DecodeFailureError(FlightLookupError):
    """The response body could not be decoded into flight records."""

    kind = "decode_failure"

    def __init__(self, message: str, raw_data: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data

"""HTTP flight lookup against the flight data service."""

import asyncio
import socket
from typing import Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlparse
from urllib.request import Request, urlopen

from ..config.defaults import LookupParams
from ..data.parsers import decode_flight_payload, parse_flight_records
from ..errors import (
    BadRequestError,
    FlightLookupError,
    NetworkError,
    UpstreamUnavailableError,
)
from ..logging.config import get_logger
from ..models.flight import FlightSnapshot, normalize_flight_number
from .base import FlightLookup


class HttpFlightLookup(FlightLookup):
    """
    Flight lookup over HTTP.

    Requests ``GET {base_url}/flights/{number}[/{date}][?single=true]`` and
    expects a JSON array of flight records. The blocking request runs in a
    worker thread so lookups can be awaited concurrently.
    """

    def __init__(self, params: Optional[LookupParams] = None):
        self.params = params or LookupParams()
        self.logger = get_logger("flightwatch.lookup.http")

        parsed = urlparse(self.params.base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"Invalid base URL: {self.params.base_url}")

    def build_url(self, flight_number: str, date: Optional[str] = None,
                  single: bool = False) -> str:
        """Build the request URL for a flight search."""
        number = quote(normalize_flight_number(flight_number))
        url = f"{self.params.base_url.rstrip('/')}/flights/{number}"
        if date:
            url = f"{url}/{quote(date)}"
            if single:
                url = f"{url}?single=true"
        return url

    async def search(
        self,
        flight_number: str,
        date: Optional[str] = None,
        single: bool = False
    ) -> list[FlightSnapshot]:
        if not flight_number or not flight_number.strip():
            raise BadRequestError("Missing required parameters", status_code=None)

        url = self.build_url(flight_number, date, single)
        body = await asyncio.to_thread(self._fetch, url, flight_number, date)
        records = decode_flight_payload(body)
        snapshots = parse_flight_records(records)

        self.logger.debug(
            "Flight search completed",
            flight_number=flight_number,
            date=date,
            single=single,
            records=len(records),
            usable=len(snapshots)
        )
        return snapshots

    def _fetch(self, url: str, flight_number: str, date: Optional[str]) -> bytes:
        """Perform the blocking HTTP request and map failures onto lookup errors."""
        headers = {
            "Accept": "application/json",
            "User-Agent": self.params.user_agent,
        }
        req = Request(url, headers=headers, method="GET")

        try:
            with urlopen(req, timeout=self.params.timeout_seconds) as response:
                return response.read()

        except HTTPError as e:
            self.logger.warning(
                "Flight lookup HTTP error",
                url=url,
                error_code=e.code,
                error_reason=str(e.reason)
            )
            raise self._error_for_status(e.code, flight_number, date) from e

        except (OSError, URLError, socket.timeout) as e:
            self.logger.warning(
                "Flight lookup network error",
                url=url,
                error=str(e)
            )
            raise NetworkError(
                f"Network error: {e}",
                flight_number=flight_number,
                date=date
            ) from e

    @staticmethod
    def _error_for_status(status_code: int, flight_number: str,
                          date: Optional[str]) -> FlightLookupError:
        if status_code == 400:
            return BadRequestError(
                "Bad Request - Missing or invalid parameters",
                flight_number=flight_number, date=date
            )
        if status_code == 502:
            return UpstreamUnavailableError(
                "Invalid response from aviation API",
                status_code=502, flight_number=flight_number, date=date
            )
        if status_code == 503:
            return UpstreamUnavailableError(
                "Failed to fetch flight data from external API",
                status_code=503, flight_number=flight_number, date=date
            )
        if status_code >= 500:
            return UpstreamUnavailableError(
                f"HTTP {status_code}: Request failed",
                status_code=status_code, flight_number=flight_number, date=date
            )
        return BadRequestError(
            f"HTTP {status_code}: Request failed",
            status_code=status_code, flight_number=flight_number, date=date
        )

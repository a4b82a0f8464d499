"""Base interface for flight lookups."""

from abc import ABC, abstractmethod
from typing import Optional

from ..models.flight import FlightSnapshot


class FlightLookup(ABC):
    """Resolves a flight number (and optional date) into flight snapshots."""

    @abstractmethod
    async def search(
        self,
        flight_number: str,
        date: Optional[str] = None,
        single: bool = False
    ) -> list[FlightSnapshot]:
        """
        Search for a flight.

        Args:
            flight_number: Flight number, e.g. "AS25"
            date: Optional local departure date, YYYY-MM-DD
            single: Ask for only the flight departing on ``date``

        Returns:
            Matching snapshots, possibly empty

        Raises:
            FlightLookupError: On bad requests, upstream or decode failures
        """
        pass

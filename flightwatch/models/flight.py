"""
Flight data models for the watchlist.

This module defines immutable data structures for tracked flight references,
resolved flight snapshots and the per-entry watchlist results.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..utils.time import extract_date, normalize_date


class FlightStatus(str, Enum):
    """Closed set of flight statuses shown on the watchlist."""
    SCHEDULED = "scheduled"
    DEPARTED = "departed"
    DELAYED = "delayed"
    DISRUPTED = "disrupted"    # Diverted or canceled
    ARRIVED = "arrived"
    UNKNOWN = "unknown"


_STATUS_ALIASES = {
    "expected": FlightStatus.SCHEDULED,
    "scheduled": FlightStatus.SCHEDULED,
    "checkin": FlightStatus.SCHEDULED,
    "boarding": FlightStatus.SCHEDULED,
    "gateclosed": FlightStatus.SCHEDULED,
    "enroute": FlightStatus.DEPARTED,
    "departed": FlightStatus.DEPARTED,
    "approaching": FlightStatus.DEPARTED,
    "delayed": FlightStatus.DELAYED,
    "canceled": FlightStatus.DISRUPTED,
    "cancelled": FlightStatus.DISRUPTED,
    "canceleduncertain": FlightStatus.DISRUPTED,
    "diverted": FlightStatus.DISRUPTED,
    "arrived": FlightStatus.ARRIVED,
    "landed": FlightStatus.ARRIVED,
}


def classify_status(raw: Optional[str]) -> FlightStatus:
    """
    Map an upstream status string onto FlightStatus.

    Matching ignores case, spaces, dashes and underscores. Anything not
    recognized maps to UNKNOWN.
    """
    if not isinstance(raw, str):
        return FlightStatus.UNKNOWN
    key = raw.strip().lower().replace(" ", "").replace("-", "").replace("_", "")
    return _STATUS_ALIASES.get(key, FlightStatus.UNKNOWN)


def normalize_flight_number(flight_number: str) -> str:
    """Strip spaces and upper-case a flight number ("aa 123" -> "AA123")."""
    if not isinstance(flight_number, str):
        raise ValueError("Flight number must be a string")
    cleaned = flight_number.replace(" ", "").strip().upper()
    if not cleaned:
        raise ValueError("Flight number cannot be empty")
    return cleaned


def _new_ref_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class TrackedFlightRef:
    """
    A flight the user wants to track.

    Identity is ``(flight_number, date)``; ``id`` is a surrogate for UI
    diffing and does not take part in equality.
    """

    flight_number: str
    date: str                                         # Local departure date, YYYY-MM-DD
    id: str = field(default_factory=_new_ref_id, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "flight_number", normalize_flight_number(self.flight_number))
        object.__setattr__(self, "date", normalize_date(self.date))

    @property
    def key(self) -> tuple[str, str]:
        """Identity tuple used for de-duplication and result lookup."""
        return (self.flight_number, self.date)

    def to_dict(self) -> dict:
        return {"id": self.id, "flightNumber": self.flight_number, "date": self.date}

    @classmethod
    def from_dict(cls, data: dict) -> "TrackedFlightRef":
        kwargs = {"flight_number": data["flightNumber"], "date": data["date"]}
        if data.get("id"):
            kwargs["id"] = str(data["id"])
        return cls(**kwargs)


@dataclass(frozen=True)
class TimeInfo:
    local: Optional[str] = None
    utc: Optional[str] = None


@dataclass(frozen=True)
class AirportInfo:
    iata: Optional[str] = None
    icao: Optional[str] = None
    name: Optional[str] = None
    short_name: Optional[str] = None
    municipality_name: Optional[str] = None
    country_code: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    time_zone: Optional[str] = None


@dataclass(frozen=True)
class FlightEndpoint:
    """One end of a flight (departure or arrival)."""

    airport: AirportInfo = field(default_factory=AirportInfo)
    scheduled_time: TimeInfo = field(default_factory=TimeInfo)
    revised_time: TimeInfo = field(default_factory=TimeInfo)
    predicted_time: TimeInfo = field(default_factory=TimeInfo)
    runway_time: TimeInfo = field(default_factory=TimeInfo)
    terminal: Optional[str] = None
    gate: Optional[str] = None


@dataclass(frozen=True)
class LivePosition:
    """Last reported position of an airborne flight."""

    lat: float
    lon: float
    altitude_ft: Optional[float] = None
    ground_speed_kt: Optional[float] = None
    track_deg: Optional[float] = None
    reported_at_utc: Optional[str] = None


@dataclass(frozen=True)
class AircraftInfo:
    model: Optional[str] = None
    reg: Optional[str] = None


@dataclass(frozen=True)
class FlightSnapshot:
    """Resolved state of a flight at a point in time."""

    number: str
    airline: str
    departure: FlightEndpoint
    arrival: FlightEndpoint
    status: FlightStatus = FlightStatus.UNKNOWN
    raw_status: Optional[str] = None
    call_sign: Optional[str] = None
    airline_iata: Optional[str] = None
    airline_icao: Optional[str] = None
    position: Optional[LivePosition] = None
    aircraft: AircraftInfo = field(default_factory=AircraftInfo)
    distance_km: Optional[float] = None
    last_updated_utc: Optional[str] = None
    is_cargo: Optional[bool] = None
    codeshare_status: Optional[str] = None

    @property
    def departure_date(self) -> Optional[str]:
        """Local scheduled departure date, the date a flight is tracked under."""
        return extract_date(self.departure.scheduled_time.local)

    @property
    def has_live_position(self) -> bool:
        return self.position is not None


@dataclass(frozen=True)
class WatchlistEntry:
    """
    A tracked reference paired with its resolution outcome.

    ``snapshot`` and ``error`` are mutually exclusive. An entry with neither
    has not been resolved yet.
    """

    ref: TrackedFlightRef
    snapshot: Optional[FlightSnapshot] = None
    error: Optional[Exception] = None

    def __post_init__(self) -> None:
        if self.snapshot is not None and self.error is not None:
            raise ValueError("WatchlistEntry cannot carry both a snapshot and an error")

    @property
    def ok(self) -> bool:
        return self.snapshot is not None

    @property
    def pending(self) -> bool:
        return self.snapshot is None and self.error is None

    @property
    def error_kind(self) -> Optional[str]:
        """Short classification of the failure, e.g. "not_found" or "timeout"."""
        if self.error is None:
            return None
        return getattr(self.error, "kind", "unexpected")

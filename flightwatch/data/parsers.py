"""
Parsers converting flight data service payloads into FlightSnapshot objects.

The service returns a JSON array of flight records. Every field of a record
is optional upstream; a record is usable only when it names the flight
number, the airline and both endpoint airports.
"""

import json
from typing import Any, Optional

from ..errors import DecodeFailureError
from ..models.flight import (
    AircraftInfo,
    AirportInfo,
    FlightEndpoint,
    FlightSnapshot,
    LivePosition,
    TimeInfo,
    classify_status,
)


class ParseError(Exception):
    """Raised when a single flight record cannot be turned into a snapshot."""
    pass


class MissingFieldError(ParseError):
    """Raised when a required record field is absent."""

    def __init__(self, field_name: str):
        super().__init__(f"Flight record is missing required field '{field_name}'")
        self.field_name = field_name


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_time(raw: Any) -> TimeInfo:
    data = _as_dict(raw)
    return TimeInfo(local=_as_str(data.get("local")), utc=_as_str(data.get("utc")))


def _parse_airport(raw: Any) -> AirportInfo:
    data = _as_dict(raw)
    location = _as_dict(data.get("location"))
    return AirportInfo(
        iata=_as_str(data.get("iata")),
        icao=_as_str(data.get("icao")),
        name=_as_str(data.get("name")),
        short_name=_as_str(data.get("shortName")),
        municipality_name=_as_str(data.get("municipalityName")),
        country_code=_as_str(data.get("countryCode")),
        lat=_as_float(location.get("lat")),
        lon=_as_float(location.get("lon")),
        time_zone=_as_str(data.get("timeZone")),
    )


def parse_endpoint(raw: Any) -> FlightEndpoint:
    """Parse a departure or arrival block."""
    data = _as_dict(raw)
    return FlightEndpoint(
        airport=_parse_airport(data.get("airport")),
        scheduled_time=_parse_time(data.get("scheduledTime")),
        revised_time=_parse_time(data.get("revisedTime")),
        predicted_time=_parse_time(data.get("predictedTime")),
        runway_time=_parse_time(data.get("runwayTime")),
        terminal=_as_str(data.get("terminal")),
        gate=_as_str(data.get("gate")),
    )


def parse_position(raw: Any) -> Optional[LivePosition]:
    """Parse the live location block; None when absent or without coordinates."""
    data = _as_dict(raw)
    lat = _as_float(data.get("lat"))
    lon = _as_float(data.get("lon"))
    if lat is None or lon is None:
        return None

    return LivePosition(
        lat=lat,
        lon=lon,
        altitude_ft=_as_float(_as_dict(data.get("altitude")).get("feet")),
        ground_speed_kt=_as_float(_as_dict(data.get("groundSpeed")).get("kt")),
        track_deg=_as_float(_as_dict(data.get("trueTrack")).get("deg")),
        reported_at_utc=_as_str(data.get("reportedAtUtc")),
    )


def parse_flight_record(record: Any) -> FlightSnapshot:
    """
    Convert one upstream flight record into a FlightSnapshot.

    Args:
        record: Decoded JSON object for one flight

    Returns:
        FlightSnapshot

    Raises:
        ParseError: If the record is not an object or lacks required fields
    """
    if not isinstance(record, dict):
        raise ParseError(f"Flight record must be an object, got {type(record).__name__}")

    number = _as_str(record.get("number"))
    if not number:
        raise MissingFieldError("number")

    airline = _as_dict(record.get("airline"))
    airline_name = _as_str(airline.get("name"))
    if not airline_name:
        raise MissingFieldError("airline.name")

    departure = parse_endpoint(record.get("departure"))
    if not departure.airport.iata:
        raise MissingFieldError("departure.airport.iata")

    arrival = parse_endpoint(record.get("arrival"))
    if not arrival.airport.iata:
        raise MissingFieldError("arrival.airport.iata")

    aircraft = _as_dict(record.get("aircraft"))
    raw_status = _as_str(record.get("status"))
    is_cargo = record.get("isCargo")

    return FlightSnapshot(
        number=number,
        airline=airline_name,
        departure=departure,
        arrival=arrival,
        status=classify_status(raw_status),
        raw_status=raw_status,
        call_sign=_as_str(record.get("callSign")),
        airline_iata=_as_str(airline.get("iata")),
        airline_icao=_as_str(airline.get("icao")),
        position=parse_position(record.get("location")),
        aircraft=AircraftInfo(
            model=_as_str(aircraft.get("model")),
            reg=_as_str(aircraft.get("reg")),
        ),
        distance_km=_as_float(_as_dict(record.get("greatCircleDistance")).get("km")),
        last_updated_utc=_as_str(record.get("lastUpdatedUtc")),
        is_cargo=is_cargo if isinstance(is_cargo, bool) else None,
        codeshare_status=_as_str(record.get("codeshareStatus")),
    )


def parse_flight_records(records: list[Any]) -> list[FlightSnapshot]:
    """
    Convert a list of records, skipping the ones that cannot be parsed.

    Unusable records are dropped rather than failing the whole response,
    matching how the search results are rendered.
    """
    snapshots = []
    for record in records:
        try:
            snapshots.append(parse_flight_record(record))
        except ParseError:
            continue
    return snapshots


def decode_flight_payload(body: "bytes | str") -> list[Any]:
    """
    Decode a response body into a list of raw flight records.

    Raises:
        DecodeFailureError: If the body is not a JSON array
    """
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeFailureError(f"Response is not valid UTF-8: {e}") from e

    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        raise DecodeFailureError(
            f"Failed to decode response: {e}", raw_data=body[:200]
        ) from e

    if not isinstance(payload, list):
        raise DecodeFailureError(
            "Expected a JSON array of flight records",
            raw_data=body[:200]
        )

    return payload

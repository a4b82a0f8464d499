"""Tests for flight record parsing."""

import pytest

from flightwatch.data.parsers import (
    MissingFieldError,
    ParseError,
    decode_flight_payload,
    parse_flight_record,
    parse_flight_records,
    parse_position,
)
from flightwatch.errors import DecodeFailureError
from flightwatch.models.flight import FlightStatus


class TestParseFlightRecord:
    """Test converting one service record into a snapshot."""

    def test_full_record(self, make_record):
        """Test every mapped field of a complete record."""
        snapshot = parse_flight_record(make_record("AA100", "2025-10-05", status="Arrived"))

        assert snapshot.number == "AA100"
        assert snapshot.airline == "Test Airlines"
        assert snapshot.airline_iata == "AA"
        assert snapshot.status == FlightStatus.ARRIVED
        assert snapshot.raw_status == "Arrived"
        assert snapshot.departure.airport.iata == "LAX"
        assert snapshot.departure.airport.lat == 33.9425
        assert snapshot.departure.terminal == "4"
        assert snapshot.departure.scheduled_time.local == "2025-10-05 06:38-07:00"
        assert snapshot.arrival.airport.iata == "JFK"
        assert snapshot.aircraft.model == "Airbus A321"
        assert snapshot.distance_km == 3974.2
        assert snapshot.is_cargo is False
        assert snapshot.departure_date == "2025-10-05"
        assert snapshot.position is None

    @pytest.mark.parametrize("missing, field_name", [
        ("number", "number"),
        ("airline", "airline.name"),
        ("departure", "departure.airport.iata"),
        ("arrival", "arrival.airport.iata"),
    ])
    def test_required_fields(self, make_record, missing, field_name):
        """Test records lacking a required field are rejected."""
        record = make_record()
        del record[missing]

        with pytest.raises(MissingFieldError) as exc_info:
            parse_flight_record(record)

        assert exc_info.value.field_name == field_name

    def test_non_object_record(self):
        """Test non-dict records are rejected."""
        with pytest.raises(ParseError):
            parse_flight_record(["AA100"])

    def test_missing_status_is_unknown(self, make_record):
        """Test an absent status classifies as unknown."""
        assert parse_flight_record(make_record(status=None)).status == FlightStatus.UNKNOWN

    def test_wrongly_typed_optional_fields_ignored(self, make_record):
        """Test bad optional values degrade to None instead of failing."""
        record = make_record(isCargo="no", greatCircleDistance={"km": "far"}, aircraft="A321")

        snapshot = parse_flight_record(record)

        assert snapshot.is_cargo is None
        assert snapshot.distance_km is None
        assert snapshot.aircraft.model is None


class TestParsePosition:
    """Test live position parsing."""

    def test_full_position(self):
        """Test altitude, speed and track are read from nested blocks."""
        position = parse_position({
            "lat": 40.1,
            "lon": -100.2,
            "altitude": {"feet": 35000},
            "groundSpeed": {"kt": 450},
            "trueTrack": {"deg": 87},
            "reportedAtUtc": "2025-06-01 15:00Z",
        })

        assert position.lat == 40.1
        assert position.altitude_ft == 35000.0
        assert position.ground_speed_kt == 450.0
        assert position.track_deg == 87.0
        assert position.reported_at_utc == "2025-06-01 15:00Z"

    def test_without_coordinates(self):
        """Test a block without lat/lon yields no position."""
        assert parse_position({"altitude": {"feet": 35000}}) is None
        assert parse_position(None) is None

    def test_position_attached_to_snapshot(self, make_record):
        """Test a record's location block becomes the live position."""
        snapshot = parse_flight_record(make_record(location={"lat": 1.0, "lon": 2.0}))

        assert snapshot.has_live_position


class TestBatchParsing:
    """Test decoding and parsing whole responses."""

    def test_unusable_records_skipped(self, make_record):
        """Test one bad record does not fail the response."""
        snapshots = parse_flight_records([make_record("AA1"), {"number": "BB2"}, make_record("CC3")])

        assert [s.number for s in snapshots] == ["AA1", "CC3"]

    def test_decode_array(self):
        """Test a JSON array body decodes to its records."""
        assert decode_flight_payload(b'[{"number": "AA1"}]') == [{"number": "AA1"}]
        assert decode_flight_payload("[]") == []

    @pytest.mark.parametrize("body", [b"<html>", b'{"number": "AA1"}', b"\xff\xfe"])
    def test_decode_failures(self, body):
        """Test bodies that are not JSON arrays raise DecodeFailureError."""
        with pytest.raises(DecodeFailureError):
            decode_flight_payload(body)

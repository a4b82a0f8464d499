"""
Error classification tests.

Covers the lookup, entitlement and persistence error hierarchies and the
attributes callers rely on for diagnostics.
"""

import pytest

from flightwatch.errors import (
    BadRequestError,
    DecodeFailureError,
    EntitlementError,
    EntitlementRequiredError,
    FlightLookupError,
    FlightNotFoundError,
    LookupTimeoutError,
    NetworkError,
    NothingToRestoreError,
    PersistenceError,
    PurchasePendingError,
    PurchaseUnverifiedError,
    TransientLookupError,
    UpstreamUnavailableError,
)


class TestLookupErrors:
    """Test lookup error classification."""

    def test_base_error_context(self):
        """Test the base error carries flight identity and context."""
        error = FlightLookupError("failed", flight_number="AA1", date="2025-06-01",
                                  context={"attempt": 1})

        assert str(error) == "failed"
        assert error.flight_number == "AA1"
        assert error.date == "2025-06-01"
        assert error.context == {"attempt": 1}
        assert error.recoverable is False

    @pytest.mark.parametrize("error", [
        NetworkError("down"),
        LookupTimeoutError("slow", timeout_seconds=15.0),
        UpstreamUnavailableError("503", status_code=503),
    ])
    def test_transient_errors_are_recoverable(self, error):
        """Test network, timeout and upstream failures are transient."""
        assert isinstance(error, TransientLookupError)
        assert isinstance(error, FlightLookupError)
        assert error.recoverable is True

    @pytest.mark.parametrize("error", [
        FlightNotFoundError("none"),
        BadRequestError("bad"),
        DecodeFailureError("garbled", raw_data="<html>"),
    ])
    def test_permanent_errors_are_not_recoverable(self, error):
        """Test not-found, bad request and decode failures are permanent."""
        assert not isinstance(error, TransientLookupError)
        assert error.recoverable is False

    def test_specific_attributes(self):
        """Test subclass specific attributes are kept."""
        assert LookupTimeoutError("slow", timeout_seconds=2.0).timeout_seconds == 2.0
        assert UpstreamUnavailableError("x", status_code=502).status_code == 502
        assert BadRequestError("x").status_code == 400
        assert DecodeFailureError("x", raw_data="abc").raw_data == "abc"


class TestEntitlementErrors:
    """Test entitlement error classification."""

    def test_hierarchy(self):
        """Test all entitlement errors share a base class and a kind."""
        for error in (PurchaseUnverifiedError("x"), PurchasePendingError("x"),
                      NothingToRestoreError("x"), EntitlementRequiredError("x")):
            assert isinstance(error, EntitlementError)
            assert error.kind != EntitlementError.kind

    def test_attributes(self):
        """Test product, transaction and action details are kept."""
        unverified = PurchaseUnverifiedError("x", transaction_id="t1", product_id="p1")
        required = EntitlementRequiredError("x", action="track")

        assert unverified.transaction_id == "t1"
        assert unverified.product_id == "p1"
        assert required.action == "track"
        assert required.context == {}


class TestPersistenceError:
    """Test persistence errors."""

    def test_attributes(self):
        """Test operation and target are kept."""
        error = PersistenceError("disk full", operation="save", target="/tmp/x.json")

        assert error.operation == "save"
        assert error.target == "/tmp/x.json"
        assert error.recoverable is False

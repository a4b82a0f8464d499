"""Pytest configuration and shared fixtures."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from flightwatch.data.parsers import parse_flight_record
from flightwatch.entitlement.provider import PurchaseProvider
from flightwatch.lookup.base import FlightLookup
from flightwatch.models.entitlement import (
    Product,
    PurchaseOutcome,
    PurchaseResult,
    TransactionUpdate,
)
from flightwatch.models.flight import FlightSnapshot
from flightwatch.persistence.kv_store import MemoryStore

WEEKLY_ID = "subscription.flightwatch.weekly"
YEARLY_ID = "subscription.flightwatch.yearly"


def build_flight_record(
    number: str = "AA100",
    date: str = "2025-06-01",
    status: Optional[str] = "Expected",
    departure_iata: str = "LAX",
    arrival_iata: str = "JFK",
    **extra: Any
) -> Dict[str, Any]:
    """Flight record shaped like the flight data service response."""
    record = {
        "number": number,
        "callSign": f"{number[:2]}L{number[2:]}",
        "status": status,
        "codeshareStatus": "IsOperator",
        "isCargo": False,
        "lastUpdatedUtc": f"{date} 12:58Z",
        "greatCircleDistance": {"km": 3974.2},
        "airline": {"name": "Test Airlines", "iata": number[:2], "icao": "TST"},
        "aircraft": {"model": "Airbus A321", "reg": "N123AA"},
        "departure": {
            "airport": {
                "iata": departure_iata,
                "icao": "KLAX",
                "name": "Los Angeles",
                "timeZone": "America/Los_Angeles",
                "location": {"lat": 33.9425, "lon": -118.408},
            },
            "scheduledTime": {"utc": f"{date} 13:38Z", "local": f"{date} 06:38-07:00"},
            "terminal": "4",
            "gate": "42A",
        },
        "arrival": {
            "airport": {"iata": arrival_iata, "icao": "KJFK", "name": "New York JFK"},
            "scheduledTime": {"utc": f"{date} 21:50Z", "local": f"{date} 17:50-04:00"},
        },
    }
    record.update(extra)
    return record


def build_snapshot(number: str = "AA100", date: str = "2025-06-01", **kwargs: Any) -> FlightSnapshot:
    return parse_flight_record(build_flight_record(number=number, date=date, **kwargs))


class FakeFlightLookup(FlightLookup):
    """Scriptable lookup: per-flight results, errors and delays."""

    def __init__(self) -> None:
        self.results: Dict[str, List[FlightSnapshot]] = {}
        self.errors: Dict[str, Exception] = {}
        self.delays: Dict[str, float] = {}
        self.calls: List[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def set_result(self, flight_number: str, *snapshots: FlightSnapshot) -> None:
        self.results[flight_number] = list(snapshots)

    def set_error(self, flight_number: str, error: Exception) -> None:
        self.errors[flight_number] = error

    def set_delay(self, flight_number: str, seconds: float) -> None:
        self.delays[flight_number] = seconds

    async def search(
        self,
        flight_number: str,
        date: Optional[str] = None,
        single: bool = False
    ) -> List[FlightSnapshot]:
        self.calls.append((flight_number, date, single))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(flight_number, 0))
            if flight_number in self.errors:
                raise self.errors[flight_number]
            return list(self.results.get(flight_number, []))
        finally:
            self.in_flight -= 1


class FakePurchaseProvider(PurchaseProvider):
    """
    Scriptable purchase provider.

    ``push_update`` feeds the transaction stream; pushing an exception makes
    the stream raise it and pushing None ends the stream.
    """

    def __init__(self) -> None:
        self.catalog = [
            Product(id=WEEKLY_ID, display_name="3-Day Trial", display_price="$4.99",
                    price=4.99, has_intro_trial=True),
            Product(id=YEARLY_ID, display_name="Yearly Plan", display_price="$39.99",
                    price=39.99),
        ]
        self.purchase_results: Dict[str, PurchaseResult] = {}
        self.entitlements: List[TransactionUpdate] = []
        self.list_error: Optional[Exception] = None
        self.purchase_error: Optional[Exception] = None
        self.restore_error: Optional[Exception] = None
        self.entitlements_error: Optional[Exception] = None
        self.purchase_calls: List[Product] = []
        self.restore_calls = 0
        self._updates: asyncio.Queue = asyncio.Queue()

    async def list_products(self, product_ids: List[str]) -> List[Product]:
        if self.list_error is not None:
            raise self.list_error
        return [p for p in self.catalog if p.id in product_ids]

    async def purchase(self, product: Product) -> PurchaseResult:
        self.purchase_calls.append(product)
        if self.purchase_error is not None:
            raise self.purchase_error
        return self.purchase_results.get(
            product.id, PurchaseResult(outcome=PurchaseOutcome.CANCELLED)
        )

    async def restore_purchases(self) -> None:
        self.restore_calls += 1
        if self.restore_error is not None:
            raise self.restore_error

    async def current_entitlements(self) -> List[TransactionUpdate]:
        if self.entitlements_error is not None:
            raise self.entitlements_error
        return list(self.entitlements)

    async def transaction_updates(self):
        while True:
            item = await self._updates.get()
            if item is None:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    def push_update(self, item) -> None:
        self._updates.put_nowait(item)

    def verified_purchase(self, product_id: str, transaction_id: str) -> None:
        self.purchase_results[product_id] = PurchaseResult(
            outcome=PurchaseOutcome.VERIFIED,
            transaction_id=transaction_id,
            product_id=product_id,
        )

    async def wait_idle(self) -> None:
        """Let the listener consume everything pushed so far."""
        while not self._updates.empty():
            await asyncio.sleep(0)
        await asyncio.sleep(0)


@pytest.fixture
def make_record():
    """Factory for raw flight service records."""
    return build_flight_record


@pytest.fixture
def make_snapshot():
    """Factory for parsed flight snapshots."""
    return build_snapshot


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def fake_lookup() -> FakeFlightLookup:
    return FakeFlightLookup()


@pytest.fixture
def fake_provider() -> FakePurchaseProvider:
    return FakePurchaseProvider()

#!/usr/bin/env python3
"""
Basic Usage Example - flightwatch

This script walks through one session with in-memory collaborators:
- Search for a flight with the free quota
- Hit the subscription gate
- Purchase the yearly plan
- Track flights and refresh the watchlist

Run: python examples/basic_usage.py
"""

import asyncio
import uuid
from typing import Dict, List, Optional

from flightwatch.app import FlightWatchApp
from flightwatch.data.parsers import parse_flight_record
from flightwatch.entitlement.provider import PurchaseProvider
from flightwatch.errors import EntitlementRequiredError
from flightwatch.logging import configure_logging
from flightwatch.lookup.base import FlightLookup
from flightwatch.models.entitlement import (
    Product,
    PurchaseOutcome,
    PurchaseResult,
    TransactionUpdate,
)
from flightwatch.models.flight import FlightSnapshot
from flightwatch.persistence.kv_store import MemoryStore


def create_flight_record(number: str, date: str, status: str) -> Dict:
    """Create a flight record in the flight data service format."""
    return {
        "number": number,
        "status": status,
        "airline": {"name": "Demo Air", "iata": number[:2]},
        "departure": {
            "airport": {"iata": "SFO", "name": "San Francisco"},
            "scheduledTime": {"local": f"{date} 08:15-07:00", "utc": f"{date} 15:15Z"},
        },
        "arrival": {
            "airport": {"iata": "SEA", "name": "Seattle"},
            "scheduledTime": {"local": f"{date} 10:20-07:00", "utc": f"{date} 17:20Z"},
        },
    }


class DemoFlightLookup(FlightLookup):
    """Serves canned flights after a short simulated latency."""

    def __init__(self, records: List[Dict]):
        self.records = records

    async def search(self, flight_number: str, date: Optional[str] = None,
                     single: bool = False) -> List[FlightSnapshot]:
        await asyncio.sleep(0.1)
        matches = [r for r in self.records if r["number"] == flight_number]
        if date:
            matches = [r for r in matches if r["departure"]["scheduledTime"]["local"].startswith(date)]
        return [parse_flight_record(r) for r in matches]


class DemoPurchaseProvider(PurchaseProvider):
    """Approves every purchase immediately."""

    def __init__(self):
        self.owned: List[TransactionUpdate] = []
        self.updates: asyncio.Queue = asyncio.Queue()

    async def list_products(self, product_ids: List[str]) -> List[Product]:
        return [
            Product(id="subscription.flightwatch.weekly", display_name="3-Day Trial",
                    display_price="$4.99", price=4.99, has_intro_trial=True),
            Product(id="subscription.flightwatch.yearly", display_name="Yearly Plan",
                    display_price="$39.99", price=39.99),
        ]

    async def purchase(self, product: Product) -> PurchaseResult:
        transaction_id = uuid.uuid4().hex
        self.owned.append(TransactionUpdate(transaction_id, product.id, verified=True))
        return PurchaseResult(PurchaseOutcome.VERIFIED, transaction_id, product.id)

    async def restore_purchases(self) -> None:
        pass

    async def current_entitlements(self) -> List[TransactionUpdate]:
        return list(self.owned)

    async def transaction_updates(self):
        while True:
            yield await self.updates.get()


def print_watchlist(app: FlightWatchApp) -> None:
    for entry in app.watchlist():
        ref = entry.ref
        if entry.ok:
            print(f"  ✈️  {ref.flight_number} {ref.date}: {entry.snapshot.status.value} "
                  f"({entry.snapshot.departure.airport.iata} → {entry.snapshot.arrival.airport.iata})")
        elif entry.pending:
            print(f"  ⏳ {ref.flight_number} {ref.date}: loading")
        else:
            print(f"  ❌ {ref.flight_number} {ref.date}: {entry.error_kind}")


async def main():
    print("🚀 flightwatch - Basic Usage Example")
    print("=" * 50)

    configure_logging(level="WARNING")

    lookup = DemoFlightLookup([
        create_flight_record("DA100", "2025-06-01", "EnRoute"),
        create_flight_record("DA200", "2025-06-01", "Delayed"),
    ])
    provider = DemoPurchaseProvider()

    async with FlightWatchApp(lookup, provider, MemoryStore()) as app:
        print("\n🔍 Free search for DA100...")
        results = await app.search_flights("DA100")
        print(f"  Found {len(results)} flight(s)")

        print("\n🔍 Second search for DA200...")
        try:
            await app.search_flights("DA200")
        except EntitlementRequiredError as e:
            print(f"  🔒 {e}")

        print("\n💳 Purchasing the yearly plan...")
        await app.entitlement.purchase("subscription.flightwatch.yearly")
        print(f"  Entitled: {app.entitlement.is_entitled}")

        print("\n📌 Tracking flights...")
        app.track_flight(results[0])
        app.track_flight((await app.search_flights("DA200"))[0])
        print_watchlist(app)

        print("\n🔄 Refreshing watchlist...")
        await app.refresh_watchlist()
        print_watchlist(app)

    print("\n✅ Example completed")


if __name__ == "__main__":
    asyncio.run(main())

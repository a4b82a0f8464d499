"""
Application coordinator.

Wires the stores, the watchlist sync engine and the entitlement engine
together and applies subscription gating to user actions:

Search -> free quota gate -> lookup
Track  -> entitlement gate -> watchlist -> refresh
"""

from pathlib import Path
from typing import Optional

from .config.defaults import AppConfig, get_default_config
from .config.loader import ConfigLoader
from .entitlement.engine import EntitlementEngine
from .entitlement.provider import PurchaseProvider
from .errors import EntitlementRequiredError, UpstreamUnavailableError
from .logging.config import configure_logging, get_logger
from .lookup.base import FlightLookup
from .lookup.http_lookup import HttpFlightLookup
from .models.flight import FlightSnapshot, TrackedFlightRef, WatchlistEntry
from .persistence.entitlement_store import EntitlementStore
from .persistence.kv_store import JsonFileStore, KeyValueStore
from .persistence.watchlist_store import WatchlistStore
from .sync.engine import WatchlistSyncEngine

logger = get_logger(__name__)


class FlightWatchApp:
    """
    Composition root for a flightwatch session.

    Collaborators are injected so tests and alternative front ends can swap
    the flight lookup, purchase provider and key-value store.
    """

    def __init__(
        self,
        lookup: FlightLookup,
        provider: PurchaseProvider,
        kv_store: KeyValueStore,
        config: Optional[AppConfig] = None
    ) -> None:
        self.config = config or get_default_config()
        self.logger = logger

        self.lookup = lookup
        self.watchlist_store = WatchlistStore(kv_store, self.config.storage.watchlist_key)
        self.entitlement_store = EntitlementStore(kv_store, self.config.storage.entitlement_key)

        self.sync = WatchlistSyncEngine(self.watchlist_store, lookup, self.config.sync)
        self.entitlement = EntitlementEngine(
            self.entitlement_store, provider, self.config.entitlement
        )

        self.logger.info(
            "Flightwatch app initialized",
            tracked=len(self.watchlist_store),
            max_concurrency=self.config.sync.max_concurrency
        )

    @classmethod
    def from_config(
        cls,
        provider: PurchaseProvider,
        config_dir: Optional[Path] = None,
        overrides: Optional[dict] = None
    ) -> "FlightWatchApp":
        """
        Build an app backed by the HTTP flight service and file storage.

        Configuration is read from ``config_dir/settings.yaml`` merged over
        the defaults, then ``overrides``.
        """
        config = ConfigLoader.create(config_dir).build(overrides)
        configure_logging(level=config.logging.level, format_json=config.logging.format_json)

        return cls(
            lookup=HttpFlightLookup(config.lookup),
            provider=provider,
            kv_store=JsonFileStore(config.storage.data_dir),
            config=config,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, refresh: bool = True) -> None:
        """Start entitlement tracking and optionally refresh the watchlist."""
        await self.entitlement.start()
        if refresh and len(self.watchlist_store):
            await self.sync.refresh_all()

    async def stop(self) -> None:
        await self.entitlement.stop()

    async def __aenter__(self) -> "FlightWatchApp":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def search_flights(
        self,
        flight_number: str,
        date: Optional[str] = None
    ) -> list[FlightSnapshot]:
        """
        Search for every flight operating as ``flight_number``.

        Uses one free action unless the user is entitled. The action is only
        counted when the lookup succeeds. An unavailable upstream (HTTP 503)
        is reported as no results.

        Raises:
            EntitlementRequiredError: Free quota exhausted and not entitled
            FlightLookupError: The lookup failed
        """
        if not self.entitlement.reserve_free_action():
            raise EntitlementRequiredError(
                "Subscribe to search for more flights.", action="search"
            )

        try:
            results = await self.lookup.search(flight_number, date, single=False)
        except UpstreamUnavailableError as e:
            self.entitlement.release_free_action()
            if e.status_code != 503:
                raise
            self.logger.warning(
                "Flight service unavailable, returning no results",
                flight_number=flight_number,
                date=date
            )
            return []
        except BaseException:
            self.entitlement.release_free_action()
            raise

        self.entitlement.commit_free_action()
        self.logger.info("Flight search completed", flight_number=flight_number, date=date, results=len(results))
        return results

    def track_flight(self, snapshot: FlightSnapshot) -> bool:
        """
        Add the flight shown in ``snapshot`` to the watchlist.

        The tracked date is the snapshot's local scheduled departure date.
        Tracking an already-tracked flight succeeds without a second entry.

        Returns:
            True once the flight is on the watchlist

        Raises:
            ValueError: The snapshot has no scheduled local departure
            EntitlementRequiredError: Tracking is gated and not allowed
        """
        date = snapshot.departure_date
        if date is None:
            raise ValueError(f"Flight {snapshot.number} has no scheduled departure date")

        ref = TrackedFlightRef(flight_number=snapshot.number, date=date)
        if self.watchlist_store.find(ref) is not None:
            self.logger.info("Flight already tracked", flight_number=ref.flight_number, date=date)
            return True

        if self.config.entitlement.require_entitlement_to_track:
            allowed = self.entitlement.is_entitled
        else:
            allowed = self.entitlement.consume_free_action()

        if not allowed:
            raise EntitlementRequiredError(
                "Subscribe to track flights.", action="track"
            )

        self.sync.add(ref, snapshot)
        return True

    def untrack(self, index: int) -> TrackedFlightRef:
        """Remove the flight at ``index`` of the displayed watchlist."""
        return self.sync.remove(index)

    async def refresh_watchlist(self) -> list[WatchlistEntry]:
        return await self.sync.refresh_all()

    def watchlist(self) -> list[WatchlistEntry]:
        return self.sync.entries()

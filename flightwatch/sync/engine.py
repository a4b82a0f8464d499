"""
Watchlist synchronization engine.

Resolves every tracked flight reference against the flight lookup
concurrently and reports one WatchlistEntry per reference, in reference
order. A failing or slow lookup only affects its own entry.
"""

import asyncio
import dataclasses
import threading
import time
from datetime import datetime
from typing import Callable, Iterable, Optional

from ..config.defaults import SyncParams
from ..errors import FlightLookupError, FlightNotFoundError, LookupTimeoutError
from ..logging.config import get_sync_logger
from ..lookup.base import FlightLookup
from ..models.flight import FlightSnapshot, TrackedFlightRef, WatchlistEntry
from ..persistence.watchlist_store import WatchlistStore
from ..utils.time import utc_now
from .notifier import ChangeNotifier

sync_logger = get_sync_logger(__name__)


def pin_to_date(snapshots: list[FlightSnapshot], date: str) -> Optional[FlightSnapshot]:
    """
    Pick the snapshot that departs (local scheduled time) on ``date``.

    Codeshares and multi-leg numbers can return several flights for one
    number. A lone result without a scheduled local departure is accepted,
    since there is nothing to disambiguate.

    Returns:
        The matching snapshot, or None if no flight departs on ``date``
    """
    for snapshot in snapshots:
        if snapshot.departure_date == date:
            return snapshot

    if len(snapshots) == 1 and snapshots[0].departure_date is None:
        return snapshots[0]

    return None


class WatchlistSyncEngine:
    """
    Owns the resolved state of the watchlist.

    Resolved entries are cached by ref identity ``(flight_number, date)``
    rather than by position, so removing a flight can never shift another
    flight's data onto the wrong row.
    """

    def __init__(
        self,
        store: WatchlistStore,
        lookup: FlightLookup,
        params: Optional[SyncParams] = None
    ) -> None:
        self.store = store
        self.lookup = lookup
        self.params = params or SyncParams()
        self.logger = sync_logger
        self.notifier: ChangeNotifier[list[WatchlistEntry]] = ChangeNotifier("watchlist")

        self._results: dict[tuple[str, str], WatchlistEntry] = {}
        self.last_refreshed_at: Optional[datetime] = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh_all(
        self,
        refs: Optional[Iterable[TrackedFlightRef]] = None
    ) -> list[WatchlistEntry]:
        """
        Resolve ``refs`` (default: the stored watchlist) concurrently.

        Result index ``i`` always corresponds to ``refs[i]`` no matter which
        lookup finishes first. Failures become error entries; the batch
        itself never fails and nothing is retried.

        Args:
            refs: References to resolve, in display order

        Returns:
            One WatchlistEntry per ref, in input order
        """
        targets = list(refs) if refs is not None else self.store.refs()
        started = time.monotonic()

        if not targets:
            self._apply([])
            self.last_refreshed_at = utc_now()
            return []

        semaphore = asyncio.Semaphore(self.params.max_concurrency)

        async def resolve_bounded(ref: TrackedFlightRef) -> WatchlistEntry:
            async with semaphore:
                return await self._resolve(ref)

        entries = list(await asyncio.gather(*(resolve_bounded(ref) for ref in targets)))

        self._apply(entries)
        self.last_refreshed_at = utc_now()

        failed = sum(1 for entry in entries if not entry.ok)
        self.logger.info(
            "Watchlist refreshed",
            total=len(entries),
            resolved=len(entries) - failed,
            failed=failed,
            max_concurrency=self.params.max_concurrency,
            elapsed_ms=int((time.monotonic() - started) * 1000),
            refreshed_at=self.last_refreshed_at.isoformat()
        )
        return entries

    async def refresh_one(self, ref: TrackedFlightRef) -> WatchlistEntry:
        """Resolve a single ref and update its cached entry."""
        entry = await self._resolve(ref)
        self._apply([entry], replace_all=False)
        return entry

    async def _resolve(self, ref: TrackedFlightRef) -> WatchlistEntry:
        """Resolve one ref, folding every failure into an error entry."""
        try:
            snapshot = await self._lookup_pinned(ref)
        except FlightLookupError as e:
            self.logger.warning(
                "Flight lookup failed",
                flight_number=ref.flight_number,
                date=ref.date,
                error_kind=e.kind,
                recoverable=e.recoverable,
                error=str(e)
            )
            return WatchlistEntry(ref=ref, error=e)
        except Exception as e:
            self.logger.error(
                "Unexpected flight lookup failure",
                flight_number=ref.flight_number,
                date=ref.date,
                error_type=type(e).__name__,
                error=str(e)
            )
            return WatchlistEntry(ref=ref, error=e)

        self.logger.debug(
            "Flight resolved",
            flight_number=ref.flight_number,
            date=ref.date,
            status=snapshot.status.value,
            has_live_position=snapshot.has_live_position
        )
        return WatchlistEntry(ref=ref, snapshot=snapshot)

    async def _lookup_pinned(self, ref: TrackedFlightRef) -> FlightSnapshot:
        timeout = self.params.lookup_timeout_seconds
        try:
            snapshots = await asyncio.wait_for(
                self.lookup.search(ref.flight_number, ref.date, single=True),
                timeout=timeout
            )
        except asyncio.TimeoutError as e:
            raise LookupTimeoutError(
                f"Lookup timed out after {timeout}s",
                timeout_seconds=timeout,
                flight_number=ref.flight_number,
                date=ref.date
            ) from e

        snapshot = pin_to_date(list(snapshots or []), ref.date)
        if snapshot is None:
            raise FlightNotFoundError(
                f"No flight {ref.flight_number} departing on {ref.date}",
                flight_number=ref.flight_number,
                date=ref.date,
                context={"candidates": len(snapshots or [])}
            )
        return snapshot

    def _apply(self, entries: list[WatchlistEntry], replace_all: bool = True) -> None:
        """
        Swap resolved entries into the cache in one step and notify.

        Only refs still present in the store are cached, so a flight removed
        while its lookup was in flight does not come back.
        """
        stored_keys = {ref.key for ref in self.store.refs()}

        with self._lock:
            if replace_all:
                results = {key: entry for key, entry in self._results.items() if key in stored_keys}
            else:
                results = dict(self._results)
            for entry in entries:
                if entry.ref.key in stored_keys:
                    results[entry.ref.key] = entry
            self._results = results

        self.notifier.publish(self.entries())

    # ------------------------------------------------------------------
    # Watchlist mutation
    # ------------------------------------------------------------------

    def add(self, ref: TrackedFlightRef, snapshot: Optional[FlightSnapshot] = None) -> bool:
        """
        Track ``ref`` unless an identical ref is already tracked.

        Args:
            ref: Reference to track
            snapshot: Already resolved data for the ref (e.g. a search result)

        Returns:
            True if the ref was inserted, False if it was already tracked
        """
        inserted = self.store.add(ref)

        if snapshot is not None:
            stored = self.store.find(ref) or ref
            with self._lock:
                self._results[ref.key] = WatchlistEntry(ref=stored, snapshot=snapshot)

        if inserted or snapshot is not None:
            self.notifier.publish(self.entries())
        return inserted

    def remove(self, index: int) -> TrackedFlightRef:
        """
        Stop tracking the flight at ``index`` of the displayed list.

        Raises:
            IndexError: If ``index`` is out of range
        """
        removed = self.store.remove_at(index)
        with self._lock:
            self._results.pop(removed.key, None)

        self.notifier.publish(self.entries())
        return removed

    def remove_ref(self, ref: TrackedFlightRef) -> bool:
        """Stop tracking ``ref`` by identity; False if it was not tracked."""
        removed = self.store.remove(ref)
        with self._lock:
            self._results.pop(ref.key, None)

        if removed:
            self.notifier.publish(self.entries())
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def entries(self) -> list[WatchlistEntry]:
        """
        The watchlist as displayed: one entry per stored ref, in store order.

        Refs that have not been resolved yet appear as pending entries.
        """
        refs = self.store.refs()
        with self._lock:
            results = self._results

        entries = []
        for ref in refs:
            entry = results.get(ref.key)
            if entry is None:
                entries.append(WatchlistEntry(ref=ref))
            elif entry.ref.id != ref.id:
                entries.append(dataclasses.replace(entry, ref=ref))
            else:
                entries.append(entry)
        return entries

    def entry_for(self, ref: TrackedFlightRef) -> Optional[WatchlistEntry]:
        """Cached entry for ``ref``'s identity, if it has been resolved."""
        with self._lock:
            return self._results.get(ref.key)

    def subscribe(self, callback: Callable[[list[WatchlistEntry]], None]) -> Callable[[], None]:
        """Register for watchlist change notifications."""
        return self.notifier.subscribe(callback)

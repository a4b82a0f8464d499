"""Durable, ordered list of tracked flight references."""

import json
import threading
from typing import Optional

from ..errors import PersistenceError
from ..logging.config import get_logger
from ..models.flight import TrackedFlightRef
from .kv_store import KeyValueStore

DEFAULT_WATCHLIST_KEY = "saved_flights"


class WatchlistStore:
    """
    Single-writer store of the refs the user tracks.

    The list keeps insertion order, which is the order the watchlist is
    displayed in. Identity is ``(flight_number, date)``; adding a ref that is
    already present is a no-op. Every mutation is written through to the
    key-value store as a JSON array of ``{id, flightNumber, date}``.
    """

    def __init__(self, kv_store: KeyValueStore, key: str = DEFAULT_WATCHLIST_KEY):
        self.kv_store = kv_store
        self.key = key
        self.logger = get_logger("flightwatch.persistence.watchlist")
        self._lock = threading.Lock()
        self._refs: list[TrackedFlightRef] = self._load()

    def _load(self) -> list[TrackedFlightRef]:
        """Load persisted refs, degrading to an empty list on any failure."""
        try:
            blob = self.kv_store.load(self.key)
        except PersistenceError as e:
            self.logger.warning("Failed to read saved flights, starting empty", error=str(e))
            return []

        if blob is None:
            self.logger.info("No saved flights found")
            return []

        try:
            raw_items = json.loads(blob)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            self.logger.warning("Failed to decode saved flights, starting empty", error=str(e))
            return []

        if not isinstance(raw_items, list):
            self.logger.warning(
                "Saved flights blob is not a list, starting empty",
                blob_type=type(raw_items).__name__
            )
            return []

        refs: list[TrackedFlightRef] = []
        seen: set[tuple[str, str]] = set()
        for item in raw_items:
            try:
                ref = TrackedFlightRef.from_dict(item)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                self.logger.warning("Skipping unreadable saved flight", item=item, error=str(e))
                continue
            if ref.key in seen:
                continue
            seen.add(ref.key)
            refs.append(ref)

        self.logger.info("Loaded saved flights", count=len(refs))
        return refs

    def _persist(self) -> None:
        blob = json.dumps([ref.to_dict() for ref in self._refs]).encode("utf-8")
        self.kv_store.save(self.key, blob)
        self.logger.debug("Saved flights persisted", count=len(self._refs))

    def refs(self) -> list[TrackedFlightRef]:
        """Snapshot of the tracked refs in display order."""
        with self._lock:
            return list(self._refs)

    def __len__(self) -> int:
        with self._lock:
            return len(self._refs)

    def contains(self, flight_number: str, date: str) -> bool:
        candidate = TrackedFlightRef(flight_number=flight_number, date=date)
        return self.find(candidate) is not None

    def find(self, ref: TrackedFlightRef) -> Optional[TrackedFlightRef]:
        """Return the stored ref with the same identity as ``ref``."""
        with self._lock:
            for stored in self._refs:
                if stored.key == ref.key:
                    return stored
        return None

    def add(self, ref: TrackedFlightRef) -> bool:
        """
        Append ``ref`` unless a ref with the same identity is stored.

        Returns:
            True if the ref was inserted, False if it was already tracked
        """
        with self._lock:
            if any(stored.key == ref.key for stored in self._refs):
                self.logger.info(
                    "Flight already tracked",
                    flight_number=ref.flight_number,
                    date=ref.date
                )
                return False

            self._refs.append(ref)
            try:
                self._persist()
            except PersistenceError:
                self._refs.pop()
                raise

        self.logger.info(
            "Flight tracked",
            flight_number=ref.flight_number,
            date=ref.date,
            total=len(self._refs)
        )
        return True

    def remove_at(self, index: int) -> TrackedFlightRef:
        """
        Remove the ref at ``index``.

        Raises:
            IndexError: If ``index`` is out of range
        """
        with self._lock:
            if not 0 <= index < len(self._refs):
                raise IndexError(f"Watchlist index {index} out of range (size {len(self._refs)})")
            removed = self._pop_locked(index)

        self.logger.info(
            "Flight untracked",
            flight_number=removed.flight_number,
            date=removed.date,
            index=index
        )
        return removed

    def remove(self, ref: TrackedFlightRef) -> bool:
        """Remove the ref with the same identity as ``ref``; False if absent."""
        with self._lock:
            for index, stored in enumerate(self._refs):
                if stored.key == ref.key:
                    removed = self._pop_locked(index)
                    break
            else:
                return False

        self.logger.info(
            "Flight untracked",
            flight_number=removed.flight_number,
            date=removed.date,
            index=index
        )
        return True

    def _pop_locked(self, index: int) -> TrackedFlightRef:
        removed = self._refs.pop(index)
        try:
            self._persist()
        except PersistenceError:
            self._refs.insert(index, removed)
            raise
        return removed

    def clear(self) -> None:
        with self._lock:
            previous = self._refs
            self._refs = []
            try:
                self._persist()
            except PersistenceError:
                self._refs = previous
                raise

        self.logger.info("Watchlist cleared", removed=len(previous))

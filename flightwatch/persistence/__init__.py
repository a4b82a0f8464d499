"""
Persistence module.

Key-value backends plus the two single-writer stores built on them: the
ordered watchlist of tracked flights and the entitlement record.
"""
from .entitlement_store import EntitlementStore
from .kv_store import JsonFileStore, KeyValueStore, MemoryStore
from .watchlist_store import WatchlistStore

__all__ = [
    "EntitlementStore",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "WatchlistStore",
]

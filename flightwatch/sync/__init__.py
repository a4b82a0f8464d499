"""
Watchlist synchronization module.

Resolves tracked flights concurrently with per-item failure isolation and
publishes the resulting watchlist to subscribers.
"""
from .engine import WatchlistSyncEngine, pin_to_date
from .notifier import ChangeNotifier

__all__ = ["ChangeNotifier", "WatchlistSyncEngine", "pin_to_date"]

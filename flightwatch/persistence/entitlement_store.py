"""Durable record of the best-known entitlement state."""

import json
import threading

from ..errors import PersistenceError
from ..logging.config import get_logger
from ..models.entitlement import EntitlementState
from .kv_store import KeyValueStore

DEFAULT_ENTITLEMENT_KEY = "entitlement_state"


class EntitlementStore:
    """
    Persists EntitlementState as a JSON object.

    Only the entitlement engine writes through this store. Reads never fail:
    a missing or unreadable record yields the default (free, nothing used)
    state.
    """

    def __init__(self, kv_store: KeyValueStore, key: str = DEFAULT_ENTITLEMENT_KEY):
        self.kv_store = kv_store
        self.key = key
        self.logger = get_logger("flightwatch.persistence.entitlement")
        self._lock = threading.Lock()

    def load(self) -> EntitlementState:
        """Load the persisted state, degrading to the default on failure."""
        with self._lock:
            try:
                blob = self.kv_store.load(self.key)
            except PersistenceError as e:
                self.logger.warning("Failed to read entitlement state, using default", error=str(e))
                return EntitlementState()

        if blob is None:
            return EntitlementState()

        try:
            data = json.loads(blob)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            state = EntitlementState.from_dict(data)
        except (UnicodeDecodeError, ValueError) as e:
            self.logger.warning("Failed to decode entitlement state, using default", error=str(e))
            return EntitlementState()

        self.logger.debug(
            "Entitlement state loaded",
            has_active_entitlement=state.has_active_entitlement,
            free_actions_used=state.free_actions_used,
            known_transactions=len(state.known_transaction_ids)
        )
        return state

    def save(self, state: EntitlementState) -> None:
        """
        Persist ``state``.

        Raises:
            PersistenceError: If the underlying store fails
        """
        blob = json.dumps(state.to_dict()).encode("utf-8")
        with self._lock:
            self.kv_store.save(self.key, blob)

"""
Error classification system for the flightwatch engines.

Lookup errors are captured per watchlist entry, entitlement errors are
raised to callers of purchase and restore, persistence errors surface from
the key-value store.
"""

from .lookup import (
    FlightLookupError,
    FlightNotFoundError,
    TransientLookupError,
    NetworkError,
    LookupTimeoutError,
    UpstreamUnavailableError,
    BadRequestError,
    DecodeFailureError,
)
from .entitlement import (
    EntitlementError,
    PurchaseUnverifiedError,
    PurchasePendingError,
    PurchaseFailedError,
    NothingToRestoreError,
    RestoreFailedError,
    ProductLoadError,
    UnknownProductError,
    EntitlementRequiredError,
)
from .persistence import PersistenceError

__all__ = [
    # Lookup Errors
    "FlightLookupError",
    "FlightNotFoundError",
    "TransientLookupError",
    "NetworkError",
    "LookupTimeoutError",
    "UpstreamUnavailableError",
    "BadRequestError",
    "DecodeFailureError",
    # Entitlement Errors
    "EntitlementError",
    "PurchaseUnverifiedError",
    "PurchasePendingError",
    "PurchaseFailedError",
    "NothingToRestoreError",
    "RestoreFailedError",
    "ProductLoadError",
    "UnknownProductError",
    "EntitlementRequiredError",
    # Persistence
    "PersistenceError",
]

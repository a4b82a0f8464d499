"""
Entitlement and purchase error classifications.

Raised by the entitlement engine to callers of purchase and restore so the
presentation layer can show a message. A cancelled purchase is not an error
and never raises.
"""

from typing import Optional, Dict, Any


class EntitlementError(Exception):
    """Base class for purchase, restore and gating failures."""

    kind = "entitlement_error"

    def __init__(self, message: str, product_id: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.product_id = product_id
        self.context = context or {}


class PurchaseUnverifiedError(EntitlementError):
    """The purchase completed but the provider could not verify it."""

    kind = "unverified"

    def __init__(self, message: str, transaction_id: Optional[str] = None,
                 **kwargs):
        super().__init__(message, **kwargs)
        self.transaction_id = transaction_id


class PurchasePendingError(EntitlementError):
    """The purchase awaits external approval."""

    kind = "pending"


class PurchaseFailedError(EntitlementError):
    """The provider failed to carry out the purchase."""

    kind = "purchase_failed"


class NothingToRestoreError(EntitlementError):
    """Restore succeeded but found no active entitlement."""

    kind = "nothing_to_restore"


class RestoreFailedError(EntitlementError):
    """The provider failed to sync purchases."""

    kind = "restore_failed"


class ProductLoadError(EntitlementError):
    """The product catalog could not be loaded."""

    kind = "product_load_failed"


class UnknownProductError(EntitlementError):
    """The product id is not one of the recognized subscription tiers."""

    kind = "unknown_product"


class EntitlementRequiredError(EntitlementError):
    """A gated action was attempted without entitlement or free quota."""

    kind = "entitlement_required"

    def __init__(self, message: str, action: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.action = action

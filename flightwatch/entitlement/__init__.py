"""
Entitlement module.

Decides whether the user holds a verified subscription, meters the free
tier, and keeps local state consistent with the purchase provider.
"""
from .engine import EntitlementEngine
from .products import ProductCatalog
from .provider import PurchaseProvider

__all__ = ["EntitlementEngine", "ProductCatalog", "PurchaseProvider"]

"""
Entitlement data models.

EntitlementState is the persisted record of what the user has paid for and
how much of the free tier they have used. It is immutable; the entitlement
engine replaces it on every change.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class EntitlementPhase(str, Enum):
    """Entitlement engine phases."""
    UNKNOWN = "unknown"        # Before the first load/reconcile
    FREE = "free"
    ENTITLED = "entitled"


class PurchaseOutcome(str, Enum):
    """Result kinds reported by the purchase provider."""
    VERIFIED = "verified"
    UNVERIFIED = "unverified"
    PENDING = "pending"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Product:
    """A purchasable subscription product as listed by the provider."""
    id: str
    display_name: str
    display_price: str = ""
    price: float = 0.0
    has_intro_trial: bool = False


@dataclass(frozen=True)
class TransactionUpdate:
    """A transaction event from the purchase provider."""
    transaction_id: str
    product_id: str
    verified: bool


@dataclass(frozen=True)
class PurchaseResult:
    """Outcome of a purchase request."""
    outcome: PurchaseOutcome
    transaction_id: Optional[str] = None
    product_id: Optional[str] = None

    @property
    def verified(self) -> bool:
        return self.outcome == PurchaseOutcome.VERIFIED


@dataclass(frozen=True)
class EntitlementState:
    """Persisted entitlement record."""

    has_active_entitlement: bool = False
    free_actions_used: int = 0
    known_transaction_ids: frozenset = field(default_factory=frozenset)

    def knows(self, transaction_id: str) -> bool:
        return transaction_id in self.known_transaction_ids

    def with_transaction(self, transaction_id: str) -> "EntitlementState":
        """
        Record a verified transaction and grant entitlement.

        The free-action counter resets when entitlement flips false -> true.
        """
        return EntitlementState(
            has_active_entitlement=True,
            free_actions_used=0 if not self.has_active_entitlement else self.free_actions_used,
            known_transaction_ids=self.known_transaction_ids | {transaction_id},
        )

    def with_free_action_used(self) -> "EntitlementState":
        return EntitlementState(
            has_active_entitlement=self.has_active_entitlement,
            free_actions_used=self.free_actions_used + 1,
            known_transaction_ids=self.known_transaction_ids,
        )

    def with_entitlement(self, active: bool) -> "EntitlementState":
        """Set the entitlement flag, resetting the free counter on a grant."""
        free_used = self.free_actions_used
        if active and not self.has_active_entitlement:
            free_used = 0
        return EntitlementState(
            has_active_entitlement=active,
            free_actions_used=free_used,
            known_transaction_ids=self.known_transaction_ids,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasActiveEntitlement": self.has_active_entitlement,
            "freeActionsUsed": self.free_actions_used,
            "knownTransactionIDs": sorted(self.known_transaction_ids),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EntitlementState":
        """
        Build a state from its persisted form.

        Raises:
            ValueError: If a field has the wrong type
        """
        active = data.get("hasActiveEntitlement", False)
        used = data.get("freeActionsUsed", 0)
        ids = data.get("knownTransactionIDs", [])

        if not isinstance(active, bool):
            raise ValueError(f"hasActiveEntitlement must be a boolean, got {active!r}")
        if isinstance(used, bool) or not isinstance(used, int) or used < 0:
            raise ValueError(f"freeActionsUsed must be a non-negative integer, got {used!r}")
        if not isinstance(ids, list):
            raise ValueError(f"knownTransactionIDs must be a list, got {ids!r}")

        return cls(
            has_active_entitlement=active,
            free_actions_used=used,
            known_transaction_ids=frozenset(str(i) for i in ids),
        )

"""Interface to the platform purchase provider."""

from abc import ABC, abstractmethod
from typing import AsyncIterator

from ..models.entitlement import Product, PurchaseResult, TransactionUpdate


class PurchaseProvider(ABC):
    """
    Platform store capability: catalog, purchase, restore and the stream of
    transaction updates.

    Implementations wrap the platform SDK; the entitlement engine depends
    only on this interface.
    """

    @abstractmethod
    async def list_products(self, product_ids: list[str]) -> list[Product]:
        """Fetch the purchasable products among ``product_ids``."""
        pass

    @abstractmethod
    async def purchase(self, product: Product) -> PurchaseResult:
        """
        Start a purchase of ``product``.

        Returns:
            The outcome: verified, unverified, pending or cancelled

        Raises:
            Exception: Any provider or transport failure
        """
        pass

    @abstractmethod
    async def restore_purchases(self) -> None:
        """Sync the user's purchases with the store."""
        pass

    @abstractmethod
    async def current_entitlements(self) -> list[TransactionUpdate]:
        """The latest transaction per currently active product."""
        pass

    @abstractmethod
    def transaction_updates(self) -> AsyncIterator[TransactionUpdate]:
        """
        Unbounded stream of transaction events.

        Events may be redelivered; consumers de-duplicate by transaction id.
        """
        pass

"""Recognized subscription products."""

from typing import Iterable, Optional

from ..config.defaults import EntitlementParams, ProductParams
from ..models.entitlement import Product


class ProductCatalog:
    """The configured set of product ids that grant entitlement."""

    def __init__(self, params: Optional[EntitlementParams] = None):
        self.params = params or EntitlementParams()
        self._products: dict[str, ProductParams] = {p.id: p for p in self.params.products}

    @property
    def product_ids(self) -> list[str]:
        return list(self._products)

    def is_recognized(self, product_id: Optional[str]) -> bool:
        return product_id in self._products

    def get(self, product_id: str) -> Optional[ProductParams]:
        return self._products.get(product_id)

    def sort_products(self, products: Iterable[Product]) -> list[Product]:
        """Order products for display: preferred product first, then by price."""
        preferred = self.params.preferred_product_id
        return sorted(products, key=lambda p: (p.id != preferred, p.price))

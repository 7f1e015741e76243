"""
Product Catalog Protocol — Interface for product validation and pricing.

Stockledger defines this protocol, the host catalog implements it.
Products live outside the ledger; stock records only carry their id.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class ProductInfo:
    """What the order workflow needs to know about a product."""

    product_id: int
    name: str
    price: Decimal
    is_active: bool = True
    sku: str = ''
    weight: Decimal | None = None


@runtime_checkable
class ProductCatalog(Protocol):
    """
    Protocol for product lookup.

    Implementations should return None for unknown products rather than
    raising, and report inactive products with ``is_active=False``.
    """

    def get_product(self, product_id: int) -> ProductInfo | None:
        """
        Look up a product.

        Args:
            product_id: Catalog identifier

        Returns:
            ProductInfo, or None if the product does not exist
        """
        ...

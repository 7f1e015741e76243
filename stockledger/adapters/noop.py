"""
Noop Catalog — Stub adapter for development.

This adapter implements the ProductCatalog protocol with trivial defaults:
- Every product id exists and is active
- Every product is free (price 0), so callers should pass unit prices

Usage in settings.py:
    STOCKLEDGER = {
        "PRODUCT_CATALOG": "stockledger.adapters.noop.NoopCatalog",
    }

WARNING: Do NOT use in production. It validates nothing.
"""

from __future__ import annotations

from decimal import Decimal

from stockledger.protocols.catalog import ProductInfo


class NoopCatalog:
    """No-operation catalog: every product id is valid."""

    def get_product(self, product_id: int) -> ProductInfo | None:
        return ProductInfo(
            product_id=product_id,
            name=f"Product {product_id}",
            price=Decimal('0'),
            is_active=True,
        )

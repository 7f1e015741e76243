"""
Stockledger Adapters.

Implementations of protocols for external systems.
"""

from stockledger.adapters.catalog import get_product_catalog, reset_product_catalog
from stockledger.adapters.noop import NoopCatalog

__all__ = [
    "NoopCatalog",
    "get_product_catalog",
    "reset_product_catalog",
]

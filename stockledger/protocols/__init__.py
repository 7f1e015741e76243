"""
Stockledger Protocols.

Defines interfaces for external system integration.
"""

from stockledger.protocols.catalog import ProductCatalog, ProductInfo

__all__ = [
    "ProductCatalog",
    "ProductInfo",
]

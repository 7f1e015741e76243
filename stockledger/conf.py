"""
Stockledger configuration.

Usage in settings.py:
    STOCKLEDGER = {
        "PRODUCT_CATALOG": "catalog.adapters.DjangoCatalog",
        "RESERVATION_TTL_MINUTES": 1440,
        "ALERT_DEDUP_MINUTES": 60,
        "EXPIRED_BATCH_SIZE": 200,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class StockledgerSettings:
    """Stockledger configuration settings."""

    # Product catalog backend (dotted path)
    PRODUCT_CATALOG: str = "stockledger.adapters.noop.NoopCatalog"

    # Default reservation hold in minutes (0 = no expiration)
    RESERVATION_TTL_MINUTES: int = 24 * 60

    # A pending alert of the same type inside this window suppresses new ones
    ALERT_DEDUP_MINUTES: int = 60

    # Default horizon for the expiring batches query
    EXPIRING_WITHIN_DAYS: int = 30

    # Batch size for release_expired processing
    EXPIRED_BATCH_SIZE: int = 200

    # Attempts for a mutation that loses the optimistic version check
    CONFLICT_RETRIES: int = 3

    # Initialize defaults
    DEFAULT_REORDER_LEVEL: int = 50
    DEFAULT_REORDER_QUANTITY: int = 500


def get_stockledger_settings() -> StockledgerSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "STOCKLEDGER", {})
    return StockledgerSettings(**{
        k: v for k, v in user_settings.items()
        if k in StockledgerSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_stockledger_settings(), name)


stockledger_settings = _LazySettings()

"""
Exceptions for Stockledger.

All errors are StockError with a structured code for programmatic handling.
"""

from typing import Any


class StockError(Exception):
    """
    Structured exception for ledger operations.

    Usage:
        try:
            ledger.reserve(record, order, 10)
        except StockError as e:
            if e.code == 'INSUFFICIENT_AVAILABLE':
                print(f"Only {e.available} available")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages = {
        'NOT_FOUND': 'Referenced record not found',
        'ALREADY_EXISTS': 'Stock record already exists for this product and location',
        'INSUFFICIENT_STOCK': 'Insufficient stock for the requested quantity',
        'INSUFFICIENT_AVAILABLE': 'Requested quantity is not available',
        'INVALID_ADJUSTMENT': 'Adjustment would drive on-hand quantity below zero',
        'INVALID_STATE': 'Operation would violate a non-negative quantity',
        'CONFLICT': 'Concurrent modification detected',
        'INVALID_QUANTITY': 'Quantity must be positive',
        'INVALID_STATUS': 'Invalid status for this operation',
        'REASON_REQUIRED': 'A reason is required',
        'EMPTY_ORDER': 'Order must contain at least one item',
        'PRODUCT_UNAVAILABLE': 'Product not found or inactive',
    }

    def __init__(self, code: str, message: str | None = None, **data: Any):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"StockError({self.code!r}, {self.message!r})"

    @property
    def available(self) -> int:
        """Shortcut for data['available']."""
        return self.data.get('available', 0)

    @property
    def requested(self) -> int:
        """Shortcut for data['requested']."""
        return self.data.get('requested', 0)

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {k: str(v) for k, v in self.data.items()},
        }

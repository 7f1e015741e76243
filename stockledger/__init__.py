"""
Stockledger — inventory ledger and reservation engine.

Usage:
    from stockledger import ledger, StockError

    record = ledger.initialize(1, main, initial_quantity=100, reorder_level=20)
    ledger.stock_out(record, 90, reason='sale')
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'ledger':
        from stockledger.service import Ledger
        return Ledger
    elif name == 'StockError':
        from stockledger.exceptions import StockError
        return StockError
    elif name in _MODELS:
        from stockledger import models
        return getattr(models, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


_MODELS = (
    'Location',
    'StockRecord',
    'Batch',
    'Movement',
    'Reservation',
    'Alert',
    'Order',
    'OrderItem',
    'StockStatus',
    'ReservationStatus',
    'AlertType',
    'AlertStatus',
)

__all__ = [
    'ledger',
    'StockError',
    *_MODELS,
]

__version__ = '0.1.0'

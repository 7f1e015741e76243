"""
Stockledger Models.

Core models for the inventory ledger:
- Location: Where stock is kept
- StockRecord: Quantity state per (product, location)
- Batch: Lot-level receipts with cost and expiry
- Movement: Immutable ledger of on-hand changes
- Reservation: Time-bounded holds for orders
- Alert: Deduplicated stock notifications
- Order / OrderItem: Orders placed against the ledger
"""

from stockledger.models.enums import (
    AlertStatus,
    AlertType,
    BatchStatus,
    MovementType,
    OrderStatus,
    ReservationStatus,
    StockStatus,
)
from stockledger.models.location import Location
from stockledger.models.stock_record import StockRecord
from stockledger.models.batch import Batch
from stockledger.models.order import Order, OrderItem
from stockledger.models.movement import Movement
from stockledger.models.reservation import Reservation
from stockledger.models.alert import Alert

__all__ = [
    'StockStatus',
    'BatchStatus',
    'MovementType',
    'ReservationStatus',
    'AlertType',
    'AlertStatus',
    'OrderStatus',
    'Location',
    'StockRecord',
    'Batch',
    'Movement',
    'Reservation',
    'Alert',
    'Order',
    'OrderItem',
]

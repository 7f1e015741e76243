"""
Ledger services — modular organization of ledger operations.

    from stockledger.services import StockRecords, Reservations, MovementLog, ...

The combined facade lives in stockledger.service.Ledger.
"""

from stockledger.services.alerts import Alerts
from stockledger.services.movements import MovementLog
from stockledger.services.orders import OrderLine, OrderWorkflow
from stockledger.services.queries import StockQueries
from stockledger.services.records import MovementResult, StockInResult, StockRecords
from stockledger.services.reservations import Reservations

__all__ = [
    'Alerts',
    'MovementLog',
    'MovementResult',
    'OrderLine',
    'OrderWorkflow',
    'Reservations',
    'StockInResult',
    'StockQueries',
    'StockRecords',
]

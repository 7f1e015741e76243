"""
Ledger Service — The single public interface for all ledger operations.

Usage:
    from stockledger import ledger, StockError

    record = ledger.initialize(product_id=1, location=main, initial_quantity=100,
                               reorder_level=20)
    ledger.stock_out(record, 90, reason='sale')
    reservation = ledger.reserve(record, order, 10)
    ledger.release(reservation)
"""

from stockledger.services.alerts import Alerts
from stockledger.services.movements import MovementLog
from stockledger.services.orders import OrderWorkflow
from stockledger.services.queries import StockQueries
from stockledger.services.records import StockRecords
from stockledger.services.reservations import Reservations


class Ledger(StockRecords, Reservations, MovementLog, Alerts, StockQueries, OrderWorkflow):
    """
    Single interface for all ledger operations.

    Parameter convention: (record, quantity, ...). Records, batches,
    reservations and orders may be passed as instances or primary keys.

    IMPORTANT: All state-changing methods run in atomic transactions
    scoped to one StockRecord lock. See each method's docstring.

    Sections:
    - Stock records: initialize, stock_in, stock_out, adjust, record_damage
    - Reservations: reserve, allocate, fulfill, release, cancel,
      release_for_order, release_expired
    - Movement log: history, replay, verify_chain, reconcile
    - Alerts: check_and_create_alert, scan_batches, acknowledge, resolve, ignore
    - Queries: get_record, find_record, product_records, low_stock_items,
      location_summary, expiring_batches
    - Orders: place_order, confirm_order, ship_order, cancel_order
    """

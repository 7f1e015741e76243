"""
Ledger rules — pure functions, no database, no clock.

Status derivation, alert suppression and expiry arithmetic live here so
every mutation path shares one definition and tests can pass time in.

Examples:
    derive_status(0, 20)    -> out_of_stock
    derive_status(10, 20)   -> low_stock
    derive_status(20, 20)   -> low_stock
    derive_status(21, 20)   -> in_stock
"""

import math
from datetime import datetime, timedelta

from stockledger.models.enums import AlertType, StockStatus

# Higher rank = healthier stock
_STATUS_RANK = {
    StockStatus.OUT_OF_STOCK: 0,
    StockStatus.LOW_STOCK: 1,
    StockStatus.IN_STOCK: 2,
}


def derive_status(on_hand: int, reorder_level: int) -> str:
    """
    Status implied by on-hand quantity against the reorder level.

    Stock is healthy only above the reorder level; sitting exactly on it
    is already low.
    """
    if on_hand <= 0:
        return StockStatus.OUT_OF_STOCK
    if on_hand > reorder_level:
        return StockStatus.IN_STOCK
    return StockStatus.LOW_STOCK


def raise_status(current: str, on_hand: int, reorder_level: int) -> str:
    """
    Upgrade-only recomputation, used by receipts.

    Returns the healthier of the current and derived status, so a receipt
    never marks a record as worse off than before. DISCONTINUED is terminal.
    """
    if current == StockStatus.DISCONTINUED:
        return current
    derived = derive_status(on_hand, reorder_level)
    return max(current, derived, key=lambda s: _STATUS_RANK.get(s, 0))


def lower_status(current: str, on_hand: int, reorder_level: int) -> str:
    """
    Downgrade-only recomputation, used by stock outs.

    Only an empty record or one strictly below the reorder level moves;
    otherwise the current status stands.
    """
    if current == StockStatus.DISCONTINUED:
        return current
    if on_hand <= 0:
        return StockStatus.OUT_OF_STOCK
    if on_hand < reorder_level:
        return min(current, StockStatus.LOW_STOCK, key=lambda s: _STATUS_RANK.get(s, 2))
    return current


def full_status(current: str, on_hand: int, reorder_level: int) -> str:
    """Three-way recomputation, used by adjustments and damage."""
    if current == StockStatus.DISCONTINUED:
        return current
    return derive_status(on_hand, reorder_level)


def threshold_alert_type(on_hand: int, reorder_level: int) -> str | None:
    """Alert type a record at this level should raise, if any."""
    if on_hand <= 0:
        return AlertType.OUT_OF_STOCK
    if on_hand < reorder_level:
        return AlertType.LOW_STOCK
    return None


def is_alert_suppressed(last_triggered_at: datetime | None, now: datetime,
                        window: timedelta) -> bool:
    """
    True when a pending alert triggered at ``last_triggered_at`` still
    covers ``now``.

    Args:
        last_triggered_at: Trigger time of the latest pending alert of the
            same (record, type), or None if there is none
        now: Evaluation time
        window: Deduplication window
    """
    if last_triggered_at is None:
        return False
    return last_triggered_at > now - window


def days_until(expiry: datetime | None, now: datetime) -> int | None:
    """Whole days until expiry, rounded up. None when there is no expiry."""
    if expiry is None:
        return None
    return math.ceil((expiry - now) / timedelta(days=1))

"""
Enums for Stockledger models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class StockStatus(models.TextChoices):
    """
    Stock record status, derived from on-hand vs reorder level.

    IN_STOCK ⇄ LOW_STOCK ⇄ OUT_OF_STOCK. DISCONTINUED is terminal and
    only set administratively.
    """
    IN_STOCK = 'in_stock', _('In stock')
    LOW_STOCK = 'low_stock', _('Low stock')
    OUT_OF_STOCK = 'out_of_stock', _('Out of stock')
    DISCONTINUED = 'discontinued', _('Discontinued')


class BatchStatus(models.TextChoices):
    """Lot lifecycle status."""
    ACTIVE = 'active', _('Active')
    EXPIRED = 'expired', _('Expired')
    RECALL = 'recall', _('Recalled')
    ARCHIVED = 'archived', _('Archived')


class MovementType(models.TextChoices):
    """Kind of quantity change recorded in the movement log."""
    INITIAL = 'initial', _('Initial')
    STOCK_IN = 'stock_in', _('Stock in')
    STOCK_OUT = 'stock_out', _('Stock out')
    ADJUSTMENT = 'adjustment', _('Adjustment')
    DAMAGE = 'damage', _('Damage')


class ReservationStatus(models.TextChoices):
    """Reservation lifecycle status."""
    PENDING = 'pending', _('Pending')        # Order placed, hold expires
    ALLOCATED = 'allocated', _('Allocated')  # Paid, hold no longer expires
    FULFILLED = 'fulfilled', _('Fulfilled')  # Shipped
    RELEASED = 'released', _('Released')     # Order cancelled or hold expired
    CANCELLED = 'cancelled', _('Cancelled')  # Withdrawn administratively

    @classmethod
    def active(cls) -> list[str]:
        """Statuses that count toward StockRecord.reserved."""
        return [cls.PENDING, cls.ALLOCATED]


class AlertType(models.TextChoices):
    LOW_STOCK = 'low_stock', _('Low stock')
    OUT_OF_STOCK = 'out_of_stock', _('Out of stock')
    OVERSTOCK = 'overstock', _('Overstock')
    EXPIRING = 'expiring', _('Expiring')
    EXPIRED = 'expired', _('Expired')
    DAMAGED = 'damaged', _('Damaged')


class AlertStatus(models.TextChoices):
    PENDING = 'pending', _('Pending')
    ACKNOWLEDGED = 'acknowledged', _('Acknowledged')
    RESOLVED = 'resolved', _('Resolved')
    IGNORED = 'ignored', _('Ignored')


class OrderStatus(models.TextChoices):
    """Order lifecycle as seen by the ledger."""
    PENDING = 'pending', _('Pending')
    CONFIRMED = 'confirmed', _('Confirmed')
    SHIPPED = 'shipped', _('Shipped')
    CANCELLED = 'cancelled', _('Cancelled')

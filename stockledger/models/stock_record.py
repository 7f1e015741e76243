"""
StockRecord model — quantity state per (product, location).
"""

from decimal import Decimal

from django.db import models
from django.db.models import F, Q, Sum
from django.db.models.functions import Coalesce
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import ReservationStatus, StockStatus


class StockRecordQuerySet(models.QuerySet):
    """QuerySet with helper filters for StockRecord."""

    def for_product(self, product_id: int):
        """Records for a product across all locations."""
        return self.filter(product_id=product_id)

    def at_location(self, location):
        """Filter by location."""
        return self.filter(location=location)

    def low_stock(self):
        """Records flagged low or out of stock."""
        return self.filter(
            status__in=[StockStatus.LOW_STOCK, StockStatus.OUT_OF_STOCK]
        )


class StockRecord(models.Model):
    """
    Quantity state of one product at one location.

    This is the single source of truth for availability:

        available = on_hand - reserved

    Rules:
    - Created once per (product, location)
    - Quantities change ONLY through the ledger service, which writes a
      Movement in the same transaction
    - Never deleted; retired records are marked DISCONTINUED
    - ``version`` is bumped on every write (optimistic concurrency check)
    """

    # External catalog reference
    product_id = models.PositiveBigIntegerField(
        db_index=True,
        verbose_name=_('Product ID'),
    )
    location = models.ForeignKey(
        'stockledger.Location',
        on_delete=models.PROTECT,
        related_name='records',
        verbose_name=_('Location'),
    )

    on_hand = models.PositiveIntegerField(
        default=0,
        verbose_name=_('On hand'),
        help_text=_('Total physical units present.'),
    )
    reserved = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Reserved'),
        help_text=_('Units held against pending orders.'),
    )
    available = models.IntegerField(
        default=0,
        verbose_name=_('Available'),
        help_text=_('On hand minus reserved.'),
    )
    in_transit = models.PositiveIntegerField(default=0, verbose_name=_('In transit'))
    defective = models.PositiveIntegerField(default=0, verbose_name=_('Defective'))

    reorder_level = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Reorder level'),
        help_text=_('Below this on-hand quantity the record is low on stock.'),
    )
    reorder_quantity = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Reorder quantity'),
    )
    cost_per_unit = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Cost per unit'),
    )

    status = models.CharField(
        max_length=20,
        choices=StockStatus.choices,
        default=StockStatus.IN_STOCK,
        db_index=True,
        verbose_name=_('Status'),
    )
    version = models.PositiveIntegerField(default=0, editable=False)

    last_counted_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Last counted'))
    last_alert_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Last alert'))
    notes = models.TextField(blank=True, default='')
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockRecordQuerySet.as_manager()

    class Meta:
        verbose_name = _('Stock record')
        verbose_name_plural = _('Stock records')
        constraints = [
            models.UniqueConstraint(
                fields=['product_id', 'location'],
                name='unique_stock_record_per_product_location',
            ),
            models.CheckConstraint(
                condition=Q(available=F('on_hand') - F('reserved')),
                name='stock_record_available_identity',
            ),
        ]
        indexes = [
            models.Index(fields=['location', 'status'], name='sl_record_location_status'),
        ]

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def held(self) -> int:
        """Sum of active reservations, read from the reservation table."""
        return self.reservations.filter(
            status__in=ReservationStatus.active()
        ).aggregate(
            total=Coalesce(Sum('quantity_reserved'), 0, output_field=models.IntegerField())
        )['total']

    @property
    def is_discontinued(self) -> bool:
        return self.status == StockStatus.DISCONTINUED

    def recompute_available(self) -> int:
        """Re-derive ``available`` from on_hand and reserved."""
        self.available = self.on_hand - self.reserved
        return self.available

    def __str__(self) -> str:
        loc = self.location.code if self.location_id else '?'
        return f"product:{self.product_id} [{loc}]: {self.on_hand}/{self.available}"

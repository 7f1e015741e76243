"""
Batch model — lot-level receipts with cost and expiry.

Every StockIn creates exactly one Batch. Batches are only mutated by sale
and damage decrements afterwards:

    quantity_remaining = quantity_received - quantity_sold - quantity_damaged

Usage:
    result = ledger.stock_in(record, 500, batch_number='LOT-1',
                             cost_per_unit=Decimal('2.50'),
                             expiry_date=now + timedelta(days=90))
    result.batch.total_cost  # Decimal('1250.00')
"""

from datetime import datetime, timedelta
from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import BatchStatus


class BatchQuerySet(models.QuerySet):
    """Custom QuerySet for Batch with convenience filters."""

    def active(self):
        """Active batches with remaining units."""
        return self.filter(status=BatchStatus.ACTIVE, quantity_remaining__gt=0)

    def expiring_within(self, days: int, now: datetime | None = None):
        """
        Active batches expiring between now and now + days, soonest first.
        """
        now = now or timezone.now()
        return self.active().filter(
            expiry_date__gte=now,
            expiry_date__lte=now + timedelta(days=days),
        ).order_by('expiry_date', 'pk')

    def expired(self, now: datetime | None = None):
        """Active batches already past their expiry date."""
        now = now or timezone.now()
        return self.active().filter(expiry_date__lt=now).order_by('expiry_date', 'pk')


class Batch(models.Model):
    """
    A received lot, owned by exactly one StockRecord.

    Key use cases:
    - Cost tracking per receipt (total_cost = received * cost_per_unit)
    - Expiry dates per lot, driving proactive alerts
    - Recall and supplier traceability
    """

    record = models.ForeignKey(
        'stockledger.StockRecord',
        on_delete=models.PROTECT,
        related_name='batches',
        verbose_name=_('Stock record'),
    )
    batch_number = models.CharField(
        max_length=50,
        verbose_name=_('Batch number'),
    )

    quantity_received = models.PositiveIntegerField(verbose_name=_('Received'))
    quantity_sold = models.PositiveIntegerField(default=0, verbose_name=_('Sold'))
    quantity_damaged = models.PositiveIntegerField(default=0, verbose_name=_('Damaged'))
    quantity_remaining = models.PositiveIntegerField(verbose_name=_('Remaining'))

    cost_per_unit = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Cost per unit'),
    )
    total_cost = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Total cost'),
    )

    received_date = models.DateTimeField(default=timezone.now, verbose_name=_('Received on'))
    manufacture_date = models.DateTimeField(null=True, blank=True, verbose_name=_('Manufactured on'))
    expiry_date = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Expiry date'),
    )

    status = models.CharField(
        max_length=20,
        choices=BatchStatus.choices,
        default=BatchStatus.ACTIVE,
        db_index=True,
        verbose_name=_('Status'),
    )
    supplier = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Supplier'))
    reference_number = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Reference'))
    notes = models.TextField(blank=True, default='')
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BatchQuerySet.as_manager()

    class Meta:
        verbose_name = _('Batch')
        verbose_name_plural = _('Batches')
        ordering = ['expiry_date', 'received_date']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(
                    quantity_remaining=(
                        models.F('quantity_received')
                        - models.F('quantity_sold')
                        - models.F('quantity_damaged')
                    )
                ),
                name='batch_remaining_identity',
            ),
        ]
        indexes = [
            models.Index(fields=['status', 'expiry_date'], name='sl_batch_status_expiry'),
        ]

    def is_expired(self, now: datetime | None = None) -> bool:
        """Is this batch past its expiry date?"""
        if self.expiry_date is None:
            return False
        return (now or timezone.now()) > self.expiry_date

    def days_to_expiry(self, now: datetime | None = None) -> int | None:
        """Days until expiry (rounded up), None without an expiry date."""
        # Import here to avoid circular import
        from stockledger.rules import days_until

        return days_until(self.expiry_date, now or timezone.now())

    def recompute_remaining(self) -> int:
        self.quantity_remaining = (
            self.quantity_received - self.quantity_sold - self.quantity_damaged
        )
        return self.quantity_remaining

    def __str__(self) -> str:
        expiry = f" (exp:{self.expiry_date:%Y-%m-%d})" if self.expiry_date else ""
        return f"Batch {self.batch_number}{expiry}"

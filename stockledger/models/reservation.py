"""
Reservation model — Time-bounded hold against available stock.
"""

from datetime import datetime

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import ReservationStatus


class ReservationQuerySet(models.QuerySet):

    def active(self):
        """Reservations counted in StockRecord.reserved."""
        return self.filter(status__in=ReservationStatus.active())

    def expired(self, now: datetime | None = None):
        """PENDING reservations past their deadline (sweep candidates)."""
        now = now or timezone.now()
        return self.filter(
            status=ReservationStatus.PENDING,
            expires_at__isnull=False,
            expires_at__lt=now,
        )

    def for_order(self, order):
        return self.filter(order=order)


class Reservation(models.Model):
    """
    Quantity held on a StockRecord for an order.

    LIFECYCLE:

    ┌─────────┐  allocate()  ┌───────────┐  fulfill()  ┌───────────┐
    │ PENDING │ ───────────► │ ALLOCATED │ ──────────► │ FULFILLED │
    └─────────┘              └───────────┘             └───────────┘
         │ release() / cancel() / expiry  │ release() / cancel()
         ▼                                ▼
    ┌────────────────────────────────────────────┐
    │            RELEASED / CANCELLED            │
    └────────────────────────────────────────────┘

    The sum of quantity_reserved over PENDING and ALLOCATED reservations
    of a record always equals that record's ``reserved`` field.
    """

    record = models.ForeignKey(
        'stockledger.StockRecord',
        on_delete=models.PROTECT,
        related_name='reservations',
        verbose_name=_('Stock record'),
    )
    order = models.ForeignKey(
        'stockledger.Order',
        on_delete=models.PROTECT,
        related_name='reservations',
        verbose_name=_('Order'),
    )

    quantity_reserved = models.PositiveIntegerField(verbose_name=_('Quantity'))
    status = models.CharField(
        max_length=20,
        choices=ReservationStatus.choices,
        default=ReservationStatus.PENDING,
        db_index=True,
        verbose_name=_('Status'),
    )
    reserved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Reserved by'),
    )
    reserved_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_('Price at reservation'),
    )

    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Expires at'),
        help_text=_('Pending holds past this time are released by the sweep'),
    )
    created_at = models.DateTimeField(default=timezone.now)
    allocated_at = models.DateTimeField(null=True, blank=True)
    fulfilled_at = models.DateTimeField(null=True, blank=True)
    released_at = models.DateTimeField(null=True, blank=True)
    release_reason = models.CharField(max_length=255, blank=True, default='')
    notes = models.TextField(blank=True, default='')
    metadata = models.JSONField(default=dict, blank=True)

    objects = ReservationQuerySet.as_manager()

    class Meta:
        verbose_name = _('Reservation')
        verbose_name_plural = _('Reservations')
        indexes = [
            models.Index(fields=['status', 'expires_at'], name='sl_reservation_status_expiry'),
            models.Index(fields=['record', 'status'], name='sl_reservation_record_status'),
            models.Index(fields=['order', 'status'], name='sl_reservation_order_status'),
        ]

    @property
    def is_active(self) -> bool:
        return self.status in ReservationStatus.active()

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or timezone.now()) > self.expires_at

    def __str__(self) -> str:
        return f"Reservation #{self.pk} {self.quantity_reserved}x ({self.status})"

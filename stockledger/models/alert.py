"""
Alert model — low/out-of-stock, expiry and damage notifications.

Alerts are created by the ledger and resolved externally:

    PENDING → ACKNOWLEDGED → RESOLVED
    PENDING | ACKNOWLEDGED → IGNORED

A new alert of the same (record, type) is suppressed while a PENDING one
triggered inside the deduplication window exists.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import AlertStatus, AlertType


class AlertQuerySet(models.QuerySet):

    def pending(self):
        return self.filter(status=AlertStatus.PENDING)

    def open(self):
        """Alerts still awaiting resolution."""
        return self.filter(status__in=[AlertStatus.PENDING, AlertStatus.ACKNOWLEDGED])


class Alert(models.Model):
    """One triggering event against a StockRecord (optionally a Batch)."""

    record = models.ForeignKey(
        'stockledger.StockRecord',
        on_delete=models.CASCADE,
        related_name='alerts',
        verbose_name=_('Stock record'),
    )
    batch = models.ForeignKey(
        'stockledger.Batch',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='alerts',
        verbose_name=_('Batch'),
    )
    alert_type = models.CharField(
        max_length=20,
        choices=AlertType.choices,
        verbose_name=_('Type'),
    )
    current_quantity = models.IntegerField(verbose_name=_('Quantity at trigger'))
    threshold = models.IntegerField(verbose_name=_('Threshold'))
    status = models.CharField(
        max_length=20,
        choices=AlertStatus.choices,
        default=AlertStatus.PENDING,
        db_index=True,
        verbose_name=_('Status'),
    )
    notification_count = models.PositiveIntegerField(default=0)

    triggered_at = models.DateTimeField(db_index=True, verbose_name=_('Triggered at'))
    acknowledged_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Acknowledged at'))
    resolved_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Resolved at'))
    resolution_action = models.TextField(
        blank=True,
        default='',
        verbose_name=_('Resolution'),
        help_text=_('Action taken, e.g. "Ordered 1000 units"'),
    )
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = AlertQuerySet.as_manager()

    class Meta:
        verbose_name = _('Stock alert')
        verbose_name_plural = _('Stock alerts')
        ordering = ['-triggered_at']
        indexes = [
            models.Index(fields=['record', 'alert_type', 'status', 'triggered_at'], name='sl_alert_record_type_status'),
        ]

    def __str__(self) -> str:
        return f"{self.get_alert_type_display()}: {self.current_quantity} (threshold {self.threshold})"

"""
Movement model — Immutable ledger of quantity changes.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from stockledger.models.enums import MovementType


class Movement(models.Model):
    """
    Immutable record of an on-hand change.

    Rules:
    - NEVER update() or delete()
    - quantity_after == quantity_before + quantity_change
    - Written in the same transaction as the StockRecord update it describes
    - Corrections are new Movements, never edits

    Replaying every Movement of a record from zero reproduces its on_hand.
    """

    record = models.ForeignKey(
        'stockledger.StockRecord',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Stock record'),
    )
    batch = models.ForeignKey(
        'stockledger.Batch',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Batch'),
    )
    order = models.ForeignKey(
        'stockledger.Order',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Order'),
    )

    movement_type = models.CharField(
        max_length=20,
        choices=MovementType.choices,
        db_index=True,
        verbose_name=_('Type'),
    )
    quantity_change = models.IntegerField(
        verbose_name=_('Change'),
        help_text=_('Positive = in, negative = out'),
    )
    quantity_before = models.PositiveIntegerField(verbose_name=_('Before'))
    quantity_after = models.PositiveIntegerField(verbose_name=_('After'))

    unit_cost = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_('Unit cost'),
    )
    reference = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Reference'))
    reason = models.CharField(
        max_length=255,
        verbose_name=_('Reason'),
        help_text=_('Required. E.g. "Sale", "Stock received - Batch LOT-1"'),
    )
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadata'))

    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Timestamp'))
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('User'),
    )

    class Meta:
        verbose_name = _('Movement')
        verbose_name_plural = _('Movements')
        ordering = ['timestamp', 'pk']
        indexes = [
            models.Index(fields=['record', 'timestamp'], name='sl_movement_record_ts'),
        ]

    def save(self, *args, **kwargs):
        """Validate and insert. Existing movements cannot be saved again."""
        if self.pk:
            raise ValueError(
                "Movements are immutable. "
                "To correct, record a new adjustment."
            )
        if not self.reason:
            raise ValueError("Reason is required")
        if self.quantity_after != self.quantity_before + self.quantity_change:
            raise ValueError(
                f"Broken movement: {self.quantity_before} + {self.quantity_change} "
                f"!= {self.quantity_after}"
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Prevent deletion — movements are immutable."""
        raise ValueError(
            "Movements are immutable. "
            "To reverse, record a new adjustment."
        )

    def __str__(self) -> str:
        signal = '+' if self.quantity_change > 0 else ''
        return f"{signal}{self.quantity_change} | {self.reason}"

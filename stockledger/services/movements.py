"""
Movement log — append-only audit trail of on-hand changes.

Entries for one record are appended while that record is locked, so
ordering by primary key is commit order and each entry's quantity_before
equals the previous entry's quantity_after.
"""

import logging

from django.db import models
from django.db.models import Sum
from django.db.models.functions import Coalesce

from stockledger.models.movement import Movement
from stockledger.rules import full_status
from stockledger.services.uow import locked_record, pk_of, save_record

logger = logging.getLogger('stockledger')


class MovementLog:
    """Movement log append and audit methods."""

    @classmethod
    def append(cls, record, movement_type: str, quantity_change: int,
               quantity_before: int, reason: str, batch=None, order=None,
               unit_cost=None, reference: str = '', user=None,
               metadata: dict | None = None) -> Movement:
        """
        Append one entry. Callers must hold the record lock and write the
        paired StockRecord update in the same transaction.
        """
        return Movement.objects.create(
            record_id=pk_of(record),
            batch_id=pk_of(batch),
            order_id=pk_of(order),
            movement_type=movement_type,
            quantity_change=quantity_change,
            quantity_before=quantity_before,
            quantity_after=quantity_before + quantity_change,
            unit_cost=unit_cost,
            reference=reference or '',
            reason=reason,
            user=user,
            metadata=metadata or {},
        )

    @classmethod
    def history(cls, record, limit: int = 100, offset: int = 0) -> tuple[list[Movement], int]:
        """
        Movements of a record, newest first.

        Returns:
            (page of movements, total count)
        """
        qs = Movement.objects.filter(record_id=pk_of(record))
        count = qs.count()
        page = list(
            qs.select_related('batch').order_by('-timestamp', '-pk')[offset:offset + limit]
        )
        return page, count

    @classmethod
    def replay(cls, record) -> int:
        """On-hand quantity rebuilt by summing every change from zero."""
        return Movement.objects.filter(record_id=pk_of(record)).aggregate(
            total=Coalesce(Sum('quantity_change'), 0, output_field=models.IntegerField())
        )['total']

    @classmethod
    def verify_chain(cls, record) -> list[Movement]:
        """
        Entries whose quantity_before does not continue the previous entry.

        An empty list means the before/after chain is intact.
        """
        broken = []
        previous_after = 0
        for movement in Movement.objects.filter(record_id=pk_of(record)).order_by('pk'):
            if movement.quantity_before != previous_after:
                broken.append(movement)
            previous_after = movement.quantity_after
        return broken

    @classmethod
    def reconcile(cls, record) -> int:
        """
        Reset a drifted on_hand to the replayed value.

        Use for:
        - Integrity audit
        - Correction after a detected inconsistency

        Returns:
            Replayed on-hand quantity
        """
        with locked_record(record) as locked:
            total = cls.replay(locked)

            if total != locked.on_hand:
                old = locked.on_hand
                locked.on_hand = total
                locked.status = full_status(locked.status, total, locked.reorder_level)
                save_record(locked, 'on_hand', 'status')
                logger.warning(
                    f"StockRecord {locked.pk} reconciled: {old} → {total} "
                    f"(diff: {total - old})"
                )

            return total


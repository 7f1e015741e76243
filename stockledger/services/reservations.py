"""
Reservations — hold lifecycle (reserve, allocate, fulfill, release, cancel).

Lock order is always StockRecord first, then Reservation, so the expiry
sweep, a late cancellation and a shipment can never deadlock each other
and only one of them moves ``reserved`` for a given reservation.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from stockledger.conf import stockledger_settings
from stockledger.exceptions import StockError
from stockledger.models.enums import ReservationStatus
from stockledger.models.reservation import Reservation
from stockledger.services.uow import locked_record, pk_of, retry_on_conflict, save_record

logger = logging.getLogger('stockledger')


def _record_id_for(reservation) -> int:
    """Find the record of a reservation without locking anything."""
    reservation_id = pk_of(reservation)
    record_id = (
        Reservation.objects.filter(pk=reservation_id)
        .values_list('record_id', flat=True)
        .first()
    )
    if record_id is None:
        raise StockError('NOT_FOUND', entity='reservation', id=reservation_id)
    return record_id


class Reservations:
    """Reservation lifecycle methods."""

    @classmethod
    @retry_on_conflict
    def reserve(cls, record, order, quantity: int, requester=None,
                price: Decimal | None = None, expires_at: datetime | None = None,
                **metadata) -> Reservation:
        """
        Hold ``quantity`` units of a record for an order.

        The availability check and the increment of ``reserved`` happen
        under the record lock, so concurrent reservations can never reserve
        more than was available.

        Returns:
            PENDING Reservation

        Raises:
            StockError('NOT_FOUND'): If the record does not exist
            StockError('INSUFFICIENT_AVAILABLE'): If quantity > available
        """
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)

        if expires_at is None:
            ttl = stockledger_settings.RESERVATION_TTL_MINUTES
            expires_at = timezone.now() + timedelta(minutes=ttl) if ttl else None

        with locked_record(record) as locked:
            if quantity > locked.available:
                raise StockError(
                    'INSUFFICIENT_AVAILABLE',
                    record_id=locked.pk,
                    available=locked.available,
                    requested=quantity,
                )

            reservation = Reservation.objects.create(
                record=locked,
                order_id=pk_of(order),
                quantity_reserved=quantity,
                status=ReservationStatus.PENDING,
                reserved_by=requester,
                reserved_price=price,
                expires_at=expires_at,
                metadata=metadata,
            )

            locked.reserved += quantity
            save_record(locked, 'reserved')

            logger.info(
                "stock.reservation.created",
                extra={
                    "reservation_id": reservation.pk,
                    "record_id": locked.pk,
                    "order_id": reservation.order_id,
                    "qty": quantity,
                    "available": locked.available,
                },
            )
            return reservation

    @classmethod
    def allocate(cls, reservation) -> Reservation:
        """
        Mark a hold as allocated (order paid). Allocated holds do not expire.

        Transition: PENDING → ALLOCATED
        """
        reservation_id = pk_of(reservation)

        with transaction.atomic():
            try:
                locked = Reservation.objects.select_for_update().get(pk=reservation_id)
            except Reservation.DoesNotExist:
                raise StockError('NOT_FOUND', entity='reservation', id=reservation_id) from None

            if locked.status != ReservationStatus.PENDING:
                raise StockError(
                    'INVALID_STATUS',
                    current=locked.status,
                    expected=ReservationStatus.PENDING,
                )

            locked.status = ReservationStatus.ALLOCATED
            locked.allocated_at = timezone.now()
            locked.save(update_fields=['status', 'allocated_at'])
            logger.info(
                "stock.reservation.allocated",
                extra={"reservation_id": reservation_id},
            )
            return locked

    @classmethod
    @retry_on_conflict
    def fulfill(cls, reservation) -> Reservation:
        """
        Close a hold after shipment.

        ``reserved`` drops by the held quantity; on_hand is NOT touched, the
        physical exit is the StockOut made when the item was picked.

        Transition: PENDING|ALLOCATED → FULFILLED
        """
        with locked_record(_record_id_for(reservation)) as record:
            locked = Reservation.objects.select_for_update().get(pk=pk_of(reservation))

            if not locked.is_active:
                raise StockError(
                    'INVALID_STATUS',
                    current=locked.status,
                    expected=ReservationStatus.active(),
                )

            locked.status = ReservationStatus.FULFILLED
            locked.fulfilled_at = timezone.now()
            locked.save(update_fields=['status', 'fulfilled_at'])

            record.reserved -= locked.quantity_reserved
            save_record(record, 'reserved')

            logger.info(
                "stock.reservation.fulfilled",
                extra={"reservation_id": locked.pk, "qty": locked.quantity_reserved},
            )
            return locked

    @classmethod
    def release(cls, reservation, reason: str = 'released') -> Reservation:
        """
        Give a hold back to available stock.

        Releasing a reservation that is no longer active is a no-op: the
        reservation is returned unchanged and ``reserved`` moves only once.

        Transition: PENDING|ALLOCATED → RELEASED

        Raises:
            StockError('NOT_FOUND'): If the reservation does not exist
        """
        closed, _ = cls._close(reservation, ReservationStatus.RELEASED, reason)
        return closed

    @classmethod
    def cancel(cls, reservation, reason: str = 'cancelled') -> Reservation:
        """
        Withdraw a hold administratively. Same accounting as release().

        Transition: PENDING|ALLOCATED → CANCELLED
        """
        closed, _ = cls._close(reservation, ReservationStatus.CANCELLED, reason)
        return closed

    @classmethod
    def release_for_order(cls, order, reason: str = 'Order cancelled') -> list[Reservation]:
        """Release every active hold of an order."""
        ids = list(
            Reservation.objects.active()
            .filter(order_id=pk_of(order))
            .order_by('record_id', 'pk')
            .values_list('pk', flat=True)
        )
        return [cls.release(reservation_id, reason=reason) for reservation_id in ids]

    @classmethod
    def release_expired(cls, now: datetime | None = None) -> int:
        """
        Release PENDING reservations past their deadline.

        Usage:
            Call periodically via celery beat or cron
            (see the release_expired_reservations command).

        Returns:
            Number of reservations released

        Concurrency:
            - Each reservation is released in its own record transaction
            - Status and deadline are re-checked under the lock, so a hold
              allocated or cancelled meanwhile is left alone
        """
        now = now or timezone.now()
        batch_size = stockledger_settings.EXPIRED_BATCH_SIZE
        total = 0

        while True:
            batch_ids = list(
                Reservation.objects.expired(now)
                .order_by('record_id', 'pk')
                .values_list('pk', flat=True)[:batch_size]
            )
            if not batch_ids:
                break

            released = sum(
                1 for reservation_id in batch_ids
                if cls._close(
                    reservation_id, ReservationStatus.RELEASED, 'expired',
                    expired_before=now,
                )[1]
            )
            total += released
            if not released:
                break

        if total:
            logger.info(
                "stock.reservations.expired_released",
                extra={"released": total},
            )
        return total

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    @retry_on_conflict
    def _close(cls, reservation, status: str, reason: str,
               expired_before: datetime | None = None) -> tuple[Reservation, bool]:
        """Close an active hold. Returns (reservation, whether it changed)."""
        with locked_record(_record_id_for(reservation)) as record:
            locked = Reservation.objects.select_for_update().get(pk=pk_of(reservation))

            if not locked.is_active:
                logger.info(
                    "stock.reservation.already_closed",
                    extra={
                        "reservation_id": locked.pk,
                        "current": locked.status,
                        "requested": status,
                    },
                )
                return locked, False

            if expired_before is not None and not (
                locked.status == ReservationStatus.PENDING
                and locked.is_expired(expired_before)
            ):
                return locked, False

            locked.status = status
            locked.released_at = timezone.now()
            locked.release_reason = reason
            locked.save(update_fields=['status', 'released_at', 'release_reason'])

            record.reserved -= locked.quantity_reserved
            save_record(record, 'reserved')

            logger.info(
                "stock.reservation.released",
                extra={
                    "reservation_id": locked.pk,
                    "record_id": record.pk,
                    "qty": locked.quantity_reserved,
                    "status": status,
                    "reason": reason,
                },
            )
            return locked, True

"""
Stock record operations — initialize, stock in/out, adjust, damage.

Every mutation locks its StockRecord, validates against the locked row,
writes the new quantities and appends a Movement in one transaction.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.utils import timezone

from stockledger.conf import stockledger_settings
from stockledger.exceptions import StockError
from stockledger.models.batch import Batch
from stockledger.models.enums import AlertType, MovementType
from stockledger.models.movement import Movement
from stockledger.models.reservation import Reservation
from stockledger.models.stock_record import StockRecord
from stockledger.rules import derive_status, full_status, lower_status, raise_status
from stockledger.services.alerts import Alerts
from stockledger.services.movements import MovementLog
from stockledger.services.uow import locked_record, pk_of, retry_on_conflict, save_record

logger = logging.getLogger('stockledger')

CENTS = Decimal('0.01')


@dataclass(frozen=True)
class StockInResult:
    record: StockRecord
    batch: Batch
    movement: Movement


@dataclass(frozen=True)
class MovementResult:
    record: StockRecord
    movement: Movement


def _locked_batch(record: StockRecord, batch) -> Batch:
    """Lock a batch and check it belongs to the record."""
    batch_id = pk_of(batch)
    try:
        locked = Batch.objects.select_for_update().get(pk=batch_id)
    except Batch.DoesNotExist:
        raise StockError('NOT_FOUND', entity='batch', id=batch_id) from None
    if locked.record_id != record.pk:
        raise StockError('NOT_FOUND', entity='batch', id=batch_id, record_id=record.pk)
    return locked


class StockRecords:
    """State-changing stock record methods."""

    @classmethod
    def initialize(cls, product_id: int, location, initial_quantity: int = 0,
                   reorder_level: int | None = None,
                   reorder_quantity: int | None = None,
                   cost_per_unit: Decimal = Decimal('0'),
                   user=None, **metadata) -> StockRecord:
        """
        Create the StockRecord for (product, location).

        Writes an INITIAL movement with the opening quantity.

        Raises:
            StockError('ALREADY_EXISTS'): If the pair already has a record
            StockError('INVALID_QUANTITY'): If initial_quantity < 0
        """
        if initial_quantity < 0:
            raise StockError('INVALID_QUANTITY', requested=initial_quantity)

        if reorder_level is None:
            reorder_level = stockledger_settings.DEFAULT_REORDER_LEVEL
        if reorder_quantity is None:
            reorder_quantity = stockledger_settings.DEFAULT_REORDER_QUANTITY
        location_id = pk_of(location)

        with transaction.atomic():
            exists = StockRecord.objects.filter(
                product_id=product_id, location_id=location_id,
            ).exists()
            if exists:
                raise StockError(
                    'ALREADY_EXISTS', product_id=product_id, location_id=location_id,
                )

            try:
                # Savepoint: a concurrent create loses on the unique constraint
                with transaction.atomic():
                    record = StockRecord.objects.create(
                        product_id=product_id,
                        location_id=location_id,
                        on_hand=initial_quantity,
                        reserved=0,
                        available=initial_quantity,
                        reorder_level=reorder_level,
                        reorder_quantity=reorder_quantity,
                        cost_per_unit=cost_per_unit,
                        status=derive_status(initial_quantity, reorder_level),
                        metadata=metadata,
                    )
            except IntegrityError:
                raise StockError(
                    'ALREADY_EXISTS', product_id=product_id, location_id=location_id,
                ) from None

            MovementLog.append(
                record,
                MovementType.INITIAL,
                initial_quantity,
                0,
                reason='Initial inventory setup',
                unit_cost=cost_per_unit,
                user=user,
            )

        logger.info(
            "stock.initialize",
            extra={
                "product_id": product_id,
                "location_id": location_id,
                "qty": initial_quantity,
                "record_id": record.pk,
            },
        )
        return record

    @classmethod
    @retry_on_conflict
    def stock_in(cls, record, quantity: int, batch_number: str = '',
                 cost_per_unit: Decimal = Decimal('0'), received_date=None,
                 expiry_date=None, manufacture_date=None, supplier: str = '',
                 reference: str = '', user=None, **metadata) -> StockInResult:
        """
        Receive a lot.

        Creates a Batch with remaining = received = quantity and raises
        on_hand. Status is only ever upgraded here.

        Raises:
            StockError('NOT_FOUND'): If the record does not exist
            StockError('INVALID_QUANTITY'): If quantity <= 0
        """
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)

        now = timezone.now()
        batch_number = batch_number or f"LOT-{now:%Y%m%d%H%M%S}"
        cost_per_unit = Decimal(cost_per_unit)

        with locked_record(record) as locked:
            batch = Batch.objects.create(
                record=locked,
                batch_number=batch_number,
                quantity_received=quantity,
                quantity_remaining=quantity,
                cost_per_unit=cost_per_unit,
                total_cost=(cost_per_unit * quantity).quantize(CENTS),
                received_date=received_date or now,
                manufacture_date=manufacture_date,
                expiry_date=expiry_date,
                supplier=supplier,
                reference_number=reference,
                metadata=metadata,
            )

            before = locked.on_hand
            locked.on_hand += quantity
            locked.status = raise_status(locked.status, locked.on_hand, locked.reorder_level)
            save_record(locked, 'on_hand', 'status')

            movement = MovementLog.append(
                locked,
                MovementType.STOCK_IN,
                quantity,
                before,
                reason=f"Stock received - Batch {batch_number}",
                batch=batch,
                unit_cost=cost_per_unit,
                reference=reference,
                user=user,
                metadata=metadata,
            )

            logger.info(
                "stock.in",
                extra={
                    "record_id": locked.pk,
                    "qty": quantity,
                    "batch": batch_number,
                    "on_hand": locked.on_hand,
                },
            )
            return StockInResult(locked, batch, movement)

    @classmethod
    @retry_on_conflict
    def stock_out(cls, record, quantity: int, reason: str = 'sale', order=None,
                  batch=None, user=None, **metadata) -> MovementResult:
        """
        Physical exit (sale, pick, shipment).

        When ``order`` is given, the units that order holds on this record
        count toward what may be taken, so picking reserved stock works.

        Raises:
            StockError('NOT_FOUND'): If the record or batch does not exist
            StockError('INSUFFICIENT_STOCK'): If quantity > what is available
            StockError('INVALID_STATE'): If the batch has fewer units remaining
        """
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)
        if not reason:
            raise StockError('REASON_REQUIRED')

        with locked_record(record) as locked:
            own_held = 0
            if order is not None:
                own_held = sum(
                    Reservation.objects.active()
                    .filter(record=locked, order_id=pk_of(order))
                    .values_list('quantity_reserved', flat=True)
                )

            if quantity > locked.available + own_held:
                raise StockError(
                    'INSUFFICIENT_STOCK',
                    record_id=locked.pk,
                    available=locked.available,
                    requested=quantity,
                )

            locked_batch = None
            if batch is not None:
                locked_batch = _locked_batch(locked, batch)
                if locked_batch.quantity_remaining < quantity:
                    raise StockError(
                        'INVALID_STATE',
                        batch_id=locked_batch.pk,
                        remaining=locked_batch.quantity_remaining,
                        requested=quantity,
                    )
                locked_batch.quantity_sold += quantity
                locked_batch.recompute_remaining()
                locked_batch.save(update_fields=['quantity_sold', 'quantity_remaining', 'updated_at'])

            before = locked.on_hand
            locked.on_hand -= quantity
            locked.status = lower_status(locked.status, locked.on_hand, locked.reorder_level)
            save_record(locked, 'on_hand', 'status')

            movement = MovementLog.append(
                locked,
                MovementType.STOCK_OUT,
                -quantity,
                before,
                reason=reason,
                batch=locked_batch,
                order=order,
                reference=getattr(order, 'order_number', ''),
                user=user,
                metadata=metadata,
            )

            if locked.on_hand < locked.reorder_level:
                Alerts.evaluate_thresholds(locked)

            logger.info(
                "stock.out",
                extra={
                    "record_id": locked.pk,
                    "qty": quantity,
                    "reason": reason,
                    "on_hand": locked.on_hand,
                },
            )
            return MovementResult(locked, movement)

    @classmethod
    @retry_on_conflict
    def adjust(cls, record, delta: int, reason: str, user=None, **metadata) -> MovementResult:
        """
        Manual correction by a signed delta (recount, found, lost).

        Status is fully re-derived. A negative delta may cut into reserved
        units: the correction is accepted and logged as oversold.

        Raises:
            StockError('NOT_FOUND'): If the record does not exist
            StockError('REASON_REQUIRED'): If reason is empty
            StockError('INVALID_QUANTITY'): If delta is zero
            StockError('INVALID_ADJUSTMENT'): If on_hand would go negative
        """
        if not reason:
            raise StockError('REASON_REQUIRED')
        if delta == 0:
            raise StockError('INVALID_QUANTITY', requested=delta)

        with locked_record(record) as locked:
            if locked.on_hand + delta < 0:
                raise StockError(
                    'INVALID_ADJUSTMENT',
                    record_id=locked.pk,
                    on_hand=locked.on_hand,
                    delta=delta,
                )

            before = locked.on_hand
            locked.on_hand += delta
            locked.status = full_status(locked.status, locked.on_hand, locked.reorder_level)
            locked.last_counted_at = timezone.now()
            save_record(locked, 'on_hand', 'status', 'last_counted_at')

            movement = MovementLog.append(
                locked,
                MovementType.ADJUSTMENT,
                delta,
                before,
                reason=reason,
                user=user,
                metadata=metadata,
            )

            if locked.available < 0:
                logger.warning(
                    "stock.adjust.oversold",
                    extra={"record_id": locked.pk, "available": locked.available},
                )
            Alerts.evaluate_thresholds(locked)

            logger.info(
                "stock.adjust",
                extra={"record_id": locked.pk, "delta": delta, "reason": reason},
            )
            return MovementResult(locked, movement)

    @classmethod
    @retry_on_conflict
    def record_damage(cls, record, quantity: int, reason: str, batch=None,
                      user=None, **metadata) -> MovementResult:
        """
        Move units from on_hand to defective.

        Raises:
            StockError('NOT_FOUND'): If the record or batch does not exist
            StockError('INVALID_STATE'): If on_hand or the batch's remaining
                quantity would go negative
        """
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)
        if not reason:
            raise StockError('REASON_REQUIRED')

        with locked_record(record) as locked:
            if quantity > locked.on_hand:
                raise StockError(
                    'INVALID_STATE',
                    record_id=locked.pk,
                    on_hand=locked.on_hand,
                    requested=quantity,
                )

            locked_batch = None
            if batch is not None:
                locked_batch = _locked_batch(locked, batch)
                if locked_batch.quantity_remaining < quantity:
                    raise StockError(
                        'INVALID_STATE',
                        batch_id=locked_batch.pk,
                        remaining=locked_batch.quantity_remaining,
                        requested=quantity,
                    )
                locked_batch.quantity_damaged += quantity
                locked_batch.recompute_remaining()
                locked_batch.save(update_fields=['quantity_damaged', 'quantity_remaining', 'updated_at'])

            before = locked.on_hand
            locked.on_hand -= quantity
            locked.defective += quantity
            locked.status = full_status(locked.status, locked.on_hand, locked.reorder_level)
            save_record(locked, 'on_hand', 'defective', 'status')

            movement = MovementLog.append(
                locked,
                MovementType.DAMAGE,
                -quantity,
                before,
                reason=f"Damage recorded: {reason}",
                batch=locked_batch,
                user=user,
                metadata=metadata,
            )

            if locked.available < 0:
                logger.warning(
                    "stock.damage.oversold",
                    extra={"record_id": locked.pk, "available": locked.available},
                )
            Alerts.safe_check(
                locked, AlertType.DAMAGED, quantity, 0,
                batch=locked_batch, reason=reason,
            )
            Alerts.evaluate_thresholds(locked)

            logger.info(
                "stock.damage",
                extra={"record_id": locked.pk, "qty": quantity, "reason": reason},
            )
            return MovementResult(locked, movement)

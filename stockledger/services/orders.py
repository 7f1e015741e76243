"""
Order workflow — the ledger's primary client.

place_order() validates products, prices the lines, pre-checks stock and
then persists the order and reserves every line in ONE transaction: if
any reservation loses a race, nothing is kept.
"""

import logging
import secrets
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from django.db import transaction
from django.utils import timezone

from stockledger.adapters.catalog import get_product_catalog
from stockledger.exceptions import StockError
from stockledger.models.enums import OrderStatus, ReservationStatus
from stockledger.models.order import Order, OrderItem
from stockledger.models.reservation import Reservation
from stockledger.services.queries import StockQueries
from stockledger.services.records import StockRecords
from stockledger.services.reservations import Reservations
from stockledger.services.uow import pk_of

logger = logging.getLogger('stockledger')


@dataclass(frozen=True)
class OrderLine:
    """One requested product. unit_price overrides the catalog price."""

    product_id: int
    quantity: int
    unit_price: Decimal | None = None
    location: Any = None


def _generate_order_number() -> str:
    return f"ORD-{timezone.now():%Y%m%d}-{secrets.token_hex(4).upper()}"


def _locked_order(order) -> Order:
    order_id = pk_of(order)
    try:
        return Order.objects.select_for_update().get(pk=order_id)
    except Order.DoesNotExist:
        raise StockError('NOT_FOUND', entity='order', id=order_id) from None


def _require_holds(order: Order) -> None:
    """Every line of the order must still be covered by active holds."""
    ordered = {}
    for record_id, quantity in order.items.values_list('record_id', 'quantity'):
        ordered[record_id] = ordered.get(record_id, 0) + quantity

    held = {}
    active = Reservation.objects.active().filter(order=order)
    for record_id, quantity in active.values_list('record_id', 'quantity_reserved'):
        held[record_id] = held.get(record_id, 0) + quantity

    for record_id, quantity in sorted(ordered.items()):
        if held.get(record_id, 0) != quantity:
            raise StockError(
                'INVALID_STATE',
                'Order holds no longer cover its lines',
                order_id=order.pk,
                record_id=record_id,
                ordered=quantity,
                held=held.get(record_id, 0),
            )


class OrderWorkflow:
    """Order placement, confirmation, shipment and cancellation."""

    @classmethod
    def place_order(cls, lines, customer=None, shipping_fee: Decimal = Decimal('0'),
                    customer_notes: str = '', **metadata) -> Order:
        """
        Create an order and reserve stock for every line.

        Args:
            lines: OrderLine instances (or dicts with the same keys)
            customer: User placing the order (recorded as requester)
            shipping_fee: Pre-computed shipping amount

        Raises:
            StockError('EMPTY_ORDER'): If there are no lines
            StockError('PRODUCT_UNAVAILABLE'): If a product is unknown/inactive
            StockError('INSUFFICIENT_STOCK'): If a line fails the pre-check
            StockError('INSUFFICIENT_AVAILABLE'): If stock was taken between
                the pre-check and the reservation
        """
        lines = [line if isinstance(line, OrderLine) else OrderLine(**line) for line in lines]
        if not lines:
            raise StockError('EMPTY_ORDER')

        catalog = get_product_catalog()
        priced = []

        for line in lines:
            if line.quantity <= 0:
                raise StockError('INVALID_QUANTITY', product_id=line.product_id,
                                 requested=line.quantity)

            info = catalog.get_product(line.product_id)
            if info is None or not info.is_active:
                raise StockError('PRODUCT_UNAVAILABLE', product_id=line.product_id)

            record = StockQueries.find_record(line.product_id, line.location)
            if record is None or record.available < line.quantity:
                raise StockError(
                    'INSUFFICIENT_STOCK',
                    f"Insufficient stock for product: {info.name}",
                    product_id=line.product_id,
                    available=record.available if record else 0,
                    requested=line.quantity,
                )

            unit_price = info.price if line.unit_price is None else Decimal(line.unit_price)
            priced.append((line, info, record, unit_price))

        subtotal = sum((price * line.quantity for line, _, _, price in priced), Decimal('0'))
        shipping_fee = Decimal(shipping_fee)

        with transaction.atomic():
            order = Order.objects.create(
                order_number=_generate_order_number(),
                customer=customer,
                status=OrderStatus.PENDING,
                subtotal=subtotal,
                shipping_amount=shipping_fee,
                total_amount=subtotal + shipping_fee,
                customer_notes=customer_notes,
                metadata=metadata,
            )

            # Lock records in a stable order so two orders never deadlock
            for line, info, record, unit_price in sorted(priced, key=lambda p: p[2].pk):
                OrderItem.objects.create(
                    order=order,
                    record=record,
                    product_id=line.product_id,
                    product_name=info.name,
                    product_sku=info.sku,
                    quantity=line.quantity,
                    unit_price=unit_price,
                    total_price=unit_price * line.quantity,
                )
                Reservations.reserve(
                    record, order, line.quantity,
                    requester=customer, price=unit_price,
                )

        logger.info(
            "order.placed",
            extra={
                "order_id": order.pk,
                "order_number": order.order_number,
                "lines": len(priced),
                "total": str(order.total_amount),
            },
        )
        return order

    @classmethod
    def confirm_order(cls, order) -> Order:
        """
        Payment received: allocate the order's holds so they stop expiring.
        Fails with INVALID_STATE once any line has lost its hold.

        Transition: PENDING → CONFIRMED
        """
        with transaction.atomic():
            locked = _locked_order(order)
            if locked.status != OrderStatus.PENDING:
                raise StockError('INVALID_STATUS', current=locked.status,
                                 expected=OrderStatus.PENDING)
            _require_holds(locked)

            pending = locked.reservations.filter(status=ReservationStatus.PENDING)
            for reservation_id in pending.values_list('pk', flat=True):
                Reservations.allocate(reservation_id)

            locked.status = OrderStatus.CONFIRMED
            locked.confirmed_at = timezone.now()
            locked.save(update_fields=['status', 'confirmed_at'])

        logger.info("order.confirmed", extra={"order_id": locked.pk})
        return locked

    @classmethod
    def ship_order(cls, order, user=None) -> Order:
        """
        Pick and ship: stock out each held line against the order, then
        fulfil its reservation.
        Fails with INVALID_STATE once any line has lost its hold.

        Transition: PENDING|CONFIRMED → SHIPPED
        """
        with transaction.atomic():
            locked = _locked_order(order)
            if locked.status not in [OrderStatus.PENDING, OrderStatus.CONFIRMED]:
                raise StockError('INVALID_STATUS', current=locked.status,
                                 expected=[OrderStatus.PENDING, OrderStatus.CONFIRMED])
            _require_holds(locked)

            active = (
                Reservation.objects.active()
                .filter(order=locked)
                .order_by('record_id', 'pk')
            )
            for reservation in active:
                StockRecords.stock_out(
                    reservation.record_id,
                    reservation.quantity_reserved,
                    reason=f"Order {locked.order_number} shipped",
                    order=locked,
                    user=user,
                )
                Reservations.fulfill(reservation)

            locked.status = OrderStatus.SHIPPED
            locked.shipped_at = timezone.now()
            locked.save(update_fields=['status', 'shipped_at'])

        logger.info("order.shipped", extra={"order_id": locked.pk})
        return locked

    @classmethod
    def cancel_order(cls, order, reason: str = 'Order cancelled') -> Order:
        """
        Cancel an unshipped order and release all of its holds.

        Transition: PENDING|CONFIRMED → CANCELLED
        """
        with transaction.atomic():
            locked = _locked_order(order)
            if locked.status not in [OrderStatus.PENDING, OrderStatus.CONFIRMED]:
                raise StockError('INVALID_STATUS', current=locked.status,
                                 expected=[OrderStatus.PENDING, OrderStatus.CONFIRMED])

            Reservations.release_for_order(locked, reason=reason)

            locked.status = OrderStatus.CANCELLED
            locked.cancelled_at = timezone.now()
            locked.cancel_reason = reason
            locked.save(update_fields=['status', 'cancelled_at', 'cancel_reason'])

        logger.info("order.cancelled", extra={"order_id": locked.pk, "reason": reason})
        return locked

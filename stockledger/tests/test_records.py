"""
Tests for stock record operations: initialize, stock in/out, adjust, damage.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from stockledger import StockError, ledger
from stockledger.models import (
    Alert,
    AlertType,
    Movement,
    MovementType,
    Reservation,
    StockRecord,
    StockStatus,
)


pytestmark = pytest.mark.django_db


def assert_consistent(record):
    """Check the ledger invariants of one record at rest."""
    record.refresh_from_db()
    held = sum(
        Reservation.objects.active()
        .filter(record=record)
        .values_list('quantity_reserved', flat=True)
    )
    assert record.available == record.on_hand - record.reserved
    assert record.reserved == held
    assert ledger.replay(record) == record.on_hand
    assert ledger.verify_chain(record) == []
    for batch in record.batches.all():
        assert batch.quantity_remaining == (
            batch.quantity_received - batch.quantity_sold - batch.quantity_damaged
        )
        assert batch.quantity_remaining >= 0


class TestInitialize:
    """Tests for ledger.initialize()."""

    def test_initialize_creates_record(self, record):
        """Opening stock above the reorder level is in stock."""
        assert record.on_hand == 100
        assert record.reserved == 0
        assert record.available == 100
        assert record.status == StockStatus.IN_STOCK

    def test_initialize_writes_initial_movement(self, record):
        """The opening quantity is the first entry of the log."""
        movement = Movement.objects.get(record=record)

        assert movement.movement_type == MovementType.INITIAL
        assert movement.quantity_before == 0
        assert movement.quantity_change == 100
        assert movement.quantity_after == 100
        assert movement.reason == 'Initial inventory setup'

    def test_initialize_twice_fails(self, record, main):
        """A (product, location) pair has exactly one record."""
        with pytest.raises(StockError) as exc:
            ledger.initialize(1, main, initial_quantity=5)

        assert exc.value.code == 'ALREADY_EXISTS'
        assert StockRecord.objects.filter(product_id=1).count() == 1

    def test_same_product_other_location(self, record, store):
        other = ledger.initialize(1, store, initial_quantity=5, reorder_level=10)

        assert other.pk != record.pk
        assert other.status == StockStatus.LOW_STOCK

    def test_initialize_at_reorder_level_is_low(self, main):
        """Exactly the reorder level is low; one more unit is in stock."""
        at_level = ledger.initialize(2, main, initial_quantity=20, reorder_level=20)
        above = ledger.initialize(3, main, initial_quantity=21, reorder_level=20)

        assert at_level.status == StockStatus.LOW_STOCK
        assert above.status == StockStatus.IN_STOCK

    def test_initialize_uses_configured_defaults(self, main, settings):
        """Reorder level and quantity fall back to settings."""
        settings.STOCKLEDGER = {
            'DEFAULT_REORDER_LEVEL': 5,
            'DEFAULT_REORDER_QUANTITY': 40,
        }

        record = ledger.initialize(2, main)

        assert record.reorder_level == 5
        assert record.reorder_quantity == 40
        assert record.status == StockStatus.OUT_OF_STOCK

    def test_initialize_negative_quantity(self, main):
        with pytest.raises(StockError) as exc:
            ledger.initialize(2, main, initial_quantity=-1)

        assert exc.value.code == 'INVALID_QUANTITY'


class TestStockIn:
    """Tests for ledger.stock_in()."""

    def test_stock_in_creates_batch(self, record):
        """A receipt creates one batch with its total cost."""
        ledger.stock_out(record, 90, reason='sale')

        result = ledger.stock_in(record, 500, batch_number='LOT-1',
                                 cost_per_unit=Decimal('2.50'))

        assert result.batch.total_cost == Decimal('1250.00')
        assert result.batch.quantity_received == 500
        assert result.batch.quantity_remaining == 500
        assert result.record.on_hand == 510
        assert result.record.available == 510
        assert result.record.status == StockStatus.IN_STOCK

    def test_stock_in_movement_references_batch(self, record):
        result = ledger.stock_in(record, 50, batch_number='LOT-7')

        assert result.movement.movement_type == MovementType.STOCK_IN
        assert result.movement.batch == result.batch
        assert result.movement.quantity_before == 100
        assert result.movement.quantity_after == 150
        assert result.movement.reason == 'Stock received - Batch LOT-7'

    def test_small_receipt_keeps_low_status(self, record):
        """Still below the reorder level: the record stays low."""
        ledger.stock_out(record, 90, reason='sale')

        result = ledger.stock_in(record, 5, batch_number='LOT-2')

        assert result.record.on_hand == 15
        assert result.record.status == StockStatus.LOW_STOCK

    def test_receipt_never_downgrades(self, record):
        """Raising the reorder level does not make a receipt mark the record low."""
        StockRecord.objects.filter(pk=record.pk).update(reorder_level=500)

        result = ledger.stock_in(record, 10)

        assert result.record.on_hand == 110
        assert result.record.status == StockStatus.IN_STOCK

    def test_receipt_on_empty_record(self, main):
        record = ledger.initialize(2, main, initial_quantity=0, reorder_level=20)
        assert record.status == StockStatus.OUT_OF_STOCK

        result = ledger.stock_in(record, 5)

        assert result.record.status == StockStatus.LOW_STOCK

    def test_receipt_up_to_reorder_level_stays_low(self, main):
        record = ledger.initialize(2, main, initial_quantity=10, reorder_level=20)

        result = ledger.stock_in(record, 10)

        assert result.record.on_hand == 20
        assert result.record.status == StockStatus.LOW_STOCK

    def test_receipt_above_reorder_level_is_in_stock(self, main):
        record = ledger.initialize(2, main, initial_quantity=10, reorder_level=20)

        result = ledger.stock_in(record, 11)

        assert result.record.on_hand == 21
        assert result.record.status == StockStatus.IN_STOCK

    def test_default_batch_number(self, record):
        result = ledger.stock_in(record, 1)

        assert result.batch.batch_number.startswith('LOT-')

    def test_stock_in_missing_record(self, db):
        with pytest.raises(StockError) as exc:
            ledger.stock_in(999999, 10)

        assert exc.value.code == 'NOT_FOUND'

    def test_stock_in_invalid_quantity(self, record):
        with pytest.raises(StockError) as exc:
            ledger.stock_in(record, 0)

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_stock_in_bumps_version(self, record):
        """Every write increments the optimistic concurrency counter."""
        result = ledger.stock_in(record, 10)

        assert result.record.version == record.version + 1


class TestStockOut:
    """Tests for ledger.stock_out()."""

    def test_stock_out_to_low_stock(self, record):
        """100 on hand, reorder 20: selling 90 leaves a low record and an alert."""
        result = ledger.stock_out(record, 90, reason='sale')

        assert result.record.on_hand == 10
        assert result.record.available == 10
        assert result.record.status == StockStatus.LOW_STOCK
        assert Alert.objects.filter(record=record, alert_type=AlertType.LOW_STOCK).count() == 1

    def test_stock_out_movement(self, record):
        result = ledger.stock_out(record, 30, reason='sale')

        assert result.movement.movement_type == MovementType.STOCK_OUT
        assert result.movement.quantity_change == -30
        assert result.movement.quantity_before == 100
        assert result.movement.quantity_after == 70

    def test_stock_out_to_zero(self, record):
        result = ledger.stock_out(record, 100, reason='sale')

        assert result.record.status == StockStatus.OUT_OF_STOCK
        assert Alert.objects.filter(record=record, alert_type=AlertType.OUT_OF_STOCK).exists()

    def test_stock_out_to_reorder_level(self, record):
        """Landing exactly on the reorder level neither downgrades nor alerts."""
        result = ledger.stock_out(record, 80, reason='sale')

        assert result.record.on_hand == 20
        assert result.record.status == StockStatus.IN_STOCK
        assert not Alert.objects.filter(record=record).exists()

    def test_stock_out_insufficient(self, record):
        """Selling more than available fails and changes nothing."""
        with pytest.raises(StockError) as exc:
            ledger.stock_out(record, 101, reason='sale')

        assert exc.value.code == 'INSUFFICIENT_STOCK'
        assert exc.value.available == 100
        assert exc.value.requested == 101
        record.refresh_from_db()
        assert record.on_hand == 100
        assert Movement.objects.filter(record=record).count() == 1

    def test_reserved_units_are_not_sellable(self, record, order):
        ledger.reserve(record, order, 95)

        with pytest.raises(StockError) as exc:
            ledger.stock_out(record, 10, reason='sale')

        assert exc.value.code == 'INSUFFICIENT_STOCK'
        assert exc.value.available == 5

    def test_order_picks_its_own_held_units(self, record, order):
        """Units held by the order count toward what it may pick."""
        reservation = ledger.reserve(record, order, 95)

        ledger.stock_out(record, 95, reason='pick', order=order)
        ledger.fulfill(reservation)

        record.refresh_from_db()
        assert record.on_hand == 5
        assert record.reserved == 0
        assert record.available == 5

    def test_stock_out_references_order(self, record, order):
        ledger.reserve(record, order, 2)

        result = ledger.stock_out(record, 2, reason='pick', order=order)

        assert result.movement.order == order
        assert result.movement.reference == order.order_number

    def test_stock_out_from_batch(self, record):
        batch = ledger.stock_in(record, 50, batch_number='LOT-3').batch

        ledger.stock_out(record, 30, reason='sale', batch=batch)

        batch.refresh_from_db()
        assert batch.quantity_sold == 30
        assert batch.quantity_remaining == 20

    def test_stock_out_beyond_batch_remaining(self, record):
        batch = ledger.stock_in(record, 10, batch_number='LOT-4').batch

        with pytest.raises(StockError) as exc:
            ledger.stock_out(record, 11, reason='sale', batch=batch)

        assert exc.value.code == 'INVALID_STATE'
        record.refresh_from_db()
        assert record.on_hand == 110

    def test_stock_out_batch_of_other_record(self, record, store):
        other = ledger.initialize(1, store, initial_quantity=0)
        batch = ledger.stock_in(other, 10).batch

        with pytest.raises(StockError) as exc:
            ledger.stock_out(record, 1, reason='sale', batch=batch)

        assert exc.value.code == 'NOT_FOUND'

    def test_stock_out_requires_reason(self, record):
        with pytest.raises(StockError) as exc:
            ledger.stock_out(record, 1, reason='')

        assert exc.value.code == 'REASON_REQUIRED'


class TestAdjust:
    """Tests for ledger.adjust()."""

    def test_adjust_up(self, record):
        result = ledger.adjust(record, 5, reason='Cycle count')

        assert result.record.on_hand == 105
        assert result.record.last_counted_at is not None
        assert result.movement.movement_type == MovementType.ADJUSTMENT
        assert result.movement.quantity_change == 5

    def test_adjust_below_zero(self, record):
        with pytest.raises(StockError) as exc:
            ledger.adjust(record, -101, reason='Cycle count')

        assert exc.value.code == 'INVALID_ADJUSTMENT'
        record.refresh_from_db()
        assert record.on_hand == 100

    def test_adjust_recomputes_status_both_ways(self, record):
        """Unlike receipts and sales, adjustments re-derive the status."""
        ledger.stock_out(record, 90, reason='sale')

        up = ledger.adjust(record, 50, reason='Found pallet')
        assert up.record.status == StockStatus.IN_STOCK

        down = ledger.adjust(record, -60, reason='Shrinkage')
        assert down.record.status == StockStatus.OUT_OF_STOCK

    def test_adjust_into_reserved_units(self, record, order):
        """A physical correction is accepted even when it oversells."""
        ledger.reserve(record, order, 80)

        result = ledger.adjust(record, -50, reason='Water damage found')

        assert result.record.on_hand == 50
        assert result.record.reserved == 80
        assert result.record.available == -30

    def test_adjust_zero(self, record):
        with pytest.raises(StockError) as exc:
            ledger.adjust(record, 0, reason='Nothing')

        assert exc.value.code == 'INVALID_QUANTITY'

    def test_adjust_requires_reason(self, record):
        with pytest.raises(StockError) as exc:
            ledger.adjust(record, 3, reason='')

        assert exc.value.code == 'REASON_REQUIRED'


class TestRecordDamage:
    """Tests for ledger.record_damage()."""

    def test_damage_moves_to_defective(self, record):
        result = ledger.record_damage(record, 10, reason='Dropped pallet')

        assert result.record.on_hand == 90
        assert result.record.defective == 10
        assert result.record.available == 90
        assert result.movement.movement_type == MovementType.DAMAGE
        assert result.movement.quantity_change == -10
        assert result.movement.reason == 'Damage recorded: Dropped pallet'

    def test_damage_creates_alert(self, record):
        ledger.record_damage(record, 3, reason='Crushed')

        alert = Alert.objects.get(record=record, alert_type=AlertType.DAMAGED)
        assert alert.current_quantity == 3

    def test_damage_against_batch(self, record):
        batch = ledger.stock_in(record, 20, batch_number='LOT-5').batch

        ledger.record_damage(record, 5, reason='Leaking', batch=batch)

        batch.refresh_from_db()
        assert batch.quantity_damaged == 5
        assert batch.quantity_remaining == 15

    def test_damage_beyond_batch_remaining(self, record):
        """The batch may not go negative; nothing is written."""
        batch = ledger.stock_in(record, 20, batch_number='LOT-6').batch

        with pytest.raises(StockError) as exc:
            ledger.record_damage(record, 21, reason='Leaking', batch=batch)

        assert exc.value.code == 'INVALID_STATE'
        record.refresh_from_db()
        assert record.on_hand == 120
        assert record.defective == 0

    def test_damage_beyond_on_hand(self, record):
        with pytest.raises(StockError) as exc:
            ledger.record_damage(record, 101, reason='Fire')

        assert exc.value.code == 'INVALID_STATE'

    def test_damage_missing_record(self, db):
        with pytest.raises(StockError) as exc:
            ledger.record_damage(424242, 1, reason='Fire')

        assert exc.value.code == 'NOT_FOUND'


class TestLedgerInvariants:
    """Invariants hold after a mixed sequence of operations."""

    def test_mixed_sequence(self, record, make_order):
        expiring = timezone.now() + timedelta(days=5)
        batch = ledger.stock_in(record, 40, batch_number='LOT-8', expiry_date=expiring).batch
        first = ledger.reserve(record, make_order(), 30)
        second_order = make_order()
        second = ledger.reserve(record, second_order, 20)
        ledger.stock_out(record, 25, reason='sale', batch=batch)
        ledger.record_damage(record, 4, reason='Crushed', batch=batch)
        ledger.adjust(record, -6, reason='Recount')
        ledger.release(first)
        ledger.stock_out(record, 20, reason='pick', order=second_order)
        ledger.fulfill(second)
        ledger.release(first)

        assert_consistent(record)
        record.refresh_from_db()
        assert record.on_hand == 100 + 40 - 25 - 4 - 6 - 20
        assert record.reserved == 0

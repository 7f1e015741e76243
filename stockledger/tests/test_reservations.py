"""
Tests for the reservation lifecycle and its concurrency guarantees.
"""

import threading
from datetime import timedelta

import pytest
from django.db import DatabaseError, connection, connections
from django.db.models import Sum
from django.utils import timezone

from stockledger import StockError, ledger
from stockledger.models import Movement, Reservation, ReservationStatus


pytestmark = pytest.mark.django_db


@pytest.fixture
def ten_available(record):
    """Record with exactly 10 units available."""
    return ledger.stock_out(record, 90, reason='sale').record


class TestReserve:
    """Tests for ledger.reserve()."""

    def test_reserve_takes_last_units(self, ten_available, make_order):
        """Reserving all 10 succeeds; the next unit is refused."""
        reservation = ledger.reserve(ten_available, make_order(), 10)

        ten_available.refresh_from_db()
        assert reservation.status == ReservationStatus.PENDING
        assert ten_available.reserved == 10
        assert ten_available.available == 0

        with pytest.raises(StockError) as exc:
            ledger.reserve(ten_available, make_order(), 1)

        assert exc.value.code == 'INSUFFICIENT_AVAILABLE'
        assert exc.value.available == 0

    def test_release_returns_units(self, ten_available, make_order):
        reservation = ledger.reserve(ten_available, make_order(), 10)

        ledger.release(reservation)

        ten_available.refresh_from_db()
        assert ten_available.reserved == 0
        assert ten_available.available == 10

    def test_default_hold_duration(self, record, order):
        """Holds expire after RESERVATION_TTL_MINUTES (24h by default)."""
        before = timezone.now()
        reservation = ledger.reserve(record, order, 1)
        after = timezone.now()

        assert before + timedelta(hours=24) <= reservation.expires_at <= after + timedelta(hours=24)

    def test_zero_ttl_never_expires(self, record, order, settings):
        settings.STOCKLEDGER = {'RESERVATION_TTL_MINUTES': 0}

        reservation = ledger.reserve(record, order, 1)

        assert reservation.expires_at is None

    def test_reserve_records_requester_and_price(self, record, order, user):
        reservation = ledger.reserve(record, order, 2, requester=user, price='24.90')
        reservation.refresh_from_db()

        assert reservation.reserved_by == user
        assert str(reservation.reserved_price) == '24.90'

    def test_reserve_does_not_touch_on_hand(self, record, order):
        """A hold is not a movement."""
        ledger.reserve(record, order, 40)

        record.refresh_from_db()
        assert record.on_hand == 100
        assert Movement.objects.filter(record=record).count() == 1

    def test_reserve_missing_record(self, order):
        with pytest.raises(StockError) as exc:
            ledger.reserve(999999, order, 1)

        assert exc.value.code == 'NOT_FOUND'

    def test_reserve_invalid_quantity(self, record, order):
        with pytest.raises(StockError) as exc:
            ledger.reserve(record, order, 0)

        assert exc.value.code == 'INVALID_QUANTITY'


class TestRelease:
    """Tests for ledger.release() / ledger.cancel()."""

    def test_release_twice_changes_reserved_once(self, record, order):
        reservation = ledger.reserve(record, order, 30)

        first = ledger.release(reservation, reason='customer changed mind')
        second = ledger.release(reservation, reason='retry')

        record.refresh_from_db()
        assert record.reserved == 0
        assert record.available == 100
        assert first.status == ReservationStatus.RELEASED
        assert second.status == ReservationStatus.RELEASED
        assert second.release_reason == 'customer changed mind'

    def test_cancel(self, record, order):
        reservation = ledger.reserve(record, order, 30)

        cancelled = ledger.cancel(reservation)

        record.refresh_from_db()
        assert cancelled.status == ReservationStatus.CANCELLED
        assert record.reserved == 0

    def test_release_after_fulfill_is_noop(self, record, order):
        reservation = ledger.reserve(record, order, 5)
        ledger.stock_out(record, 5, reason='pick', order=order)
        ledger.fulfill(reservation)

        result = ledger.release(reservation)

        record.refresh_from_db()
        assert result.status == ReservationStatus.FULFILLED
        assert record.reserved == 0

    def test_release_missing(self, db):
        with pytest.raises(StockError) as exc:
            ledger.release(999999)

        assert exc.value.code == 'NOT_FOUND'

    def test_release_for_order(self, record, store, order, make_order):
        """Every active hold of the order is released, other orders are untouched."""
        other_record = ledger.initialize(1, store, initial_quantity=10, reorder_level=0)
        ledger.reserve(record, order, 5)
        ledger.reserve(other_record, order, 3)
        keep = ledger.reserve(record, make_order(), 7)

        released = ledger.release_for_order(order)

        assert len(released) == 2
        assert {r.status for r in released} == {ReservationStatus.RELEASED}
        record.refresh_from_db()
        other_record.refresh_from_db()
        assert record.reserved == keep.quantity_reserved
        assert other_record.reserved == 0


class TestAllocateAndFulfill:
    """Tests for ledger.allocate() and ledger.fulfill()."""

    def test_allocate(self, record, order):
        reservation = ledger.reserve(record, order, 5)

        allocated = ledger.allocate(reservation)

        assert allocated.status == ReservationStatus.ALLOCATED
        assert allocated.allocated_at is not None

    def test_allocate_twice(self, record, order):
        reservation = ledger.reserve(record, order, 5)
        ledger.allocate(reservation)

        with pytest.raises(StockError) as exc:
            ledger.allocate(reservation)

        assert exc.value.code == 'INVALID_STATUS'

    def test_fulfill_decrements_reserved_only(self, record, order):
        """on_hand is left to the pick's stock out."""
        reservation = ledger.reserve(record, order, 5)

        fulfilled = ledger.fulfill(reservation)

        record.refresh_from_db()
        assert fulfilled.status == ReservationStatus.FULFILLED
        assert fulfilled.fulfilled_at is not None
        assert record.reserved == 0
        assert record.on_hand == 100

    def test_fulfill_released(self, record, order):
        reservation = ledger.reserve(record, order, 5)
        ledger.release(reservation)

        with pytest.raises(StockError) as exc:
            ledger.fulfill(reservation)

        assert exc.value.code == 'INVALID_STATUS'


class TestReleaseExpired:
    """Tests for ledger.release_expired()."""

    def test_releases_pending_past_deadline(self, record, order):
        past = timezone.now() - timedelta(minutes=1)
        reservation = ledger.reserve(record, order, 10, expires_at=past)

        count = ledger.release_expired()

        reservation.refresh_from_db()
        record.refresh_from_db()
        assert count == 1
        assert reservation.status == ReservationStatus.RELEASED
        assert reservation.release_reason == 'expired'
        assert record.reserved == 0

    def test_allocated_holds_do_not_expire(self, record, order):
        past = timezone.now() - timedelta(minutes=1)
        reservation = ledger.reserve(record, order, 10, expires_at=past)
        ledger.allocate(reservation)

        assert ledger.release_expired() == 0
        reservation.refresh_from_db()
        assert reservation.status == ReservationStatus.ALLOCATED

    def test_future_holds_untouched(self, record, order):
        ledger.reserve(record, order, 10)

        assert ledger.release_expired() == 0

    def test_sweep_then_late_cancellation(self, record, order):
        """An expired hold cancelled afterwards is only given back once."""
        past = timezone.now() - timedelta(minutes=1)
        reservation = ledger.reserve(record, order, 10, expires_at=past)

        ledger.release_expired()
        late = ledger.cancel(reservation, reason='Order cancelled')

        record.refresh_from_db()
        assert late.status == ReservationStatus.RELEASED
        assert record.reserved == 0
        assert record.available == 100

    def test_sweep_processes_in_batches(self, record, make_order, settings):
        settings.STOCKLEDGER = {'EXPIRED_BATCH_SIZE': 2}
        past = timezone.now() - timedelta(minutes=1)
        for _ in range(5):
            ledger.reserve(record, make_order(), 1, expires_at=past)

        assert ledger.release_expired() == 5
        assert not Reservation.objects.active().exists()


class TestConcurrency:
    """Concurrent reservations never oversell."""

    def test_sequential_exhaustion(self, ten_available, make_order):
        """15 single-unit attempts on 10 available: exactly 10 succeed."""
        outcomes = []
        for _ in range(15):
            try:
                ledger.reserve(ten_available, make_order(), 1)
                outcomes.append('ok')
            except StockError as exc:
                outcomes.append(exc.code)

        ten_available.refresh_from_db()
        assert outcomes.count('ok') == 10
        assert outcomes.count('INSUFFICIENT_AVAILABLE') == 5
        assert ten_available.reserved == 10
        assert ten_available.available == 0

    @pytest.mark.django_db(transaction=True)
    def test_threaded_reservations(self, main, make_order):
        """Racing threads on 10 available units reserve at most 10."""
        if connection.vendor != 'postgresql':
            pytest.skip('needs a database with row-level locks')

        record = ledger.initialize(7, main, initial_quantity=10, reorder_level=0)
        orders = [make_order() for _ in range(20)]
        barrier = threading.Barrier(len(orders))
        outcomes = []

        def attempt(order):
            try:
                barrier.wait()
                ledger.reserve(record.pk, order.pk, 1)
                outcomes.append('ok')
            except StockError as exc:
                outcomes.append(exc.code)
            finally:
                connections.close_all()

        threads = [threading.Thread(target=attempt, args=(o,)) for o in orders]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        record.refresh_from_db()
        assert outcomes.count('ok') == 10
        assert record.reserved == 10
        assert record.available == 0
        assert Reservation.objects.active().filter(record=record).count() == 10

    @pytest.mark.django_db(transaction=True)
    def test_threaded_reservations_keep_invariants(self, main, make_order):
        """
        Racing threads on any backend never oversell or desync the counters.

        Backends without row locks may turn some attempts away with a version
        conflict or a locking error; whatever commits must still add up.
        """
        record = ledger.initialize(8, main, initial_quantity=5, reorder_level=0)
        orders = [make_order() for _ in range(12)]
        barrier = threading.Barrier(len(orders))
        outcomes = []

        def attempt(order):
            try:
                barrier.wait()
                ledger.reserve(record.pk, order.pk, 1)
                outcomes.append('ok')
            except StockError as exc:
                outcomes.append(exc.code)
            except DatabaseError:
                outcomes.append('db_error')
            finally:
                connections.close_all()

        threads = [threading.Thread(target=attempt, args=(o,)) for o in orders]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        record.refresh_from_db()
        active = Reservation.objects.active().filter(record=record)
        held = active.aggregate(total=Sum('quantity_reserved'))['total'] or 0

        assert len(outcomes) == len(orders)
        assert set(outcomes) <= {'ok', 'INSUFFICIENT_AVAILABLE', 'CONFLICT', 'db_error'}
        assert outcomes.count('ok') <= 5
        assert outcomes.count('ok') == active.count()
        assert record.reserved == held
        assert record.reserved <= record.on_hand
        assert record.on_hand == 5
        assert record.available == record.on_hand - record.reserved

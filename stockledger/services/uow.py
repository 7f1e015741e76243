"""
Unit of work — the per-record transaction boundary.

Every quantity mutation follows the same shape:

    with locked_record(record) as record:
        # validate against the locked row
        # compute the new state
        save_record(record, 'on_hand', 'status')
        MovementLog.append(...)

Concurrency:
    - locked_record() opens transaction.atomic() and takes a row lock with
      select_for_update(); writers on the same record serialize, writers
      on different records do not touch each other
    - save_record() additionally checks the version counter read under
      the lock, so a backend without row locks surfaces CONFLICT instead
      of silently overwriting a concurrent write
"""

import functools
import logging
from contextlib import contextmanager

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from stockledger.conf import stockledger_settings
from stockledger.exceptions import StockError
from stockledger.models.stock_record import StockRecord

logger = logging.getLogger('stockledger')


def pk_of(obj):
    """Accept a model instance or a bare primary key."""
    return getattr(obj, 'pk', obj)


@contextmanager
def locked_record(record):
    """
    Lock a StockRecord for the duration of a transaction.

    Raises:
        StockError('NOT_FOUND'): If the record does not exist
    """
    record_id = pk_of(record)
    with transaction.atomic():
        try:
            locked = StockRecord.objects.select_for_update().get(pk=record_id)
        except StockRecord.DoesNotExist:
            raise StockError('NOT_FOUND', entity='stock_record', id=record_id) from None
        yield locked


def save_record(record: StockRecord, *fields: str) -> StockRecord:
    """
    Persist changed quantity fields of a locked record.

    ``available`` is always re-derived and written. The write only lands if
    the stored version still matches the one that was read.

    Raises:
        StockError('CONFLICT'): If another writer bumped the version
    """
    record.recompute_available()
    values = {name: getattr(record, name) for name in {*fields, 'available'}}
    now = timezone.now()

    updated = StockRecord.objects.filter(
        pk=record.pk, version=record.version,
    ).update(version=F('version') + 1, updated_at=now, **values)

    if not updated:
        logger.warning(
            "stock.conflict",
            extra={"record_id": record.pk, "version": record.version},
        )
        raise StockError('CONFLICT', record_id=record.pk, version=record.version)

    record.version += 1
    record.updated_at = now
    return record


def retry_on_conflict(func):
    """
    Retry a whole ledger operation when it loses a version check.

    Only validation-free conflicts are retried, at most CONFLICT_RETRIES
    times. Inside a caller's transaction the conflict is re-raised at once:
    the outer transaction has to be restarted by its owner.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        attempts = max(1, stockledger_settings.CONFLICT_RETRIES)
        for attempt in range(1, attempts + 1):
            try:
                return func(*args, **kwargs)
            except StockError as exc:
                nested = transaction.get_connection().in_atomic_block
                if exc.code != 'CONFLICT' or nested or attempt == attempts:
                    raise
                logger.info(
                    "stock.conflict.retry",
                    extra={"operation": func.__name__, "attempt": attempt},
                )
    return wrapper

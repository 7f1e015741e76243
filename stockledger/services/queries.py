"""
Stock queries — read-only operations.

All methods are classmethods on the ledger and use no locking.
"""

from datetime import datetime

from django.db import models
from django.db.models import Count, Q, Sum
from django.db.models.functions import Coalesce

from stockledger.conf import stockledger_settings
from stockledger.exceptions import StockError
from stockledger.models.batch import Batch
from stockledger.models.enums import StockStatus
from stockledger.models.stock_record import StockRecord
from stockledger.services.uow import pk_of


def _int_sum(field: str):
    return Coalesce(Sum(field), 0, output_field=models.IntegerField())


class StockQueries:
    """Read-only stock query methods."""

    @classmethod
    def get_record(cls, record) -> StockRecord:
        """
        Raises:
            StockError('NOT_FOUND'): If the record does not exist
        """
        record_id = pk_of(record)
        try:
            return StockRecord.objects.select_related('location').get(pk=record_id)
        except StockRecord.DoesNotExist:
            raise StockError('NOT_FOUND', entity='stock_record', id=record_id) from None

    @classmethod
    def find_record(cls, product_id: int, location=None) -> StockRecord | None:
        """
        Record to sell a product from. Discontinued records are never returned.

        With a location, that location's record. Without one, the default
        location wins, then the record with the most available units.
        """
        qs = (
            StockRecord.objects.for_product(product_id)
            .exclude(status=StockStatus.DISCONTINUED)
            .select_related('location')
        )
        if location is not None:
            return qs.filter(location_id=pk_of(location)).first()
        return qs.order_by('-location__is_default', '-available', 'pk').first()

    @classmethod
    def product_records(cls, product_id: int) -> list[StockRecord]:
        """Records of a product across locations, largest stock first."""
        return list(
            StockRecord.objects.for_product(product_id)
            .select_related('location')
            .order_by('-on_hand', 'pk')
        )

    @classmethod
    def low_stock_items(cls, location=None) -> list[StockRecord]:
        """Low and out-of-stock records, emptiest first."""
        qs = StockRecord.objects.low_stock().select_related('location')
        if location is not None:
            qs = qs.filter(location_id=pk_of(location))
        return list(qs.order_by('on_hand', 'pk'))

    @classmethod
    def location_summary(cls, location) -> dict:
        """Totals for every record at a location."""
        return StockRecord.objects.filter(location_id=pk_of(location)).aggregate(
            total_items=Count('pk'),
            total_quantity=_int_sum('on_hand'),
            total_reserved=_int_sum('reserved'),
            total_available=_int_sum('available'),
            low_stock_count=Count('pk', filter=Q(status=StockStatus.LOW_STOCK)),
            out_of_stock_count=Count('pk', filter=Q(status=StockStatus.OUT_OF_STOCK)),
        )

    @classmethod
    def expiring_batches(cls, days: int | None = None,
                         now: datetime | None = None) -> list[Batch]:
        """Active batches with stock expiring within ``days``, soonest first."""
        days = stockledger_settings.EXPIRING_WITHIN_DAYS if days is None else days
        return list(
            Batch.objects.expiring_within(days, now).select_related('record')
        )

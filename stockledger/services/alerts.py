"""
Stock alerts — threshold, expiry and damage notifications.

Usage:
    from stockledger.services.alerts import Alerts

    # After a stock change (done by the ledger itself)
    Alerts.check_and_create_alert(record, AlertType.LOW_STOCK, 10, 20)

    # Periodically (cron, celery beat) for batch expiry
    created = Alerts.scan_batches(days=30)
"""

import logging
from datetime import datetime, timedelta

from django.db import transaction
from django.utils import timezone

from stockledger.conf import stockledger_settings
from stockledger.exceptions import StockError
from stockledger.models.alert import Alert
from stockledger.models.batch import Batch
from stockledger.models.enums import AlertStatus, AlertType
from stockledger.models.stock_record import StockRecord
from stockledger.rules import is_alert_suppressed, threshold_alert_type
from stockledger.services.uow import locked_record, pk_of

logger = logging.getLogger('stockledger')


class Alerts:
    """Alert monitor methods."""

    @classmethod
    def check_and_create_alert(cls, record, alert_type: str, current_quantity: int,
                               threshold: int, batch=None,
                               now: datetime | None = None, **metadata) -> Alert | None:
        """
        Create an alert unless a PENDING one of the same (record, type) was
        triggered inside the deduplication window.

        The dedup read and the insert run under the record's row lock, so
        concurrent checks on one record are serialized. Callers already
        holding the lock re-enter it within their own transaction.

        Returns:
            The new Alert, or None when suppressed

        Raises:
            StockError('NOT_FOUND'): If the record does not exist
        """
        now = now or timezone.now()
        window = timedelta(minutes=stockledger_settings.ALERT_DEDUP_MINUTES)

        with locked_record(record) as locked:
            record_id = locked.pk
            last_triggered_at = (
                Alert.objects.pending()
                .filter(record_id=record_id, alert_type=alert_type)
                .order_by('-triggered_at')
                .values_list('triggered_at', flat=True)
                .first()
            )
            if is_alert_suppressed(last_triggered_at, now, window):
                logger.debug(
                    "stock.alert.suppressed",
                    extra={"record_id": record_id, "alert_type": alert_type},
                )
                return None

            alert = Alert.objects.create(
                record_id=record_id,
                batch=batch,
                alert_type=alert_type,
                current_quantity=current_quantity,
                threshold=threshold,
                triggered_at=now,
                status=AlertStatus.PENDING,
                metadata=metadata,
            )
            StockRecord.objects.filter(pk=record_id).update(last_alert_at=now)

        logger.warning(
            "stock.alert.created",
            extra={
                "alert_id": alert.pk,
                "record_id": record_id,
                "alert_type": alert_type,
                "current_quantity": current_quantity,
                "threshold": threshold,
            },
        )
        return alert

    @classmethod
    def safe_check(cls, record, alert_type: str, current_quantity: int,
                   threshold: int, **kwargs) -> Alert | None:
        """
        check_and_create_alert() that never fails the calling mutation.

        Runs inside a savepoint; any failure is rolled back to it and logged.
        """
        try:
            with transaction.atomic():
                return cls.check_and_create_alert(
                    record, alert_type, current_quantity, threshold, **kwargs
                )
        except Exception:
            logger.exception(
                "stock.alert.failed",
                extra={"record_id": pk_of(record), "alert_type": alert_type},
            )
            return None

    @classmethod
    def evaluate_thresholds(cls, record) -> Alert | None:
        """Raise out_of_stock / low_stock for a record's current level."""
        alert_type = threshold_alert_type(record.on_hand, record.reorder_level)
        if alert_type is None:
            return None
        return cls.safe_check(record, alert_type, record.on_hand, record.reorder_level)

    @classmethod
    def scan_batches(cls, days: int | None = None, now: datetime | None = None) -> list[Alert]:
        """
        Alert on batches that are expiring within ``days`` or already expired.

        Stock is not touched: expired batches stay ACTIVE until someone acts
        on the alert.

        Returns:
            Alerts created (suppressed ones are not included)
        """
        now = now or timezone.now()
        days = stockledger_settings.EXPIRING_WITHIN_DAYS if days is None else days
        created = []

        candidates = [
            (AlertType.EXPIRED, batch) for batch in Batch.objects.expired(now)
        ] + [
            (AlertType.EXPIRING, batch) for batch in Batch.objects.expiring_within(days, now)
        ]

        for alert_type, batch in candidates:
            threshold = 0 if alert_type == AlertType.EXPIRED else batch.days_to_expiry(now)
            with locked_record(batch.record_id):
                alert = cls.safe_check(
                    batch.record_id, alert_type, batch.quantity_remaining, threshold,
                    batch=batch, now=now, batch_number=batch.batch_number,
                )
            if alert is not None:
                created.append(alert)

        if created:
            logger.info("stock.alerts.batches_scanned", extra={"alerts_created": len(created)})
        return created

    # ══════════════════════════════════════════════════════════════
    # ACKNOWLEDGEMENT FLOW
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def acknowledge(cls, alert) -> Alert:
        """Transition: PENDING → ACKNOWLEDGED"""
        return cls._transition(
            alert, AlertStatus.ACKNOWLEDGED, [AlertStatus.PENDING],
            acknowledged_at=timezone.now(),
        )

    @classmethod
    def resolve(cls, alert, resolution_action: str = '') -> Alert:
        """Transition: PENDING|ACKNOWLEDGED → RESOLVED"""
        return cls._transition(
            alert, AlertStatus.RESOLVED,
            [AlertStatus.PENDING, AlertStatus.ACKNOWLEDGED],
            resolved_at=timezone.now(), resolution_action=resolution_action,
        )

    @classmethod
    def ignore(cls, alert) -> Alert:
        """Transition: PENDING|ACKNOWLEDGED → IGNORED"""
        return cls._transition(
            alert, AlertStatus.IGNORED,
            [AlertStatus.PENDING, AlertStatus.ACKNOWLEDGED],
            resolved_at=timezone.now(),
        )

    @classmethod
    def _transition(cls, alert, status: str, expected: list[str], **fields) -> Alert:
        alert_id = pk_of(alert)

        with transaction.atomic():
            try:
                locked = Alert.objects.select_for_update().get(pk=alert_id)
            except Alert.DoesNotExist:
                raise StockError('NOT_FOUND', entity='alert', id=alert_id) from None

            if locked.status not in expected:
                raise StockError('INVALID_STATUS', current=locked.status, expected=expected)

            locked.status = status
            for name, value in fields.items():
                setattr(locked, name, value)
            locked.save(update_fields=['status', 'updated_at', *fields])
            logger.info(
                "stock.alert.transition",
                extra={"alert_id": alert_id, "status": status},
            )
            return locked

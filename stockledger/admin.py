"""
Stockledger Admin.

Provides read-only views for production debugging:
- Location: list + edit
- StockRecord: read-only (product, location, on hand, reserved, available)
- Movement: read-only audit trail
- Reservation: read-only with "release" action
- Alert: read-only with acknowledge / resolve actions
- Batch, Order: read-only

Quantities only change through the ledger service.
"""

import logging

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from stockledger.exceptions import StockError
from stockledger.models import (
    Alert,
    AlertStatus,
    Batch,
    Location,
    Movement,
    Order,
    OrderItem,
    Reservation,
    StockRecord,
)

logger = logging.getLogger(__name__)


class ReadOnlyAdmin(admin.ModelAdmin):
    """Base admin for ledger tables: rows only change via the service."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# LOCATION ADMIN
# =========================================================================

@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    """Location admin — editable."""

    list_display = ['code', 'name', 'is_default']
    search_fields = ['code', 'name']
    readonly_fields = ['created_at', 'updated_at']


# =========================================================================
# STOCK RECORD ADMIN (read-only)
# =========================================================================

@admin.register(StockRecord)
class StockRecordAdmin(ReadOnlyAdmin):
    """StockRecord admin — read-only. Stock only changes via the ledger."""

    list_display = ['product_id', 'location', 'on_hand', 'reserved', 'available',
                    'reorder_level', 'status', 'updated_at']
    list_filter = ['status', 'location']
    search_fields = ['product_id']
    readonly_fields = ['product_id', 'location', 'on_hand', 'reserved', 'available',
                       'in_transit', 'defective', 'reorder_level', 'reorder_quantity',
                       'cost_per_unit', 'status', 'version', 'last_counted_at',
                       'last_alert_at', 'notes', 'metadata', 'created_at', 'updated_at']
    ordering = ['location', 'product_id']


# =========================================================================
# BATCH ADMIN
# =========================================================================

@admin.register(Batch)
class BatchAdmin(ReadOnlyAdmin):
    """Batch admin — lot traceability."""

    list_display = ['batch_number', 'record', 'quantity_received', 'quantity_remaining',
                    'expiry_date', 'status', 'is_expired_display']
    list_filter = ['status', 'expiry_date']
    search_fields = ['batch_number', 'supplier', 'reference_number']
    date_hierarchy = 'received_date'

    @admin.display(description=_('Expired?'), boolean=True)
    def is_expired_display(self, obj):
        return obj.is_expired()


# =========================================================================
# MOVEMENT ADMIN (read-only audit trail)
# =========================================================================

@admin.register(Movement)
class MovementAdmin(ReadOnlyAdmin):
    """Movement admin — read-only. Immutable audit trail."""

    list_display = ['timestamp', 'record', 'movement_type', 'quantity_change',
                    'quantity_before', 'quantity_after', 'reason', 'user']
    list_filter = ['movement_type', 'timestamp']
    search_fields = ['reason', 'reference']
    date_hierarchy = 'timestamp'


# =========================================================================
# RESERVATION ADMIN (read-only with release action)
# =========================================================================

@admin.register(Reservation)
class ReservationAdmin(ReadOnlyAdmin):
    """Reservation admin — read-only with release action."""

    list_display = ['id', 'record', 'order', 'quantity_reserved', 'status',
                    'expires_at', 'created_at']
    list_filter = ['status']
    search_fields = ['order__order_number']
    actions = ['release_reservations']

    @admin.action(description=_('Release selected reservations'))
    def release_reservations(self, request, queryset):
        from stockledger.service import Ledger

        count = 0
        for reservation in queryset.active():
            try:
                Ledger.release(reservation, reason='Released via admin')
                count += 1
            except StockError as exc:
                logger.warning("release_reservations: failed to release %s: %s",
                               reservation.pk, exc)

        self.message_user(request, _('{count} reservation(s) released.').format(count=count))


# =========================================================================
# ALERT ADMIN
# =========================================================================

@admin.register(Alert)
class AlertAdmin(ReadOnlyAdmin):
    """Alert admin — read-only with acknowledge / resolve actions."""

    list_display = ['triggered_at', 'record', 'alert_type', 'current_quantity',
                    'threshold', 'status', 'notification_count']
    list_filter = ['alert_type', 'status']
    actions = ['acknowledge_alerts', 'resolve_alerts']

    @admin.action(description=_('Acknowledge selected alerts'))
    def acknowledge_alerts(self, request, queryset):
        from stockledger.service import Ledger

        count = 0
        for alert in queryset.filter(status=AlertStatus.PENDING):
            Ledger.acknowledge(alert)
            count += 1
        self.message_user(request, _('{count} alert(s) acknowledged.').format(count=count))

    @admin.action(description=_('Resolve selected alerts'))
    def resolve_alerts(self, request, queryset):
        from stockledger.service import Ledger

        count = 0
        for alert in queryset.open():
            Ledger.resolve(alert, resolution_action='Resolved via admin')
            count += 1
        self.message_user(request, _('{count} alert(s) resolved.').format(count=count))


# =========================================================================
# ORDER ADMIN
# =========================================================================

class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = ['record', 'product_id', 'product_name', 'product_sku',
                       'quantity', 'unit_price', 'total_price']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(ReadOnlyAdmin):
    """Order admin — read-only."""

    list_display = ['order_number', 'customer', 'status', 'total_amount', 'created_at']
    list_filter = ['status']
    search_fields = ['order_number']
    inlines = [OrderItemInline]

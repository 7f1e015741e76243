"""
Initial migration for Stockledger models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Stockledger models: Location, StockRecord, Batch, Order, OrderItem,
    Movement, Reservation, Alert."""

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Location',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.SlugField(help_text='Unique identifier (e.g. main, store-01)', unique=True, verbose_name='Code')),
                ('name', models.CharField(max_length=100, verbose_name='Name')),
                ('is_default', models.BooleanField(default=False, help_text='Preferred location when an order does not name one.', verbose_name='Default location')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadata')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Location',
                'verbose_name_plural': 'Locations',
                'ordering': ['code'],
            },
        ),
        migrations.CreateModel(
            name='StockRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.PositiveBigIntegerField(db_index=True, verbose_name='Product ID')),
                ('on_hand', models.PositiveIntegerField(default=0, help_text='Total physical units present.', verbose_name='On hand')),
                ('reserved', models.PositiveIntegerField(default=0, help_text='Units held against pending orders.', verbose_name='Reserved')),
                ('available', models.IntegerField(default=0, help_text='On hand minus reserved.', verbose_name='Available')),
                ('in_transit', models.PositiveIntegerField(default=0, verbose_name='In transit')),
                ('defective', models.PositiveIntegerField(default=0, verbose_name='Defective')),
                ('reorder_level', models.PositiveIntegerField(default=0, help_text='Below this on-hand quantity the record is low on stock.', verbose_name='Reorder level')),
                ('reorder_quantity', models.PositiveIntegerField(default=0, verbose_name='Reorder quantity')),
                ('cost_per_unit', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=10, verbose_name='Cost per unit')),
                ('status', models.CharField(choices=[('in_stock', 'In stock'), ('low_stock', 'Low stock'), ('out_of_stock', 'Out of stock'), ('discontinued', 'Discontinued')], db_index=True, default='in_stock', max_length=20, verbose_name='Status')),
                ('version', models.PositiveIntegerField(default=0, editable=False)),
                ('last_counted_at', models.DateTimeField(blank=True, null=True, verbose_name='Last counted')),
                ('last_alert_at', models.DateTimeField(blank=True, null=True, verbose_name='Last alert')),
                ('notes', models.TextField(blank=True, default='')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='records', to='stockledger.location', verbose_name='Location')),
            ],
            options={
                'verbose_name': 'Stock record',
                'verbose_name_plural': 'Stock records',
                'indexes': [models.Index(fields=['location', 'status'], name='sl_record_location_status')],
                'constraints': [
                    models.UniqueConstraint(fields=('product_id', 'location'), name='unique_stock_record_per_product_location'),
                    models.CheckConstraint(condition=models.Q(('available', models.F('on_hand') - models.F('reserved'))), name='stock_record_available_identity'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Batch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('batch_number', models.CharField(max_length=50, verbose_name='Batch number')),
                ('quantity_received', models.PositiveIntegerField(verbose_name='Received')),
                ('quantity_sold', models.PositiveIntegerField(default=0, verbose_name='Sold')),
                ('quantity_damaged', models.PositiveIntegerField(default=0, verbose_name='Damaged')),
                ('quantity_remaining', models.PositiveIntegerField(verbose_name='Remaining')),
                ('cost_per_unit', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=10, verbose_name='Cost per unit')),
                ('total_cost', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=14, verbose_name='Total cost')),
                ('received_date', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Received on')),
                ('manufacture_date', models.DateTimeField(blank=True, null=True, verbose_name='Manufactured on')),
                ('expiry_date', models.DateTimeField(blank=True, db_index=True, null=True, verbose_name='Expiry date')),
                ('status', models.CharField(choices=[('active', 'Active'), ('expired', 'Expired'), ('recall', 'Recalled'), ('archived', 'Archived')], db_index=True, default='active', max_length=20, verbose_name='Status')),
                ('supplier', models.CharField(blank=True, default='', max_length=100, verbose_name='Supplier')),
                ('reference_number', models.CharField(blank=True, default='', max_length=50, verbose_name='Reference')),
                ('notes', models.TextField(blank=True, default='')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('record', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='batches', to='stockledger.stockrecord', verbose_name='Stock record')),
            ],
            options={
                'verbose_name': 'Batch',
                'verbose_name_plural': 'Batches',
                'ordering': ['expiry_date', 'received_date'],
                'indexes': [models.Index(fields=['status', 'expiry_date'], name='sl_batch_status_expiry')],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity_remaining', models.F('quantity_received') - models.F('quantity_sold') - models.F('quantity_damaged'))), name='batch_remaining_identity'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_number', models.CharField(max_length=40, unique=True, verbose_name='Order number')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('confirmed', 'Confirmed'), ('shipped', 'Shipped'), ('cancelled', 'Cancelled')], db_index=True, default='pending', max_length=20, verbose_name='Status')),
                ('subtotal', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('shipping_amount', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('customer_notes', models.TextField(blank=True, default='')),
                ('cancel_reason', models.CharField(blank=True, default='', max_length=255)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('confirmed_at', models.DateTimeField(blank=True, null=True)),
                ('shipped_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Customer')),
            ],
            options={
                'verbose_name': 'Order',
                'verbose_name_plural': 'Orders',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='OrderItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.PositiveBigIntegerField()),
                ('product_name', models.CharField(blank=True, default='', max_length=200)),
                ('product_sku', models.CharField(blank=True, default='', max_length=100)),
                ('quantity', models.PositiveIntegerField()),
                ('unit_price', models.DecimalField(decimal_places=2, max_digits=10)),
                ('total_price', models.DecimalField(decimal_places=2, max_digits=12)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='stockledger.order')),
                ('record', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='order_items', to='stockledger.stockrecord')),
            ],
            options={
                'verbose_name': 'Order item',
                'verbose_name_plural': 'Order items',
            },
        ),
        migrations.CreateModel(
            name='Movement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('movement_type', models.CharField(choices=[('initial', 'Initial'), ('stock_in', 'Stock in'), ('stock_out', 'Stock out'), ('adjustment', 'Adjustment'), ('damage', 'Damage')], db_index=True, max_length=20, verbose_name='Type')),
                ('quantity_change', models.IntegerField(help_text='Positive = in, negative = out', verbose_name='Change')),
                ('quantity_before', models.PositiveIntegerField(verbose_name='Before')),
                ('quantity_after', models.PositiveIntegerField(verbose_name='After')),
                ('unit_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, verbose_name='Unit cost')),
                ('reference', models.CharField(blank=True, default='', max_length=50, verbose_name='Reference')),
                ('reason', models.CharField(help_text='Required. E.g. "Sale", "Stock received - Batch LOT-1"', max_length=255, verbose_name='Reason')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadata')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Timestamp')),
                ('batch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='stockledger.batch', verbose_name='Batch')),
                ('order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='stockledger.order', verbose_name='Order')),
                ('record', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='stockledger.stockrecord', verbose_name='Stock record')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Movement',
                'verbose_name_plural': 'Movements',
                'ordering': ['timestamp', 'pk'],
                'indexes': [models.Index(fields=['record', 'timestamp'], name='sl_movement_record_ts')],
            },
        ),
        migrations.CreateModel(
            name='Reservation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity_reserved', models.PositiveIntegerField(verbose_name='Quantity')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('allocated', 'Allocated'), ('fulfilled', 'Fulfilled'), ('released', 'Released'), ('cancelled', 'Cancelled')], db_index=True, default='pending', max_length=20, verbose_name='Status')),
                ('reserved_price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, verbose_name='Price at reservation')),
                ('expires_at', models.DateTimeField(blank=True, db_index=True, help_text='Pending holds past this time are released by the sweep', null=True, verbose_name='Expires at')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('allocated_at', models.DateTimeField(blank=True, null=True)),
                ('fulfilled_at', models.DateTimeField(blank=True, null=True)),
                ('released_at', models.DateTimeField(blank=True, null=True)),
                ('release_reason', models.CharField(blank=True, default='', max_length=255)),
                ('notes', models.TextField(blank=True, default='')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='reservations', to='stockledger.order', verbose_name='Order')),
                ('record', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='reservations', to='stockledger.stockrecord', verbose_name='Stock record')),
                ('reserved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Reserved by')),
            ],
            options={
                'verbose_name': 'Reservation',
                'verbose_name_plural': 'Reservations',
                'indexes': [
                    models.Index(fields=['status', 'expires_at'], name='sl_reservation_status_expiry'),
                    models.Index(fields=['record', 'status'], name='sl_reservation_record_status'),
                    models.Index(fields=['order', 'status'], name='sl_reservation_order_status'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Alert',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('alert_type', models.CharField(choices=[('low_stock', 'Low stock'), ('out_of_stock', 'Out of stock'), ('overstock', 'Overstock'), ('expiring', 'Expiring'), ('expired', 'Expired'), ('damaged', 'Damaged')], max_length=20, verbose_name='Type')),
                ('current_quantity', models.IntegerField(verbose_name='Quantity at trigger')),
                ('threshold', models.IntegerField(verbose_name='Threshold')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('acknowledged', 'Acknowledged'), ('resolved', 'Resolved'), ('ignored', 'Ignored')], db_index=True, default='pending', max_length=20, verbose_name='Status')),
                ('notification_count', models.PositiveIntegerField(default=0)),
                ('triggered_at', models.DateTimeField(db_index=True, verbose_name='Triggered at')),
                ('acknowledged_at', models.DateTimeField(blank=True, null=True, verbose_name='Acknowledged at')),
                ('resolved_at', models.DateTimeField(blank=True, null=True, verbose_name='Resolved at')),
                ('resolution_action', models.TextField(blank=True, default='', help_text='Action taken, e.g. "Ordered 1000 units"', verbose_name='Resolution')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('batch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='alerts', to='stockledger.batch', verbose_name='Batch')),
                ('record', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='alerts', to='stockledger.stockrecord', verbose_name='Stock record')),
            ],
            options={
                'verbose_name': 'Stock alert',
                'verbose_name_plural': 'Stock alerts',
                'ordering': ['-triggered_at'],
                'indexes': [models.Index(fields=['record', 'alert_type', 'status', 'triggered_at'], name='sl_alert_record_type_status')],
            },
        ),
    ]

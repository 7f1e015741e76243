"""
Management command to raise expiry alerts for batches.

Usage:
    python manage.py scan_stock_alerts
    python manage.py scan_stock_alerts --days 7
"""

from django.core.management.base import BaseCommand, CommandError

from stockledger.service import Ledger


class Command(BaseCommand):
    """Scan batches for expired / expiring stock."""

    help = 'Create alerts for expired and soon-to-expire batches'

    def add_arguments(self, parser):
        parser.add_argument(
            '--days',
            type=int,
            default=None,
            help='Expiry horizon in days (defaults to EXPIRING_WITHIN_DAYS)'
        )

    def handle(self, *args, **options):
        days = options['days']
        if days is not None and days < 0:
            raise CommandError('--days must be zero or positive')

        alerts = Ledger.scan_batches(days=days)
        self.stdout.write(
            self.style.SUCCESS(f'{len(alerts)} alert(s) created')
        )

"""
Management command to release expired reservations.

Usage:
    python manage.py release_expired_reservations
    python manage.py release_expired_reservations --dry-run
"""

from django.core.management.base import BaseCommand
from django.utils import timezone

from stockledger.models import Reservation
from stockledger.service import Ledger


class Command(BaseCommand):
    """Release expired reservations command."""

    help = 'Release pending reservations past their deadline'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be released without releasing it'
        )

    def handle(self, *args, **options):
        if options['dry_run']:
            expired = Reservation.objects.expired(timezone.now()).count()
            self.stdout.write(f'{expired} reservation(s) would be released')
        else:
            count = Ledger.release_expired()
            self.stdout.write(
                self.style.SUCCESS(f'{count} reservation(s) released')
            )

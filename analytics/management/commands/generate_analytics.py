from datetime import date, timedelta

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from analytics.services import generate_daily_snapshot


class Command(BaseCommand):
    help = 'Generate the daily analytics snapshot (defaults to yesterday)'

    def add_arguments(self, parser):
        parser.add_argument('--date', help='Day to generate, YYYY-MM-DD')
        parser.add_argument('--days', type=int, default=1, help='Number of days ending at --date')

    def handle(self, *args, **options):
        if options['date']:
            try:
                end = date.fromisoformat(options['date'])
            except ValueError:
                raise CommandError('Date must be in YYYY-MM-DD format')
        else:
            end = timezone.localdate() - timedelta(days=1)

        for offset in range(options['days'] - 1, -1, -1):
            day = end - timedelta(days=offset)
            snapshot, created = generate_daily_snapshot(day)
            if created:
                self.stdout.write(self.style.SUCCESS(f'Generated analytics for {day}'))
            else:
                self.stdout.write(f'Analytics for {day} already exist')

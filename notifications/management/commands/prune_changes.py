from django.conf import settings
from django.core.management.base import BaseCommand

from notifications.models import ChangeEvent


class Command(BaseCommand):
    help = "Delete change log events older than the retention window"

    def add_arguments(self, parser):
        parser.add_argument(
            '--days',
            type=int,
            default=None,
            help=f"Retention in days (default: CHANGE_LOG_RETENTION_DAYS, {settings.CHANGE_LOG_RETENTION_DAYS})"
        )

    def handle(self, *args, **options):
        deleted = ChangeEvent.prune(options['days'])
        self.stdout.write(f"Pruned {deleted} change events")

"""Management command to clean up old items from trash."""

import logging
from datetime import timedelta
from typing import Any, Final

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from cloudbox.apps.drive.logic.trash_operations import purge_trashed_before
from cloudbox.apps.drive.models import File, Folder

_DEFAULT_BATCH_SIZE: Final = 1000

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Permanently delete folders and files that stayed too long in trash."""

    help = 'Clean up old folders and files from trash'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without deleting',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=_DEFAULT_BATCH_SIZE,
            help=f'Max trashed items to process (default: {_DEFAULT_BATCH_SIZE})',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the cleanup command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        batch_size = options['batch_size']
        retention_days = settings.DRIVE_TRASH_RETENTION_DAYS

        cutoff = timezone.now() - timedelta(days=retention_days)

        self.stdout.write(
            f'Looking for items deleted before {cutoff} '
            f'(older than {retention_days} days)',
        )

        if dry_run:
            self._report_dry_run(cutoff, batch_size)
            return

        deleted, failed = purge_trashed_before(None, cutoff, limit=batch_size)
        logger.info(
            'Trash cleanup finished: %d purged, %d failed',
            deleted,
            failed,
        )
        self.stdout.write(
            self.style.SUCCESS(
                f'Purged {deleted} items from trash, {failed} failed',
            ),
        )

    def _report_dry_run(self, cutoff: Any, batch_size: int) -> None:
        old_files = list(
            File.all_objects.filter(
                deleted_at__lte=cutoff,
            ).order_by('deleted_at')[:batch_size],
        )
        old_folders = Folder.all_objects.filter(
            deleted_at__lte=cutoff,
        ).order_by('deleted_at')[:max(0, batch_size - len(old_files))]

        count = 0
        for file_instance in old_files:
            self.stdout.write(
                f'Would delete file: {file_instance.name} '
                f'(user: {file_instance.user_id}, '
                f'deleted: {file_instance.deleted_at})',
            )
            count += 1
        for folder in old_folders:
            self.stdout.write(
                f'Would delete folder tree: {folder.name} '
                f'(user: {folder.user_id}, deleted: {folder.deleted_at})',
            )
            count += 1

        self.stdout.write(
            self.style.SUCCESS(f'Would purge {count} items from trash'),
        )

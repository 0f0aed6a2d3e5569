"""Management command to move blobs back to their derived storage keys."""

import logging
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from cloudbox.apps.drive.exceptions import DriveError
from cloudbox.apps.drive.logic.folder_operations import (
    CascadeResult,
    resync_folder_files,
    resync_root_files,
)
from cloudbox.apps.drive.logic.path_operations import derive_physical_key
from cloudbox.apps.drive.logic.tree_operations import (
    get_owned_folder,
    iter_subtree_folders,
)
from cloudbox.apps.drive.models import File, Folder

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Re-run the key cascade for a user's files.

    Useful after a folder move or rename whose cascade was interrupted.
    Files already at their derived key are left alone.
    """

    help = 'Move file blobs to the keys derived from their folder paths'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--user',
            type=int,
            required=True,
            help='ID of the user whose files to resync',
        )
        parser.add_argument(
            '--folder',
            default=None,
            help='Only resync the subtree of this folder',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List files with stale keys without moving them',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the resync command.

        Args:
            args: Positional arguments (unused).
            options: Command options.

        Raises:
            CommandError: If the folder cannot be resolved or some files
                could not be resynced.
        """
        owner_id = options['user']
        folder_id = options['folder']

        try:
            folders = self._select_folders(owner_id, folder_id)
        except DriveError as error:
            raise CommandError(str(error)) from error

        if options['dry_run']:
            self._report_stale(owner_id, folder_id, folders)
            return

        results: list[CascadeResult] = []
        if folder_id is None:
            results.append(resync_root_files(owner_id))
        results.extend(
            resync_folder_files(folder.pk, owner_id) for folder in folders
        )

        resynced = sum(len(result.resynced) for result in results)
        unchanged = sum(len(result.unchanged) for result in results)
        failures = [failure for result in results for failure in result.errors]

        for failure in failures:
            self.stderr.write(
                f'Failed to resync {failure.file.pk}: {failure.error}',
            )

        self.stdout.write(
            f'Resynced {resynced} files, {unchanged} already in place, '
            f'{len(failures)} failed',
        )
        if failures:
            raise CommandError(f'{len(failures)} files could not be resynced')
        self.stdout.write(self.style.SUCCESS('Storage keys are in sync'))

    def _select_folders(
        self,
        owner_id: int,
        folder_id: str | None,
    ) -> list[Folder]:
        """Pick the folders whose subtrees get resynced."""
        if folder_id is not None:
            return [get_owned_folder(folder_id, owner_id)]
        return list(
            Folder.objects.filter(user_id=owner_id, parent__isnull=True),
        )

    def _report_stale(
        self,
        owner_id: int,
        folder_id: str | None,
        folders: list[Folder],
    ) -> None:
        folder_ids: list[Any] = []
        for top in folders:
            folder_ids.extend(
                folder.pk for folder in iter_subtree_folders(top.pk, owner_id)
            )

        files = File.all_objects.filter(user_id=owner_id, folder_id__in=folder_ids)
        if folder_id is None:
            files = files | File.all_objects.filter(
                user_id=owner_id,
                folder__isnull=True,
            )

        stale = 0
        for file_instance in files.order_by('created_at', 'id'):
            expected_key = derive_physical_key(
                owner_id,
                file_instance.folder_id,
                file_instance.id,
                file_instance.name,
            )
            if expected_key != file_instance.file.name:
                self.stdout.write(
                    f'Would move: {file_instance.file.name} -> {expected_key}',
                )
                stale += 1

        logger.info('Dry run for user %s: %d stale keys', owner_id, stale)
        self.stdout.write(
            self.style.SUCCESS(f'Would resync {stale} files'),
        )

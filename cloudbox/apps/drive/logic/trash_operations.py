"""Business logic for trash (soft delete) operations."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, final

from cloudbox.apps.drive.logic.file_operations import permanent_delete_file
from cloudbox.apps.drive.logic.folder_operations import (
    permanent_delete_folder,
)
from cloudbox.apps.drive.logic.tree_operations import (
    get_owned_folder,
    iter_subtree_folders,
)
from cloudbox.apps.drive.models import File, Folder

logger = logging.getLogger(__name__)


@final
@dataclass(frozen=True)
class TrashListing:
    """Trashed folders and files of one owner, newest first."""

    folders: list[Folder]
    files: list[File]


def list_trash(owner_id: Any) -> TrashListing:
    """List everything in an owner's trash.

    Args:
        owner_id: Owner whose trash to list.

    Returns:
        Trashed folders and files, most recently deleted first.
    """
    folders = Folder.all_objects.filter(
        user_id=owner_id,
        deleted_at__isnull=False,
    ).order_by('-deleted_at')
    files = File.all_objects.filter(
        user_id=owner_id,
        deleted_at__isnull=False,
    ).order_by('-deleted_at')
    return TrashListing(folders=list(folders), files=list(files))


def purge_folder_tree(folder_id: uuid.UUID | str, owner_id: Any) -> int:
    """Permanently delete a folder and everything below it.

    Files go first (blob, then record), then folders from the deepest
    level up, so no folder is deleted while something still points at
    it.

    Args:
        folder_id: Top folder of the tree to purge.
        owner_id: Acting owner's user ID.

    Returns:
        Number of folders and files deleted.
    """
    folder = get_owned_folder(folder_id, owner_id, include_deleted=True)
    tree = list(iter_subtree_folders(folder.pk, owner_id, include_deleted=True))

    count = 0
    for subfolder in reversed(tree):
        files = File.all_objects.filter(user_id=owner_id, folder=subfolder)
        for file_instance in files:
            permanent_delete_file(file_instance.pk, owner_id)
            count += 1
        permanent_delete_folder(subfolder.pk, owner_id)
        count += 1

    logger.info('Purged folder tree %s: %d items', folder_id, count)
    return count


def purge_trashed_before(
    owner_id: Any | None,
    cutoff: datetime,
    limit: int | None = None,
) -> tuple[int, int]:
    """Permanently delete items that were trashed before a cutoff.

    A trashed folder takes its whole tree with it. Failures are logged
    and counted, and the purge continues with the next item.

    Args:
        owner_id: Restrict to one owner, or None for all owners.
        cutoff: Items deleted at or before this moment are purged.
        limit: Maximum number of trashed items (not tree members) to
            process.

    Returns:
        Tuple of (items deleted, items that failed).
    """
    scope: dict[str, Any] = {'deleted_at__lte': cutoff}
    if owner_id is not None:
        scope['user_id'] = owner_id

    old_files = list(File.all_objects.filter(**scope).order_by('deleted_at'))
    old_folders = list(
        Folder.all_objects.filter(**scope).order_by('deleted_at'),
    )
    if limit is not None:
        old_files = old_files[:limit]
        old_folders = old_folders[:max(0, limit - len(old_files))]

    deleted = 0
    failed = 0
    for file_instance in old_files:
        try:
            permanent_delete_file(file_instance.pk, file_instance.user_id)
        except Exception:
            logger.exception('Failed to purge file: %s', file_instance.pk)
            failed += 1
            continue
        deleted += 1

    for folder in old_folders:
        # Already removed as part of an enclosing trashed tree
        if not Folder.all_objects.filter(pk=folder.pk).exists():
            continue
        try:
            deleted += purge_folder_tree(folder.pk, folder.user_id)
        except Exception:
            logger.exception('Failed to purge folder tree: %s', folder.pk)
            failed += 1

    return deleted, failed


def empty_trash(owner_id: Any) -> int:
    """Permanently delete everything in an owner's trash.

    Stops at the first failure and re-raises it.

    Args:
        owner_id: Owner whose trash to empty.

    Returns:
        Number of folders and files deleted.
    """
    listing = list_trash(owner_id)
    count = 0

    for file_instance in listing.files:
        try:
            permanent_delete_file(file_instance.pk, owner_id)
        except Exception:
            logger.exception(
                'Failed to permanently delete file: %s',
                file_instance.pk,
            )
            raise
        count += 1

    for folder in listing.folders:
        if not Folder.all_objects.filter(pk=folder.pk).exists():
            continue
        try:
            count += purge_folder_tree(folder.pk, owner_id)
        except Exception:
            logger.exception(
                'Failed to permanently delete folder tree: %s',
                folder.pk,
            )
            raise

    logger.info('Trash emptied for user %s: %d items deleted', owner_id, count)
    return count

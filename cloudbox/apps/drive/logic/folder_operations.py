"""Business logic for folder operations.

Folders have no blob of their own, but their names make up the storage
keys of every file below them. Moving or renaming a folder therefore
cascades into a key resync of all files in its subtree. The cascade
runs file by file and is not transactional: files that fail are
reported in the CascadeResult and can be fixed by running the resync
again.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, final

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import QuerySet, RestrictedError
from django.utils import timezone

from cloudbox.apps.drive.exceptions import (
    ConcurrentModificationError,
    CyclicMoveError,
    FolderNotEmptyError,
    NameConflictError,
    NamingExhaustedError,
    NotFoundError,
    StorageInconsistencyError,
)
from cloudbox.apps.drive.infrastructure.metadata import validate_item_name
from cloudbox.apps.drive.logic.file_operations import resync_file_key
from cloudbox.apps.drive.logic.tree_operations import (
    get_owned_folder,
    is_descendant,
    iter_subtree_folders,
    validate_move_target,
    validate_parent_folder,
)
from cloudbox.apps.drive.models import File, Folder

logger = logging.getLogger(__name__)


@final
@dataclass
class CascadeFailure:
    """A file whose key could not be resynced."""

    file: File
    error: Exception

    @property
    def is_fatal(self) -> bool:
        """Whether blob and record were left disagreeing."""
        return isinstance(self.error, StorageInconsistencyError)


@final
@dataclass
class CascadeResult:
    """Outcome of resyncing the files below a folder.

    ``folder`` is None when the root-level files were resynced.
    """

    folder: Folder | None
    resynced: list[File] = field(default_factory=list)
    unchanged: list[File] = field(default_factory=list)
    errors: list[CascadeFailure] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        """Whether every file ended up at its derived key."""
        return not self.errors

    @property
    def has_fatal_errors(self) -> bool:
        """Whether any file was left with blob and record disagreeing."""
        return any(failure.is_fatal for failure in self.errors)


def _resync_files(result: CascadeResult, files: QuerySet[File]) -> None:
    for file_instance in files:
        try:
            moved = resync_file_key(file_instance)
        except Exception as error:
            logger.exception(
                'Failed to resync file %s (key: %s)',
                file_instance.pk,
                file_instance.file.name,
            )
            result.errors.append(CascadeFailure(file_instance, error))
            continue

        if moved:
            result.resynced.append(file_instance)
        else:
            result.unchanged.append(file_instance)


def _cascade_resync(folder: Folder, owner_id: Any) -> CascadeResult:
    """Resync keys of all files in the live subtree of a folder.

    Trashed files inside live folders are included, trashed subfolders
    are not.
    """
    result = CascadeResult(folder=folder)
    for subfolder in iter_subtree_folders(folder.pk, owner_id):
        files = File.all_objects.filter(
            user_id=owner_id,
            folder_id=subfolder.pk,
        ).order_by('created_at', 'id')
        _resync_files(result, files)

    logger.info(
        'Cascade for folder %s: %d resynced, %d unchanged, %d failed',
        folder.pk,
        len(result.resynced),
        len(result.unchanged),
        len(result.errors),
    )
    return result


def get_folder(folder_id: uuid.UUID | str, owner_id: Any) -> Folder:
    """Get a live folder of the owner."""
    return get_owned_folder(folder_id, owner_id)


def list_folders(
    owner_id: Any,
    parent_id: uuid.UUID | str | None = None,
) -> QuerySet[Folder]:
    """List live folders directly inside a folder.

    Args:
        owner_id: Owner of folders.
        parent_id: Parent folder ID, or None for top-level folders.

    Returns:
        QuerySet of Folder objects ordered by name.
    """
    return Folder.objects.filter(
        user_id=owner_id,
        parent_id=parent_id,
    ).order_by('name')


def create_folder(
    owner_id: Any,
    name: str,
    parent_id: uuid.UUID | str | None = None,
) -> Folder:
    """Create a folder, picking a free name if the requested one is taken.

    Tries "Reports", then "Reports (2)", "Reports (3)", ... until an
    insert succeeds or DRIVE_FOLDER_NAME_MAX_ATTEMPTS names were tried.

    Args:
        owner_id: Owner's user ID.
        name: Requested folder name.
        parent_id: Parent folder ID, or None for a top-level folder.

    Returns:
        Created Folder instance.

    Raises:
        ValidationError: If the name is invalid.
        InvalidParentError: If the parent does not exist or is trashed.
        NotOwnerError: If the parent belongs to another user.
        NamingExhaustedError: If every candidate name was taken.
    """
    validate_item_name(name)
    validate_parent_folder(parent_id, owner_id).raise_if_rejected()

    max_attempts = settings.DRIVE_FOLDER_NAME_MAX_ATTEMPTS
    for attempt in range(1, max_attempts + 1):
        candidate = name if attempt == 1 else f'{name} ({attempt})'
        try:
            with transaction.atomic():
                folder = Folder.objects.create(
                    user_id=owner_id,
                    name=candidate,
                    parent_id=parent_id,
                )
        except IntegrityError:
            logger.debug('Folder name taken, retrying: %s', candidate)
            continue

        logger.info('Folder created: %s (ID: %s)', candidate, folder.pk)
        return folder

    logger.warning(
        'No free folder name for "%s" after %d attempts',
        name,
        max_attempts,
    )
    raise NamingExhaustedError(name, max_attempts)


def rename_folder(
    folder_id: uuid.UUID | str,
    new_name: str,
    owner_id: Any,
) -> CascadeResult:
    """Rename a folder and resync the keys of the files below it.

    Args:
        folder_id: ID of folder to rename.
        new_name: New folder name.
        owner_id: Acting owner's user ID.

    Returns:
        Result of the key resync cascade.

    Raises:
        NameConflictError: If a sibling already has that name.
    """
    validate_item_name(new_name)
    folder = get_owned_folder(folder_id, owner_id)
    old_name = folder.name
    if old_name == new_name:
        return CascadeResult(folder=folder)

    folder.name = new_name
    try:
        with transaction.atomic():
            folder.save(update_fields=['name', 'updated_at'])
    except IntegrityError as error:
        folder.name = old_name
        raise NameConflictError(new_name, folder.parent_id) from error

    logger.info('Folder renamed: %s -> %s (ID: %s)', old_name, new_name, folder.pk)
    return _cascade_resync(folder, owner_id)


def _commit_parent(
    folder: Folder,
    old_parent_id: Any,
    new_parent_id: Any,
    owner_id: Any,
) -> None:
    """Re-parent a folder unless someone else moved it meanwhile.

    Raises:
        ConcurrentModificationError: If the parent changed since validation.
        CyclicMoveError: If a concurrent move made the target a descendant.
        NameConflictError: If the target already has a folder of that name.
    """
    try:
        with transaction.atomic():
            updated = Folder.objects.filter(
                pk=folder.pk,
                user_id=owner_id,
                parent_id=old_parent_id,
            ).update(parent_id=new_parent_id, updated_at=timezone.now())
            if not updated:
                raise ConcurrentModificationError('folder', folder.pk)
            if new_parent_id is not None and is_descendant(
                new_parent_id,
                folder.pk,
            ):
                raise CyclicMoveError(folder.pk, new_parent_id)
    except IntegrityError as error:
        raise NameConflictError(folder.name, new_parent_id) from error


def move_folder(
    folder_id: uuid.UUID | str,
    new_parent_id: uuid.UUID | str | None,
    owner_id: Any,
) -> CascadeResult:
    """Move a folder under a new parent and resync its files' keys.

    The parent reference is updated first; then every file in the live
    subtree is moved to its new key one at a time.

    Args:
        folder_id: ID of folder to move.
        new_parent_id: New parent folder ID, or None for the top level.
        owner_id: Acting owner's user ID.

    Returns:
        Result of the key resync cascade (empty for a no-op move).

    Raises:
        NotFoundError: If the folder does not exist or is trashed.
        SelfParentError: If the folder would become its own parent.
        InvalidParentError: If the target does not exist or is trashed.
        NotOwnerError: If the folder or target belongs to another user.
        CyclicMoveError: If the target is inside the folder's subtree.
        NameConflictError: If the target already has a folder of that name.
        ConcurrentModificationError: If the folder was moved meanwhile.
    """
    folder = get_owned_folder(folder_id, owner_id)
    validate_move_target(new_parent_id, folder.pk, owner_id).raise_if_rejected()

    old_parent_id = folder.parent_id
    if str(old_parent_id) == str(new_parent_id):
        logger.debug('Folder %s already under %s', folder_id, new_parent_id)
        return CascadeResult(folder=folder)

    _commit_parent(folder, old_parent_id, new_parent_id, owner_id)
    folder.refresh_from_db(fields=['parent', 'updated_at'])
    logger.info(
        'Folder moved: %s from %s to %s',
        folder.pk,
        old_parent_id,
        new_parent_id,
    )
    return _cascade_resync(folder, owner_id)


def resync_folder_files(
    folder_id: uuid.UUID | str,
    owner_id: Any,
) -> CascadeResult:
    """Re-run the key cascade for a folder's subtree.

    Files already at their derived key are left alone, so this is safe
    to repeat after a partially failed cascade.
    """
    folder = get_owned_folder(folder_id, owner_id)
    return _cascade_resync(folder, owner_id)


def resync_root_files(owner_id: Any) -> CascadeResult:
    """Resync keys of the owner's files that sit at the root."""
    result = CascadeResult(folder=None)
    files = File.all_objects.filter(
        user_id=owner_id,
        folder__isnull=True,
    ).order_by('created_at', 'id')
    _resync_files(result, files)
    return result


def soft_delete_folder(folder_id: uuid.UUID | str, owner_id: Any) -> Folder:
    """Move folder to trash (soft delete).

    Records the current parent so restore can put the folder back.
    Children are left untouched.

    Args:
        folder_id: ID of folder to soft delete.
        owner_id: Acting owner's user ID.

    Returns:
        Updated Folder instance.
    """
    folder = get_owned_folder(folder_id, owner_id)
    folder.original_parent_id = folder.parent_id
    folder.deleted_at = timezone.now()
    folder.save(update_fields=['original_parent', 'deleted_at', 'updated_at'])

    logger.info('Folder moved to trash: %s (ID: %s)', folder.name, folder.pk)
    return folder


def restore_folder(
    folder_id: uuid.UUID | str,
    owner_id: Any,
) -> CascadeResult:
    """Restore folder from trash and resync the keys of the files below it.

    The folder returns to the parent it had when deleted. Its ancestors may
    have moved or been renamed since, so the cascade runs as for a move.

    Args:
        folder_id: ID of folder to restore.
        owner_id: Acting owner's user ID.

    Returns:
        Result of the key resync cascade; ``folder`` is the restored folder.

    Raises:
        NotFoundError: If the folder is not in the trash.
        CyclicMoveError: If the original parent is now inside the folder.
        NameConflictError: If the original parent has a folder of that name.
    """
    folder = get_owned_folder(folder_id, owner_id, include_deleted=True)
    if not folder.is_deleted:
        raise NotFoundError('folder', folder_id, 'not in trash')

    restored_parent_id = folder.original_parent_id
    if restored_parent_id is not None and is_descendant(
        restored_parent_id,
        folder.pk,
    ):
        raise CyclicMoveError(folder.pk, restored_parent_id)

    folder.parent_id = restored_parent_id
    folder.original_parent_id = None
    folder.deleted_at = None
    try:
        with transaction.atomic():
            folder.save(update_fields=[
                'parent',
                'original_parent',
                'deleted_at',
                'updated_at',
            ])
    except IntegrityError as error:
        raise NameConflictError(folder.name, restored_parent_id) from error

    logger.info('Folder restored: %s (ID: %s)', folder.name, folder.pk)
    return _cascade_resync(folder, owner_id)


def permanent_delete_folder(folder_id: uuid.UUID | str, owner_id: Any) -> None:
    """Delete a folder row for good.

    Nothing below the folder is deleted; callers purge or move its
    contents first (see trash_operations.purge_folder_tree).

    Raises:
        FolderNotEmptyError: If subfolders or files still reference it.
    """
    folder = get_owned_folder(folder_id, owner_id, include_deleted=True)
    try:
        with transaction.atomic():
            folder.delete()
    except RestrictedError as error:
        raise FolderNotEmptyError(folder_id) from error

    logger.info('Folder permanently deleted: %s (ID: %s)', folder.name, folder_id)


def toggle_folder_sharing(
    folder_id: uuid.UUID | str,
    is_shared: bool,
    owner_id: Any,
) -> Folder:
    """Set the shared flag of a folder."""
    folder = get_owned_folder(folder_id, owner_id)
    folder.is_shared = is_shared
    folder.save(update_fields=['is_shared', 'updated_at'])
    logger.info('Folder %s shared=%s', folder_id, is_shared)
    return folder
